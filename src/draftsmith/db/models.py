"""Domain models for the artifact persistence layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class ArtifactKind(str, Enum):
    TEXT = "text"
    CODE = "code"
    CHART = "chart"
    SHEET = "sheet"
    SLIDE = "slide"
    IMAGE = "image"


def to_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_ts(value: datetime) -> str:
    """Fixed-width UTC text form used for storage and ordering."""
    return to_utc(value).strftime(_TS_FORMAT)


def parse_ts(text: str) -> datetime:
    return datetime.strptime(text, _TS_FORMAT).replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ArtifactVersion:
    """Immutable snapshot of an artifact, keyed by (id, created_at)."""

    id: str
    created_at: datetime
    title: str
    kind: ArtifactKind
    content: str
    user_id: str
    metadata: str = field(default="{}")

    @property
    def key(self) -> tuple[str, datetime]:
        return (self.id, self.created_at)

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata)


@dataclass
class Suggestion:
    id: str
    document_id: str
    document_created_at: datetime
    original_text: str
    suggested_text: str
    user_id: str
    description: str = ""
    is_resolved: bool = False
    created_at: datetime | None = None
