"""Content schema contract and the per-kind registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from pydantic import ValidationError

from draftsmith.db.models import ArtifactKind
from draftsmith.errors import MisclassifiedOutput, SchemaViolation, UnknownKindError
from draftsmith.schemas.heuristics import Heuristic

_UNSET: Any = object()


class StreamStyle(str, Enum):
    """How a kind's partial payloads relate to each other."""

    CUMULATIVE = "cumulative"  # each partial is the full candidate so far
    INCREMENTAL = "incremental"  # each partial is a fragment to append


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: str | None = None
    misclassified: bool = False

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: str, *, misclassified: bool = False) -> ValidationResult:
        return cls(valid=False, reason=reason, misclassified=misclassified)

    def to_error(self, kind: ArtifactKind) -> SchemaViolation:
        """Return the taxonomy exception describing this failure."""
        exc_type = MisclassifiedOutput if self.misclassified else SchemaViolation
        return exc_type(kind.value, self.reason or "invalid content")


class ContentSchema(ABC):
    """Structural schema plus optional misclassification heuristic for one kind.

    Subclasses implement ``check()`` (structural validation of serialized
    text) and may override ``precheck()``/``serialize()`` for object payloads.
    """

    kind: ClassVar[ArtifactKind]
    stream_style: ClassVar[StreamStyle] = StreamStyle.CUMULATIVE
    shape_hint: ClassVar[str] = ""
    default_heuristic: ClassVar[Heuristic | None] = None

    def __init__(self, heuristic: Heuristic | None = _UNSET) -> None:
        self.heuristic = type(self).default_heuristic if heuristic is _UNSET else heuristic

    def validate(self, candidate: str | dict) -> ValidationResult:
        """Validate a candidate (serialized text or raw object payload)."""
        text = self.serialize(candidate)
        if not text.strip():
            return ValidationResult.fail("empty content")
        if self.heuristic is not None and self.heuristic(text):
            return ValidationResult.fail(
                f"output looks like the wrong format for {self.kind.value}",
                misclassified=True,
            )
        return self.check(text)

    @abstractmethod
    def check(self, text: str) -> ValidationResult:
        """Structural validation of serialized *text*."""

    def precheck(self, payload: str | dict) -> bool:
        """Cheap shape test deciding whether a partial may be forwarded live."""
        return bool(self.serialize(payload).strip())

    def serialize(self, payload: str | dict) -> str:
        """Normalize a payload into the stored text encoding."""
        if isinstance(payload, str):
            return payload
        return str(payload)


def describe_validation_error(exc: ValidationError) -> str:
    """First pydantic error as ``loc: message`` (plus a count of the rest)."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "content"
    extra = f" (+{len(errors) - 1} more)" if len(errors) > 1 else ""
    return f"{loc}: {first.get('msg', 'invalid')}{extra}"


class SchemaRegistry:
    """Maps each artifact kind to its ContentSchema."""

    def __init__(self) -> None:
        self._schemas: dict[ArtifactKind, ContentSchema] = {}

    def register(self, schema: ContentSchema) -> None:
        self._schemas[schema.kind] = schema

    def get(self, kind: ArtifactKind | str) -> ContentSchema:
        try:
            return self._schemas[ArtifactKind(kind)]
        except (KeyError, ValueError):
            raise UnknownKindError(str(getattr(kind, "value", kind))) from None

    def kinds(self) -> list[ArtifactKind]:
        return list(self._schemas)

    def validate(self, kind: ArtifactKind | str, candidate: str | dict) -> ValidationResult:
        """Validate *candidate* against the schema registered for *kind*. Pure."""
        return self.get(kind).validate(candidate)

    def set_heuristic(self, kind: ArtifactKind | str, heuristic: Heuristic | None) -> None:
        """Replace (or with None, disable) the misclassification heuristic for *kind*."""
        self.get(kind).heuristic = heuristic
