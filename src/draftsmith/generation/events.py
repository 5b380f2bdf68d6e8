"""Stream events produced by handlers and deltas forwarded to consumers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventType(str, Enum):
    PARTIAL = "partial"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ContentEvent:
    """One event from a generator stream.

    ``payload`` is a text fragment, a cumulative text/object snapshot, or (for
    ``error``) a message.
    """

    type: EventType
    payload: str | dict = ""

    @classmethod
    def partial(cls, payload: str | dict) -> ContentEvent:
        return cls(EventType.PARTIAL, payload)

    @classmethod
    def done(cls, payload: str | dict = "") -> ContentEvent:
        return cls(EventType.DONE, payload)

    @classmethod
    def error(cls, message: str) -> ContentEvent:
        return cls(EventType.ERROR, message)


@dataclass(frozen=True)
class Delta:
    """A live, not-yet-authoritative update sent to the consuming side.

    Attributes:
        type: Kind-specific tag, e.g. ``chart-delta``.
        content: Full candidate content after this partial.
        fragment: The partial as received, serialized.
        attempt: 1 for the primary attempt, 2 for the retry.
        request_id: Save request that produced it.
    """

    type: str
    content: str
    fragment: str
    attempt: int
    request_id: str
