"""Exception taxonomy for the artifact generation pipeline.

Validation and transport failures are recovered by the retry controller within
its single-retry budget; the rest propagate to the caller.
"""

from __future__ import annotations


class DraftsmithError(Exception):
    """Base class for all draftsmith errors."""


class ConfigError(DraftsmithError, ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


class SchemaViolation(DraftsmithError):
    """Candidate content failed the kind's structural schema."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"{kind}: {reason}")
        self.kind = kind
        self.reason = reason


class MisclassifiedOutput(SchemaViolation):
    """Candidate content looks like the wrong format (e.g. CSV for a chart)."""


class TransportError(DraftsmithError):
    """The generator stream ended abnormally or exceeded the wait timeout."""


class SupersededError(DraftsmithError):
    """A newer request for the same artifact cancelled this one."""


class UnknownKindError(DraftsmithError):
    """No handler (or schema) is registered for the requested artifact kind."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"No handler registered for artifact kind '{kind}'")
        self.kind = kind


class PersistenceError(DraftsmithError):
    """A store operation failed; the row set is unchanged."""


class VersionNotFoundError(DraftsmithError):
    """The requested artifact or version does not exist."""
