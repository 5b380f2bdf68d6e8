"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import pytest

from draftsmith.db.connection import Database
from draftsmith.db.models import ArtifactKind
from draftsmith.db.schema import initialize
from draftsmith.db.store import MemoryArtifactStore, SqliteArtifactStore
from draftsmith.generation.events import ContentEvent
from draftsmith.generation.handlers import ArtifactHandler


class FakeClock:
    """Settable clock; each read returns the current value unchanged."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class ScriptedHandler(ArtifactHandler):
    """Handler that replays one scripted stream per call.

    Each script entry is an iterable of ContentEvents, a zero-argument callable
    returning one (for blocking generators), or an exception to raise when the
    attempt starts.
    """

    def __init__(self, kind: ArtifactKind, scripts: Iterable = ()) -> None:
        self.kind = kind
        self.scripts = list(scripts)
        self.calls: list[tuple[str, bool]] = []
        self.preflight_error: Exception | None = None

    def preflight(self) -> None:
        if self.preflight_error is not None:
            raise self.preflight_error

    def on_create(self, title, *, strict=False):
        self.calls.append(("create", strict))
        return self._next()

    def on_update(self, current_content, description, *, strict=False):
        self.calls.append(("update", strict))
        return self._next()

    def metadata(self, content):
        return {"language": "python"} if self.kind is ArtifactKind.CODE else {}

    def _next(self):
        if not self.scripts:
            raise AssertionError("handler called more times than scripted")
        script = self.scripts.pop(0)
        if isinstance(script, Exception):
            raise script
        if callable(script):
            return script()
        return iter(script)


def partials(*payloads, done: bool = True) -> list[ContentEvent]:
    events = [ContentEvent.partial(p) for p in payloads]
    if done:
        events.append(ContentEvent.done())
    return events


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".draftsmith.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sqlite_store(tmp_db, clock):
    return SqliteArtifactStore(tmp_db, clock=clock)


@pytest.fixture
def memory_store(clock):
    return MemoryArtifactStore(clock=clock)


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_db, clock):
    """Both store backends; they must behave identically."""
    if request.param == "sqlite":
        return SqliteArtifactStore(tmp_db, clock=clock)
    return MemoryArtifactStore(clock=clock)


@pytest.fixture
def scripted():
    """Factory: ``scripted(kind, [events_attempt1, events_attempt2, ...])``."""
    return ScriptedHandler


@pytest.fixture
def events():
    """Factory building ``partial* done`` event lists."""
    return partials
