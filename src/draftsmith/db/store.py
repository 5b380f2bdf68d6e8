"""Append-only, versioned artifact store.

A save always inserts a new version keyed by (id, created_at); nothing is ever
updated in place. Writes for the same artifact id are serialized; distinct ids
proceed concurrently. ``created_at`` is strictly increasing per id even when
the clock stalls or steps backwards.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from draftsmith.db.models import ArtifactKind, ArtifactVersion, Suggestion, to_utc
from draftsmith.db.repository import Repository
from draftsmith.errors import PersistenceError

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactStore(ABC):
    """Versioned storage contract shared by the SQLite and in-memory backends.

    Subclasses implement the row-level primitives; the public operations here
    own timestamp assignment and per-id write serialization.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._id_locks: dict[str, threading.RLock] = {}
        self._id_locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(
        self,
        artifact_id: str,
        title: str,
        kind: ArtifactKind | str,
        content: str,
        user_id: str,
        *,
        metadata: dict | None = None,
        truncate_after: datetime | None = None,
    ) -> ArtifactVersion:
        """Insert a new version of *artifact_id* and return it.

        Args:
            artifact_id: Stable artifact id (new ids start a new artifact).
            title: Title at time of save.
            kind: Artifact kind.
            content: Serialized, already-validated content.
            user_id: Owning user.
            metadata: Kind-specific extras (e.g. ``{"language": "python"}``).
            truncate_after: When editing from a non-latest version, delete every
                version newer than this timestamp in the same transaction.

        Raises:
            PersistenceError: If the write fails; no rows are changed.
        """
        kind = ArtifactKind(kind)
        with self.lock_for(artifact_id):
            try:
                version = ArtifactVersion(
                    id=artifact_id,
                    created_at=self._next_timestamp(self._max_created_at(artifact_id)),
                    title=title,
                    kind=kind,
                    content=content,
                    user_id=user_id,
                    metadata=json.dumps(metadata or {}),
                )
                self._insert(version, truncate_after)
            except (sqlite3.Error, OSError) as exc:
                raise PersistenceError(
                    f"Failed to save version of '{artifact_id}': {exc}"
                ) from exc

        if truncate_after is not None:
            logger.info("Forked %s after %s", artifact_id, truncate_after.isoformat())
        logger.info("Saved %s version of %s at %s", version.kind.value, artifact_id, version.created_at.isoformat())
        return version

    def delete_versions_after(self, artifact_id: str, timestamp: datetime) -> int:
        """Delete every version of *artifact_id* newer than *timestamp*.

        Suggestions targeting deleted versions go with them.

        Returns:
            Number of versions deleted.
        """
        with self.lock_for(artifact_id):
            try:
                deleted = self._delete_after(artifact_id, to_utc(timestamp))
            except sqlite3.Error as exc:
                raise PersistenceError(
                    f"Failed to delete versions of '{artifact_id}': {exc}"
                ) from exc
        if deleted:
            logger.info("Deleted %d version(s) of %s after %s", deleted, artifact_id, timestamp.isoformat())
        return deleted

    def add_suggestions(
        self,
        version: ArtifactVersion,
        proposals: Iterable[tuple[str, str, str]],
        user_id: str,
    ) -> list[Suggestion]:
        """Store (original, suggested, description) proposals against *version*."""
        suggestions = [
            Suggestion(
                id=str(uuid.uuid4()),
                document_id=version.id,
                document_created_at=version.created_at,
                original_text=original,
                suggested_text=suggested,
                description=description,
                user_id=user_id,
                created_at=to_utc(self._clock()),
            )
            for original, suggested, description in proposals
        ]
        if suggestions:
            with self.lock_for(version.id):
                try:
                    self._insert_suggestions(suggestions)
                except sqlite3.Error as exc:
                    raise PersistenceError(
                        f"Failed to save suggestions for '{version.id}': {exc}"
                    ) from exc
        return suggestions

    # Persistence API names used by request-handling layers.

    def save_version(
        self, artifact_id: str, title: str, kind: ArtifactKind | str, content: str, user_id: str
    ) -> tuple[str, datetime]:
        return self.append(artifact_id, title, kind, content, user_id).key

    def get_versions(self, artifact_id: str) -> list[ArtifactVersion]:
        return self.list_versions(artifact_id)

    def get_latest_version(self, artifact_id: str) -> ArtifactVersion | None:
        return self.latest_version(artifact_id)

    def lock_for(self, artifact_id: str) -> threading.RLock:
        """Return the write lock for *artifact_id*."""
        with self._id_locks_guard:
            lock = self._id_locks.get(artifact_id)
            if lock is None:
                lock = self._id_locks[artifact_id] = threading.RLock()
            return lock

    def _next_timestamp(self, floor: datetime | None) -> datetime:
        now = to_utc(self._clock())
        if floor is not None and now <= floor:
            now = floor + _TICK
        return now

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def list_versions(self, artifact_id: str) -> list[ArtifactVersion]:
        """Return all versions of *artifact_id* ordered by created_at ascending."""

    @abstractmethod
    def latest_version(self, artifact_id: str) -> ArtifactVersion | None:
        """Return the current version of *artifact_id*, or None."""

    @abstractmethod
    def get_version(self, artifact_id: str, created_at: datetime) -> ArtifactVersion | None:
        """Return the exact version keyed by (*artifact_id*, *created_at*), or None."""

    @abstractmethod
    def list_artifacts(self, user_id: str | None = None) -> list[ArtifactVersion]:
        """Return the current version of every artifact, newest first."""

    @abstractmethod
    def list_suggestions(
        self, document_id: str, document_created_at: datetime | None = None
    ) -> list[Suggestion]:
        """Return suggestions for an artifact, optionally for one version only."""

    @abstractmethod
    def resolve_suggestion(self, suggestion_id: str) -> bool:
        """Mark a suggestion resolved; False if unknown."""

    @abstractmethod
    def _max_created_at(self, artifact_id: str) -> datetime | None: ...

    @abstractmethod
    def _insert(self, version: ArtifactVersion, truncate_after: datetime | None) -> None: ...

    @abstractmethod
    def _delete_after(self, artifact_id: str, timestamp: datetime) -> int: ...

    @abstractmethod
    def _insert_suggestions(self, suggestions: list[Suggestion]) -> None: ...


class SqliteArtifactStore(ArtifactStore):
    """Store backed by the project SQLite database.

    One connection is shared by all threads, so every statement runs under a
    connection-wide lock.
    """

    def __init__(
        self, conn: sqlite3.Connection, clock: Callable[[], datetime] | None = None
    ) -> None:
        super().__init__(clock)
        self._conn = conn
        self._repo = Repository(conn)
        self._conn_lock = threading.RLock()

    def close(self) -> None:
        with self._conn_lock:
            self._conn.close()

    def list_versions(self, artifact_id: str) -> list[ArtifactVersion]:
        with self._conn_lock:
            return self._repo.list_versions(artifact_id)

    def latest_version(self, artifact_id: str) -> ArtifactVersion | None:
        with self._conn_lock:
            return self._repo.latest_version(artifact_id)

    def get_version(self, artifact_id: str, created_at: datetime) -> ArtifactVersion | None:
        with self._conn_lock:
            return self._repo.get_version(artifact_id, created_at)

    def list_artifacts(self, user_id: str | None = None) -> list[ArtifactVersion]:
        with self._conn_lock:
            return self._repo.list_artifacts(user_id)

    def list_suggestions(
        self, document_id: str, document_created_at: datetime | None = None
    ) -> list[Suggestion]:
        with self._conn_lock:
            return self._repo.list_suggestions(document_id, document_created_at)

    def resolve_suggestion(self, suggestion_id: str) -> bool:
        with self._conn_lock:
            return self._repo.resolve_suggestion(suggestion_id)

    def _max_created_at(self, artifact_id: str) -> datetime | None:
        with self._conn_lock:
            return self._repo.max_created_at(artifact_id)

    def _insert(self, version: ArtifactVersion, truncate_after: datetime | None) -> None:
        with self._conn_lock:
            self._repo.insert_version(version, truncate_after)

    def _delete_after(self, artifact_id: str, timestamp: datetime) -> int:
        with self._conn_lock:
            return self._repo.delete_versions_after(artifact_id, timestamp)

    def _insert_suggestions(self, suggestions: list[Suggestion]) -> None:
        with self._conn_lock:
            self._repo.add_suggestions(suggestions)


class MemoryArtifactStore(ArtifactStore):
    """Process-local store with the same semantics as the SQLite backend."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        super().__init__(clock)
        self._versions: dict[str, list[ArtifactVersion]] = {}
        self._suggestions: dict[str, Suggestion] = {}
        self._guard = threading.RLock()

    def list_versions(self, artifact_id: str) -> list[ArtifactVersion]:
        with self._guard:
            return list(self._versions.get(artifact_id, []))

    def latest_version(self, artifact_id: str) -> ArtifactVersion | None:
        with self._guard:
            versions = self._versions.get(artifact_id)
            return versions[-1] if versions else None

    def get_version(self, artifact_id: str, created_at: datetime) -> ArtifactVersion | None:
        created_at = to_utc(created_at)
        with self._guard:
            for v in self._versions.get(artifact_id, []):
                if v.created_at == created_at:
                    return v
        return None

    def list_artifacts(self, user_id: str | None = None) -> list[ArtifactVersion]:
        with self._guard:
            latest = [vs[-1] for vs in self._versions.values() if vs]
        if user_id is not None:
            latest = [v for v in latest if v.user_id == user_id]
        return sorted(latest, key=lambda v: v.created_at, reverse=True)

    def list_suggestions(
        self, document_id: str, document_created_at: datetime | None = None
    ) -> list[Suggestion]:
        with self._guard:
            found = [s for s in self._suggestions.values() if s.document_id == document_id]
        if document_created_at is not None:
            target = to_utc(document_created_at)
            found = [s for s in found if s.document_created_at == target]
        return sorted(found, key=lambda s: s.created_at or datetime.min.replace(tzinfo=timezone.utc))

    def resolve_suggestion(self, suggestion_id: str) -> bool:
        with self._guard:
            s = self._suggestions.get(suggestion_id)
            if s is None:
                return False
            self._suggestions[suggestion_id] = replace(s, is_resolved=True)
            return True

    def _max_created_at(self, artifact_id: str) -> datetime | None:
        latest = self.latest_version(artifact_id)
        return latest.created_at if latest else None

    def _insert(self, version: ArtifactVersion, truncate_after: datetime | None) -> None:
        with self._guard:
            if truncate_after is not None:
                self._delete_after(version.id, to_utc(truncate_after))
            self._versions.setdefault(version.id, []).append(version)

    def _delete_after(self, artifact_id: str, timestamp: datetime) -> int:
        with self._guard:
            versions = self._versions.get(artifact_id, [])
            kept = [v for v in versions if v.created_at <= timestamp]
            self._versions[artifact_id] = kept
            for sid, s in list(self._suggestions.items()):
                if s.document_id == artifact_id and s.document_created_at > timestamp:
                    del self._suggestions[sid]
            return len(versions) - len(kept)

    def _insert_suggestions(self, suggestions: list[Suggestion]) -> None:
        with self._guard:
            for s in suggestions:
                self._suggestions[s.id] = s
