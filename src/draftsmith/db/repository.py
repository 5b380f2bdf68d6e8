"""Repository pattern for artifact version and suggestion rows.

Every public write runs in a single transaction: either the row set changes
or it does not.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime

from draftsmith.db.models import (
    ArtifactKind,
    ArtifactVersion,
    Suggestion,
    format_ts,
    parse_ts,
)

_VERSION_COLUMNS = "id, created_at, title, kind, content, user_id, metadata"
_SUGGESTION_COLUMNS = (
    "id, document_id, document_created_at, original_text, suggested_text, "
    "description, is_resolved, user_id, created_at"
)


class Repository:
    """Data access layer for artifact versions and suggestions.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see draftsmith.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def insert_version(
        self, version: ArtifactVersion, truncate_after: datetime | None = None
    ) -> None:
        """Insert *version*; optionally drop versions newer than *truncate_after* first.

        Both steps share one transaction.
        """
        with self._conn:
            if truncate_after is not None:
                self._delete_after(version.id, truncate_after)
            self._conn.execute(
                f"INSERT INTO artifact_versions ({_VERSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    version.id,
                    format_ts(version.created_at),
                    version.title,
                    version.kind.value,
                    version.content,
                    version.user_id,
                    version.metadata,
                ),
            )

    def max_created_at(self, artifact_id: str) -> datetime | None:
        """Return the newest created_at for *artifact_id*, or None if it has no versions."""
        row = self._conn.execute(
            "SELECT MAX(created_at) FROM artifact_versions WHERE id = ?", (artifact_id,)
        ).fetchone()
        return parse_ts(row[0]) if row[0] is not None else None

    def list_versions(self, artifact_id: str) -> list[ArtifactVersion]:
        """Return every version of *artifact_id*, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_VERSION_COLUMNS} FROM artifact_versions WHERE id = ? ORDER BY created_at",
            (artifact_id,),
        ).fetchall()
        return [_row_to_version(r) for r in rows]

    def latest_version(self, artifact_id: str) -> ArtifactVersion | None:
        row = self._conn.execute(
            f"SELECT {_VERSION_COLUMNS} FROM artifact_versions WHERE id = ? "
            "ORDER BY created_at DESC LIMIT 1",
            (artifact_id,),
        ).fetchone()
        return _row_to_version(row) if row else None

    def get_version(self, artifact_id: str, created_at: datetime) -> ArtifactVersion | None:
        row = self._conn.execute(
            f"SELECT {_VERSION_COLUMNS} FROM artifact_versions WHERE id = ? AND created_at = ?",
            (artifact_id, format_ts(created_at)),
        ).fetchone()
        return _row_to_version(row) if row else None

    def list_artifacts(self, user_id: str | None = None) -> list[ArtifactVersion]:
        """Return the current (latest) version of every artifact, newest first.

        Args:
            user_id: Restrict to artifacts owned by this user.
        """
        sql = (
            f"SELECT {_VERSION_COLUMNS} FROM artifact_versions v "
            "WHERE created_at = (SELECT MAX(created_at) FROM artifact_versions WHERE id = v.id)"
        )
        params: tuple = ()
        if user_id is not None:
            sql += " AND user_id = ?"
            params = (user_id,)
        sql += " ORDER BY created_at DESC"
        return [_row_to_version(r) for r in self._conn.execute(sql, params).fetchall()]

    def delete_versions_after(self, artifact_id: str, timestamp: datetime) -> int:
        """Delete versions (and their suggestions) with created_at > *timestamp*.

        Returns the number of version rows deleted.
        """
        with self._conn:
            return self._delete_after(artifact_id, timestamp)

    def _delete_after(self, artifact_id: str, timestamp: datetime) -> int:
        ts = format_ts(timestamp)
        self._conn.execute(
            "DELETE FROM suggestions WHERE document_id = ? AND document_created_at > ?",
            (artifact_id, ts),
        )
        cur = self._conn.execute(
            "DELETE FROM artifact_versions WHERE id = ? AND created_at > ?",
            (artifact_id, ts),
        )
        return cur.rowcount

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def add_suggestions(self, suggestions: list[Suggestion]) -> None:
        """Insert all *suggestions* in one transaction."""
        with self._conn:
            self._conn.executemany(
                f"INSERT INTO suggestions ({_SUGGESTION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        s.id,
                        s.document_id,
                        format_ts(s.document_created_at),
                        s.original_text,
                        s.suggested_text,
                        s.description,
                        int(s.is_resolved),
                        s.user_id,
                        format_ts(s.created_at) if s.created_at else None,
                    )
                    for s in suggestions
                ],
            )

    def list_suggestions(
        self, document_id: str, document_created_at: datetime | None = None
    ) -> list[Suggestion]:
        sql = f"SELECT {_SUGGESTION_COLUMNS} FROM suggestions WHERE document_id = ?"
        params: list = [document_id]
        if document_created_at is not None:
            sql += " AND document_created_at = ?"
            params.append(format_ts(document_created_at))
        sql += " ORDER BY created_at"
        return [_row_to_suggestion(r) for r in self._conn.execute(sql, params).fetchall()]

    def resolve_suggestion(self, suggestion_id: str) -> bool:
        """Mark a suggestion resolved. Returns False if it does not exist."""
        with self._conn:
            cur = self._conn.execute(
                "UPDATE suggestions SET is_resolved = 1 WHERE id = ?", (suggestion_id,)
            )
        return cur.rowcount > 0


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_version(row: sqlite3.Row) -> ArtifactVersion:
    return ArtifactVersion(
        id=row["id"],
        created_at=parse_ts(row["created_at"]),
        title=row["title"],
        kind=ArtifactKind(row["kind"]),
        content=row["content"] or "",
        user_id=row["user_id"],
        metadata=row["metadata"],
    )


def _row_to_suggestion(row: sqlite3.Row) -> Suggestion:
    return Suggestion(
        id=row["id"],
        document_id=row["document_id"],
        document_created_at=parse_ts(row["document_created_at"]),
        original_text=row["original_text"],
        suggested_text=row["suggested_text"],
        description=row["description"] or "",
        is_resolved=bool(row["is_resolved"]),
        user_id=row["user_id"],
        created_at=parse_ts(row["created_at"]) if row["created_at"] else None,
    )
