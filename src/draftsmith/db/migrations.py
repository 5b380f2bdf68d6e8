"""Forward-only migration runner for the artifact database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# created_at columns hold fixed-width UTC ISO-8601 text with microseconds,
# so lexical order equals chronological order.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS artifact_versions (
    id          TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    title       TEXT NOT NULL,
    kind        TEXT NOT NULL
                CHECK (kind IN ('text', 'code', 'chart', 'sheet', 'slide', 'image')),
    content     TEXT,
    user_id     TEXT NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    PRIMARY KEY (id, created_at)
);

CREATE TABLE IF NOT EXISTS suggestions (
    id                  TEXT PRIMARY KEY,
    document_id         TEXT NOT NULL,
    document_created_at TEXT NOT NULL,
    original_text       TEXT NOT NULL,
    suggested_text      TEXT NOT NULL,
    description         TEXT,
    is_resolved         INTEGER NOT NULL DEFAULT 0,
    user_id             TEXT NOT NULL,
    created_at          TEXT NOT NULL,
    FOREIGN KEY (document_id, document_created_at)
        REFERENCES artifact_versions (id, created_at) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_suggestions_document
    ON suggestions (document_id, document_created_at);

CREATE INDEX IF NOT EXISTS idx_artifact_versions_user
    ON artifact_versions (user_id);
"""

# New schema changes go at the end with the next version number.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def current_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration, 0 for a fresh database."""
    (version,) = conn.execute("SELECT COALESCE(MAX(version), 0) FROM schema_version").fetchone()
    return int(version)


def run_migrations(conn: sqlite3.Connection) -> None:
    """Bring *conn* up to the latest schema; a no-op when already current."""
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    applied = current_version(conn)
    for version, sql in MIGRATIONS:
        if version <= applied:
            continue
        # executescript() commits any open transaction first
        conn.executescript(sql)
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        conn.commit()
