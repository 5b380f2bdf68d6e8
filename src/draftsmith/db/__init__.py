"""Draftsmith persistence layer."""

from draftsmith.db.connection import Database
from draftsmith.db.migrations import MIGRATIONS, run_migrations
from draftsmith.db.schema import initialize
from draftsmith.db.store import ArtifactStore, MemoryArtifactStore, SqliteArtifactStore

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "ArtifactStore",
    "MemoryArtifactStore",
    "SqliteArtifactStore",
]
