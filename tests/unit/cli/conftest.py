"""Fixtures for CLI tests: isolated config, a database path and seeding helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from draftsmith.db.connection import Database
from draftsmith.db.models import ArtifactKind
from draftsmith.db.schema import initialize
from draftsmith.db.store import SqliteArtifactStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """No global config, no project config, no DRAFTSMITH_* overrides."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("draftsmith.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    for var in ("DRAFTSMITH_GENERATION_MODEL", "DRAFTSMITH_IMAGE_MODEL", "DRAFTSMITH_DB", "DRAFTSMITH_USER"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    return tmp_path / "artifacts.db"


@pytest.fixture
def seed(db_file: Path):
    """``seed(artifact_id, *contents, kind=..., user=...)`` appends versions to *db_file*."""

    def _seed(artifact_id: str, *contents: str, kind=ArtifactKind.TEXT, user: str = "local", title: str = "Doc"):
        conn = Database(db_file).connect()
        initialize(conn)
        store = SqliteArtifactStore(conn)
        try:
            return [store.append(artifact_id, title, kind, c, user) for c in contents]
        finally:
            store.close()

    return _seed
