"""Tests for the append-only versioned store (SQLite and in-memory backends)."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from draftsmith.db.models import ArtifactKind
from draftsmith.db.store import SqliteArtifactStore
from draftsmith.errors import PersistenceError


def _append(store, content="hello", id="doc-1", user="u1", **kwargs):
    return store.append(id, "Doc", ArtifactKind.TEXT, content, user, **kwargs)


# ------------------------------------------------------------------
# Append-only versioning
# ------------------------------------------------------------------

def test_append_creates_new_version_each_time(store):
    _append(store, "v1")
    _append(store, "v2")

    versions = store.list_versions("doc-1")
    assert [v.content for v in versions] == ["v1", "v2"]
    assert store.latest_version("doc-1").content == "v2"


def test_append_returns_stored_version(store, clock):
    version = _append(store, "x", metadata={"language": "python"})

    assert version.created_at == clock.now
    assert store.get_version("doc-1", version.created_at) == version
    assert version.metadata_dict == {"language": "python"}


def test_identical_content_still_appends(store):
    _append(store, "same")
    _append(store, "same")
    assert len(store.list_versions("doc-1")) == 2


def test_created_at_strictly_increasing_when_clock_stalls(store, clock):
    # The fake clock never moves unless advanced.
    stamps = [_append(store, f"v{i}").created_at for i in range(5)]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 5


def test_created_at_strictly_increasing_when_clock_goes_backwards(store, clock):
    first = _append(store, "v1").created_at
    clock.now = clock.now - timedelta(hours=1)
    second = _append(store, "v2").created_at

    assert second > first
    assert store.latest_version("doc-1").content == "v2"


def test_timestamps_are_per_id(store, clock):
    a = _append(store, "a", id="a").created_at
    b = _append(store, "b", id="b").created_at
    # Different ids may share a timestamp.
    assert a == b == clock.now


def test_concurrent_appends_same_id_all_kept_and_ordered(store):
    def worker(n):
        for i in range(10):
            _append(store, f"{n}-{i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    versions = store.list_versions("doc-1")
    assert len(versions) == 40
    stamps = [v.created_at for v in versions]
    assert len(set(stamps)) == 40


# ------------------------------------------------------------------
# Truncation (fork-forward)
# ------------------------------------------------------------------

def test_delete_versions_after(store, clock):
    v1 = _append(store, "v1")
    clock.advance()
    _append(store, "v2")
    clock.advance()
    _append(store, "v3")

    assert store.delete_versions_after("doc-1", v1.created_at) == 2
    assert [v.content for v in store.list_versions("doc-1")] == ["v1"]


def test_append_with_truncate_forks_history(store, clock):
    v1 = _append(store, "v1")
    clock.advance()
    _append(store, "v2")
    clock.advance()
    _append(store, "v3")
    clock.advance()

    fork = _append(store, "v1-edited", truncate_after=v1.created_at)

    contents = [v.content for v in store.list_versions("doc-1")]
    assert contents == ["v1", "v1-edited"]
    assert fork.created_at > v1.created_at


def test_truncate_cascades_to_suggestions(store, clock):
    v1 = _append(store, "The cat sat.")
    clock.advance()
    v2 = _append(store, "The dog sat.")
    store.add_suggestions(v1, [("The cat sat.", "The cat sat down.", "")], "u1")
    store.add_suggestions(v2, [("The dog sat.", "The dog lay down.", "")], "u1")

    store.delete_versions_after("doc-1", v1.created_at)

    remaining = store.list_suggestions("doc-1")
    assert [s.document_created_at for s in remaining] == [v1.created_at]


# ------------------------------------------------------------------
# Listing and suggestions
# ------------------------------------------------------------------

def test_list_artifacts_scoped_to_user(store, clock):
    _append(store, "a", id="a", user="alice")
    clock.advance()
    _append(store, "b", id="b", user="bob")

    assert [v.id for v in store.list_artifacts("alice")] == ["a"]
    assert [v.id for v in store.list_artifacts()] == ["b", "a"]


def test_add_list_and_resolve_suggestions(store):
    v = _append(store, "One. Two.")
    stored = store.add_suggestions(v, [("One.", "First.", "ordinal"), ("Two.", "Second.", "")], "u1")

    assert len(stored) == 2
    assert {s.document_created_at for s in stored} == {v.created_at}
    assert store.resolve_suggestion(stored[0].id) is True
    resolved = {s.id: s.is_resolved for s in store.list_suggestions("doc-1", v.created_at)}
    assert resolved == {stored[0].id: True, stored[1].id: False}


def test_add_no_suggestions_is_noop(store):
    v = _append(store)
    assert store.add_suggestions(v, [], "u1") == []
    assert store.list_suggestions("doc-1") == []


def test_persistence_api_aliases(store):
    key = store.save_version("doc-1", "Doc", "text", "hello", "u1")

    assert key[0] == "doc-1"
    assert store.get_latest_version("doc-1").created_at == key[1]
    assert [v.content for v in store.get_versions("doc-1")] == ["hello"]


def test_unknown_kind_rejected_before_write(store):
    with pytest.raises(ValueError):
        store.append("doc-1", "Doc", "video", "x", "u1")
    assert store.list_versions("doc-1") == []


# ------------------------------------------------------------------
# Failure handling
# ------------------------------------------------------------------

def test_sqlite_failure_raises_persistence_error(tmp_db, clock):
    store = SqliteArtifactStore(tmp_db, clock=clock)
    _append(store, "v1")
    tmp_db.execute("DROP TABLE suggestions")
    tmp_db.execute("DROP TABLE artifact_versions")

    with pytest.raises(PersistenceError, match="doc-1"):
        _append(store, "v2")


def test_failed_fork_leaves_history_unchanged(tmp_db, clock):
    store = SqliteArtifactStore(tmp_db, clock=clock)
    v1 = _append(store, "v1")
    clock.advance()
    _append(store, "v2")
    tmp_db.execute(
        "CREATE TRIGGER block_insert BEFORE INSERT ON artifact_versions "
        "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
    )

    with pytest.raises(PersistenceError, match="disk full"):
        _append(store, "fork", truncate_after=v1.created_at)
    assert [v.content for v in store.list_versions("doc-1")] == ["v1", "v2"]
