"""Tests for the Repository pattern over artifact versions and suggestions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from draftsmith.db.models import ArtifactKind, ArtifactVersion, Suggestion
from draftsmith.db.repository import Repository

T0 = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


def _version(id="doc-1", offset=0, content="hello", user="u1", kind=ArtifactKind.TEXT, title="Doc"):
    return ArtifactVersion(
        id=id,
        created_at=T0 + timedelta(seconds=offset),
        title=title,
        kind=kind,
        content=content,
        user_id=user,
    )


def _suggestion(version: ArtifactVersion, sid="s-1", original="hello", suggested="hi"):
    return Suggestion(
        id=sid,
        document_id=version.id,
        document_created_at=version.created_at,
        original_text=original,
        suggested_text=suggested,
        user_id=version.user_id,
        description="shorter",
        created_at=version.created_at,
    )


# ------------------------------------------------------------------
# Versions
# ------------------------------------------------------------------

def test_insert_and_list_versions_ascending(repo):
    repo.insert_version(_version(offset=2, content="v2"))
    repo.insert_version(_version(offset=1, content="v1"))

    versions = repo.list_versions("doc-1")
    assert [v.content for v in versions] == ["v1", "v2"]


def test_timestamps_round_trip_with_microseconds(repo):
    ts = T0 + timedelta(microseconds=7)
    repo.insert_version(ArtifactVersion("doc-1", ts, "t", ArtifactKind.TEXT, "x", "u1"))

    got = repo.get_version("doc-1", ts)
    assert got is not None
    assert got.created_at == ts
    assert got.created_at.tzinfo is not None


def test_latest_version(repo):
    repo.insert_version(_version(offset=0, content="old"))
    repo.insert_version(_version(offset=5, content="new"))

    assert repo.latest_version("doc-1").content == "new"
    assert repo.max_created_at("doc-1") == T0 + timedelta(seconds=5)


def test_latest_version_missing(repo):
    assert repo.latest_version("nope") is None
    assert repo.max_created_at("nope") is None


def test_metadata_stored(repo):
    v = ArtifactVersion("c", T0, "Code", ArtifactKind.CODE, "print(1)", "u1", '{"language": "python"}')
    repo.insert_version(v)
    assert repo.latest_version("c").metadata_dict == {"language": "python"}


def test_list_artifacts_latest_per_id_newest_first(repo):
    repo.insert_version(_version(id="a", offset=0, content="a1"))
    repo.insert_version(_version(id="a", offset=3, content="a2"))
    repo.insert_version(_version(id="b", offset=1, content="b1", user="u2"))

    latest = repo.list_artifacts()
    assert [(v.id, v.content) for v in latest] == [("a", "a2"), ("b", "b1")]
    assert [v.id for v in repo.list_artifacts("u2")] == ["b"]


def test_delete_versions_after(repo):
    for i in range(4):
        repo.insert_version(_version(offset=i, content=f"v{i}"))

    deleted = repo.delete_versions_after("doc-1", T0 + timedelta(seconds=1))
    assert deleted == 2
    assert [v.content for v in repo.list_versions("doc-1")] == ["v0", "v1"]


def test_delete_versions_after_other_ids_untouched(repo):
    repo.insert_version(_version(id="a", offset=5))
    repo.insert_version(_version(id="b", offset=5))

    repo.delete_versions_after("a", T0)
    assert repo.list_versions("a") == []
    assert len(repo.list_versions("b")) == 1


def test_insert_with_truncate_is_one_step(repo):
    for i in range(3):
        repo.insert_version(_version(offset=i, content=f"v{i}"))

    repo.insert_version(_version(offset=10, content="fork"), truncate_after=T0)
    assert [v.content for v in repo.list_versions("doc-1")] == ["v0", "fork"]


def test_failed_insert_rolls_back_truncation(repo):
    for i in range(3):
        repo.insert_version(_version(offset=i, content=f"v{i}"))

    # Duplicate key makes the insert fail after the truncation ran.
    with pytest.raises(Exception):
        repo.insert_version(_version(offset=0, content="dup"), truncate_after=T0)
    assert [v.content for v in repo.list_versions("doc-1")] == ["v0", "v1", "v2"]


# ------------------------------------------------------------------
# Suggestions
# ------------------------------------------------------------------

def test_add_and_list_suggestions(repo):
    v = _version()
    repo.insert_version(v)
    repo.add_suggestions([_suggestion(v)])

    found = repo.list_suggestions("doc-1")
    assert len(found) == 1
    assert found[0].suggested_text == "hi"
    assert found[0].document_created_at == v.created_at
    assert found[0].is_resolved is False


def test_list_suggestions_by_version(repo):
    v1, v2 = _version(offset=0), _version(offset=1)
    repo.insert_version(v1)
    repo.insert_version(v2)
    repo.add_suggestions([_suggestion(v1, "s-1"), _suggestion(v2, "s-2")])

    assert [s.id for s in repo.list_suggestions("doc-1", v2.created_at)] == ["s-2"]


def test_resolve_suggestion(repo):
    v = _version()
    repo.insert_version(v)
    repo.add_suggestions([_suggestion(v)])

    assert repo.resolve_suggestion("s-1") is True
    assert repo.list_suggestions("doc-1")[0].is_resolved is True
    assert repo.resolve_suggestion("missing") is False


def test_truncation_removes_suggestions_of_deleted_versions(repo):
    v1, v2 = _version(offset=0), _version(offset=1)
    repo.insert_version(v1)
    repo.insert_version(v2)
    repo.add_suggestions([_suggestion(v1, "keep"), _suggestion(v2, "drop")])

    repo.delete_versions_after("doc-1", v1.created_at)
    assert [s.id for s in repo.list_suggestions("doc-1")] == ["keep"]
