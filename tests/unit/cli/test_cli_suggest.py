"""Tests for draftsmith suggest / suggestions commands."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from draftsmith.cli.main import app
from draftsmith.db.connection import Database
from draftsmith.db.models import ArtifactKind
from draftsmith.db.store import SqliteArtifactStore

runner = CliRunner()

TEXT = "The motor runs hot. It needs a fan."


@pytest.fixture(autouse=True)
def _api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


def _reply(original: str, suggested: str) -> str:
    return json.dumps(
        {"suggestions": [{"originalSentence": original, "suggestedSentence": suggested, "description": "clarity"}]}
    )


def _suggestions(db_file, artifact_id):
    store = SqliteArtifactStore(Database(db_file).connect())
    try:
        return store.list_suggestions(artifact_id)
    finally:
        store.close()


def test_suggest_stores_suggestions(db_file, seed):
    seed("doc-1", TEXT)
    with patch("draftsmith.generation.suggestions.complete", return_value=_reply("It needs a fan.", "It needs active cooling.")):
        result = runner.invoke(app, ["suggest", "doc-1", "--db", str(db_file)])

    assert result.exit_code == 0, result.output
    assert "Stored 1 suggestion(s)" in result.output
    (stored,) = _suggestions(db_file, "doc-1")
    assert stored.suggested_text == "It needs active cooling."


def test_suggest_nothing_usable(db_file, seed):
    seed("doc-1", TEXT)
    with patch("draftsmith.generation.suggestions.complete", return_value="All good."):
        result = runner.invoke(app, ["suggest", "doc-1", "--db", str(db_file)])

    assert result.exit_code == 0
    assert "no usable suggestions" in result.output
    assert _suggestions(db_file, "doc-1") == []


def test_suggest_only_for_text(db_file, seed):
    seed("ch-1", '{"type": "bar"}', kind=ArtifactKind.CHART)
    result = runner.invoke(app, ["suggest", "ch-1", "--db", str(db_file)])

    assert result.exit_code == 1
    assert "only available for text" in result.output


def test_suggest_without_api_key(db_file, seed, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")
    seed("doc-1", TEXT)
    result = runner.invoke(app, ["suggest", "doc-1", "--db", str(db_file)])

    assert result.exit_code == 1
    assert "No API key" in result.output


def test_suggest_provider_failure(db_file, seed):
    seed("doc-1", TEXT)
    with patch("draftsmith.generation.suggestions.complete", side_effect=RuntimeError("rate limited")):
        result = runner.invoke(app, ["suggest", "doc-1", "--db", str(db_file)])

    assert result.exit_code == 1
    assert "rate limited" in result.output


def test_suggestions_list_and_resolve(db_file, seed):
    seed("doc-1", TEXT)
    with patch("draftsmith.generation.suggestions.complete", return_value=_reply("The motor runs hot.", "The motor overheats.")):
        runner.invoke(app, ["suggest", "doc-1", "--db", str(db_file)])
    (stored,) = _suggestions(db_file, "doc-1")

    listed = runner.invoke(app, ["suggestions", "list", "doc-1", "--db", str(db_file)])
    assert listed.exit_code == 0, listed.output
    assert "overheats" in listed.output

    resolved = runner.invoke(app, ["suggestions", "resolve", stored.id, "--db", str(db_file)])
    assert resolved.exit_code == 0, resolved.output
    assert "Resolved suggestion" in resolved.output

    open_only = runner.invoke(app, ["suggestions", "list", "doc-1", "--db", str(db_file)])
    assert "No suggestions found" in open_only.output

    everything = runner.invoke(app, ["suggestions", "list", "doc-1", "--all", "--db", str(db_file)])
    assert "resolved" in everything.output


def test_suggestions_resolve_unknown(db_file, seed):
    seed("doc-1", TEXT)
    result = runner.invoke(app, ["suggestions", "resolve", "nope", "--db", str(db_file)])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_suggestions_follow_truncation(db_file, seed):
    _, v2 = seed("doc-1", TEXT, TEXT + " Done.")
    store = SqliteArtifactStore(Database(db_file).connect())
    try:
        store.add_suggestions(v2, [("Done.", "Finished.", "")], "local")
    finally:
        store.close()

    runner.invoke(app, ["truncate", "doc-1", "-a", "1", "--yes", "--db", str(db_file)])

    assert _suggestions(db_file, "doc-1") == []
