"""Tests for writing suggestions."""

from __future__ import annotations

import json
from unittest.mock import patch

from draftsmith.db.models import ArtifactKind
from draftsmith.generation.suggestions import parse_proposals, request_suggestions

CONTENT = "The cat sat on the mat. It was happy. Dogs bark."


def _reply(*items) -> str:
    return json.dumps(
        {
            "suggestions": [
                {"originalSentence": o, "suggestedSentence": s, "description": d} for o, s, d in items
            ]
        }
    )


def test_parse_keeps_edits_of_sentences_in_content():
    raw = _reply(
        ("It was happy.", "It purred contentedly.", "more vivid"),
        ("Not in the text.", "Something else.", ""),
        ("Dogs bark.", "Dogs bark.", "no change"),
    )
    edits = parse_proposals(raw, CONTENT, limit=5)

    assert [(e.original, e.suggested) for e in edits] == [("It was happy.", "It purred contentedly.")]
    assert edits[0].description == "more vivid"


def test_parse_respects_limit():
    raw = _reply(("The cat sat on the mat.", "A cat sat.", ""), ("It was happy.", "It smiled.", ""))
    assert len(parse_proposals(raw, CONTENT, limit=1)) == 1


def test_parse_accepts_bare_list_and_truncated_reply():
    bare = json.dumps([{"originalSentence": "Dogs bark.", "suggestedSentence": "Dogs howl."}])
    assert len(parse_proposals(bare, CONTENT, limit=5)) == 1

    truncated = _reply(("Dogs bark.", "Dogs howl.", "x"))[:-10]
    # The cut-off item is incomplete and dropped; nothing crashes.
    assert isinstance(parse_proposals(truncated, CONTENT, limit=5), list)


def test_parse_skips_malformed_items_and_garbage():
    raw = json.dumps({"suggestions": [{"originalSentence": "Dogs bark."}, "text", 3]})
    assert parse_proposals(raw, CONTENT, limit=5) == []
    assert parse_proposals("no json here", CONTENT, limit=5) == []


def test_request_suggestions_stores_against_version(memory_store):
    version = memory_store.append("doc-1", "Doc", ArtifactKind.TEXT, CONTENT, "u1")
    reply = _reply(("Dogs bark.", "Dogs howl at night.", "detail"))

    with patch("draftsmith.generation.suggestions.complete", return_value=reply) as mock:
        stored = request_suggestions(memory_store, version, "u1", model="openai/gpt-4o", max_suggestions=3)

    assert len(stored) == 1
    assert stored[0].document_created_at == version.created_at
    assert stored[0].suggested_text == "Dogs howl at night."
    assert memory_store.list_suggestions("doc-1") == stored

    args, kwargs = mock.call_args
    assert args[0] == "openai/gpt-4o"
    assert "at most 3 suggestions" in args[1][0]["content"]
    assert args[1][1]["content"] == CONTENT


def test_request_suggestions_nothing_usable(memory_store, caplog):
    version = memory_store.append("doc-1", "Doc", ArtifactKind.TEXT, CONTENT, "u1")

    with caplog.at_level("INFO", logger="draftsmith.generation.suggestions"):
        with patch("draftsmith.generation.suggestions.complete", return_value="Looks great!"):
            assert request_suggestions(memory_store, version, "u1") == []

    assert memory_store.list_suggestions("doc-1") == []
    assert any("No usable suggestions" in r.getMessage() for r in caplog.records)
