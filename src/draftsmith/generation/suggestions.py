"""Writing suggestions: model-proposed sentence edits for a saved version.

Suggestions target one exact version ``(id, created_at)``; they are removed with
that version when the history is truncated.
"""

from __future__ import annotations

import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from draftsmith.db.models import ArtifactVersion, Suggestion
from draftsmith.db.store import ArtifactStore
from draftsmith.llm.client import complete
from draftsmith.llm.partial_json import parse_partial

logger = logging.getLogger(__name__)

_SUGGESTION_PROMPT = """\
You are a help writing assistant. Given a piece of writing, offer suggestions to \
improve it. Each suggestion must replace one whole sentence that appears verbatim \
in the writing. Return at most {max_suggestions} suggestions as a JSON object:

{{"suggestions": [{{"originalSentence": "...", "suggestedSentence": "...", "description": "..."}}]}}
"""

_DEFAULT_MODEL = "openai/gpt-4o-mini"


class ProposedEdit(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    original: str = Field(alias="originalSentence", min_length=1)
    suggested: str = Field(alias="suggestedSentence", min_length=1)
    description: str = ""


def parse_proposals(raw: str, content: str, limit: int) -> list[ProposedEdit]:
    """Parse the model reply into at most *limit* usable edits.

    Items that fail validation, leave the sentence unchanged, or quote text not
    present in *content* are dropped.
    """
    parsed = parse_partial(raw)
    if isinstance(parsed, dict):
        items = parsed.get("suggestions", [])
    elif isinstance(parsed, list):
        items = parsed
    else:
        return []

    edits: list[ProposedEdit] = []
    for item in items if isinstance(items, list) else []:
        try:
            edit = ProposedEdit.model_validate(item)
        except ValidationError:
            continue
        if edit.original == edit.suggested or edit.original not in content:
            continue
        edits.append(edit)
        if len(edits) >= limit:
            break
    return edits


def request_suggestions(
    store: ArtifactStore,
    version: ArtifactVersion,
    user_id: str,
    *,
    model: str = _DEFAULT_MODEL,
    max_suggestions: int = 5,
    num_retries: int = 3,
) -> list[Suggestion]:
    """Ask *model* for edits to *version* and store them against it.

    Returns:
        The stored suggestions (possibly empty).

    Raises:
        PersistenceError: If the suggestions could not be written.
    """
    raw = complete(
        model,
        [
            {"role": "system", "content": _SUGGESTION_PROMPT.format(max_suggestions=max_suggestions)},
            {"role": "user", "content": version.content},
        ],
        temperature=0.0,
        num_retries=num_retries,
    )
    edits = parse_proposals(raw, version.content, max_suggestions)
    if not edits:
        logger.info("No usable suggestions for %s (reply: %s)", version.id, json.dumps(raw[:200]))
        return []
    return store.add_suggestions(
        version,
        [(e.original, e.suggested, e.description) for e in edits],
        user_id,
    )
