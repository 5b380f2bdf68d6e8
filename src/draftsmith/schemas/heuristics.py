"""Misclassification heuristics: cheap checks for output in the wrong format.

Each heuristic takes the serialized candidate and returns True when the content
looks like something other than what the kind expects. They are hand-tuned
string checks, registered per kind and replaceable.
"""

from __future__ import annotations

import json
from collections.abc import Callable

Heuristic = Callable[[str], bool]


def looks_like_csv(text: str) -> bool:
    """Delimited tabular text: has ``,``/``;`` and a line break but no ``{``/``[``."""
    return (
        ("," in text or ";" in text)
        and ("\n" in text or "\r" in text)
        and "{" not in text
        and "[" not in text
    )


def looks_like_json(text: str) -> bool:
    """Text that opens like a JSON object or array."""
    return text.lstrip().startswith(("{", "["))


def looks_like_code_wrapper(text: str) -> bool:
    """A JSON object wrapping the code (``{"code": ...}``) instead of raw source."""
    if not looks_like_json(text):
        return False
    try:
        parsed = json.loads(text)
    except ValueError:
        return False
    return isinstance(parsed, dict) and "code" in parsed


# Names accepted by the ``heuristics:`` config section.
NAMED_HEURISTICS: dict[str, Heuristic | None] = {
    "csv": looks_like_csv,
    "none": None,
}
