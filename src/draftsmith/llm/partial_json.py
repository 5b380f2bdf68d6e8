"""Best-effort parsing of JSON text that is still being streamed.

``parse_partial()`` closes any open string, object or array in a truncated
buffer and returns the object parsed so far, or None when nothing usable has
arrived yet. Dangling keys, colons and partial literals are dropped.
"""

from __future__ import annotations

import json
from typing import Any

_LITERAL_HEADS = ("t", "f", "n", "tr", "fa", "nu", "tru", "fal", "nul", "fals")


def parse_partial(buffer: str) -> Any | None:
    text = _strip_fence(buffer).strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass

    start = min((i for i in (text.find("{"), text.find("[")) if i >= 0), default=-1)
    if start < 0:
        return None
    text = text[start:]

    # Trim back until a closed form parses; each step removes one dangling token.
    candidate = text
    for _ in range(8):
        closed = _close(candidate)
        if closed is not None:
            try:
                return json.loads(closed)
            except ValueError:
                pass
        trimmed = _drop_tail(candidate)
        if trimmed == candidate or not trimmed:
            return None
        candidate = trimmed
    return None


def _strip_fence(text: str) -> str:
    stripped = text.lstrip()
    if stripped.startswith("```"):
        newline = stripped.find("\n")
        stripped = stripped[newline + 1:] if newline >= 0 else ""
        end = stripped.rfind("```")
        if end >= 0:
            stripped = stripped[:end]
    return stripped


def _close(text: str) -> str | None:
    """Append the closers needed to balance *text*, or None if it is malformed."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if not stack or stack.pop() != ch:
                return None
    tail = text
    if in_string:
        if escaped:
            tail = tail[:-1]
        tail += '"'
    stripped = tail.rstrip()
    if stripped.endswith(","):
        tail = stripped[:-1]
    elif stripped.endswith(":"):
        return None
    return tail + "".join(reversed(stack))


def _drop_tail(text: str) -> str:
    """Remove the last dangling token (partial literal, key, or trailing separator)."""
    stripped = text.rstrip()
    if stripped.endswith((",", ":")):
        return stripped[:-1]
    for head in sorted(_LITERAL_HEADS, key=len, reverse=True):
        if stripped.endswith(head) and not stripped.endswith('"' + head):
            return stripped[: -len(head)]
    # Drop back to the last structural character.
    cut = max(stripped.rfind(","), stripped.rfind("{"), stripped.rfind("["))
    if cut < 0:
        return stripped
    return stripped[: cut + 1] if stripped[cut] in "{[" else stripped[:cut]
