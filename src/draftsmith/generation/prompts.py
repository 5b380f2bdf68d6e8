"""System prompts per artifact kind, plus the stricter retry addendum."""

from __future__ import annotations

TEXT_PROMPT = (
    "Write about the given topic. Markdown is supported. "
    "Use headings wherever appropriate."
)

CODE_PROMPT = """\
You are a {language} code generator that creates self-contained, executable code snippets. When writing code:

1. Each snippet should be complete and runnable on its own
2. Prefer printing results to display outputs
3. Include helpful comments explaining the code
4. Keep snippets concise (generally under 15 lines)
5. Avoid external dependencies - use the standard library
6. Handle potential errors gracefully
7. Return meaningful output that demonstrates the code's functionality
8. Don't read interactive input
9. Don't access files or network resources
10. Don't use infinite loops

Respond with a JSON object {{"code": "<source>"}}.
"""

SHEET_PROMPT = """\
You are a spreadsheet creation assistant. Create a spreadsheet in csv format based on the given prompt. \
The spreadsheet should contain meaningful column headers and data.

Respond with a JSON object {"csv": "<csv text>"}.
"""

CHART_PROMPT = """\
You are a data visualization assistant. Produce a chart configuration for the request as a JSON object with:

- "type": one of bar, line, pie, scatter, area, doughnut
- "title": the chart title
- "data": a non-empty array of flat records, e.g. [{"month": "Jan", "sales": 120}]
- optional "xAxis" / "yAxis": field names in the records used for each axis
- optional "colorScheme": one of blue, green, purple, orange, red, gradient, rainbow
- optional "showLegend", "showGrid", "animation": booleans

Use realistic values when the request does not supply data. Never answer with CSV or prose.
"""

SLIDE_PROMPT = """\
You are a presentation assistant. Produce a slide deck for the request as a JSON object with:

- "title": the presentation title
- "slides": a non-empty array of {"title": "...", "content": ["bullet", ...]}

Keep each slide to 3-6 concise bullet points.
"""

_UPDATE_TEMPLATES: dict[str, str] = {
    "text": "Improve the following contents of the document based on the given prompt.\n\n{content}\n",
    "code": "Improve the following code snippet based on the given prompt.\n\n{content}\n",
    "sheet": "Improve the following spreadsheet based on the given prompt.\n\n{content}\n",
    "chart": (
        "Update the following chart configuration based on the given prompt. "
        "Keep every field that the prompt does not ask to change.\n\n{content}\n"
    ),
    "slide": "Improve the following presentation based on the given prompt.\n\n{content}\n",
}

_STRICT_SYSTEM = "CRITICAL: You MUST return ONLY {shape}, not CSV or other formats."
_STRICT_PROMPT = "{prompt} (Return ONLY {shape})"


def update_prompt(kind: str, current_content: str, base_prompt: str = "") -> str:
    """System prompt for revising *current_content* of *kind*."""
    template = _UPDATE_TEMPLATES.get(kind, "{content}")
    revised = template.format(content=current_content or "")
    return f"{base_prompt}\n\n{revised}" if base_prompt else revised


def strict_system(system: str, shape_hint: str) -> str:
    return f"{system}\n\n{_STRICT_SYSTEM.format(shape=shape_hint)}"


def strict_prompt(prompt: str, shape_hint: str) -> str:
    return _STRICT_PROMPT.format(prompt=prompt, shape=shape_hint)
