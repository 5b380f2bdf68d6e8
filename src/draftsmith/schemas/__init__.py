"""Content schema registry: per-kind structural validation and heuristics."""

from __future__ import annotations

from draftsmith.schemas.base import (
    ContentSchema,
    SchemaRegistry,
    StreamStyle,
    ValidationResult,
)
from draftsmith.schemas.heuristics import NAMED_HEURISTICS, looks_like_csv
from draftsmith.schemas.plain import CodeSchema, ImageSchema, SheetSchema, TextSchema
from draftsmith.schemas.structured import ChartSchema, SlideSchema


def default_registry(heuristics: dict[str, str] | None = None) -> SchemaRegistry:
    """Registry with every built-in kind.

    Args:
        heuristics: Optional ``{kind: heuristic_name}`` overrides from config
            (``csv`` or ``none``).
    """
    registry = SchemaRegistry()
    for schema in (
        TextSchema(),
        CodeSchema(),
        ChartSchema(),
        SheetSchema(),
        SlideSchema(),
        ImageSchema(),
    ):
        registry.register(schema)
    for kind, name in (heuristics or {}).items():
        registry.set_heuristic(kind, NAMED_HEURISTICS[name])
    return registry


__all__ = [
    "ContentSchema",
    "SchemaRegistry",
    "StreamStyle",
    "ValidationResult",
    "default_registry",
    "looks_like_csv",
]
