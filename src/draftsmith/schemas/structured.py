"""JSON object kinds: chart configurations and slide decks.

Payloads arrive as (partial) objects and are stored as 2-space-indented JSON.
"""

from __future__ import annotations

import json
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, ValidationError, field_validator

from draftsmith.db.models import ArtifactKind
from draftsmith.schemas.base import ContentSchema, ValidationResult, describe_validation_error
from draftsmith.schemas.heuristics import looks_like_csv

ChartType = Literal["bar", "line", "pie", "scatter", "area", "doughnut"]
ColorScheme = Literal["blue", "green", "purple", "orange", "red", "gradient", "rainbow"]
Cell = Union[StrictInt, StrictFloat, StrictStr]


class ChartConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: ChartType
    title: str
    data: list[dict[str, Cell]]
    xAxis: str | None = None
    yAxis: str | None = None
    colorScheme: ColorScheme | None = None
    showLegend: bool | None = None
    showGrid: bool | None = None
    animation: bool | None = None

    @field_validator("data")
    @classmethod
    def _data_not_empty(cls, v: list) -> list:
        if not v:
            raise ValueError("data must contain at least one row")
        return v


class Slide(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    content: list[str]


class Presentation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    slides: list[Slide]

    @field_validator("slides")
    @classmethod
    def _slides_not_empty(cls, v: list) -> list:
        if not v:
            raise ValueError("slides must contain at least one slide")
        return v


class _JsonObjectSchema(ContentSchema):
    """Shared behaviour for kinds whose content is a JSON object."""

    model: type[BaseModel]
    required_keys: tuple[str, ...] = ()
    array_keys: tuple[str, ...] = ()

    def serialize(self, payload: str | dict) -> str:
        if isinstance(payload, dict):
            return json.dumps(payload, indent=2)
        return payload

    def precheck(self, payload: str | dict) -> bool:
        obj = payload
        if isinstance(payload, str):
            try:
                obj = json.loads(payload)
            except ValueError:
                return False
        if not isinstance(obj, dict):
            return False
        if any(obj.get(k) is None for k in self.required_keys):
            return False
        return all(isinstance(obj.get(k), list) for k in self.array_keys)

    def check(self, text: str) -> ValidationResult:
        try:
            self.model.model_validate_json(text)
        except ValidationError as exc:
            return ValidationResult.fail(describe_validation_error(exc))
        return ValidationResult.ok()


class ChartSchema(_JsonObjectSchema):
    kind = ArtifactKind.CHART
    model = ChartConfig
    required_keys = ("type", "data")
    array_keys = ("data",)
    default_heuristic = staticmethod(looks_like_csv)
    shape_hint = (
        'a single JSON object in the format {"type": "bar", "title": "...", '
        '"data": [{"label": "...", "value": 1}, ...]} with a non-empty data array'
    )


class SlideSchema(_JsonObjectSchema):
    kind = ArtifactKind.SLIDE
    model = Presentation
    required_keys = ("title", "slides")
    array_keys = ("slides",)
    default_heuristic = staticmethod(looks_like_csv)
    shape_hint = (
        'a single JSON object in the format {"title": "...", "slides": '
        '[{"title": "...", "content": ["bullet", ...]}, ...]} with at least one slide'
    )
