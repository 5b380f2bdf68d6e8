"""Text-encoded kinds: prose, source code, CSV sheets and base64 images."""

from __future__ import annotations

import base64
import binascii
import csv
import io

from draftsmith.db.models import ArtifactKind
from draftsmith.schemas.base import ContentSchema, StreamStyle, ValidationResult
from draftsmith.schemas.heuristics import looks_like_code_wrapper, looks_like_json


def _field(payload: str | dict, key: str) -> str:
    if isinstance(payload, dict):
        value = payload.get(key)
        return value if isinstance(value, str) else ""
    return payload


class TextSchema(ContentSchema):
    kind = ArtifactKind.TEXT
    stream_style = StreamStyle.INCREMENTAL
    shape_hint = "plain markdown prose only, with no JSON wrapper or code fences around the whole answer"

    def check(self, text: str) -> ValidationResult:
        return ValidationResult.ok()


class CodeSchema(ContentSchema):
    kind = ArtifactKind.CODE
    default_heuristic = staticmethod(looks_like_code_wrapper)
    shape_hint = 'a JSON object {"code": "<complete source>"} where code holds only runnable source text'

    def serialize(self, payload: str | dict) -> str:
        return _field(payload, "code")

    def check(self, text: str) -> ValidationResult:
        return ValidationResult.ok()


class SheetSchema(ContentSchema):
    kind = ArtifactKind.SHEET
    default_heuristic = staticmethod(looks_like_json)
    shape_hint = (
        'a JSON object {"csv": "<csv text>"} whose csv value has a header row '
        "and at least one data row, every row with the same number of columns"
    )

    def serialize(self, payload: str | dict) -> str:
        return _field(payload, "csv")

    def check(self, text: str) -> ValidationResult:
        try:
            rows = [r for r in csv.reader(io.StringIO(text.strip())) if r]
        except csv.Error as exc:
            return ValidationResult.fail(f"unparseable CSV: {exc}")
        if len(rows) < 2:
            return ValidationResult.fail("sheet needs a header row and at least one data row")
        header = rows[0]
        if not any(cell.strip() for cell in header):
            return ValidationResult.fail("header row is empty")
        for n, row in enumerate(rows[1:], start=2):
            if len(row) != len(header):
                return ValidationResult.fail(
                    f"row {n} has {len(row)} columns, header has {len(header)}"
                )
        return ValidationResult.ok()


class ImageSchema(ContentSchema):
    kind = ArtifactKind.IMAGE
    shape_hint = "a base64-encoded PNG image"

    def check(self, text: str) -> ValidationResult:
        try:
            base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError):
            return ValidationResult.fail("content is not valid base64")
        return ValidationResult.ok()
