"""Tests for misclassification heuristics."""

from __future__ import annotations

import pytest

from draftsmith.schemas.heuristics import (
    NAMED_HEURISTICS,
    looks_like_code_wrapper,
    looks_like_csv,
    looks_like_json,
)


@pytest.mark.parametrize(
    "text",
    [
        "month,sales\nJan,10\nFeb,20",
        "a;b\n1;2",
        "x,y\r\n1,2",
    ],
)
def test_looks_like_csv_true(text):
    assert looks_like_csv(text)


@pytest.mark.parametrize(
    "text",
    [
        '{"type": "bar",\n"data": []}',
        "[1,\n2]",
        "single line, with comma",
        "two\nlines without delimiters",
        "",
    ],
)
def test_looks_like_csv_false(text):
    assert not looks_like_csv(text)


def test_looks_like_json():
    assert looks_like_json('  {"a": 1}')
    assert looks_like_json("[1, 2]")
    assert not looks_like_json("name,value\na,1")


def test_looks_like_code_wrapper():
    assert looks_like_code_wrapper('{"code": "print(1)"}')
    assert not looks_like_code_wrapper('{"other": 1}')
    assert not looks_like_code_wrapper("print({'code': 1})")
    assert not looks_like_code_wrapper("{not json")


def test_named_heuristics():
    assert NAMED_HEURISTICS["csv"] is looks_like_csv
    assert NAMED_HEURISTICS["none"] is None
