"""Tests for the draftsmith entry point: init, kinds, version, logging, errors."""

from __future__ import annotations

import logging

import yaml
from rich.logging import RichHandler
from typer.testing import CliRunner

from draftsmith.cli import errors
from draftsmith.cli.main import app

runner = CliRunner()


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("draftsmith ")


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "draftsmith" in result.output


def test_init_writes_global_config(tmp_path):
    result = runner.invoke(app, ["init"])

    target = tmp_path / "home" / "config.yaml"
    assert result.exit_code == 0, result.output
    assert target.exists()
    assert "generation" in yaml.safe_load(target.read_text(encoding="utf-8"))
    assert "OPENAI_API_KEY" in result.output


def test_kinds_lists_every_kind():
    result = runner.invoke(app, ["kinds"])

    assert result.exit_code == 0
    for kind in ("text", "code", "chart", "sheet", "slide", "image"):
        assert kind in result.output
    assert "looks_like_csv" in result.output


def test_kinds_respects_heuristic_config(tmp_path):
    (tmp_path / "draftsmith.yaml").write_text("heuristics:\n  chart: none\n", encoding="utf-8")
    result = runner.invoke(app, ["kinds"])

    chart_line = next(line for line in result.output.splitlines() if "chart" in line)
    assert chart_line.rstrip().endswith("none")


def test_invalid_config_reported(tmp_path):
    (tmp_path / "draftsmith.yaml").write_text("stream:\n  timeout_seconds: -1\n", encoding="utf-8")
    result = runner.invoke(app, ["kinds"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_misspelled_heuristic_kind_reported(tmp_path):
    (tmp_path / "draftsmith.yaml").write_text("heuristics:\n  charts: csv\n", encoding="utf-8")
    result = runner.invoke(app, ["create", "chart", "Sales", "--db", str(tmp_path / "a.db")])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert "charts" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_verbose_sets_debug_logging():
    runner.invoke(app, ["--verbose", "kinds"])
    logger = logging.getLogger("draftsmith")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], RichHandler)

    runner.invoke(app, ["kinds"])
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1


# ---------------------------------------------------------------------------
# Error messages
# ---------------------------------------------------------------------------


def test_err_no_api_key_names_env_var():
    msg = errors.err_no_api_key("anthropic/claude-3-5-sonnet-20241022")
    assert "ANTHROPIC_API_KEY" in msg
    assert "'anthropic'" in msg


def test_err_no_api_key_unknown_provider():
    assert "FOO_API_KEY" in errors.err_no_api_key("foo/bar")


def test_err_rejected_says_nothing_saved():
    msg = errors.err_rejected("chart", "data: Field required")
    assert "valid chart after 2 attempts" in msg
    assert "data: Field required" in msg
    assert "Nothing was saved" in msg


def test_errors_point_to_a_command():
    assert "draftsmith create" in errors.err_no_db("x.db")
    assert "draftsmith kinds" in errors.err_unknown_kind("video", ["text"])
    assert "draftsmith history doc-1" in errors.err_version_not_found("doc-1", "7")
    assert "draftsmith update doc-1" in errors.err_artifact_exists("doc-1")
    assert "--user" in errors.err_not_owner("doc-1", "bob")


def test_warn_truncate_mentions_suggestions():
    assert "2 newer version(s)" in errors.warn_truncate("doc-1", 2)
    assert "suggestions" in errors.warn_truncate("doc-1", 2)
