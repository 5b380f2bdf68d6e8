"""Draftsmith CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from draftsmith.cli.common import console, load_cfg
from draftsmith.cli.generate import create_cmd, update_cmd
from draftsmith.cli.history import history_cmd, list_cmd, show_cmd, truncate_cmd
from draftsmith.cli.suggest import suggest_cmd, suggestions_app
from draftsmith.config import ensure_global_config
from draftsmith.schemas import default_registry


def _installed_version() -> str:
    try:
        return importlib.metadata.version("draftsmith")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"draftsmith {_installed_version()}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    root = logging.getLogger("draftsmith")
    root.handlers.clear()
    root.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=verbose))
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


app = typer.Typer(
    name="draftsmith",
    help=(
        "Draftsmith: versioned artifacts generated from streamed LLM output.\n\n"
        "  draftsmith create   Generate a new artifact (text, code, chart, sheet, slide, image).\n"
        "  draftsmith update   Revise an artifact; every save is a new version."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log pipeline decisions (retries, saves) at debug level."),
    ] = False,
) -> None:
    """Draftsmith: versioned artifacts generated from streamed LLM output."""
    _configure_logging(verbose)


app.command("create")(create_cmd)
app.command("update")(update_cmd)
app.command("list")(list_cmd)
app.command("history")(history_cmd)
app.command("show")(show_cmd)
app.command("truncate")(truncate_cmd)
app.command("suggest")(suggest_cmd)
app.add_typer(suggestions_app, name="suggestions")


@app.command("init")
def init_cmd() -> None:
    """Create ~/.draftsmith/config.yaml with model defaults (never API keys)."""
    path = ensure_global_config()
    console.print(f"[green]✓[/] Global config: {path}")
    console.print("  Set your provider key in the environment, e.g.  export OPENAI_API_KEY=sk-...")


@app.command("kinds")
def kinds_cmd() -> None:
    """List the supported artifact kinds and how their output is checked."""
    cfg = load_cfg()
    registry = default_registry(cfg.heuristics)
    for kind in registry.kinds():
        schema = registry.get(kind)
        heuristic = getattr(schema.heuristic, "__name__", "none")
        console.print(
            f"  [bold]{kind.value:<6}[/] {schema.stream_style.value} stream, "
            f"misclassification check: {heuristic}"
        )


@app.command("version")
def version_cmd() -> None:
    """Show the installed Draftsmith version."""
    typer.echo(f"draftsmith {_installed_version()}")


if __name__ == "__main__":
    app()
