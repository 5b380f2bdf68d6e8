"""draftsmith suggest / suggestions commands.

Commands:
  draftsmith suggest <id> [--version N]       ask the model for sentence-level edits
  draftsmith suggestions list <id> [--all]    show stored suggestions
  draftsmith suggestions resolve <sugg-id>    mark a suggestion as handled
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from draftsmith.cli.common import (
    DEFAULT_USER,
    DbOption,
    UserOption,
    console,
    db_path,
    load_cfg,
    open_store,
    owned_versions,
    select_version,
)
from draftsmith.cli.errors import err_no_api_key
from draftsmith.db.models import ArtifactKind, Suggestion
from draftsmith.generation.suggestions import request_suggestions
from draftsmith.llm.client import validate_api_key

suggestions_app = typer.Typer(
    name="suggestions",
    help="Manage stored writing suggestions (list, resolve).",
    add_completion=False,
)


def suggest_cmd(
    artifact_id: Annotated[str, typer.Argument(help="Artifact id.")],
    version: Annotated[
        str | None,
        typer.Option("--version", "-v", help="Version number or timestamp (default: latest)."),
    ] = None,
    max_suggestions: Annotated[
        int,
        typer.Option("--max", min=1, max=20, help="Maximum number of suggestions."),
    ] = 5,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Ask the model for edits to a text artifact and store them."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        versions = owned_versions(store, artifact_id, user)
        target = select_version(versions, version, artifact_id)
        if target.kind is not ArtifactKind.TEXT:
            console.print(
                f"[red]Error:[/] Suggestions are only available for text artifacts; "
                f"'{artifact_id}' is a {target.kind.value}."
            )
            raise typer.Exit(1)

        try:
            validate_api_key(cfg.generation.model)
        except EnvironmentError:
            console.print(err_no_api_key(cfg.generation.model))
            raise typer.Exit(1)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Requesting suggestions from {cfg.generation.model}…", total=None)
            try:
                stored = request_suggestions(
                    store,
                    target,
                    user,
                    model=cfg.generation.model,
                    max_suggestions=max_suggestions,
                    num_retries=cfg.generation.num_retries,
                )
            except Exception as exc:  # provider failures surface as many litellm types
                console.print(f"[red]Error:[/] Suggestion request failed: {exc}")
                raise typer.Exit(1)

        if not stored:
            console.print("  [dim]The model had no usable suggestions.[/]")
            return
        _print_suggestions(stored, title=f"Suggestions for {artifact_id}")
        console.print(f"\n  [green]✓[/] Stored {len(stored)} suggestion(s)")
    finally:
        store.close()


@suggestions_app.command("list")
def suggestions_list_cmd(
    artifact_id: Annotated[str, typer.Argument(help="Artifact id.")],
    version: Annotated[
        str | None,
        typer.Option("--version", "-v", help="Only suggestions for this version."),
    ] = None,
    show_all: Annotated[
        bool,
        typer.Option("--all", help="Include resolved suggestions."),
    ] = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """List stored suggestions for an artifact."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        versions = owned_versions(store, artifact_id, user)
        created_at = select_version(versions, version, artifact_id).created_at if version else None
        found = store.list_suggestions(artifact_id, created_at)
    finally:
        store.close()

    if not show_all:
        found = [s for s in found if not s.is_resolved]
    if not found:
        console.print("[yellow]No suggestions found.[/]")
        raise typer.Exit(0)
    _print_suggestions(found, title=f"Suggestions for {artifact_id}")


@suggestions_app.command("resolve")
def suggestions_resolve_cmd(
    suggestion_id: Annotated[str, typer.Argument(help="Suggestion id.")],
    db: DbOption = None,
) -> None:
    """Mark a suggestion as resolved."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        resolved = store.resolve_suggestion(suggestion_id)
    finally:
        store.close()
    if not resolved:
        console.print(
            f"[red]Error:[/] Suggestion '{suggestion_id}' not found.\n"
            "  Run:  draftsmith suggestions list <artifact-id>"
        )
        raise typer.Exit(1)
    console.print(f"[green]✓[/] Resolved suggestion {suggestion_id}")


def _print_suggestions(suggestions: list[Suggestion], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Original")
    table.add_column("Suggested")
    table.add_column("Why")
    table.add_column("Status")
    for s in suggestions:
        status = "[green]✓ resolved[/]" if s.is_resolved else "[yellow]open[/]"
        table.add_row(s.id, s.original_text, s.suggested_text, s.description, status)
    console.print(table)
