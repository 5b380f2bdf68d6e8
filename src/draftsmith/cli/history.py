"""draftsmith list / history / show / truncate commands.

Version numbers are 1-based positions in an artifact's history, oldest first;
commands that take a version also accept its exact ``created_at`` timestamp.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.panel import Panel
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
    render_content,
    select_version,
)
from draftsmith.cli.errors import warn_truncate


def list_cmd(
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """List your artifacts, most recently saved first."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        latest = store.list_artifacts(user)
        if not latest:
            console.print(f"[yellow]No artifacts for user '{user}'.[/]")
            raise typer.Exit(0)

        table = Table(title="Artifacts", show_header=True, header_style="bold")
        table.add_column("Id", style="bold")
        table.add_column("Kind")
        table.add_column("Title")
        table.add_column("Versions", justify="right")
        table.add_column("Last saved")
        for version in latest:
            table.add_row(
                version.id,
                version.kind.value,
                version.title,
                str(len(store.list_versions(version.id))),
                version.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        console.print(table)
    finally:
        store.close()


def history_cmd(
    artifact_id: Annotated[str, typer.Argument(help="Artifact id.")],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Show every saved version of an artifact."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        versions = owned_versions(store, artifact_id, user)
        table = Table(title=f"History of {artifact_id}", show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Saved at")
        table.add_column("Title")
        table.add_column("Size", justify="right")
        table.add_column("")
        for number, version in enumerate(versions, start=1):
            marker = "[green]current[/]" if number == len(versions) else ""
            table.add_row(
                str(number),
                version.created_at.isoformat(),
                version.title,
                f"{len(version.content):,}",
                marker,
            )
        console.print(table)
        console.print(f"\n  {len(versions)} version(s) · kind: {versions[-1].kind.value}")
    finally:
        store.close()


def show_cmd(
    artifact_id: Annotated[str, typer.Argument(help="Artifact id.")],
    version: Annotated[
        str | None,
        typer.Option("--version", "-v", help="Version number or timestamp (default: latest)."),
    ] = None,
    raw: Annotated[
        bool,
        typer.Option("--raw", help="Print stored content without formatting."),
    ] = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Print one version of an artifact."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        versions = owned_versions(store, artifact_id, user)
        selected = select_version(versions, version, artifact_id)
    finally:
        store.close()

    if raw:
        typer.echo(selected.content)
        return
    number = versions.index(selected) + 1
    console.print(
        Panel(
            f"[bold]{selected.title}[/]\n"
            f"Kind: {selected.kind.value}  |  Version {number} of {len(versions)}  |  "
            f"Saved {selected.created_at.isoformat()}",
            expand=False,
        )
    )
    render_content(selected.kind, selected.content, selected.metadata_dict)


def truncate_cmd(
    artifact_id: Annotated[str, typer.Argument(help="Artifact id.")],
    after: Annotated[
        str,
        typer.Option("--after", "-a", help="Keep this version (number or timestamp); delete all newer ones."),
    ],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Discard every version newer than the given one."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        versions = owned_versions(store, artifact_id, user)
        keep = select_version(versions, after, artifact_id)
        newer = [v for v in versions if v.created_at > keep.created_at]
        if not newer:
            console.print(f"  [dim]Nothing to delete: version {after} is the latest.[/]")
            raise typer.Exit(0)

        console.print(warn_truncate(artifact_id, len(newer)))
        if not yes:
            confirmed = typer.confirm("  Proceed?", default=False)
            if not confirmed:
                console.print("  [dim]Cancelled.[/]")
                raise typer.Exit(0)

        deleted = store.delete_versions_after(artifact_id, keep.created_at)
        console.print(f"  [green]✓[/] Deleted {deleted} version(s) of [bold]{artifact_id}[/]")
    finally:
        store.close()
