"""draftsmith create / update commands.

Usage:
  draftsmith create chart "Monthly sales 2024" [--id sales-2024]
  draftsmith update sales-2024 "Make it a line chart" [--from 2]

Deltas are shown live while the model streams (text is printed as it
arrives; other kinds show a spinner with progress). Only validated content is
saved; a rejected request leaves the artifact's history untouched.
"""

from __future__ import annotations

import uuid
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

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
from draftsmith.cli.errors import (
    err_artifact_exists,
    err_no_api_key,
    err_not_saved,
    err_rejected,
    err_superseded,
    err_unknown_kind,
)
from draftsmith.config import DraftsmithConfig
from draftsmith.db.models import ArtifactKind
from draftsmith.db.store import ArtifactStore
from draftsmith.errors import UnknownKindError
from draftsmith.generation.dispatcher import (
    GenerationDispatcher,
    GenerationHandle,
    GenerationResult,
    Mode,
    ResultStatus,
    SaveRequest,
)
from draftsmith.generation.kinds import default_handlers
from draftsmith.schemas import default_registry


def create_cmd(
    kind: Annotated[str, typer.Argument(help="Artifact kind: text, code, chart, sheet, slide, image.")],
    title: Annotated[str, typer.Argument(help="Title / prompt for the new artifact.")],
    artifact_id: Annotated[
        str | None,
        typer.Option("--id", help="Artifact id (default: a new random id)."),
    ] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Do not print the generated content."),
    ] = False,
) -> None:
    """Generate a new artifact and save it as version 1."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg), create=True)
    try:
        if artifact_id and store.latest_version(artifact_id) is not None:
            console.print(err_artifact_exists(artifact_id))
            raise typer.Exit(1)
        request = SaveRequest(artifact_id=artifact_id or uuid.uuid4().hex[:12], user_id=user, title=title)
        result = _run(cfg, store, kind, Mode.CREATE, request, quiet)
    finally:
        store.close()
    if not result.ok:
        raise typer.Exit(1)


def update_cmd(
    artifact_id: Annotated[str, typer.Argument(help="Artifact id.")],
    description: Annotated[str, typer.Argument(help="What to change.")],
    base: Annotated[
        str | None,
        typer.Option(
            "--from",
            help="Version number or timestamp to edit (default: latest). Newer versions are discarded on save.",
        ),
    ] = None,
    title: Annotated[
        str | None,
        typer.Option("--title", help="New title (default: keep the current one)."),
    ] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Do not print the generated content."),
    ] = False,
) -> None:
    """Revise an artifact from a change description and save a new version."""
    cfg = load_cfg()
    store = open_store(db_path(db, cfg))
    try:
        versions = owned_versions(store, artifact_id, user)
        selected = select_version(versions, base, artifact_id)
        if selected is not versions[-1]:
            console.print(
                f"  [yellow]⚠[/] Editing version {versions.index(selected) + 1} of {len(versions)}; "
                "newer versions will be discarded if the update is saved."
            )
        request = SaveRequest(
            artifact_id=artifact_id,
            user_id=user,
            title=title or "",
            description=description,
            base_created_at=selected.created_at,
        )
        result = _run(cfg, store, selected.kind.value, Mode.UPDATE, request, quiet)
    finally:
        store.close()
    if not result.ok:
        raise typer.Exit(1)


# ------------------------------------------------------------------
# Pipeline driver
# ------------------------------------------------------------------


def _run(
    cfg: DraftsmithConfig,
    store: ArtifactStore,
    kind: str,
    mode: Mode,
    request: SaveRequest,
    quiet: bool,
) -> GenerationResult:
    schemas = default_registry(cfg.heuristics)
    handlers = default_handlers(cfg, schemas)
    with GenerationDispatcher(
        handlers, schemas, store, timeout=cfg.stream.timeout_seconds, max_workers=1
    ) as dispatcher:
        try:
            handle = dispatcher.generate(kind, mode, request)
        except UnknownKindError:
            console.print(err_unknown_kind(kind, [k.value for k in handlers.kinds()]))
            raise typer.Exit(1)
        except EnvironmentError:
            model = cfg.generation.image_model if kind == ArtifactKind.IMAGE.value else cfg.generation.model
            console.print(err_no_api_key(model))
            raise typer.Exit(1)

        result = _follow(handle, ArtifactKind(kind), quiet)
        if result.status is ResultStatus.NOT_SAVED:
            # One immediate re-save of the validated content; no regeneration.
            result = dispatcher.retry_save(result)
        _report(result, quiet)
        return result


def _follow(handle: GenerationHandle, kind: ArtifactKind, quiet: bool) -> GenerationResult:
    if kind is ArtifactKind.TEXT and not quiet:
        attempt = 1
        for delta in handle.deltas:
            if delta.attempt != attempt:
                attempt = delta.attempt
                console.print("\n  [yellow]↻ Output rejected, retrying with stricter instructions…[/]")
            console.print(delta.fragment, end="", markup=False, highlight=False)
        console.print()
        return handle.result.result()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task(f"Generating {kind.value}…", total=None)
        for count, delta in enumerate(handle.deltas, start=1):
            prog.update(
                task,
                description=f"Generating {kind.value}… attempt {delta.attempt}, {count} update(s)",
            )
    return handle.result.result()


def _report(result: GenerationResult, quiet: bool) -> None:
    if result.status is ResultStatus.ACCEPTED:
        version = result.version
        if not quiet and result.kind is not ArtifactKind.TEXT:
            render_content(result.kind, result.content, result.metadata)
        console.print(
            f"  [green]✓[/] Saved {result.kind.value} [bold]{result.artifact_id}[/] "
            f"at {version.created_at.isoformat()}"
        )
        if result.truncate_after is not None:
            console.print("  [dim]Newer versions were discarded (history forked).[/]")
    elif result.status is ResultStatus.REJECTED:
        if result.content and not quiet:
            console.print("  [dim]Last output (not saved):[/]")
            console.print(result.content, markup=False, highlight=False, style="dim")
        console.print(err_rejected(result.kind.value, result.reason))
    elif result.status is ResultStatus.NOT_SAVED:
        console.print(err_not_saved(result.artifact_id, result.reason))
    else:
        console.print(err_superseded(result.artifact_id))
