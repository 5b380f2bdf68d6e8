"""Helpers shared by the draftsmith CLI commands."""

from __future__ import annotations

import csv
import io
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.syntax import Syntax
from rich.table import Table

from draftsmith.cli.errors import (
    err_artifact_not_found,
    err_config,
    err_no_db,
    err_not_owner,
    err_version_not_found,
)
from draftsmith.config import DraftsmithConfig, load_config
from draftsmith.db.connection import Database
from draftsmith.db.models import ArtifactKind, ArtifactVersion, to_utc
from draftsmith.db.schema import initialize
from draftsmith.db.store import SqliteArtifactStore
from draftsmith.errors import ConfigError

console = Console()

DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the artifact database (default: storage.db from config)."),
]
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", envvar="DRAFTSMITH_USER", help="Owning user id."),
]

DEFAULT_USER = "local"


def load_cfg() -> DraftsmithConfig:
    """Load config, exiting with an actionable message if it is invalid."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def db_path(db: Path | None, cfg: DraftsmithConfig) -> Path:
    return db if db is not None else Path(cfg.storage.db)


def open_store(path: Path, *, create: bool = False) -> SqliteArtifactStore:
    """Open (or, with *create*, create) the database and run migrations."""
    if not create and not path.exists():
        console.print(err_no_db(str(path)))
        raise typer.Exit(1)
    conn = Database(path).connect()
    initialize(conn)
    return SqliteArtifactStore(conn)


def owned_versions(store: SqliteArtifactStore, artifact_id: str, user_id: str) -> list[ArtifactVersion]:
    """All versions of *artifact_id*, exiting unless it exists and *user_id* owns it."""
    versions = store.list_versions(artifact_id)
    if not versions:
        console.print(err_artifact_not_found(artifact_id))
        raise typer.Exit(1)
    if versions[-1].user_id != user_id:
        console.print(err_not_owner(artifact_id, user_id))
        raise typer.Exit(1)
    return versions


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are UTC."""
    try:
        return to_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise typer.BadParameter(f"Not a version number or ISO timestamp: '{text}'") from None


def select_version(
    versions: list[ArtifactVersion], selector: str | None, artifact_id: str
) -> ArtifactVersion:
    """Pick a version by 1-based number or ``created_at`` timestamp (default: latest)."""
    if selector is None:
        return versions[-1]
    if selector.isdigit():
        number = int(selector)
        if 1 <= number <= len(versions):
            return versions[number - 1]
    else:
        ts = parse_timestamp(selector)
        for version in versions:
            if version.created_at == ts:
                return version
    console.print(err_version_not_found(artifact_id, selector))
    raise typer.Exit(1)


def render_content(kind: ArtifactKind, content: str, metadata: dict | None = None) -> None:
    """Print *content* the way its kind is best read in a terminal."""
    if kind is ArtifactKind.TEXT:
        console.print(Markdown(content))
    elif kind is ArtifactKind.CODE:
        language = (metadata or {}).get("language", "python")
        console.print(Syntax(content, language, line_numbers=True))
    elif kind in (ArtifactKind.CHART, ArtifactKind.SLIDE):
        console.print(Syntax(content, "json"))
    elif kind is ArtifactKind.SHEET:
        rows = list(csv.reader(io.StringIO(content)))
        table = Table(show_header=True, header_style="bold")
        for name in rows[0] if rows else []:
            table.add_column(name)
        for row in rows[1:]:
            table.add_row(*row)
        console.print(table)
    else:
        console.print(f"  [dim](base64 image, {len(content):,} characters)[/]")
