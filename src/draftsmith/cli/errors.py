"""Draftsmith rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from draftsmith.cli.errors import err_no_db
    console.print(err_no_db(".draftsmith.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from draftsmith.llm.client import api_key_env, provider_of


def err_no_api_key(model: str) -> str:
    """No API key for the provider of *model*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    provider = provider_of(model)
    env_var = api_key_env(provider) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}' (model {model}).\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".draftsmith.db") -> str:
    """No artifact database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Create an artifact first:  draftsmith create <kind> \"<title>\""
    )


def err_config(message: str) -> str:
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Fix draftsmith.yaml (or ~/.draftsmith/config.yaml) and retry."
    )


def err_unknown_kind(kind: str, known: list[str]) -> str:
    return (
        f"[red]Error:[/] Unknown artifact kind '{kind}'.\n"
        f"  Known kinds: {', '.join(known)}\n"
        "  Run:  draftsmith kinds"
    )


def err_artifact_not_found(artifact_id: str) -> str:
    return (
        f"[red]Error:[/] Artifact '{artifact_id}' not found.\n"
        "  Check the id, or create it:  draftsmith create <kind> \"<title>\" --id "
        f"{artifact_id}"
    )


def err_artifact_exists(artifact_id: str) -> str:
    return (
        f"[red]Error:[/] Artifact '{artifact_id}' already exists.\n"
        f"  Revise it instead:  draftsmith update {artifact_id} \"<change>\""
    )


def err_version_not_found(artifact_id: str, selector: str) -> str:
    return (
        f"[red]Error:[/] Artifact '{artifact_id}' has no version {selector}.\n"
        f"  Run:  draftsmith history {artifact_id}"
    )


def err_not_owner(artifact_id: str, user_id: str) -> str:
    return (
        f"[red]Error:[/] Artifact '{artifact_id}' does not belong to user '{user_id}'.\n"
        "  Pass the owning user with --user (or DRAFTSMITH_USER)."
    )


def err_rejected(kind: str, reason: str | None) -> str:
    """Both generation attempts failed validation; nothing was saved."""
    return (
        f"[red]Error:[/] The model did not produce a valid {kind} after 2 attempts.\n"
        f"  Reason: {reason or 'unknown'}\n"
        "  Nothing was saved. Rephrase the request or try a different model "
        "(generation.model in draftsmith.yaml)."
    )


def err_not_saved(artifact_id: str, reason: str | None) -> str:
    """Validated content could not be written to the store."""
    return (
        f"[red]Error:[/] Generated content for '{artifact_id}' could not be saved.\n"
        f"  Reason: {reason or 'unknown'}\n"
        "  Check that the database file is writable and has free disk space, then retry."
    )


def err_superseded(artifact_id: str) -> str:
    return (
        f"[yellow]Superseded:[/] A newer request for '{artifact_id}' replaced this one.\n"
        "  Nothing was saved for this request."
    )


def warn_truncate(artifact_id: str, count: int) -> str:
    """Warning shown before newer versions are discarded."""
    return (
        f"[yellow]⚠[/] {count} newer version(s) of '{artifact_id}' will be deleted, "
        "along with their suggestions."
    )
