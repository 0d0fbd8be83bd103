"""Archivist rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from archivist.cli.errors import err_no_api_key, err_no_db
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from archivist.errors import UpstreamServiceError, UpstreamTimeoutError


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
        "huggingface": "HUGGINGFACE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".archivist.db") -> str:
    """No archive database at *db_path*."""
    return (
        f"[red]Error:[/] No archive database found at '{db_path}'.\n"
        "  Run:  archivist ingest --source <document.pdf>"
    )


def err_no_source() -> str:
    return (
        "[red]Error:[/] No --source specified.\n"
        "  Use:  archivist ingest --source <document.pdf>"
    )


def err_unknown_collection(name: str, available: list[str]) -> str:
    """Collection *name* does not exist in the archive."""
    listed = ", ".join(available) if available else "(none)"
    return (
        f"[red]Error:[/] Collection '{name}' does not exist.\n"
        f"  Available collections: {listed}\n"
        f"  Run:  archivist ingest --source <document.pdf> --collection {name}"
    )


def err_document_unreadable(path: str) -> str:
    """No text could be extracted from *path*."""
    return (
        f"[red]Error:[/] No text could be extracted from '{path}'.\n"
        "  Check that the file exists and is a readable, text-based PDF or text file,\n"
        "  then run the ingest again."
    )


def err_document_not_found(document: str, collection: str) -> str:
    return (
        f"[yellow]Document not found:[/] '{document}' has no entries in '{collection}'.\n"
        "  Run:  archivist collections  to see what is stored."
    )


def err_upstream(exc: UpstreamServiceError) -> str:
    """An external service (embedding, store, synthesis) failed."""
    if isinstance(exc, UpstreamTimeoutError):
        return (
            f"[red]Error:[/] The {exc.service} service timed out: {exc}\n"
            "  Retry later, or raise the timeout in archivist.yaml."
        )
    return (
        f"[red]Error:[/] The {exc.service} service failed: {exc}\n"
        "  Check your API key and network connection, then retry."
    )


def err_config(message: str) -> str:
    """Config file is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration.\n  {message}\n"
        "  Fix archivist.yaml (or ~/.archivist/config.yaml) and retry."
    )


def err_ambiguous_document(message: str) -> str:
    """A document id without its hash suffix matched several documents."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Pass the full document id shown by:  archivist collections --documents"
    )
