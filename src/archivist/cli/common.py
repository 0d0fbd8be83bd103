"""Helpers shared by the archivist commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from archivist.cli.errors import err_config, err_no_api_key
from archivist.config import ArchivistConfig, ConfigError, load_config
from archivist.rag.llm_client import provider_of, validate_api_key

console = Console()


def load_config_or_exit() -> ArchivistConfig:
    """Load the layered config, or print the problem and exit 1."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: ArchivistConfig) -> Path:
    """--db flag wins over store.path from config."""
    return db if db is not None else Path(cfg.store.path)


def require_api_keys(*models: str) -> None:
    """Exit 1 with an actionable message if any model's API key is missing."""
    for model in models:
        try:
            validate_api_key(model)
        except EnvironmentError:
            console.print(err_no_api_key(provider_of(model)))
            raise typer.Exit(1)
