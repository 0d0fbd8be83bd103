"""archivist init — set up an archive in the current directory.

Creates:
  archivist.yaml           — project config (store, chunking, retrieval)
  .archivist.db            — empty archive with schema (store.path)
  ~/.archivist/config.yaml — global model config (created once, mode 0o600)

Existing files are left untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from archivist.cli.common import console, load_config_or_exit, resolve_db
from archivist.config import ensure_global_config
from archivist.db.connection import Database
from archivist.db.schema import initialize

_PROJECT_CONFIG = (
    "# Archivist project configuration.\n"
    "# Model defaults live in ~/.archivist/config.yaml; API keys in the environment.\n"
    "\n"
    "store:\n"
    "  path: .archivist.db\n"
    "  collection: pdf_data\n"
    "\n"
    "chunking:\n"
    "  chunk_size: 500\n"
    "\n"
    "retrieval:\n"
    "  top_k: 5\n"
    "  context_window: 3\n"
)


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the archive database."),
    ] = None,
) -> None:
    """Create the config files and an empty archive database."""
    console.print("\n[bold]Archivist — setting up[/]\n")

    project_cfg = Path("archivist.yaml")
    if project_cfg.exists():
        console.print(f"  [dim]-[/] {project_cfg} (kept)")
    else:
        project_cfg.write_text(_PROJECT_CONFIG, encoding="utf-8")
        console.print(f"  [green]✓[/] {project_cfg}")

    cfg_path = ensure_global_config()
    console.print(f"  [green]✓[/] {cfg_path} (global config)")

    cfg = load_config_or_exit()
    db_path = resolve_db(db, cfg)
    existed = db_path.exists()
    conn = Database(db_path).connect()
    initialize(conn)
    conn.close()
    console.print(f"  [green]✓[/] {db_path}" + (" (kept)" if existed else ""))

    console.print("\nNext steps:")
    console.print("  1. archivist ingest --source <document.pdf>")
    console.print("  2. archivist ask \"<question>\"")
