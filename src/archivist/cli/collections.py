"""archivist collections — list collections, their documents, or drop one.

Usage:
  archivist collections
  archivist collections --documents
  archivist collections --drop old_reports --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from archivist.cli.common import console, load_config_or_exit, resolve_db
from archivist.cli.errors import err_no_db, err_unknown_collection
from archivist.pipeline import Archive


def collections_cmd(
    documents: Annotated[
        bool,
        typer.Option("--documents", help="List the document ids stored in each collection."),
    ] = False,
    drop: Annotated[
        str | None,
        typer.Option("--drop", help="Delete this collection and all of its entries."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the archive database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt for --drop."),
    ] = False,
) -> None:
    """Show every collection in the archive."""
    cfg = load_config_or_exit()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    with Archive.open(cfg, db_path=db_path) as archive:
        if drop is not None:
            _drop(archive, drop, yes)
            return

        handles = archive.collections()
        if not handles:
            console.print("[yellow]No collections yet.[/]  Run:  archivist ingest --source <document.pdf>")
            return

        table = Table(title=f"Collections in {db_path}")
        table.add_column("Collection", style="bold")
        table.add_column("Entries", justify="right")
        table.add_column("Documents", justify="right")
        table.add_column("Dimensions", justify="right")
        table.add_column("Embedding model")
        for handle in handles:
            table.add_row(
                handle.name,
                f"{handle.count():,}",
                str(len(handle.documents())),
                str(handle.dimensions),
                handle.embedding_model,
            )
        console.print(table)

        if documents:
            for handle in handles:
                console.print(f"\n[bold]{handle.name}[/]")
                for document_id, count in handle.documents():
                    console.print(f"  {document_id}  [dim]({count} entries)[/]")


def _drop(archive: Archive, name: str, yes: bool) -> None:
    available = archive.registry.names()
    if name not in available:
        console.print(err_unknown_collection(name, available))
        raise typer.Exit(1)

    handle = archive.registry.get(name)
    console.print(f"\nDrop collection: [bold]{name}[/]")
    console.print(f"  Entries: {handle.count()}  Documents: {len(handle.documents())}")
    if not yes:
        if not typer.confirm("Confirm drop?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    archive.drop_collection(name)
    console.print(f"\n[green]✓[/] Dropped collection: {name}")
