"""archivist remove — delete a document's entries from a collection.

Usage:
  archivist remove --document South_Africa_2012
  archivist remove --document South_Africa_2012_3f9a1c2e
  archivist remove --document reports/South_Africa_2012.pdf --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from archivist.cli.common import console, load_config_or_exit, resolve_db
from archivist.cli.errors import (
    err_ambiguous_document,
    err_document_not_found,
    err_no_db,
    err_unknown_collection,
)
from archivist.errors import InvalidInputError
from archivist.pipeline import Archive, resolve_document


def remove_cmd(
    document: Annotated[
        str,
        typer.Option("--document", "-d", help="Document id or the path it was ingested from."),
    ],
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Collection (default: store.collection)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the archive database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a document and all its chunks from a collection."""
    cfg = load_config_or_exit()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    name = collection or cfg.store.collection

    with Archive.open(cfg, db_path=db_path) as archive:
        available = archive.registry.names()
        if name not in available:
            console.print(err_unknown_collection(name, available))
            raise typer.Exit(1)

        try:
            document_id = resolve_document(archive.registry.get(name), document)
        except InvalidInputError as exc:
            console.print(err_ambiguous_document(str(exc)))
            raise typer.Exit(1)
        if document_id is None:
            console.print(err_document_not_found(document, name))
            raise typer.Exit(0)
        entry_count = dict(archive.registry.get(name).documents())[document_id]

        console.print(f"\nRemove document: [bold]{document_id}[/] from '{name}'")
        console.print(f"  Entries: {entry_count}")

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        removed = archive.remove(document_id, name)

    console.print(f"\n[green]✓[/] Removed: {document_id} ({removed} entries deleted)")
