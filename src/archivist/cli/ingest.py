"""archivist ingest — extract, clean, chunk and embed documents into a collection.

  archivist ingest --source report.pdf
  archivist ingest -s a.pdf -s b.pdf --collection constitutions
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from archivist.cli.common import console, load_config_or_exit, require_api_keys, resolve_db
from archivist.cli.errors import err_document_unreadable, err_no_source, err_upstream
from archivist.errors import InvalidInputError, UpstreamServiceError
from archivist.pipeline import Archive, document_id_for


def ingest_cmd(
    source: Annotated[
        list[str] | None,
        typer.Option("--source", "-s", help="Document path (repeatable)."),
    ] = None,
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Target collection (default: store.collection)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the archive database (created if missing)."),
    ] = None,
) -> None:
    """Ingest one or more documents into a collection."""
    sources = source or []
    if not sources:
        console.print(err_no_source())
        raise typer.Exit(1)

    cfg = load_config_or_exit()
    require_api_keys(cfg.embedding.model)
    name = collection or cfg.store.collection

    failures = 0
    with Archive.open(cfg, db_path=resolve_db(db, cfg)) as archive:
        for src in sources:
            console.print(f"\n[bold]→ {src}[/]")
            if not Path(src).is_file():
                console.print(err_document_unreadable(src))
                failures += 1
                continue
            try:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    transient=True,
                    console=console,
                ) as prog:
                    prog.add_task("Extracting, chunking and embedding…", total=None)
                    handle = archive.ingest(src, name)
            except InvalidInputError:
                console.print(err_document_unreadable(src))
                failures += 1
                continue
            except UpstreamServiceError as exc:
                console.print(err_upstream(exc))
                failures += 1
                continue

            stored = dict(handle.documents()).get(document_id_for(src), 0)
            console.print(
                f"  [green]✓[/] {stored} chunks stored in '{handle.name}' "
                f"({handle.count()} entries total)"
            )

    if failures:
        console.print(f"\n[red]{failures} of {len(sources)} document(s) failed.[/]")
        raise typer.Exit(1)
