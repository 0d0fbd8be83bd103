"""archivist ask — answer a question from the closest chunks of a collection."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from archivist.cli.common import console, load_config_or_exit, require_api_keys, resolve_db
from archivist.cli.errors import err_no_db, err_unknown_collection, err_upstream
from archivist.errors import InvalidInputError, UpstreamServiceError
from archivist.pipeline import Archive, NotFoundResult


def ask_cmd(
    question: Annotated[str, typer.Argument(help="The question to answer.")],
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Collection to search (default: store.collection)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the archive database."),
    ] = None,
    show_context: Annotated[
        bool,
        typer.Option("--show-context", help="Also print the ranked chunks used as context."),
    ] = False,
) -> None:
    """Answer QUESTION from the documents in a collection."""
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

        require_api_keys(cfg.embedding.model, cfg.generation.model)
        try:
            result = archive.query(question, name)
        except InvalidInputError as exc:
            console.print(f"[red]Error:[/] {exc}")
            raise typer.Exit(1)
        except UpstreamServiceError as exc:
            console.print(err_upstream(exc))
            raise typer.Exit(1)

    if isinstance(result, NotFoundResult):
        console.print(f"[yellow]{result}[/]")
        return

    console.print(result.answer)

    if show_context:
        table = Table(title="Context", show_lines=False)
        table.add_column("#", justify="right")
        table.add_column("Entry")
        table.add_column("Distance", justify="right")
        table.add_column("Text")
        for i, src in enumerate(result.sources, start=1):
            preview = src.text if len(src.text) <= 80 else src.text[:77] + "..."
            table.add_row(str(i), src.entry_id or "-", f"{src.distance:.4f}", preview)
        console.print(table)
