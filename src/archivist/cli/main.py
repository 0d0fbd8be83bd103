"""Archivist CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer

from archivist.cli.ask import ask_cmd
from archivist.cli.collections import collections_cmd
from archivist.cli.ingest import ingest_cmd
from archivist.cli.init import init_cmd
from archivist.cli.remove import remove_cmd
from archivist.log import configure_logging


def _version() -> str:
    try:
        return importlib.metadata.version("archivist")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"archivist {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="archivist",
    help=(
        "Archivist — question answering over a document archive.\n\n"
        "  archivist init    Create the config files and an empty archive.\n"
        "  archivist ingest  Extract, chunk and embed documents into a collection.\n"
        "  archivist ask     Answer a question from the closest chunks."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log pipeline steps to stderr."),
    ] = False,
) -> None:
    """Archivist — question answering over a document archive."""
    configure_logging(logging.DEBUG if verbose else logging.WARNING)


app.command("init")(init_cmd)
app.command("ingest")(ingest_cmd)
app.command("ask")(ask_cmd)
app.command("collections")(collections_cmd)
app.command("remove")(remove_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Archivist version."""
    typer.echo(f"archivist {_version()}")


if __name__ == "__main__":
    app()
