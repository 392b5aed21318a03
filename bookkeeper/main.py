import logging
import os
from typing import Optional

import typer
from rich.console import Console

from bookkeeper.cli import CommandLoop
from bookkeeper.config import settings
from bookkeeper.database import BookStore, StoreError
from bookkeeper.library import Library
from bookkeeper.ui_helpers import echo, normalize_output_mode, print_book_list, print_dump

APP_NAME = "Bookkeeper"
DEFAULT_DB_NAME = "books.db"

logger = logging.getLogger(__name__)

app = typer.Typer(help="Bookkeeper - keep track of the books you read", add_completion=False)

LocationArgument = typer.Argument(
    None,
    help="Database file, or a directory to keep books.db in (default: BOOKKEEPER_DB_FILE)",
)


def resolve_location(location: Optional[str]) -> str:
    """Turn the user supplied location into an absolute database file path.

    Anything that does not end in ``.db`` is treated as a directory.
    """
    location = location or settings.db_file
    if os.path.splitext(location)[1] != ".db":
        location = os.path.join(location, DEFAULT_DB_NAME)
    return os.path.abspath(location)


def open_store(location: Optional[str]) -> BookStore:
    path = resolve_location(location)
    try:
        return BookStore.open(path, settings.bucket)
    except StoreError as e:
        logger.error(f"Could not open {path}: {e}")
        echo(Console(stderr=True), f"Failed to open the database at {path}\n{e}")
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: BOOKKEEPER_OUTPUT or rich)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level, e.g. INFO or DEBUG"),
):
    """Global options. Without a command the interactive session is started."""
    level = (log_level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING))
    ctx.obj = {"output": normalize_output_mode(output or settings.output)}
    if ctx.invoked_subcommand is None:
        _run_session(None, ctx.obj["output"])


def _run_session(location: Optional[str], output: str) -> None:
    store = open_store(location)
    try:
        console = Console()
        echo(console, f"{APP_NAME}: {store.count()} book(s) in {store.path}. Type 'help' for the command list.")
        CommandLoop(store, console=console, output=output).run()
    finally:
        store.close()


@app.command("run")
def cli_run(ctx: typer.Context, location: Optional[str] = LocationArgument):
    """Start the interactive session."""
    _run_session(location, ctx.obj["output"])


@app.command("list")
def cli_list(ctx: typer.Context, location: Optional[str] = LocationArgument):
    """Print all books sorted by start date."""
    store = open_store(location)
    try:
        books = Library(store).list_books()
    except StoreError as e:
        echo(Console(stderr=True), f"Failed to read the books\n{e}")
        raise typer.Exit(code=1)
    finally:
        store.close()
    print_book_list(Console(), books, ctx.obj["output"], settings.display_date_format)


@app.command("dump")
def cli_dump(location: Optional[str] = LocationArgument):
    """Dump every bucket of the database file as raw key/value pairs."""
    store = open_store(location)
    try:
        contents = store.dump_contents()
    except StoreError as e:
        echo(Console(stderr=True), f"Failed to read the database\n{e}")
        raise typer.Exit(code=1)
    finally:
        store.close()
    print_dump(Console(), contents)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
