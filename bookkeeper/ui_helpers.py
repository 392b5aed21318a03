import json
from datetime import date
from typing import Dict, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bookkeeper.book import BookEntry
from bookkeeper.database import btoi

# Allowed values: 'plain', 'json', 'rich' (default)
OUTPUT_MODES = ("plain", "json", "rich")
UNSPECIFIED = "unspecified"

COMMANDS = [
    ("add", "adds a book to the database"),
    ("list", "lists books in the database (alias: show)"),
    ("delete", "removes a book from the database"),
    ("update", "changes one property of a book"),
    ("help", "shows this message"),
    ("exit", "exits from the program"),
]


def normalize_output_mode(mode: Optional[str]) -> str:
    mode = (mode or "").lower().strip()
    if mode in OUTPUT_MODES:
        return mode
    # Unknown values fall back to the default
    return "rich"


def echo(console: Console, text: str) -> None:
    """Print ``text`` as is: no markup, no highlighting, no wrapping."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def format_date(value: Optional[date], display_format: str = "%d %B %Y") -> str:
    if value is None:
        return UNSPECIFIED
    return value.strftime(display_format)


def print_book_list(console: Console, books: List[BookEntry], mode: str = "rich",
                    display_format: str = "%d %B %Y") -> None:
    """Print the listing with 1-based display indexes.

    - plain: 'N. Title by Author | start - end | state' lines
    - json: array of objects including the index
    - rich: a Rich table
    """
    if not books:
        echo(console, "No books in library.")
        return

    if mode == "json":
        payload = [dict(book.to_dict(), index=i) for i, book in enumerate(books, 1)]
        echo(console, json.dumps(payload, ensure_ascii=False))
    elif mode == "plain":
        for i, book in enumerate(books, 1):
            start = format_date(book.date_start, display_format)
            end = format_date(book.date_end, display_format)
            echo(console, f"{i}. {book.title} by {book.author} | {start} - {end} | {book.state.value}")
    else:
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("Index", style="magenta", justify="right", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Start Date", style="green")
        table.add_column("End Date", style="green")
        table.add_column("Reading State", style="yellow")
        for i, book in enumerate(books, 1):
            table.add_row(
                str(i),
                escape(book.title),
                escape(book.author),
                format_date(book.date_start, display_format),
                format_date(book.date_end, display_format),
                book.state.value,
            )
        console.print(table)


def print_book(console: Console, book: BookEntry, title: str, display_format: str = "%d %B %Y",
               border_style: str = "green") -> None:
    console.print(Panel.fit(
        f"[bold]Title:[/] {escape(book.title)}\n"
        f"[bold]Author:[/] {escape(book.author)}\n"
        f"[bold]Start Date:[/] {format_date(book.date_start, display_format)}\n"
        f"[bold]End Date:[/] {format_date(book.date_end, display_format)}\n"
        f"[bold]Reading State:[/] {book.state.value}",
        title=title,
        border_style=border_style,
    ))


def print_help(console: Console) -> None:
    echo(console, "Available commands:")
    for name, description in COMMANDS:
        echo(console, f"{name}: {description}")


def _format_key(key: bytes) -> str:
    # Book keys are 8-byte ids; anything else is shown as hex
    if len(key) == 8:
        return str(btoi(key))
    return key.hex()


def print_dump(console: Console, contents: Dict[str, List[Tuple[bytes, bytes]]]) -> None:
    """Print every bucket with its raw key/value pairs."""
    for name, pairs in contents.items():
        echo(console, f"Bucket name: {name}\n----------")
        for key, value in pairs:
            echo(console, f"Key: {_format_key(key)}")
            echo(console, f"Value: {bytes(value).decode('utf-8', errors='replace')}")
        echo(console, "\n~~~~~~~~~~\n")
