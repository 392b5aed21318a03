from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Dict, Optional, TypeVar

from rich.console import Console

from bookkeeper.book import BookEntry, BookState, InvalidInputError
from bookkeeper.config import Settings, settings as default_settings
from bookkeeper.database import Store, StoreError
from bookkeeper.library import InvalidIndexError, Library
from bookkeeper.ui_helpers import (
    echo,
    normalize_output_mode,
    print_book,
    print_book_list,
    print_help,
)
from bookkeeper.validators import (
    UPDATE_MENU,
    UPDATE_MENU_LABELS,
    TextValidator,
    date_parser,
    parse_index,
    parse_state,
    parse_update_field,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROMPT = "> "


class CommandLoop:
    """Interactive loop: read a command, run it, repeat until ``exit``.

    The loop never closes the store or exits the process itself; ``run`` simply
    returns and the caller is responsible for releasing the database.
    """

    def __init__(self, store: Store, console: Optional[Console] = None,
                 read_line: Optional[Callable[[str], str]] = None,
                 settings: Settings = default_settings, output: Optional[str] = None,
                 today: Optional[Callable[[], date]] = None) -> None:
        self.library = Library(store)
        self.console = console or Console()
        self.read_line = read_line or self.console.input
        self.settings = settings
        self.output = normalize_output_mode(output or settings.output)
        self.today = today or date.today
        self.handlers: Dict[str, Callable[[], None]] = {
            "add": self.handle_add,
            "list": self.handle_list,
            "show": self.handle_list,
            "delete": self.handle_delete,
            "update": self.handle_update,
            "help": self.handle_help,
        }

    # ------------------------- Loop ------------------------- #
    def run(self) -> None:
        try:
            while self.dispatch(self.read(PROMPT)):
                pass
        except (EOFError, KeyboardInterrupt):
            # End of input behaves like exit
            echo(self.console, "")
        logger.info("Command loop finished")

    def dispatch(self, line: str) -> bool:
        """Run one command. Returns False once the loop should stop."""
        command = line.strip()
        if not command:
            return True
        if command == "exit":
            return False

        handler = self.handlers.get(command)
        if handler is None:
            echo(self.console, f"{command} is not a valid command")
            return True

        try:
            handler()
        except InvalidIndexError as e:
            echo(self.console, f"{e}")
        except StoreError as e:
            logger.error(f"Command {command!r} failed: {e}")
            echo(self.console, f"Failed to {command} the book.\n{e}")
        return True

    def read(self, prompt: str) -> str:
        """Read one line, asking again when it is not valid text."""
        while True:
            try:
                return self.read_line(prompt)
            except UnicodeDecodeError as e:
                logger.warning(f"Unreadable input: {e}")
                echo(self.console, "Could not read input, it is not valid text. Please try again.")

    def ask(self, prompt: str, parser: Callable[[str], T]) -> T:
        """Prompt until ``parser`` accepts the answer and return the parsed value."""
        while True:
            raw = self.read(prompt)
            try:
                return parser(raw)
            except InvalidInputError as e:
                echo(self.console, f"{e}. Please try again.")

    # ------------------------- Field prompts ------------------------- #
    def _date_parser(self, allow_empty: bool) -> Callable[[str], Optional[date]]:
        return date_parser(
            self.settings.date_format,
            self.settings.unset_token,
            allow_empty=allow_empty,
            today=self.today(),
        )

    def ask_date(self, label: str, allow_empty: bool = True) -> Optional[date]:
        token = self.settings.unset_token
        if allow_empty:
            prompt = f"{label} (leave empty for the current day or {token} for an undefined date): "
        else:
            prompt = f"{label} ({token} for an undefined date): "
        return self.ask(prompt, self._date_parser(allow_empty))

    def ask_state(self) -> BookState:
        return self.ask("Reading State: ", parse_state)

    # ------------------------- Commands ------------------------- #
    def handle_add(self) -> None:
        title = self.ask("Title: ", TextValidator.parse_title)
        author = self.ask("Author: ", TextValidator.parse_author)
        date_start = self.ask_date("Start Date")
        date_end = self.ask_date("End Date")
        state = self.ask_state()

        book = BookEntry(title=title, author=author, date_start=date_start, date_end=date_end, state=state)
        self.library.add_book(book)
        echo(self.console, f"Added {book.title} by {book.author}")

    def handle_list(self) -> None:
        print_book_list(self.console, self.library.list_books(), self.output, self.settings.display_date_format)

    def handle_delete(self) -> None:
        index = self.ask("Select a book number to delete: ", parse_index)
        book = self.library.remove_book(index)
        echo(self.console, f"Deleted {book.title} by {book.author}")

    def handle_update(self) -> None:
        index = self.ask("Select a book number to update: ", parse_index)
        book = self.library.find_book(index)
        if self.output == "rich":
            print_book(self.console, book, "📖 Selected Book", self.settings.display_date_format)

        echo(self.console, "Which property do you want to change?")
        for key, field in UPDATE_MENU.items():
            echo(self.console, f"{key}. {UPDATE_MENU_LABELS[field]}")
        field = self.ask("Property: ", parse_update_field)

        if field == "title":
            value = self.ask("Title: ", TextValidator.parse_title)
        elif field == "author":
            value = self.ask("Author: ", TextValidator.parse_author)
        elif field == "date_start":
            value = self.ask_date("Start Date", allow_empty=False)
        elif field == "date_end":
            value = self.ask_date("End Date", allow_empty=False)
        else:
            value = self.ask_state()

        updated = self.library.change_field(book, field, value)
        echo(self.console, f"Updated {UPDATE_MENU_LABELS[field]} of {updated.title}")

    def handle_help(self) -> None:
        print_help(self.console)
