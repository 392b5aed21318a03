import re
from datetime import date
from typing import Callable, Optional

from bookkeeper.book import BookState, InvalidInputError, parse_date_input, validate_state

UPDATE_MENU = {
    "1": "title",
    "2": "author",
    "3": "date_start",
    "4": "date_end",
    "5": "state",
}

UPDATE_MENU_LABELS = {
    "title": "title",
    "author": "author",
    "date_start": "start date",
    "date_end": "end date",
    "state": "state",
}


class TextValidator:
    """Parsers for the free text fields of a book."""

    @staticmethod
    def _non_empty(text: str, name: str) -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidInputError(f"{name} cannot be empty")
        try:
            cleaned.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidInputError(f"{name} contains characters that are not valid text") from None
        return cleaned

    @staticmethod
    def parse_title(text: str) -> str:
        return TextValidator._non_empty(text, "Title")

    @staticmethod
    def parse_author(text: str) -> str:
        return TextValidator._non_empty(text, "Author")


def parse_state(text: str) -> BookState:
    return validate_state(text.strip())


def parse_index(text: str) -> int:
    """A book number as typed by the user. Range is checked against the store later."""
    cleaned = text.strip()
    # int() would also take "+2" or "1_0"
    if not re.fullmatch(r"-?[0-9]+", cleaned):
        raise InvalidInputError(f"{text} is not a valid book number")
    return int(cleaned)


def parse_update_field(text: str) -> str:
    """Accept either the menu number or the property name."""
    cleaned = text.strip().lower()
    if cleaned in UPDATE_MENU:
        return UPDATE_MENU[cleaned]
    for field, label in UPDATE_MENU_LABELS.items():
        if cleaned in (field, label):
            return field
    raise InvalidInputError(f"{text} is not a valid property")


def date_parser(date_format: str, unset_token: str, allow_empty: bool = True,
                today: Optional[date] = None) -> Callable[[str], Optional[date]]:
    """Build a date parser for one prompt.

    With ``allow_empty`` false an empty answer is refused instead of meaning today;
    the update flow uses this since the field already holds a value.
    """
    def parse(text: str) -> Optional[date]:
        text = text.strip()
        if not text and not allow_empty:
            raise InvalidInputError(f"Please enter a date or {unset_token} for an undefined date")
        return parse_date_input(text, date_format, unset_token, today=today)
    return parse
