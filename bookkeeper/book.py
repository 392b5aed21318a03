from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class InvalidInputError(ValueError):
    """Input that can be fixed by asking the user again."""


class InvalidStateError(InvalidInputError):
    pass


class InvalidDateFormatError(InvalidInputError):
    pass


class BookState(str, Enum):
    """Reading state of a single book."""
    READING = "reading"
    FINISHED = "finished"
    DROPPED = "dropped"
    # No longer reading it, but might come back to it
    SUSPENDED = "suspended"
    REREADING = "re-reading"

    def __str__(self) -> str:
        return self.value


def validate_state(raw: str) -> BookState:
    """Return the BookState named by ``raw``. Matching is exact and case-sensitive."""
    for state in BookState:
        if state.value == raw:
            return state
    raise InvalidStateError(f"{raw} is not a valid book state")


def parse_date_input(raw: str, date_format: str = "%d-%m-%Y", unset_token: str = "???",
                     today: date | None = None) -> date | None:
    """Turn a date typed at the prompt into a date.

    - anything starting with ``unset_token`` means "unspecified" and yields None
    - a non-empty string must match ``date_format`` exactly
    - an empty string means today
    """
    if raw.startswith(unset_token):
        return None
    if raw:
        try:
            parsed = datetime.strptime(raw, date_format).date()
        except ValueError as e:
            raise InvalidDateFormatError(f"Couldn't parse the date: {raw}") from e
        # strptime accepts "1-2-2020" for "%d-%m-%Y"; require the zero padded form
        if parsed.strftime(date_format) != raw:
            raise InvalidDateFormatError(f"Couldn't parse the date: {raw}")
        return parsed
    return today or date.today()


def _date_to_str(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _date_from_str(value: str | None) -> date | None:
    if value is None:
        return None
    return date.fromisoformat(value)


@dataclass
class BookEntry:
    """A single tracked book.

    ``id`` is assigned by the store when the entry is added; whatever the caller
    puts there beforehand is ignored.
    """
    title: str
    author: str
    date_start: date | None = None
    date_end: date | None = None
    state: BookState = BookState.READING
    id: int = 0

    def __post_init__(self) -> None:
        self.title = self.title.strip()
        self.author = self.author.strip()
        if not isinstance(self.state, BookState):
            self.state = validate_state(self.state)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.state})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "date_start": _date_to_str(self.date_start),
            "date_end": _date_to_str(self.date_end),
            "state": self.state.value,
        }

    @staticmethod
    def from_dict(data: dict) -> "BookEntry":
        return BookEntry(
            title=data["title"],
            author=data["author"],
            date_start=_date_from_str(data.get("date_start")),
            date_end=_date_from_str(data.get("date_end")),
            state=validate_state(data["state"]),
            id=int(data["id"]),
        )

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @staticmethod
    def from_json(raw: bytes) -> "BookEntry":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("book entry must be a JSON object")
        return BookEntry.from_dict(data)
