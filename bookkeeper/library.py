from dataclasses import replace
from datetime import date
from typing import Iterable, List, Union

from bookkeeper.book import BookEntry, BookState
from bookkeeper.database import Store

UPDATABLE_FIELDS = ("title", "author", "date_start", "date_end", "state")


class InvalidIndexError(LookupError):
    """Raised when a display index does not point at a listed book."""


def _start_date_key(entry: BookEntry) -> tuple:
    # Unspecified start dates sort before every real date
    if entry.date_start is None:
        return (0, date.min)
    return (1, entry.date_start)


def sort_by_start_date(entries: Iterable[BookEntry]) -> List[BookEntry]:
    """Books in display order: ascending start date, store order on ties."""
    return sorted(entries, key=_start_date_key)


def resolve_display_index(store: Store, display_index: int) -> BookEntry:
    """Return the book shown at 1-based ``display_index`` in the current listing.

    The listing is rebuilt from the store on every call, so the result always
    reflects adds and deletes made since the user last looked.
    """
    books = sort_by_start_date(store.get_all())
    position = display_index - 1
    if not books:
        raise InvalidIndexError(f"{display_index} is not a valid book number, the library is empty")
    if not 0 <= position < len(books):
        raise InvalidIndexError(f"{display_index} is not a valid book number (1-{len(books)})")
    return books[position]


class Library:
    """Book collection as the user sees it: sorted and addressed by display index."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def add_book(self, book: BookEntry) -> BookEntry:
        self.store.add(book)
        return book

    def list_books(self) -> List[BookEntry]:
        return sort_by_start_date(self.store.get_all())

    def find_book(self, display_index: int) -> BookEntry:
        return resolve_display_index(self.store, display_index)

    def remove_book(self, display_index: int) -> BookEntry:
        """Delete the book at ``display_index`` and return what was deleted."""
        book = resolve_display_index(self.store, display_index)
        self.store.delete_by_id(book.id)
        return book

    def update_book(self, display_index: int, field: str,
                    value: Union[str, date, BookState, None]) -> BookEntry:
        """Replace one field of the book at ``display_index``.

        The change is written under the book's internal id, never its position.
        """
        book = resolve_display_index(self.store, display_index)
        return self.change_field(book, field, value)

    def change_field(self, book: BookEntry, field: str,
                     value: Union[str, date, BookState, None]) -> BookEntry:
        """Write ``book`` back with one field replaced, keyed by ``book.id``."""
        if field not in UPDATABLE_FIELDS:
            raise ValueError(f"{field} is not an updatable field")
        updated = replace(book, **{field: value})
        self.store.update(updated)
        return updated

    def count(self) -> int:
        return self.store.count()
