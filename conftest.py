import os
from typing import List

import pytest

from bookkeeper.book import BookEntry
from bookkeeper.database import BookStore, NotFoundError
from bookkeeper.library import Library


class FakeStore:
    """In-memory stand-in for BookStore, used by the command loop tests."""

    def __init__(self) -> None:
        self.records = {}
        self.sequence = 0
        self.closed = False

    def add(self, entry: BookEntry) -> int:
        self.sequence += 1
        entry.id = self.sequence
        self.records[entry.id] = BookEntry.from_dict(entry.to_dict())
        return entry.id

    def delete_by_id(self, book_id: int) -> None:
        if book_id not in self.records:
            raise NotFoundError(f"No book stored with id {book_id}")
        del self.records[book_id]

    def update(self, entry: BookEntry) -> None:
        if entry.id not in self.records:
            raise NotFoundError(f"No book stored with id {entry.id}")
        self.records[entry.id] = BookEntry.from_dict(entry.to_dict())

    def get_all(self) -> List[BookEntry]:
        return [BookEntry.from_dict(self.records[k].to_dict()) for k in sorted(self.records)]

    def count(self) -> int:
        return len(self.records)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file for every test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def store(db_file):
    store = BookStore.open(db_file)
    yield store
    store.close()
    if os.path.exists(db_file):
        os.remove(db_file)


@pytest.fixture
def lib(store):
    return Library(store)


@pytest.fixture
def fake_store():
    return FakeStore()
