import logging
import sqlite3
import struct
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from bookkeeper.book import BookEntry

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "store"
MAX_ID = 2 ** 64 - 1


class StoreError(Exception):
    """Raised when the underlying database cannot complete an operation."""


class NotFoundError(StoreError, LookupError):
    """Raised when no record is stored under the requested id."""


class Store(Protocol):
    """Operations the command loop and index translation rely on."""

    def add(self, entry: BookEntry) -> int: ...

    def delete_by_id(self, book_id: int) -> None: ...

    def update(self, entry: BookEntry) -> None: ...

    def get_all(self) -> List[BookEntry]: ...

    def count(self) -> int: ...

    def close(self) -> None: ...


def itob(value: int) -> bytes:
    """Return the 8-byte big endian representation of ``value``.

    Big endian keeps byte-wise key order identical to numeric id order.
    """
    return struct.pack(">Q", value)


def btoi(raw: bytes) -> int:
    return struct.unpack(">Q", raw)[0]


def _key(book_id: int) -> bytes:
    # Ids outside the 8-byte range can never have been stored
    if not 0 <= book_id <= MAX_ID:
        raise NotFoundError(f"No book stored with id {book_id}")
    return itob(book_id)


class BookStore:
    """Book records kept in one named bucket of an sqlite file.

    sqlite is used as an ordered key-value engine: every bucket is a row in
    ``buckets`` carrying its own id sequence, and every record is a
    ``(bucket, key, value)`` row in ``entries`` where the key is the 8-byte
    big endian id and the value is the JSON encoded entry.
    """

    def __init__(self, path: str, bucket: str = DEFAULT_BUCKET) -> None:
        self.path = path
        self.bucket = bucket
        self._conn: Optional[sqlite3.Connection] = None

    @classmethod
    def open(cls, path: str, bucket: str = DEFAULT_BUCKET) -> "BookStore":
        """Open (or create) the database file and make sure the bucket exists."""
        store = cls(path, bucket)
        store.connect()
        return store

    def connect(self) -> None:
        if self._conn is not None:
            return
        conn = None
        try:
            conn = sqlite3.connect(self.path)
            self._create_tables(conn)
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise StoreError(f"Could not open database {self.path}: {e}") from e
        self._conn = conn
        logger.info(f"Opened book store at {self.path} (bucket={self.bucket})")

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS buckets (
                    name TEXT PRIMARY KEY,
                    sequence INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS entries (
                    bucket TEXT NOT NULL,
                    key BLOB NOT NULL,
                    value BLOB NOT NULL,
                    PRIMARY KEY (bucket, key)
                )
            """)
            conn.execute("INSERT OR IGNORE INTO buckets (name, sequence) VALUES (?, 0)", (self.bucket,))

    def close(self) -> None:
        """Release the database file. Calling it again does nothing."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"Could not close database {self.path}: {e}") from e
        finally:
            self._conn = None
        logger.info(f"Closed book store at {self.path}")

    @property
    def closed(self) -> bool:
        return self._conn is None

    def __enter__(self) -> "BookStore":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------- Helpers ------------------------- #
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(f"Database {self.path} is not open")
        return self._conn

    def _require_bucket(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("SELECT 1 FROM buckets WHERE name = ?", (self.bucket,)).fetchone()
        if row is None:
            raise StoreError(f"Failed to retrieve the {self.bucket} bucket")

    def _next_sequence(self, conn: sqlite3.Connection) -> int:
        conn.execute("UPDATE buckets SET sequence = sequence + 1 WHERE name = ?", (self.bucket,))
        row = conn.execute("SELECT sequence FROM buckets WHERE name = ?", (self.bucket,)).fetchone()
        return row[0]

    # ------------------------- Core operations ------------------------- #
    def add(self, entry: BookEntry) -> int:
        """Store ``entry`` under a fresh id and return that id.

        Any id already set on the entry is overwritten.
        """
        conn = self._connection()
        try:
            with conn:
                self._require_bucket(conn)
                book_id = self._next_sequence(conn)
                stored = replace(entry, id=book_id)
                conn.execute(
                    "INSERT INTO entries (bucket, key, value) VALUES (?, ?, ?)",
                    (self.bucket, itob(book_id), stored.to_json()),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to add a book to the collection: {e}") from e
        except (TypeError, ValueError) as e:
            raise StoreError(f"Failed to serialize the book: {e}") from e
        entry.id = book_id
        logger.info(f"Added book {book_id}: {entry.title!r}")
        return book_id

    def delete_by_id(self, book_id: int) -> None:
        conn = self._connection()
        try:
            with conn:
                self._require_bucket(conn)
                cursor = conn.execute(
                    "DELETE FROM entries WHERE bucket = ? AND key = ?",
                    (self.bucket, _key(book_id)),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"No book stored with id {book_id}")
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete book {book_id}: {e}") from e
        logger.info(f"Deleted book {book_id}")

    def update(self, entry: BookEntry) -> None:
        """Replace the stored record with the same id as ``entry``."""
        conn = self._connection()
        try:
            with conn:
                self._require_bucket(conn)
                cursor = conn.execute(
                    "UPDATE entries SET value = ? WHERE bucket = ? AND key = ?",
                    (entry.to_json(), self.bucket, _key(entry.id)),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"No book stored with id {entry.id}")
        except sqlite3.Error as e:
            raise StoreError(f"Failed to update book {entry.id}: {e}") from e
        except (TypeError, ValueError) as e:
            raise StoreError(f"Failed to serialize book {entry.id}: {e}") from e
        logger.info(f"Updated book {entry.id}")

    def get(self, book_id: int) -> BookEntry:
        conn = self._connection()
        try:
            self._require_bucket(conn)
            row = conn.execute(
                "SELECT value FROM entries WHERE bucket = ? AND key = ?",
                (self.bucket, _key(book_id)),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read book {book_id}: {e}") from e
        if row is None:
            raise NotFoundError(f"No book stored with id {book_id}")
        try:
            return BookEntry.from_json(row[0])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreError(f"Book {book_id} is corrupt: {e}") from e

    def get_all(self) -> List[BookEntry]:
        """Every readable record, in id order. Corrupt records are skipped."""
        conn = self._connection()
        try:
            self._require_bucket(conn)
            rows = conn.execute(
                "SELECT key, value FROM entries WHERE bucket = ? ORDER BY key",
                (self.bucket,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read the {self.bucket} bucket: {e}") from e

        books: List[BookEntry] = []
        for key, value in rows:
            try:
                books.append(BookEntry.from_json(value))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed entry {btoi(key)}: {e}")
        return books

    def count(self) -> int:
        """Number of stored records, or 0 when the database can't be read."""
        try:
            conn = self._connection()
            row = conn.execute(
                "SELECT COUNT(*) FROM entries WHERE bucket = ?", (self.bucket,)
            ).fetchone()
            return row[0]
        except (StoreError, sqlite3.Error) as e:
            logger.warning(f"Could not count books: {e}")
            return 0

    # ------------------------- Diagnostics ------------------------- #
    def buckets(self) -> List[str]:
        conn = self._connection()
        try:
            return [row[0] for row in conn.execute("SELECT name FROM buckets ORDER BY name")]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list buckets: {e}") from e

    def iter_raw(self, bucket: str) -> Iterator[Tuple[bytes, bytes]]:
        conn = self._connection()
        try:
            rows = conn.execute(
                "SELECT key, value FROM entries WHERE bucket = ? ORDER BY key", (bucket,)
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read the {bucket} bucket: {e}") from e
        yield from rows

    def dump_contents(self) -> Dict[str, List[Tuple[bytes, bytes]]]:
        """Raw key/value pairs of every bucket in the file."""
        return {name: list(self.iter_raw(name)) for name in self.buckets()}
