import sqlite3
from typing import Protocol

from ..exceptions import IndexStorageError
from ..models import RECORD_FIELDS, FingerprintRecord

_INSERT_SQL = "INSERT INTO files ({cols}) VALUES ({marks})".format(
    cols=", ".join(RECORD_FIELDS),
    marks=", ".join("?" for _ in RECORD_FIELDS),
)


class IndexSink(Protocol):
    """Append-only persistence: one record per call, no reads, updates or deletes."""

    def append(self, record: FingerprintRecord) -> None:
        ...


class DBOperations:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def append(self, rec: FingerprintRecord) -> None:
        """
        Inserts a new row for the record. Never looks up or replaces an
        existing row: scanning the same tree twice yields two rows per path.
        """
        values = tuple(getattr(rec, name) for name in RECORD_FIELDS)
        try:
            self.conn.execute(_INSERT_SQL, values)
        except sqlite3.Error as e:
            raise IndexStorageError(f"Failed to append {rec.path}: {e}") from e

    def commit(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.Error as e:
            raise IndexStorageError(f"Failed to commit index: {e}") from e
