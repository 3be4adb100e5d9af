import os
import pytest
import sqlite3
from tree_indexer.database.schema import init_schema
from tree_indexer.database.ops import DBOperations
from tree_indexer.metadata.classify import ContentClassifier

class FakeMagic:
    """Stands in for libmagic: answers from the descriptor's size only."""
    def __init__(self):
        self.calls = 0

    def from_descriptor(self, fd):
        self.calls += 1
        if os.fstat(fd).st_size == 0:
            return "application/x-empty; charset=binary"
        return "text/plain; charset=us-ascii"

class ListSink:
    """In-memory IndexSink that remembers every appended record."""
    def __init__(self):
        self.records = []
        self.commits = 0

    def append(self, record):
        self.records.append(record)

    def commit(self):
        self.commits += 1

class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    init_schema(c)
    try:
        yield c
    finally:
        c.close()

@pytest.fixture
def db_ops(conn):
    """Returns a DBOperations instance attached to the in-memory DB."""
    return DBOperations(conn)

@pytest.fixture
def fake_magic():
    return FakeMagic()

@pytest.fixture
def classifier(fake_magic):
    return ContentClassifier(engine=fake_magic)

@pytest.fixture
def sink():
    return ListSink()

@pytest.fixture
def tree(tmp_path):
    """A small tree: root/{a.txt, empty.bin, sub/{c.html}} kept apart from any index file."""
    root = tmp_path / "tree"
    root.mkdir()
    (root / "a.txt").write_text("alpha\n")
    (root / "empty.bin").write_bytes(b"")
    sub = root / "sub"
    sub.mkdir()
    (sub / "c.html").write_text("<html><body>hi</body></html>")
    return root
