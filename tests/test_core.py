import builtins
import sqlite3
import pytest
from datetime import date
from tree_indexer.config import ErrorPolicy, ScanSettings, resolve_index_path
from tree_indexer.core import TreeIndexerApp
from tree_indexer.exceptions import (
    ClassificationError, DigestError, IndexStorageError, StatMismatchError,
)
from tree_indexer.metadata import classify, extract
from tree_indexer.metadata.classify import ContentClassifier
from tree_indexer.scanning import filesystem

from conftest import FixedClock, ListSink

CONTENT_FIELDS = (
    "content_hash_a", "content_hash_b", "magic_mime_type", "magic_charset",
    "sniffed_mime_type", "sniffed_charset", "extension_mime_type",
)

def make_settings(root, tmp_path, **overrides):
    values = dict(
        root=root,
        index_path=tmp_path / "index" / "files.db",
        date_suffixed=False,
        show_progress=False,
    )
    values.update(overrides)
    return ScanSettings(**values)

def fail_open_for(monkeypatch, name):
    real_open = builtins.open

    def fake_open(path, *args, **kwargs):
        if str(path).endswith(name):
            raise PermissionError(13, "Permission denied", str(path))
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr(filesystem, "open", fake_open, raising=False)

def test_resolve_index_path():
    today = date(2024, 1, 31)
    resolved = resolve_index_path("files.db", True, today)
    assert resolved.is_absolute()
    assert resolved.name == "files-20240131.db"
    assert resolve_index_path("files.db", False, today).name == "files.db"
    assert resolve_index_path("index", True, today).name == "index-20240131"
    assert resolve_index_path("archive.tar.db", True, today).name == "archive.tar-20240131.db"
    assert resolve_index_path(".db", True, today).name == "-20240131.db"

def test_run_shares_lastseen(tree, tmp_path, classifier, sink):
    clock = FixedClock(1700000000.5)
    summary = TreeIndexerApp(make_settings(tree, tmp_path), classifier, clock=clock).index_into(sink)

    assert summary.records == 5
    assert summary.skipped == 0
    assert summary.lastseen == 1700000000
    assert {r.lastseen for r in sink.records} == {1700000000}
    assert sink.commits >= 1

def test_two_runs_append_duplicates(tmp_path, classifier):
    root = tmp_path / "one"
    root.mkdir()
    (root / "only.txt").write_text("same content")
    settings = make_settings(root, tmp_path)

    first, second = ListSink(), ListSink()
    TreeIndexerApp(settings, classifier, clock=FixedClock(1000.0)).index_into(first)
    TreeIndexerApp(settings, classifier, clock=FixedClock(2000.0)).index_into(second)

    rec1 = next(r for r in first.records if r.file == "only.txt")
    rec2 = next(r for r in second.records if r.file == "only.txt")

    for field in CONTENT_FIELDS:
        assert getattr(rec1, field) == getattr(rec2, field)
    assert rec1.inserted != rec2.inserted
    assert rec1.lastseen != rec2.lastseen

def test_run_writes_sqlite_index(tree, tmp_path, classifier):
    settings = make_settings(tree, tmp_path)
    app = TreeIndexerApp(settings, classifier, clock=FixedClock(1000.0))
    app.run()
    TreeIndexerApp(settings, classifier, clock=FixedClock(2000.0)).run()

    conn = sqlite3.connect(app.index_path)
    try:
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM files WHERE path = ?", (str(tree / "a.txt"),))
        assert cur.fetchone()[0] == 2
        cur.execute("SELECT DISTINCT lastseen FROM files ORDER BY lastseen")
        assert cur.fetchall() == [(1000,), (2000,)]
    finally:
        conn.close()

def test_date_suffixed_index(tree, tmp_path, classifier):
    settings = make_settings(tree, tmp_path, date_suffixed=True)
    app = TreeIndexerApp(settings, classifier, today=date(2023, 5, 6))
    summary = app.run()
    assert summary.index_path.name == "files-20230506.db"
    assert summary.index_path.exists()

def test_unreadable_file_aborts_run(monkeypatch, tree, tmp_path, classifier, sink):
    fail_open_for(monkeypatch, "empty.bin")
    app = TreeIndexerApp(make_settings(tree, tmp_path), classifier)

    with pytest.raises(DigestError):
        app.index_into(sink)

    # root and a.txt precede empty.bin; sub/ and c.html are never produced
    assert [r.file for r in sink.records] == ["tree", "a.txt"]
    # Records appended before the failure are still committed
    assert sink.commits == 1

def test_skip_policy_indexes_the_rest(monkeypatch, tree, tmp_path, classifier, sink):
    fail_open_for(monkeypatch, "empty.bin")
    settings = make_settings(tree, tmp_path, error_policy=ErrorPolicy.SKIP)

    summary = TreeIndexerApp(settings, classifier).index_into(sink)

    assert summary.skipped == 1
    assert summary.records == 4
    assert "empty.bin" not in {r.file for r in sink.records}
    assert "c.html" in {r.file for r in sink.records}

def test_classification_error_fatal_even_when_skipping(tree, tmp_path, sink):
    class Broken:
        def from_descriptor(self, fd):
            raise RuntimeError("not initialized")

    settings = make_settings(tree, tmp_path, error_policy=ErrorPolicy.SKIP)
    with pytest.raises(ClassificationError):
        TreeIndexerApp(settings, ContentClassifier(engine=Broken())).index_into(sink)

def test_stat_mismatch_fatal_even_when_skipping(classifier):
    def bogus_walk(root):
        yield root, object(), None

    scanner = filesystem.DiskScanner(classifier=classifier, error_policy=ErrorPolicy.SKIP, walker=bogus_walk)
    with pytest.raises(StatMismatchError):
        list(scanner.scan("/anywhere", lastseen=1))

def test_created_absent_on_platform_without_birth_time(monkeypatch, tree, tmp_path, classifier, sink):
    monkeypatch.setattr(extract, "PLATFORM_TIMESTAMP_SOURCE", extract.BasicTimestampSource())
    TreeIndexerApp(make_settings(tree, tmp_path), classifier).index_into(sink)
    assert sink.records
    assert all(r.created is None for r in sink.records)

def test_missing_libmagic_fails_before_index_is_created(monkeypatch, tree, tmp_path):
    monkeypatch.setattr(classify, "magic", None)
    app = TreeIndexerApp(make_settings(tree, tmp_path))

    with pytest.raises(ClassificationError):
        app.run()

    assert not app.index_path.exists()

def test_failed_commit_does_not_hide_original_error(monkeypatch, tree, tmp_path, classifier):
    class UnwritableSink(ListSink):
        def commit(self):
            raise IndexStorageError("disk full")

    fail_open_for(monkeypatch, "empty.bin")
    sink = UnwritableSink()
    with pytest.raises(DigestError):
        TreeIndexerApp(make_settings(tree, tmp_path), classifier).index_into(sink)

    assert [r.file for r in sink.records] == ["tree", "a.txt"]

def test_empty_digest_configuration_is_respected(tree, tmp_path, classifier, sink):
    settings = make_settings(tree, tmp_path, digests=())
    TreeIndexerApp(settings, classifier).index_into(sink)

    a = next(r for r in sink.records if r.file == "a.txt")
    assert a.content_hash_a is None and a.content_hash_b is None
    assert a.magic_mime_type == "text/plain"
