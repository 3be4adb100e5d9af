import logging
import os
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from tqdm import tqdm

from .config import ScanSettings, resolve_index_path
from . import config
from .database.db import DBManager
from .database.ops import DBOperations, IndexSink
from .exceptions import IndexStorageError
from .metadata.classify import ContentClassifier
from .scanning.filesystem import DiskScanner
from .scanning.hasher import DEFAULT_DIGESTS


@dataclass(frozen=True)
class ScanSummary:
    index_path: Path
    lastseen: int
    records: int
    skipped: int


class TreeIndexerApp:
    def __init__(self,
                 settings: ScanSettings,
                 classifier: Optional[ContentClassifier] = None,
                 clock: Callable[[], float] = time.time,
                 today: Optional[date] = None):
        self.settings = settings
        self.classifier = classifier
        self.clock = clock
        self.index_path = resolve_index_path(settings.index_path, settings.date_suffixed, today)

    def run(self) -> ScanSummary:
        """
        Executes one indexing run.
        1. Build the scanner (opens the signature engine, checks digest routing)
        2. Open the index (schema is created on connect)
        3. Fix the run-start timestamp
        4. Walk, fingerprint and append every entry
        """
        scanner = self.build_scanner()
        with DBManager(self.index_path) as conn:
            return self.index_into(DBOperations(conn), scanner)

    def build_scanner(self) -> DiskScanner:
        """
        Raises ClassificationError before any index is touched when libmagic
        cannot be opened.
        """
        digests = DEFAULT_DIGESTS if self.settings.digests is None else self.settings.digests
        scanner = DiskScanner(
            digests=digests,
            classifier=self.classifier,
            error_policy=self.settings.error_policy,
            clock=self.clock,
        )
        scanner.classifier.open_engine()
        return scanner

    def index_into(self, sink: IndexSink, scanner: Optional[DiskScanner] = None) -> ScanSummary:
        """
        Streams records for the configured root into sink.

        Records appended before a fatal error are committed before the
        error propagates.
        """
        scanner = scanner or self.build_scanner()
        root = os.path.abspath(self.settings.root)
        lastseen = int(self.clock())

        logging.info(f"Indexing {root} -> {self.index_path} (run {lastseen})")
        count = 0
        try:
            records = scanner.scan(root, lastseen)
            for record in tqdm(records, desc="Indexing", unit="file",
                               disable=not self.settings.show_progress):
                sink.append(record)
                count += 1
                if count % config.COMMIT_INTERVAL == 0:
                    self._commit(sink)
        except BaseException:
            # Keep the original failure; a failing commit here is only logged
            try:
                self._commit(sink)
            except IndexStorageError as commit_err:
                logging.error(f"Commit after failed run also failed: {commit_err}")
            raise
        self._commit(sink)

        logging.info(f"Scan complete. Indexed {count} entries, skipped {scanner.skipped}.")
        return ScanSummary(self.index_path, lastseen, count, scanner.skipped)

    def _commit(self, sink: IndexSink):
        commit = getattr(sink, "commit", None)
        if commit is not None:
            commit()
