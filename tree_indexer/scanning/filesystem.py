import os
import stat
import logging
import time
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..config import ErrorPolicy
from ..exceptions import DigestError, TraversalError
from ..metadata.classify import ContentClassifier
from ..metadata.extract import MetadataHarvester
from ..models import FingerprintRecord, assemble_record, check_digest_routing
from .hasher import DEFAULT_DIGESTS, DigestMultiplexer, DigestSpec

# (path, lstat result or None, error or None)
WalkEntry = Tuple[str, Optional[os.stat_result], Optional[OSError]]

# Per-path failures the SKIP policy may step over. Everything else is fatal.
SKIPPABLE_ERRORS = (TraversalError, DigestError)


def walk_tree(root: str) -> Iterator[WalkEntry]:
    """
    Depth-first, pre-order walk starting with root itself.

    Entries are reported with lstat semantics (symlinks are never followed)
    and siblings are visited in name order. Failures are reported in-band
    as (path, None, error) instead of being raised.
    """
    try:
        stack: List[WalkEntry] = [(root, os.lstat(root), None)]
    except OSError as e:
        yield root, None, e
        return

    while stack:
        current, st, err = stack.pop()
        yield current, st, err

        if err is not None or not stat.S_ISDIR(st.st_mode):
            continue

        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            yield current, None, e
            continue

        children: List[WalkEntry] = []
        for entry in entries:
            try:
                children.append((entry.path, entry.stat(follow_symlinks=False), None))
            except OSError as e:
                children.append((entry.path, None, e))

        # Push in reverse so the first name is visited first
        stack.extend(reversed(children))


class DiskScanner:
    def __init__(self,
                 digests: Sequence[DigestSpec] = DEFAULT_DIGESTS,
                 classifier: Optional[ContentClassifier] = None,
                 harvester: Optional[MetadataHarvester] = None,
                 error_policy: ErrorPolicy = ErrorPolicy.ABORT,
                 clock: Callable[[], float] = time.time,
                 walker: Callable[[str], Iterator[WalkEntry]] = walk_tree):
        self.digests = tuple(digests)
        check_digest_routing(self.digests)
        self.multiplexer = DigestMultiplexer(self.digests)
        self.classifier = classifier or ContentClassifier()
        self.harvester = harvester or MetadataHarvester(clock=clock)
        self.error_policy = error_policy
        self.walker = walker
        self.skipped = 0

    def scan(self, root: str, lastseen: int) -> Iterator[FingerprintRecord]:
        """
        Generator that yields one FingerprintRecord per entry under root,
        root included. Every record carries the same lastseen.

        Under ErrorPolicy.ABORT the first error ends the generator. Under
        ErrorPolicy.SKIP traversal and read errors are logged and the path
        is dropped; classification and stat errors are still raised.
        """
        for path, st, err in self.walker(root):
            try:
                yield self.visit(path, st, err, lastseen)
            except SKIPPABLE_ERRORS as e:
                if self.error_policy is not ErrorPolicy.SKIP:
                    raise
                self.skipped += 1
                logging.warning(f"Skipping {path}: {e}")

    def visit(self,
              path: str,
              st: Optional[os.stat_result],
              err: Optional[OSError],
              lastseen: int) -> FingerprintRecord:
        """Fingerprints one walk entry."""
        if err is not None:
            raise TraversalError(f"Cannot traverse {path}: {err}") from err

        meta = self.harvester.harvest(path, st)

        if not stat.S_ISREG(meta.mode):
            return assemble_record(meta, lastseen)

        # One handle per regular file, closed on every exit path
        try:
            with open(path, 'rb') as f:
                classification = self.classifier.classify(meta.ext, f)
                digests = self.multiplexer.digest(f)
        except OSError as e:
            raise DigestError(f"Cannot read {path}: {e}") from e

        return assemble_record(
            meta,
            lastseen,
            digests=digests,
            digest_specs=self.digests,
            classification=classification,
        )
