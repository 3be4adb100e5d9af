import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..exceptions import StatMismatchError

# Attributes every supported platform's stat structure provides
PORTABLE_STAT_FIELDS = (
    'st_mode', 'st_size', 'st_mtime', 'st_ctime', 'st_atime',
    'st_uid', 'st_gid', 'st_dev', 'st_nlink',
)

# Platforms whose os.stat_result exposes st_birthtime
BIRTH_TIME_PLATFORMS = ('darwin', 'freebsd', 'openbsd', 'netbsd', 'dragonfly')


class BasicTimestampSource:
    """Platforms without a birth time: Created is always omitted."""
    has_birth_time = False

    def birth_time(self, st: Any) -> Optional[int]:
        return None


class ExtendedTimestampSource:
    """Platforms that report st_birthtime."""
    has_birth_time = True

    def birth_time(self, st: Any) -> Optional[int]:
        btime = getattr(st, 'st_birthtime', None)
        return int(btime) if btime is not None else None


def platform_timestamp_source(platform: str = sys.platform,
                              version: tuple = tuple(sys.version_info)):
    """Picks the timestamp source for a platform. Windows gained st_birthtime in 3.12."""
    if platform.startswith(BIRTH_TIME_PLATFORMS):
        return ExtendedTimestampSource()
    if platform == 'win32' and version >= (3, 12):
        return ExtendedTimestampSource()
    return BasicTimestampSource()


# Selected once for the running interpreter
PLATFORM_TIMESTAMP_SOURCE = platform_timestamp_source()


@dataclass(frozen=True)
class FileMetadata:
    """Portable stat metadata for one path, stamped with the harvest instant."""
    path: str
    dir: str
    file: str
    ext: str
    harvested_at: int
    modified: int
    changed: int
    accessed: int
    created: Optional[int]
    size: int
    mode: int
    uid: int
    gid: int
    dev: int
    links: int


class MetadataHarvester:
    def __init__(self, timestamp_source=None, clock: Callable[[], float] = time.time):
        self.timestamp_source = timestamp_source or PLATFORM_TIMESTAMP_SOURCE
        self.clock = clock

    def harvest(self, path: str, st: Any) -> FileMetadata:
        """
        Extracts the portable metadata subset from an lstat result.

        Raises:
            StatMismatchError: if st is not a usable stat structure. Never
                               recoverable; the caller must not skip it.
        """
        missing = [f for f in PORTABLE_STAT_FIELDS if not hasattr(st, f)]
        if missing:
            raise StatMismatchError(f"Not a stat structure for {path}: missing {', '.join(missing)}")

        dirname, filename = os.path.split(path)
        ext = os.path.splitext(filename)[1].lower()

        meta = FileMetadata(
            path=path,
            dir=dirname,
            file=filename,
            ext=ext,
            harvested_at=int(self.clock()),
            modified=int(st.st_mtime),
            changed=int(st.st_ctime),
            accessed=int(st.st_atime),
            created=self.timestamp_source.birth_time(st),
            size=st.st_size,
            mode=st.st_mode,
            uid=st.st_uid,
            gid=st.st_gid,
            dev=st.st_dev,
            links=st.st_nlink,
        )
        logging.debug(f"Harvested {path} (mode={oct(meta.mode)}, size={meta.size})")
        return meta
