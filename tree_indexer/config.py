"""
Configuration for the tree indexer.

Module constants hold tunables; ScanSettings is the per-run value built once
by the entry point and passed down to every component.
"""
import enum
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .scanning.hasher import DigestSpec

# --- Index ---
DEFAULT_ROOT = Path(".")
DEFAULT_INDEX_PATH = Path("./files.db")
DATE_SUFFIX_FORMAT = "%Y%m%d"
LOG_FILE_NAME = "tree_indexer.log"

# Commit the index every N appended records
COMMIT_INTERVAL = 1000

# --- Hashing & Sniffing ---
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading
SNIFF_LEN = 512  # Header sniffing never looks past this many bytes
SNIFF_FALLBACK_TYPE = "application/octet-stream"

# Separator between media type and parameters in classifier output
MEDIA_TYPE_SEPARATOR = "; "

# --- Extension Table ---
# Types missing from Python's built-in mimetypes defaults. Sniffing reports
# most of these as application/octet-stream, so the extension is the only hint.
EXTRA_EXTENSION_TYPES = {
    '.epub': 'application/epub+zip',
    '.mobi': 'application/x-mobipocket-ebook',
    '.azw3': 'application/vnd.amazon.ebook',
    '.bz2': 'application/x-bzip2',
    '.xz': 'application/x-xz',
    '.7z': 'application/x-7z-compressed',
    '.rar': 'application/vnd.rar',
    '.md': 'text/markdown',
    '.yaml': 'application/yaml',
    '.yml': 'application/yaml',
    '.toml': 'application/toml',
    '.odp': 'application/vnd.oasis.opendocument.presentation',
    '.ods': 'application/vnd.oasis.opendocument.spreadsheet',
    '.odt': 'application/vnd.oasis.opendocument.text',
    '.flac': 'audio/flac',
    '.heic': 'image/heic',
    '.webp': 'image/webp',
}


class ErrorPolicy(enum.Enum):
    """What to do when a single path cannot be traversed or read."""
    ABORT = "abort"
    SKIP = "skip"


@dataclass(frozen=True)
class ScanSettings:
    """
    Resolved settings for one indexing run.

    digests=None means the default MD5 + SHA-256 configuration.
    """
    root: Path = DEFAULT_ROOT
    index_path: Path = DEFAULT_INDEX_PATH
    date_suffixed: bool = True
    error_policy: ErrorPolicy = ErrorPolicy.ABORT
    digests: Optional[Tuple["DigestSpec", ...]] = None
    show_progress: bool = True


def resolve_index_path(index_path: Path, date_suffixed: bool, today: Optional[date] = None) -> Path:
    """
    Returns the absolute index location, optionally with a -YYYYMMDD suffix
    inserted before the extension (files.db -> files-20240131.db).
    """
    absolute = Path(index_path).expanduser().absolute()
    if not date_suffixed:
        return absolute

    today = today or date.today()
    suffix = today.strftime(DATE_SUFFIX_FORMAT)
    # Extension starts at the last dot, so '.db' is all extension: '-20240131.db'
    name = absolute.name
    dot = name.rfind(".")
    stem, ext = (name[:dot], name[dot:]) if dot >= 0 else (name, "")
    return absolute.with_name(f"{stem}-{suffix}{ext}")
