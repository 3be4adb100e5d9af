import logging
import mimetypes
from typing import Any, BinaryIO, NamedTuple, Optional

from .. import config
from ..exceptions import ClassificationError
from .sniff import detect_content_type

# Optional import handled gracefully: a missing libmagic only becomes an
# error when the signature scan is actually consulted.
magic: Any = None
try:
    import magic
except ImportError:
    magic = None


def _build_extension_table() -> dict:
    # A fresh MimeTypes instance only carries Python's built-in defaults, so
    # the table does not depend on /etc/mime.types or the Windows registry.
    table = dict(mimetypes.MimeTypes().types_map[True])
    table.update(config.EXTRA_EXTENSION_TYPES)
    return table


EXTENSION_TYPES = _build_extension_table()


class Classification(NamedTuple):
    mime_type: Optional[str]
    charset: Optional[str] = None


class ContentClassification(NamedTuple):
    """The three independent classifier results for one regular file."""
    extension: Optional[str]
    magic: Classification
    sniffed: Classification


def split_media_type(value: str) -> Classification:
    """Splits 'text/plain; charset=utf-8' into its type and parameter parts."""
    parts = value.split(config.MEDIA_TYPE_SEPARATOR)
    charset = parts[1] if len(parts) > 1 else None
    return Classification(parts[0] or None, charset)


def classify_extension(ext: str) -> Optional[str]:
    """Static table lookup. Unknown or empty extensions yield None."""
    if not ext:
        return None
    return EXTENSION_TYPES.get(ext.lower())


def open_magic_engine() -> Any:
    """Opens libmagic in MIME type + encoding mode."""
    if magic is None:
        raise ClassificationError("python-magic/libmagic is not available; cannot run signature scan")
    try:
        return magic.Magic(mime=True, mime_encoding=True)
    except Exception as e:
        raise ClassificationError(f"Failed to initialize libmagic: {e}") from e


class ContentClassifier:
    """
    Resolves content type three ways and keeps the answers apart:

      - Extension: static table, no I/O, may be None.
      - Magic: libmagic signature scan of the open file. Engine failures are fatal.
      - Sniffed: WHATWG header sniffing of the first 512 bytes. Never fails.

    engine is anything with a from_descriptor(fd) -> str method; when omitted
    libmagic is opened lazily on first use.
    """

    def __init__(self, engine: Any = None):
        self._engine = engine

    @property
    def engine(self) -> Any:
        if self._engine is None:
            self._engine = open_magic_engine()
        return self._engine

    def open_engine(self) -> Any:
        """Opens libmagic now instead of on the first regular file."""
        return self.engine

    def classify_magic(self, stream: BinaryIO) -> Classification:
        """
        Scans the file behind stream from offset 0 and rewinds it afterwards.

        Raises:
            ClassificationError: if libmagic is missing or fails on this file.
        """
        stream.seek(0)
        try:
            result = self.engine.from_descriptor(stream.fileno())
        except ClassificationError:
            raise
        except Exception as e:
            name = getattr(stream, "name", "<stream>")
            raise ClassificationError(f"Signature scan failed for {name}: {e}") from e
        # libmagic reads through the raw descriptor; resync the buffered stream
        stream.seek(0)
        return split_media_type(result)

    def sniff(self, stream: BinaryIO) -> Classification:
        """Reads at most SNIFF_LEN bytes, then rewinds the stream."""
        head = stream.read(config.SNIFF_LEN)
        stream.seek(0)
        return split_media_type(detect_content_type(head))

    def classify(self, ext: str, stream: BinaryIO) -> ContentClassification:
        extension = classify_extension(ext)
        magic_result = self.classify_magic(stream)
        sniffed = self.sniff(stream)
        logging.debug(
            f"Classified {getattr(stream, 'name', '<stream>')}: "
            f"ext={extension} magic={magic_result.mime_type} sniffed={sniffed.mime_type}"
        )
        return ContentClassification(extension, magic_result, sniffed)
