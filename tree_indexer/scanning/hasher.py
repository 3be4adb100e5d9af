import hashlib
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Dict, Optional, Sequence

from .. import config
from ..exceptions import DigestError


def lower_hex(digest: bytes) -> str:
    return digest.hex()


def upper_hex(digest: bytes) -> str:
    return digest.hex().upper()


@dataclass(frozen=True)
class DigestSpec:
    """
    One configured digest: identifier, accumulator factory, output encoding
    and the FingerprintRecord field that receives the result.

    field=None computes the digest without storing it on the record.
    """
    name: str
    factory: Callable[[], Any]
    encode: Callable[[bytes], str] = lower_hex
    field: Optional[str] = None


DEFAULT_DIGESTS = (
    DigestSpec("md5", hashlib.md5, lower_hex, field="content_hash_a"),
    DigestSpec("sha256", hashlib.sha256, lower_hex, field="content_hash_b"),
)


class DigestMultiplexer:
    def __init__(self, specs: Sequence[DigestSpec] = DEFAULT_DIGESTS,
                 chunk_size: int = config.HASH_CHUNK_SIZE):
        names = [s.name for s in specs]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate digest identifiers: {names}")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.specs = tuple(specs)
        self.chunk_size = chunk_size

    def digest(self, stream: BinaryIO) -> Dict[str, str]:
        """
        Reads the stream once, end to end, feeding every chunk to all
        accumulators before reading the next one.

        Returns:
            {digest identifier: encoded digest}

        Raises:
            DigestError: if any read fails. Nothing computed so far is returned.
        """
        accumulators = [(spec, spec.factory()) for spec in self.specs]

        try:
            while chunk := stream.read(self.chunk_size):
                for _, acc in accumulators:
                    acc.update(chunk)
        except OSError as e:
            name = getattr(stream, "name", "<stream>")
            raise DigestError(f"Read failed while hashing {name}: {e}") from e

        return {spec.name: spec.encode(acc.digest()) for spec, acc in accumulators}
