from dataclasses import dataclass, fields
from typing import Dict, Mapping, Optional, Sequence

from .metadata.classify import ContentClassification
from .metadata.extract import FileMetadata
from .scanning.hasher import DEFAULT_DIGESTS, DigestSpec


@dataclass(frozen=True)
class FingerprintRecord:
    """
    One visited path in one run. Never mutated after creation.
    Timestamps are Unix epoch seconds.
    """
    path: str
    dir: str
    file: str
    ext: str

    inserted: int           # when this path was harvested
    lastseen: int           # run start, shared by every record of the run

    modified: int
    changed: int
    accessed: int
    created: Optional[int]  # None where the platform has no birth time

    size: int
    mode: int
    uid: int
    gid: int
    dev: int
    links: int

    # Regular files only
    content_hash_a: Optional[str] = None
    content_hash_b: Optional[str] = None
    magic_mime_type: Optional[str] = None
    magic_charset: Optional[str] = None
    sniffed_mime_type: Optional[str] = None
    sniffed_charset: Optional[str] = None
    extension_mime_type: Optional[str] = None


RECORD_FIELDS = tuple(f.name for f in fields(FingerprintRecord))

# Fields a DigestSpec may route its result into
DIGEST_FIELDS = ("content_hash_a", "content_hash_b")


def check_digest_routing(digest_specs: Sequence[DigestSpec]) -> None:
    """Raises ValueError for a DigestSpec that targets a non-digest field."""
    for spec in digest_specs:
        if spec.field is not None and spec.field not in DIGEST_FIELDS:
            raise ValueError(f"Digest {spec.name} targets unknown field {spec.field}")


def assemble_record(meta: FileMetadata,
                    lastseen: int,
                    digests: Optional[Mapping[str, str]] = None,
                    digest_specs: Sequence[DigestSpec] = DEFAULT_DIGESTS,
                    classification: Optional[ContentClassification] = None) -> FingerprintRecord:
    """
    Merges harvested metadata with the regular-file results.

    digests maps digest identifiers to encoded values; each DigestSpec names
    the record field its value lands in. Entries without digests or
    classification (directories, symlinks, devices) keep those fields None.
    """
    content: Dict[str, Optional[str]] = {}

    if digests is not None:
        check_digest_routing(digest_specs)
        for spec in digest_specs:
            if spec.field is not None:
                content[spec.field] = digests[spec.name]

    if classification is not None:
        content.update(
            magic_mime_type=classification.magic.mime_type,
            magic_charset=classification.magic.charset,
            sniffed_mime_type=classification.sniffed.mime_type,
            sniffed_charset=classification.sniffed.charset,
            extension_mime_type=classification.extension,
        )

    return FingerprintRecord(
        path=meta.path,
        dir=meta.dir,
        file=meta.file,
        ext=meta.ext,
        inserted=meta.harvested_at,
        lastseen=lastseen,
        modified=meta.modified,
        changed=meta.changed,
        accessed=meta.accessed,
        created=meta.created,
        size=meta.size,
        mode=meta.mode,
        uid=meta.uid,
        gid=meta.gid,
        dev=meta.dev,
        links=meta.links,
        **content,
    )
