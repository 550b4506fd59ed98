"""Storage layer for index snapshots."""

from .schemas import (
    AnyIndexEntry,
    BuildReport,
    DnD5eEntry,
    DSA5Entry,
    ExtractionResult,
    IndexEntry,
    IndexMetadata,
    PackFingerprint,
    PersistedSnapshot,
    PF2eEntry,
    SRA2Entry,
)
from .files import FileStorage, LocalFileStorage
from .snapshot import SnapshotStore, decode_snapshot, encode_snapshot

__all__ = [
    "AnyIndexEntry",
    "BuildReport",
    "DnD5eEntry",
    "DSA5Entry",
    "ExtractionResult",
    "IndexEntry",
    "IndexMetadata",
    "PackFingerprint",
    "PersistedSnapshot",
    "PF2eEntry",
    "SRA2Entry",
    "FileStorage",
    "LocalFileStorage",
    "SnapshotStore",
    "decode_snapshot",
    "encode_snapshot",
]
