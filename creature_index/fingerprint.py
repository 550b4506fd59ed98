"""Pack fingerprints for cheap cache-staleness checks.

The checksum is the first 16 base64 characters of "{id}-{label}-{count}", so
it only sees the first 12 bytes of that string; for long pack ids the label
and count fall outside it. The document count is compared on its own for
that reason. A missed change leaves a stale but usable index.
"""

import base64
import time
from datetime import datetime

from .host import PackInfo
from .storage.schemas import PackFingerprint


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_last_modified(value: str | int | float | None) -> int:
    """Convert a pack's modification time to epoch milliseconds."""
    if value is None or value == "":
        return _now_ms()
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return _now_ms()


def pack_checksum(pack_id: str, pack_label: str, document_count: int) -> str:
    data = f"{pack_id}-{pack_label}-{document_count}"
    return base64.b64encode(data.encode("utf-8")).decode("ascii")[:16]


def fingerprint(pack: PackInfo) -> PackFingerprint:
    """Compute the fingerprint of a pack from its metadata and listing size."""
    pack_id = pack.id or ""
    pack_label = pack.label or ""
    document_count = pack.index_size or 0

    return PackFingerprint(
        pack_id=pack_id,
        pack_label=pack_label,
        last_modified=_parse_last_modified(pack.last_modified),
        document_count=document_count,
        checksum=pack_checksum(pack_id, pack_label, document_count),
    )


def fingerprints_match(current: PackFingerprint, saved: PackFingerprint) -> bool:
    """Two fingerprints match when document count and checksum agree."""
    return current.document_count == saved.document_count and current.checksum == saved.checksum
