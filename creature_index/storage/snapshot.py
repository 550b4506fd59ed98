"""Snapshot persistence for the enhanced creature index.

The fingerprint map is stored as an ordered list of ``[pack_id, fingerprint]``
pairs rather than a JSON object, so pack order survives the round trip and
the file stays readable by the Foundry module, which rebuilds a ``Map`` from
the same pair list.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from ..config import INDEX_FILENAME
from ..errors import PersistenceError, SnapshotFormatError
from .files import FileStorage
from .schemas import PackFingerprint, PersistedSnapshot

logger = logging.getLogger(__name__)


def encode_fingerprints(fingerprints: dict[str, PackFingerprint]) -> list[list[Any]]:
    """Convert the fingerprint map to a list of ``[pack_id, fingerprint]`` pairs."""
    return [[pack_id, fp.model_dump(mode="json")] for pack_id, fp in fingerprints.items()]


def decode_fingerprints(pairs: Any) -> dict[str, PackFingerprint]:
    """Rebuild the fingerprint map from its pair-list form.

    Raises:
        SnapshotFormatError: If the value is not a list of two-item pairs
    """
    if not isinstance(pairs, list):
        raise SnapshotFormatError("pack_fingerprints must be a list of [pack_id, fingerprint] pairs")

    fingerprints: dict[str, PackFingerprint] = {}
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise SnapshotFormatError(f"Malformed fingerprint pair: {pair!r}")
        pack_id, raw = pair
        try:
            fingerprints[str(pack_id)] = PackFingerprint.model_validate(raw)
        except ValidationError as e:
            raise SnapshotFormatError(f"Invalid fingerprint for pack {pack_id}: {e}") from e
    return fingerprints


def encode_snapshot(snapshot: PersistedSnapshot) -> dict[str, Any]:
    """Convert a snapshot to a JSON-compatible dict."""
    data = snapshot.model_dump(mode="json")
    data["metadata"]["pack_fingerprints"] = encode_fingerprints(snapshot.metadata.pack_fingerprints)
    return data


def decode_snapshot(data: Any) -> PersistedSnapshot:
    """Rebuild a snapshot from the dict produced by ``encode_snapshot``.

    Raises:
        SnapshotFormatError: If the data does not describe a valid snapshot
    """
    if not isinstance(data, dict) or not isinstance(data.get("metadata"), dict):
        raise SnapshotFormatError("Snapshot is missing its metadata section")

    metadata = dict(data["metadata"])
    metadata["pack_fingerprints"] = decode_fingerprints(metadata.get("pack_fingerprints", []))

    try:
        return PersistedSnapshot.model_validate({**data, "metadata": metadata})
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid snapshot: {e}") from e


class SnapshotStore:
    """Reads, writes and deletes the single snapshot file of one deployment."""

    def __init__(self, storage: FileStorage, scope: str, filename: str = INDEX_FILENAME):
        self.storage = storage
        self.scope = scope
        self.filename = filename

    @property
    def path(self) -> str:
        return f"worlds/{self.scope}/{self.filename}"

    def exists(self) -> bool:
        try:
            return self.storage.exists(self.path)
        except Exception as e:
            logger.warning(f"Could not check for index snapshot at {self.path}: {e}")
            return False

    def load(self) -> PersistedSnapshot | None:
        """Load the snapshot.

        Any read or decode failure is logged and reported as no snapshot, so
        the caller falls through to a rebuild.
        """
        try:
            if not self.storage.exists(self.path):
                return None
            content = self.storage.read_text(self.path)
        except Exception as e:
            logger.warning(f"Failed to read index snapshot {self.path}: {e}")
            return None

        if content is None:
            return None

        try:
            return decode_snapshot(json.loads(content))
        except (json.JSONDecodeError, SnapshotFormatError) as e:
            logger.warning(f"Ignoring unreadable index snapshot {self.path}: {e}")
            return None

    def save(self, snapshot: PersistedSnapshot) -> None:
        """Write the snapshot, replacing the previous one.

        Raises:
            PersistenceError: If the storage backend fails
        """
        content = json.dumps(encode_snapshot(snapshot), indent=2)
        try:
            self.storage.write_text(self.path, content)
        except Exception as e:
            raise PersistenceError(f"Failed to save index snapshot to {self.path}: {e}") from e
        logger.debug(f"Saved index snapshot ({snapshot.metadata.total_entries} entries) to {self.path}")

    def delete(self) -> bool:
        """Delete the snapshot. Returns False if there was nothing to delete."""
        if not self.exists():
            return False
        try:
            return self.storage.delete(self.path)
        except Exception as e:
            raise PersistenceError(f"Failed to delete index snapshot {self.path}: {e}") from e
