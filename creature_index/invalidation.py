"""Soft invalidation of the index snapshot on content changes.

Relevant changes delete the snapshot file; the next ``get_index()`` call
finds no snapshot and rebuilds. The snapshot is never edited in place.
"""

import logging
import threading
from typing import Any

from .config import AUTO_INVALIDATE_INDEX, FOUNDRY_CREATURE_PACK_TYPE, SETTING_AUTO_REBUILD
from .host import ContentHost
from .storage.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

DOCUMENT_EVENTS = ("createDocument", "updateDocument", "deleteDocument")
PACK_EVENTS = ("createCompendium", "deleteCompendium")

CREATURE_DOCUMENT_TYPES = frozenset({"npc", "character", "creature", "vehicle", "ice"})


class InvalidationListener:
    """Deletes the persisted index when creature documents or packs change."""

    def __init__(
        self,
        host: ContentHost,
        store: SnapshotStore,
        auto_invalidate: bool | None = None,
    ):
        self.host = host
        self.store = store
        self.auto_invalidate = auto_invalidate
        self._registered = False
        self._lock = threading.Lock()

    def register(self) -> None:
        """Subscribe to host change notifications. Safe to call twice."""
        with self._lock:
            if self._registered:
                return
            for event_type in DOCUMENT_EVENTS:
                self.host.on_event(event_type, self.handle_document_event)
            for event_type in PACK_EVENTS:
                self.host.on_event(event_type, self.handle_pack_event)
            self._registered = True
        logger.debug("Registered creature index invalidation hooks")

    def is_enabled(self) -> bool:
        """Auto-invalidation flag: explicit override, then host setting, then config."""
        if self.auto_invalidate is not None:
            return self.auto_invalidate
        try:
            value = self.host.get_setting(SETTING_AUTO_REBUILD, AUTO_INVALIDATE_INDEX)
        except Exception as e:
            logger.debug(f"Could not read {SETTING_AUTO_REBUILD} setting: {e}")
            return AUTO_INVALIDATE_INDEX
        return bool(value) if value is not None else AUTO_INVALIDATE_INDEX

    def handle_document_event(self, payload: dict[str, Any]) -> None:
        document = payload.get("document", payload) if isinstance(payload, dict) else {}
        if not isinstance(document, dict):
            return
        # World actors outside any pack are not indexed
        if not document.get("pack"):
            return
        if str(document.get("type") or "").lower() not in CREATURE_DOCUMENT_TYPES:
            return
        self.invalidate(reason=f"document {document.get('name') or document.get('_id')} changed")

    def handle_pack_event(self, payload: dict[str, Any]) -> None:
        pack = payload.get("pack", payload) if isinstance(payload, dict) else {}
        if not isinstance(pack, dict):
            return
        metadata = pack.get("metadata") if isinstance(pack.get("metadata"), dict) else pack
        if metadata.get("type") != FOUNDRY_CREATURE_PACK_TYPE:
            return
        self.invalidate(reason=f"pack {metadata.get('id') or metadata.get('label')} added or removed")

    def invalidate(self, reason: str = "") -> bool:
        """Delete the snapshot if auto-invalidation is enabled.

        Returns True if a snapshot was deleted. Errors are logged, never
        raised into the host's event dispatch.
        """
        if not self.is_enabled():
            return False
        try:
            deleted = self.store.delete()
        except Exception as e:
            logger.warning(f"Failed to invalidate creature index: {e}")
            return False
        if deleted:
            logger.info(f"Creature index invalidated ({reason or 'content changed'})")
        return deleted
