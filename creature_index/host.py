"""Content host interface.

The index never talks to Foundry directly. Everything it needs from the
host (pack enumeration, pack listings and documents, settings, change
events and the active game system) goes through ``ContentHost``.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from .config import FOUNDRY_CREATURE_PACK_TYPE, LOCAL_SYSTEM_ID, LOCAL_WORLD_ID, PACKS_DIR

logger = logging.getLogger(__name__)


class PackInfo(BaseModel):
    """Metadata for one content pack (a Foundry compendium)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str = ""
    type: str = Field(default="", description="Document type held by the pack, e.g. 'Actor'")
    package: str = ""
    last_modified: str | int | float | None = Field(default=None, alias="lastModified")
    index_size: int | None = Field(default=None, alias="indexSize")

    @property
    def indexed(self) -> bool:
        return self.index_size is not None

    @property
    def is_creature_pack(self) -> bool:
        return self.type == FOUNDRY_CREATURE_PACK_TYPE


class ContentHost(ABC):
    """Abstract access to the host's content packs.

    Implemented by:
    - LocalPackHost: exported pack files in a local directory
    - FoundryContentHost: live Foundry world over the Socket.IO bridge
    """

    @abstractmethod
    def get_system_id(self) -> str:
        """Identifier of the active game system (e.g. "dnd5e", "pf2e")."""
        ...

    @abstractmethod
    def get_world_id(self) -> str:
        """Identifier of the deployment; scopes the snapshot file."""
        ...

    @abstractmethod
    def list_packs(self) -> list[PackInfo]:
        """List every content pack known to the host."""
        ...

    @abstractmethod
    def get_pack_index(self, pack_id: str) -> list[dict[str, Any]]:
        """Get the lightweight document listing of a pack (_id, name, type, img).

        Raises:
            KeyError: If the pack does not exist
        """
        ...

    @abstractmethod
    def get_documents(self, pack_id: str) -> list[dict[str, Any]]:
        """Load the full document bodies of a pack.

        Raises:
            KeyError: If the pack does not exist
        """
        ...

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        """Read a single host setting."""
        ...

    @abstractmethod
    def on_event(self, event_type: str, handler: Callable[[dict], None]) -> None:
        """Register a handler for host change notifications."""
        ...

    def list_creature_packs(self) -> list[PackInfo]:
        """List the packs that can hold creature documents."""
        return [pack for pack in self.list_packs() if pack.is_creature_pack]

    def ensure_indexed(self, pack: PackInfo) -> PackInfo:
        """Make sure the pack's document listing size is known."""
        if pack.indexed:
            return pack
        listing = self.get_pack_index(pack.id)
        return pack.model_copy(update={"index_size": len(listing)})


class _PackListing(NamedTuple):
    stamp: tuple[int, int]
    info: PackInfo
    listing: list[dict[str, Any]]


def _listing_row(document: dict[str, Any]) -> dict[str, Any]:
    return {
        "_id": document.get("_id", ""),
        "name": document.get("name", ""),
        "type": document.get("type", ""),
        "img": document.get("img"),
    }


class LocalPackHost(ContentHost):
    """Host backed by exported pack files.

    Each ``*.json`` file in the directory holds one pack::

        {"metadata": {"id": "dnd5e.monsters", "label": "Monsters", "type": "Actor"},
         "documents": [{"_id": "...", "name": "...", "type": "npc", "system": {...}}]}

    Pack metadata and the lightweight listing are cached per file and only
    re-read when the file's mtime or size changes. Document bodies are read
    only by ``get_documents``.
    """

    def __init__(
        self,
        packs_dir: Path | None = None,
        system_id: str = LOCAL_SYSTEM_ID,
        world_id: str = LOCAL_WORLD_ID,
        settings: dict[str, Any] | None = None,
    ):
        self.packs_dir = packs_dir or PACKS_DIR
        self.system_id = system_id
        self.world_id = world_id
        self.settings = settings or {}
        self._handlers: dict[str, list[Callable[[dict], None]]] = {}
        self._lock = threading.Lock()
        self._listings: dict[Path, _PackListing] = {}
        self._listings_lock = threading.Lock()

    def _pack_files(self) -> list[Path]:
        if not self.packs_dir.is_dir():
            return []
        return sorted(self.packs_dir.glob("*.json"))

    @staticmethod
    def _load_file(path: Path) -> tuple[PackInfo, list[dict]]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        metadata = dict(data.get("metadata") or {})
        metadata.setdefault("id", path.stem)
        metadata.setdefault("label", metadata["id"])
        documents = data.get("documents") or []
        info = PackInfo.model_validate({**metadata, "indexSize": len(documents)})
        return info, documents

    def _scan(self) -> list[tuple[Path, _PackListing]]:
        """Listing of every readable pack file, parsing only new or changed files."""
        scanned = []
        with self._listings_lock:
            files = self._pack_files()
            for path in files:
                try:
                    stat = path.stat()
                    stamp = (stat.st_mtime_ns, stat.st_size)
                    cached = self._listings.get(path)
                    if cached is None or cached.stamp != stamp:
                        info, documents = self._load_file(path)
                        cached = _PackListing(stamp, info, [_listing_row(doc) for doc in documents])
                        self._listings[path] = cached
                except (OSError, ValueError) as e:
                    logger.warning(f"Skipping unreadable pack file {path}: {e}")
                    self._listings.pop(path, None)
                    continue
                scanned.append((path, cached))
            for gone in set(self._listings) - set(files):
                del self._listings[gone]
        return scanned

    def _find_pack(self, pack_id: str) -> tuple[Path, _PackListing]:
        for path, listing in self._scan():
            if listing.info.id == pack_id:
                return path, listing
        raise KeyError(f"Pack not found: {pack_id}")

    def get_system_id(self) -> str:
        return self.system_id

    def get_world_id(self) -> str:
        return self.world_id

    def list_packs(self) -> list[PackInfo]:
        return [listing.info for _, listing in self._scan()]

    def get_pack_index(self, pack_id: str) -> list[dict[str, Any]]:
        _, listing = self._find_pack(pack_id)
        return [dict(row) for row in listing.listing]

    def get_documents(self, pack_id: str) -> list[dict[str, Any]]:
        path, _ = self._find_pack(pack_id)
        return self._load_file(path)[1]

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def on_event(self, event_type: str, handler: Callable[[dict], None]) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def emit(self, event_type: str, payload: dict) -> None:
        """Dispatch a change notification to registered handlers."""
        with self._lock:
            handlers = list(self._handlers.get(event_type, []))
        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Error in {event_type} handler: {e}")
