"""Content host and file storage backed by a live Foundry world.

Every call is a bridge command answered by the Foundry module:

    listPacks                          -> {"packs": [{id, label, type, package, lastModified, indexSize}]}
    getPackIndex {packId}              -> {"index": [{_id, name, type, img}]}
    getPackDocuments {packId}          -> {"documents": [...]}
    getSetting {module, key}           -> {"value": ...}
    getWorldInfo                       -> {"id": ..., "system": ...}
    browseFiles {source, target}       -> {"files": [...]} (error if the directory is missing)
    readFile {path}                    -> {"content": str | null}
    uploadFile {path, filename, content}
    deleteFile {path}                  -> {"deleted": bool}
"""

import logging
from collections.abc import Callable
from typing import Any

from ..config import FOUNDRY_COMMAND_TIMEOUT, FOUNDRY_MODULE_ID
from ..host import ContentHost, PackInfo
from ..storage.files import FileStorage
from .foundry_bridge_base import FoundryBridgeBase

logger = logging.getLogger(__name__)

FILE_SOURCE = "data"


class FoundryContentHost(ContentHost):
    """ContentHost that forwards every request over the Foundry bridge."""

    def __init__(
        self,
        bridge: FoundryBridgeBase,
        module_id: str = FOUNDRY_MODULE_ID,
        timeout: float = FOUNDRY_COMMAND_TIMEOUT,
    ):
        self.bridge = bridge
        self.module_id = module_id
        self.timeout = timeout

    def _send(self, command: str, data: dict | None = None) -> dict:
        response = self.bridge.send_command(command, data, timeout=self.timeout)
        return response if isinstance(response, dict) else {}

    def get_world_info(self) -> dict[str, Any]:
        return self._send("getWorldInfo")

    def get_system_id(self) -> str:
        system_id = self.get_world_info().get("system")
        if not system_id:
            raise RuntimeError("Foundry did not report an active game system")
        return str(system_id)

    def get_world_id(self) -> str:
        world_id = self.get_world_info().get("id")
        if not world_id:
            raise RuntimeError("Foundry did not report a world id")
        return str(world_id)

    def list_packs(self) -> list[PackInfo]:
        packs = []
        for raw in self._send("listPacks").get("packs", []):
            try:
                packs.append(PackInfo.model_validate(raw))
            except Exception as e:
                logger.warning(f"Ignoring malformed pack metadata {raw!r}: {e}")
        return packs

    def get_pack_index(self, pack_id: str) -> list[dict[str, Any]]:
        return list(self._send("getPackIndex", {"packId": pack_id}).get("index", []))

    def get_documents(self, pack_id: str) -> list[dict[str, Any]]:
        return list(self._send("getPackDocuments", {"packId": pack_id}).get("documents", []))

    def get_setting(self, key: str, default: Any = None) -> Any:
        value = self._send("getSetting", {"module": self.module_id, "key": key}).get("value")
        return default if value is None else value

    def on_event(self, event_type: str, handler: Callable[[dict], None]) -> None:
        self.bridge.on_event(event_type, handler)


class BridgeFileStorage(FileStorage):
    """FileStorage on the Foundry data directory, accessed through the bridge."""

    def __init__(self, bridge: FoundryBridgeBase, timeout: float = FOUNDRY_COMMAND_TIMEOUT):
        self.bridge = bridge
        self.timeout = timeout

    def _send(self, command: str, data: dict) -> dict:
        response = self.bridge.send_command(command, data, timeout=self.timeout)
        return response if isinstance(response, dict) else {}

    def read_text(self, path: str) -> str | None:
        content = self._send("readFile", {"path": path}).get("content")
        if content is None:
            return None
        return str(content)

    def write_text(self, path: str, content: str) -> None:
        directory, _, filename = path.rpartition("/")
        self._send(
            "uploadFile",
            {"source": FILE_SOURCE, "path": directory, "filename": filename, "content": content},
        )

    def delete(self, path: str) -> bool:
        return bool(self._send("deleteFile", {"path": path}).get("deleted"))

    def list_dir(self, directory: str) -> list[str] | None:
        try:
            response = self._send("browseFiles", {"source": FILE_SOURCE, "target": directory})
        except RuntimeError as e:
            logger.debug(f"Could not browse {directory}: {e}")
            return None
        return list(response.get("files", []))
