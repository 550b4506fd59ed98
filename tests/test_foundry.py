"""Tests for the Foundry bridge and bridge-backed host and storage."""

import threading
from unittest.mock import MagicMock

import pytest

from creature_index.builder import IndexBuilder
from creature_index.invalidation import InvalidationListener
from creature_index.mcp.foundry_bridge import FoundryBridge
from creature_index.mcp.foundry_bridge_base import FoundryBridgeBase
from creature_index.mcp.foundry_host import BridgeFileStorage, FoundryContentHost
from creature_index.storage.snapshot import SnapshotStore

from conftest import dnd5e_npc


@pytest.fixture
def mock_socketio():
    return MagicMock()


@pytest.fixture
def bridge(mock_socketio) -> FoundryBridge:
    bridge = FoundryBridge(mock_socketio)
    bridge.set_connected("test-sid")
    return bridge


def respond_to_commands(bridge: FoundryBridge, mock_socketio, responses: dict):
    """Answer every emitted command from a dict of command -> response data."""

    def emit(event, payload, room=None):
        command = payload["command"]
        if command in responses:
            reply = responses[command]
            data = reply(payload["data"]) if callable(reply) else reply
            message = {"requestId": payload["requestId"], "success": True, "data": data}
        else:
            message = {"requestId": payload["requestId"], "success": False, "error": f"Unknown command {command}"}
        threading.Thread(target=bridge.handle_response, args=(message,)).start()

    mock_socketio.emit.side_effect = emit


class TestFoundryBridge:
    """Tests for FoundryBridge."""

    def test_implements_base(self, bridge: FoundryBridge):
        assert isinstance(bridge, FoundryBridgeBase)
        assert bridge.is_connected()
        assert bridge.sid == "test-sid"

    def test_send_command_not_connected(self, mock_socketio):
        with pytest.raises(ConnectionError):
            FoundryBridge(mock_socketio).send_command("listPacks")

    def test_send_command_round_trip(self, bridge: FoundryBridge, mock_socketio):
        respond_to_commands(bridge, mock_socketio, {"getWorldInfo": {"id": "w", "system": "dnd5e"}})

        assert bridge.send_command("getWorldInfo", timeout=2) == {"id": "w", "system": "dnd5e"}
        event, payload = mock_socketio.emit.call_args.args
        assert event == "foundry:command"
        assert payload["command"] == "getWorldInfo"
        assert mock_socketio.emit.call_args.kwargs["room"] == "test-sid"

    def test_error_response(self, bridge: FoundryBridge, mock_socketio):
        respond_to_commands(bridge, mock_socketio, {})
        with pytest.raises(RuntimeError, match="Unknown command"):
            bridge.send_command("explode", timeout=2)

    def test_timeout(self, bridge: FoundryBridge):
        with pytest.raises(TimeoutError):
            bridge.send_command("listPacks", timeout=0.05)

    def test_disconnect_fails_pending(self, bridge: FoundryBridge, mock_socketio):
        mock_socketio.emit.side_effect = lambda *args, **kwargs: threading.Timer(
            0.05, bridge.set_disconnected
        ).start()

        with pytest.raises(RuntimeError, match="Foundry disconnected"):
            bridge.send_command("listPacks", timeout=2)
        assert not bridge.is_connected()

    def test_unknown_response_is_ignored(self, bridge: FoundryBridge):
        bridge.handle_response({"requestId": "nope", "success": True})
        bridge.handle_response({})

    def test_event_handlers(self, bridge: FoundryBridge):
        received = []
        bridge.on_event("updateDocument", received.append)
        bridge.on_event("updateDocument", MagicMock(side_effect=ValueError("bad handler")))

        bridge.handle_event({"eventType": "updateDocument", "payload": {"document": {"_id": "a"}}})
        bridge.handle_event({"payload": {}})

        assert received == [{"document": {"_id": "a"}}]


class TestFoundryContentHost:
    """Tests for FoundryContentHost over a mocked bridge."""

    @pytest.fixture
    def mock_bridge(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        responses = {
            "getWorldInfo": {"id": "my-world", "system": "dnd5e"},
            "listPacks": {
                "packs": [
                    {"id": "dnd5e.monsters", "label": "Monsters", "type": "Actor", "indexSize": 2},
                    {"id": "dnd5e.items", "label": "Items", "type": "Item", "indexSize": 10},
                    {"label": "no id"},
                ]
            },
            "getPackIndex": {"index": [{"_id": "g", "name": "Goblin"}, {"_id": "o", "name": "Ogre"}]},
            "getPackDocuments": {"documents": [dnd5e_npc("Goblin", cr="1/4"), dnd5e_npc("Ogre", cr=2)]},
            "getSetting": {"value": None},
        }
        bridge.send_command.side_effect = lambda command, data=None, timeout=5.0: responses[command]
        return bridge

    def test_world_info(self, mock_bridge):
        host = FoundryContentHost(mock_bridge)
        assert host.get_system_id() == "dnd5e"
        assert host.get_world_id() == "my-world"

    def test_missing_system(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        bridge.send_command.return_value = {}
        with pytest.raises(RuntimeError):
            FoundryContentHost(bridge).get_system_id()

    def test_list_packs_skips_malformed(self, mock_bridge):
        packs = FoundryContentHost(mock_bridge).list_packs()
        assert [p.id for p in packs] == ["dnd5e.monsters", "dnd5e.items"]
        assert packs[0].index_size == 2

    def test_creature_packs(self, mock_bridge):
        assert [p.id for p in FoundryContentHost(mock_bridge).list_creature_packs()] == ["dnd5e.monsters"]

    def test_documents_request(self, mock_bridge):
        host = FoundryContentHost(mock_bridge, timeout=12)
        documents = host.get_documents("dnd5e.monsters")

        assert len(documents) == 2
        mock_bridge.send_command.assert_called_with(
            "getPackDocuments", {"packId": "dnd5e.monsters"}, timeout=12
        )

    def test_setting_default(self, mock_bridge):
        host = FoundryContentHost(mock_bridge, module_id="my-module")
        assert host.get_setting("autoRebuildIndex", True) is True
        mock_bridge.send_command.assert_called_with(
            "getSetting", {"module": "my-module", "key": "autoRebuildIndex"}, timeout=host.timeout
        )

    def test_events_go_through_bridge(self, mock_bridge):
        handler = MagicMock()
        FoundryContentHost(mock_bridge).on_event("deleteCompendium", handler)
        mock_bridge.on_event.assert_called_once_with("deleteCompendium", handler)


class TestBridgeFileStorage:
    """Tests for BridgeFileStorage."""

    def test_write_uploads_file(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        bridge.send_command.return_value = {}

        BridgeFileStorage(bridge).write_text("worlds/w/index.json", "{}")

        command, data = bridge.send_command.call_args.args
        assert command == "uploadFile"
        assert data == {"source": "data", "path": "worlds/w", "filename": "index.json", "content": "{}"}

    def test_read_missing(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        bridge.send_command.return_value = {"content": None}
        assert BridgeFileStorage(bridge).read_text("worlds/w/index.json") is None

    def test_exists_browses_directory(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        bridge.send_command.return_value = {"files": ["worlds/w/enhanced-creature-index.json"]}
        storage = BridgeFileStorage(bridge)

        assert storage.exists("worlds/w/enhanced-creature-index.json")
        assert not storage.exists("worlds/w/other.json")

    def test_missing_directory(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        bridge.send_command.side_effect = RuntimeError("Directory does not exist")
        assert BridgeFileStorage(bridge).list_dir("worlds/w") is None

    def test_delete(self):
        bridge = MagicMock(spec=FoundryBridgeBase)
        bridge.send_command.return_value = {"deleted": True}
        assert BridgeFileStorage(bridge).delete("worlds/w/index.json") is True


class TestEndToEnd:
    """Build, persist and invalidate through a live bridge with a fake Foundry."""

    def test_build_and_invalidate(self, bridge: FoundryBridge, mock_socketio):
        files: dict[str, str] = {}
        documents = [dnd5e_npc("Goblin", cr="1/4"), dnd5e_npc("Ogre", cr=2)]

        def upload(data):
            files[f"{data['path']}/{data['filename']}"] = data["content"]
            return {"path": f"{data['path']}/{data['filename']}"}

        def browse(data):
            prefix = data["target"] + "/"
            return {"files": [path for path in files if path.startswith(prefix)]}

        respond_to_commands(
            bridge,
            mock_socketio,
            {
                "getWorldInfo": {"id": "my-world", "system": "dnd5e"},
                "listPacks": {"packs": [{"id": "dnd5e.monsters", "label": "Monsters", "type": "Actor"}]},
                "getPackIndex": {"index": [{"_id": d["_id"], "name": d["name"]} for d in documents]},
                "getPackDocuments": {"documents": documents},
                "getSetting": {"value": None},
                "browseFiles": browse,
                "readFile": lambda data: {"content": files.get(data["path"])},
                "uploadFile": upload,
                "deleteFile": lambda data: {"deleted": files.pop(data["path"], None) is not None},
            },
        )

        host = FoundryContentHost(bridge, timeout=2)
        store = SnapshotStore(BridgeFileStorage(bridge, timeout=2), host.get_world_id())
        builder = IndexBuilder(host, store)
        InvalidationListener(host, store).register()

        entries = builder.get_index()

        assert {e.name for e in entries} == {"Goblin", "Ogre"}
        assert "worlds/my-world/enhanced-creature-index.json" in files
        assert builder.is_index_valid(store.load())

        bridge.handle_event(
            {"eventType": "updateDocument", "payload": {"document": {"type": "npc", "pack": "dnd5e.monsters"}}}
        )
        assert files == {}
