"""Root pytest configuration for creature index tests."""

import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# Ensure creature_index, api and cli are importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from creature_index.builder import IndexBuilder
from creature_index.host import LocalPackHost, PackInfo
from creature_index.query import QueryEngine
from creature_index.storage.files import LocalFileStorage
from creature_index.storage.snapshot import SnapshotStore

TEST_WORLD = "test-world"


# ---------------------------------------------------------------------------
# Recording host
# ---------------------------------------------------------------------------


class RecordingPackHost(LocalPackHost):
    """LocalPackHost that records document loads and can fail packs on demand."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.document_calls: list[str] = []
        self.fail_packs: set[str] = set()

    def get_documents(self, pack_id: str) -> list[dict[str, Any]]:
        self.document_calls.append(pack_id)
        if pack_id in self.fail_packs:
            raise RuntimeError(f"Pack {pack_id} could not be loaded")
        return super().get_documents(pack_id)


# ---------------------------------------------------------------------------
# Document factories
# ---------------------------------------------------------------------------


def dnd5e_npc(name: str, cr: Any = 1, creature_type: str = "humanoid", **system: Any) -> dict:
    """Build a minimal D&D 5e NPC document."""
    data = {
        "details": {"cr": cr, "type": {"value": creature_type}, "alignment": "Neutral"},
        "traits": {"size": "med"},
        "attributes": {"hp": {"value": 10, "max": 10}, "ac": {"value": 12}},
        "resources": {"legact": {"value": 0, "max": 0}},
    }
    data.update(system)
    return {"_id": name.lower().replace(" ", "-"), "name": name, "type": "npc", "img": "icons/npc.webp", "system": data}


def pf2e_npc(name: str, level: int = 1, traits: list[str] | None = None, rarity: str = "common", **system: Any) -> dict:
    """Build a minimal Pathfinder 2e NPC document."""
    data = {
        "details": {"level": {"value": level}, "publicNotes": f"<p>{name} notes</p>"},
        "traits": {"value": traits or ["humanoid"], "rarity": rarity, "size": {"value": "med"}},
        "attributes": {"hp": {"max": 20}, "ac": {"value": 15}},
    }
    data.update(system)
    return {"_id": name.lower().replace(" ", "-"), "name": name, "type": "npc", "system": data}


def make_documents(count: int, prefix: str = "Creature") -> list[dict]:
    return [dnd5e_npc(f"{prefix} {i}", cr=i) for i in range(count)]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def packs_dir(tmp_path: Path) -> Path:
    path = tmp_path / "packs"
    path.mkdir()
    return path


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def write_pack(packs_dir: Path) -> Callable[..., Path]:
    """Write an exported pack file and return its path."""

    def _write(
        pack_id: str,
        documents: list[dict],
        label: str | None = None,
        pack_type: str = "Actor",
        **metadata: Any,
    ) -> Path:
        path = packs_dir / f"{pack_id.replace('.', '_')}.json"
        meta = {"id": pack_id, "label": label or pack_id, "type": pack_type, **metadata}
        path.write_text(json.dumps({"metadata": meta, "documents": documents}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def host(packs_dir: Path) -> RecordingPackHost:
    return RecordingPackHost(packs_dir, system_id="dnd5e", world_id=TEST_WORLD)


@pytest.fixture
def storage(data_dir: Path) -> LocalFileStorage:
    return LocalFileStorage(data_dir)


@pytest.fixture
def store(storage: LocalFileStorage) -> SnapshotStore:
    return SnapshotStore(storage, TEST_WORLD)


@pytest.fixture
def builder(host: RecordingPackHost, store: SnapshotStore) -> IndexBuilder:
    return IndexBuilder(host, store)


@pytest.fixture
def engine(builder: IndexBuilder) -> QueryEngine:
    return QueryEngine(builder, enabled=True)


@pytest.fixture
def pack_info() -> PackInfo:
    return PackInfo(id="world.monsters", label="Monsters", type="Actor", index_size=3)


@pytest.fixture
def monster_library(write_pack):
    """Two D&D 5e packs plus a non-creature pack."""
    write_pack(
        "dnd5e.monsters",
        [
            dnd5e_npc("Goblin", cr="1/4", creature_type="humanoid"),
            dnd5e_npc("Ogre", cr=2, creature_type="giant"),
            dnd5e_npc(
                "Adult Red Dragon",
                cr=17,
                creature_type="dragon",
                traits={"size": "huge"},
                resources={"legact": {"value": 3, "max": 3}},
                spells={"spell1": {"value": 0, "max": 0}},
            ),
            {"_id": "loot", "name": "Treasure Chest", "type": "loot", "system": {}},
        ],
        label="Monster Manual",
    )
    write_pack(
        "world.villains",
        [
            dnd5e_npc("Cult Fanatic", cr=2, creature_type="humanoid", spells={"spell1": {"value": 4, "max": 4}}),
            dnd5e_npc("Wight", cr=3, creature_type="undead"),
        ],
        label="Villains",
    )
    write_pack("dnd5e.items", [{"_id": "sword", "name": "Longsword", "type": "weapon"}], pack_type="Item")


@pytest.fixture
def pack_parses(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Record the name of every file LocalPackHost parses."""
    import creature_index.host as host_module

    parsed: list[str] = []
    real_load = host_module.json.load

    def counting_load(f, *args, **kwargs):
        parsed.append(Path(f.name).name)
        return real_load(f, *args, **kwargs)

    monkeypatch.setattr(host_module.json, "load", counting_load)
    return parsed
