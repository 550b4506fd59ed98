"""Tests for snapshot storage and encoding."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from creature_index.errors import PersistenceError, SnapshotFormatError
from creature_index.storage.files import FileStorage, LocalFileStorage
from creature_index.storage.schemas import (
    DnD5eEntry,
    IndexMetadata,
    PackFingerprint,
    PersistedSnapshot,
    PF2eEntry,
    SRA2Entry,
)
from creature_index.storage.snapshot import (
    SnapshotStore,
    decode_fingerprints,
    decode_snapshot,
    encode_fingerprints,
    encode_snapshot,
)


def make_snapshot(system: str = "dnd5e") -> PersistedSnapshot:
    fingerprints = {
        "dnd5e.monsters": PackFingerprint(
            pack_id="dnd5e.monsters", pack_label="Monsters", last_modified=1, document_count=2, checksum="abc"
        ),
        "world.villains": PackFingerprint(
            pack_id="world.villains", pack_label="Villains", last_modified=2, document_count=1, checksum="def"
        ),
    }
    entries = [
        DnD5eEntry(
            id="g", name="Goblin", document_type="npc", pack_id="dnd5e.monsters", pack_label="Monsters",
            challenge_rating=0.25,
        ),
        DnD5eEntry(
            id="o", name="Ogre", document_type="npc", pack_id="dnd5e.monsters", pack_label="Monsters",
            challenge_rating=2, size="large",
        ),
        DnD5eEntry(
            id="w", name="Wight", document_type="npc", pack_id="world.villains", pack_label="Villains",
            challenge_rating=3,
        ),
    ]
    return PersistedSnapshot(
        metadata=IndexMetadata(
            version="1.0.0",
            timestamp=1700000000000,
            game_system=system,
            pack_fingerprints=fingerprints,
            total_entries=len(entries),
            error_count=0,
        ),
        entries=entries,
    )


class TestSnapshotEncoding:
    """Tests for encode_snapshot/decode_snapshot."""

    def test_fingerprints_stored_as_pairs(self):
        data = encode_snapshot(make_snapshot())
        pairs = data["metadata"]["pack_fingerprints"]

        assert isinstance(pairs, list)
        assert [pair[0] for pair in pairs] == ["dnd5e.monsters", "world.villains"]
        assert pairs[0][1]["document_count"] == 2

    def test_round_trip(self):
        snapshot = make_snapshot()
        restored = decode_snapshot(json.loads(json.dumps(encode_snapshot(snapshot))))

        assert restored == snapshot
        assert list(restored.metadata.pack_fingerprints) == ["dnd5e.monsters", "world.villains"]

    def test_entries_keep_their_system_type(self):
        snapshot = make_snapshot()
        snapshot.entries.append(
            PF2eEntry(id="p", name="Kobold", document_type="npc", pack_id="x", pack_label="X", level=-1)
        )
        snapshot.entries.append(
            SRA2Entry(id="s", name="Drone", document_type="vehicle", pack_id="x", pack_label="X", actor_type="vehicle")
        )
        restored = decode_snapshot(encode_snapshot(snapshot))

        assert isinstance(restored.entries[0], DnD5eEntry)
        assert isinstance(restored.entries[3], PF2eEntry)
        assert isinstance(restored.entries[4], SRA2Entry)

    def test_empty_fingerprint_map(self):
        assert encode_fingerprints({}) == []
        assert decode_fingerprints([]) == {}

    @pytest.mark.parametrize("bad", [{"a": {}}, [["only-one"]], [["a", {"document_count": "many"}]], "nope"])
    def test_bad_fingerprints(self, bad):
        with pytest.raises(SnapshotFormatError):
            decode_fingerprints(bad)

    def test_missing_metadata(self):
        with pytest.raises(SnapshotFormatError):
            decode_snapshot({"entries": []})

    def test_unknown_entry_system(self):
        data = encode_snapshot(make_snapshot())
        data["entries"][0]["system"] = "gurps"
        with pytest.raises(SnapshotFormatError):
            decode_snapshot(data)


class TestLocalFileStorage:
    """Tests for LocalFileStorage."""

    def test_write_read_delete(self, storage: LocalFileStorage):
        storage.write_text("worlds/w/file.json", "{}")

        assert storage.exists("worlds/w/file.json")
        assert storage.read_text("worlds/w/file.json") == "{}"
        assert storage.list_dir("worlds/w") == ["file.json"]
        assert storage.delete("worlds/w/file.json") is True
        assert storage.delete("worlds/w/file.json") is False
        assert storage.read_text("worlds/w/file.json") is None

    def test_overwrite_leaves_no_temp_file(self, storage: LocalFileStorage, data_dir: Path):
        storage.write_text("worlds/w/file.json", "one")
        storage.write_text("worlds/w/file.json", "two")

        assert storage.read_text("worlds/w/file.json") == "two"
        assert storage.list_dir("worlds/w") == ["file.json"]

    def test_missing_directory(self, storage: LocalFileStorage):
        assert storage.list_dir("worlds/nowhere") is None

    def test_default_exists_browses_directory(self):
        """The base class checks existence by listing the parent directory."""

        class ListingOnlyStorage(FileStorage):
            read_text = write_text = delete = None

            def list_dir(self, directory):
                return ["worlds/w/index.json"] if directory == "worlds/w" else None

        storage = ListingOnlyStorage()
        assert storage.exists("worlds/w/index.json")
        assert not storage.exists("worlds/w/other.json")
        assert not storage.exists("worlds/x/index.json")


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_path_is_scoped_to_world(self, store: SnapshotStore):
        assert store.path == "worlds/test-world/enhanced-creature-index.json"

    def test_save_and_load(self, store: SnapshotStore):
        snapshot = make_snapshot()
        store.save(snapshot)

        assert store.exists()
        assert store.load() == snapshot

    def test_load_missing(self, store: SnapshotStore):
        assert store.load() is None

    def test_load_corrupt_json(self, store: SnapshotStore, storage: LocalFileStorage):
        storage.write_text(store.path, "{not json")
        assert store.load() is None

    def test_load_invalid_structure(self, store: SnapshotStore, storage: LocalFileStorage):
        storage.write_text(store.path, json.dumps({"metadata": {"pack_fingerprints": {"a": 1}}}))
        assert store.load() is None

    def test_load_read_failure(self):
        storage = MagicMock(spec=FileStorage)
        storage.exists.return_value = True
        storage.read_text.side_effect = OSError("disk gone")
        assert SnapshotStore(storage, "w").load() is None

    def test_save_failure_raises_persistence_error(self):
        storage = MagicMock(spec=FileStorage)
        storage.write_text.side_effect = OSError("read-only")
        with pytest.raises(PersistenceError):
            SnapshotStore(storage, "w").save(make_snapshot())

    def test_delete(self, store: SnapshotStore):
        assert store.delete() is False
        store.save(make_snapshot())
        assert store.delete() is True
        assert not store.exists()
