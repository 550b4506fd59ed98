"""CLI command tests."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cli import cli


@pytest.fixture
def cli_runner():
    """Create Click test runner."""
    return CliRunner()


@pytest.fixture
def run(cli_runner: CliRunner, packs_dir: Path, data_dir: Path):
    """Invoke the CLI against the temporary pack and data directories."""

    def _run(*args: str, system: str = "dnd5e"):
        base = ["--packs-dir", str(packs_dir), "--data-dir", str(data_dir), "--system", system, "--world", "cli-world"]
        return cli_runner.invoke(cli, base + list(args))

    return _run


class TestBuild:
    """Tests for 'build' command."""

    def test_build(self, run, data_dir: Path, monster_library):
        result = run("build")

        assert result.exit_code == 0
        assert "[1/2] Monster Manual" in result.output
        assert "Indexed 5 creatures from 2/2 packs" in result.output
        assert (data_dir / "worlds" / "cli-world" / "enhanced-creature-index.json").exists()

    def test_build_reports_failed_documents(self, run, write_pack):
        write_pack("world.broken", [{"_id": "b", "name": "Broken", "type": "npc", "system": "corrupted"}])
        result = run("build")

        assert result.exit_code == 0
        assert "Extraction errors: 1" in result.output

    def test_build_unsupported_system(self, run, monster_library):
        result = run("build", system="gurps")

        assert result.exit_code == 1
        assert "Unsupported game system: gurps" in result.output


class TestQuery:
    """Tests for 'query' command."""

    def test_query_range(self, run, monster_library):
        result = run("query", "--min", "2", "--max", "3")

        assert result.exit_code == 0
        assert "Found 3 creatures" in result.output
        assert "Wight: CR 3 undead from Villains" in result.output
        assert "Goblin" not in result.output

    def test_query_filters(self, run, monster_library):
        result = run("query", "--type", "humanoid", "--spells")

        assert result.exit_code == 0
        assert "Cult Fanatic" in result.output
        assert "Goblin" not in result.output

    def test_query_json(self, run, monster_library):
        result = run("query", "--legendary", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [c["name"] for c in data["creatures"]] == ["Adult Red Dragon"]
        assert data["summary"]["search_method"] == "enhanced_persistent_index"

    def test_query_nothing_found(self, run, monster_library):
        result = run("query", "--type", "ooze")
        assert "No creatures found." in result.output


class TestStatusAndInvalidate:
    """Tests for 'status' and 'invalidate' commands."""

    def test_status_without_index(self, run):
        result = run("status")
        assert result.exit_code == 0
        assert "No creature index has been built." in result.output

    def test_status_after_build(self, run, monster_library):
        run("build")
        result = run("status")

        assert result.exit_code == 0
        assert "System: dnd5e" in result.output
        assert "Creatures: 5 from 2 packs" in result.output
        assert "Current: yes" in result.output

    def test_status_after_system_switch(self, run, monster_library):
        run("build")
        result = run("status", system="pf2e")
        assert "Current: no" in result.output

    def test_invalidate(self, run, data_dir: Path, monster_library):
        run("build")

        result = run("invalidate")
        assert result.exit_code == 0
        assert "Deleted worlds/cli-world/enhanced-creature-index.json" in result.output
        assert not (data_dir / "worlds" / "cli-world" / "enhanced-creature-index.json").exists()

        result = run("invalidate")
        assert "No creature index to delete." in result.output
