#!/usr/bin/env python3
"""CLI for the Enhanced Creature Index."""

import json
import logging
import sys
from pathlib import Path

import click

# Ensure creature_index is importable
sys.path.insert(0, str(Path(__file__).parent))

from creature_index.builder import IndexBuilder
from creature_index.config import DATA_DIR, LOCAL_SYSTEM_ID, LOCAL_WORLD_ID, LOG_FORMAT, PACKS_DIR
from creature_index.errors import BuildInProgressError, PersistenceError, UnsupportedSystemError
from creature_index.host import LocalPackHost
from creature_index.mcp.creature_index import CreatureIndexServer
from creature_index.query import QueryEngine
from creature_index.storage.files import LocalFileStorage
from creature_index.storage.snapshot import SnapshotStore


def _make_builder(ctx: click.Context) -> IndexBuilder:
    opts = ctx.obj
    host = LocalPackHost(opts["packs_dir"], system_id=opts["system"], world_id=opts["world"])
    store = SnapshotStore(LocalFileStorage(opts["data_dir"]), host.get_world_id())
    return IndexBuilder(host, store, progress=opts.get("progress"))


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--packs-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=PACKS_DIR,
    show_default=True,
    help="Directory of exported pack JSON files",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DATA_DIR,
    show_default=True,
    help="Directory the index snapshot is stored under",
)
@click.option("--system", "-s", default=LOCAL_SYSTEM_ID, show_default=True, help="Game system id (dnd5e, pf2e, dsa5, sra2)")
@click.option("--world", "-w", default=LOCAL_WORLD_ID, show_default=True, help="World id the snapshot is scoped to")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, packs_dir: Path, data_dir: Path, system: str, world: str, verbose: bool):
    """Enhanced Creature Index - find compendium creatures by game-mechanical criteria."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    ctx.ensure_object(dict)
    ctx.obj.update(packs_dir=packs_dir, data_dir=data_dir, system=system, world=world)


# ============================================================================
# Index commands
# ============================================================================


@cli.command("build")
@click.option("--force", "-f", is_flag=True, help="Wait for a running build instead of failing")
@click.pass_context
def build(ctx: click.Context, force: bool):
    """Build the creature index from the pack directory."""

    def show_progress(current: int, total: int, label: str):
        click.echo(f"  [{current}/{total}] {label}")

    ctx.obj["progress"] = show_progress
    builder = _make_builder(ctx)

    try:
        report = builder.build(force=force)
    except UnsupportedSystemError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except BuildInProgressError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except PersistenceError as e:
        click.echo(f"Error: {e} ({len(e.entries)} creatures were indexed but not saved)", err=True)
        sys.exit(1)

    click.echo(f"Indexed {len(report.entries)} creatures from {report.packs_processed}/{report.packs_total} packs")
    click.echo(f"  Snapshot: {builder.store.path}")
    if report.error_count:
        click.echo(f"  Extraction errors: {report.error_count}")
    if report.packs_failed:
        click.echo(f"  Failed packs: {', '.join(report.packs_failed)}")


@cli.command("query")
@click.option("--cr", "challenge_rating", type=float, help="Exact challenge rating (D&D 5e)")
@click.option("--level", type=float, help="Exact level (Pathfinder 2e, DSA5)")
@click.option("--min", "min_power", type=float, help="Minimum challenge rating or level")
@click.option("--max", "max_power", type=float, help="Maximum challenge rating or level")
@click.option("--type", "creature_type", help="Creature type (e.g., dragon, undead)")
@click.option("--size", help="Creature size")
@click.option("--rarity", help="Rarity (Pathfinder 2e, DSA5)")
@click.option("--trait", "traits", multiple=True, help="Required trait (repeatable)")
@click.option("--spells/--no-spells", "has_spells", default=None, help="Filter on spellcasting")
@click.option("--legendary/--no-legendary", "has_legendary_actions", default=None, help="Filter on legendary actions")
@click.option("--species", help="Species (DSA5)")
@click.option("--culture", help="Culture (DSA5)")
@click.option("--actor-type", help="Actor type (Shadowrun Anarchy 2)")
@click.option("--keyword", help="Keyword (Shadowrun Anarchy 2)")
@click.option("--awakened/--mundane", "has_awakened", default=None, help="Filter on awakened actors")
@click.option("--limit", "-n", type=int, default=20, show_default=True, help="Maximum number of results")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def query(ctx: click.Context, limit: int, as_json: bool, traits: tuple[str, ...], **filters):
    """List creatures matching the given criteria."""
    args = dict(filters)
    if traits:
        args["traits"] = list(traits)
    criteria = CreatureIndexServer.criteria_from_args(args)

    engine = QueryEngine(_make_builder(ctx))
    result = engine.query(criteria, limit=limit)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    summary = result.summary
    if summary.get("fallback"):
        click.echo(f"Index unavailable ({summary.get('error')}), showing name matches only.", err=True)

    if not result.creatures:
        click.echo("No creatures found.")
        return

    click.echo(f"Found {summary['total_found']} creatures, showing {len(result.creatures)}:")
    for creature in result.creatures:
        click.echo(f"  {creature['name']}: {creature.get('summary', creature.get('pack_label', ''))}")


@cli.command("status")
@click.pass_context
def status(ctx: click.Context):
    """Show the state of the stored index."""
    info = _make_builder(ctx).status()
    snapshot = info["snapshot"]
    if snapshot is None:
        click.echo("No creature index has been built.")
        return

    click.echo(f"Creature index: {snapshot['path']}")
    click.echo(f"  System: {snapshot['game_system']}")
    click.echo(f"  Version: {snapshot['version']}")
    click.echo(f"  Creatures: {snapshot['total_entries']} from {snapshot['packs']} packs")
    if snapshot["error_count"]:
        click.echo(f"  Extraction errors: {snapshot['error_count']}")
    click.echo(f"  Current: {'yes' if info['snapshot_valid'] else 'no (will rebuild on next query)'}")


@cli.command("invalidate")
@click.pass_context
def invalidate(ctx: click.Context):
    """Delete the stored index so the next query rebuilds it."""
    builder = _make_builder(ctx)
    if builder.store.delete():
        click.echo(f"Deleted {builder.store.path}")
    else:
        click.echo("No creature index to delete.")


if __name__ == "__main__":
    cli()
