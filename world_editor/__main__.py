#!/usr/bin/env python3
"""
Command line tools for World Editor documents.
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .codec import load_world, save_world, export_json
from .config import CONFIG
from .errors import WorldFormatError
from .world import WorldModel

console = Console()


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else getattr(logging, CONFIG.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def print_summary(world: WorldModel):
    zones = Table(title=f"{world.settings.name or world.settings.id or 'World'}")
    zones.add_column("Zone")
    zones.add_column("Size", justify="right")
    zones.add_column("Spawn")
    zones.add_column("Transports", justify="right")
    zones.add_column("Enemies", justify="right")
    for zone in world.zones:
        spawn = f"{zone.spawn.x}, {zone.spawn.y}" if zone.spawn else "Not set"
        zones.add_row(
            f"{zone.name} [dim]({zone.id})[/dim]",
            f"{zone.width}x{zone.height}",
            spawn,
            str(len(zone.transports)),
            str(len(zone.enemy_placements)),
        )
    console.print(zones)

    if world.npcs:
        npcs = Table(title="NPCs")
        npcs.add_column("NPC")
        npcs.add_column("Location")
        for npc in world.npcs:
            where = f"{npc.zone_id} ({npc.x}, {npc.y})" if npc.is_placed else "Unplaced"
            npcs.add_row(f"{npc.name} [dim]({npc.id})[/dim]", where)
        console.print(npcs)

    console.print(
        f"Palette {world.palette.rows}x{world.palette.columns}, "
        f"{len(world.palette.tiles)} tiles, {len(world.templates)} enemy templates"
    )


def print_report(world: WorldModel) -> int:
    report = world.dangling_references()
    problems = sum(len(v) for v in report.values())
    if not problems:
        console.print("[green]No dangling references.[/green]")
        return 0
    for kind, entries in report.items():
        for entry in entries:
            console.print(f"[yellow]{kind}[/yellow]: {entry}")
    console.print(f"{problems} dangling references (tolerated).")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="world_editor", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_norm = sub.add_parser("normalize", help="Import and re-export a world document")
    p_norm.add_argument("file")
    p_norm.add_argument("-o", "--output", help="Write here instead of stdout")

    p_check = sub.add_parser("check", help="Report dangling references")
    p_check.add_argument("file")

    p_sum = sub.add_parser("summary", help="Show zones and NPCs")
    p_sum.add_argument("file")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        world = load_world(args.file)
    except (FileNotFoundError, WorldFormatError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if args.command == "normalize":
        if args.output:
            save_world(world, args.output)
            console.print(f"Wrote {args.output}")
        else:
            print(export_json(world))
        return 0
    if args.command == "check":
        return print_report(world)
    print_summary(world)
    return 0


if __name__ == "__main__":
    sys.exit(main())
