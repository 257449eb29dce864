"""
World document import/export for the World Editor.

`export_world` writes the canonical JSON shape consumed by the game
runtime. `import_world` accepts anything from a canonical document down to a
legacy single-grid document and always returns a model whose invariants
hold; bad fragments are repaired or dropped instead of failing the import.

Tile ids are strings inside the model. On export, ids that look like
integers are written as JSON numbers; the importer turns them back into
strings.
"""

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as SchemaError

from .config import CONFIG
from .errors import WorldFormatError
from .models import NPC, Dialog, EnemyTemplate, Facing, Point, ShopService, TileDef, Transport
from .palette import MAX_DIMENSION, Palette, as_bool, as_int, clamp_dimension, tile_from_entry
from .world import WorldModel
from .zone import Zone, unique_id

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^-?\d+$")


def export_tile_id(value: Any) -> Union[int, str]:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if _INTEGER_RE.match(text):
        return int(text)
    return text


def _tile_key(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------
def export_world(world: WorldModel) -> Dict[str, Any]:
    settings = world.settings
    doc: Dict[str, Any] = {
        "id": settings.id or CONFIG.world_id,
        "name": settings.name or CONFIG.world_name,
        "tileSize": settings.tile_size,
        "moveCooldownMs": settings.move_cooldown_ms,
    }
    doc.update(_export_palette(world.palette))
    doc["encounters"] = {
        "enemyCount": settings.enemy_count,
        "templates": [_export_template(t) for t in world.templates],
    }
    doc["zones"] = [_export_zone(z) for z in world.zones]
    doc["npcs"] = [_export_npc(n) for n in world.npcs]
    if doc["zones"]:
        # Single-zone runtimes read the grid from the root
        doc["tiles"] = doc["zones"][0]["tiles"]
        doc["spawn"] = doc["zones"][0]["spawn"]
    return doc


def _export_palette(palette: Palette) -> Dict[str, Any]:
    tiles = [palette.get_tile(tid) for tid in palette.tile_ids()]
    return {
        "palette": {t.tile_id: t.fill for t in tiles},
        "tileConfig": {
            t.tile_id: {"sprite": t.sprite, "fill": t.fill, "walkable": t.walkable}
            for t in tiles
        },
        "paletteLayout": {
            "id": palette.id,
            "name": palette.name,
            "description": palette.description,
            "rows": palette.rows,
            "columns": palette.columns,
            "layout": [list(row) for row in palette.layout],
            "positions": [
                {"tileId": t.tile_id, "row": t.row, "column": t.column} for t in tiles
            ],
        },
    }


def _export_template(template: EnemyTemplate) -> Dict[str, Any]:
    data = template.model_dump(by_alias=True)
    data["rotation"] = [
        export_tile_id(a) if isinstance(a, (str, int)) else a for a in template.rotation
    ]
    return data


def _export_zone(zone: Zone) -> Dict[str, Any]:
    return {
        "id": zone.id,
        "name": zone.name,
        "width": zone.width,
        "height": zone.height,
        "tiles": [[export_tile_id(tid) for tid in row] for row in zone.tiles],
        "spawn": {"x": zone.spawn.x, "y": zone.spawn.y} if zone.spawn else None,
        "transports": [
            {
                "from": {"x": t.source.x, "y": t.source.y},
                "toZoneId": t.to_zone_id,
                "to": {"x": t.target.x, "y": t.target.y},
            }
            for t in zone.transports
        ],
        "enemyPlacements": [
            {"x": p.x, "y": p.y, "templateId": p.template_id}
            for p in zone.enemy_placements
        ],
    }


def _export_npc(npc: NPC) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": npc.id,
        "name": npc.name,
        "sprite": npc.sprite,
        "facing": npc.facing.value,
        "zoneId": npc.zone_id,
        "x": npc.x,
        "y": npc.y,
    }
    if not npc.dialog.is_empty:
        data["dialog"] = {
            "entries": [list(group) for group in npc.dialog.entries],
            "loopTo": npc.dialog.loop_to,
        }
    if npc.service is not None:
        data["service"] = {"type": npc.service.type, "shopId": npc.service.shop_id}
    return data


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------
def import_world(raw: Any) -> WorldModel:
    """Build a fresh, consistent model from a world document.

    Raises WorldFormatError before building anything when the document is
    not an object (or a non-empty array whose first element is used).
    """
    if isinstance(raw, list):
        if not raw:
            raise WorldFormatError("World JSON array is empty.")
        if len(raw) > 1:
            logger.warning(
                "World JSON holds %d documents; using the first one.", len(raw)
            )
        raw = raw[0]
    if not isinstance(raw, dict):
        raise WorldFormatError("World JSON must be an object.")

    world = WorldModel(palette=_import_palette(raw))
    _import_settings(world, raw)
    world.templates = _import_templates(raw)
    world.zones, id_map = _import_zones(raw, world.palette)
    _repair_transport_targets(world, id_map)
    _import_npcs(world, raw, id_map)
    return world


def _positive(value: Any) -> Optional[int]:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(value, bool) or not math.isfinite(number) or number <= 0:
        return None
    return int(number)


def _coord(value: Any) -> int:
    number = as_int(value)
    return number if number is not None else 0


def _import_settings(world: WorldModel, raw: Dict[str, Any]):
    settings = world.settings
    settings.id = str(raw.get("id") or "")
    settings.name = str(raw.get("name") or "")
    settings.tile_size = _positive(raw.get("tileSize")) or settings.tile_size
    settings.move_cooldown_ms = (
        _positive(raw.get("moveCooldownMs")) or settings.move_cooldown_ms
    )
    encounters = raw.get("encounters")
    if isinstance(encounters, dict):
        count = as_int(encounters.get("enemyCount"))
        if count is not None and count > 0:
            settings.enemy_count = count


def _import_palette(raw: Dict[str, Any]) -> Palette:
    order: List[str] = []
    fills: Dict[str, str] = {}
    configs: Dict[str, Dict[str, Any]] = {}
    entries: Dict[str, TileDef] = {}
    positions: Dict[str, Tuple[int, int]] = {}

    def note(tid: str):
        if tid not in order:
            order.append(tid)

    tile_config = raw.get("tileConfig")
    if isinstance(tile_config, dict):
        for key, value in tile_config.items():
            tid = _tile_key(key)
            if tid is None or not isinstance(value, dict):
                logger.debug("Skipping invalid tileConfig entry %r", key)
                continue
            configs[tid] = value
            note(tid)

    layout_doc = raw.get("paletteLayout")
    palette_map = raw.get("palette")
    if isinstance(palette_map, dict) and isinstance(palette_map.get("tiles"), list):
        # A catalog palette document in place of the colour map
        layout_doc = layout_doc if isinstance(layout_doc, dict) else palette_map
        palette_map = None
    if isinstance(palette_map, dict):
        for key, value in palette_map.items():
            tid = _tile_key(key)
            if tid is None or not isinstance(value, str) or not value:
                logger.debug("Skipping invalid palette colour %r", key)
                continue
            fills[tid] = value
            note(tid)

    if not isinstance(layout_doc, dict):
        layout_doc = {}
    listed = [
        e
        for key in ("positions", "tiles")
        if isinstance(layout_doc.get(key), list)
        for e in layout_doc[key]
    ]
    for entry in listed:
        tile = tile_from_entry(entry)
        if tile is None:
            logger.debug("Skipping invalid palette tile entry %r", entry)
            continue
        entries.setdefault(tile.tile_id, tile)
        if tile.cell is not None:
            positions.setdefault(tile.tile_id, tile.cell)
        note(tile.tile_id)
    matrix = layout_doc.get("layout")
    if isinstance(matrix, list):
        for r, line in enumerate(matrix):
            if not isinstance(line, list):
                continue
            for c, value in enumerate(line):
                tid = _tile_key(value)
                if tid is None:
                    continue
                positions.setdefault(tid, (r, c))
                note(tid)

    if not order:
        logger.info("No palette tiles in document; using the default tiles.")
        return Palette.with_defaults()

    tiles = []
    for tid in order:
        cfg = configs.get(tid, {})
        entry = entries.get(tid)
        sprite = cfg.get("sprite")
        if not isinstance(sprite, str) or not sprite:
            sprite = entry.sprite if entry else None
        fill = cfg.get("fill")
        if not isinstance(fill, str) or not fill:
            fill = fills.get(tid) or (entry.fill if entry else CONFIG.default_fill)
        walkable = as_bool(cfg.get("walkable"), entry.walkable if entry else True)
        row, column = positions.get(tid, (None, None))
        tiles.append(
            TileDef(tid, sprite=sprite, fill=fill, walkable=walkable, row=row, column=column)
        )

    need_rows = max((p[0] + 1 for p in positions.values()), default=0)
    need_cols = max((p[1] + 1 for p in positions.values()), default=0)
    columns = _positive(layout_doc.get("columns"))
    if columns is None:
        columns = need_cols if positions else min(len(tiles), MAX_DIMENSION)
    columns = clamp_dimension(max(columns, need_cols))
    rows = _positive(layout_doc.get("rows"))
    if rows is None:
        rows = math.ceil(len(tiles) / columns)
    rows = clamp_dimension(max(rows, need_rows))

    doc_id = layout_doc.get("id")
    return Palette(
        rows=rows,
        columns=columns,
        tiles=tiles,
        name=str(layout_doc.get("name") or ""),
        description=str(layout_doc.get("description") or ""),
        palette_id=str(doc_id) if doc_id not in (None, "") else None,
    )


def _import_templates(raw: Dict[str, Any]) -> List[EnemyTemplate]:
    encounters = raw.get("encounters")
    source = encounters.get("templates") if isinstance(encounters, dict) else None
    if not isinstance(source, list):
        source = raw.get("enemyTemplates")
    if not isinstance(source, list):
        return []

    templates: List[EnemyTemplate] = []
    seen = set()
    for entry in source:
        try:
            template = EnemyTemplate.model_validate(entry)
        except SchemaError as e:
            logger.debug("Skipping invalid enemy template %r: %s", entry, e)
            continue
        if template.id in seen:
            logger.debug("Skipping repeated enemy template %s", template.id)
            continue
        seen.add(template.id)
        templates.append(template)
    return templates


def _zone_sources(raw: Dict[str, Any]) -> List[Any]:
    zones = raw.get("zones")
    if isinstance(zones, list) and zones:
        return zones
    tiles = raw.get("tiles")
    if isinstance(tiles, list):
        first = tiles[0] if tiles and isinstance(tiles[0], list) else None
        return [
            {
                "id": raw.get("id") or "zone",
                "name": raw.get("name") or raw.get("id") or "Zone",
                "width": len(first) if first is not None else raw.get("width"),
                "height": len(tiles),
                "tiles": tiles,
                "spawn": raw.get("spawn"),
                "transports": raw.get("transports") or [],
                "enemyPlacements": raw.get("enemyPlacements") or [],
            }
        ]
    return []


def _point(value: Any) -> Optional[Point]:
    if not isinstance(value, dict):
        return None
    return Point(_coord(value.get("x")), _coord(value.get("y")))


def _import_zones(
    raw: Dict[str, Any], palette: Palette
) -> Tuple[List[Zone], Dict[str, str]]:
    default_tile = palette.first_tile_id() or "0"
    zones: List[Zone] = []
    id_map: Dict[str, str] = {}

    for entry in _zone_sources(raw):
        if not isinstance(entry, dict):
            logger.debug("Skipping zone entry that is not an object: %r", entry)
            continue
        source_tiles = entry.get("tiles") if isinstance(entry.get("tiles"), list) else []
        first_row = source_tiles[0] if source_tiles and isinstance(source_tiles[0], list) else []
        width = _positive(entry.get("width")) or len(first_row)
        height = _positive(entry.get("height")) or len(source_tiles)
        if width <= 0 or height <= 0:
            logger.debug("Skipping zone %r without a size", entry.get("id"))
            continue
        if width > CONFIG.max_zone_size or height > CONFIG.max_zone_size:
            logger.warning(
                "Zone %r is %dx%d; clamping to %d", entry.get("id"), width, height, CONFIG.max_zone_size
            )
            width = min(width, CONFIG.max_zone_size)
            height = min(height, CONFIG.max_zone_size)

        raw_id = _tile_key(entry.get("id"))
        zone_id = unique_id(raw_id or entry.get("name") or "zone", [z.id for z in zones])
        if raw_id is not None:
            id_map.setdefault(raw_id, zone_id)
        id_map.setdefault(zone_id, zone_id)

        zone = Zone(zone_id, str(entry.get("name") or zone_id), width, height, default_tile)
        for y in range(height):
            line = source_tiles[y] if y < len(source_tiles) and isinstance(source_tiles[y], list) else []
            for x in range(width):
                tid = _tile_key(line[x]) if x < len(line) else None
                zone.tiles[y][x] = tid or default_tile

        for t in entry.get("transports") or []:
            if not isinstance(t, dict):
                continue
            source = _point(t.get("from")) or Point(0, 0)
            target = _point(t.get("to")) or Point(0, 0)
            to_zone = _tile_key(t.get("toZoneId")) or ""
            zone.set_transport(Transport(zone.clamp(source.x, source.y), to_zone, target))

        for p in entry.get("enemyPlacements") or []:
            if not isinstance(p, dict):
                continue
            template_id = _tile_key(p.get("templateId"))
            if template_id is None:
                continue
            cell = zone.clamp(_coord(p.get("x")), _coord(p.get("y")))
            zone.remove_enemy_at(cell.x, cell.y)
            zone.place_enemy(cell.x, cell.y, template_id)

        spawn = _point(entry.get("spawn"))
        zone.spawn = zone.clamp(spawn.x, spawn.y) if spawn else None
        zones.append(zone)
    return zones, id_map


def _repair_transport_targets(world: WorldModel, id_map: Dict[str, str]):
    for zone in world.zones:
        repaired = []
        for t in zone.transports:
            to_zone_id = id_map.get(t.to_zone_id, t.to_zone_id)
            target_zone = world.get_zone(to_zone_id)
            target = target_zone.clamp(t.target.x, t.target.y) if target_zone else t.target
            if to_zone_id == zone.id and target == t.source:
                logger.debug(
                    "Dropping transport at %s (%d,%d) that targets itself", zone.id, target.x, target.y
                )
                continue
            repaired.append(Transport(t.source, to_zone_id, target))
        zone.transports = repaired


def _import_dialog(value: Any) -> Dialog:
    loop_to = None
    if isinstance(value, dict):
        groups = value.get("entries")
        if groups is None:
            groups = value.get("lines")
        loop_to = as_int(value.get("loopTo", value.get("loop_to")))
    else:
        groups = value
    if not isinstance(groups, list):
        return Dialog()
    entries = []
    for group in groups:
        if isinstance(group, str):
            group = [group]
        if not isinstance(group, list):
            continue
        lines = [line for line in group if isinstance(line, str) and line.strip()]
        if lines:
            entries.append(lines)
    return Dialog(entries, loop_to)


def _import_service(value: Any) -> Optional[ShopService]:
    if not isinstance(value, dict) or value.get("type") != "shop":
        return None
    shop_id = _tile_key(value.get("shopId"))
    return ShopService(shop_id) if shop_id else None


def _import_npcs(world: WorldModel, raw: Dict[str, Any], id_map: Dict[str, str]):
    source = raw.get("npcs")
    if not isinstance(source, list):
        return
    for entry in source:
        if not isinstance(entry, dict):
            logger.debug("Skipping NPC entry that is not an object: %r", entry)
            continue
        raw_id = _tile_key(entry.get("id"))
        name = str(entry.get("name") or raw_id or "NPC")
        sprite = entry.get("sprite")
        npc = world.add_npc(
            name,
            npc_id=raw_id,
            sprite=sprite if isinstance(sprite, str) and sprite else None,
            facing=Facing.parse(entry.get("facing")),
            dialog=_import_dialog(entry.get("dialog")),
            service=_import_service(entry.get("service")),
        )
        raw_zone = _tile_key(entry.get("zoneId"))
        zone = world.get_zone(id_map.get(raw_zone, raw_zone)) if raw_zone else None
        if zone is None:
            continue
        cell = zone.clamp(_coord(entry.get("x")), _coord(entry.get("y")))
        world.place_npc(npc.id, zone.id, cell.x, cell.y)


# ----------------------------------------------------------------------
# Text and files
# ----------------------------------------------------------------------
def export_json(world: WorldModel, indent: Optional[int] = None) -> str:
    indent = CONFIG.export_indent if indent is None else indent
    return json.dumps(export_world(world), indent=indent)


def import_json(text: str) -> WorldModel:
    if not text or not text.strip():
        raise WorldFormatError("Paste a world JSON before loading.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise WorldFormatError(f"Invalid JSON: {e}") from e
    return import_world(data)


def load_world(path: Union[str, Path]) -> WorldModel:
    filepath = Path(path)
    if not filepath.exists():
        raise FileNotFoundError(f"World file not found: {filepath}")
    with open(filepath, "r", encoding="utf-8") as f:
        return import_json(f.read())


def save_world(world: WorldModel, path: Union[str, Path], indent: Optional[int] = None):
    filepath = Path(path)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(export_json(world, indent))
        f.write("\n")
