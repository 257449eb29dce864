"""
Tile palette management for the World Editor.
Keeps the tile list and the row/column layout derived from it in step.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import CONFIG
from .errors import ValidationError
from .models import Region, TileDef, TilePattern

logger = logging.getLogger(__name__)

MIN_DIMENSION = 1
MAX_DIMENSION = 20


def clamp_dimension(value: int) -> int:
    return max(MIN_DIMENSION, min(MAX_DIMENSION, int(value)))


class Palette:
    def __init__(
        self,
        rows: int = None,
        columns: int = None,
        tiles: Optional[Iterable[TileDef]] = None,
        name: str = "",
        description: str = "",
        palette_id: Optional[str] = None,
    ):
        self.id = palette_id
        self.name = name
        self.description = description
        self.rows = clamp_dimension(rows if rows is not None else CONFIG.palette_rows)
        self.columns = clamp_dimension(
            columns if columns is not None else CONFIG.palette_columns
        )
        self.tiles: List[TileDef] = list(tiles or [])
        self.layout: List[List[Optional[str]]] = []
        self.rebuild_layout()

    @classmethod
    def with_defaults(cls) -> "Palette":
        """Blank palette seeded with the configured default tiles."""
        tiles = [
            TileDef(tile_id=str(t["id"]), sprite=t.get("sprite"), fill=t.get("fill", CONFIG.default_fill))
            for t in CONFIG.default_tiles
        ]
        return cls(tiles=tiles)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get_tile(self, tile_id: str) -> Optional[TileDef]:
        for tile in self.tiles:
            if tile.tile_id == tile_id:
                return tile
        return None

    def has_tile(self, tile_id: Optional[str]) -> bool:
        return tile_id is not None and self.get_tile(tile_id) is not None

    def tile_at(self, row: int, column: int) -> Optional[str]:
        if 0 <= row < self.rows and 0 <= column < self.columns:
            return self.layout[row][column]
        return None

    def tile_ids(self) -> List[str]:
        """Tile ids in row-major layout order."""
        return [tid for row in self.layout for tid in row if tid is not None]

    def first_tile_id(self) -> Optional[str]:
        ids = self.tile_ids()
        return ids[0] if ids else None

    def allocate_tile_id(self) -> str:
        """Smallest non-negative integer, as a string, not already in use."""
        used = {t.tile_id for t in self.tiles}
        n = 0
        while str(n) in used:
            n += 1
        return str(n)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def rebuild_layout(self):
        """Re-derive the layout from the tile list.

        Tiles whose stored cell is out of bounds or already taken are moved
        to the first free cell in row-major order. Tiles that cannot be
        placed because the grid is full are dropped, as are repeated ids.
        """
        layout: List[List[Optional[str]]] = [
            [None for _ in range(self.columns)] for _ in range(self.rows)
        ]
        seen = set()
        kept: List[TileDef] = []
        pending: List[TileDef] = []

        for tile in self.tiles:
            if tile.tile_id in seen:
                logger.debug("Dropping repeated palette tile id %s", tile.tile_id)
                continue
            seen.add(tile.tile_id)
            kept.append(tile)
            cell = tile.cell
            if (
                cell is not None
                and 0 <= cell[0] < self.rows
                and 0 <= cell[1] < self.columns
                and layout[cell[0]][cell[1]] is None
            ):
                layout[cell[0]][cell[1]] = tile.tile_id
            else:
                pending.append(tile)

        free = [
            (r, c)
            for r in range(self.rows)
            for c in range(self.columns)
            if layout[r][c] is None
        ]
        dropped = set()
        for tile in pending:
            if not free:
                logger.info("Palette full, dropping tile %s", tile.tile_id)
                dropped.add(tile.tile_id)
                continue
            r, c = free.pop(0)
            tile.row, tile.column = r, c
            layout[r][c] = tile.tile_id

        self.tiles = [t for t in kept if t.tile_id not in dropped]
        self.layout = layout

    def required_bounds(self) -> Tuple[int, int]:
        """Smallest (rows, columns) that still holds every positioned tile."""
        rows = max((t.row + 1 for t in self.tiles if t.row is not None), default=1)
        cols = max((t.column + 1 for t in self.tiles if t.column is not None), default=1)
        return rows, cols

    def set_dimensions(self, rows: int, columns: int) -> Tuple[int, int]:
        need_rows, need_cols = self.required_bounds()
        self.rows = clamp_dimension(max(int(rows), need_rows))
        self.columns = clamp_dimension(max(int(columns), need_cols))
        self.rebuild_layout()
        return self.rows, self.columns

    # ------------------------------------------------------------------
    # Tile editing
    # ------------------------------------------------------------------
    def add_tile(
        self,
        cell: Tuple[int, int],
        sprite: Optional[str],
        walkable: bool = True,
        fill: Optional[str] = None,
    ) -> TileDef:
        row, column = cell
        if not (0 <= row < self.rows and 0 <= column < self.columns):
            raise ValidationError(f"Cell ({row}, {column}) is outside the palette.")
        if self.layout[row][column] is not None:
            raise ValidationError(f"Cell ({row}, {column}) already holds a tile.")
        tile = TileDef(
            tile_id=self.allocate_tile_id(),
            sprite=sprite or None,
            fill=fill or CONFIG.default_fill,
            walkable=bool(walkable),
            row=row,
            column=column,
        )
        self.tiles.append(tile)
        self.rebuild_layout()
        return tile

    def update_tile(
        self,
        tile_id: str,
        sprite: Optional[str],
        walkable: bool,
        fill: Optional[str] = None,
    ) -> TileDef:
        tile = self.get_tile(tile_id)
        if tile is None:
            raise ValidationError(f"Unknown tile {tile_id}.")
        tile.sprite = sprite or None
        tile.walkable = bool(walkable)
        if fill:
            tile.fill = fill
        return tile

    def remove_tile(self, tile_id: str) -> TileDef:
        tile = self.get_tile(tile_id)
        if tile is None:
            raise ValidationError(f"Unknown tile {tile_id}.")
        self.tiles.remove(tile)
        self.rebuild_layout()
        return tile

    # ------------------------------------------------------------------
    # Regions
    # ------------------------------------------------------------------
    def pattern_for(self, region: Region) -> TilePattern:
        region = region.clamp(self.rows, self.columns)
        defined = {t.tile_id for t in self.tiles}
        tiles = []
        for r in range(region.start_row, region.end_row + 1):
            line = []
            for c in range(region.start_column, region.end_column + 1):
                tid = self.layout[r][c]
                line.append(tid if tid in defined else None)
            tiles.append(line)
        return TilePattern(tiles)

    def cell_of(self, tile_id: str) -> Optional[Tuple[int, int]]:
        tile = self.get_tile(tile_id)
        return tile.cell if tile else None

    # ------------------------------------------------------------------
    # Catalog documents
    # ------------------------------------------------------------------
    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rows": self.rows,
            "columns": self.columns,
            "tiles": [
                {
                    "tileId": t.tile_id,
                    "sprite": t.sprite,
                    "fill": t.fill,
                    "walkable": t.walkable,
                    "row": t.row,
                    "column": t.column,
                }
                for t in self.tiles
            ],
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Palette":
        """Build a palette from a catalog document, skipping bad tile entries."""
        tiles = []
        for entry in doc.get("tiles") or []:
            tile = tile_from_entry(entry)
            if tile is None:
                logger.debug("Skipping invalid palette tile entry %r", entry)
                continue
            tiles.append(tile)
        rows = as_int(doc.get("rows"))
        columns = as_int(doc.get("columns"))
        return cls(
            rows=rows if rows else None,
            columns=columns if columns else None,
            tiles=tiles,
            name=str(doc.get("name") or ""),
            description=str(doc.get("description") or ""),
            palette_id=str(doc["id"]) if doc.get("id") not in (None, "") else None,
        )


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def as_bool(value: Any, default: Optional[bool] = None) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return default


def tile_from_entry(entry: Any) -> Optional[TileDef]:
    """Parse one `{tileId, sprite, fill, walkable, row, column}` entry."""
    if not isinstance(entry, dict):
        return None
    raw_id = entry.get("tileId", entry.get("id"))
    if isinstance(raw_id, bool) or raw_id is None:
        return None
    tile_id = str(raw_id).strip()
    if not tile_id:
        return None
    row = as_int(entry.get("row"))
    column = as_int(entry.get("column"))
    if row is None or column is None or row < 0 or column < 0:
        row, column = None, None
    sprite = entry.get("sprite")
    fill = entry.get("fill")
    return TileDef(
        tile_id=tile_id,
        sprite=sprite if isinstance(sprite, str) and sprite else None,
        fill=fill if isinstance(fill, str) and fill else CONFIG.default_fill,
        walkable=as_bool(entry.get("walkable"), True),
        row=row,
        column=column,
    )
