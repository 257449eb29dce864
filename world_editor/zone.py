"""
Zone grids for the World Editor.
A zone is one rectangular map area: tile references plus placement layers.
"""

import re
from typing import Iterable, List, Optional, Set

from .errors import ValidationError
from .models import EnemyPlacement, Point, Transport


def slugify(base: str, fallback: str = "zone") -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", str(base or "").lower()).strip("_")
    return slug or fallback


def unique_id(base: str, taken: Iterable[str], fallback: str = "zone") -> str:
    """Slug of `base` that is not in `taken`, suffixed _2, _3... on collision."""
    taken = set(taken)
    slug = slugify(base, fallback)
    candidate = slug
    suffix = 1
    while candidate in taken:
        suffix += 1
        candidate = f"{slug}_{suffix}"
    return candidate


class Zone:
    def __init__(self, zone_id: str, name: str, width: int, height: int, fill: str):
        if width <= 0 or height <= 0:
            raise ValidationError("Width and height must be positive integers.")
        self.id = zone_id
        self.name = name
        self.width = width
        self.height = height
        self.tiles: List[List[str]] = [[fill for _ in range(width)] for _ in range(height)]
        self.transports: List[Transport] = []
        self.enemy_placements: List[EnemyPlacement] = []
        self.spawn: Optional[Point] = None

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def require_in_bounds(self, x: int, y: int):
        if not self.in_bounds(x, y):
            raise ValidationError(f"({x}, {y}) is outside zone {self.id}.")

    def clamp(self, x: int, y: int) -> Point:
        return Point(max(0, min(x, self.width - 1)), max(0, min(y, self.height - 1)))

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------
    def get_tile(self, x: int, y: int) -> Optional[str]:
        if self.in_bounds(x, y):
            return self.tiles[y][x]
        return None

    def set_tile(self, x: int, y: int, tile_id: str) -> bool:
        if self.in_bounds(x, y) and tile_id:
            self.tiles[y][x] = tile_id
            return True
        return False

    def used_tile_ids(self) -> Set[str]:
        return {tid for row in self.tiles for tid in row}

    # ------------------------------------------------------------------
    # Spawn
    # ------------------------------------------------------------------
    def set_spawn(self, x: int, y: int):
        self.require_in_bounds(x, y)
        self.spawn = Point(x, y)

    def clear_spawn_at(self, x: int, y: int) -> bool:
        if self.spawn == Point(x, y):
            self.spawn = None
            return True
        return False

    # ------------------------------------------------------------------
    # Enemy placements
    # ------------------------------------------------------------------
    def enemy_at(self, x: int, y: int) -> Optional[EnemyPlacement]:
        for p in self.enemy_placements:
            if p.x == x and p.y == y:
                return p
        return None

    def place_enemy(self, x: int, y: int, template_id: str) -> Optional[EnemyPlacement]:
        """Place a template on a cell.

        Placing the template a cell already holds removes it again; any other
        template replaces the existing placement. Returns the placement left
        on the cell.
        """
        self.require_in_bounds(x, y)
        existing = self.enemy_at(x, y)
        if existing is not None:
            if existing.template_id == template_id:
                self.enemy_placements.remove(existing)
                return None
            existing.template_id = template_id
            return existing
        placement = EnemyPlacement(x, y, template_id)
        self.enemy_placements.append(placement)
        return placement

    def remove_enemy_at(self, x: int, y: int) -> Optional[EnemyPlacement]:
        existing = self.enemy_at(x, y)
        if existing is not None:
            self.enemy_placements.remove(existing)
        return existing

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------
    def transport_at(self, x: int, y: int) -> Optional[Transport]:
        for t in self.transports:
            if t.source.x == x and t.source.y == y:
                return t
        return None

    def set_transport(self, transport: Transport) -> Optional[Transport]:
        """Store an edge, replacing any edge leaving the same cell."""
        self.require_in_bounds(transport.source.x, transport.source.y)
        for i, t in enumerate(self.transports):
            if t.source == transport.source:
                self.transports[i] = transport
                return t
        self.transports.append(transport)
        return None

    def remove_transport_at(self, x: int, y: int) -> Optional[Transport]:
        existing = self.transport_at(x, y)
        if existing is not None:
            self.transports.remove(existing)
        return existing
