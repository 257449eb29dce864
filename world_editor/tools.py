"""
Painting tools for the World Editor.
"""

from typing import TYPE_CHECKING, List, Optional, Tuple

from .errors import ValidationError

if TYPE_CHECKING:
    from .palette import Palette
    from .selection import Committed
    from .zone import Zone

MIN_BRUSH_SIZE = 1
MAX_BRUSH_SIZE = 25


def clamp_brush_size(size: int) -> int:
    return max(MIN_BRUSH_SIZE, min(MAX_BRUSH_SIZE, int(size)))


def brush_footprint(zone: "Zone", x: int, y: int, size: int) -> List[Tuple[int, int]]:
    """Cells covered by a square brush of `size` centred on (x, y), clipped."""
    size = clamp_brush_size(size)
    h = (size - 1) // 2
    return [
        (x + dx, y + dy)
        for dy in range(-h, size - h)
        for dx in range(-h, size - h)
        if zone.in_bounds(x + dx, y + dy)
    ]


def draw_brush(
    zone: "Zone", x: int, y: int, tile_id: str, size: int
) -> List[Tuple[int, int]]:
    painted = []
    for cx, cy in brush_footprint(zone, x, y, size):
        zone.set_tile(cx, cy, tile_id)
        painted.append((cx, cy))
    return painted


def stamp_pattern(
    zone: "Zone", x: int, y: int, tiles: List[List[Optional[str]]]
) -> List[Tuple[int, int]]:
    """Write a pattern with its top-left at (x, y); empty cells are skipped."""
    painted = []
    for dy, line in enumerate(tiles):
        for dx, tile_id in enumerate(line):
            if tile_id is None:
                continue
            if zone.set_tile(x + dx, y + dy, tile_id):
                painted.append((x + dx, y + dy))
    return painted


def apply_brush(
    zone: "Zone",
    x: int,
    y: int,
    selection: Optional["Committed"],
    brush_size: int = 1,
) -> List[Tuple[int, int]]:
    """Paint the active palette selection onto a zone.

    A single tile is painted with the square brush; a multi-cell pattern is
    stamped as-is and ignores the brush size. Returns the cells written.
    """
    if selection is None:
        raise ValidationError("No tile selected.")
    if not zone.in_bounds(x, y):
        raise ValidationError(f"({x}, {y}) is outside zone {zone.id}.")
    if selection.is_multi_cell:
        return stamp_pattern(zone, x, y, selection.pattern.tiles)
    return draw_brush(zone, x, y, selection.tile_id, brush_size)


def erase_cell(zone: "Zone", palette: "Palette", x: int, y: int) -> bool:
    """Reset one cell to the palette's first tile, whatever the brush size."""
    default = palette.first_tile_id()
    if default is None:
        return False
    return zone.set_tile(x, y, default)
