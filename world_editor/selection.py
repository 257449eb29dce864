"""
Palette region selection for the World Editor.

A press over a palette cell anchors the selection, moves stretch the
provisional region and a release commits it. Only committed selections are
used for painting.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple, Union

from .models import Region, TilePattern

if TYPE_CHECKING:
    from .palette import Palette

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Committed:
    region: Region
    pattern: TilePattern

    @property
    def is_multi_cell(self) -> bool:
        return not self.pattern.is_single

    @property
    def tile_id(self) -> Optional[str]:
        return self.pattern.single_tile_id


@dataclass(frozen=True)
class Anchored:
    anchor: Cell
    current: Cell
    previous: Optional[Committed] = None

    @property
    def dragging(self) -> bool:
        return self.current != self.anchor

    @property
    def region(self) -> Region:
        return Region.from_corners(
            self.anchor[0], self.anchor[1], self.current[0], self.current[1]
        )


SelectionState = Union[Idle, Anchored, Committed]


class RegionSelector:
    def __init__(self):
        self.state: SelectionState = Idle()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def committed(self) -> Optional[Committed]:
        """The selection painting uses; a drag in progress does not count."""
        if isinstance(self.state, Committed):
            return self.state
        if isinstance(self.state, Anchored):
            return self.state.previous
        return None

    @property
    def highlight(self) -> Optional[Region]:
        if isinstance(self.state, Anchored):
            return self.state.region
        if isinstance(self.state, Committed):
            return self.state.region
        return None

    @property
    def selected_tile_id(self) -> Optional[str]:
        sel = self.committed
        return sel.tile_id if sel else None

    @property
    def pattern(self) -> Optional[TilePattern]:
        sel = self.committed
        return sel.pattern if sel else None

    @property
    def brush_controls_enabled(self) -> bool:
        sel = self.committed
        return sel is None or not sel.is_multi_cell

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------
    def press(self, palette: "Palette", row: int, column: int) -> bool:
        if palette.tile_at(row, column) is None:
            return False
        self.state = Anchored(
            anchor=(row, column), current=(row, column), previous=self.committed
        )
        return True

    def move(self, palette: "Palette", row: int, column: int) -> bool:
        if not isinstance(self.state, Anchored):
            return False
        row = max(0, min(row, palette.rows - 1))
        column = max(0, min(column, palette.columns - 1))
        if (row, column) == self.state.current:
            return False
        self.state = Anchored(self.state.anchor, (row, column), self.state.previous)
        return True

    def release(
        self,
        palette: "Palette",
        row: Optional[int] = None,
        column: Optional[int] = None,
    ) -> Optional[Committed]:
        if not isinstance(self.state, Anchored):
            return None
        if row is not None and column is not None:
            self.move(palette, row, column)
        return self.commit(palette, self.state.region)

    def click(self, palette: "Palette", row: int, column: int) -> Optional[Committed]:
        if not self.press(palette, row, column):
            return None
        return self.release(palette)

    def cancel(self):
        """Drop a drag in progress and fall back to the last commit."""
        if isinstance(self.state, Anchored):
            self.state = self.state.previous or Idle()

    # ------------------------------------------------------------------
    # Commit / revalidate
    # ------------------------------------------------------------------
    def commit(self, palette: "Palette", region: Region) -> Optional[Committed]:
        region = region.clamp(palette.rows, palette.columns)
        pattern = palette.pattern_for(region)
        if not pattern.has_tiles:
            logger.debug("Region %s holds no tiles, clearing selection", region)
            self.state = Idle()
            return None
        self.state = Committed(region, pattern)
        return self.state

    def select_tile(self, palette: "Palette", tile_id: str) -> Optional[Committed]:
        cell = palette.cell_of(tile_id)
        if cell is None:
            return None
        return self.commit(palette, Region(cell[0], cell[0], cell[1], cell[1]))

    def clear(self):
        self.state = Idle()

    def revalidate(self, palette: "Palette"):
        """Re-read the committed region after the palette layout changed."""
        if isinstance(self.state, Anchored):
            self.state = self.state.previous or Idle()
        if isinstance(self.state, Committed):
            self.commit(palette, self.state.region)
