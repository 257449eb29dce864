"""
Tests for the tile palette: layout repair, id allocation and resizing.
"""

import pytest

from world_editor.errors import ValidationError
from world_editor.models import Region, TileDef
from world_editor.palette import Palette, tile_from_entry


def assert_layout_consistent(palette):
    cells = set()
    for tile in palette.tiles:
        assert palette.layout[tile.row][tile.column] == tile.tile_id
        assert (tile.row, tile.column) not in cells
        cells.add((tile.row, tile.column))
        assert 0 <= tile.row < palette.rows
        assert 0 <= tile.column < palette.columns


class TestRebuildLayout:
    """Test deriving the layout from the tile list."""

    def test_positions_are_kept(self, palette):
        """Test tiles with free, in-bounds cells stay where they are."""
        assert palette.layout[0] == ["0", "1", "2"]
        assert palette.layout[1] == [None, None, None]
        assert_layout_consistent(palette)

    def test_collision_moves_to_first_free_cell(self):
        """Test a tile sharing a cell is moved to the first free cell."""
        palette = Palette(
            rows=2,
            columns=2,
            tiles=[TileDef("a", row=0, column=0), TileDef("b", row=0, column=0)],
        )
        assert palette.layout == [["a", "b"], [None, None]]
        assert palette.get_tile("b").cell == (0, 1)
        assert_layout_consistent(palette)

    def test_out_of_bounds_is_relocated(self):
        """Test a tile outside the grid is placed in row-major order."""
        palette = Palette(
            rows=2,
            columns=2,
            tiles=[TileDef("a", row=0, column=0), TileDef("b", row=7, column=9)],
        )
        assert palette.get_tile("b").cell == (0, 1)
        assert_layout_consistent(palette)

    def test_unplaced_tiles_fill_row_major(self):
        """Test tiles without a position fill free cells in order."""
        palette = Palette(rows=2, columns=2, tiles=[TileDef("x"), TileDef("y"), TileDef("z")])
        assert palette.layout == [["x", "y"], ["z", None]]

    def test_full_grid_drops_extra_tiles(self):
        """Test tiles that do not fit are dropped."""
        palette = Palette(
            rows=1, columns=2, tiles=[TileDef("a"), TileDef("b"), TileDef("c")]
        )
        assert [t.tile_id for t in palette.tiles] == ["a", "b"]
        assert palette.get_tile("c") is None
        assert_layout_consistent(palette)

    def test_repeated_ids_are_dropped(self):
        """Test only the first tile with a given id is kept."""
        palette = Palette(
            rows=2, columns=2, tiles=[TileDef("a", fill="#111111"), TileDef("a", fill="#222222")]
        )
        assert len(palette.tiles) == 1
        assert palette.get_tile("a").fill == "#111111"


class TestTileEditing:
    """Test adding, updating and removing palette tiles."""

    def test_allocate_smallest_free_id(self, palette):
        """Test ids are the smallest unused non-negative integer."""
        palette.remove_tile("1")
        assert palette.allocate_tile_id() == "1"

    def test_add_tile(self, palette):
        """Test adding a tile at an empty cell."""
        tile = palette.add_tile((1, 1), "/assets/grass.png", walkable=False)
        assert tile.tile_id == "3"
        assert palette.tile_at(1, 1) == "3"
        assert tile.walkable is False
        assert tile.fill == "#ffffff"

    def test_add_tile_occupied_cell_rejected(self, palette):
        """Test adding onto an occupied cell is rejected."""
        with pytest.raises(ValidationError):
            palette.add_tile((0, 0), None)
        assert len(palette.tiles) == 3

    def test_add_tile_outside_rejected(self, palette):
        """Test adding outside the grid is rejected."""
        with pytest.raises(ValidationError):
            palette.add_tile((5, 0), None)

    def test_update_tile(self, palette):
        """Test updating sprite and walkability."""
        palette.update_tile("2", "/assets/wall.png", False)
        tile = palette.get_tile("2")
        assert tile.sprite == "/assets/wall.png"
        assert tile.walkable is False

    def test_update_unknown_tile(self, palette):
        """Test updating an unknown tile is rejected."""
        with pytest.raises(ValidationError):
            palette.update_tile("9", None, True)

    def test_remove_tile_frees_cell(self, palette):
        """Test removing a tile clears its layout cell."""
        palette.remove_tile("1")
        assert palette.tile_at(0, 1) is None
        assert palette.first_tile_id() == "0"


class TestDimensions:
    """Test resizing the palette."""

    def test_grow(self, palette):
        """Test growing keeps tiles in place."""
        assert palette.set_dimensions(5, 6) == (5, 6)
        assert palette.layout[0][:3] == ["0", "1", "2"]

    def test_shrink_stops_at_tile_bounds(self, palette):
        """Test shrinking cannot cut off existing tiles."""
        assert palette.set_dimensions(1, 1) == (1, 3)
        assert_layout_consistent(palette)

    def test_clamped_to_limits(self, palette):
        """Test dimensions are clamped to 1..20."""
        assert palette.set_dimensions(50, 0) == (20, 3)
        assert palette.set_dimensions(0, 40) == (1, 20)


class TestPattern:
    """Test reading patterns from regions."""

    def test_row_pattern(self, palette):
        """Test the top row yields the three tile ids."""
        pattern = palette.pattern_for(Region(0, 0, 0, 2))
        assert pattern.width == 3
        assert pattern.height == 1
        assert pattern.tiles == [["0", "1", "2"]]
        assert pattern.has_tiles

    def test_empty_region(self, palette):
        """Test a region over empty cells has no tiles."""
        pattern = palette.pattern_for(Region(1, 2, 0, 2))
        assert not pattern.has_tiles
        assert pattern.tiles == [[None] * 3, [None] * 3]


class TestDocuments:
    """Test catalog palette documents."""

    def test_document_round_trip(self, palette):
        """Test converting to a document and back keeps the layout."""
        palette.name = "Town"
        restored = Palette.from_document(palette.to_document())
        assert restored.layout == palette.layout
        assert restored.name == "Town"

    def test_invalid_tile_entries_skipped(self):
        """Test bad tile entries do not abort loading."""
        palette = Palette.from_document(
            {
                "name": "Broken",
                "rows": 2,
                "columns": 2,
                "tiles": ["nope", {"sprite": "x"}, {"tileId": "7", "row": 1, "column": 1}],
            }
        )
        assert [t.tile_id for t in palette.tiles] == ["7"]
        assert palette.tile_at(1, 1) == "7"

    def test_walkable_only_from_booleans(self):
        assert tile_from_entry({"tileId": "5", "walkable": "false"}).walkable is False
        assert tile_from_entry({"tileId": "5", "walkable": 0}).walkable is True
        assert tile_from_entry({"tileId": "5", "walkable": False}).walkable is False
