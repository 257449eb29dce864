"""
Pytest configuration and shared fixtures for World Editor tests.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from world_editor.catalog import JsonCatalogStore
from world_editor.editor import WorldEditor
from world_editor.models import TileDef
from world_editor.palette import Palette
from world_editor.world import WorldModel


@pytest.fixture
def palette():
    """3x3 palette with tiles 0, 1, 2 along the top row."""
    return Palette(
        rows=3,
        columns=3,
        tiles=[
            TileDef("0", fill="#000000", row=0, column=0),
            TileDef("1", fill="#ffffff", row=0, column=1),
            TileDef("2", fill="#dcdcdc", row=0, column=2),
        ],
    )


@pytest.fixture
def world(palette):
    """World with two 5x5 zones, town and forest."""
    model = WorldModel(palette=palette)
    model.add_zone("Town", 5, 5, "0")
    model.add_zone("Forest", 5, 5, "0")
    return model


@pytest.fixture
def catalog(tmp_path):
    """Catalog store rooted in a temporary directory."""
    return JsonCatalogStore(str(tmp_path / "catalog"))


@pytest.fixture
def editor(world, catalog):
    """Editor controller over the two-zone world."""
    return WorldEditor(world, catalog)
