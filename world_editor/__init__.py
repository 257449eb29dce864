"""
World Editor: authoring engine for tile-based game worlds.
"""

from .codec import export_world, import_world
from .editor import WorldEditor
from .world import WorldModel

__all__ = ["WorldEditor", "WorldModel", "export_world", "import_world"]
