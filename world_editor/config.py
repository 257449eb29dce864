"""
Configuration settings for the World Editor.
"""

import logging
import os
from typing import Any, Dict, List

import toml
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class EditorConfig(BaseModel):
    """Configuration settings for the editor."""

    # World defaults
    world_id: str = "new_world"
    world_name: str = "New World"
    tile_size: int = 32
    move_cooldown_ms: int = 180
    enemy_count: int = 6
    max_zone_size: int = 1024

    # Palette defaults
    palette_rows: int = 3
    palette_columns: int = 3
    default_fill: str = "#ffffff"
    default_tiles: List[Dict[str, str]] = [
        {"id": "0", "fill": "#000000", "sprite": "/assets/Sprite-0003.png"},
        {"id": "1", "fill": "#ffffff", "sprite": "/assets/Sprite-0001.png"},
        {"id": "2", "fill": "#dcdcdc", "sprite": "/assets/Sprite-0002.png"},
    ]

    # Output
    export_indent: int = 2
    log_level: str = "WARNING"

    # Paths
    catalog_dir: str = "catalog"

    model_config = ConfigDict(extra="allow")

    @classmethod
    def load_from_toml(cls, path: str = "world_editor.toml") -> "EditorConfig":
        """Load configuration from a TOML file."""
        if not os.path.exists(path):
            logger.debug("Config file %s not found. Using defaults.", path)
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = toml.load(f)

            settings: Dict[str, Any] = dict(data.get("editor", {}))
            # World defaults may live in their own table
            for key, value in data.get("world", {}).items():
                settings.setdefault(key, value)

            return cls(**settings)
        except Exception as e:
            logger.warning("Error loading config %s: %s", path, e)
            return cls()


# Global config instance
CONFIG = EditorConfig.load_from_toml()
