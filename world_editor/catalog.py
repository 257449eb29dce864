"""
Catalog services used by the World Editor.

The editor only consumes the catalog through request/response calls:
palettes and enemy templates can be listed, fetched, saved and deleted,
while sprites, abilities and equipment are read-only. `JsonCatalogStore`
serves these from a directory of JSON files.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import CONFIG
from .errors import CatalogError
from .zone import slugify, unique_id

logger = logging.getLogger(__name__)


class CatalogService(ABC):
    """Request/response contract of the catalog and persistence backend."""

    @abstractmethod
    def list_abilities(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def load_equipment(self) -> Dict[str, List[Dict[str, Any]]]:
        raise NotImplementedError

    @abstractmethod
    def list_sprites(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def list_palettes(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def get_palette(self, palette_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def save_palette(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def delete_palette(self, palette_id: str):
        raise NotImplementedError

    @abstractmethod
    def list_enemy_templates(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def save_enemy_template(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def delete_enemy_template(self, template_id: str):
        raise NotImplementedError


def flatten_equipment(data: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    """Regroup `{category: [items]}` by slot, each slot sorted by item name."""
    by_slot: Dict[str, List[Dict[str, Any]]] = {}
    if not isinstance(data, dict):
        return by_slot
    for items in data.values():
        if not isinstance(items, list):
            continue
        for item in items:
            if not isinstance(item, dict) or not item.get("slot"):
                continue
            by_slot.setdefault(item["slot"], []).append(item)
    for items in by_slot.values():
        items.sort(key=lambda i: str(i.get("name", "")))
    return by_slot


class JsonCatalogStore(CatalogService):
    """Catalog backed by a directory of JSON files.

    Layout::

        <root>/abilities.json
        <root>/equipment.json
        <root>/sprites.json
        <root>/palettes/<id>.json
        <root>/enemy-templates/<id>.json
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or CONFIG.catalog_dir)
        self.palette_dir = self.root / "palettes"
        self.template_dir = self.root / "enemy-templates"

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------
    def _read(self, path: Path) -> Any:
        if not path.exists():
            raise CatalogError(f"Catalog entry not found: {path.name}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Failed to read {path}: {e}") from e

    def _write(self, path: Path, data: Any):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise CatalogError(f"Failed to write {path}: {e}") from e

    def _delete(self, path: Path):
        if not path.exists():
            raise CatalogError(f"Catalog entry not found: {path.name}")
        try:
            path.unlink()
        except OSError as e:
            raise CatalogError(f"Failed to delete {path}: {e}") from e

    def _list_dir(self, directory: Path) -> List[Dict[str, Any]]:
        if not directory.exists():
            return []
        return [self._read(p) for p in sorted(directory.glob("*.json"))]

    def _list_file(self, name: str) -> Any:
        path = self.root / name
        if not path.exists():
            return None
        return self._read(path)

    # ------------------------------------------------------------------
    # Read-only catalogs
    # ------------------------------------------------------------------
    def list_abilities(self) -> List[Dict[str, Any]]:
        data = self._list_file("abilities.json")
        return data if isinstance(data, list) else []

    def load_equipment(self) -> Dict[str, List[Dict[str, Any]]]:
        data = self._list_file("equipment.json")
        return data if isinstance(data, dict) else {}

    def list_sprites(self) -> List[Dict[str, Any]]:
        data = self._list_file("sprites.json")
        if not isinstance(data, list):
            return []
        return [s for s in data if isinstance(s, dict) and s.get("id")]

    # ------------------------------------------------------------------
    # Palettes
    # ------------------------------------------------------------------
    def list_palettes(self) -> List[Dict[str, Any]]:
        return self._list_dir(self.palette_dir)

    def get_palette(self, palette_id: str) -> Dict[str, Any]:
        return self._read(self.palette_dir / f"{slugify(palette_id, 'palette')}.json")

    def save_palette(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        if not str(doc.get("name") or "").strip():
            raise CatalogError("Palette name is required.")
        saved = dict(doc)
        if not saved.get("id"):
            taken = [p.stem for p in self.palette_dir.glob("*.json")] if self.palette_dir.exists() else []
            saved["id"] = unique_id(saved["name"], taken, fallback="palette")
        self._write(self.palette_dir / f"{slugify(saved['id'], 'palette')}.json", saved)
        logger.info("Saved palette %s", saved["id"])
        return saved

    def delete_palette(self, palette_id: str):
        self._delete(self.palette_dir / f"{slugify(palette_id, 'palette')}.json")
        logger.info("Deleted palette %s", palette_id)

    # ------------------------------------------------------------------
    # Enemy templates
    # ------------------------------------------------------------------
    def list_enemy_templates(self) -> List[Dict[str, Any]]:
        return self._list_dir(self.template_dir)

    def save_enemy_template(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        template_id = str(doc.get("id") or "").strip()
        if not template_id:
            raise CatalogError("Enemy template requires an ID.")
        self._write(self.template_dir / f"{slugify(template_id, 'template')}.json", doc)
        logger.info("Saved enemy template %s", template_id)
        return dict(doc)

    def delete_enemy_template(self, template_id: str):
        self._delete(self.template_dir / f"{slugify(template_id, 'template')}.json")
        logger.info("Deleted enemy template %s", template_id)
