"""
World Editor controller.

Owns the world model and the editing state around it (palette selection,
transport picking, edit mode, brush size). Every mutating call re-derives
the dependent state and then notifies subscribed views with the names of
the parts that changed.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from pydantic import ValidationError as SchemaError

from . import codec, tools
from .catalog import CatalogService, flatten_equipment
from .errors import CatalogError, EditorError, ValidationError, WorldFormatError
from .models import NPC, Dialog, EditMode, EnemyTemplate, Facing, ShopService
from .palette import Palette
from .selection import RegionSelector
from .transports import TransportLinkManager
from .world import WorldModel
from .zone import Zone

logger = logging.getLogger(__name__)

Listener = Callable[[Set[str]], None]


class WorldEditor:
    def __init__(
        self,
        world: Optional[WorldModel] = None,
        catalog: Optional[CatalogService] = None,
    ):
        self.world = world if world is not None else WorldModel()
        self.catalog = catalog
        self.selector = RegionSelector()
        self.links = TransportLinkManager()

        self.mode = EditMode.TILE
        self.brush_size = 1
        self.selected_zone_id: Optional[str] = None
        self.selected_template_id: Optional[str] = None
        self.editing_template_id: Optional[str] = None
        self.selected_npc_id: Optional[str] = None
        self.status_message = ""

        self.abilities: List[Dict[str, Any]] = []
        self.equipment_by_slot: Dict[str, List[Dict[str, Any]]] = {}
        self.sprites: List[Dict[str, Any]] = []

        self._listeners: List[Listener] = []
        self._reset_editing_state()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _changed(self, *views: str):
        changed = set(views)
        for listener in list(self._listeners):
            listener(changed)

    def _reject(self, error: Union[str, EditorError]) -> bool:
        self.status_message = str(error)
        logger.info("Rejected: %s", self.status_message)
        return False

    def _ok(self, message: str, *views: str) -> bool:
        self.status_message = message
        self._changed(*views)
        return True

    def _reset_editing_state(self):
        self.selected_zone_id = self.world.zones[0].id if self.world.zones else None
        self.selected_template_id = None
        self.editing_template_id = None
        self.selected_npc_id = None
        self.links.reset()
        self.selector.clear()
        first = self.world.palette.first_tile_id()
        if first is not None:
            self.selector.select_tile(self.world.palette, first)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def palette(self) -> Palette:
        return self.world.palette

    @property
    def selected_zone(self) -> Optional[Zone]:
        return self.world.get_zone(self.selected_zone_id)

    @property
    def selected_tile_id(self) -> Optional[str]:
        return self.selector.selected_tile_id

    @property
    def brush_controls_enabled(self) -> bool:
        return self.selector.brush_controls_enabled

    def template_label(self, template_id: str) -> str:
        template = self.world.get_template(template_id)
        return f"{template.name} ({template_id})" if template else f"unknown ({template_id})"

    def npc_location_label(self, npc: NPC) -> str:
        if not npc.is_placed:
            return "Unplaced"
        zone = self.world.get_zone(npc.zone_id)
        zone_name = zone.name if zone else npc.zone_id
        return f"{zone_name} ({npc.x}, {npc.y})"

    # ------------------------------------------------------------------
    # Palette selection
    # ------------------------------------------------------------------
    def press_palette(self, row: int, column: int) -> bool:
        if self.selector.press(self.palette, row, column):
            self._changed("selection")
            return True
        return False

    def drag_palette(self, row: int, column: int) -> bool:
        if self.selector.move(self.palette, row, column):
            self._changed("selection")
            return True
        return False

    def release_palette(self, row: Optional[int] = None, column: Optional[int] = None) -> bool:
        committed = self.selector.release(self.palette, row, column)
        self._changed("selection")
        return committed is not None

    def click_palette(self, row: int, column: int) -> bool:
        committed = self.selector.click(self.palette, row, column)
        self._changed("selection")
        return committed is not None

    def cancel_palette(self):
        self.selector.cancel()
        self._changed("selection")

    def select_tile(self, tile_id: str) -> bool:
        if self.selector.select_tile(self.palette, tile_id) is None:
            return self._reject(f"Unknown tile {tile_id}.")
        return self._ok("", "selection")

    def set_brush_size(self, size: int) -> int:
        self.brush_size = tools.clamp_brush_size(size)
        self._changed("brush")
        return self.brush_size

    # ------------------------------------------------------------------
    # Palette editing
    # ------------------------------------------------------------------
    def _palette_changed(self, message: str) -> bool:
        self.selector.revalidate(self.palette)
        return self._ok(message, "palette", "selection")

    def set_palette_dimensions(self, rows: int, columns: int) -> bool:
        rows, columns = self.palette.set_dimensions(rows, columns)
        return self._palette_changed(f"Palette is {rows}x{columns}.")

    def add_palette_tile(
        self, row: int, column: int, sprite: Optional[str], walkable: bool = True,
        fill: Optional[str] = None,
    ) -> Optional[str]:
        try:
            tile = self.palette.add_tile((row, column), sprite, walkable, fill)
        except ValidationError as e:
            self._reject(e)
            return None
        self._palette_changed(f"Added tile {tile.tile_id}.")
        return tile.tile_id

    def update_palette_tile(
        self, tile_id: str, sprite: Optional[str], walkable: bool, fill: Optional[str] = None
    ) -> bool:
        try:
            self.palette.update_tile(tile_id, sprite, walkable, fill)
        except ValidationError as e:
            return self._reject(e)
        return self._palette_changed(f"Updated tile {tile_id}.")

    def remove_palette_tile(self, tile_id: str) -> bool:
        try:
            self.palette.remove_tile(tile_id)
        except ValidationError as e:
            return self._reject(e)
        return self._palette_changed(f"Removed tile {tile_id}.")

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------
    def add_zone(self, name: str, width: int, height: int) -> Optional[Zone]:
        fill = self.selected_tile_id or self.palette.first_tile_id()
        try:
            zone = self.world.add_zone(name, width, height, fill)
        except ValidationError as e:
            self._reject(e)
            return None
        self.selected_zone_id = zone.id
        self._ok(f"Added zone {zone.id}.", "zones", "zone")
        return zone

    def select_zone(self, zone_id: str) -> bool:
        if self.world.get_zone(zone_id) is None:
            return self._reject(f"Unknown zone {zone_id}.")
        self.selected_zone_id = zone_id
        return self._ok("", "zones", "zone")

    def rename_zone(self, zone_id: str, name: str) -> bool:
        try:
            self.world.rename_zone(zone_id, name)
        except ValidationError as e:
            return self._reject(e)
        return self._ok("", "zones", "zone")

    def delete_zone(self, zone_id: str) -> bool:
        try:
            self.world.delete_zone(zone_id)
        except ValidationError as e:
            return self._reject(e)
        self.links.forget_zone(zone_id)
        if self.selected_zone_id == zone_id:
            self.selected_zone_id = self.world.zones[0].id if self.world.zones else None
        return self._ok(f"Deleted zone {zone_id}.", "zones", "zone", "transports", "npcs")

    # ------------------------------------------------------------------
    # Zone cells
    # ------------------------------------------------------------------
    def set_mode(self, mode: Union[str, EditMode]) -> bool:
        try:
            self.mode = mode if isinstance(mode, EditMode) else EditMode(mode)
        except ValueError:
            return self._reject(f"Unknown edit mode {mode}.")
        return self._ok("", "mode")

    def click_cell(self, x: int, y: int) -> bool:
        zone = self.selected_zone
        if zone is None:
            return self._reject("Select a zone to edit.")
        try:
            if self.mode == EditMode.TILE:
                painted = tools.apply_brush(
                    zone, x, y, self.selector.committed, self.brush_size
                )
                return self._ok(f"Painted {len(painted)} cells.", "zone")
            if self.mode == EditMode.ENEMY:
                if not self.selected_template_id:
                    raise ValidationError("Select an enemy template to place.")
                zone.place_enemy(x, y, self.selected_template_id)
                return self._ok("", "zone")
            if self.mode == EditMode.TRANSPORT:
                edge = self.links.select_cell(self.world, zone.id, x, y)
                message = "Transport saved." if edge else "Select the destination cell."
                return self._ok(message, "zone", "transports")
            if self.mode == EditMode.SPAWN:
                zone.set_spawn(x, y)
                return self._ok("", "zone")
            if self.mode == EditMode.NPC:
                if not self.selected_npc_id:
                    raise ValidationError("Select an NPC to place.")
                displaced = self.world.place_npc(self.selected_npc_id, zone.id, x, y)
                message = f"{displaced.name} is now unplaced." if displaced else ""
                return self._ok(message, "zone", "npcs")
        except ValidationError as e:
            return self._reject(e)
        return False

    def alt_click_cell(self, x: int, y: int) -> bool:
        """Alternate (right-click) action: clear whatever the mode edits."""
        zone = self.selected_zone
        if zone is None:
            return self._reject("Select a zone to edit.")
        if not zone.in_bounds(x, y):
            return self._reject(f"({x}, {y}) is outside zone {zone.id}.")
        if self.mode == EditMode.TILE:
            tools.erase_cell(zone, self.palette, x, y)
        elif self.mode == EditMode.ENEMY:
            zone.remove_enemy_at(x, y)
        elif self.mode == EditMode.TRANSPORT:
            self.links.remove_transport(self.world, zone.id, x, y)
        elif self.mode == EditMode.SPAWN:
            zone.clear_spawn_at(x, y)
        elif self.mode == EditMode.NPC:
            npc = self.world.npc_at(zone.id, x, y)
            if npc is not None:
                npc.unplace()
        return self._ok("", "zone", "transports", "npcs")

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------
    def set_two_way(self, enabled: bool):
        self.links.set_two_way(enabled)
        self._changed("transports")

    def commit_transport(self) -> bool:
        try:
            self.links.commit(self.world)
        except ValidationError as e:
            return self._reject(e)
        return self._ok("Transport saved.", "zone", "transports")

    def cancel_transport(self):
        self.links.reset()
        self._changed("transports")

    def remove_transport(self, zone_id: str, x: int, y: int) -> bool:
        if self.links.remove_transport(self.world, zone_id, x, y) is None:
            return self._reject(f"No transport at ({x}, {y}).")
        return self._ok("", "zone", "transports")

    def remove_enemy_placement(self, zone_id: str, x: int, y: int) -> bool:
        zone = self.world.get_zone(zone_id)
        if zone is None or zone.remove_enemy_at(x, y) is None:
            return self._reject(f"No enemy placement at ({x}, {y}).")
        return self._ok("", "zone")

    # ------------------------------------------------------------------
    # Enemy templates
    # ------------------------------------------------------------------
    def save_template(self, data: Union[Dict[str, Any], EnemyTemplate]) -> bool:
        try:
            template = (
                data if isinstance(data, EnemyTemplate) else EnemyTemplate.model_validate(data)
            )
        except SchemaError:
            return self._reject("Enemy template requires an ID.")
        try:
            self.world.upsert_template(template, self.editing_template_id)
        except ValidationError as e:
            return self._reject(e)
        self.editing_template_id = None
        return self._ok(f"Saved template {template.id}.", "templates", "zone")

    def edit_template(self, template_id: str) -> Optional[EnemyTemplate]:
        template = self.world.get_template(template_id)
        if template is None:
            self._reject(f"Unknown template {template_id}.")
            return None
        self.editing_template_id = template_id
        return template.model_copy(deep=True)

    def select_template(self, template_id: Optional[str]) -> bool:
        if template_id is not None and self.world.get_template(template_id) is None:
            return self._reject(f"Unknown template {template_id}.")
        self.selected_template_id = template_id
        return self._ok("", "templates")

    def delete_template(self, template_id: str) -> bool:
        try:
            self.world.delete_template(template_id)
        except ValidationError as e:
            return self._reject(e)
        if self.selected_template_id == template_id:
            self.selected_template_id = None
        if self.editing_template_id == template_id:
            self.editing_template_id = None
        return self._ok(f"Deleted template {template_id}.", "templates", "zone")

    # ------------------------------------------------------------------
    # NPCs
    # ------------------------------------------------------------------
    def add_npc(
        self,
        name: str,
        sprite: Optional[str] = None,
        facing: Union[str, Facing] = Facing.DOWN,
    ) -> Optional[NPC]:
        if not str(name or "").strip():
            self._reject("NPC name is required.")
            return None
        facing = facing if isinstance(facing, Facing) else Facing.parse(facing)
        npc = self.world.add_npc(name, sprite=sprite or None, facing=facing)
        self.selected_npc_id = npc.id
        self._ok(f"Added NPC {npc.id}.", "npcs")
        return npc

    def select_npc(self, npc_id: Optional[str]) -> bool:
        if npc_id is not None and self.world.get_npc(npc_id) is None:
            return self._reject(f"Unknown NPC {npc_id}.")
        self.selected_npc_id = npc_id
        return self._ok("", "npcs")

    def unplace_npc(self, npc_id: str) -> bool:
        try:
            self.world.unplace_npc(npc_id)
        except ValidationError as e:
            return self._reject(e)
        return self._ok("", "npcs", "zone")

    def delete_npc(self, npc_id: str) -> bool:
        try:
            self.world.delete_npc(npc_id)
        except ValidationError as e:
            return self._reject(e)
        if self.selected_npc_id == npc_id:
            self.selected_npc_id = None
        return self._ok(f"Deleted NPC {npc_id}.", "npcs", "zone")

    def set_npc_dialog(
        self, npc_id: str, entries: Iterable[Iterable[str]], loop_to: Optional[int] = None
    ) -> bool:
        npc = self.world.get_npc(npc_id)
        if npc is None:
            return self._reject(f"Unknown NPC {npc_id}.")
        groups = [[line for line in group if line.strip()] for group in entries]
        npc.dialog = Dialog([g for g in groups if g], loop_to)
        return self._ok("", "npcs")

    def set_npc_shop(self, npc_id: str, shop_id: Optional[str]) -> bool:
        npc = self.world.get_npc(npc_id)
        if npc is None:
            return self._reject(f"Unknown NPC {npc_id}.")
        npc.service = ShopService(shop_id) if shop_id else None
        return self._ok("", "npcs")

    # ------------------------------------------------------------------
    # World settings
    # ------------------------------------------------------------------
    def update_settings(self, **values: Any) -> bool:
        settings = self.world.settings
        for key in ("tile_size", "move_cooldown_ms", "enemy_count"):
            value = values.get(key)
            if key in values and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
                return self._reject(f"{key} must be a positive integer.")
        for key, value in values.items():
            if not hasattr(settings, key):
                return self._reject(f"Unknown world setting {key}.")
        for key, value in values.items():
            setattr(settings, key, value.strip() if isinstance(value, str) else value)
        return self._ok("", "world")

    # ------------------------------------------------------------------
    # World document
    # ------------------------------------------------------------------
    def export_document(self) -> Dict[str, Any]:
        return codec.export_world(self.world)

    def export_json(self) -> str:
        return codec.export_json(self.world)

    def _replace_world(self, world: WorldModel) -> bool:
        self.world = world
        self._reset_editing_state()
        return self._ok(
            f"Loaded {len(world.zones)} zones.",
            "world", "palette", "selection", "zones", "zone", "transports", "templates", "npcs",
        )

    def load_document(self, raw: Any) -> bool:
        try:
            world = codec.import_world(raw)
        except WorldFormatError as e:
            return self._reject(e)
        return self._replace_world(world)

    def load_json(self, text: str) -> bool:
        try:
            world = codec.import_json(text)
        except WorldFormatError as e:
            return self._reject(e)
        return self._replace_world(world)

    # ------------------------------------------------------------------
    # Catalog round-trips
    # ------------------------------------------------------------------
    def _require_catalog(self) -> CatalogService:
        if self.catalog is None:
            raise CatalogError("No catalog configured.")
        return self.catalog

    def load_catalogs(self) -> bool:
        try:
            catalog = self._require_catalog()
            abilities = catalog.list_abilities()
            equipment = flatten_equipment(catalog.load_equipment())
            sprites = catalog.list_sprites()
        except CatalogError as e:
            return self._reject(f"Failed to load catalogs: {e}")
        self.abilities, self.equipment_by_slot, self.sprites = abilities, equipment, sprites
        return self._ok("", "catalogs")

    def save_palette(self, name: Optional[str] = None, description: Optional[str] = None) -> bool:
        doc = self.palette.to_document()
        if name is not None:
            doc["name"] = name
        if description is not None:
            doc["description"] = description
        try:
            saved = self._require_catalog().save_palette(doc)
        except CatalogError as e:
            return self._reject(e)
        self.palette.id = saved.get("id")
        self.palette.name = saved.get("name", self.palette.name)
        self.palette.description = saved.get("description", self.palette.description)
        return self._ok(f"Saved palette {self.palette.id}.", "palette")

    def load_palette(self, palette_id: str) -> bool:
        try:
            doc = self._require_catalog().get_palette(palette_id)
        except CatalogError as e:
            return self._reject(e)
        if not isinstance(doc, dict):
            return self._reject(f"Palette {palette_id} is not a palette document.")
        self.world.palette = Palette.from_document(doc)
        return self._palette_changed(f"Loaded palette {palette_id}.")

    def delete_palette(self, palette_id: str) -> bool:
        try:
            self._require_catalog().delete_palette(palette_id)
        except CatalogError as e:
            return self._reject(e)
        if self.palette.id == palette_id:
            self.palette.id = None
        return self._ok(f"Deleted palette {palette_id}.", "palette")

    def load_templates(self) -> bool:
        try:
            docs = self._require_catalog().list_enemy_templates()
        except CatalogError as e:
            return self._reject(e)
        for doc in docs:
            try:
                self.world.upsert_template(EnemyTemplate.model_validate(doc))
            except SchemaError:
                logger.debug("Skipping invalid catalog template %r", doc)
        return self._ok("", "templates")

    def publish_template(self, template_id: str) -> bool:
        template = self.world.get_template(template_id)
        if template is None:
            return self._reject(f"Unknown template {template_id}.")
        try:
            self._require_catalog().save_enemy_template(template.model_dump(by_alias=True))
        except CatalogError as e:
            return self._reject(e)
        return self._ok(f"Published template {template_id}.")

    def delete_catalog_template(self, template_id: str) -> bool:
        try:
            self._require_catalog().delete_enemy_template(template_id)
        except CatalogError as e:
            return self._reject(e)
        if self.world.get_template(template_id) is not None:
            return self.delete_template(template_id)
        return self._ok(f"Deleted template {template_id}.", "templates")
