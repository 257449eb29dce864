"""
The in-memory world model: palette, zones, enemy templates and NPCs.

Cross-entity rules live here so every caller goes through the same paths:
deleting a zone unplaces its NPCs, placing an NPC on an occupied cell
unplaces the previous occupant, and template ids stay unique.
"""

import logging
from typing import Dict, List, Optional

from .config import CONFIG
from .errors import ValidationError
from .models import NPC, EnemyTemplate, WorldSettings
from .palette import Palette
from .zone import Zone, unique_id

logger = logging.getLogger(__name__)


class WorldModel:
    def __init__(self, palette: Optional[Palette] = None):
        self.settings = WorldSettings()
        self.palette = palette if palette is not None else Palette.with_defaults()
        self.zones: List[Zone] = []
        self.templates: List[EnemyTemplate] = []
        self.npcs: List[NPC] = []

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------
    def get_zone(self, zone_id: Optional[str]) -> Optional[Zone]:
        for zone in self.zones:
            if zone.id == zone_id:
                return zone
        return None

    def zone_ids(self) -> List[str]:
        return [z.id for z in self.zones]

    def add_zone(
        self, name: str, width: int, height: int, fill: Optional[str] = None
    ) -> Zone:
        if not str(name or "").strip():
            raise ValidationError("Zone name is required.")
        if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
            raise ValidationError("Width and height must be positive integers.")
        if width > CONFIG.max_zone_size or height > CONFIG.max_zone_size:
            raise ValidationError(f"Zones are limited to {CONFIG.max_zone_size} cells per side.")
        fill = fill or self.palette.first_tile_id() or "0"
        zone = Zone(unique_id(name, self.zone_ids()), name, width, height, fill)
        self.zones.append(zone)
        return zone

    def rename_zone(self, zone_id: str, name: str) -> Zone:
        zone = self.get_zone(zone_id)
        if zone is None:
            raise ValidationError(f"Unknown zone {zone_id}.")
        zone.name = name
        return zone

    def delete_zone(self, zone_id: str) -> Zone:
        """Remove a zone and unplace every NPC standing in it.

        Transports in other zones that lead here are left dangling; they are
        reported by `dangling_references` and kept on export.
        """
        zone = self.get_zone(zone_id)
        if zone is None:
            raise ValidationError(f"Unknown zone {zone_id}.")
        self.zones.remove(zone)
        for npc in self.npcs:
            if npc.zone_id == zone_id:
                npc.unplace()
        return zone

    # ------------------------------------------------------------------
    # Enemy templates
    # ------------------------------------------------------------------
    def get_template(self, template_id: Optional[str]) -> Optional[EnemyTemplate]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def upsert_template(
        self, template: EnemyTemplate, editing_id: Optional[str] = None
    ) -> EnemyTemplate:
        """Insert or replace a template by id.

        When `editing_id` names the template being edited and the id changed
        to one another template already uses, the save is rejected.
        """
        index = next(
            (i for i, t in enumerate(self.templates) if t.id == template.id), None
        )
        if editing_id and editing_id != template.id and index is not None:
            raise ValidationError("Another template already uses that ID.")
        if index is not None:
            self.templates[index] = template
        elif editing_id and self.get_template(editing_id) is not None:
            old = self.get_template(editing_id)
            self.templates[self.templates.index(old)] = template
        else:
            self.templates.append(template)
        return template

    def delete_template(self, template_id: str) -> EnemyTemplate:
        """Drop a template. Placements that use it are kept and show as unknown."""
        template = self.get_template(template_id)
        if template is None:
            raise ValidationError(f"Unknown template {template_id}.")
        self.templates.remove(template)
        return template

    # ------------------------------------------------------------------
    # NPCs
    # ------------------------------------------------------------------
    def get_npc(self, npc_id: Optional[str]) -> Optional[NPC]:
        for npc in self.npcs:
            if npc.id == npc_id:
                return npc
        return None

    def npc_at(self, zone_id: str, x: int, y: int) -> Optional[NPC]:
        for npc in self.npcs:
            if npc.zone_id == zone_id and npc.x == x and npc.y == y:
                return npc
        return None

    def add_npc(self, name: str, npc_id: Optional[str] = None, **fields) -> NPC:
        taken = [n.id for n in self.npcs]
        new_id = unique_id(npc_id or name, taken, fallback="npc")
        npc = NPC(id=new_id, name=name or new_id, **fields)
        zone_id, x, y = npc.zone_id, npc.x, npc.y
        npc.unplace()
        self.npcs.append(npc)
        if zone_id is not None and x is not None and y is not None:
            self.place_npc(npc.id, zone_id, x, y)
        return npc

    def place_npc(self, npc_id: str, zone_id: str, x: int, y: int) -> Optional[NPC]:
        """Put an NPC on a cell. Returns the NPC that was displaced, if any."""
        npc = self.get_npc(npc_id)
        if npc is None:
            raise ValidationError(f"Unknown NPC {npc_id}.")
        zone = self.get_zone(zone_id)
        if zone is None:
            raise ValidationError(f"Unknown zone {zone_id}.")
        zone.require_in_bounds(x, y)
        occupant = self.npc_at(zone_id, x, y)
        if occupant is npc:
            return None
        if occupant is not None:
            occupant.unplace()
        npc.zone_id, npc.x, npc.y = zone_id, x, y
        return occupant

    def unplace_npc(self, npc_id: str) -> NPC:
        npc = self.get_npc(npc_id)
        if npc is None:
            raise ValidationError(f"Unknown NPC {npc_id}.")
        npc.unplace()
        return npc

    def delete_npc(self, npc_id: str) -> NPC:
        npc = self.get_npc(npc_id)
        if npc is None:
            raise ValidationError(f"Unknown NPC {npc_id}.")
        self.npcs.remove(npc)
        return npc

    def unplaced_npcs(self) -> List[NPC]:
        return [n for n in self.npcs if not n.is_placed]

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def dangling_references(self) -> Dict[str, List[str]]:
        """References the model tolerates but that point at nothing."""
        zone_ids = set(self.zone_ids())
        template_ids = {t.id for t in self.templates}
        report: Dict[str, List[str]] = {"transports": [], "enemyPlacements": [], "tiles": []}
        for zone in self.zones:
            for t in zone.transports:
                if t.to_zone_id not in zone_ids:
                    report["transports"].append(
                        f"{zone.id} ({t.source.x},{t.source.y}) -> {t.to_zone_id or '?'}"
                    )
            for p in zone.enemy_placements:
                if p.template_id not in template_ids:
                    report["enemyPlacements"].append(
                        f"{zone.id} ({p.x},{p.y}) -> {p.template_id or '?'}"
                    )
            unknown = sorted(
                tid for tid in zone.used_tile_ids() if not self.palette.has_tile(tid)
            )
            for tid in unknown:
                report["tiles"].append(f"{zone.id} uses unknown tile {tid}")
        return report
