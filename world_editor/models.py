"""
Core models and data structures for the World Editor.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import CONFIG


class EditMode(Enum):
    TILE = "tile"
    ENEMY = "enemy"
    TRANSPORT = "transport"
    SPAWN = "spawn"
    NPC = "npc"


class Facing(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: Any) -> "Facing":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.DOWN


@dataclass
class TileDef:
    tile_id: str
    sprite: Optional[str] = None
    fill: str = "#ffffff"
    walkable: bool = True
    row: Optional[int] = None
    column: Optional[int] = None

    @property
    def cell(self) -> Optional[Tuple[int, int]]:
        if self.row is None or self.column is None:
            return None
        return (self.row, self.column)


@dataclass(frozen=True)
class Region:
    """Rectangular block of palette cells, inclusive on both ends."""

    start_row: int
    end_row: int
    start_column: int
    end_column: int

    @classmethod
    def from_corners(cls, row_a: int, col_a: int, row_b: int, col_b: int) -> "Region":
        return cls(
            start_row=min(row_a, row_b),
            end_row=max(row_a, row_b),
            start_column=min(col_a, col_b),
            end_column=max(col_a, col_b),
        )

    def clamp(self, rows: int, columns: int) -> "Region":
        def _c(value: int, limit: int) -> int:
            return max(0, min(value, limit - 1))

        return Region.from_corners(
            _c(self.start_row, rows),
            _c(self.start_column, columns),
            _c(self.end_row, rows),
            _c(self.end_column, columns),
        )

    @property
    def width(self) -> int:
        return self.end_column - self.start_column + 1

    @property
    def height(self) -> int:
        return self.end_row - self.start_row + 1

    def cells(self) -> Iterator[Tuple[int, int]]:
        for r in range(self.start_row, self.end_row + 1):
            for c in range(self.start_column, self.end_column + 1):
                yield (r, c)


@dataclass
class TilePattern:
    """Tile ids read from a region; None where the cell holds no tile."""

    tiles: List[List[Optional[str]]] = field(default_factory=list)

    @property
    def height(self) -> int:
        return len(self.tiles)

    @property
    def width(self) -> int:
        return len(self.tiles[0]) if self.tiles else 0

    @property
    def has_tiles(self) -> bool:
        return any(t is not None for row in self.tiles for t in row)

    @property
    def is_single(self) -> bool:
        return self.width == 1 and self.height == 1

    @property
    def single_tile_id(self) -> Optional[str]:
        return self.tiles[0][0] if self.is_single else None


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Transport:
    """Directed edge stored on the zone that owns `source`."""

    source: Point
    to_zone_id: str
    target: Point


@dataclass
class EnemyPlacement:
    x: int
    y: int
    template_id: str


@dataclass
class Dialog:
    """Ordered line groups; `loop_to` of None holds on the final entry."""

    entries: List[List[str]] = field(default_factory=list)
    loop_to: Optional[int] = None

    def __post_init__(self):
        self.clamp_loop()

    def clamp_loop(self):
        if not self.entries or self.loop_to is None:
            self.loop_to = None
            return
        self.loop_to = max(0, min(int(self.loop_to), len(self.entries) - 1))

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass(frozen=True)
class ShopService:
    shop_id: str
    type: str = "shop"


@dataclass
class NPC:
    id: str
    name: str
    sprite: Optional[str] = None
    facing: Facing = Facing.DOWN
    zone_id: Optional[str] = None
    x: Optional[int] = None
    y: Optional[int] = None
    dialog: Dialog = field(default_factory=Dialog)
    service: Optional[ShopService] = None

    @property
    def is_placed(self) -> bool:
        return self.zone_id is not None

    def unplace(self):
        self.zone_id = None
        self.x = None
        self.y = None


@dataclass
class WorldSettings:
    id: str = ""
    name: str = ""
    tile_size: int = field(default_factory=lambda: CONFIG.tile_size)
    move_cooldown_ms: int = field(default_factory=lambda: CONFIG.move_cooldown_ms)
    enemy_count: int = field(default_factory=lambda: CONFIG.enemy_count)


def _to_number(value: Any, default: float = 0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return number


class Attributes(BaseModel):
    """Primary attributes; accepts long names and STR/STA/AGI/INT/WIS keys."""

    strength: int = Field(0, validation_alias=AliasChoices("strength", "STR", "str"))
    stamina: int = Field(0, validation_alias=AliasChoices("stamina", "STA", "sta"))
    agility: int = Field(0, validation_alias=AliasChoices("agility", "AGI", "agi"))
    intellect: int = Field(0, validation_alias=AliasChoices("intellect", "INT", "int"))
    wisdom: int = Field(0, validation_alias=AliasChoices("wisdom", "WIS", "wis"))

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> int:
        return int(_to_number(value))


class EnemyTemplate(BaseModel):
    """Reusable enemy definition referenced by zone enemy placements."""

    id: str = Field(min_length=1)
    name: str = ""
    basic_type: str = Field("melee", alias="basicType")
    level: int = 1
    attributes: Attributes = Field(default_factory=Attributes)
    rotation: List[Any] = Field(default_factory=list)
    equipment: Dict[str, str] = Field(default_factory=dict)
    xp_pct: float = Field(0.0, alias="xpPct")
    gold: int = 0
    spawn_chance: float = Field(0.0, alias="spawnChance")
    sprite: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("id") is None and data.get("templateId") is not None:
            data["id"] = data["templateId"]
        if isinstance(data.get("id"), (int, float)) and not isinstance(data.get("id"), bool):
            data["id"] = str(data["id"])
        if isinstance(data.get("id"), str):
            data["id"] = data["id"].strip()
        if not data.get("name"):
            data["name"] = data.get("id") or ""
        for key in ("basicType", "basic_type"):
            if key in data and not data[key]:
                data.pop(key)
        if not isinstance(data.get("attributes"), dict):
            data.pop("attributes", None)
        if not isinstance(data.get("rotation"), list):
            data.pop("rotation", None)
        equipment = data.get("equipment")
        if isinstance(equipment, dict):
            data["equipment"] = {str(k): str(v) for k, v in equipment.items() if v}
        else:
            data.pop("equipment", None)
        if data.get("sprite") is not None and not isinstance(data.get("sprite"), str):
            data["sprite"] = None
        return data

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: Any) -> int:
        return int(_to_number(value)) or 1

    @field_validator("gold", mode="before")
    @classmethod
    def _coerce_gold(cls, value: Any) -> int:
        return int(_to_number(value))

    @field_validator("xp_pct", "spawn_chance", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float:
        return _to_number(value)
