"""
Transport link editing for the World Editor.

Links are picked in two stages: first the source cell, then the destination
cell. Picking a source that already has an outgoing edge loads that edge so
it can be re-targeted or have its reverse edge toggled.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from .errors import ValidationError
from .models import Point, Transport

if TYPE_CHECKING:
    from .world import WorldModel
    from .zone import Zone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    zone_id: str
    x: int
    y: int

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


@dataclass(frozen=True)
class AwaitingSource:
    pass


@dataclass(frozen=True)
class AwaitingDestination:
    source: Endpoint
    destination: Optional[Endpoint] = None


LinkStage = Union[AwaitingSource, AwaitingDestination]


def reverse_of(zone_id: str, transport: Transport) -> Transport:
    """The edge that would lead back from `transport`'s target."""
    return Transport(transport.target, zone_id, transport.source)


def find_mirror(world: "WorldModel", zone_id: str, transport: Transport) -> Optional[Transport]:
    target_zone = world.get_zone(transport.to_zone_id)
    if target_zone is None:
        return None
    existing = target_zone.transport_at(transport.target.x, transport.target.y)
    if existing is not None and existing == reverse_of(zone_id, transport):
        return existing
    return None


class TransportLinkManager:
    def __init__(self):
        self.stage: LinkStage = AwaitingSource()
        self.two_way = False

    @property
    def source(self) -> Optional[Endpoint]:
        return self.stage.source if isinstance(self.stage, AwaitingDestination) else None

    @property
    def destination(self) -> Optional[Endpoint]:
        return self.stage.destination if isinstance(self.stage, AwaitingDestination) else None

    def reset(self):
        self.stage = AwaitingSource()

    def set_two_way(self, enabled: bool):
        self.two_way = bool(enabled)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_cell(
        self, world: "WorldModel", zone_id: str, x: int, y: int
    ) -> Optional[Transport]:
        """Feed one cell pick. Returns the edge written when a pair completes."""
        zone = _require_cell(world, zone_id, x, y)
        picked = Endpoint(zone_id, x, y)

        if isinstance(self.stage, AwaitingSource):
            existing = zone.transport_at(x, y)
            destination = None
            if existing is not None:
                destination = Endpoint(existing.to_zone_id, existing.target.x, existing.target.y)
                self.two_way = find_mirror(world, zone_id, existing) is not None
            self.stage = AwaitingDestination(picked, destination)
            return None

        if picked == self.stage.source:
            raise ValidationError("Transport cannot target the same tile.")
        return self.finalize(world, self.stage.source, picked)

    def commit(self, world: "WorldModel") -> Transport:
        """Save the loaded pair again, e.g. after toggling two-way."""
        if not isinstance(self.stage, AwaitingDestination) or self.stage.destination is None:
            raise ValidationError("Select a source and destination for the transport.")
        return self.finalize(world, self.stage.source, self.stage.destination)

    def finalize(
        self, world: "WorldModel", source: Endpoint, destination: Endpoint
    ) -> Transport:
        if source == destination:
            raise ValidationError("Transport cannot target the same tile.")
        source_zone = _require_cell(world, source.zone_id, source.x, source.y)
        target_zone = _require_cell(world, destination.zone_id, destination.x, destination.y)

        edge = Transport(source.point, destination.zone_id, destination.point)
        previous = source_zone.transport_at(source.x, source.y)
        if previous is not None and previous != edge:
            # Re-targeted: the old reverse edge no longer pairs with anything
            stale = find_mirror(world, source.zone_id, previous)
            if stale is not None:
                world.get_zone(previous.to_zone_id).remove_transport_at(stale.source.x, stale.source.y)
        source_zone.set_transport(edge)

        mirror = reverse_of(source.zone_id, edge)
        if self.two_way:
            target_zone.set_transport(mirror)
        elif target_zone.transport_at(destination.x, destination.y) == mirror:
            target_zone.remove_transport_at(destination.x, destination.y)

        logger.debug(
            "Transport %s%s -> %s%s two_way=%s",
            source.zone_id, (source.x, source.y),
            destination.zone_id, (destination.x, destination.y),
            self.two_way,
        )
        self.stage = AwaitingSource()
        return edge

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------
    def remove_transport(
        self, world: "WorldModel", zone_id: str, x: int, y: int
    ) -> Optional[Transport]:
        """Delete the edge leaving a cell together with its exact reverse edge."""
        zone = world.get_zone(zone_id)
        if zone is None:
            return None
        existing = zone.transport_at(x, y)
        if existing is None:
            return None
        mirror = find_mirror(world, zone_id, existing)
        zone.remove_transport_at(x, y)
        if mirror is not None:
            world.get_zone(existing.to_zone_id).remove_transport_at(
                mirror.source.x, mirror.source.y
            )
        self.forget_cell(zone_id, x, y)
        return existing

    def forget_cell(self, zone_id: str, x: int, y: int):
        cell = Endpoint(zone_id, x, y)
        if cell in (self.source, self.destination):
            self.reset()

    def forget_zone(self, zone_id: str):
        for endpoint in (self.source, self.destination):
            if endpoint is not None and endpoint.zone_id == zone_id:
                self.reset()
                return


def _require_cell(world: "WorldModel", zone_id: str, x: int, y: int) -> "Zone":
    zone = world.get_zone(zone_id)
    if zone is None:
        raise ValidationError(f"Unknown zone {zone_id}.")
    zone.require_in_bounds(x, y)
    return zone
