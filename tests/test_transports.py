"""
Tests for transport link editing.
"""

import pytest

from world_editor.errors import ValidationError
from world_editor.models import Point, Transport
from world_editor.transports import AwaitingDestination, AwaitingSource, Endpoint, TransportLinkManager


def link(manager, world, source, destination):
    manager.select_cell(world, *source)
    return manager.select_cell(world, *destination)


class TestTwoStageSelection:
    """Test picking source then destination."""

    def test_source_then_destination(self, world):
        """Test a pair creates a directed edge on the source zone."""
        manager = TransportLinkManager()
        manager.select_cell(world, "town", 1, 1)
        assert isinstance(manager.stage, AwaitingDestination)
        edge = manager.select_cell(world, "forest", 2, 2)
        assert edge == Transport(Point(1, 1), "forest", Point(2, 2))
        assert world.get_zone("town").transports == [edge]
        assert world.get_zone("forest").transports == []
        assert isinstance(manager.stage, AwaitingSource)

    def test_same_cell_rejected(self, world):
        """Test targeting the source cell is rejected without state change."""
        manager = TransportLinkManager()
        manager.select_cell(world, "town", 1, 1)
        stage = manager.stage
        with pytest.raises(ValidationError):
            manager.select_cell(world, "town", 1, 1)
        assert manager.stage == stage
        assert world.get_zone("town").transports == []

    def test_out_of_bounds_rejected(self, world):
        manager = TransportLinkManager()
        with pytest.raises(ValidationError):
            manager.select_cell(world, "town", 9, 9)
        assert isinstance(manager.stage, AwaitingSource)

    def test_existing_edge_prefills_destination(self, world):
        """Test picking a cell with an edge loads it for editing."""
        manager = TransportLinkManager()
        manager.set_two_way(True)
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        manager.set_two_way(False)
        manager.select_cell(world, "town", 1, 1)
        assert manager.destination == Endpoint("forest", 2, 2)
        assert manager.two_way is True

    def test_new_edge_replaces_old(self, world):
        """Test a new edge from an occupied cell replaces the old one."""
        manager = TransportLinkManager()
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        link(manager, world, ("town", 1, 1), ("forest", 3, 3))
        assert world.get_zone("town").transports == [Transport(Point(1, 1), "forest", Point(3, 3))]


class TestTwoWay:
    """Test the mirrored reverse edge."""

    def test_mirror_created(self, world):
        """Test two-way writes the reverse edge on the destination zone."""
        manager = TransportLinkManager()
        manager.set_two_way(True)
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        assert world.get_zone("forest").transports == [
            Transport(Point(2, 2), "town", Point(1, 1))
        ]
        assert manager.two_way is True

    def test_toggle_off_removes_only_mirror(self, world):
        """Test re-saving one-way removes exactly the mirrored edge."""
        forest = world.get_zone("forest")
        unrelated = Transport(Point(4, 4), "town", Point(0, 0))
        forest.set_transport(unrelated)

        manager = TransportLinkManager()
        manager.set_two_way(True)
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        assert len(forest.transports) == 2

        manager.select_cell(world, "town", 1, 1)
        manager.set_two_way(False)
        manager.commit(world)
        assert forest.transports == [unrelated]
        assert world.get_zone("town").transports == [Transport(Point(1, 1), "forest", Point(2, 2))]

    def test_one_way_leaves_unrelated_edge(self, world):
        """Test a one-way save keeps a non-mirroring edge at the destination."""
        forest = world.get_zone("forest")
        other = Transport(Point(2, 2), "town", Point(4, 4))
        forest.set_transport(other)
        manager = TransportLinkManager()
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        assert forest.transports == [other]

    def test_retarget_drops_stale_mirror(self, world):
        """Test moving a two-way edge removes the old reverse edge."""
        manager = TransportLinkManager()
        manager.set_two_way(True)
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        link(manager, world, ("town", 1, 1), ("forest", 3, 3))
        assert world.get_zone("forest").transports == [
            Transport(Point(3, 3), "town", Point(1, 1))
        ]


class TestRemovalAndDeletion:
    """Test clearing in-progress selections."""

    def test_remove_clears_selection_at_cell(self, world):
        manager = TransportLinkManager()
        manager.set_two_way(True)
        link(manager, world, ("town", 1, 1), ("forest", 2, 2))
        manager.select_cell(world, "town", 1, 1)
        removed = manager.remove_transport(world, "town", 1, 1)
        assert removed.to_zone_id == "forest"
        assert isinstance(manager.stage, AwaitingSource)
        assert world.get_zone("town").transports == []
        assert world.get_zone("forest").transports == []

    def test_forget_zone_resets(self, world):
        manager = TransportLinkManager()
        manager.select_cell(world, "forest", 0, 0)
        manager.forget_zone("town")
        assert isinstance(manager.stage, AwaitingDestination)
        manager.forget_zone("forest")
        assert isinstance(manager.stage, AwaitingSource)
