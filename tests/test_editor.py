"""
Tests for the WorldEditor controller: dispatch, rejections and notifications.
"""

from world_editor.editor import WorldEditor
from world_editor.models import EditMode, Point


class TestNotifications:
    """Test render-on-mutate notifications."""

    def test_listener_receives_changed_views(self, editor):
        seen = []
        editor.subscribe(seen.append)
        editor.add_zone("Cave", 3, 3)
        assert {"zones", "zone"} <= seen[-1]

    def test_unsubscribe(self, editor):
        seen = []
        unsubscribe = editor.subscribe(seen.append)
        unsubscribe()
        editor.add_zone("Cave", 3, 3)
        assert seen == []

    def test_rejection_does_not_notify(self, editor):
        seen = []
        editor.subscribe(seen.append)
        assert editor.add_zone("Bad", 0, 3) is None
        assert seen == []
        assert "positive" in editor.status_message


class TestTileMode:
    """Test painting through the controller."""

    def test_initial_selection_is_first_tile(self, editor):
        assert editor.selected_tile_id == "0"
        assert editor.selected_zone_id == "town"

    def test_paint_with_brush(self, editor):
        editor.click_palette(0, 1)
        editor.set_brush_size(3)
        assert editor.click_cell(2, 2)
        zone = editor.selected_zone
        assert sum(row.count("1") for row in zone.tiles) == 9

    def test_paint_without_selection_rejected(self, editor):
        editor.selector.clear()
        before = [row[:] for row in editor.selected_zone.tiles]
        assert not editor.click_cell(1, 1)
        assert editor.status_message == "No tile selected."
        assert editor.selected_zone.tiles == before

    def test_drag_selection_disables_brush(self, editor):
        editor.press_palette(0, 0)
        editor.drag_palette(0, 2)
        assert editor.brush_controls_enabled
        editor.release_palette()
        assert not editor.brush_controls_enabled
        editor.click_cell(0, 4)
        assert editor.selected_zone.tiles[4][:3] == ["0", "1", "2"]

    def test_erase(self, editor):
        editor.click_palette(0, 2)
        editor.click_cell(1, 1)
        editor.alt_click_cell(1, 1)
        assert editor.selected_zone.tiles[1][1] == "0"

    def test_removing_selected_tile_clears_selection(self, editor):
        editor.click_palette(0, 2)
        editor.remove_palette_tile("2")
        assert editor.selector.committed is None


class TestOtherModes:
    """Test enemy, spawn, NPC and transport modes."""

    def test_enemy_requires_template(self, editor):
        editor.set_mode("enemy")
        assert not editor.click_cell(0, 0)
        editor.save_template({"id": "orc", "name": "Orc"})
        editor.select_template("orc")
        assert editor.click_cell(0, 0)
        assert editor.selected_zone.enemy_at(0, 0).template_id == "orc"
        editor.alt_click_cell(0, 0)
        assert editor.selected_zone.enemy_placements == []

    def test_spawn(self, editor):
        editor.set_mode(EditMode.SPAWN)
        editor.click_cell(4, 0)
        assert editor.selected_zone.spawn == Point(4, 0)
        editor.alt_click_cell(4, 0)
        assert editor.selected_zone.spawn is None

    def test_npc_placement(self, editor):
        editor.set_mode("npc")
        guard = editor.add_npc("Guard")
        editor.click_cell(1, 2)
        smith = editor.add_npc("Smith")
        editor.click_cell(1, 2)
        assert not guard.is_placed
        assert editor.npc_location_label(smith) == "Town (1, 2)"
        assert editor.npc_location_label(guard) == "Unplaced"

    def test_transport_two_way(self, editor):
        editor.set_mode("transport")
        editor.set_two_way(True)
        editor.click_cell(1, 1)
        editor.select_zone("forest")
        editor.click_cell(2, 2)
        forest = editor.world.get_zone("forest")
        assert forest.transports[0].to_zone_id == "town"

    def test_same_cell_transport_rejected(self, editor):
        editor.set_mode("transport")
        editor.click_cell(1, 1)
        assert not editor.click_cell(1, 1)
        assert editor.links.source is not None

    def test_delete_zone_clears_link_selection(self, editor):
        editor.set_mode("transport")
        editor.select_zone("forest")
        editor.click_cell(0, 0)
        editor.delete_zone("forest")
        assert editor.links.source is None
        assert editor.selected_zone_id == "town"

    def test_delete_zone_unplaces_npc(self, editor):
        npc = editor.add_npc("Mayor")
        editor.world.place_npc(npc.id, "town", 3, 4)
        editor.delete_zone("town")
        assert (npc.zone_id, npc.x, npc.y) == (None, None, None)
        assert editor.npc_location_label(npc) == "Unplaced"

    def test_deleted_template_label(self, editor):
        editor.save_template({"id": "orc", "name": "Orc"})
        editor.select_template("orc")
        editor.delete_template("orc")
        assert editor.selected_template_id is None
        assert editor.template_label("orc") == "unknown (orc)"


class TestTemplates:
    """Test template editing rules."""

    def test_missing_id_rejected(self, editor):
        assert not editor.save_template({"name": "Nameless"})
        assert editor.world.templates == []

    def test_rename_while_editing(self, editor):
        editor.save_template({"id": "orc"})
        editor.edit_template("orc")
        editor.save_template({"id": "orc_chief", "level": 5})
        assert [t.id for t in editor.world.templates] == ["orc_chief"]


class TestDocuments:
    """Test loading documents through the controller."""

    def test_load_bad_document_keeps_model(self, editor):
        world = editor.world
        assert not editor.load_document([])
        assert editor.world is world
        assert not editor.load_json("{oops")
        assert editor.world is world

    def test_load_resets_state(self, editor):
        editor.set_mode("transport")
        editor.click_cell(0, 0)
        assert editor.load_document({"tiles": [["1", "1"]]})
        assert editor.world.zone_ids() == ["zone"]
        assert editor.selected_zone_id == "zone"
        assert editor.links.source is None

    def test_export_round_trip(self, editor):
        editor.click_palette(0, 2)
        editor.click_cell(0, 0)
        text = editor.export_json()
        other = WorldEditor()
        assert other.load_json(text)
        assert other.export_document() == editor.export_document()

    def test_settings_validation(self, editor):
        assert not editor.update_settings(tile_size=0)
        assert not editor.update_settings(enemy_count=True)
        assert editor.world.settings.enemy_count == 6
        assert editor.update_settings(name="Realm", tile_size=16)
        assert editor.export_document()["tileSize"] == 16
