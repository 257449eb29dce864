"""
Tests for the command line entry point.
"""

import json

from world_editor.__main__ import main


class TestCli:
    """Test the normalize / check / summary commands."""

    def test_normalize_writes_canonical(self, tmp_path):
        src = tmp_path / "legacy.json"
        src.write_text(json.dumps({"tiles": [["0", "1"], ["1", "0"]], "spawn": {"x": 1, "y": 0}}))
        out = tmp_path / "out.json"
        assert main(["normalize", str(src), "-o", str(out)]) == 0
        doc = json.loads(out.read_text())
        assert doc["zones"][0]["tiles"] == [[0, 1], [1, 0]]

    def test_missing_file(self, tmp_path):
        assert main(["check", str(tmp_path / "nope.json")]) == 1

    def test_invalid_document(self, tmp_path):
        src = tmp_path / "bad.json"
        src.write_text("[]")
        assert main(["summary", str(src)]) == 1

    def test_check_reports(self, tmp_path, capsys):
        src = tmp_path / "world.json"
        src.write_text(json.dumps({"zones": [{"id": "a", "width": 1, "height": 1,
                                               "transports": [{"from": {"x": 0, "y": 0}, "toZoneId": "gone"}]}]}))
        assert main(["check", str(src)]) == 0
        assert "gone" in capsys.readouterr().out
