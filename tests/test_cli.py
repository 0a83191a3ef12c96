"""
fusemap CLI Tests

1. bitprop: summary, JSON, errors
2. layout: summary and JSON
3. tree: schema of an importable hierarchy
"""

import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from example_bitstream import PROPERTY1_SOURCE, TILE_CSV
from fusemap.cli import main


# ============================================================================
# 1. bitprop
# ============================================================================

def test_bitprop_summary(tmp_path, capsys):
    path = tmp_path / "props.txt"
    path.write_text(PROPERTY1_SOURCE)
    assert main(["--no-color", "bitprop", str(path)]) == 0
    out = capsys.readouterr().out
    assert "Property1" in out
    assert "ChoiceWithX()" in out
    assert "Covered by catchall CatchallChoice" in out


def test_bitprop_json(tmp_path, capsys):
    path = tmp_path / "props.txt"
    path.write_text(PROPERTY1_SOURCE + "\nFlag\n0 *Off\n1 On\n")
    assert main(["bitprop", str(path), "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [p["name"] for p in data] == ["Property1", "Flag"]
    assert data[0]["width"] == 4
    assert data[0]["default"] == "CatchallChoice"
    assert data[1]["variants"][1] == {"name": "On", "pattern": "1", "keep_bits": False, "documentation": None}


def test_bitprop_reports_definition_errors(tmp_path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text("P\n00 A\n000 B\n")
    assert main(["--no-color", "bitprop", str(path)]) == 1
    assert "Line 3: bit count mismatch" in capsys.readouterr().out


def test_missing_file(tmp_path, capsys):
    assert main(["--no-color", "bitprop", str(tmp_path / "nope.txt")]) == 1
    assert "File not found" in capsys.readouterr().out


# ============================================================================
# 2. layout
# ============================================================================

def test_layout_summary(tmp_path, capsys):
    path = tmp_path / "clb.csv"
    path.write_text(TILE_CSV)
    assert main(["--no-color", "layout", str(path)]) == 0
    out = capsys.readouterr().out
    assert "Tile: clb  |  4 x 4" in out
    assert "[0] (0, 0), (1, 0), (2, 0), (3, 0)" in out


def test_layout_json(tmp_path, capsys):
    path = tmp_path / "clb.csv"
    path.write_text(TILE_CSV)
    assert main(["layout", str(path), "--name", "tile", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["name"] == "tile"
    assert data["tables"]["property_three"] == [[[0, 3]]]


def test_layout_errors(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("A,B\n,\nA,a\n")
    assert main(["--no-color", "layout", str(path)]) == 1
    assert 'missing sym "B"' in capsys.readouterr().out


# ============================================================================
# 3. tree
# ============================================================================

def test_tree(capsys):
    assert main(["--no-color", "tree", "example_bitstream:Root"]) == 0
    out = capsys.readouterr().out
    assert "tile(x, y) -> Tile" in out
    assert "dummy_field" in out


def test_tree_bad_target(capsys):
    assert main(["--no-color", "tree", "example_bitstream"]) == 1
    assert "Cannot load" in capsys.readouterr().out


def test_no_command(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
