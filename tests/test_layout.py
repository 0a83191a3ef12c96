"""
fusemap Layout Grid Tests

1. Cell syntax
2. Parsing the example tile
3. Compiled coordinate tables agree with the hand-written accessors
4. Errors
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from example_bitstream import TILE_CSV, TILE_LAYOUT, Tile
from fusemap.bits import Coordinate
from fusemap.errors import LayoutError
from fusemap.layout import LayoutCell, compile_layout, parse_cell, parse_layout


# ============================================================================
# 1. Cells
# ============================================================================

def test_cell_forms():
    assert parse_cell("P1", 0, 0) == LayoutCell("P1", None, 0)
    assert parse_cell(" P1[3] ", 0, 0) == LayoutCell("P1", None, 3)
    assert parse_cell("P2[1][2]", 0, 0) == LayoutCell("P2", 1, 2)
    assert parse_cell("   ", 0, 0) is None


@pytest.mark.parametrize("text", ["P[", "P]", "P[a]", "[1]", "P[1][2][3]"])
def test_malformed_cells(text):
    with pytest.raises(LayoutError) as exc:
        parse_cell(text, 2, 5)
    assert "(2, 5)" in str(exc.value)
    assert exc.value.row == 2 and exc.value.col == 5


# ============================================================================
# 2. Parsing
# ============================================================================

def test_parse_example():
    grid = parse_layout(TILE_CSV, name="tile")
    assert grid.name == "tile"
    assert len(grid.rows) == 4
    assert grid.rows[1] == [None, None, None, None]
    assert grid.symbols == {
        "P1": "property_one",
        "P2": "property_two",
        "P3": "property_three",
        "P4": "property_four",
    }


def test_end_of_row_marker_stops_the_row():
    grid = parse_layout("A,XXX,B[[\n,,\nA,a\n")
    assert grid.rows == [[LayoutCell("A", None, 0)]]


# ============================================================================
# 3. Tables
# ============================================================================

def test_table_shape():
    assert TILE_LAYOUT.width == 4
    assert TILE_LAYOUT.height == 4
    assert sorted(TILE_LAYOUT.properties) == ["property_four", "property_one", "property_three", "property_two"]


def test_width_is_the_longest_row():
    table = compile_layout(parse_layout("A[0],XXX\nA[1],,B,XXX\n\nA,a\nB,b\n"))
    assert (table.width, table.height) == (3, 2)
    assert table.coordinates("a") == [Coordinate(0, 0), Coordinate(0, 1)]
    assert table.coordinates("b") == [Coordinate(2, 1)]


def test_single_instance_is_flat():
    assert TILE_LAYOUT.coordinates("property_one") == [Coordinate(i, 0) for i in range(4)]
    assert TILE_LAYOUT.instance_count("property_one") == 1


def test_multi_instance_is_nested():
    table = TILE_LAYOUT.coordinates("property_two")
    assert TILE_LAYOUT.instance_count("property_two") == 4
    assert table == [[Coordinate(n, 2)] for n in range(4)]
    assert TILE_LAYOUT.coordinates("property_two", 3) == [Coordinate(3, 2)]


def test_tables_match_accessors():
    tile = Tile(0, 0)
    for n in range(4):
        assert [c for c, _ in tile.property_two(n).positions()] == TILE_LAYOUT.coordinates("property_two", n)
    assert [c for c, _ in tile.property_three().positions()] == TILE_LAYOUT.coordinates("property_three")
    assert [c for c, _ in tile.property_four().positions()] == TILE_LAYOUT.coordinates("property_four")


def test_unknown_property():
    with pytest.raises(KeyError):
        TILE_LAYOUT.coordinates("property_five")


def test_to_dict():
    d = TILE_LAYOUT.to_dict()
    assert d["width"] == 4
    assert d["tables"]["property_one"] == [[[0, 0], [1, 0], [2, 0], [3, 0]]]


# ============================================================================
# 4. Errors
# ============================================================================

def test_missing_symbol_map_entry():
    with pytest.raises(LayoutError) as exc:
        compile_layout(parse_layout("A,B\n,\nA,a\n"))
    assert 'missing sym "B"' in str(exc.value)
    assert (exc.value.row, exc.value.col) == (0, 1)


def test_missing_bit():
    with pytest.raises(LayoutError) as exc:
        compile_layout(parse_layout("A[0][0],A[1][1]\n,\nA,a\n"))
    assert "missing bit 1 for instance 0 of a" in str(exc.value)


def test_duplicate_symbol():
    with pytest.raises(LayoutError) as exc:
        parse_layout("A\n\nA,a\nA,b\n")
    assert exc.value.row == 3


@pytest.mark.parametrize("map_row", ["A", "A,", ",a"])
def test_invalid_map_row(map_row):
    with pytest.raises(LayoutError):
        parse_layout(f"A\n\n{map_row}\n")


def test_empty_grid():
    with pytest.raises(LayoutError):
        compile_layout(parse_layout("\nA,a\n"))
