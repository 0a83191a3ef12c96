"""
fusemap Coordinate-Table Compiler

Turns a drawing of a tile's bit layout into per-property coordinate tables.
The drawing is CSV text (any spreadsheet can export it):

    P1[0],P1[1],P2[0][0],P2[1][0],XXX
    P1[2],P1[3],P2[0][1],P2[1][1],XXX
    ,,,,
    P1,property_one
    P2,property_two

The grid runs from the first row to the first all-empty row. Each cell is
empty or names one bit:

    SYM             bit 0 of SYM
    SYM[bit]        bit `bit` of SYM
    SYM[inst][bit]  bit `bit` of instance `inst` of SYM

A cell reading `XXX` ends its row. Rows after the blank row map each
spreadsheet symbol to a property name. Coordinates are (column, row),
with rows and columns counted from 0; errors report positions as
(row, col).
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from fusemap.bits import Coordinate
from fusemap.errors import LayoutError

logger = logging.getLogger(__name__)

END_OF_ROW = "XXX"

_CELL_RE = re.compile(r"(?P<sym>[^\[\]]+)(?:\[(?P<inst>[0-9]+)\])??(?:\[(?P<bit>[0-9]+)\])?")


# ============================================================================
# Parsed grid
# ============================================================================

@dataclass(frozen=True)
class LayoutCell:
    """One bit named in the grid."""
    symbol: str
    instance: Optional[int]
    bit: int


@dataclass
class LayoutGrid:
    """The raw parse: cells by row, plus the symbol map."""
    name: str
    rows: list[list[Optional[LayoutCell]]] = field(default_factory=list)
    symbols: dict[str, str] = field(default_factory=dict)


def parse_cell(text: str, row: int, col: int) -> Optional[LayoutCell]:
    text = text.strip()
    if not text:
        return None
    m = _CELL_RE.fullmatch(text)
    if m is None:
        raise LayoutError(f"malformed cell contents \"{text}\"", row, col)
    inst = m.group("inst")
    bit = m.group("bit")
    return LayoutCell(
        symbol=m.group("sym").strip(),
        instance=int(inst) if inst is not None else None,
        bit=int(bit) if bit is not None else 0,
    )


def parse_layout(text: str, name: str = "tile") -> LayoutGrid:
    """Parse CSV layout text into a LayoutGrid."""
    grid = LayoutGrid(name)
    records = list(csv.reader(io.StringIO(text)))

    map_start = len(records)
    for row, record in enumerate(records):
        if all(not cell.strip() for cell in record):
            map_start = row + 1
            break
        cells: list[Optional[LayoutCell]] = []
        for col, cell in enumerate(record):
            if cell.strip() == END_OF_ROW:
                break
            cells.append(parse_cell(cell, row, col))
        grid.rows.append(cells)

    for row in range(map_start, len(records)):
        record = [cell.strip() for cell in records[row]]
        if not any(record):
            continue
        if len(record) < 2 or not record[0] or not record[1]:
            raise LayoutError("invalid symbol map entry", row)
        sym, prop_name = record[0], record[1]
        if sym in grid.symbols:
            raise LayoutError(f"duplicate symbol \"{sym}\"", row)
        grid.symbols[sym] = prop_name

    logger.debug("Parsed layout %s: %d row(s), %d symbol(s)", name, len(grid.rows), len(grid.symbols))
    return grid


# ============================================================================
# Compiled tables
# ============================================================================

@dataclass
class LayoutTable:
    """Coordinate tables for every property drawn in one grid.

    `tables[name][instance][bit]` is the Coordinate of that bit.
    """
    name: str
    width: int
    height: int
    tables: dict[str, list[list[Coordinate]]] = field(default_factory=dict)

    @property
    def properties(self) -> list[str]:
        return list(self.tables)

    def instance_count(self, prop_name: str) -> int:
        return len(self._lookup(prop_name))

    def coordinates(
        self, prop_name: str, instance: Optional[int] = None
    ) -> Union[list[Coordinate], list[list[Coordinate]]]:
        """One instance's table, or every instance's.

        Without `instance`, a property drawn once gives its flat list and a
        property drawn several times gives the list of lists.
        """
        instances = self._lookup(prop_name)
        if instance is not None:
            return instances[instance]
        if len(instances) == 1:
            return instances[0]
        return instances

    def _lookup(self, prop_name: str) -> list[list[Coordinate]]:
        try:
            return self.tables[prop_name]
        except KeyError:
            raise KeyError(f"No property '{prop_name}' in layout {self.name}. Known: {self.properties}") from None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "tables": {
                k: [[[c.x, c.y] for c in inst] for inst in v]
                for k, v in self.tables.items()
            },
        }


def compile_layout(grid: LayoutGrid) -> LayoutTable:
    """Resolve symbols and collect each property's bit coordinates."""
    if not grid.rows:
        raise LayoutError(f"layout {grid.name} has no grid rows")

    found: dict[str, dict[tuple[int, int], Coordinate]] = {}
    for row, cells in enumerate(grid.rows):
        for col, cell in enumerate(cells):
            if cell is None:
                continue
            prop_name = grid.symbols.get(cell.symbol)
            if prop_name is None:
                raise LayoutError(f"missing sym \"{cell.symbol}\"", row, col)
            key = (cell.instance or 0, cell.bit)
            bits = found.setdefault(prop_name, {})
            if key in bits:
                logger.warning("%s: bit %d of instance %d drawn twice; keeping %r",
                               prop_name, key[1], key[0], Coordinate(col, row))
            bits[key] = Coordinate(col, row)

    width = max(len(cells) for cells in grid.rows)
    table = LayoutTable(grid.name, width=width, height=len(grid.rows))
    for prop_name, bits in found.items():
        num_instances = max(i for i, _ in bits) + 1
        num_bits = max(b for _, b in bits) + 1
        instances = []
        for i in range(num_instances):
            coords = []
            for b in range(num_bits):
                if (i, b) not in bits:
                    raise LayoutError(f"missing bit {b} for instance {i} of {prop_name}")
                coords.append(bits[(i, b)])
            instances.append(coords)
        table.tables[prop_name] = instances

    logger.info("Compiled layout %s (%dx%d): %d propert%s", grid.name, table.width, table.height,
                len(table.tables), "y" if len(table.tables) == 1 else "ies")
    return table
