"""
fusemap Property Accessors

An accessor is the complete package of state needed to select ONE property
instance in a bitstream: which tile, which LUT index, and so on. It knows
where each of the property's bits lives and which codec turns those bits
into a value. It never holds bit data itself.

Accessors are frozen dataclasses. Their dataclass fields double as the
"state pieces" that identify the instance in human-readable text:

    @dataclass(frozen=True)
    class TilePropertyTwo(PropertyAccessor):
        tile: Tile
        n: int
        codec = BoolCodec()

        def bit_position(self, index):
            return Coordinate(self.tile.x * 4 + self.n, self.tile.y * 4 + 2)

    TilePropertyTwo(tile, 1).state_pieces()   # [("n", "1")]
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Optional, Sequence, Union

from fusemap.bits import BitArray, Coordinate
from fusemap.codec import Bits, ValueCodec

BitPosition = Union[Coordinate, tuple[Coordinate, bool]]


def render_state_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.name
    return str(value)


class Stateful:
    """Mixin for objects that report their identifying parameters.

    Every dataclass field is a state piece, except fields holding another
    Stateful object (a parent level): those identify the parent, which
    reports its own pieces.
    """

    def state_pieces(self) -> list[tuple[str, str]]:
        if not dataclasses.is_dataclass(self):
            return []
        pieces = []
        for f in dataclasses.fields(self):
            if not f.init:
                continue
            value = getattr(self, f.name)
            if isinstance(value, Stateful):
                continue
            pieces.append((f.name, render_state_value(value)))
        return pieces


class PropertyAccessor(Stateful, ABC):
    """Binds one property instance's bits to coordinates and a codec.

    Subclasses provide `codec` (usually a class attribute) and
    `bit_position`, which returns the Coordinate of bit `index`, optionally
    paired with an invert flag: `(Coordinate, True)` means the stored bit
    is the complement of the logical bit.
    """

    codec: ClassVar[ValueCodec]

    @abstractmethod
    def bit_position(self, index: int) -> BitPosition:
        ...

    @property
    def width(self) -> int:
        return self.codec.width

    def positions(self) -> list[tuple[Coordinate, bool]]:
        """Every bit's (coordinate, invert) in bit-index order."""
        out = []
        for i in range(self.codec.width):
            pos = self.bit_position(i)
            if isinstance(pos, Coordinate):
                out.append((pos, False))
            else:
                c, inv = pos
                out.append((Coordinate.of(c), bool(inv)))
        return out

    def read_bits(self, bitstream: BitArray) -> Bits:
        return tuple(bitstream.get(c) ^ inv for c, inv in self.positions())

    def write_bits(self, bitstream: BitArray, bits: Bits) -> None:
        for (c, inv), bit in zip(self.positions(), bits):
            bitstream.set(c, bit ^ inv)

    def get(self, bitstream: BitArray) -> Any:
        return self.codec.decode(self.read_bits(bitstream))

    def set(self, bitstream: BitArray, value: Any) -> None:
        self.write_bits(bitstream, self.codec.encode(value))

    def is_at_default(self, bitstream: BitArray) -> bool:
        return self.codec.is_default(self.get(bitstream), self)

    def get_as_string(self, bitstream: BitArray) -> str:
        return self.codec.to_string(self.get(bitstream), self)

    def set_from_string(self, bitstream: BitArray, text: str) -> None:
        """Parse `text` and write it. Raises ConversionError before any bit is written."""
        value = self.codec.from_string(text, self)
        self.set(bitstream, value)


@dataclasses.dataclass(frozen=True)
class TableAccessor(PropertyAccessor):
    """An accessor driven by a coordinate table.

    `table` lists one Coordinate per bit (as produced by the layout
    compiler), `origin` is added to every entry for tile-relative tables,
    and `inverted` optionally flags bits stored active-low.
    """
    codec: ValueCodec = dataclasses.field(compare=False)
    table: Sequence[Coordinate] = dataclasses.field(repr=False)
    origin: Coordinate = Coordinate(0, 0)
    inverted: Optional[Sequence[bool]] = dataclasses.field(default=None, repr=False)

    def __post_init__(self) -> None:
        if len(self.table) != self.codec.width:
            raise ValueError(f"Table has {len(self.table)} entries for a {self.codec.width}-bit codec")
        if self.inverted is not None and len(self.inverted) != self.codec.width:
            raise ValueError("inverted must have one flag per bit")

    def bit_position(self, index: int) -> BitPosition:
        c = self.table[index] + self.origin
        if self.inverted is None:
            return c
        return c, self.inverted[index]

    def state_pieces(self) -> list[tuple[str, str]]:
        return []
