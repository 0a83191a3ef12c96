"""
fusemap Bit Plane

The conceptual model of a bitstream in fusemap is a 2-D plane of booleans.
Everything above this module reads and writes bits exclusively through the
two-method BitArray interface.

Coordinates use the graphics convention:

    (0, 0) ----> +x
     |
     |
     v
     +y
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True, order=True)
class Coordinate:
    """An (x, y) position in the bit plane."""
    x: int
    y: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Coordinate components must be non-negative, got ({self.x}, {self.y})")

    @classmethod
    def of(cls, value: CoordinateLike) -> Coordinate:
        if isinstance(value, Coordinate):
            return value
        x, y = value
        return cls(x, y)

    def __add__(self, other: CoordinateLike) -> Coordinate:
        other = Coordinate.of(other)
        return Coordinate(self.x + other.x, self.y + other.y)

    def __sub__(self, other: CoordinateLike) -> Coordinate:
        other = Coordinate.of(other)
        return Coordinate(self.x - other.x, self.y - other.y)

    def __iter__(self):
        yield self.x
        yield self.y

    def __repr__(self) -> str:
        return f"({self.x}, {self.y})"


CoordinateLike = Union[Coordinate, tuple[int, int]]


class BitArray(ABC):
    """Interface implemented by whatever holds the bitstream's actual data.

    The host application owns the storage. fusemap never locks it; callers
    sharing one BitArray across threads must serialize access themselves.
    """

    @abstractmethod
    def get(self, c: Coordinate) -> bool:
        ...

    @abstractmethod
    def set(self, c: Coordinate, val: bool) -> None:
        ...


class BitGrid(BitArray):
    """A plain in-memory BitArray of fixed width and height, all bits clear."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"BitGrid needs a positive size, got {width}x{height}")
        self._width = width
        self._height = height
        self._bits = bytearray(width * height)

    @classmethod
    def from_rows(cls, rows: Iterable[Union[str, Iterable[Union[bool, int]]]]) -> BitGrid:
        """Build a grid from rows of '0'/'1' strings or of bools/ints.

        Whitespace inside string rows is ignored, so rows can be grouped
        visually ("0001 0000 ...").
        """
        parsed: list[list[bool]] = []
        for row in rows:
            if isinstance(row, str):
                row = [c for c in row if not c.isspace()]
                if any(c not in "01" for c in row):
                    raise ValueError(f"Row contains characters other than 0/1: {row!r}")
                parsed.append([c == "1" for c in row])
            else:
                parsed.append([bool(b) for b in row])
        if not parsed:
            raise ValueError("BitGrid.from_rows needs at least one row")
        width = len(parsed[0])
        if any(len(r) != width for r in parsed):
            raise ValueError("All rows must have the same length")

        grid = cls(width, len(parsed))
        for y, row in enumerate(parsed):
            for x, bit in enumerate(row):
                if bit:
                    grid._bits[y * width + x] = 1
        return grid

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def _index(self, c: Coordinate) -> int:
        if not (0 <= c.x < self._width and 0 <= c.y < self._height):
            raise IndexError(f"Coordinate {c!r} outside {self._width}x{self._height} grid")
        return c.y * self._width + c.x

    def get(self, c: Coordinate) -> bool:
        return self._bits[self._index(c)] != 0

    def set(self, c: Coordinate, val: bool) -> None:
        self._bits[self._index(c)] = 1 if val else 0

    def copy(self) -> BitGrid:
        other = BitGrid(self._width, self._height)
        other._bits[:] = self._bits
        return other

    def set_coordinates(self) -> list[Coordinate]:
        """All coordinates whose bit is set, in row-major order."""
        return [
            Coordinate(i % self._width, i // self._width)
            for i, b in enumerate(self._bits) if b
        ]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitGrid):
            return NotImplemented
        return (
            self._width == other._width
            and self._height == other._height
            and self._bits == other._bits
        )

    def __str__(self) -> str:
        return "".join(
            "".join("1" if self._bits[y * self._width + x] else "0" for x in range(self._width)) + "\n"
            for y in range(self._height)
        )

    def __repr__(self) -> str:
        return f"<BitGrid {self._width}x{self._height} set={len(self.set_coordinates())}>"
