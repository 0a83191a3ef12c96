"""
fusemap Value Codecs

A value codec converts between a fixed-width bit vector (the canonical wire
form of one property instance) and a friendly Python value, and between that
value and its human-readable string.

Bit vectors are tuples of bools. Bit i carries the 2**i place value for
integers (little-endian bit order).

The string conversions take the accessor the value was read through, so a
property-specific codec can render text that depends on where the property
lives (e.g. include the tile coordinates). The built-in codecs ignore it.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterable, Optional

from fusemap.errors import ConversionError

if TYPE_CHECKING:
    from fusemap.accessor import PropertyAccessor


Bits = tuple[bool, ...]

MAX_UINT_WIDTH = 128

_DECIMAL_RE = re.compile(r"[0-9]+")
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def as_bits(bits: Iterable[Any], width: int) -> Bits:
    """Normalize an iterable of truthy values to a bit vector of `width`."""
    out = tuple(bool(b) for b in bits)
    if len(out) != width:
        raise ValueError(f"Expected {width} bits, got {len(out)}")
    return out


def bits_to_string(bits: Bits) -> str:
    return "".join("1" if b else "0" for b in bits)


def bits_from_string(text: str, width: int) -> Bits:
    if len(text) != width:
        raise ConversionError(f"Expected {width} characters of 0/1, got {text!r}")
    out = []
    for c in text:
        if c == "1":
            out.append(True)
        elif c == "0":
            out.append(False)
        else:
            raise ConversionError(f"Invalid bit character {c!r} in {text!r}")
    return tuple(out)


class ValueCodec(ABC):
    """Base class for every property value type.

    Subclasses implement `width`, `decode` and `encode`. The string
    conversion defaults to the raw bit string ('0'/'1' per bit, bit 0
    first); the default value defaults to "none", which makes every
    instance count as non-default.
    """

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @abstractmethod
    def decode(self, bits: Bits) -> Any:
        """Convert a bit vector of `width` bits to a value."""
        ...

    @abstractmethod
    def encode(self, value: Any) -> Bits:
        """Convert a value to a bit vector of `width` bits."""
        ...

    def default(self) -> Any:
        return None

    def is_default(self, value: Any, accessor: Optional[PropertyAccessor] = None) -> bool:
        default = self.default()
        if default is None:
            return False
        return value == default

    def to_string(self, value: Any, accessor: Optional[PropertyAccessor] = None) -> str:
        return bits_to_string(self.encode(value))

    def from_string(self, text: str, accessor: Optional[PropertyAccessor] = None) -> Any:
        return self.decode(bits_from_string(text, self.width))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} width={self.width}>"


class BoolCodec(ValueCodec):
    """A single bit as a Python bool."""

    @property
    def width(self) -> int:
        return 1

    def decode(self, bits: Bits) -> bool:
        (bit,) = as_bits(bits, 1)
        return bit

    def encode(self, value: bool) -> Bits:
        return (bool(value),)

    def default(self) -> bool:
        return False

    def to_string(self, value: bool, accessor: Optional[PropertyAccessor] = None) -> str:
        return "true" if value else "false"

    def from_string(self, text: str, accessor: Optional[PropertyAccessor] = None) -> bool:
        if text in ("true", "1"):
            return True
        if text in ("false", "0"):
            return False
        raise ConversionError(f"Invalid boolean {text!r}")


class UIntCodec(ValueCodec):
    """An unsigned integer of 1 to 128 bits."""

    def __init__(self, width: int) -> None:
        if not 1 <= width <= MAX_UINT_WIDTH:
            raise ValueError(f"UIntCodec width must be 1..{MAX_UINT_WIDTH}, got {width}")
        self._width = width

    @property
    def width(self) -> int:
        return self._width

    @property
    def max_value(self) -> int:
        return (1 << self._width) - 1

    def decode(self, bits: Bits) -> int:
        ret = 0
        for i, bit in enumerate(as_bits(bits, self._width)):
            if bit:
                ret |= 1 << i
        return ret

    def encode(self, value: int) -> Bits:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Expected an int, got {value!r}")
        if not 0 <= value <= self.max_value:
            raise ValueError(f"{value} does not fit in {self._width} bits")
        return tuple((value >> i) & 1 == 1 for i in range(self._width))

    def default(self) -> int:
        return 0

    def to_string(self, value: int, accessor: Optional[PropertyAccessor] = None) -> str:
        return f"0x{value:X}"

    def from_string(self, text: str, accessor: Optional[PropertyAccessor] = None) -> int:
        if text.startswith("0x"):
            digits = text[2:]
            if not _HEX_RE.fullmatch(digits):
                raise ConversionError(f"Invalid hex integer {text!r}")
            value = int(digits, 16)
        else:
            if not _DECIMAL_RE.fullmatch(text):
                raise ConversionError(f"Invalid integer {text!r}")
            value = int(text, 10)
        if value > self.max_value:
            raise ConversionError(f"{text} does not fit in {self._width} bits")
        return value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UIntCodec):
            return NotImplemented
        return self._width == other._width

    def __hash__(self) -> int:
        return hash(("uint", self._width))


class RawBitsCodec(ValueCodec):
    """The fallback codec: the value is the bit vector itself."""

    def __init__(self, width: int) -> None:
        if width < 1:
            raise ValueError(f"RawBitsCodec width must be positive, got {width}")
        self._width = width

    @property
    def width(self) -> int:
        return self._width

    def decode(self, bits: Bits) -> Bits:
        return as_bits(bits, self._width)

    def encode(self, value: Iterable[Any]) -> Bits:
        return as_bits(value, self._width)

    def default(self) -> Bits:
        return (False,) * self._width
