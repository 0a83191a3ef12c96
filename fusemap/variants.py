"""
fusemap Bit-Pattern Variants

An enumerated property is declared as an ordered list of variants, each
defined by a pattern over {0, 1, x, X}:

    Property1
    0000 ChoiceZero
    0001 ChoiceOne
    01xX ChoiceWithX()
    catchall *CatchallChoice()

Decoding picks the FIRST variant (in declaration order) whose literal
positions match the input bits; wildcards match anything. Priority is
declaration order, not pattern specificity. If nothing matches, the
catchall (if any) matches unconditionally.

Encoding a non-capturing variant writes its canonical bits: 0/x become
False, 1/X become True. A capturing ("keep_bits", written `Name()`)
variant remembers the bits it was decoded from and passes them through at
its wildcard positions, so decode followed by encode is lossless. The
catchall always captures.

A capturing default holds bits that decode back to it: the fixed fill when
that works, else the first vector no earlier variant claims. Property1's
default is CatchallChoice(1000).

Character i of a pattern corresponds to bit i of the vector.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from fusemap.codec import Bits, ValueCodec, as_bits, bits_to_string
from fusemap.errors import ConversionError, DefinitionError

logger = logging.getLogger(__name__)

CATCHALL_PATTERN = "catchall"
PATTERN_CHARS = frozenset("01xX")


def is_valid_ident(name: str) -> bool:
    return name != "_" and name.isidentifier()


def check_pattern(pattern: str) -> bool:
    return pattern == CATCHALL_PATTERN or (bool(pattern) and set(pattern) <= PATTERN_CHARS)


@dataclass(frozen=True)
class Variant:
    """One named alternative encoding of an enumerated property."""
    name: str
    pattern: str
    keep_bits: bool = False
    documentation: Optional[str] = None

    @property
    def is_catchall(self) -> bool:
        return self.pattern == CATCHALL_PATTERN

    def matches(self, bits: Bits) -> bool:
        if self.is_catchall:
            return True
        for p, b in zip(self.pattern, bits):
            if p == "0" and b:
                return False
            if p == "1" and not b:
                return False
        return True

    def fill_bits(self, width: int) -> Bits:
        """The fixed fill: 0/x -> False, 1/X -> True (all False for catchall)."""
        if self.is_catchall:
            return (False,) * width
        return tuple(c in "1X" for c in self.pattern)

    def encode(self, captured: Optional[Bits], width: int) -> Bits:
        if self.is_catchall:
            return as_bits(captured, width)
        if not self.keep_bits:
            return self.fill_bits(width)
        captured = as_bits(captured, width)
        out = []
        for i, c in enumerate(self.pattern):
            if c == "0":
                out.append(False)
            elif c == "1":
                out.append(True)
            else:
                out.append(captured[i])
        return tuple(out)

    def __repr__(self) -> str:
        suffix = "()" if self.keep_bits else ""
        return f"<Variant {self.pattern} {self.name}{suffix}>"


@dataclass(frozen=True)
class VariantValue:
    """A decoded value of a BitProperty.

    `bits` is the captured bit vector for capturing variants and None
    otherwise.
    """
    variant: str
    bits: Optional[Bits] = None

    def __str__(self) -> str:
        if self.bits is None:
            return self.variant
        return f"{self.variant}({bits_to_string(self.bits)})"


def _find_uncovered(
    patterns: Sequence[str],
    width: int,
    within: Optional[str] = None,
) -> Optional[Bits]:
    """Return one bit vector inside `within` matched by none of `patterns`.

    `within` is a pattern (default: all wildcards). Returns None when the
    patterns cover it completely. Positions where every remaining pattern
    (and `within`) is a wildcard are not branched on, which keeps typical
    definitions from exploding with width.
    """
    region = within if within is not None else "x" * width

    def search(pos: int, prefix: list[bool], live: list[str]) -> Optional[list[bool]]:
        if not live:
            return prefix + [c in "1X" for c in region[pos:]]
        if pos == width:
            return None
        for p in live:
            if all(c in "xX" for c in p[pos:]):
                return None

        if region[pos] in "xX" and all(p[pos] in "xX" for p in live):
            return search(pos + 1, prefix + [False], live)

        choices = (False, True) if region[pos] in "xX" else ((region[pos] == "1"),)
        for bit in choices:
            want = "1" if bit else "0"
            sub = [p for p in live if p[pos] in "xX" or p[pos] == want]
            found = search(pos + 1, prefix + [bit], sub)
            if found is not None:
                return found
        return None

    compatible = [
        p for p in patterns
        if all(r in "xX" or c in "xX" or r == c for r, c in zip(region, p))
    ]
    found = search(0, [], compatible)
    return tuple(found) if found is not None else None


class BitProperty(ValueCodec):
    """An enumerated property: the bit-pattern variant matcher as a codec.

    Construction validates the whole definition and raises
    DefinitionError for anything that would leave decode or encode
    ill-defined.

    Args:
        name: Property name (an identifier)
        variants: Literal-pattern variants, in priority order
        catchall: Optional fallback variant (pattern "catchall")
        default: Name of the default variant, if any
        documentation: Free-form text from the definition
        width: Explicit width; needed only when there are no literal variants
    """

    def __init__(
        self,
        name: str,
        variants: Sequence[Variant],
        catchall: Optional[Variant] = None,
        default: Optional[str] = None,
        documentation: Optional[str] = None,
        width: Optional[int] = None,
    ) -> None:
        self.name = name
        self.variants: tuple[Variant, ...] = tuple(variants)
        self.catchall = catchall
        self.documentation = documentation
        self._width = self._validate(width)
        self._by_name = {v.name: v for v in self.all_variants}
        if default is not None and default not in self._by_name:
            raise DefinitionError(f"Default variant '{default}' is not a variant of {name}")
        self.default_variant: Optional[Variant] = self._by_name.get(default) if default else None
        self._default_bits: Optional[Bits] = None
        if self.default_variant is not None:
            reached = self._reaching_bits(self.default_variant)
            if self.default_variant.keep_bits:
                self._default_bits = reached
        for v in self.shadowed_variants():
            logger.warning("Variant %s of %s is unreachable: shadowed by earlier variants", v.name, self.name)

    def _validate(self, width: Optional[int]) -> int:
        if not is_valid_ident(self.name):
            raise DefinitionError(f"invalid ident \"{self.name}\"")

        seen: set[str] = set()
        for v in self.all_variants:
            if not is_valid_ident(v.name):
                raise DefinitionError(f"invalid ident \"{v.name}\"")
            if v.name in seen:
                raise DefinitionError(f"duplicate variant name \"{v.name}\" in {self.name}")
            seen.add(v.name)
            if not check_pattern(v.pattern):
                raise DefinitionError(f"invalid pattern \"{v.pattern}\"")

        for v in self.variants:
            if v.is_catchall:
                raise DefinitionError(f"catchall variant {v.name} must be declared as the catchall")
        if self.catchall is not None:
            if not self.catchall.is_catchall:
                raise DefinitionError(f"catchall variant {self.catchall.name} must use the catchall pattern")
            if not self.catchall.keep_bits:
                raise DefinitionError(f"catchall variant {self.catchall.name} must keep its bits")

        if self.variants:
            expected = len(self.variants[0].pattern)
            for v in self.variants:
                if len(v.pattern) != expected:
                    raise DefinitionError(
                        f"bit count mismatch in {self.name}, expected {expected} got {len(v.pattern)}"
                    )
            if width is not None and width != expected:
                raise DefinitionError(
                    f"bit count mismatch in {self.name}, expected {width} got {expected}"
                )
            width = expected
        elif width is None:
            raise DefinitionError(f"cannot determine the width of {self.name}: no pattern variants")
        if width < 1:
            raise DefinitionError(f"{self.name} must be at least one bit wide")

        patterns = [v.pattern for v in self.variants]
        if self.catchall is None:
            hole = _find_uncovered(patterns, width)
            if hole is not None:
                raise DefinitionError(
                    f"variants of {self.name} do not cover all inputs and there is no catchall "
                    f"(e.g. {bits_to_string(hole)})"
                )
        return width

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def all_variants(self) -> tuple[Variant, ...]:
        """Literal variants followed by the catchall, if any."""
        if self.catchall is None:
            return self.variants
        return self.variants + (self.catchall,)

    def shadowed_variants(self) -> list[Variant]:
        """Variants that no input can select, because earlier ones match first."""
        patterns = [v.pattern for v in self.variants]
        return [
            v for i, v in enumerate(self.variants)
            if i and _find_uncovered(patterns[:i], self._width, within=v.pattern) is None
        ]

    def _reaching_bits(self, v: Variant) -> Bits:
        """Bits that decode back to `v`: its fixed fill if that works, else the
        first vector inside `v`'s pattern that no earlier variant claims."""
        fill = v.fill_bits(self._width)
        if self.match(fill) is v:
            return fill
        if not v.keep_bits:
            raise DefinitionError(f"Default variant '{v.name}' of {self.name} is shadowed by an earlier variant")
        if v.is_catchall:
            earlier, region = self.variants, None
        else:
            earlier, region = self.variants[:self.variants.index(v)], v.pattern
        found = _find_uncovered([p.pattern for p in earlier], self._width, within=region)
        if found is None:
            raise DefinitionError(f"Default variant '{v.name}' of {self.name} is unreachable")
        return found

    def variant(self, name: str) -> Variant:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown variant '{name}' of {self.name}. Known: {list(self._by_name)}") from None

    def __getitem__(self, name: str) -> VariantValue:
        return self.value(name)

    def value(self, name: str, bits: Optional[Iterable[Any]] = None) -> VariantValue:
        """Build a value of variant `name`; capturing variants need `bits`."""
        v = self.variant(name)
        if v.keep_bits:
            if bits is None:
                raise ValueError(f"Variant {name} captures bits; pass bits=")
            return VariantValue(name, as_bits(bits, self._width))
        if bits is not None:
            raise ValueError(f"Variant {name} does not capture bits")
        return VariantValue(name)

    # ------------------------------------------------------------------
    # Codec
    # ------------------------------------------------------------------

    def match(self, bits: Bits) -> Variant:
        """The winning variant for `bits` (declaration order, then catchall)."""
        for v in self.variants:
            if v.matches(bits):
                return v
        if self.catchall is not None:
            return self.catchall
        # validation guarantees coverage when there is no catchall
        raise AssertionError(f"{self.name}: no variant matches {bits_to_string(bits)}")

    def decode(self, bits: Bits) -> VariantValue:
        bits = as_bits(bits, self._width)
        v = self.match(bits)
        return VariantValue(v.name, bits if v.keep_bits else None)

    def encode(self, value: VariantValue) -> Bits:
        if not isinstance(value, VariantValue):
            raise ValueError(f"Expected a VariantValue of {self.name}, got {value!r}")
        v = self.variant(value.variant)
        if v.keep_bits and value.bits is None:
            raise ValueError(f"Variant {v.name} captures bits but the value has none")
        return v.encode(value.bits, self._width)

    def default(self) -> Optional[VariantValue]:
        v = self.default_variant
        if v is None:
            return None
        if v.keep_bits:
            return VariantValue(v.name, self._default_bits)
        return VariantValue(v.name)

    def is_default(self, value: VariantValue, accessor: Any = None) -> bool:
        # compare by variant identity, never by the encoded bits
        default = self.default()
        if default is None:
            return False
        if value.variant != default.variant:
            return False
        return default.bits is None or value.bits == default.bits

    def to_string(self, value: VariantValue, accessor: Any = None) -> str:
        return str(value)

    def from_string(self, text: str, accessor: Any = None) -> VariantValue:
        name, paren, rest = text.partition("(")
        v = self._by_name.get(name)
        if v is None:
            raise ConversionError(f"Unknown variant {name!r} of {self.name}")
        if not v.keep_bits:
            if paren:
                raise ConversionError(f"Variant {name} does not take bits: {text!r}")
            return VariantValue(name)

        if not paren:
            raise ConversionError(f"Variant {name} needs its bits: {name}({'0' * self._width})")
        if len(rest) != self._width + 1 or rest[-1] != ")":
            raise ConversionError(f"Expected {self._width} bits then ')' in {text!r}")
        bits = []
        for c in rest[:-1]:
            if c not in "01":
                raise ConversionError(f"Invalid bit character {c!r} in {text!r}")
            bits.append(c == "1")
        return VariantValue(name, tuple(bits))

    def __repr__(self) -> str:
        return f"<BitProperty {self.name} width={self._width} variants={len(self.all_variants)}>"
