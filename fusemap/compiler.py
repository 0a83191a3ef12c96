"""
fusemap Bit-Property Definition Compiler

Compiles the bit-property definition language into BitProperty codecs.

Syntax (one declaration per line, surrounding whitespace ignored):

    # comment                   ignored, as are '-' lines and blank lines
    /// documentation           accumulates for the next declaration
    Property1                   a bare identifier opens a new property
    0000 ChoiceZero             <pattern> <name> [documentation...]
    01xX ChoiceWithX() text     '()' suffix: the variant keeps its bits
    catchall *CatchallChoice()  '*' prefix: the default variant

Patterns are strings over {0, 1, x, X} of one width per property, or the
literal `catchall`. Every error is a DefinitionError carrying the 1-based
line number it was found on.

Example:
    props = compile_bit_properties(open("props.txt").read())
    prop = compile_bit_property(text)   # exactly one property
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from fusemap.errors import DefinitionError
from fusemap.variants import CATCHALL_PATTERN, BitProperty, Variant, check_pattern, is_valid_ident

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"[ \t]+")


# ============================================================================
# Work-in-progress declarations
# ============================================================================

@dataclass
class _PropertyDecl:
    name: str
    lineno: int
    documentation: Optional[str] = None
    variants: list[Variant] = field(default_factory=list)
    catchall: Optional[Variant] = None
    default: Optional[str] = None
    width: Optional[int] = None

    def finish(self) -> BitProperty:
        try:
            return BitProperty(
                self.name,
                self.variants,
                catchall=self.catchall,
                default=self.default,
                documentation=self.documentation,
            )
        except DefinitionError as e:
            raise DefinitionError(e.message, self.lineno) from e


@dataclass
class _VariantName:
    name: str
    keep_bits: bool
    is_default: bool


def parse_variant_name(text: str) -> _VariantName:
    is_default = text.startswith("*")
    if is_default:
        text = text[1:]
    keep_bits = text.endswith("()")
    if keep_bits:
        text = text[:-2]
    return _VariantName(text, keep_bits, is_default)


def _join_doc(*parts: Optional[str]) -> Optional[str]:
    present = [p for p in parts if p]
    return "\n".join(present) if present else None


# ============================================================================
# Compiler
# ============================================================================

def compile_bit_properties(source: str) -> list[BitProperty]:
    """Compile every property declared in `source`, in order."""
    finished: list[BitProperty] = []
    wip: Optional[_PropertyDecl] = None
    documentation: Optional[str] = None

    for lineno, raw in enumerate(source.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith(("#", "-")):
            continue

        if line.startswith("///"):
            documentation = _join_doc(documentation, line[3:].strip()) or ""
            continue

        parts = _WS_RE.split(line, maxsplit=2)
        if len(parts) == 1:
            if not is_valid_ident(line):
                raise DefinitionError(f"invalid ident \"{line}\"", lineno)
            if wip is not None:
                finished.append(wip.finish())
            wip = _PropertyDecl(line, lineno, documentation=documentation or None)
            documentation = None
            logger.debug("line %d: property %s", lineno, line)
            continue

        if wip is None:
            raise DefinitionError("pattern encountered, but no property name", lineno)

        pattern, var_name = parts[0], parts[1]
        inline_doc = parts[2].strip() if len(parts) > 2 else None
        parsed = parse_variant_name(var_name)

        if not is_valid_ident(parsed.name):
            raise DefinitionError(f"invalid ident \"{parsed.name}\"", lineno)
        if not check_pattern(pattern):
            raise DefinitionError(f"invalid pattern \"{pattern}\"", lineno)

        if pattern != CATCHALL_PATTERN:
            if wip.width is None:
                wip.width = len(pattern)
            elif wip.width != len(pattern):
                raise DefinitionError(
                    f"bit count mismatch, expected {wip.width} got {len(pattern)}", lineno
                )

        if any(v.name == parsed.name for v in wip.variants) or (
            wip.catchall is not None and wip.catchall.name == parsed.name
        ):
            raise DefinitionError(f"duplicate variant name \"{parsed.name}\"", lineno)

        variant = Variant(
            name=parsed.name,
            pattern=pattern,
            keep_bits=parsed.keep_bits or pattern == CATCHALL_PATTERN,
            documentation=_join_doc(documentation, inline_doc),
        )
        documentation = None

        if variant.is_catchall:
            if wip.catchall is not None:
                raise DefinitionError("multiple catchall variants", lineno)
            wip.catchall = variant
        else:
            wip.variants.append(variant)

        if parsed.is_default:
            if wip.default is not None:
                raise DefinitionError("multiple variants marked as default", lineno)
            wip.default = variant.name
        logger.debug("line %d: variant %s of %s", lineno, variant.name, wip.name)

    if wip is None:
        raise DefinitionError("no property name")
    finished.append(wip.finish())
    logger.info("Compiled %d bit propert%s", len(finished), "y" if len(finished) == 1 else "ies")
    return finished


def compile_bit_property(source: str) -> BitProperty:
    """Compile a document that declares exactly one property."""
    props = compile_bit_properties(source)
    if len(props) != 1:
        raise DefinitionError(f"expected exactly one property, found {len(props)}")
    return props[0]


def render_bit_property(prop: BitProperty) -> str:
    """Render a property back to definition-language text."""
    lines = []
    if prop.documentation:
        lines.extend(f"/// {d}" for d in prop.documentation.splitlines())
    lines.append(prop.name)
    for v in prop.all_variants:
        star = "*" if prop.default_variant is v else ""
        parens = "()" if v.keep_bits else ""
        line = f"{v.pattern} {star}{v.name}{parens}"
        if v.documentation:
            doc_lines = v.documentation.splitlines()
            lines.extend(f"/// {d}" for d in doc_lines[:-1])
            line += f" {doc_lines[-1]}"
        lines.append(line)
    return "\n".join(lines) + "\n"
