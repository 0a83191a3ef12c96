"""
fusemap Human-Readable Text Format

A line-oriented text rendering of every non-default property in a
bitstream:

    # comment
    tile[x=0, y=0].property_one = ChoiceWithX(0110)
    tile[x=0, y=0].property_two[n=1] = true
    dummy_sublevel.dummy_field = true

Blank lines and lines starting with '#' or '-' are ignored. Every other
line is `path = value`, split at the last '='. A path is a dot-separated
list of segments, each `name` or `name[arg, ...]`; arguments may be
written `label=value` and the label is ignored (matching is positional).
All segments but the last name sublevels; the last names a field.

Reading applies lines one at a time. The first failing line raises
TextFileError (1-based line number); lines before it stay applied, there
is no rollback.

Writing walks the hierarchy depth-first (sublevels, then fields, each in
declaration order) and emits only fields whose value differs from the
default, so an all-default bitstream writes an empty document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import IO, Iterable, Iterator, Optional, Union

from fusemap.accessor import Stateful
from fusemap.bits import BitArray
from fusemap.errors import ConversionError, TextFileError, TraversalError
from fusemap.hierarchy import Level, validate_hierarchy

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("#", "-")


# ============================================================================
# Reader
# ============================================================================

@dataclass
class Segment:
    """One path segment: a bare name plus its argument strings."""
    name: str
    args: list[str] = field(default_factory=list)


def parse_segment(text: str, lineno: int) -> Segment:
    text = text.strip()
    name, bracket, rest = text.partition("[")
    name = name.strip()
    if not name:
        raise TextFileError(f"empty path segment in '{text}'", lineno)
    if not bracket:
        return Segment(name)
    if not rest.endswith("]"):
        raise TextFileError("unclosed brackets", lineno)

    inner = rest[:-1].strip()
    if not inner:
        return Segment(name)
    args = []
    for arg in inner.split(","):
        arg = arg.strip()
        _label, eq, value = arg.partition("=")
        args.append(value.strip() if eq else arg)
    return Segment(name, args)


def _apply_line(line: str, lineno: int, root: Level, bitstream: BitArray) -> None:
    path, eq, value = line.rpartition("=")
    if not eq:
        raise TextFileError("missing '='", lineno)
    path = path.strip()
    value = value.strip()

    level = root
    while True:
        this_level, dot, path = path.partition(".")
        seg = parse_segment(this_level, lineno)
        if not dot:
            break
        if seg.name not in level.sublevels():
            raise TextFileError(f"'{seg.name}' is not a valid sublevel", lineno)
        try:
            level = level.construct_sublevel(seg.name, seg.args)
        except TraversalError as e:
            raise TextFileError(f"arg was malformed: {e}", lineno) from e

    if seg.name not in level.fields():
        raise TextFileError(f"'{seg.name}' is not a valid field", lineno)
    try:
        acc = level.construct_field(seg.name, seg.args)
    except TraversalError as e:
        raise TextFileError(f"arg was malformed: {e}", lineno) from e
    try:
        acc.set_from_string(bitstream, value)
    except ConversionError as e:
        raise TextFileError(f"value was malformed: {e}", lineno) from e


def read_text(source: Union[str, Iterable[str]], root: Level, bitstream: BitArray) -> int:
    """Apply a text document to `bitstream`.

    Args:
        source: The document, as a string or any iterable of lines
                (an open text file works)
        root: Root level of the hierarchy
        bitstream: Target BitArray, mutated in place

    Returns:
        Number of assignments applied

    Raises:
        TextFileError: at the first failing line
    """
    lines = source.splitlines() if isinstance(source, str) else source
    applied = 0
    for lineno, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            continue
        _apply_line(line, lineno, root, bitstream)
        logger.debug("line %d: %s", lineno, line)
        applied += 1
    logger.info("Applied %d assignment(s)", applied)
    return applied


# ============================================================================
# Writer
# ============================================================================

@dataclass
class WriteOptions:
    """Writer settings.

    Attributes:
        include_defaults: Emit every field, including those at their default
        header: Text emitted first as '#' comment lines
    """
    include_defaults: bool = False
    header: Optional[str] = None


def format_tag(name: str, obj: Stateful) -> str:
    pieces = obj.state_pieces()
    if not pieces:
        return name
    return name + "[" + ", ".join(f"{k}={v}" for k, v in pieces) + "]"


def _walk(level: Level, bitstream: BitArray, prefix: str, options: WriteOptions) -> Iterator[str]:
    for sublevel_name in level.sublevels():
        for sub in level.construct_all_sublevels(sublevel_name):
            yield from _walk(sub, bitstream, prefix + format_tag(sublevel_name, sub) + ".", options)

    for field_name in level.fields():
        for acc in level.construct_all_fields(field_name):
            if not options.include_defaults and acc.is_at_default(bitstream):
                continue
            yield f"{prefix}{format_tag(field_name, acc)} = {acc.get_as_string(bitstream)}"


def iter_lines(root: Level, bitstream: BitArray, options: Optional[WriteOptions] = None) -> Iterator[str]:
    """Lazily produce the document's lines (without newlines)."""
    options = options or WriteOptions()
    validate_hierarchy(root)
    if options.header:
        for h in options.header.splitlines():
            yield f"# {h}".rstrip()
    yield from _walk(root, bitstream, "", options)


def write_text(root: Level, bitstream: BitArray, options: Optional[WriteOptions] = None) -> str:
    """Render `bitstream` as a text document."""
    lines = list(iter_lines(root, bitstream, options))
    logger.info("Wrote %d line(s)", len(lines))
    return "".join(line + "\n" for line in lines)


def write(stream: IO[str], root: Level, bitstream: BitArray, options: Optional[WriteOptions] = None) -> int:
    """Write the document to an open text stream; returns the line count."""
    count = 0
    for line in iter_lines(root, bitstream, options):
        stream.write(line + "\n")
        count += 1
    return count
