#!/usr/bin/env python3
"""
fusemap - bitstream property description toolkit

Command-line interface for checking definitions.

Usage:
    fusemap bitprop <file>             Compile bit-property definitions
    fusemap layout <file.csv>          Compile a coordinate-table grid
    fusemap tree <module:Root>         Print a hierarchy's schema
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
import textwrap
from pathlib import Path

from fusemap import __version__
from fusemap.compiler import compile_bit_properties, render_bit_property
from fusemap.errors import DefinitionError
from fusemap.hierarchy import Level, hierarchy_summary
from fusemap.layout import compile_layout, parse_layout
from fusemap.variants import BitProperty

# ============================================================================
# Formatting helpers
# ============================================================================

class C:
    """ANSI colors."""
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    RESET = "\033[0m"

    @staticmethod
    def off():
        C.BOLD = C.DIM = C.RED = C.GREEN = C.YELLOW = C.CYAN = C.RESET = ""


def header(text: str) -> str:
    return f"\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}\n{C.BOLD}  {text}{C.RESET}\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}"


def ok(text: str) -> str:
    return f"  {C.GREEN}✓{C.RESET} {text}"


def warn(text: str) -> str:
    return f"  {C.YELLOW}⚠{C.RESET} {text}"


def fail(text: str) -> str:
    return f"  {C.RED}✗{C.RESET} {text}"


def dim(text: str) -> str:
    return f"{C.DIM}{text}{C.RESET}"


def property_to_dict(prop: BitProperty) -> dict:
    return {
        "name": prop.name,
        "width": prop.width,
        "documentation": prop.documentation,
        "default": prop.default_variant.name if prop.default_variant else None,
        "variants": [
            {
                "name": v.name,
                "pattern": v.pattern,
                "keep_bits": v.keep_bits,
                "documentation": v.documentation,
            }
            for v in prop.all_variants
        ],
    }


# ============================================================================
# Commands
# ============================================================================

def cmd_bitprop(args):
    """Compile bit-property definitions and describe them."""
    props = compile_bit_properties(Path(args.file).read_text())

    if args.json:
        print(json.dumps([property_to_dict(p) for p in props], indent=2))
        return 0

    print(header(f"BITPROP: {args.file}"))
    for prop in props:
        print(f"\n  {C.BOLD}{prop.name}{C.RESET}  {dim(f'{prop.width} bit(s)')}")
        if prop.documentation:
            for line in prop.documentation.splitlines():
                print(f"    {dim(line)}")
        for v in prop.all_variants:
            marker = f"{C.GREEN}*{C.RESET}" if prop.default_variant is v else " "
            suffix = "()" if v.keep_bits else ""
            print(f"   {marker} {C.CYAN}{v.pattern:>{max(prop.width, 8)}}{C.RESET}  {v.name}{suffix}")

        if prop.catchall is not None:
            print(ok(f"Covered by catchall {prop.catchall.name}"))
        else:
            print(ok("Patterns cover every input"))
        if prop.default_variant is None:
            print(warn("No default: every instance will be written out"))

        for v in prop.shadowed_variants():
            print(warn(f"{v.name} is shadowed by earlier variants"))

        if args.verbose:
            print(dim(textwrap.indent(render_bit_property(prop), "    ")))
    return 0


def cmd_layout(args):
    """Compile a coordinate-table grid."""
    path = Path(args.file)
    grid = parse_layout(path.read_text(), name=args.name or path.stem)
    table = compile_layout(grid)

    if args.json:
        print(json.dumps(table.to_dict(), indent=2))
        return 0

    print(header(f"LAYOUT: {args.file}"))
    print(f"  {C.DIM}Tile: {table.name}  |  {table.width} x {table.height}{C.RESET}")
    for prop_name in table.properties:
        n = table.instance_count(prop_name)
        print(f"\n  {C.BOLD}{prop_name}{C.RESET}  {dim(f'{n} instance(s)')}")
        for i in range(n):
            coords = ", ".join(repr(c) for c in table.coordinates(prop_name, i))
            print(f"    [{i}] {coords}")
    return 0


def load_root(target: str) -> Level:
    """Import `module:Name` and instantiate the root level."""
    module_name, colon, attr = target.partition(":")
    if not colon or not attr:
        raise ValueError(f"Expected module:Root, got {target!r}")
    module = importlib.import_module(module_name)
    root_cls = getattr(module, attr)
    root = root_cls() if isinstance(root_cls, type) else root_cls
    if not isinstance(root, Level):
        raise TypeError(f"{target} is not a hierarchy Level")
    return root


def cmd_tree(args):
    """Print a hierarchy's schema."""
    if str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))
    try:
        root = load_root(args.target)
    except (ImportError, AttributeError, ValueError, TypeError) as e:
        print(fail(f"Cannot load {args.target}: {e}"))
        return 1
    print(header(f"TREE: {args.target}"))
    for line in hierarchy_summary(root).splitlines():
        print(f"  {line}")
    return 0


# ============================================================================
# CLI setup
# ============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="fusemap",
        description="fusemap - bitstream property description toolkit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
        examples:
          fusemap bitprop props.txt
          fusemap bitprop props.txt --json
          fusemap layout clb.csv --name clb
          fusemap tree mydevice.bits:Root
        """),
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and extra detail")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", help="Command to run")

    # bitprop
    p = sub.add_parser("bitprop", aliases=["bp"], help="Compile bit-property definitions")
    p.add_argument("file", help="Definition file")
    p.add_argument("--json", action="store_true", help="Print the compiled properties as JSON")

    # layout
    p = sub.add_parser("layout", help="Compile a coordinate-table grid")
    p.add_argument("file", help="CSV grid")
    p.add_argument("--name", help="Tile name (default: file stem)")
    p.add_argument("--json", action="store_true", help="Print the tables as JSON")

    # tree
    p = sub.add_parser("tree", help="Print a hierarchy's schema")
    p.add_argument("target", help="Root level as module:ClassName")

    args = parser.parse_args(argv)

    if args.no_color:
        C.off()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    # Dispatch
    commands = {
        "bitprop": cmd_bitprop, "bp": cmd_bitprop,
        "layout": cmd_layout,
        "tree": cmd_tree,
    }

    handler = commands[args.command]
    try:
        return handler(args)
    except FileNotFoundError as e:
        print(fail(f"File not found: {e}"))
        return 1
    except DefinitionError as e:
        source = getattr(args, "file", None) or args.target
        print(fail(f"{source}: {e}"))
        return 1


if __name__ == "__main__":
    sys.exit(main())
