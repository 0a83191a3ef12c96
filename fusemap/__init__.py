"""
fusemap - bitstream property description toolkit
Describe the configuration bits of programmable hardware as typed properties.

Bits:      Coordinate, BitArray, BitGrid: the 2-D plane of booleans
Values:    value codecs (bool, uint, raw bits) and bit-pattern variant properties
Access:    property accessors binding one property instance to coordinates
Hierarchy: levels, sublevels and fields, by type or by name
Text:      the human-readable `path = value` document format
Tools:     the bit-property definition compiler and the layout-grid compiler
"""

__version__ = "0.1.0"

from fusemap.bits import BitArray, BitGrid, Coordinate
from fusemap.codec import BoolCodec, RawBitsCodec, UIntCodec, ValueCodec
from fusemap.variants import BitProperty, Variant, VariantValue
from fusemap.accessor import PropertyAccessor, TableAccessor
from fusemap.hierarchy import (
    Level,
    Param,
    bitfield,
    describe_hierarchy,
    enum_param,
    hierarchy_summary,
    sublevel,
    validate_hierarchy,
)
from fusemap.textfile import WriteOptions, read_text, write_text
from fusemap.compiler import compile_bit_properties, compile_bit_property, render_bit_property
from fusemap.layout import LayoutTable, compile_layout, parse_layout
from fusemap.errors import (
    ConversionError,
    DefinitionError,
    LayoutError,
    TextFileError,
    TraversalError,
)

__all__ = [
    "Coordinate",
    "BitArray",
    "BitGrid",
    "ValueCodec",
    "BoolCodec",
    "UIntCodec",
    "RawBitsCodec",
    "BitProperty",
    "Variant",
    "VariantValue",
    "PropertyAccessor",
    "TableAccessor",
    "Level",
    "Param",
    "sublevel",
    "bitfield",
    "enum_param",
    "describe_hierarchy",
    "validate_hierarchy",
    "hierarchy_summary",
    "WriteOptions",
    "read_text",
    "write_text",
    "compile_bit_properties",
    "compile_bit_property",
    "render_bit_property",
    "LayoutTable",
    "parse_layout",
    "compile_layout",
    "DefinitionError",
    "LayoutError",
    "ConversionError",
    "TraversalError",
    "TextFileError",
]
