"""
fusemap Definition Compiler Tests

1. Compiling the example property
2. Documentation, defaults, keep_bits markers
3. Several properties per document
4. Line-numbered errors
5. Rendering back to definition text
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from example_bitstream import PROPERTY1, PROPERTY1_SOURCE
from fusemap.compiler import compile_bit_properties, compile_bit_property, render_bit_property
from fusemap.errors import DefinitionError


# ============================================================================
# 1. Example property
# ============================================================================

def test_compile_example():
    assert PROPERTY1.name == "Property1"
    assert PROPERTY1.width == 4
    assert [v.name for v in PROPERTY1.variants] == [
        "ChoiceZero", "ChoiceOne", "ChoiceTwo", "ChoiceThree", "ChoiceWithX",
    ]
    assert PROPERTY1.catchall.name == "CatchallChoice"
    assert PROPERTY1.default_variant is PROPERTY1.catchall


# ============================================================================
# 2. Markers and documentation
# ============================================================================

def test_markers():
    assert PROPERTY1.variant("ChoiceWithX").keep_bits
    assert not PROPERTY1.variant("ChoiceOne").keep_bits
    assert PROPERTY1.catchall.keep_bits


def test_catchall_always_keeps_bits():
    prop = compile_bit_property("P\n0 Zero\ncatchall Rest\n")
    assert prop.catchall.keep_bits


def test_documentation():
    assert PROPERTY1.documentation == "A property with every kind of variant"
    assert PROPERTY1.variant("ChoiceWithX").documentation == "keeps whatever the wildcards held"
    assert PROPERTY1.variant("ChoiceOne").documentation is None


def test_multiline_and_inline_documentation():
    prop = compile_bit_property(
        "/// first\n"
        "///   second\n"
        "Documented\n"
        "/// above\n"
        "0 Off   trailing words here\n"
        "1 On\n"
    )
    assert prop.documentation == "first\nsecond"
    assert prop.variant("Off").documentation == "above\ntrailing words here"
    assert prop.variant("On").documentation is None


def test_comments_and_blank_lines():
    prop = compile_bit_property(
        "# header\n"
        "\n"
        "---------\n"
        "   Spaced   \n"
        "\t0\tOff\n"
        "  - separator\n"
        "1 On\n"
    )
    assert prop.name == "Spaced"
    assert [v.name for v in prop.variants] == ["Off", "On"]


# ============================================================================
# 3. Several properties
# ============================================================================

def test_several_properties():
    props = compile_bit_properties(
        "First\n0 A\n1 B\n"
        "Second\nxx *Any()\n"
    )
    assert [p.name for p in props] == ["First", "Second"]
    assert props[1].default_variant.name == "Any"
    assert props[1].width == 2


def test_single_property_required():
    with pytest.raises(DefinitionError):
        compile_bit_property("First\n0 A\n1 B\nSecond\n0 C\n1 D\n")


# ============================================================================
# 4. Errors
# ============================================================================

@pytest.mark.parametrize("source, lineno, fragment", [
    ("0000 ChoiceZero\n", 1, "no property name"),
    ("# c\nbad-name\n", 2, "invalid ident"),
    ("P\n0 1abc\n", 2, "invalid ident"),
    ("P\n0 _\n", 2, "invalid ident"),
    ("P\n012 Bad\n", 2, "invalid pattern"),
    ("P\n00 A\n000 B\n", 3, "expected 2 got 3"),
    ("P\n0 *A\n1 *B\n", 3, "multiple variants marked as default"),
    ("P\n0 A\ncatchall R\ncatchall S\n", 4, "multiple catchall"),
    ("P\n0 A\n1 A\n", 3, "duplicate variant name"),
])
def test_line_numbered_errors(source, lineno, fragment):
    with pytest.raises(DefinitionError) as exc:
        compile_bit_properties(source)
    assert exc.value.lineno == lineno
    assert fragment in exc.value.message
    assert str(exc.value).startswith(f"Line {lineno}: ")


def test_validation_errors_report_the_property_line():
    with pytest.raises(DefinitionError) as exc:
        compile_bit_properties("First\n0 A\n1 B\n\nHoley\n00 A\n01 B\n")
    assert exc.value.lineno == 5
    assert "Holey" in exc.value.message


def test_default_nothing_decodes_to_is_rejected():
    with pytest.raises(DefinitionError) as exc:
        compile_bit_properties("# c\nDead\nx Any\ncatchall *Rest()\n")
    assert exc.value.lineno == 2
    assert "unreachable" in exc.value.message


def test_empty_document():
    with pytest.raises(DefinitionError) as exc:
        compile_bit_properties("# nothing\n\n")
    assert exc.value.lineno is None


# ============================================================================
# 5. Rendering
# ============================================================================

def test_render_roundtrip():
    text = render_bit_property(PROPERTY1)
    again = compile_bit_property(text)
    assert again.name == PROPERTY1.name
    assert again.all_variants == PROPERTY1.all_variants
    assert again.default_variant == PROPERTY1.default_variant
    assert again.documentation == PROPERTY1.documentation


def test_render_layout():
    text = render_bit_property(compile_bit_property("P\n0 *Off\nx On() doc\n"))
    assert text == "P\n0 *Off\nx On() doc\n"


def test_example_source_is_stable():
    assert compile_bit_property(render_bit_property(compile_bit_property(PROPERTY1_SOURCE))).all_variants \
        == PROPERTY1.all_variants
