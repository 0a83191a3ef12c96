"""
fusemap error types

Each kind of failure has its own exception class so callers can tell a
broken definition (fatal, raised while processing declarations) from a bad
string value or a bad path (recoverable, raised per operation).

    DefinitionError   bad bit-property DSL, bad variant set, cyclic hierarchy
    LayoutError       bad coordinate-table grid (a DefinitionError)
    ConversionError   a string that cannot become a value of the target type
    TraversalError    unknown name / wrong parameters in the hierarchy
    TextFileError     a failing line in a human-readable text document
"""

from __future__ import annotations

from typing import Optional


class DefinitionError(Exception):
    """A property or hierarchy definition is invalid."""

    def __init__(self, message: str, lineno: Optional[int] = None):
        where = f"Line {lineno}: " if lineno is not None else ""
        super().__init__(f"{where}{message}")
        self.message = message
        self.lineno = lineno


class LayoutError(DefinitionError):
    """A coordinate-table grid is invalid."""

    def __init__(self, message: str, row: Optional[int] = None, col: Optional[int] = None):
        if row is not None and col is not None:
            message = f"{message} at ({row}, {col})"
        elif row is not None:
            message = f"{message} on row {row}"
        super().__init__(message)
        self.row = row
        self.col = col


class ConversionError(ValueError):
    """A string could not be converted to a property value."""


class TraversalError(LookupError):
    """A hierarchy name or its parameters could not be resolved."""


class TextFileError(Exception):
    """A line of a text document could not be applied."""

    def __init__(self, message: str, lineno: int):
        super().__init__(f"error on line {lineno}: {message}")
        self.message = message
        self.lineno = lineno
