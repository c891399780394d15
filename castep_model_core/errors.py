# castep_model_core/errors.py
"""
Exceptions raised by the parser, the atom table builder and the geometry engine.
"""

from typing import Optional


class CastepModelError(Exception):
    """Base class for all errors raised by castep_model_core."""


class ParseError(CastepModelError, ValueError):
    """Base class for MSI parse failures."""


class StructuralParseError(ParseError):
    """
    Field extraction or model-scope termination failed.

    The unconsumed text is kept on ``remainder`` for diagnostics.
    """

    def __init__(self, message: str, remainder: str = ""):
        self.remainder = remainder
        preview = remainder.strip().splitlines()[0] if remainder.strip() else ""
        if preview:
            message = f"{message} (near: {preview[:60]!r})"
        super().__init__(message)


class SemanticExtractionError(ParseError):
    """A required sub-field is missing or malformed in a well-formed block."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ColumnMismatchError(CastepModelError, ValueError):
    """A builder column does not match the declared atom count."""

    def __init__(self, column: str, actual: int, expected: int):
        self.column = column
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Column '{column}' has {actual} entries, expected {expected}"
        )


class MissingColumnError(CastepModelError, ValueError):
    """A builder was finalized before every required column was supplied."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Column '{column}' was never supplied")


class InvalidIndexError(CastepModelError, IndexError):
    """Row index or atom id outside of the table."""

    def __init__(self, index: int, size: int, kind: str = "index"):
        self.index = index
        self.size = size
        super().__init__(f"Invalid atom {kind} {index} for table of {size} atoms")


class GeometryError(CastepModelError, ValueError):
    """Degenerate lattice basis or other impossible geometric operation."""


class DialectError(CastepModelError, ValueError):
    """A model of the wrong dialect was passed to a dialect-specific operation."""


class UnknownElementError(CastepModelError, KeyError):
    """Element symbol not found in the element property table."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(symbol)

    def __str__(self) -> str:
        return f"Unknown element symbol: {self.symbol!r}"
