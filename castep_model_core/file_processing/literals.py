"""
Numeric literal scanning for MSI attribute values.

Materials Studio writes numbers in several shapes: ``42``, ``42.``, ``.42``,
``-2.865153883599e-05``, ``42e42``. The scanners below match the longest
valid literal at a position and report where it ends. On failure they
return None and consume nothing.
"""

import re
from typing import List, Optional, Tuple

_EXPONENT = r"(?:[eE][+-]?\d+)"

FLOAT_PATTERN = re.compile(
    rf"[+-]?(?:\d+\.\d*{_EXPONENT}?|\d+{_EXPONENT}?|\.\d+{_EXPONENT}?)"
)
INTEGER_PATTERN = re.compile(r"\d+")
_SEPARATOR = re.compile(r"[ \t]*")


def scan_float(text: str, pos: int = 0) -> Optional[Tuple[float, int]]:
    """
    Scan a floating-point (or integer) literal starting at ``pos``.

    Args:
        text: Source text.
        pos: Offset where the literal must start.

    Returns:
        Tuple of (value, end_offset), or None if no literal starts at ``pos``.
    """
    match = FLOAT_PATTERN.match(text, pos)
    if match is None:
        return None
    return float(match.group()), match.end()


def scan_integer(text: str, pos: int = 0) -> Optional[Tuple[int, int]]:
    """Scan an unsigned decimal integer starting at ``pos``."""
    match = INTEGER_PATTERN.match(text, pos)
    if match is None:
        return None
    return int(match.group()), match.end()


def scan_literal(text: str, pos: int = 0) -> Optional[Tuple[str, int]]:
    """Return the raw span of the literal at ``pos`` and its end offset."""
    match = FLOAT_PATTERN.match(text, pos)
    if match is None:
        return None
    return match.group(), match.end()


def parse_float(text: str) -> Optional[float]:
    """Parse ``text`` as a single float literal with optional surrounding blanks."""
    stripped = text.strip()
    result = scan_float(stripped)
    if result is None or result[1] != len(stripped):
        return None
    return result[0]


def parse_integer(text: str) -> Optional[int]:
    """Parse ``text`` as a single unsigned integer with optional surrounding blanks."""
    stripped = text.strip()
    result = scan_integer(stripped)
    if result is None or result[1] != len(stripped):
        return None
    return result[0]


def parse_float_tuple(text: str, count: int = 3) -> Optional[List[float]]:
    """
    Parse a parenthesized, blank-separated group of float literals.

    ``"(0.5 -1.2e-05 .25)"`` gives ``[0.5, -1.2e-05, 0.25]``. Returns None
    unless exactly ``count`` literals are found.
    """
    return _parse_tuple(text, count, scan_float)


def parse_integer_tuple(text: str, count: int = 2) -> Optional[List[int]]:
    """Parse a parenthesized group of unsigned integers, e.g. ``(192 256)``."""
    return _parse_tuple(text, count, scan_integer)


def _parse_tuple(text, count, scanner):
    stripped = text.strip()
    if not (stripped.startswith("(") and stripped.endswith(")")):
        return None
    body = stripped[1:-1]
    values = []
    pos = _SEPARATOR.match(body, 0).end()
    while pos < len(body):
        result = scanner(body, pos)
        if result is None:
            return None
        value, end = result
        values.append(value)
        next_pos = _SEPARATOR.match(body, end).end()
        # Literals must be separated by blanks
        if next_pos == end and end < len(body):
            return None
        pos = next_pos
    if len(values) != count:
        return None
    return values
