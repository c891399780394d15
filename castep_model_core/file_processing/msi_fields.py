"""
Field extraction for the inside of an MSI model scope.

An MSI model holds two kinds of fields, in any order::

    (A D A3 (10.0 0.0 0.0))        <- attribute field, one line
    (2 Atom                        <- object field, "<index> <type tag>"
      (A C ACL "6 C")
      (A D XYZ (5.0 5.0 5.0))
      (A I Id 1)
    )                              <- terminator on its own line

Both ``\\n`` and ``\\r\\n`` line endings are accepted.
"""

import re
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from castep_model_core.errors import SemanticExtractionError

ATTRIBUTE_FIELD = re.compile(r"\s*\(A (?P<content>[^\n]*?)\)\r?\n")
OBJECT_FIELD = re.compile(
    r"\s*\((?P<index>\d+)[ \t]+(?P<content>.*?\r?\n)[ \t]*\)\r?\n",
    re.DOTALL,
)
MODEL_SCOPE = re.compile(r"\(1[ \t]+Model[ \t]*\r?\n")
MODEL_TERMINATOR = re.compile(r"\s*\)\s*\Z")

ATOM_TAG = "Atom"


class FieldKind(Enum):
    ATTRIBUTE = "attribute"
    ATOM = "atom"
    BOND = "bond"


class MsiField(NamedTuple):
    """One extracted field. ``content`` is the attribute text or the object body."""
    kind: FieldKind
    content: str
    tag: str = ""
    index: Optional[int] = None


class MsiAttribute(NamedTuple):
    """An attribute split into its type code, name token and raw value."""
    type_code: str
    name: str
    value: str


def extract_attribute(text: str, pos: int = 0) -> Optional[Tuple[str, int]]:
    """
    Extract an attribute field starting at ``pos``.

    Leading indentation and blank lines are skipped. The field spans to the
    first close-paren that is immediately followed by a line ending.

    Returns:
        (content between "A " and the closing paren, end offset) or None.
    """
    match = ATTRIBUTE_FIELD.match(text, pos)
    if match is None:
        return None
    return match.group("content"), match.end()


def extract_object(text: str, pos: int = 0) -> Optional[Tuple[int, str, int]]:
    """
    Extract an object field starting at ``pos``.

    The object ends at the first line holding only indentation and a
    close-paren, so nested attribute lines never terminate it.

    Returns:
        (item index, content including the type tag line, end offset) or None.
    """
    match = OBJECT_FIELD.match(text, pos)
    if match is None:
        return None
    return int(match.group("index")), match.group("content"), match.end()


def split_type_tag(content: str) -> Tuple[str, str]:
    """Split object content into its type tag (first line) and the body after it."""
    first_line, _, body = content.partition("\n")
    tokens = first_line.split()
    tag = tokens[0] if tokens else ""
    return tag, body


def classify_object(index: int, content: str) -> MsiField:
    """Tag ``Atom`` goes to the atom bucket; every other tag is treated as a bond."""
    tag, body = split_type_tag(content)
    kind = FieldKind.ATOM if tag == ATOM_TAG else FieldKind.BOND
    return MsiField(kind=kind, content=body, tag=tag, index=index)


def next_field(text: str, pos: int = 0) -> Optional[Tuple[MsiField, int]]:
    """
    Extract and classify the next field at ``pos``, whichever mode matches.

    Returns:
        (field, end offset), or None when neither an attribute nor an object
        starts at ``pos``.
    """
    attribute = extract_attribute(text, pos)
    if attribute is not None:
        content, end = attribute
        return MsiField(kind=FieldKind.ATTRIBUTE, content=content), end

    obj = extract_object(text, pos)
    if obj is not None:
        index, content, end = obj
        return classify_object(index, content), end

    return None


def iter_attributes(body: str):
    """
    Yield the attribute contents of an object body in order.

    Stops at the first position that does not start an attribute. The rest
    of the body must then be blank.
    """
    pos = 0
    while True:
        attribute = extract_attribute(body, pos)
        if attribute is None:
            break
        content, pos = attribute
        yield content
    leftover = body[pos:]
    if leftover.strip():
        raise SemanticExtractionError(
            f"Unexpected content in object body: {leftover.strip().splitlines()[0]!r}"
        )


def split_attribute(content: str) -> MsiAttribute:
    """
    Split attribute content such as ``D CRY/TOLERANCE 0.05``.

    Raises:
        SemanticExtractionError: If the type code or name token is missing.
    """
    parts = content.strip().split(None, 2)
    if len(parts) < 2:
        raise SemanticExtractionError(f"Malformed attribute: {content!r}")
    value = parts[2] if len(parts) == 3 else ""
    return MsiAttribute(type_code=parts[0], name=parts[1], value=value)
