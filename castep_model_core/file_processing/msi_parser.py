"""
MSI parser: a structural state machine followed by semantic extraction.

The state machine walks the model scope once and sorts every field into
one of three buckets (attributes, atoms, bonds) without assuming any field
order. The semantic extractors then turn the buckets into a lattice, model
settings and an atom table.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

import numpy as np

from castep_model_core.errors import (
    CastepModelError,
    SemanticExtractionError,
    StructuralParseError,
)
from castep_model_core.file_processing.literals import (
    parse_float,
    parse_float_tuple,
    parse_integer,
    parse_integer_tuple,
)
from castep_model_core.file_processing.msi_fields import (
    MODEL_SCOPE,
    MODEL_TERMINATOR,
    FieldKind,
    MsiAttribute,
    iter_attributes,
    next_field,
    split_attribute,
)
from castep_model_core.models import (
    AtomTableBuilder,
    Dialect,
    LatticeModel,
    LatticeVectors,
    ModelSettings,
)
from castep_model_core.models.atoms import MAX_ATOM_ID

logger = logging.getLogger(__name__)

LATTICE_KEYS = ("A3", "B3", "C3")
ACL_PATTERN = re.compile(r'^"\s*(\d+)\s+(\S+)\s*"$')
QUOTED_PATTERN = re.compile(r'^"(.*)"$')
SPACE_GROUP_PATTERN = re.compile(r"^\d+\s+\d+$")

MAX_ATOMIC_NUMBER = 255


class ParserState(Enum):
    LOADED = "loaded"
    START = "start"
    ANALYZED = "analyzed"


@dataclass
class MsiBuckets:
    """Raw field contents collected from one model scope."""
    attributes: List[str] = field(default_factory=list)
    atoms: List[str] = field(default_factory=list)
    bonds: List[str] = field(default_factory=list)

    @property
    def num_atoms(self) -> int:
        return len(self.atoms)

    @property
    def num_bonds(self) -> int:
        return len(self.bonds)


class ParsedAtom(NamedTuple):
    symbol: str
    atomic_number: int
    xyz: List[float]
    atom_id: int
    label: Optional[str] = None


class MsiStateMachine:
    """
    Order-independent walker over an MSI model scope.

    States go ``LOADED -> START -> ANALYZED``. ``start()`` positions the
    cursor just inside ``(1 Model``; ``analyze()`` consumes every field and
    checks that only the model terminator is left.
    """

    def __init__(self, text: str):
        self.state = ParserState.LOADED
        self._text: Optional[str] = text
        self._pos = 0
        self.buckets = MsiBuckets()

    def start(self) -> "MsiStateMachine":
        if self.state is not ParserState.LOADED:
            raise CastepModelError(f"Cannot start parser in state {self.state.value}")
        match = MODEL_SCOPE.search(self._text)
        if match is None:
            raise StructuralParseError("No '(1 Model' scope found", remainder=self._text)
        self._pos = match.end()
        self.state = ParserState.START
        return self

    def analyze(self) -> MsiBuckets:
        if self.state is ParserState.ANALYZED:
            return self.buckets
        if self.state is ParserState.LOADED:
            self.start()

        text = self._text
        pos = self._pos
        while True:
            result = next_field(text, pos)
            if result is None:
                break
            msi_field, pos = result
            if msi_field.kind is FieldKind.ATTRIBUTE:
                self.buckets.attributes.append(msi_field.content)
            elif msi_field.kind is FieldKind.ATOM:
                self.buckets.atoms.append(msi_field.content)
            else:
                self.buckets.bonds.append(msi_field.content)

        remainder = text[pos:]
        if MODEL_TERMINATOR.match(remainder) is None:
            raise StructuralParseError("Model scope is not properly terminated", remainder=remainder)

        self._text = None
        self._pos = 0
        self.state = ParserState.ANALYZED
        logger.debug(
            f"MSI model scope analyzed: {len(self.buckets.attributes)} attributes, "
            f"{self.buckets.num_atoms} atoms, {self.buckets.num_bonds} bonds"
        )
        return self.buckets


def build_attribute_table(attributes: List[str]) -> Dict[str, MsiAttribute]:
    """Key attribute contents by their name token. Later duplicates win."""
    table = {}
    for content in attributes:
        attribute = split_attribute(content)
        table[attribute.name] = attribute
    return table


def extract_lattice(table: Dict[str, MsiAttribute]) -> Optional[LatticeVectors]:
    """
    Build the lattice from ``A3``, ``B3`` and ``C3``.

    Returns None when none of the three is present (non-periodic model).
    """
    present = [key for key in LATTICE_KEYS if key in table]
    if not present:
        return None
    if len(present) != len(LATTICE_KEYS):
        missing = [key for key in LATTICE_KEYS if key not in table]
        raise SemanticExtractionError(
            f"Incomplete lattice: missing {', '.join(missing)}", field=missing[0]
        )

    columns = []
    for key in LATTICE_KEYS:
        vector = parse_float_tuple(table[key].value, 3)
        if vector is None:
            raise SemanticExtractionError(
                f"Malformed lattice vector {key}: {table[key].value!r}", field=key
            )
        columns.append(vector)
    return LatticeVectors(np.column_stack(columns))


def extract_settings(table: Dict[str, MsiAttribute]) -> ModelSettings:
    """Read PeriodicType, SpaceGroup, CRY/TOLERANCE and CRY/DISPLAY over the MSI defaults."""
    settings = ModelSettings.default_for(Dialect.MSI)
    if not table:
        return settings

    updates = {}
    if "PeriodicType" in table:
        periodic_type = parse_integer(table["PeriodicType"].value)
        if periodic_type is None:
            raise SemanticExtractionError(
                f"Malformed PeriodicType: {table['PeriodicType'].value!r}", field="PeriodicType"
            )
        updates["periodic_type"] = periodic_type

    if "SpaceGroup" in table:
        raw = table["SpaceGroup"].value.strip()
        quoted = QUOTED_PATTERN.match(raw)
        if quoted is None or SPACE_GROUP_PATTERN.match(quoted.group(1).strip()) is None:
            raise SemanticExtractionError(f"Malformed SpaceGroup: {raw!r}", field="SpaceGroup")
        updates["space_group"] = quoted.group(1)

    if "CRY/TOLERANCE" in table:
        tolerance = parse_float(table["CRY/TOLERANCE"].value)
        if tolerance is None:
            raise SemanticExtractionError(
                f"Malformed CRY/TOLERANCE: {table['CRY/TOLERANCE'].value!r}", field="CRY/TOLERANCE"
            )
        updates["cry_tolerance"] = tolerance

    if "CRY/DISPLAY" in table:
        display = parse_integer_tuple(table["CRY/DISPLAY"].value, 2)
        if display is None:
            raise SemanticExtractionError(
                f"Malformed CRY/DISPLAY: {table['CRY/DISPLAY'].value!r}", field="CRY/DISPLAY"
            )
        updates["cry_display"] = tuple(display)

    return replace(settings, **updates)


def extract_atom(body: str) -> ParsedAtom:
    """
    Recover species, coordinates, id and optional label from one atom block.

    Unknown attributes inside the block (charges, visibility flags...) are
    ignored.

    Raises:
        SemanticExtractionError: If ACL, XYZ or Id is missing or malformed.
    """
    attributes = {}
    for content in iter_attributes(body):
        attribute = split_attribute(content)
        attributes[attribute.name] = attribute

    for required in ("ACL", "XYZ", "Id"):
        if required not in attributes:
            raise SemanticExtractionError(f"Atom block is missing {required}", field=required)

    acl = ACL_PATTERN.match(attributes["ACL"].value.strip())
    if acl is None:
        raise SemanticExtractionError(f"Malformed ACL: {attributes['ACL'].value!r}", field="ACL")
    atomic_number = int(acl.group(1))
    if atomic_number > MAX_ATOMIC_NUMBER:
        raise SemanticExtractionError(f"Atomic number out of range: {atomic_number}", field="ACL")

    xyz = parse_float_tuple(attributes["XYZ"].value, 3)
    if xyz is None:
        raise SemanticExtractionError(f"Malformed XYZ: {attributes['XYZ'].value!r}", field="XYZ")

    atom_id = parse_integer(attributes["Id"].value)
    if atom_id is None or atom_id > MAX_ATOM_ID:
        raise SemanticExtractionError(f"Malformed Id: {attributes['Id'].value!r}", field="Id")

    label = None
    if "Label" in attributes:
        quoted = QUOTED_PATTERN.match(attributes["Label"].value.strip())
        label = quoted.group(1) if quoted else attributes["Label"].value.strip()

    return ParsedAtom(acl.group(2), atomic_number, xyz, atom_id, label)


def parse_msi(text: str) -> LatticeModel:
    """
    Parse MSI text into a model in the MSI dialect.

    Args:
        text: Full MSI document.

    Returns:
        LatticeModel: Lattice (or None for molecules), atoms in file order
        and settings.

    Raises:
        StructuralParseError: The model scope could not be walked to its end.
        SemanticExtractionError: A block is structurally fine but lacks a
            required value.
    """
    buckets = MsiStateMachine(text).analyze()

    table = build_attribute_table(buckets.attributes)
    lattice = extract_lattice(table)
    settings = extract_settings(table)
    parsed_atoms = [extract_atom(body) for body in buckets.atoms]

    size = len(parsed_atoms)
    atoms = (
        AtomTableBuilder(size)
        .with_element_symbols([atom.symbol for atom in parsed_atoms])
        .with_atomic_numbers([atom.atomic_number for atom in parsed_atoms])
        .with_cartesian(np.array([atom.xyz for atom in parsed_atoms], dtype=float).reshape(size, 3))
        .with_fractional([None] * size)
        .with_atom_ids([atom.atom_id for atom in parsed_atoms])
        .build()
    )
    logger.debug(f"Parsed MSI model with {size} atoms (periodic: {lattice is not None})")
    return LatticeModel(lattice=lattice, atoms=atoms, settings=settings, dialect=Dialect.MSI)
