# castep_model_core/__init__.py
"""
CASTEP Model Core

Parses Materials Studio MSI structure files into lattice models, converts
them between the MSI and CASTEP CELL dialects (canonical orientation,
fractional coordinates, atom ordering) and writes the seed files needed to
run CASTEP jobs from Materials Studio.
"""

__version__ = '0.2.9'

from castep_model_core.errors import (
    CastepModelError,
    ParseError,
    StructuralParseError,
    SemanticExtractionError,
    ColumnMismatchError,
    MissingColumnError,
    InvalidIndexError,
    GeometryError,
    DialectError,
    UnknownElementError,
)
from castep_model_core.models import (
    Atom,
    AtomTable,
    AtomTableBuilder,
    Dialect,
    LatticeModel,
    LatticeVectors,
    ModelSettings,
)
from castep_model_core.file_processing import parse_msi, parse_msi_file, export_msi
from castep_model_core.converter import msi_to_cell, cell_to_msi, merge
from castep_model_core.castep import export_cell, export_cell_band_structure

__all__ = [
    'CastepModelError',
    'ParseError',
    'StructuralParseError',
    'SemanticExtractionError',
    'ColumnMismatchError',
    'MissingColumnError',
    'InvalidIndexError',
    'GeometryError',
    'DialectError',
    'UnknownElementError',
    'Atom',
    'AtomTable',
    'AtomTableBuilder',
    'Dialect',
    'LatticeModel',
    'LatticeVectors',
    'ModelSettings',
    'parse_msi',
    'parse_msi_file',
    'export_msi',
    'msi_to_cell',
    'cell_to_msi',
    'merge',
    'export_cell',
    'export_cell_band_structure',
]
