"""
MSI file processing: reading, writing and the Materials Studio export script.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from castep_model_core.errors import CastepModelError, DialectError
from castep_model_core.file_processing.msi_parser import parse_msi
from castep_model_core.models import Dialect, LatticeModel
from castep_model_core.utils.validation import validate_structure

logger = logging.getLogger(__name__)

MSI_HEADER = "# MSI CERIUS2 DataModel File Version 4 0"

XSD_SCRIPT_HEADER = """#!perl
use strict;
use Getopt::Long;
use MaterialsScript qw(:all);
"""

XSD_SCRIPT_ACTIONS = """foreach my $item (@params) {
    my $doc = $Documents{"${item}.msi"};
    $doc->CalculateBonds;
    $doc->Export("${item}.xsd");
    $doc->Save;
    $doc->Close;
}"""


def load_msi(msi_file: Union[str, Path]) -> LatticeModel:
    """
    Read and parse an MSI file, raising on any failure.

    Line endings are kept as written so ``\\r\\n`` files parse unchanged.
    """
    with open(msi_file, 'r', newline='') as f:
        text = f.read()
    return parse_msi(text)


def parse_msi_file(msi_file: Union[str, Path]) -> Optional[LatticeModel]:
    """
    Parse an MSI file and extract the structure model.

    Args:
        msi_file (str or Path): Path to the MSI file.

    Returns:
        LatticeModel or None: Parsed model, or None if the file is invalid.
    """
    is_valid, content = validate_structure(msi_file)
    if not is_valid:
        logger.error(f"Invalid MSI file {msi_file}: {content}")
        return None

    try:
        model = parse_msi(content)
    except CastepModelError as e:
        logger.error(f"Error parsing MSI file {msi_file}: {e}")
        return None

    logger.info(f"Successfully parsed MSI file {msi_file}: {model.num_atoms} atoms")
    return model


def _format_vector(values) -> str:
    x, y, z = values
    return f"({x:.12f} {y:.12f} {z:.12f})"


def export_msi(model: LatticeModel) -> str:
    """
    Serialize an MSI model to text.

    Atoms are written in ascending id order and numbered from 2, the model
    itself being item 1. Models without a lattice get no crystal attributes.

    Raises:
        DialectError: ``model`` is not in the MSI dialect.
    """
    if model.dialect is not Dialect.MSI:
        raise DialectError("Only MSI models can be exported as MSI; convert with cell_to_msi first")

    lines = [MSI_HEADER, "(1 Model"]

    if model.lattice is not None:
        settings = model.settings
        display_x, display_y = settings.cry_display
        lines.append(f"  (A I CRY/DISPLAY ({display_x} {display_y}))")
        lines.append(f"  (A I PeriodicType {settings.periodic_type})")
        lines.append(f'  (A C SpaceGroup "{settings.space_group}")')
        for name, vector in zip(("A3", "B3", "C3"), model.lattice.vectors.T):
            lines.append(f"  (A D {name} {_format_vector(vector)})")
        lines.append(f"  (A D CRY/TOLERANCE {settings.cry_tolerance})")

    atoms = model.atoms.sorted_by_id()
    for row in range(atoms.size):
        atom = atoms.view_atom_at(row)
        lines.extend([
            f"  ({row + 2} Atom",
            f'    (A C ACL "{atom.atomic_number} {atom.symbol}")',
            f'    (A C Label "{atom.symbol}")',
            f"    (A D XYZ {_format_vector(atom.xyz)})",
            f"    (A I Id {atom.atom_id})",
            "  )",
        ])

    lines.append(")")
    return "\n".join(lines) + "\n"


def save_msi_file(model: LatticeModel, output_path: Union[str, Path]) -> bool:
    """
    Save a model as an MSI file.

    Args:
        model (LatticeModel): MSI model.
        output_path (str or Path): Output file path.

    Returns:
        bool: True if successful, False otherwise.
    """
    try:
        content = export_msi(model)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            f.write(content)
    except (CastepModelError, OSError) as e:
        logger.error(f"Error saving MSI file: {e}")
        return False

    logger.info(f"MSI file saved to {output_path}")
    return True


def build_msi_to_xsd_script(msi_files: List[Path]) -> str:
    """Perl script for Materials Studio that exports every MSI file to XSD."""
    items = ", ".join(f'"{path.parent.as_posix()}/{path.stem}"' for path in msi_files)
    array_text = f"my @params = (\n{items});\n"
    return f"{XSD_SCRIPT_HEADER}{array_text}{XSD_SCRIPT_ACTIONS}"


def write_msi_to_xsd_script(root_dir: Union[str, Path],
                            output_file: Union[str, Path] = "msi_to_xsd.pl") -> Optional[Path]:
    """
    Scan ``root_dir`` recursively for MSI files and write the XSD export script.

    Files are listed in path order.

    Returns:
        Path or None: The script path, or None if it could not be written.
    """
    root_dir = Path(root_dir)
    msi_files = sorted(root_dir.rglob("*.msi"))
    logger.info(f"Found {len(msi_files)} MSI files under {root_dir}")

    output_file = Path(output_file)
    try:
        with open(output_file, 'w') as f:
            f.write(build_msi_to_xsd_script(msi_files))
    except OSError as e:
        logger.error(f"Error writing XSD export script: {e}")
        return None

    logger.info(f"XSD export script saved to {output_file}")
    return output_file
