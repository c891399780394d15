"""
Conversion between the MSI and CELL dialects, model merging and file-level
conversion helpers.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from castep_model_core import geometry
from castep_model_core.errors import CastepModelError, DialectError, GeometryError
from castep_model_core.models import Dialect, LatticeModel, ModelSettings

logger = logging.getLogger(__name__)


def _require_dialect(model: LatticeModel, dialect: Dialect) -> None:
    if model.dialect is not dialect:
        raise DialectError(
            f"Expected a {dialect.value.upper()} model, got {model.dialect.value.upper()}"
        )


def msi_to_cell(model: LatticeModel) -> LatticeModel:
    """
    Convert an MSI model to the CELL dialect.

    The copy is rotated so lattice vector a lies along x (and b in the
    xy-plane), atoms are ordered by atomic number and fractional
    coordinates are derived from the rotated lattice. ``model`` is not
    modified.

    Raises:
        DialectError: ``model`` is not an MSI model.
        GeometryError: ``model`` has no lattice or a degenerate one.
    """
    _require_dialect(model, Dialect.MSI)
    if model.lattice is None:
        raise GeometryError("CELL dialect requires lattice vectors; the MSI model is not periodic")

    cell = model.copy()
    rotated = geometry.align_to_canonical(cell)
    cell.atoms = cell.atoms.sorted_by_atomic_number()
    geometry.recompute_fractional(cell)
    cell.settings = ModelSettings.default_for(Dialect.CELL).with_updates(**model.settings.msi_part())
    cell.dialect = Dialect.CELL
    logger.debug(f"Converted MSI model to CELL ({cell.num_atoms} atoms, rotated: {rotated})")
    return cell


def cell_to_msi(model: LatticeModel) -> LatticeModel:
    """
    Convert a CELL model back to the MSI dialect.

    The copy is rotated so lattice vector b lies along y, atoms are
    ordered by id and fractional coordinates are re-derived.

    Raises:
        DialectError: ``model`` is not a CELL model.
    """
    _require_dialect(model, Dialect.CELL)

    msi = model.copy()
    rotated = False
    if msi.lattice is not None:
        rotated = geometry.align_b_to_y(msi)
    msi.atoms = msi.atoms.sorted_by_id()
    geometry.recompute_fractional(msi)
    msi.settings = ModelSettings.default_for(Dialect.MSI).with_updates(**model.settings.msi_part())
    msi.dialect = Dialect.MSI
    logger.debug(f"Converted CELL model to MSI ({msi.num_atoms} atoms, rotated: {rotated})")
    return msi


def merge(first: LatticeModel, second: LatticeModel) -> LatticeModel:
    """
    Merge two models of the same dialect.

    The result keeps the lattice and settings of ``first``. Atoms of
    ``second`` follow those of ``first`` with their ids shifted by the
    maximum id of ``first``.

    Raises:
        DialectError: The models are of different dialects.
    """
    if first.dialect is not second.dialect:
        raise DialectError(
            f"Cannot merge a {first.dialect.value.upper()} model with a "
            f"{second.dialect.value.upper()} model"
        )

    merged = LatticeModel(
        lattice=None if first.lattice is None else first.lattice.copy(),
        atoms=first.atoms.merged(second.atoms),
        settings=first.settings,
        dialect=first.dialect,
    )
    # Fractional coordinates of the second operand refer to its own lattice
    if any(f is not None for f in merged.atoms.fractional):
        geometry.recompute_fractional(merged)
    logger.debug(f"Merged models: {first.num_atoms} + {second.num_atoms} atoms")
    return merged


def detect_input_format(file_path: Union[str, Path]) -> Optional[str]:
    """
    Detect the dialect of a structure file.

    Args:
        file_path (str or Path): Path to the input file

    Returns:
        str or None: 'msi', 'cell' or None if unknown
    """
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()
    if suffix == '.msi':
        return 'msi'
    if suffix == '.cell':
        return 'cell'

    try:
        with open(file_path, 'r') as f:
            content = f.read(4096)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {file_path}: {e}")
        return None

    if '# MSI CERIUS2' in content or '(1 Model' in content:
        return 'msi'
    if '%BLOCK LATTICE_CART' in content.upper():
        return 'cell'
    return None


def convert_msi_file(msi_file: Union[str, Path], output_file: Optional[Union[str, Path]] = None,
                     band_structure: bool = False) -> Optional[Path]:
    """
    Convert an MSI file to a CASTEP .cell file.

    Args:
        msi_file (str or Path): Path to the MSI file
        output_file (str or Path, optional): Path for the .cell file, next to
            the MSI file by default
        band_structure (bool): Write the band structure variant of the cell

    Returns:
        Path or None: Path to the generated file, or None if conversion failed.
    """
    from castep_model_core.castep.cell import save_cell_file
    from castep_model_core.file_processing.msi import parse_msi_file

    msi_file = Path(msi_file)
    source_format = detect_input_format(msi_file)
    if source_format != 'msi':
        logger.error(f"Not an MSI file: {msi_file}")
        return None

    model = parse_msi_file(msi_file)
    if model is None:
        logger.error(f"Failed to parse source file: {msi_file}")
        return None

    try:
        cell_model = msi_to_cell(model)
    except CastepModelError as e:
        logger.error(f"Failed to convert {msi_file} to CELL: {e}")
        return None

    if output_file is None:
        suffix = '_DOS.cell' if band_structure else '.cell'
        output_file = msi_file.with_name(f"{msi_file.stem}{suffix}")
    output_file = Path(output_file)

    if not save_cell_file(cell_model, output_file, band_structure=band_structure):
        logger.error(f"Failed to write cell file: {output_file}")
        return None

    logger.info(f"Successfully converted {msi_file} to cell format: {output_file}")
    return output_file


def batch_convert(input_dir: Union[str, Path], output_dir: Optional[Union[str, Path]] = None,
                  file_pattern: str = "*.msi") -> List[Path]:
    """
    Convert every MSI file in a directory to a .cell file.

    Args:
        input_dir (str or Path): Directory containing MSI files
        output_dir (str or Path, optional): Directory for the .cell files,
            ``input_dir`` by default
        file_pattern (str): Glob pattern for MSI files

    Returns:
        list: Paths of the generated files, sorted by source path.
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        logger.error(f"Input directory does not exist or is not a directory: {input_dir}")
        return []

    output_dir = Path(output_dir) if output_dir else input_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    msi_files = sorted(path for path in input_dir.glob(file_pattern) if path.is_file())
    logger.info(f"Found {len(msi_files)} MSI files in {input_dir}")

    converted = []
    for msi_file in msi_files:
        output_file = convert_msi_file(msi_file, output_dir / f"{msi_file.stem}.cell")
        if output_file is not None:
            converted.append(output_file)

    logger.info(f"Converted {len(converted)}/{len(msi_files)} files")
    return converted
