"""
CASTEP .cell file generation from CELL-dialect lattice models.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from castep_model_core.errors import CastepModelError, DialectError, GeometryError
from castep_model_core.models import Dialect, ElementTable, LatticeModel, default_element_table

logger = logging.getLogger(__name__)


def write_block(name: str, content: str) -> str:
    """Wrap ``content`` in a ``%BLOCK name`` / ``%ENDBLOCK name`` pair."""
    return f"%BLOCK {name}\n{content}%ENDBLOCK {name}\n\n"


def lattice_cart_block(model: LatticeModel) -> str:
    rows = [f"{x:24.18f}{y:24.18f}{z:24.18f}\n" for x, y, z in model.lattice.vectors.T]
    return write_block("LATTICE_CART", "".join(rows))


def positions_frac_block(model: LatticeModel, element_table: ElementTable) -> str:
    """Fractional positions, with a SPIN annotation for elements with non-zero spin."""
    fractional = model.atoms.fractional_array()
    lines = []
    for symbol, (x, y, z) in zip(model.atoms.element_symbols, fractional):
        spin = element_table.spin(symbol)
        spin_text = f" SPIN={float(spin):14.10f}" if spin > 0 else ""
        lines.append(f"{symbol:>3}{x:20.16f}{y:20.16f}{z:20.16f}{spin_text}")
    return write_block("POSITIONS_FRAC", "\n".join(lines) + "\n")


def kpoints_list_block(model: LatticeModel, name: str = "KPOINTS_LIST") -> str:
    """
    K-points at which the Brillouin zone is sampled, with their weights.

    Each line holds the fractional position relative to the reciprocal
    lattice vectors followed by the weight.
    """
    rows = [
        f"{x:20.16f}{y:20.16f}{z:20.16f}{weight:20.16f}\n"
        for x, y, z, weight in model.settings.kpoints_list
    ]
    return write_block(name, "".join(rows))


def _bool(value: bool) -> str:
    return "true" if value else "false"


def misc_options_block(model: LatticeModel) -> str:
    settings = model.settings
    fix = (
        f"FIX_ALL_CELL : {_bool(settings.fix_all_cell)}\n\n"
        f"FIX_COM : {_bool(settings.fix_com)}\n"
        f"{write_block('IONIC_CONSTRAINTS', '')}"
    )
    ex, ey, ez = settings.external_efield
    efield = write_block("EXTERNAL_EFIELD", f"{ex:16.10f}{ey:16.10f}{ez:16.10f}\n")
    rxx, rxy, rxz, ryy, ryz, rzz = settings.external_pressure
    pressure = write_block(
        "EXTERNAL_PRESSURE",
        f"{rxx:16.10f}{rxy:16.10f}{rxz:16.10f}\n"
        f"{'':16}{ryy:16.10f}{ryz:16.10f}\n"
        f"{'':32}{rzz:16.10f}\n",
    )
    return fix + efield + pressure


def species_mass_block(model: LatticeModel, element_table: ElementTable) -> str:
    rows = [f"{symbol:>8}{element_table.mass(symbol):17.10f}\n" for symbol in model.element_set()]
    return write_block("SPECIES_MASS", "".join(rows))


def species_pot_block(model: LatticeModel, element_table: ElementTable) -> str:
    rows = [f"{symbol:>8}  {element_table.potential(symbol)}\n" for symbol in model.element_set()]
    return write_block("SPECIES_POT", "".join(rows))


def species_lcao_block(model: LatticeModel, element_table: ElementTable) -> str:
    """Size of the LCAO basis set used for population analysis, per species."""
    rows = [f"{symbol:>8}{element_table.lcao(symbol):9d}\n" for symbol in model.element_set()]
    return write_block("SPECIES_LCAO_STATES", "".join(rows))


def _check_cell_model(model: LatticeModel) -> None:
    if model.dialect is not Dialect.CELL:
        raise DialectError("CELL export needs a CELL model; convert with msi_to_cell first")
    if model.lattice is None:
        raise GeometryError("CELL export needs lattice vectors")


def build_cell_input(model: LatticeModel, band_structure: bool = False,
                     element_table: Optional[ElementTable] = None) -> str:
    """
    Build .cell file content.

    Args:
        model (LatticeModel): CELL model with lattice and fractional coordinates.
        band_structure (bool): Add the BS_KPOINTS_LIST block before KPOINTS_LIST.
        element_table (ElementTable, optional): Element property lookup.

    Returns:
        str: .cell file content.
    """
    _check_cell_model(model)
    element_table = element_table or default_element_table()

    sections = [
        lattice_cart_block(model),
        positions_frac_block(model, element_table),
    ]
    if band_structure:
        sections.append(kpoints_list_block(model, "BS_KPOINTS_LIST"))
    sections.extend([
        kpoints_list_block(model),
        misc_options_block(model),
        species_mass_block(model, element_table),
        species_pot_block(model, element_table),
        species_lcao_block(model, element_table),
    ])
    return "".join(sections)


def export_cell(model: LatticeModel, element_table: Optional[ElementTable] = None) -> str:
    """.cell content for geometry optimisation and other default tasks."""
    return build_cell_input(model, band_structure=False, element_table=element_table)


def export_cell_band_structure(model: LatticeModel, element_table: Optional[ElementTable] = None) -> str:
    """.cell content for band structure tasks."""
    return build_cell_input(model, band_structure=True, element_table=element_table)


def save_cell_file(model: LatticeModel, output_path: Union[str, Path], band_structure: bool = False,
                   element_table: Optional[ElementTable] = None) -> bool:
    """
    Save a .cell file.

    Returns:
        bool: True if successful, False otherwise.
    """
    try:
        content = build_cell_input(model, band_structure=band_structure, element_table=element_table)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            f.write(content)
    except (CastepModelError, ValueError, OSError) as e:
        logger.error(f"Error saving CELL file: {e}")
        return False

    logger.info(f"CELL file saved to {output_path}")
    return True
