"""
Materials Studio auxiliary files written next to CASTEP seeds.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from castep_model_core.models import LatticeModel

KPOINT_IMAGES = """BLOCK KPOINT_IMAGES
   1   1
ENDBLOCK KPOINT_IMAGES"""

TRJAUX_HEADER = """# Atom IDs to appear in any .trj file to be generated.
# Correspond to atom IDs which will be used in exported .msi file
# required for animation/analysis of trajectory within Cerius2.
"""

TRJAUX_ORIGIN = "#Origin  0.000000000000000e+000  0.000000000000000e+000  0.000000000000000e+000"


@dataclass
class KptAux:
    """
    Contents of a ``.kptaux`` file.

    Attributes:
        kpoints: K-point list entries (x, y, z, weight).
        mp_grid: Monkhorst-Pack grid dimensions along the reciprocal lattice vectors.
        mp_spacing: Maximum k-point separation on the grid in 1/Angstrom, if set.
        mp_offset: Grid offset in fractional reciprocal coordinates.
    """
    kpoints: Sequence[Tuple[float, float, float, float]]
    mp_grid: Tuple[int, int, int]
    mp_spacing: Optional[float]
    mp_offset: Tuple[float, float, float]

    def export(self) -> str:
        gx, gy, gz = self.mp_grid
        ox, oy, oz = self.mp_offset
        return (
            f"MP_GRID : {gx:>8}{gy:>8}{gz:>8}\n"
            f"MP_OFFSET : {ox:22.18e}{oy:22.18e}{oz:22.18e}\n"
            f"{KPOINT_IMAGES}"
        )


@dataclass
class TrjAux:
    """Atom ids in CELL order, as used in the exported .msi file."""
    atom_ids: List[int]

    def export(self) -> str:
        ids = "".join(f"{atom_id}\n" for atom_id in self.atom_ids)
        return f"{TRJAUX_HEADER}{ids}{TRJAUX_ORIGIN}"


def build_kptaux(model: LatticeModel) -> KptAux:
    settings = model.settings
    return KptAux(
        kpoints=list(settings.kpoints_list),
        mp_grid=settings.kpoints_grid,
        mp_spacing=settings.kpoints_mp_spacing,
        mp_offset=settings.kpoints_mp_offset,
    )


def build_trjaux(model: LatticeModel) -> TrjAux:
    return TrjAux([int(atom_id) for atom_id in model.atoms.atom_ids])
