"""
Lattice vectors, model settings and the lattice model aggregate.
"""

import copy
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from castep_model_core import geometry
from castep_model_core.config import get_config
from castep_model_core.models.atoms import AtomTable


class Dialect(Enum):
    """Text dialect a model belongs to. Selects ordering, defaults and export."""
    MSI = "msi"
    CELL = "cell"


class LatticeVectors:
    """
    Periodic cell basis stored as a 3x3 matrix whose columns are a, b and c.

    Lengths, angles, volume and the fractional-coordinate matrix are always
    derived from the current vectors, never cached.
    """

    def __init__(self, vectors):
        matrix = np.array(vectors, dtype=float)
        if matrix.shape != (3, 3):
            raise ValueError(f"Lattice vectors must form a 3x3 matrix, got shape {matrix.shape}")
        self._vectors = matrix

    @classmethod
    def from_vectors(cls, a, b, c) -> "LatticeVectors":
        return cls(np.column_stack([a, b, c]))

    def __repr__(self) -> str:
        return f"LatticeVectors(a={self.a.tolist()}, b={self.b.tolist()}, c={self.c.tolist()})"

    @property
    def vectors(self) -> np.ndarray:
        return self._vectors

    @property
    def a(self) -> np.ndarray:
        return self._vectors[:, 0].copy()

    @property
    def b(self) -> np.ndarray:
        return self._vectors[:, 1].copy()

    @property
    def c(self) -> np.ndarray:
        return self._vectors[:, 2].copy()

    def lengths(self) -> np.ndarray:
        return np.linalg.norm(self._vectors, axis=0)

    def angles(self) -> Tuple[float, float, float]:
        """(alpha, beta, gamma) in radians: angle(b, c), angle(a, c), angle(a, b)."""
        return geometry.lattice_angles(self._vectors)

    def volume(self) -> float:
        return geometry.signed_volume(self._vectors)

    def fractional_matrix(self) -> np.ndarray:
        return geometry.fractional_matrix(self._vectors)

    def rotate(self, rotation: np.ndarray) -> None:
        self._vectors = np.asarray(rotation, dtype=float) @ self._vectors

    def translate(self, vector) -> None:
        """Lattice vectors are directions; translation leaves them unchanged."""

    def copy(self) -> "LatticeVectors":
        return LatticeVectors(self._vectors)


def _tuple(values):
    return tuple(tuple(v) if isinstance(v, (list, tuple)) else v for v in values)


@dataclass(frozen=True)
class ModelSettings:
    """
    Settings shared by both dialects.

    ``cry_display``, ``periodic_type``, ``space_group`` and ``cry_tolerance``
    are written to MSI files; the k-point, constraint and external field
    entries only go into CELL files.
    """
    cry_display: Tuple[int, int] = (192, 256)
    periodic_type: int = 100
    space_group: str = "1 1"
    cry_tolerance: float = 0.05
    kpoints_list: Tuple[Tuple[float, float, float, float], ...] = ((0.0, 0.0, 0.0, 1.0),)
    kpoints_grid: Tuple[int, int, int] = (1, 1, 1)
    kpoints_mp_spacing: Optional[float] = None
    kpoints_mp_offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    fix_all_cell: bool = True
    fix_com: bool = False
    external_efield: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    external_pressure: Tuple[float, float, float, float, float, float] = (0.0,) * 6

    MSI_FIELDS = ("cry_display", "periodic_type", "space_group", "cry_tolerance")

    @classmethod
    def default_for(cls, dialect: Dialect) -> "ModelSettings":
        """Defaults for ``dialect`` from the ``msi`` or ``cell`` config section."""
        section = get_config(dialect.value, {}) or {}
        names = {f.name for f in fields(cls)}
        values = {}
        for key, value in section.items():
            if key not in names:
                continue
            values[key] = _tuple(value) if isinstance(value, (list, tuple)) else value
        return cls(**values)

    def msi_part(self) -> dict:
        return {name: getattr(self, name) for name in self.MSI_FIELDS}

    def with_updates(self, **changes) -> "ModelSettings":
        return replace(self, **changes)


@dataclass
class LatticeModel:
    """
    A structure in one dialect: optional lattice, atoms and settings.

    ``lattice`` is None for non-periodic structures.
    """
    lattice: Optional[LatticeVectors]
    atoms: AtomTable
    settings: ModelSettings = field(default_factory=ModelSettings)
    dialect: Dialect = Dialect.MSI

    @property
    def is_periodic(self) -> bool:
        return self.lattice is not None

    @property
    def num_atoms(self) -> int:
        return self.atoms.size

    def element_set(self):
        return self.atoms.element_set()

    def spin_total(self, element_table=None) -> int:
        """Sum of the element spins of every atom."""
        if element_table is None:
            from castep_model_core.models.elements import default_element_table
            element_table = default_element_table()
        return sum(element_table.spin(symbol) for symbol in self.atoms.element_symbols)

    def copy(self) -> "LatticeModel":
        return LatticeModel(
            lattice=None if self.lattice is None else self.lattice.copy(),
            atoms=self.atoms.copy(),
            settings=copy.copy(self.settings),
            dialect=self.dialect,
        )
