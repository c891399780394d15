import numpy as np
import pytest

from castep_model_core.models import AtomTableBuilder, Dialect, LatticeModel, LatticeVectors, ModelSettings


CUBIC_MSI = """# MSI CERIUS2 DataModel File Version 4 0
(1 Model
  (A I CRY/DISPLAY (192 256))
  (A I PeriodicType 100)
  (A C SpaceGroup "1 1")
  (A D A3 (10 0 0))
  (A D B3 (0 10 0))
  (A D C3 (0 0 10))
  (A D CRY/TOLERANCE 0.05)
  (2 Atom
    (A C ACL "6 C")
    (A C Label "C")
    (A D XYZ (5 5 5))
    (A I Id 1)
  )
)
"""

# Attributes, atoms and bonds interleaved; oxygen listed before carbon
MIXED_MSI = """# MSI CERIUS2 DataModel File Version 4 0
(1 Model
  (2 Atom
    (A C ACL "8 O")
    (A D XYZ (1.2 0 0))
    (A I Id 2)
  )
  (A D A3 (6.5 0 0))
  (4 Bond
    (A O Atom1 2)
    (A O Atom2 3)
  )
  (3 Atom
    (A C ACL "6 C")
    (A C Label "C1")
    (A F Charge -0.25)
    (A D XYZ (.5 -2.865153883599e-05 1.))
    (A I Id 1)
  )
  (A D B3 (0 6.5 0))
  (A I PeriodicType 100)
  (A D C3 (0 0 6.5))
  (A C SpaceGroup "1 1")
  (A D CRY/TOLERANCE 0.05)
)
"""

MOLECULE_MSI = """# MSI CERIUS2 DataModel File Version 4 0
(1 Model
  (2 Atom
    (A C ACL "1 H")
    (A D XYZ (0 0 0))
    (A I Id 1)
  )
  (3 Atom
    (A C ACL "1 H")
    (A D XYZ (0.74 0 0))
    (A I Id 2)
  )
)
"""


def make_model(symbols, numbers, cartesian, atom_ids, lattice=None, dialect=Dialect.MSI) -> LatticeModel:
    size = len(symbols)
    table = (
        AtomTableBuilder(size)
        .with_element_symbols(symbols)
        .with_atomic_numbers(numbers)
        .with_cartesian(np.asarray(cartesian, dtype=float).reshape(size, 3))
        .with_fractional([None] * size)
        .with_atom_ids(atom_ids)
        .build()
    )
    lattice_vectors = None if lattice is None else LatticeVectors(np.asarray(lattice, dtype=float).T)
    return LatticeModel(
        lattice=lattice_vectors,
        atoms=table,
        settings=ModelSettings.default_for(dialect),
        dialect=dialect,
    )


@pytest.fixture
def cubic_msi_text() -> str:
    return CUBIC_MSI


@pytest.fixture
def mixed_msi_text() -> str:
    return MIXED_MSI


@pytest.fixture
def molecule_msi_text() -> str:
    return MOLECULE_MSI


@pytest.fixture
def triclinic_model() -> LatticeModel:
    # Rows are a, b, c; neither a nor b is axis-aligned
    lattice = [
        [4.0, 1.0, 0.5],
        [0.8, 5.0, 1.2],
        [0.3, -0.7, 6.0],
    ]
    cartesian = [
        [0.0, 0.0, 0.0],
        [1.5, 2.0, 3.0],
        [3.1, 0.4, 4.2],
        [2.2, 4.4, 1.1],
    ]
    return make_model(["Ti", "O", "O", "Al"], [22, 8, 8, 13], cartesian, [1, 2, 3, 4], lattice=lattice)
