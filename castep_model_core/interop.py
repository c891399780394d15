"""
Conversion between lattice models and ASE ``Atoms`` objects.
"""

import logging

import numpy as np
from ase import Atoms

from castep_model_core.models import AtomTableBuilder, Dialect, LatticeModel, LatticeVectors, ModelSettings

logger = logging.getLogger(__name__)


def to_ase_atoms(model: LatticeModel) -> Atoms:
    """
    Build an ASE ``Atoms`` object from a model.

    Atomic numbers (not symbols) are passed to ASE so symbols in any case
    work. Periodic models get the lattice as cell rows and full periodicity.
    """
    atoms = model.atoms
    if model.lattice is None:
        return Atoms(numbers=atoms.atomic_numbers.astype(int), positions=atoms.cartesian)
    return Atoms(
        numbers=atoms.atomic_numbers.astype(int),
        positions=atoms.cartesian,
        cell=model.lattice.vectors.T,
        pbc=True,
    )


def from_ase_atoms(ase_atoms: Atoms) -> LatticeModel:
    """
    Build an MSI model from an ASE ``Atoms`` object.

    Atom ids are assigned 1..N in ASE order. A cell is kept only when all
    three cell vectors are non-zero.
    """
    size = len(ase_atoms)
    table = (
        AtomTableBuilder(size)
        .with_element_symbols(ase_atoms.get_chemical_symbols())
        .with_atomic_numbers(ase_atoms.get_atomic_numbers().tolist())
        .with_cartesian(ase_atoms.get_positions())
        .with_fractional([None] * size)
        .with_atom_ids(range(1, size + 1))
        .build()
    )

    cell = np.asarray(ase_atoms.get_cell())
    lattice = None
    if np.all(np.linalg.norm(cell, axis=1) > 0):
        lattice = LatticeVectors(cell.T)
    else:
        logger.debug("ASE Atoms object has no full cell; creating a non-periodic model")

    return LatticeModel(
        lattice=lattice,
        atoms=table,
        settings=ModelSettings.default_for(Dialect.MSI),
        dialect=Dialect.MSI,
    )
