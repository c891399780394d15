"""
In-memory structure model: atom table, lattice vectors, settings and
element properties.
"""

from castep_model_core.models.atoms import Atom, AtomTable, AtomTableBuilder
from castep_model_core.models.lattice import Dialect, LatticeModel, LatticeVectors, ModelSettings
from castep_model_core.models.elements import ElementProperties, ElementTable, default_element_table

__all__ = [
    'Atom',
    'AtomTable',
    'AtomTableBuilder',
    'Dialect',
    'LatticeModel',
    'LatticeVectors',
    'ModelSettings',
    'ElementProperties',
    'ElementTable',
    'default_element_table',
]
