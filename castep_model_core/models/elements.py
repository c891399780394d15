"""
Element property lookup used by the CELL and param writers.

Masses and atomic numbers come from ``periodictable``. The CASTEP-specific
values (potential file name, initial spin, LCAO state count) come from the
``elements`` section of the configuration.
"""

import logging
from typing import Dict, NamedTuple, Optional

import periodictable as pt

from castep_model_core.config import get_config
from castep_model_core.errors import UnknownElementError

logger = logging.getLogger(__name__)

# Atomic number ranges of the d- and f-blocks
_D_BLOCK = [(21, 30), (39, 48), (72, 80), (104, 112)]
_F_BLOCK = [(57, 71), (89, 103)]
_P_BLOCK = [(5, 10), (13, 18), (31, 36), (49, 54), (81, 86), (113, 118)]


class ElementProperties(NamedTuple):
    symbol: str
    atomic_number: int
    mass: float
    potential: str
    spin: int
    lcao: int


def standardize_symbol(symbol: str) -> str:
    symbol = symbol.strip()
    return symbol[0].upper() + symbol[1:].lower() if len(symbol) > 1 else symbol.upper()


def valence_lcao_states(atomic_number: int) -> int:
    """Number of LCAO angular momentum channels from the valence block: s=1, p=2, d=3, f=4."""
    if any(lo <= atomic_number <= hi for lo, hi in _F_BLOCK):
        return 4
    if any(lo <= atomic_number <= hi for lo, hi in _D_BLOCK):
        return 3
    if any(lo <= atomic_number <= hi for lo, hi in _P_BLOCK):
        return 2
    return 1


class ElementTable:
    """
    Lookup of element properties by symbol, case-insensitive.

    Args:
        potential_suffix: Suffix appended to the symbol to form the default
            potential file name (``_00.usp`` gives ``O_00.usp``).
        potentials: Per-element potential file overrides.
        spins: Per-element initial spin. Elements not listed have spin 0.
        lcao_states: Per-element LCAO state overrides.
    """

    def __init__(self, potential_suffix: Optional[str] = None,
                 potentials: Optional[Dict[str, str]] = None,
                 spins: Optional[Dict[str, int]] = None,
                 lcao_states: Optional[Dict[str, int]] = None):
        self.potential_suffix = potential_suffix or get_config("elements.potential_suffix", "_00.usp")
        self.potentials = self._normalize(potentials if potentials is not None
                                          else get_config("elements.potentials", {}))
        self.spins = self._normalize(spins if spins is not None else get_config("elements.spins", {}))
        self.lcao_states = self._normalize(lcao_states if lcao_states is not None
                                           else get_config("elements.lcao_states", {}))
        self._cache: Dict[str, ElementProperties] = {}

    @staticmethod
    def _normalize(mapping) -> dict:
        return {standardize_symbol(str(k)): v for k, v in (mapping or {}).items()}

    def lookup(self, symbol: str) -> ElementProperties:
        key = standardize_symbol(symbol)
        if key in self._cache:
            return self._cache[key]

        try:
            element = pt.elements.symbol(key)
        except ValueError:
            raise UnknownElementError(symbol) from None

        properties = ElementProperties(
            symbol=element.symbol,
            atomic_number=element.number,
            mass=float(element.mass),
            potential=self.potentials.get(key, f"{element.symbol}{self.potential_suffix}"),
            spin=int(self.spins.get(key, 0)),
            lcao=int(self.lcao_states.get(key, valence_lcao_states(element.number))),
        )
        self._cache[key] = properties
        return properties

    def mass(self, symbol: str) -> float:
        return self.lookup(symbol).mass

    def atomic_number(self, symbol: str) -> int:
        return self.lookup(symbol).atomic_number

    def potential(self, symbol: str) -> str:
        return self.lookup(symbol).potential

    def spin(self, symbol: str) -> int:
        return self.lookup(symbol).spin

    def lcao(self, symbol: str) -> int:
        return self.lookup(symbol).lcao


_default_table: Optional[ElementTable] = None


def default_element_table() -> ElementTable:
    """Shared ElementTable built from the active configuration."""
    global _default_table
    if _default_table is None:
        _default_table = ElementTable()
    return _default_table
