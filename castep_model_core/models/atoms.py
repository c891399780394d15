"""
Structure-of-arrays atom table and its staged builder.
"""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence

import numpy as np

from castep_model_core.errors import (
    ColumnMismatchError,
    InvalidIndexError,
    MissingColumnError,
)

logger = logging.getLogger(__name__)

# Order in which a builder reports missing columns
COLUMN_ORDER = ("atomic_numbers", "element_symbols", "cartesian", "fractional", "atom_ids")

# Ids are stored as uint32
MAX_ATOM_ID = 2 ** 32 - 1


class Atom(NamedTuple):
    """A single row of an AtomTable."""
    symbol: str
    atomic_number: int
    xyz: np.ndarray
    fractional: Optional[np.ndarray]
    atom_id: int


def _as_coordinates(values) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.size == 0:
        return array.reshape(0, 3)
    if array.ndim != 2 or array.shape[1] != 3:
        raise ValueError(f"Coordinates must be an (N, 3) array, got shape {array.shape}")
    return array


def _as_optional_vector(value) -> Optional[np.ndarray]:
    if value is None:
        return None
    vector = np.asarray(value, dtype=float)
    if vector.shape != (3,):
        raise ValueError(f"Fractional coordinate must have 3 components, got shape {vector.shape}")
    return vector


class AtomTable:
    """
    Columns of per-atom data with one row per atom.

    All columns have the same length. This is checked once when the table
    is created; the ``update_*_at`` methods replace single entries and keep
    the length unchanged.
    """

    def __init__(self, element_symbols: Sequence[str], atomic_numbers: Sequence[int],
                 cartesian, fractional: Sequence[Optional[Iterable[float]]],
                 atom_ids: Sequence[int]):
        size = len(element_symbols)
        columns = {
            "atomic_numbers": atomic_numbers,
            "cartesian": cartesian,
            "fractional": fractional,
            "atom_ids": atom_ids,
        }
        for name, column in columns.items():
            if len(column) != size:
                raise ColumnMismatchError(name, len(column), size)

        self._element_symbols: List[str] = [str(symbol) for symbol in element_symbols]
        self._atomic_numbers = np.asarray(atomic_numbers, dtype=np.uint8).reshape(size)
        self._cartesian = _as_coordinates(cartesian).copy()
        self._fractional: List[Optional[np.ndarray]] = [_as_optional_vector(f) for f in fractional]
        self._atom_ids = np.asarray(atom_ids, dtype=np.uint32).reshape(size)
        self._id_index: Optional[Dict[int, int]] = None

    def __len__(self) -> int:
        return len(self._element_symbols)

    def __repr__(self) -> str:
        return f"AtomTable(size={self.size}, elements={self.element_set()})"

    @property
    def size(self) -> int:
        return len(self)

    @property
    def element_symbols(self) -> List[str]:
        return list(self._element_symbols)

    @property
    def atomic_numbers(self) -> np.ndarray:
        return self._atomic_numbers

    @property
    def cartesian(self) -> np.ndarray:
        return self._cartesian

    @property
    def fractional(self) -> List[Optional[np.ndarray]]:
        return list(self._fractional)

    @property
    def atom_ids(self) -> np.ndarray:
        return self._atom_ids

    @property
    def has_fractional(self) -> bool:
        """True when every row carries a fractional coordinate."""
        return all(f is not None for f in self._fractional)

    def fractional_array(self) -> np.ndarray:
        """Fractional coordinates as an (N, 3) array. Missing rows raise ValueError."""
        if not self.has_fractional:
            raise ValueError("Fractional coordinates have not been computed for every atom")
        if not self._fractional:
            return np.empty((0, 3))
        return np.vstack(self._fractional)

    def _check_index(self, index: int) -> None:
        if not isinstance(index, (int, np.integer)) or not 0 <= index < self.size:
            raise InvalidIndexError(index, self.size)

    def view_atom_at(self, index: int) -> Atom:
        self._check_index(index)
        fractional = self._fractional[index]
        return Atom(
            symbol=self._element_symbols[index],
            atomic_number=int(self._atomic_numbers[index]),
            xyz=self._cartesian[index].copy(),
            fractional=None if fractional is None else fractional.copy(),
            atom_id=int(self._atom_ids[index]),
        )

    def update_symbol_at(self, index: int, symbol: str) -> None:
        self._check_index(index)
        self._element_symbols[index] = symbol

    def update_atomic_number_at(self, index: int, atomic_number: int) -> None:
        self._check_index(index)
        self._atomic_numbers[index] = atomic_number

    def update_xyz_at(self, index: int, xyz) -> None:
        self._check_index(index)
        self._cartesian[index] = np.asarray(xyz, dtype=float)

    def update_fractional_at(self, index: int, fractional) -> None:
        self._check_index(index)
        self._fractional[index] = _as_optional_vector(fractional)

    def update_id_at(self, index: int, atom_id: int) -> None:
        self._check_index(index)
        self._atom_ids[index] = atom_id
        self._id_index = None

    def set_fractional(self, fractional) -> None:
        """Replace the whole fractional column with an (N, 3) array, or clear it with None."""
        if fractional is None:
            self._fractional = [None] * self.size
            return
        array = _as_coordinates(fractional)
        if len(array) != self.size:
            raise ColumnMismatchError("fractional", len(array), self.size)
        self._fractional = [row.copy() for row in array]

    def _row_index(self) -> Dict[int, int]:
        if self._id_index is None:
            index = {}
            for row, atom_id in enumerate(self._atom_ids.tolist()):
                if atom_id in index:
                    logger.warning(f"Duplicate atom id {atom_id}; lookups resolve to row {index[atom_id]}")
                    continue
                index[atom_id] = row
            self._id_index = index
        return self._id_index

    def row_of_id(self, atom_id: int) -> int:
        """Row holding ``atom_id``. Unknown ids raise InvalidIndexError."""
        try:
            return self._row_index()[int(atom_id)]
        except KeyError:
            raise InvalidIndexError(atom_id, self.size, kind="id") from None

    def xyz_by_id(self, atom_id: int) -> np.ndarray:
        return self._cartesian[self.row_of_id(atom_id)].copy()

    def multiple_xyz_by_id(self, atom_ids: Iterable[int]) -> np.ndarray:
        rows = [self.row_of_id(atom_id) for atom_id in atom_ids]
        return self._cartesian[rows].copy().reshape(len(rows), 3)

    def element_set(self) -> List[str]:
        """Distinct symbols ordered by atomic number, ties by first occurrence."""
        seen = {}
        for symbol, number in zip(self._element_symbols, self._atomic_numbers.tolist()):
            if symbol not in seen:
                seen[symbol] = number
        return sorted(seen, key=lambda symbol: seen[symbol])

    def rotate(self, rotation: np.ndarray) -> None:
        """Rotate every cartesian position by the 3x3 matrix ``rotation``."""
        self._cartesian = self._cartesian @ np.asarray(rotation, dtype=float).T

    def translate(self, vector) -> None:
        self._cartesian = self._cartesian + np.asarray(vector, dtype=float)

    def take(self, order: Sequence[int]) -> "AtomTable":
        """New table with rows in ``order``."""
        order = list(order)
        return AtomTable(
            [self._element_symbols[i] for i in order],
            self._atomic_numbers[order],
            self._cartesian[order].reshape(len(order), 3),
            [self._fractional[i] for i in order],
            self._atom_ids[order],
        )

    def sorted_by_atomic_number(self) -> "AtomTable":
        return self.take(np.argsort(self._atomic_numbers, kind="stable").tolist())

    def sorted_by_id(self) -> "AtomTable":
        return self.take(np.argsort(self._atom_ids, kind="stable").tolist())

    def max_id(self) -> int:
        return int(self._atom_ids.max()) if self.size else 0

    def merged(self, other: "AtomTable") -> "AtomTable":
        """
        Concatenate ``other`` after this table.

        Every id of ``other`` is shifted by this table's maximum id so no id
        collides.

        Raises:
            InvalidIndexError: A shifted id does not fit in 32 bits.
        """
        shift = self.max_id()
        shifted_ids = other.atom_ids.astype(np.int64) + shift
        if shifted_ids.size and int(shifted_ids.max()) > MAX_ATOM_ID:
            raise InvalidIndexError(int(shifted_ids.max()), self.size + other.size, kind="id")
        return AtomTable(
            self._element_symbols + other.element_symbols,
            np.concatenate([self._atomic_numbers, other.atomic_numbers]),
            np.vstack([self._cartesian, other.cartesian]),
            self._fractional + other.fractional,
            np.concatenate([self._atom_ids.astype(np.int64), shifted_ids]),
        )

    def copy(self) -> "AtomTable":
        return self.take(range(self.size))


class AtomTableBuilder:
    """
    Staged construction of an AtomTable.

    The atom count is fixed first. Each column is checked against it when
    supplied, and ``build()`` refuses to run until every column is present.

    Example:
        >>> table = (AtomTableBuilder(1)
        ...          .with_element_symbols(["C"])
        ...          .with_atomic_numbers([6])
        ...          .with_cartesian([[0.0, 0.0, 0.0]])
        ...          .with_fractional([None])
        ...          .with_atom_ids([1])
        ...          .build())
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Atom count must be non-negative, got {size}")
        self.size = size
        self._columns: Dict[str, object] = {}

    def _supply(self, column: str, values, length: int) -> "AtomTableBuilder":
        if length != self.size:
            raise ColumnMismatchError(column, length, self.size)
        self._columns[column] = values
        return self

    def with_element_symbols(self, symbols: Sequence[str]) -> "AtomTableBuilder":
        symbols = list(symbols)
        return self._supply("element_symbols", symbols, len(symbols))

    def with_atomic_numbers(self, numbers: Sequence[int]) -> "AtomTableBuilder":
        numbers = list(numbers)
        return self._supply("atomic_numbers", numbers, len(numbers))

    def with_cartesian(self, coordinates) -> "AtomTableBuilder":
        array = _as_coordinates(coordinates)
        return self._supply("cartesian", array, len(array))

    def with_fractional(self, coordinates: Sequence[Optional[Iterable[float]]]) -> "AtomTableBuilder":
        coordinates = list(coordinates)
        return self._supply("fractional", coordinates, len(coordinates))

    def with_atom_ids(self, atom_ids: Sequence[int]) -> "AtomTableBuilder":
        atom_ids = list(atom_ids)
        return self._supply("atom_ids", atom_ids, len(atom_ids))

    @property
    def missing_columns(self) -> List[str]:
        return [column for column in COLUMN_ORDER if column not in self._columns]

    def build(self) -> AtomTable:
        missing = self.missing_columns
        if missing:
            raise MissingColumnError(missing[0])
        return AtomTable(
            self._columns["element_symbols"],
            self._columns["atomic_numbers"],
            self._columns["cartesian"],
            self._columns["fractional"],
            self._columns["atom_ids"],
        )
