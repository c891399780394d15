"""
Seed folder generation for CASTEP jobs started from Materials Studio.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Union

from castep_model_core.castep.aux_files import build_kptaux, build_trjaux
from castep_model_core.castep.cell import export_cell, export_cell_band_structure
from castep_model_core.castep.param import CastepParam, CastepParamBuilder, DensityMixing, EDFT
from castep_model_core.config import get_config
from castep_model_core.converter import cell_to_msi
from castep_model_core.errors import CastepModelError, DialectError
from castep_model_core.file_processing.msi import export_msi
from castep_model_core.models import Dialect, ElementTable, LatticeModel, default_element_table

logger = logging.getLogger(__name__)


class SeedWriter:
    """
    Writes the files of one CASTEP seed into ``<export_dir>/<seed>_opt``.

    Geometry optimisation: ``.param``, ``.cell``, ``.kptaux``, ``.trjaux``
    and ``.msi``. Band structure: ``_DOS.param``, ``_DOS.cell`` and
    ``_DOS.kptaux``.
    """

    def __init__(self, cell_model: LatticeModel, seed_name: str, export_dir: Union[str, Path],
                 potentials_dir: Optional[Union[str, Path]] = None,
                 cut_off_energy: Optional[float] = None,
                 metals_method: Optional[Union[str, DensityMixing, EDFT]] = None,
                 element_table: Optional[ElementTable] = None):
        """
        Initialize the seed writer.

        Args:
            cell_model (LatticeModel): Model in the CELL dialect.
            seed_name (str): Seed name, used as the file stem.
            export_dir (str or Path): Parent directory of the seed folder.
            potentials_dir (str or Path, optional): Directory holding the
                potential files. Defaults to ``castep.potentials_dir``.
            cut_off_energy (float, optional): Plane wave cut-off in eV.
                Defaults to ``castep.cut_off_energy``.
            metals_method (optional): ``"dm"``, ``"edft"`` or a metals method
                object. Defaults to ``castep.metals_method``.
            element_table (ElementTable, optional): Element property lookup.
        """
        if cell_model.dialect is not Dialect.CELL:
            raise DialectError("SeedWriter needs a CELL model; convert with msi_to_cell first")
        self.cell_model = cell_model
        self.seed_name = seed_name
        self.export_dir = Path(export_dir)

        potentials_dir = potentials_dir or get_config("castep.potentials_dir")
        self.potentials_dir = Path(potentials_dir) if potentials_dir else None
        self.cut_off_energy = float(cut_off_energy if cut_off_energy is not None
                                    else get_config("castep.cut_off_energy", 0.0))
        self.metals_method = metals_method or get_config("castep.metals_method", "dm")
        self.element_table = element_table or default_element_table()

    @property
    def seed_dir(self) -> Path:
        return self.export_dir / f"{self.seed_name}_opt"

    def create_export_dir(self) -> Path:
        self.seed_dir.mkdir(parents=True, exist_ok=True)
        return self.seed_dir

    def path_for(self, suffix: str) -> Path:
        """Path of ``<seed><suffix>`` inside the seed folder."""
        return self.create_export_dir() / f"{self.seed_name}{suffix}"

    def build_param(self) -> CastepParam:
        return (
            CastepParamBuilder()
            .with_spin_total(self.cell_model.spin_total(self.element_table))
            .with_cut_off_energy(self.cut_off_energy)
            .with_metals_method(self.metals_method)
            .build()
        )

    def _write(self, suffix: str, content: str) -> Path:
        path = self.path_for(suffix)
        with open(path, 'w') as f:
            f.write(content)
        logger.debug(f"Wrote {path}")
        return path

    def write_seed_files(self) -> List[Path]:
        """Write the geometry optimisation files."""
        param = self.build_param()
        return [
            self._write(".param", param.export()),
            self._write(".cell", export_cell(self.cell_model, self.element_table)),
            self._write(".kptaux", build_kptaux(self.cell_model).export()),
            self._write(".trjaux", build_trjaux(self.cell_model).export()),
            self._write(".msi", export_msi(cell_to_msi(self.cell_model))),
        ]

    def write_band_structure_files(self) -> List[Path]:
        """Write the band structure (``_DOS``) files."""
        param = self.build_param().for_band_structure()
        return [
            self._write("_DOS.param", param.export()),
            self._write("_DOS.cell", export_cell_band_structure(self.cell_model, self.element_table)),
            self._write("_DOS.kptaux", build_kptaux(self.cell_model).export()),
        ]

    def copy_potentials(self) -> List[Path]:
        """
        Copy the potential file of every element into the seed folder.

        Files already present are left alone.

        Raises:
            FileNotFoundError: A potential file is missing from ``potentials_dir``.
        """
        if self.potentials_dir is None:
            logger.warning("No potentials directory configured; skipping potential copy")
            return []

        copied = []
        dest_dir = self.create_export_dir()
        for symbol in self.cell_model.element_set():
            pot_file = self.element_table.potential(symbol)
            destination = dest_dir / pot_file
            if destination.exists():
                continue
            source = self.potentials_dir / pot_file
            if not source.is_file():
                raise FileNotFoundError(f"Potential file not found: {source}")
            shutil.copyfile(source, destination)
            copied.append(destination)
        logger.info(f"Copied {len(copied)} potential files to {dest_dir}")
        return copied

    def write_all(self, band_structure: bool = True, copy_potentials: bool = True) -> Optional[Path]:
        """
        Write every seed file and copy potentials.

        Returns:
            Path or None: The seed folder, or None if writing failed.
        """
        try:
            self.write_seed_files()
            if band_structure:
                self.write_band_structure_files()
            if copy_potentials:
                self.copy_potentials()
        except (CastepModelError, OSError) as e:
            logger.error(f"Error writing seed {self.seed_name}: {e}")
            return None

        logger.info(f"CASTEP seed files saved to {self.seed_dir}")
        return self.seed_dir
