"""
CASTEP .param file generation for geometry optimisation and band structure
tasks, using the keyword layout Materials Studio writes.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def _bool(value: bool) -> str:
    return "true" if value else "false"


class FiniteBasisCorr(IntEnum):
    NO = 0
    MANUAL = 1
    AUTO = 2


@dataclass
class DensityMixing:
    mixing_scheme: str = "Pulay"
    mix_charge_amp: float = 0.5
    mix_spin_amp: float = 2.0
    mix_charge_gmax: float = 1.5
    mix_spin_gmax: float = 1.5
    mix_history_length: int = 20

    def export(self) -> str:
        return (
            "metals_method : dm\n"
            f"mixing_scheme : {self.mixing_scheme}\n"
            f"mix_charge_amp :        {self.mix_charge_amp:18.15f}\n"
            f"mix_spin_amp :        {self.mix_spin_amp:18.15f}\n"
            f"mix_charge_gmax :        {self.mix_charge_gmax:18.15f}\n"
            f"mix_spin_gmax :        {self.mix_spin_gmax:18.15f}\n"
            f"mix_history_length :       {self.mix_history_length}"
        )


@dataclass
class EDFT:
    """Ensemble DFT electronic minimizer."""
    num_occ_cycles: int = 6

    def export(self) -> str:
        return f"metals_method : EDFT\nnum_occ_cycles : {self.num_occ_cycles}"


@dataclass
class GeomOptParam:
    geom_energy_tol: float = 5e-5
    geom_force_tol: float = 0.1
    geom_stress_tol: float = 0.2
    geom_disp_tol: float = 0.005
    geom_max_iter: int = 6000
    geom_method: str = "BFGS"
    fixed_npw: bool = False
    popn_bond_cutoff: float = 3.0

    task_name = "GeometryOptimization"

    def export(self) -> str:
        return (
            f"geom_energy_tol :   {self.geom_energy_tol:22.15e}\n"
            f"geom_force_tol :        {self.geom_force_tol:18.15f}\n"
            f"geom_stress_tol :        {self.geom_stress_tol:18.15f}\n"
            f"geom_disp_tol :        {self.geom_disp_tol:18.15f}\n"
            f"geom_max_iter :     {self.geom_max_iter}\n"
            f"geom_method : {self.geom_method}\n"
            f"fixed_npw : {_bool(self.fixed_npw)}\n"
            f"popn_bond_cutoff :        {self.popn_bond_cutoff:18.15f}"
        )


@dataclass
class BandStructureParam:
    bs_nextra_bands: int = 72
    bs_xc_functional: str = "PBE"
    bs_eigenvalue_tol: float = 1e-5
    bs_write_eigenvalues: bool = True

    task_name = "BandStructure"

    def export(self) -> str:
        return (
            f"bs_nextra_bands :       {self.bs_nextra_bands}\n"
            f"bs_xc_functional : {self.bs_xc_functional}\n"
            f"bs_eigenvalue_tol :   {self.bs_eigenvalue_tol:22.15e}\n"
            f"bs_write_eigenvalues : {_bool(self.bs_write_eigenvalues)}"
        )


@dataclass
class CastepParam:
    """
    Parameters of one CASTEP task.

    ``popn_calculate`` and ``calculate_hirshfeld`` default to True for
    geometry optimisation and False for band structure tasks.
    """
    task: Union[GeomOptParam, BandStructureParam] = field(default_factory=GeomOptParam)
    xc_functional: str = "PBE"
    spin_polarized: bool = True
    spin: int = 0
    opt_strategy: str = "Speed"
    page_wvfns: int = 0
    cut_off_energy: float = 0.0
    grid_scale: float = 1.5
    fine_grid_scale: float = 1.5
    finite_basis_corr: FiniteBasisCorr = FiniteBasisCorr.NO
    elec_energy_tol: float = 1e-5
    max_scf_cycles: int = 6000
    fix_occupancy: bool = False
    metals_method: Union[DensityMixing, EDFT] = field(default_factory=DensityMixing)
    perc_extra_bands: int = 72
    smearing_width: float = 0.1
    spin_fix: int = 6
    num_dump_cycles: int = 0
    calculate_elf: bool = False
    calculate_stress: bool = False
    popn_calculate: Optional[bool] = None
    calculate_hirshfeld: Optional[bool] = None
    calculate_densdiff: bool = False
    pdos_calculate_weights: bool = True

    def __post_init__(self):
        is_band_structure = isinstance(self.task, BandStructureParam)
        if self.popn_calculate is None:
            self.popn_calculate = not is_band_structure
        if self.calculate_hirshfeld is None:
            self.calculate_hirshfeld = not is_band_structure

    @property
    def task_name(self) -> str:
        return self.task.task_name

    def for_band_structure(self) -> "CastepParam":
        """Band structure parameters sharing spin, cut-off energy and metals method."""
        return CastepParam(
            task=BandStructureParam(),
            spin=self.spin,
            cut_off_energy=self.cut_off_energy,
            metals_method=copy.deepcopy(self.metals_method),
        )

    def export(self) -> str:
        return (
            f"task : {self.task_name}\n"
            "comment : CASTEP calculation from Materials Studio\n"
            f"xc_functional : {self.xc_functional}\n"
            f"spin_polarized : {_bool(self.spin_polarized)}\n"
            f"spin :        {self.spin}\n"
            f"opt_strategy : {self.opt_strategy}\n"
            f"page_wvfns :        {self.page_wvfns}\n"
            f"cut_off_energy :      {self.cut_off_energy:18.15f}\n"
            f"grid_scale :        {self.grid_scale:18.15f}\n"
            f"fine_grid_scale :        {self.fine_grid_scale:18.15f}\n"
            f"finite_basis_corr :        {int(self.finite_basis_corr)}\n"
            f"elec_energy_tol :   {self.elec_energy_tol:18.15e}\n"
            f"max_scf_cycles :     {self.max_scf_cycles}\n"
            f"fix_occupancy : {_bool(self.fix_occupancy)}\n"
            f"{self.metals_method.export()}\n"
            f"perc_extra_bands : {self.perc_extra_bands}\n"
            f"smearing_width :        {self.smearing_width:18.15f}\n"
            f"spin_fix :        {self.spin_fix}\n"
            f"num_dump_cycles : {self.num_dump_cycles}\n"
            f"{self.task.export()}\n"
            f"calculate_ELF : {_bool(self.calculate_elf)}\n"
            f"calculate_stress : {_bool(self.calculate_stress)}\n"
            f"popn_calculate : {_bool(self.popn_calculate)}\n"
            f"calculate_hirshfeld : {_bool(self.calculate_hirshfeld)}\n"
            f"calculate_densdiff : {_bool(self.calculate_densdiff)}\n"
            f"pdos_calculate_weights : {_bool(self.pdos_calculate_weights)}\n"
        )


METALS_METHODS = {
    "dm": DensityMixing,
    "edft": EDFT,
}


class CastepParamBuilder:
    """
    Builds a CastepParam once spin total, cut-off energy and metals method
    are all set.
    """

    REQUIRED = ("spin_total", "cut_off_energy", "metals_method")

    def __init__(self, task: Optional[Union[GeomOptParam, BandStructureParam]] = None):
        self.task = task if task is not None else GeomOptParam()
        self._values = {}

    def with_spin_total(self, spin_total: int) -> "CastepParamBuilder":
        self._values["spin_total"] = int(spin_total)
        return self

    def with_cut_off_energy(self, cut_off_energy: float) -> "CastepParamBuilder":
        self._values["cut_off_energy"] = float(cut_off_energy)
        return self

    def with_metals_method(self, metals_method: Union[str, DensityMixing, EDFT]) -> "CastepParamBuilder":
        if isinstance(metals_method, str):
            try:
                metals_method = METALS_METHODS[metals_method.lower()]()
            except KeyError:
                raise ValueError(f"Unknown metals method: {metals_method}") from None
        self._values["metals_method"] = metals_method
        return self

    def build(self) -> CastepParam:
        for name in self.REQUIRED:
            if name not in self._values:
                raise ValueError(f"Parameter '{name}' was never supplied")
        return CastepParam(
            task=self.task,
            spin=self._values["spin_total"],
            cut_off_energy=self._values["cut_off_energy"],
            metals_method=self._values["metals_method"],
        )


def save_param_file(param: CastepParam, output_path: Union[str, Path]) -> bool:
    """
    Save a .param file.

    Returns:
        bool: True if successful, False otherwise.
    """
    try:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            f.write(param.export())
    except OSError as e:
        logger.error(f"Error saving PARAM file: {e}")
        return False

    logger.info(f"PARAM file saved to {output_path}")
    return True
