"""
CASTEP input generation: .cell and .param files, Materials Studio auxiliary
files and seed folders.
"""

from castep_model_core.castep.cell import (
    build_cell_input,
    export_cell,
    export_cell_band_structure,
    save_cell_file,
)
from castep_model_core.castep.param import (
    BandStructureParam,
    CastepParam,
    CastepParamBuilder,
    DensityMixing,
    EDFT,
    GeomOptParam,
    save_param_file,
)
from castep_model_core.castep.aux_files import KptAux, TrjAux, build_kptaux, build_trjaux
from castep_model_core.castep.seed import SeedWriter

__all__ = [
    'build_cell_input',
    'export_cell',
    'export_cell_band_structure',
    'save_cell_file',
    'BandStructureParam',
    'CastepParam',
    'CastepParamBuilder',
    'DensityMixing',
    'EDFT',
    'GeomOptParam',
    'save_param_file',
    'KptAux',
    'TrjAux',
    'build_kptaux',
    'build_trjaux',
    'SeedWriter',
]
