"""
File processing module: MSI parsing and serialization.
"""

from castep_model_core.file_processing.msi_parser import parse_msi, MsiStateMachine, ParserState
from castep_model_core.file_processing.msi import (
    load_msi,
    parse_msi_file,
    export_msi,
    save_msi_file,
    write_msi_to_xsd_script,
)

__all__ = [
    'parse_msi',
    'MsiStateMachine',
    'ParserState',
    'load_msi',
    'parse_msi_file',
    'export_msi',
    'save_msi_file',
    'write_msi_to_xsd_script',
]
