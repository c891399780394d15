# castep_model_core/utils/__init__.py
"""
Utility modules for castep_model_core.

This package provides logging setup and structure-file validation helpers.
"""
from castep_model_core.utils.logging import get_logger, configure_logging
from castep_model_core.utils.validation import validate_structure

__all__ = [
    'get_logger',
    'configure_logging',
    'validate_structure'
]
