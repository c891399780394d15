# castep_model_core/utils/validation.py
from pathlib import Path
from typing import Tuple, Union

from castep_model_core.utils.logging import get_logger

logger = get_logger(__name__)

MSI_HEADER = "# MSI CERIUS2 DataModel File Version"
MODEL_MARKER = "(1 Model"
MAX_FILE_SIZE_MB = 50


def validate_structure(file_path: Union[str, Path]) -> Tuple[bool, str]:
    """
    Validate an MSI structure file or a directory of MSI files.

    Args:
        file_path: Path to the structure file or directory

    Returns:
        Tuple containing:
            - Boolean indicating whether the file/directory is valid
            - Content of the file if valid, directory path if a valid directory, or error message if invalid
    """
    file_path = Path(file_path).expanduser().resolve()

    if not file_path.exists():
        logger.error(f"Path does not exist: {file_path}")
        return False, "Path does not exist."

    if file_path.is_dir():
        msi_files = sorted(file_path.glob("*.msi"))
        if msi_files:
            logger.info(f"Found {len(msi_files)} MSI files in {file_path}")
            return True, str(file_path)
        logger.error(f"No MSI files found in directory: {file_path}")
        return False, "No MSI files found in directory."

    file_size_mb = file_path.stat().st_size / (1024 * 1024)
    if file_size_mb > MAX_FILE_SIZE_MB:
        logger.error(f"File too large: {file_path} ({file_size_mb:.2f} MB > {MAX_FILE_SIZE_MB} MB)")
        return False, f"File is too large ({file_size_mb:.2f} MB). Maximum size is {MAX_FILE_SIZE_MB} MB."

    if file_path.suffix.lower() != '.msi':
        logger.error(f"Invalid file extension: {file_path}")
        return False, "Invalid file extension. Expected: .msi"

    try:
        with open(file_path, 'r', newline='') as f:
            content = f.read()
    except UnicodeDecodeError:
        logger.error(f"File is not a text file: {file_path}")
        return False, "File is not a text file. Only ASCII/UTF-8 files are supported."
    except OSError as e:
        logger.error(f"Error reading file {file_path}: {str(e)}")
        return False, f"Error reading file: {str(e)}"

    if not content.strip():
        logger.error(f"File is empty: {file_path}")
        return False, "File is empty."

    return validate_msi_format(content, file_path)


def validate_msi_format(content: str, file_path: Union[str, Path] = "<text>") -> Tuple[bool, str]:
    """
    Check that text looks like an MSI document: a header line and a model scope.

    Returns:
        (is_valid, content_or_error_message)
    """
    if not content.lstrip().startswith(MSI_HEADER):
        logger.warning(f"Missing MSI header in {file_path}")
    if MODEL_MARKER not in content:
        logger.error(f"No model scope '{MODEL_MARKER}' found in {file_path}")
        return False, f"No model scope '{MODEL_MARKER}' found."
    return True, content
