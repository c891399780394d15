# castep_model_core/utils/logging.py
import logging
import sys
from typing import Optional

# Configure logging only once
_logger_configured = False

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the logging system based on the configuration settings.

    Args:
        level: Log level name overriding ``logging.level`` from the configuration.
    """
    global _logger_configured

    if _logger_configured:
        return

    from castep_model_core.config import get_config

    log_level = level or get_config("logging.level", "INFO")
    console_logging = get_config("logging.console", True)

    # Convert string log level to actual level
    numeric_level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if console_logging:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _logger_configured = True

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging system configured at level {str(log_level).upper()}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (typically the module name)

    Returns:
        A configured logger instance
    """
    configure_logging()
    return logging.getLogger(name)
