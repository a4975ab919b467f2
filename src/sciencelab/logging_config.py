"""
Logging Configuration
Sets up the global logger for the application.

The 'sciencelab' namespace gets the console (and optional file) handlers.
Third-party loaders that log every parsed file or HTTP connection are held at
WARNING unless the application itself runs at DEBUG.
"""
import logging
import sys
from typing import Mapping, Optional

# Libraries used while loading models; chatty at INFO
QUIET_LOGGERS = ("trimesh", "urllib3", "PIL")

# Resize events arrive per pixel while dragging; keep their debug lines out unless asked for
DEFAULT_MODULE_LEVELS = {
    "sciencelab.controller.scene_host": logging.INFO,
}


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    module_levels: Optional[Mapping[str, int]] = None,
) -> logging.Logger:
    """
    Configures the root logger for the 'sciencelab' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        module_levels: Extra per-logger levels, merged over DEFAULT_MODULE_LEVELS.

    Returns:
        The 'sciencelab' logger.
    """
    logger = logging.getLogger("sciencelab")
    logger.setLevel(level)

    # Avoid duplicate handlers when the window is re-created
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    levels = dict(DEFAULT_MODULE_LEVELS)
    levels.update(module_levels or {})
    for name, module_level in levels.items():
        logging.getLogger(name).setLevel(module_level)

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger.info("Logging initialized.")
    return logger
