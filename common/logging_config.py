"""
Logging Configuration.

This module provides the shared logger factory for the survey geodesy
packages. Lenient input handling (clamped latitudes, defaulted elevations,
accessor-style records that fail to resolve) and transformation failures
are reported through these loggers rather than raised.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


# Configure root logger for the package
def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Get a logger configured for the survey geodesy system.

    Parameters
    ----------
    name : str
        Logger name (typically __name__).
    level : int, optional
        Logging level. When omitted the logger keeps its current level,
        or INFO for a freshly configured logger.

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        if level is None:
            level = logging.INFO

    if level is not None:
        logger.setLevel(level)
    return logger


def set_package_level(level: int, packages: tuple = ("common", "geosurvey")) -> None:
    """Set the level of every already-configured logger under `packages`."""
    manager = logging.Logger.manager
    for name, logger in list(manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if any(name == pkg or name.startswith(pkg + ".") for pkg in packages):
            logger.setLevel(level)
