"""Logging setup for applications embedding spatab.

The library itself only creates module loggers; handlers are installed by
the embedding application through configure_logging().
"""

import logging
from pathlib import Path
from typing import Optional

from spatab.schemas import InternalConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(config: InternalConfig, log_file: Optional[Path | str] = None) -> logging.Logger:
    """Install console (and optional file) handlers on the ``spatab`` logger.

    Parameters
    ----------
    config : InternalConfig
        Resolved configuration; ``config.logging.level`` sets the level.
    log_file : Path or str, optional
        If given, log records are also appended to this file.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    log_level = getattr(logging, config.logging.level, logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger("spatab")
    package_logger.setLevel(log_level)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    package_logger.addHandler(ch)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        package_logger.addHandler(fh)

    logger.info("Logging: level=%s, file=%s", config.logging.level, log_file)
    return package_logger
