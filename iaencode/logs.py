from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
ROOT_LOGGER = "iaencode"


def get_logger(name: str = ROOT_LOGGER, log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """Return a logger with exactly one handler attached (stderr or ``log_file``)."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger


def configure_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """CLI logging: warnings only by default, INFO into a log file, DEBUG with ``verbose``."""
    if verbose:
        level = logging.DEBUG
    elif log_file is not None:
        level = logging.INFO
    else:
        level = logging.WARNING
    return get_logger(ROOT_LOGGER, log_file=log_file, level=level)
