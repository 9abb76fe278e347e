# makeitso/logging_utils.py

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Union

LOGGER_NAME = "makeitso"
LOG_FILE_NAME = "makeitso.log"


def setup_logger(log_dir: Union[str, Path, None] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure the package logger: console output plus a rotating file in
    ``log_dir`` (when given). Safe to call again; handlers are replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if logger.hasHandlers():
        logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(
        fmt="{asctime} | {levelname:<8} | {name} - {message}",
        datefmt="%H:%M:%S",
        style="{",
    ))
    logger.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        # 1 MB x 5
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME, maxBytes=1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(
            fmt="{asctime} | {levelname} | {name}:{funcName}:{lineno} - {message}",
            datefmt="%Y-%m-%d %H:%M:%S",
            style="{",
        ))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
