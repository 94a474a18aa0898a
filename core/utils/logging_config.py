"""
Logging setup shared by service entry points

Console handler at the configured level plus a rotating error log.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: str = "INFO",
    log_dir: str | None = "data/logs",
    error_log_name: str = "kline_engine_errors.log",
) -> None:
    """
    Configure root logging

    Args:
        level: Console log level name (DEBUG, INFO, ...)
        log_dir: Directory for the rotating error log; None disables it
        error_log_name: File name of the error log
    """
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level.upper())
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers: list[logging.Handler] = [console]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        error_file = RotatingFileHandler(
            os.path.join(log_dir, error_log_name),
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
        )
        error_file.setLevel(logging.ERROR)
        error_file.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(error_file)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)
