"""Process-wide logging setup: console plus a daily log file."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_DIR = Path("logs")


def log_file_path(log_dir: Path, now: datetime | None = None) -> Path:
    """Daily log file, e.g. ``logs/veeam-monitor-2024-01-31.log``."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d")
    return log_dir / f"veeam-monitor-{stamp}.log"


def setup_logging(log_dir: Path | None = DEFAULT_LOG_DIR, level: int = logging.INFO) -> logging.Logger:
    """Configure the root logger and return the application logger.

    When the log directory or file cannot be created, logging continues on
    the console only.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    file_error: OSError | None = None

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file_path(log_dir), encoding="utf-8"))
        except OSError as e:
            file_error = e

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger("veeam_monitor")
    if file_error is not None:
        logger.warning("Error setting up logging: %s. Will log to console only.", file_error)
    return logger
