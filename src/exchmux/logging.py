from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] [%(name)s] %(message)s"


def configure_logging(log_dir: Path | None = None, level: str | None = None) -> None:
    """Configure console logging and, with ``log_dir``, a rotating log file.

    The level comes from ``level`` or ``EXCHMUX_LOG_LEVEL`` (default INFO).
    Thread names are logged since orders complete on runtime worker threads.
    """
    level_name = (level or os.environ.get("EXCHMUX_LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # 10MB per file, 5 backups
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "exchmux.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # aiohttp logs every connection at DEBUG
    logging.getLogger("aiohttp").setLevel(max(log_level, logging.INFO))
