from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from ..config import get_settings
from ..core.config import DATA_DIR

LOG_DIR = Path(os.getenv("CREW_LOG_DIR") or DATA_DIR / "logs")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_INITIALIZED = False


def configure_logging(level: Optional[str] = None, *, log_dir: Optional[Path] = None) -> Path:
    """Attach a console handler and a day-stamped rotating log file to the root logger.

    Safe to call from every entry point; only the first call configures
    anything. Returns the path of the log file.
    """

    global _INITIALIZED
    target_dir = log_dir or LOG_DIR
    log_path = target_dir / f"crew-calendar-{datetime.now(timezone.utc):%Y%m%d}.log"
    if _INITIALIZED:
        return log_path

    target_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=5, encoding="utf-8"),
    ]

    root = logging.getLogger()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    resolved = (level or get_settings().log_level).upper()
    root.setLevel(getattr(logging, resolved, logging.INFO))

    _INITIALIZED = True
    logging.getLogger(__name__).debug("Logging configured at %s. Output file: %s", resolved, log_path)
    return log_path
