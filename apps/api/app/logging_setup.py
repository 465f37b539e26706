"""Process-wide logging for the API."""

from __future__ import annotations

import logging
import logging.handlers
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE = "api.log"

# Libraries that log every request or upload chunk at INFO/DEBUG
_NOISY_LOGGERS = ("multipart", "python_multipart", "httpx")


def setup_logging(level: str = "INFO", to_file: bool = False, log_dir: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    Args:
        level: Log level name ("DEBUG", "INFO", ...); unknown names fall back to INFO.
        to_file: Also write to ``<log_dir>/api.log`` with rotation.
        log_dir: Directory for the log file, ``./logs`` by default.
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if to_file:
        log_dir = log_dir or os.path.join(os.getcwd(), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                os.path.join(log_dir, LOG_FILE), maxBytes=2 * 1024 * 1024, backupCount=3
            )
        )
    for handler in handlers:
        handler.setLevel(lvl)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(lvl, logging.WARNING))
