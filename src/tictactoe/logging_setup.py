import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import config


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    log_level = (level or config.LOG_LEVEL or "INFO").upper()
    log_file = log_file or config.LOG_FILE

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(fmt)
    root.addHandler(stream_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    # Per-request access lines are noise next to game events
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
