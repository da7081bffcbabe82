# pigg/core/logging_config.py
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from pigg.core.config import settings

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]  %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

VERBOSITY_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 1,
}


def resolve_level(verbosity: Optional[str]) -> int:
    """Map a CLI verbosity word to a logging level, defaulting to ERROR."""
    if not verbosity:
        return logging.ERROR
    return VERBOSITY_LEVELS.get(verbosity.strip().lower(), logging.ERROR)


def configure_logging(verbosity: Optional[str] = None, *, log_to_file: bool = True) -> Path:
    level = resolve_level(verbosity)

    log_file_path = Path(settings.LOG_DIR) / "pigg.log"

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.addHandler(console_handler)

    if log_to_file:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_file_path,
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
            delay=True,  # create file lazily
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # nats-py is chatty on reconnects
    logging.getLogger("nats").setLevel(max(level, logging.WARNING))

    root_logger.info(f"Logging initialized. Writing logs to: {log_file_path}")
    root_logger.info(f"logging start time UTC: {datetime.now(timezone.utc).isoformat()}")

    return log_file_path
