import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

TIMESTAMP_FORMAT = "[%Y-%m-%d %H:%M:%S]"
PACKAGE_LOGGER = "bsgenome_forge"


def ts() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


class LevelTagFormatter(logging.Formatter):
    """Prefix warnings and errors with their level, e.g. "[ERROR] ..."."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            record.message = f"[{record.levelname}] {record.message}"
        return super().formatMessage(record)


def setup_run_logger(console: Console, log_path: Optional[Path] = None) -> logging.Logger:
    """
    Send every pipeline message to the console, one timestamped line per
    step, and when `log_path` is given also to a plain-text run log.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    console_handler = RichHandler(
        console=console,
        show_path=False,
        show_level=False,
        markup=False,
        log_time_format=TIMESTAMP_FORMAT,
        omit_repeated_times=False,
    )
    console_handler.setFormatter(LevelTagFormatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_path is not None:
        handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        handler.setFormatter(LevelTagFormatter("%(asctime)s %(message)s", datefmt=TIMESTAMP_FORMAT))
        logger.addHandler(handler)
    return logger


def close_run_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.flush()
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
