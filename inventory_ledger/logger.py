import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import settings

CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers, kept at WARNING
QUIET_LOGGERS = ("urllib3",)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def resolve_level(level: int | str | None) -> int:
    """Accepts a logging constant or a name like "debug"; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    name = (level or settings.LOG_LEVEL).strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: Optional[str] = None,
    log_level: int | str | None = None,
    log_dir: Optional[Path] = None,
    log_filename: str = "app.log",
) -> logging.Logger:
    """
    Configures a logger (the root logger by default) for an entry script:
    plain messages on stdout, timestamped lines in a rotating file under
    the log directory. The level defaults to LOG_LEVEL from the environment.
    """
    level = resolve_level(log_level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Entry scripts may call this more than once
    if logger.handlers:
        return logger

    logger.addHandler(_console_handler(level))
    logger.addHandler(_file_handler((log_dir or settings.LOG_DIR) / log_filename, level))

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return logger
