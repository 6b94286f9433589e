import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler

from .config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
}

logger = logging.getLogger(__name__)


def resolve_level(name: str) -> int:
    level = LEVELS.get(name.strip().upper())
    if level is None:
        print(f"Unknown level [{name}]. Log level set to ERROR", file=sys.stderr)
        return logging.ERROR
    return level


def configure_logging(settings: Settings) -> logging.Handler:
    """
    Configure the root logger once per process.
    CMD writes to stderr; FILE writes to <log_path>/service.log, rotated daily
    and keeping log_max_age files.
    """
    if settings.log_type == "FILE":
        os.makedirs(settings.log_path, exist_ok=True)
        handler: logging.Handler = TimedRotatingFileHandler(
            os.path.join(settings.log_path, "service.log"),
            when="midnight",
            backupCount=settings.log_max_age,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.addHandler(handler)
    root.setLevel(resolve_level(settings.log_level))
    logger.info("log level %s, log type %s", settings.log_level, settings.log_type)
    return handler
