"""Logging configuration."""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter as BaseJsonFormatter

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StderrHandler(logging.StreamHandler):
    """Stream handler that writes to whatever sys.stderr is at emit time."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


class JsonFormatter(BaseJsonFormatter):
    """JSON formatter that always carries level and logger name."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(level: str = "WARNING", fmt: str = "text") -> logging.Handler:
    """Configure the ``visadesk`` logger.

    Args:
        level: Level name such as "INFO" or "DEBUG"
        fmt: "text" for human-readable lines, "json" for one JSON object per line

    Returns:
        The installed handler

    Raises:
        ValueError: If the level or format is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level '{level}'")

    handler = StderrHandler()
    if fmt == "json":
        handler.setFormatter(JsonFormatter(fmt="%(asctime)s %(level)s %(name)s %(message)s", datefmt=DATE_FORMAT))
    elif fmt == "text":
        handler.setFormatter(logging.Formatter(fmt=HUMAN_FORMAT, datefmt=DATE_FORMAT))
    else:
        raise ValueError(f"Unknown log format '{fmt}'. Expected 'text' or 'json'")

    logger = logging.getLogger("visadesk")
    # Repeated setup replaces the handler instead of stacking another
    for existing in list(logger.handlers):
        if isinstance(existing, StderrHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(numeric_level)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return handler
