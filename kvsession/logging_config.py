"""
Logging configuration for kvsession processes (demo app and CLI).

Applied once at startup with logging.config.dictConfig. Reports from the
session error handler go to stderr on their own logger, kvsession.errors,
so they can be routed separately from request logs.
"""

import logging
import logging.config
from typing import Any, Dict, Iterable

QUIET_PATHS = ("/health",)


class QuietPathFilter(logging.Filter):
    """Drop uvicorn access log lines for polling endpoints such as /health."""

    def __init__(self, paths: Iterable[str] = QUIET_PATHS):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        message = record.getMessage()
        return not any(f" {path} " in message for path in self.paths)


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(level: str = "INFO", quiet_paths: Iterable[str] = QUIET_PATHS) -> Dict[str, Any]:
    """
    Build the dictConfig mapping.

    Args:
        level: Level for kvsession loggers and the root logger
        quiet_paths: Request paths left out of the access log
    """
    level = level.upper()
    loggers = {name: _logger("console", "INFO") for name in ("uvicorn", "uvicorn.error")}
    loggers["uvicorn.access"] = _logger("access", "INFO")
    loggers["kvsession"] = _logger("console", level)
    loggers["kvsession.errors"] = _logger("errors", "WARNING")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "quiet_paths": {"()": QuietPathFilter, "paths": list(quiet_paths)},
        },
        "formatters": {
            "standard": {"format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["quiet_paths"],
            },
            "errors": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
