import logging
import os
from logging.config import dictConfig
from typing import Any, Dict

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _handlers(log_file: str) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": log_file,
            "encoding": "utf-8",
            "delay": True,
        }
    return handlers


def configure_logging() -> None:
    """Configure process logging from ``PERIODPAL_*`` environment flags.

    ``PERIODPAL_LOG_LEVEL`` sets the root level, ``PERIODPAL_LOG_FILE`` adds a
    file handler, ``PERIODPAL_TELEMETRY_LOG=0`` silences ``TELEMETRY`` lines and
    ``PERIODPAL_DEBUG_SQL=1`` echoes SQL statements.
    """
    level = os.getenv("PERIODPAL_LOG_LEVEL", "INFO").upper()
    handlers = _handlers(os.getenv("PERIODPAL_LOG_FILE", ""))
    telemetry_level = "INFO" if os.getenv("PERIODPAL_TELEMETRY_LOG", "1") == "1" else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": DEFAULT_LOG_FORMAT}
            },
            "handlers": handlers,
            "loggers": {
                "periodpal.telemetry": {"level": telemetry_level},
            },
            "root": {
                "handlers": list(handlers),
                "level": level,
            },
        }
    )

    if os.getenv("PERIODPAL_DEBUG_SQL", "0") == "1":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
