"""
Logging configuration for the world server persistence layer.

All persistence loggers live under the ``world`` hierarchy and attach their
context with ``extra={...}``. Outside production the records are rendered as
plain text; in production they are JSON documents (python-json-logger), so
every ``extra`` key becomes a searchable field.
"""

import logging
import logging.config
import os
import sys
from typing import Any, Dict

ROOT_LOGGER = "world"

# Layers of worldserver.src that get their own logger
COMPONENTS = ("core", "models", "schemas", "services")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that are noisy at the application level
QUIET_LOGGERS = {
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "passlib": "ERROR",
}


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def _formatters(json_output: bool) -> Dict[str, Dict[str, Any]]:
    if json_output:
        formatter = {"()": "pythonjsonlogger.json.JsonFormatter", "fmt": JSON_FORMAT}
        return {
            "default": dict(formatter),
            "detailed": {**formatter, "fmt": JSON_FORMAT + " %(funcName)s %(lineno)d"},
        }
    return {
        "default": {"format": TEXT_FORMAT, "datefmt": DATE_FORMAT},
        "detailed": {
            "format": TEXT_FORMAT + " (%(funcName)s:%(lineno)d)",
            "datefmt": DATE_FORMAT,
        },
    }


def get_logging_config() -> Dict[str, Any]:
    """
    Build the dictConfig for the current ``LOG_LEVEL`` and ``ENVIRONMENT``.

    Errors are additionally written to stderr with call-site details.
    """
    log_level = get_log_level()
    json_output = os.getenv("ENVIRONMENT", "development").lower() == "production"
    app_handlers = ["console", "error_console"]

    loggers: Dict[str, Dict[str, Any]] = {
        name: {"level": log_level, "handlers": app_handlers, "propagate": False}
        for name in (ROOT_LOGGER, *(f"{ROOT_LOGGER}.{c}" for c in COMPONENTS))
    }
    # Component loggers hand records to ``world`` instead of printing twice
    for component in COMPONENTS:
        loggers[f"{ROOT_LOGGER}.{component}"].update(handlers=[], propagate=True)

    for name, level in QUIET_LOGGERS.items():
        loggers[name] = {"level": level, "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _formatters(json_output),
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "default",
                "stream": sys.stdout,
            },
            "error_console": {
                "class": "logging.StreamHandler",
                "level": "ERROR",
                "formatter": "detailed",
                "stream": sys.stderr,
            },
        },
        "loggers": loggers,
        "root": {"level": "WARNING", "handlers": app_handlers},
    }


def setup_logging() -> None:
    """
    Apply the logging configuration. Call once, at process start.
    """
    logging.config.dictConfig(get_logging_config())
    get_logger("logging").info(
        "Logging configured",
        extra={
            "log_level": get_log_level(),
            "environment": os.getenv("ENVIRONMENT", "development"),
        },
    )


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, placed in the ``world`` hierarchy.

    ``worldserver.src.services.player_saver`` maps to ``world.services``;
    any other name ``x`` maps to ``world.x``.
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)

    parts = name.split(".")
    if parts[:2] == ["worldserver", "src"]:
        name = f"{ROOT_LOGGER}.{parts[2]}" if len(parts) > 2 else ROOT_LOGGER
    else:
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
