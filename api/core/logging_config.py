"""
Logging setup applied once at app startup.
"""

from __future__ import annotations

import logging.config

from core import config


def logging_config(level: str | None = None) -> dict:
    level = (level or config.env_str("LOG_LEVEL", "INFO")).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(levelname)s %(asctime)s %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": level},
        "loggers": {
            # asyncpg/httpx are chatty at INFO.
            "httpx": {"level": "WARNING"},
            "asyncpg": {"level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None) -> None:
    logging.config.dictConfig(logging_config(level))
