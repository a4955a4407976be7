"""Process wide logging setup."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from src.core.config import settings

LOGGER_NAME = "sns-blacklist"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def build_logging_config(environment: str) -> dict:
    """Console logging; DEBUG while developing, INFO elsewhere. SQL echo stays quiet."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {"stderr": {"class": "logging.StreamHandler", "formatter": "plain"}},
        "loggers": {"sqlalchemy.engine": {"level": "WARNING"}},
        "root": {
            "handlers": ["stderr"],
            "level": "DEBUG" if environment == "development" else "INFO",
        },
    }


def configure_logging() -> None:
    """Called once from the application lifespan."""

    dictConfig(build_logging_config(settings.environment))


logger = logging.getLogger(LOGGER_NAME)
