from __future__ import annotations

import logging
from logging.config import dictConfig

from backend.app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stream handler on the root logger."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {"level": level or settings.log_level, "handlers": ["console"]},
        }
    )
    # SQL echo goes through sqlalchemy.engine, keep it quiet unless asked
    if not settings.db_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
