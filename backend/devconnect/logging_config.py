"""Process-wide logging for the DevConnect API and the migration runner.

Telemetry events arrive on the ``devconnect.telemetry`` logger as JSON lines;
``DEVCONNECT_TELEMETRY_LOG_LEVEL`` silences or raises them independently of
the rest of the service.
"""

import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Install the stream handler and per-logger levels from environment flags."""
    level = os.getenv("DEVCONNECT_LOG_LEVEL", "INFO").upper()
    telemetry_level = os.getenv("DEVCONNECT_TELEMETRY_LOG_LEVEL", level).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
            "loggers": {
                "sqlalchemy.engine": {"level": "WARNING"},
                "devconnect.telemetry": {"level": telemetry_level},
            },
        }
    )

    if os.getenv("DEVCONNECT_DEBUG_HTTP", "0") == "1":
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
