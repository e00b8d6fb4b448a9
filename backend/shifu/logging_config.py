import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Install the process-wide log format; levels come from the environment."""
    level = os.getenv("SHIFU_LOG_LEVEL", "INFO").upper()
    telemetry_level = os.getenv("SHIFU_TELEMETRY_LOG_LEVEL", level).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": DEFAULT_LOG_FORMAT}},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "shifu.telemetry": {"level": telemetry_level},
            },
            "root": {"handlers": ["stderr"], "level": level},
        }
    )

    if os.getenv("SHIFU_DEBUG_HTTP", "0") == "1":
        for name in ("httpx", "httpcore", "uvicorn.access"):
            logging.getLogger(name).setLevel(logging.DEBUG)
