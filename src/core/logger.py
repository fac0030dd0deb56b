import json
import logging
import logging.config
import re
import sys

from core.config import configs

# Matches the context tag at the start of a message, e.g. "✅ [Batch 1f2e] ..."
CONTEXT_TAG = re.compile(r"\[(Batch|Event|Token)(?: ([^\]]+))?\]")


class JsonFormatter(logging.Formatter):
    """
    Formatter for logging in JSON format.
    The leading [Batch ...], [Event ...] or [Token ...] tag is lifted into
    its own field so aggregated logs can be filtered per batch or event.
    """

    def format(self, record):
        message = record.getMessage()
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": message,
        }
        tag = CONTEXT_TAG.search(message[:80])
        if tag:
            log_record[tag.group(1).lower()] = tag.group(2) or ""
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


def _loggers(handler: str, app_level: str) -> dict:
    return {
        # Root Logger: Catches everything not caught by specific loggers
        "root": {
            "level": configs.LOG_LEVEL,
            "handlers": [handler],
        },
        # Application Loggers
        "photoshare": {
            "level": app_level,
            "handlers": [handler],
            "propagate": False,
        },
        "core": {
            "level": app_level,
            "handlers": [handler],
            "propagate": False,
        },
        "api": {
            "level": app_level,
            "handlers": [handler],
            "propagate": False,
        },
        # Uvicorn (FastAPI Server) Loggers
        "uvicorn": {
            "level": "INFO",
            "handlers": [handler],
            "propagate": False,
        },
        "uvicorn.access": {
            "level": "INFO",
            "handlers": [handler],
            "propagate": False,
        },
        # External Libraries Noise Reduction
        "httpx": {
            "level": "WARNING",
            "handlers": [handler],
            "propagate": False,
        },
        "httpcore": {
            "level": "WARNING",
            "handlers": [handler],
            "propagate": False,
        },
        "PIL": {
            "level": "WARNING",
            "handlers": [handler],
            "propagate": False,
        },
    }


# -----------------------------------------------------------------------------
# Development Logging Configuration
# -----------------------------------------------------------------------------
# Console-friendly, readable text format.
DEV_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "default",
        },
    },
    "loggers": _loggers("console", "DEBUG"),
}

# -----------------------------------------------------------------------------
# Production Logging Configuration
# -----------------------------------------------------------------------------
# JSON structured, machine-parsable, suitable for aggregation (ELK, CloudWatch, etc.)
PROD_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": JsonFormatter,
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
        },
    },
    "handlers": {
        "console_json": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "json",
        },
    },
    "loggers": _loggers("console_json", configs.LOG_LEVEL),
}


def setup_logging():
    """
    Set up logging configuration based on the environment.
    """
    env = configs.ENVIRONMENT.lower()

    if env == "production":
        log_config = PROD_LOGGING_CONFIG
    else:
        log_config = DEV_LOGGING_CONFIG

    # Apply configuration
    logging.config.dictConfig(log_config)

    logger = logging.getLogger("photoshare")
    logger.info(f"Logging setup complete for {env} environment with level {configs.LOG_LEVEL}")
