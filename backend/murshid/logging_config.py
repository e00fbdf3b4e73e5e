"""
Logging configuration.
Sets up console logging for the API and, when a log directory is configured,
a rotating log file next to it.
"""
import os
import sys
import logging
import logging.config
from pathlib import Path


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level for application loggers (default: INFO)
        log_dir: Optional directory for a rotating ``app.log`` file
    """
    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "default",
            "level": log_level,
        },
    }
    log_file_path = None
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        log_file_path = os.path.join(log_dir, "app.log")
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file_path,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "default",
            "level": log_level,
            "encoding": "utf8",
        }
    handler_names = list(handlers)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {  # Root logger
                "handlers": handler_names,
                "level": log_level,
                "propagate": True,
            },
            "uvicorn.error": {
                "handlers": handler_names,
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": handler_names,
                "level": "INFO",
                "propagate": False,
            },
            "tortoise": {
                "handlers": handler_names,
                "level": "WARNING",
                "propagate": False,
            },
            "murshid": {
                "handlers": handler_names,
                "level": log_level,
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)

    logger = logging.getLogger("murshid")
    if log_file_path:
        logger.info("Logging initialized. Writing logs to %s", log_file_path)
    else:
        logger.info("Logging initialized (console only)")
