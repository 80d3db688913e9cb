import logging
import logging.config
import os
from rentauto.core.config import settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 10

FORMATTERS = {
    "default": {
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
    "detailed": {
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s:%(lineno)d - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
    "access": {
        "format": "%(asctime)s - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
}


def _rotating_file(filename: str, level: str, formatter: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": os.path.join(settings.LOG_DIR, filename),
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
        "encoding": "utf-8",
    }


def setup_logging():
    """Console logging always; rotating files under LOG_DIR when LOG_TO_FILE is on"""

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.LOG_LEVEL,
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    }
    root_handlers = ["console"]
    access_handlers = ["console"]

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handlers["app_file"] = _rotating_file("rentauto.log", settings.LOG_LEVEL, "detailed")
        handlers["error_file"] = _rotating_file("rentauto-error.log", "ERROR", "detailed")
        handlers["access_file"] = _rotating_file("access.log", "INFO", "access")
        root_handlers = ["console", "app_file", "error_file"]
        access_handlers = ["access_file"]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": FORMATTERS,
        "handlers": handlers,
        "root": {
            "level": settings.LOG_LEVEL,
            "handlers": root_handlers,
        },
        "loggers": {
            # Request lines from the access middleware
            "access": {
                "level": "INFO",
                "handlers": access_handlers,
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "propagate": True,
            },
            "sqlalchemy.engine": {
                "level": "INFO" if settings.DEBUG and not settings.is_production else "WARNING",
                "propagate": True,
            },
            "passlib": {
                "level": "ERROR",
                "propagate": True,
            },
        },
    })

    logger = logging.getLogger(__name__)
    logger.info(f"🚗 {settings.APP_NAME} - Logging configured")
    logger.info(f"📝 Log level: {settings.LOG_LEVEL}")
    if settings.LOG_TO_FILE:
        logger.info(f"🗂️  Logs directory: {settings.LOG_DIR}/")
