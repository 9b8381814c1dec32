import sys
from logging.config import dictConfig

from .config import settings


def setup_logging():
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s | %(levelname)s | "
                        "%(name)s | %(message)s"
                    ),
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "loggers": {
                # SQL echo is controlled by DATABASE_ECHO, keep the logger quiet otherwise
                "sqlalchemy.engine": {
                    "level": "WARNING",
                    "propagate": True,
                },
            },
            "root": {
                "level": "DEBUG" if settings.DEBUG else settings.LOG_LEVEL.upper(),
                "handlers": ["console"],
            },
        }
    )
