from logging import config, getLevelName, getLogger

from ipwatch.config import get_settings

LOGGER_NAME = "ipwatch"

LOG_FORMAT = "%(levelprefix)s %(asctime)s - %(message)s"
ACCESS_LOG_FORMAT = '%(levelprefix)s %(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s'
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_log_config(level: str) -> dict:
    """Logging config for the watcher and the uvicorn server that hosts it.

    `level` is a level name such as "DEBUG" or "warning".
    """
    log_level = getLevelName(level.upper())
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
                "use_colors": True,
            },
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": ACCESS_LOG_FORMAT,
                "datefmt": DATE_FORMAT,
                "use_colors": True,
            },
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "default", "stream": "ext://sys.stderr"},
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
        },
        "loggers": {
            LOGGER_NAME: {"handlers": ["default"], "level": log_level, "propagate": False},
            "uvicorn": {"handlers": ["default"], "level": log_level, "propagate": True},
            "uvicorn.access": {"handlers": ["access"], "level": log_level, "propagate": False},
            "uvicorn.error": {"level": log_level, "propagate": False},
        },
    }


# IPWATCH_LOG_LEVEL via Settings is the single source for the level.
log_config = build_log_config(get_settings().log_level)
config.dictConfig(log_config)

logger = getLogger(LOGGER_NAME)
