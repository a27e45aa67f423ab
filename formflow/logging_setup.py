"""Logging setup for formflow processes.

One stdout handler on the root logger carries the key=value event lines that
the draft, respondent, gateway and route modules emit under the ``formflow``
logger tree. uvicorn's own loggers write to the same handler without
propagating, so access lines are not printed twice. ``create_app`` calls
``configure_logging`` on every build; only the first call installs handlers.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "formflow": {"level": "INFO", "propagate": True},
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
    },
}


def configure_logging() -> None:
    """Install the stdout handler unless the root logger already has one.

    Test runs and reloaders arrive with handlers in place and are left untouched.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_DICT_CONFIG)
