from __future__ import annotations

import logging
from copy import copy, deepcopy
from typing import Any
from urllib.parse import unquote

from rich.console import Console
from rich.logging import RichHandler
from uvicorn.config import LOGGING_CONFIG
from uvicorn.logging import AccessFormatter as UvicornAccessFormatter

LOGGER_NAME = "tandem"


class Utf8AccessFormatter(UvicornAccessFormatter):
    """Access log formatter that percent-decodes request paths so non-ASCII ids stay readable."""

    def formatMessage(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5 or not isinstance(args[2], str):
            return super().formatMessage(record)
        decoded = copy(record)
        decoded.args = args[:2] + (unquote(args[2], errors="replace"),) + args[3:]
        return super().formatMessage(decoded)


def build_uvicorn_log_config(*, debug: bool = False) -> dict[str, Any]:
    """Return a uvicorn logging config that also routes the ``tandem`` loggers."""
    config = deepcopy(LOGGING_CONFIG)
    formatter = config.get("formatters", {}).get("access")
    if isinstance(formatter, dict):
        formatter["()"] = "tandem.logging_utils.Utf8AccessFormatter"
    loggers = config.setdefault("loggers", {})
    loggers[LOGGER_NAME] = {
        "handlers": ["default"],
        "level": "DEBUG" if debug else "INFO",
        "propagate": False,
    }
    return config


def set_debug_logging(enabled: bool, *, console: Console | None = None) -> logging.Logger:
    """Attach a rich handler to the ``tandem`` logger for command line use."""
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if enabled else logging.INFO)
    logger.propagate = False
    return logger


__all__ = ["LOGGER_NAME", "Utf8AccessFormatter", "build_uvicorn_log_config", "set_debug_logging"]
