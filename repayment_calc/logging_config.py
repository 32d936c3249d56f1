"""Logging setup shared by the CLI and the web application."""

from __future__ import annotations

import logging
from typing import Any, Union

LOGGER_NAME = "repayment_calc"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger and set its level.

    Calling it again only changes the level; no second handler is added.
    """
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    return logger


def log_calculation(component: str, level: int = logging.INFO, **fields: Any) -> None:
    """
    Log a structured calculation event.

    Args:
        component: Where the calculation was requested (e.g. 'cli', 'portal')
        level: Log level (default: INFO)
        **fields: Additional key=value fields to log
    """
    parts = [f"component={component!r}"]
    parts.extend(f"{k}={v!r}" for k, v in fields.items())
    logger.log(level, " | ".join(parts))
