"""Logging configuration for the Gigben API."""

from __future__ import annotations

import logging
import sys
import time
from typing import Any

ROOT_LOGGER = "gigben"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends ``key=value`` pairs passed through ``extra`` to each line."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} | {pairs}"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure and return the application logger.

    Safe to call more than once; later calls only change the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ContextFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Logs the start, end and duration of an operation with shared context.

    Exceptions are logged and re-raised.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: Any) -> None:
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started = 0.0

    def __enter__(self) -> "LogContext":
        self._started = time.perf_counter()
        self.logger.info(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        elapsed_ms = round((time.perf_counter() - self._started) * 1000)
        extra = {**self.context, "elapsed_ms": elapsed_ms}
        if exc_type is not None:
            self.logger.error(f"Failed {self.operation}: {exc_val}", extra=extra, exc_info=True)
        else:
            self.logger.info(f"Completed {self.operation}", extra=extra)
        return False
