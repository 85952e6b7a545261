"""Logging configuration for Bulkflow."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional


def setup_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # Backend calls are logged by the services with their own context.
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class ServiceLogger:
    """Service logger that renders ``key=value`` context after the message.

    ``bind`` returns a child carrying fixed context, e.g. the action name and
    entity id for the duration of one lifecycle submission. ``None`` values
    are left out.
    """

    def __init__(self, service_name: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._service_name = service_name
        self._logger = get_logger(f"bulkflow.{service_name}")
        self._context = dict(context or {})

    def bind(self, **context: Any) -> "ServiceLogger":
        return ServiceLogger(self._service_name, {**self._context, **context})

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(logging.ERROR, message, context)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {key: value for key, value in {**self._context, **context}.items() if value is not None}
        if merged:
            message = f"{message} | " + " | ".join(f"{key}={value}" for key, value in merged.items())
        self._logger.log(level, message)
