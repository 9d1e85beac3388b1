"""Library logger: stdlib logging plus an optional app-supplied log function."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from shopify_platform.config import ShopifyConfig

logger = logging.getLogger("shopify_platform")


class LogSeverity(int, Enum):
    """Log severities, most severe first."""

    ERROR = 0
    WARNING = 1
    INFO = 2
    DEBUG = 3


_STDLIB_LEVELS = {
    LogSeverity.ERROR: logging.ERROR,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.INFO: logging.INFO,
    LogSeverity.DEBUG: logging.DEBUG,
}


def _format(message: str, context: dict[str, Any]) -> str:
    if not context:
        return message
    details = ", ".join(f"{key}: {value}" for key, value in context.items())
    return f"{message} | {details}"


class ShopifyLogger:
    """Per-config logger.

    Messages below config.log_level are dropped. Everything else goes to
    the "shopify_platform" stdlib logger and, when configured, to
    config.log_function(severity, message).
    """

    def __init__(self, config: ShopifyConfig):
        self._config = config

    def log(self, severity: LogSeverity, message: str, **context: Any) -> None:
        if severity > self._config.log_level:
            return

        text = _format(message, context)
        logger.log(_STDLIB_LEVELS[severity], text)

        log_function = self._config.log_function
        if log_function is not None:
            try:
                log_function(severity, text)
            except Exception:
                logger.exception("Custom log_function failed")

    def error(self, message: str, **context: Any) -> None:
        self.log(LogSeverity.ERROR, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(LogSeverity.WARNING, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(LogSeverity.INFO, message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self.log(LogSeverity.DEBUG, message, **context)
