"""
Error handler port.

Store errors and id integrity errors are reported here for centralized
logging or metrics. Handlers observe errors; they never suppress them.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional, Protocol

from .errors import InvalidSessionId, SessionStoreError

logger = logging.getLogger(__name__)


class ErrorHandler(Protocol):
    """Protocol for error handlers plugged in by the host application."""

    def handle_error(self, error: Exception, context: Optional[Any] = None) -> None:
        """
        Observe an error.

        Args:
            error: The exception that was raised
            context: The request context active when it was raised, if any
        """
        ...


class DefaultErrorHandler:
    """Logs every reported error through the injected logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.logger = log or logger

    def handle_error(self, error: Exception, context: Optional[Any] = None) -> None:
        if isinstance(error, InvalidSessionId):
            self.logger.warning(
                f"Rejected session id with bad signature (prefix={error.session_id_prefix})"
            )
            return
        self.logger.error(f"Session store error: {type(error).__name__}: {error}")


def report_error(handler: ErrorHandler, error: Exception, context: Optional[Any] = None) -> None:
    """Hand an error to the handler; a failing handler is logged and ignored."""
    try:
        handler.handle_error(error, context)
    except Exception:
        logger.exception("Error handler raised while handling %s", type(error).__name__)


@asynccontextmanager
async def guard(handler: ErrorHandler, context: Optional[Any] = None):
    """
    Wrap a store interaction.

    Any SessionStoreError raised inside the block is reported to the handler
    and then re-raised unchanged.
    """
    try:
        yield
    except SessionStoreError as e:
        report_error(handler, e, context)
        raise
