"""Retry-capable error reporting for tile providers."""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .typing import ErrorReporter

logger = logging.getLogger(__name__)


class TileProviderErrorEvent(BaseModel):
    """An error raised while preparing a tile provider, offered to a reporter for retry."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    message: str
    times_retried: int = Field(default=0, ge=0)
    retry: bool = False
    error: Optional[Exception] = None


def handle_error(
    previous: Optional[TileProviderErrorEvent],
    reporter: Optional[ErrorReporter],
    message: str,
    error: Optional[Exception] = None,
) -> TileProviderErrorEvent:
    """
    Report an error and record whether the reporter asked for a retry.

    Args:
        previous: Event returned by the last call for the same operation, or None
        reporter: Callable returning True to retry; None logs and declines
        message: Human-readable description
        error: Underlying exception, if any

    Returns:
        The event for this occurrence; pass it back as ``previous`` next time
    """
    if previous is None:
        event = TileProviderErrorEvent(message=message, error=error)
    else:
        event = previous.model_copy(
            update={
                "message": message,
                "error": error,
                "times_retried": previous.times_retried + 1,
                "retry": False,
            }
        )

    if reporter is None:
        logger.warning("Tile provider error: %s", message)
        return event

    event.retry = bool(reporter(event))
    return event
