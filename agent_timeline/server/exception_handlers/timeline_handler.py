"""
Timeline Error Handler.

Maps the timeline error taxonomy onto HTTP responses. Every response body has
the shape ``{"error": {"kind": ..., "message": ..., ...}}`` so that clients
can switch on the stable ``kind`` tag.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from agent_timeline.core.logging_config import get_logger
from agent_timeline.timeline.errors import (
    NotFoundError,
    ProviderError,
    RateLimitError,
    ReplayFailedError,
    ReplayTimeoutError,
    ReplayTooLargeError,
    StoreUnavailableError,
    TimelineError,
    ValidationError,
)

logger = get_logger(__name__)

# Most specific classes first
STATUS_BY_ERROR = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (ReplayTooLargeError, 413),
    (RateLimitError, 429),
    (ProviderError, 502),
    (StoreUnavailableError, 503),
    (ReplayTimeoutError, 504),
)


def status_for(error: BaseException) -> int:
    """HTTP status for a timeline error; replay failures use their cause's status."""
    if isinstance(error, ReplayFailedError):
        return status_for(error.cause)
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


async def timeline_exception_handler(request: Request, exc: TimelineError) -> JSONResponse:
    """
    Render a ``TimelineError`` as a structured JSON error.

    Args:
        request: The HTTP request that caused the exception
        exc: The timeline error that was raised

    Returns:
        JSONResponse with the error's kind, message and details
    """
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(f"{exc.kind} in {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})
