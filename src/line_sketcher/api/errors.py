"""Mapping of domain errors onto HTTP responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from line_sketcher.errors import LineSketcherError, RemoteFailure, TransportError

_STATUS_BY_CATEGORY = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "transport": status.HTTP_502_BAD_GATEWAY,
    "remote_failure": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "timeout": status.HTTP_408_REQUEST_TIMEOUT,
    "cancelled": 499,
    "storage": status.HTTP_503_SERVICE_UNAVAILABLE,
    "duplicate_key": status.HTTP_409_CONFLICT,
}


def error_response(error: LineSketcherError) -> JSONResponse:
    """Build the JSON error body for a domain error."""
    status_code = _STATUS_BY_CATEGORY.get(
        error.category, status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    content: dict[str, object] = {
        "error": error.user_message,
        "category": error.category,
        "retryable": error.retryable,
    }
    if isinstance(error, TransportError):
        if error.status is not None and error.status >= 400:
            status_code = error.status
        content["details"] = error.body
    elif isinstance(error, RemoteFailure):
        content["details"] = error.detail
    return JSONResponse(status_code=status_code, content=content)


async def handle_line_sketcher_error(
    request: Request, exc: LineSketcherError
) -> JSONResponse:
    """Exception handler registered on the app."""
    return error_response(exc)
