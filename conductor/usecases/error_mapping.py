"""Translate adapter and validation errors into ConductorError instances."""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from conductor.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
)
from conductor.domain.errors import ConductorError


def map_error(
    exc: BaseException,
    *,
    default_code: str,
    default_message: Optional[str] = None,
) -> ConductorError:
    """Map any failure to a ConductorError with a stable code.

    Args:
        exc: The caught exception.
        default_code: Code used when the exception has no specific mapping.
        default_message: Message used when the exception text is empty.
    """
    if isinstance(exc, ConductorError):
        return exc
    if isinstance(exc, ValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg") if errors else str(exc)
        return ConductorError(f"Invalid parameters: {detail}", code="INVALID_PARAMS")
    if isinstance(exc, ApiTimeoutError):
        return ConductorError("Update server timed out. Check connection.", code="UPDATE_TIMEOUT")
    if isinstance(exc, ApiClientError):
        status = exc.status or 0
        if status == 404:
            return ConductorError("Update feed not found.", code="UPDATE_FEED_NOT_FOUND")
        if status in (401, 403):
            return ConductorError("Update feed rejected credentials.", code="UPDATE_AUTH_FAILED")
        hint = f": {exc.hint}" if exc.hint else "."
        return ConductorError(f"Update request failed (HTTP {status}){hint}", code="UPDATE_REQUEST_FAILED")
    if isinstance(exc, ApiServerError):
        return ConductorError("Update server error, try again later.", code="UPDATE_SERVER_ERROR")
    if isinstance(exc, ApiError):
        return ConductorError(str(exc), code="UPDATE_API_ERROR")

    message = str(exc) or default_message or type(exc).__name__
    return ConductorError(message, code=default_code)


__all__ = ["map_error"]
