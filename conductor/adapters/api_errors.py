"""Typed HTTP errors for the release feed and artifact downloads.

Feed hosts are static file servers, so an error body is either a short text
page or a small JSON object such as ``{"message": "Not Found"}``. Only a one
line detail is kept from it.
"""

from __future__ import annotations

from typing import Any, Optional

_DETAIL_KEYS = ("message", "error", "detail")
_DETAIL_LIMIT = 200


class ApiError(RuntimeError):
    """Non-2xx answer from the feed host."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        hint: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.hint = hint
        self.context = context


class ApiClientError(ApiError):
    """HTTP 4xx: missing feed, missing artifact or rejected token."""


class ApiServerError(ApiError):
    """HTTP 5xx from the feed host."""


class ApiTimeoutError(ApiError):
    """Transport level timeout or connectivity failure."""


def response_detail(resp: Any) -> Optional[str]:
    """One line describing an error body, or ``None`` when it says nothing."""
    try:
        body = resp.json()
    except Exception:
        body = getattr(resp, "text", "") or ""
    if isinstance(body, dict):
        body = next((body[key] for key in _DETAIL_KEYS if isinstance(body.get(key), str)), "")
    if not isinstance(body, str):
        return None
    line = " ".join(body.split())
    return line[:_DETAIL_LIMIT] or None


def raise_for_response(resp: Any, ctx: str) -> None:
    """Raise the typed error matching a non-2xx status.

    ``ctx`` names the updater step (``check_for_updates``, ``download_update``)
    and prefixes the message.
    """
    status = resp.status_code
    if 200 <= status < 300:
        return
    detail = response_detail(resp)
    message = f"{ctx}: {detail} (HTTP {status})" if detail else f"{ctx}: HTTP {status}"
    if 400 <= status < 500:
        raise ApiClientError(message, status=status, hint=detail, context=ctx)
    if status >= 500:
        raise ApiServerError(message, status=status, context=ctx)
    raise ApiError(message, status=status, context=ctx)


__all__ = [
    "ApiClientError",
    "ApiError",
    "ApiServerError",
    "ApiTimeoutError",
    "raise_for_response",
    "response_detail",
]
