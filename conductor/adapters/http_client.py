"""Shared HTTP transport utilities for the release-feed adapter.

This module provides a thin wrapper around ``requests.Session`` so feed and
artifact requests share one timeout policy, retry behavior, and optional
bearer-token header.

Dependencies:
    - ``requests`` for network I/O.
    - ``conductor.adapters.api_errors.ApiTimeoutError`` for typed transport
      failures.

Call context:
    - Constructed by ``conductor.adapters.feed_updater.FeedUpdater``.
    - Methods block; callers run them through ``asyncio.to_thread``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests import exceptions as req_exc

from conductor.adapters.api_errors import ApiTimeoutError


@dataclass
class HttpConfig:
    """Timeout and retry configuration for feed HTTP calls.

    Attributes:
        request_timeout_s: Default timeout in seconds for JSON feed calls.
        download_timeout_s: Default timeout in seconds for artifact downloads.
        retries: Number of retry attempts after the initial request.
    """
    request_timeout_s: int = 10
    download_timeout_s: int = 60
    retries: int = 2


class RetryingSession:
    """Shared requests wrapper with optional token header and retry loops.

    This class is intentionally transport-only. Callers provide URLs and
    decide how to map non-2xx responses into update errors.
    """

    def __init__(self, token: Optional[str], cfg: HttpConfig) -> None:
        """Create a retry-enabled session.

        Args:
            token: Bearer token for private feeds, or ``None``.
            cfg: Shared timeout and retry settings.
        """
        self.session = requests.Session()
        self.token = token
        self.cfg = cfg

    def _headers(self, accept: str = "application/json") -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "application/json",
        timeout: Optional[int] = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send a GET request with retries on timeout/connectivity failures.

        Args:
            url: Absolute URL.
            params: Optional query parameter mapping.
            accept: ``Accept`` header value.
            timeout: Optional timeout override in seconds.
            stream: Whether to stream the response body.

        Returns:
            ``requests.Response`` from the first successful attempt.

        Raises:
            ApiTimeoutError: If all attempts fail with timeout/connection errors.
        """
        context = f"GET {url}"
        last_err: ApiTimeoutError | None = None
        attempts = self.cfg.retries + 1
        for _ in range(attempts):
            try:
                return self.session.get(
                    url,
                    params=params,
                    headers=self._headers(accept=accept),
                    timeout=timeout or self.cfg.request_timeout_s,
                    stream=stream,
                )
            except (req_exc.Timeout, req_exc.ConnectionError):
                last_err = ApiTimeoutError(f"Timeout contacting {url}", context=context)
        raise last_err

    def close(self) -> None:
        self.session.close()


__all__ = ["HttpConfig", "RetryingSession"]
