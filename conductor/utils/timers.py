"""Keyed one-shot timers for settling delays and handshake expiry.

Callers pass ``schedule`` and ``cancel`` callables so timer state is tracked
in one place and canceled safely when a session is superseded or the app
shuts down. Production wiring uses the running event loop's ``call_later``;
tests pass a manual clock.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


ScheduleFn = Callable[[int, Callable[[], None]], Any]
CancelFn = Callable[[Any], None]


@dataclass
class TimerHandle:
    """Token associated with a single timer key.

    Attributes:
        key: Timer key (for example ``metamask-import``).
        token: Scheduler token returned by the scheduler implementation.
    """
    key: str
    token: Any


def _loop_schedule(delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay_ms / 1000.0, callback)


def _loop_cancel(token: asyncio.TimerHandle) -> None:
    token.cancel()


class TimerRegistry:
    """Manage at most one pending timer per key."""

    def __init__(
        self,
        schedule: Optional[ScheduleFn] = None,
        cancel: Optional[CancelFn] = None,
    ) -> None:
        """Store schedule/cancel functions and initialize handle registry.

        Args:
            schedule: Function compatible with ``call_later(delay_ms, callback)``;
                defaults to the running asyncio loop.
            cancel: Function that cancels a token returned by ``schedule``.
        """
        self._log = logging.getLogger(__name__)
        self._schedule = schedule or _loop_schedule
        self._cancel = cancel or _loop_cancel
        self._handles: Dict[str, TimerHandle] = {}

    def schedule(self, key: str, delay_ms: int, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` under ``key``, replacing any pending timer."""
        delay = max(0, int(delay_ms))
        self.cancel(key)

        handle = TimerHandle(key=key, token=None)

        def _fire() -> None:
            if self._handles.get(key) is handle:
                del self._handles[key]
            callback()

        handle.token = self._schedule(delay, _fire)
        self._handles[key] = handle

    def cancel(self, key: str) -> bool:
        """Cancel the pending timer for ``key``; return whether one existed."""
        handle = self._handles.pop(key, None)
        if not handle:
            return False
        try:
            self._cancel(handle.token)
        except Exception:
            self._log.debug("Timer %s already gone", key, exc_info=True)
        return True

    def cancel_all(self) -> None:
        for key in list(self._handles.keys()):
            self.cancel(key)

    def pending(self, key: str) -> bool:
        return key in self._handles


__all__ = ["TimerHandle", "TimerRegistry"]
