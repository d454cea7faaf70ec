"""Use case for the ``metamask-import`` command.

One import round trip: allocate a local port, start the handshake listener,
open it in the user's browser and wait for the addresses. The session ends
on the first of: addresses received, 120 s timeout, a newer import request,
or application teardown. Every request resolves exactly once.

Sessions are identified by a generation token. Callbacks from a listener or
timer that belongs to an older token are ignored, so a superseded session
can never produce a late response.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Sequence

from conductor.domain.commands import CommandResult, Failure, Success
from conductor.domain.models import HandshakeSession
from conductor.domain.ports import ImportListener, ImportListenerFactory, PortAllocator, ShellPort
from conductor.usecases.error_mapping import map_error
from conductor.utils.timers import TimerRegistry

IMPORT_TIMER_KEY = "metamask-import"
DEFAULT_IMPORT_PORT = 40000
DEFAULT_TIMEOUT_MS = 120_000

TIMEOUT_REASON = "waiting timeout"
SUPERSEDED_REASON = "import superseded by a newer request"
CLOSED_REASON = "import cancelled"


def _failure(reason: str) -> Failure:
    return Failure(reason, value={"error": reason})


class MetamaskImport:
    """Owner of the single live :class:`HandshakeSession`."""

    def __init__(
        self,
        *,
        allocate_port: PortAllocator,
        start_listener: ImportListenerFactory,
        shell: ShellPort,
        timers: TimerRegistry,
        preferred_port: int = DEFAULT_IMPORT_PORT,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._log = logging.getLogger(__name__)
        self._allocate_port = allocate_port
        self._start_listener = start_listener
        self._shell = shell
        self._timers = timers
        self._preferred_port = preferred_port
        self._timeout_ms = timeout_ms
        self._clock = clock
        self._generation = 0
        self._session: Optional[HandshakeSession] = None
        self._pending: Dict[int, asyncio.Future] = {}

    @property
    def session(self) -> Optional[HandshakeSession]:
        return self._session

    async def __call__(self, payload: object = None) -> CommandResult:
        self._generation += 1
        token = self._generation
        outcome: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[token] = outcome
        await self._end_current(_failure(SUPERSEDED_REASON))
        if token != self._generation:
            return await outcome

        listener: Optional[ImportListener] = None
        try:
            port = self._allocate_port(self._preferred_port)
            listener = await self._start_listener(
                port, lambda addresses: self._deliver(token, addresses)
            )
            if token != self._generation:
                await listener.stop()
                return await outcome
            self._session = HandshakeSession(
                token=token,
                port=port,
                expires_at=self._clock() + self._timeout_ms / 1000.0,
                listener=listener,
                timer_key=IMPORT_TIMER_KEY,
            )
            await self._shell.open_external(f"http://localhost:{port}")
            if not outcome.done():
                self._timers.schedule(IMPORT_TIMER_KEY, self._timeout_ms, lambda: self._expire(token))
        except Exception as exc:
            mapped = map_error(exc, default_code="IMPORT_START_FAILED")
            self._log.error("MetaMask import failed to start [%s]: %s", mapped.code, mapped.message)
            if self._session is not None and self._session.token == token:
                self._session = None
            self._pending.pop(token, None)
            if listener is not None:
                await listener.stop()
            if outcome.done():
                return outcome.result()
            return _failure(mapped.message)

        result = await outcome
        await listener.stop()
        return result

    async def close(self) -> None:
        """End any live session; used at application teardown."""
        self._generation += 1
        await self._end_current(_failure(CLOSED_REASON))

    # ------------------------------------------------------------------
    def _deliver(self, token: int, addresses: Sequence[str]) -> None:
        if not self._is_current(token):
            self._log.warning("Ignoring addresses from a stale import session")
            return
        self._log.info("Received %d address(es) from MetaMask import", len(addresses))
        self._settle(token, Success({"addresses": list(addresses)}))

    def _expire(self, token: int) -> None:
        if not self._is_current(token):
            return
        self._log.warning("MetaMask import timed out after %d ms", self._timeout_ms)
        self._settle(token, _failure(TIMEOUT_REASON))

    def _is_current(self, token: int) -> bool:
        session = self._session
        return token == self._generation and session is not None and session.token == token

    def _settle(self, token: int, result: CommandResult) -> None:
        self._timers.cancel(IMPORT_TIMER_KEY)
        self._session = None
        outcome = self._pending.pop(token, None)
        if outcome is not None and not outcome.done():
            outcome.set_result(result)

    async def _end_current(self, result: CommandResult) -> None:
        """Resolve every request older than the current generation and stop its listener."""
        session = self._session
        self._timers.cancel(IMPORT_TIMER_KEY)
        self._session = None
        for token in [t for t in self._pending if t < self._generation]:
            outcome = self._pending.pop(token)
            if not outcome.done():
                outcome.set_result(result)
        if session is not None and session.listener is not None:
            await session.listener.stop()



__all__ = ["IMPORT_TIMER_KEY", "MetamaskImport", "SUPERSEDED_REASON", "TIMEOUT_REASON"]
