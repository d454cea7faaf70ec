"""Lifecycle owner for the long-lived backend process."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from conductor.domain.errors import ProcessSpawnError
from conductor.domain.models import BackendOptions, ProcessHandle
from conductor.domain.ports import PortAllocator, ProcessLauncherPort


class BackendSupervisor:
    """Start, stop and restart the backend; holds at most one live handle.

    Call chain:
        ``RestartBackend`` and application startup/teardown call into this
        class. The handle never leaves it; other components only read
        ``server_url``.
    """

    def __init__(
        self,
        launcher: ProcessLauncherPort,
        *,
        allocate_port: PortAllocator,
        preferred_port: int = 4242,
    ) -> None:
        self._log = logging.getLogger(__name__)
        self._launcher = launcher
        self._allocate_port = allocate_port
        self._preferred_port = preferred_port
        self._handle: Optional[ProcessHandle] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def handle(self) -> Optional[ProcessHandle]:
        return self._handle

    @property
    def server_url(self) -> Optional[str]:
        if self._handle is None:
            return None
        return self._handle.server_url

    def _guard(self) -> asyncio.Lock:
        # Created on first use so it binds to the running loop.
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def start(self, window: Any, options: BackendOptions) -> ProcessHandle:
        """Spawn the backend bound to ``window``.

        Raises:
            ProcessSpawnError: A backend is already live, or the launcher
                could not start the executable.
        """
        async with self._guard():
            return await self._start(window, options)

    async def stop(self, force: bool = False) -> None:
        """Terminate the live backend; a no-op when nothing runs.

        The handle is only released once the launcher confirms the exit, so
        a failed stop leaves it in place.
        """
        async with self._guard():
            await self._stop(force)

    async def restart(self, window: Any, options: BackendOptions) -> ProcessHandle:
        """Stop then start as one step; overlapping restarts run one after another."""
        async with self._guard():
            await self._stop(True)
            return await self._start(window, options)

    async def _start(self, window: Any, options: BackendOptions) -> ProcessHandle:
        if self._handle is not None and self._handle.running:
            raise ProcessSpawnError(f"Backend already running with pid {self._handle.pid}.")
        port = self._allocate_port(self._preferred_port)
        process = await self._launcher.spawn(port, options.log_level)
        self._handle = ProcessHandle(process=process, port=port, window=window)
        self._log.info("Backend available at %s", self._handle.server_url)
        return self._handle

    async def _stop(self, force: bool) -> None:
        handle = self._handle
        if handle is None:
            return
        await self._launcher.terminate(handle.process, force=force)
        self._handle = None


__all__ = ["BackendSupervisor"]
