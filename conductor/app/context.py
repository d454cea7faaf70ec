"""Orchestration context: every piece of mutable state for one app run.

The backend process handle, the live handshake session and the update state
each belong to exactly one component created here. ``init`` builds the
command router once; ``teardown`` ends sessions, timers, in-flight commands
and the backend, in that order.
"""

from __future__ import annotations

import logging
from typing import Optional

from conductor.adapters.import_listener import start_import_listener
from conductor.adapters.port_allocator import allocate_port
from conductor.app.ipc_setup import ipc_setup
from conductor.app.router import CommandRouter
from conductor.app.settings import ConductorConfig
from conductor.domain.ports import (
    DialogPort,
    ImportListenerFactory,
    PortAllocator,
    ProcessLauncherPort,
    ShellPort,
    ShutdownHook,
    UpdaterPort,
    WindowPort,
)
from conductor.domain.update_state import UpdateTracker
from conductor.usecases.backend_supervisor import BackendSupervisor
from conductor.usecases.metamask_import import MetamaskImport
from conductor.utils.timers import TimerRegistry


class OrchestrationContext:
    """Owns the components and hands collaborators to them."""

    def __init__(
        self,
        config: ConductorConfig,
        *,
        shell: ShellPort,
        dialog: DialogPort,
        updater: UpdaterPort,
        launcher: ProcessLauncherPort,
        shutdown: ShutdownHook,
        window: Optional[WindowPort] = None,
        timers: Optional[TimerRegistry] = None,
        start_listener: Optional[ImportListenerFactory] = None,
        port_allocator: Optional[PortAllocator] = None,
    ) -> None:
        self._log = logging.getLogger(__name__)
        self.config = config
        self.window = window
        self.shell = shell
        self.dialog = dialog
        self.updater = updater
        self.shutdown = shutdown
        self.timers = timers or TimerRegistry()
        allocate = port_allocator or allocate_port

        self.supervisor = BackendSupervisor(
            launcher,
            allocate_port=allocate,
            preferred_port=config.backend_port,
        )
        self.update_tracker = UpdateTracker()
        self.metamask = MetamaskImport(
            allocate_port=allocate,
            start_listener=start_listener or start_import_listener,
            shell=shell,
            timers=self.timers,
            preferred_port=config.import_port,
            timeout_ms=config.import_timeout_ms,
        )
        self.router: Optional[CommandRouter] = None

    def current_window(self) -> Optional[WindowPort]:
        return self.window

    def init(self) -> CommandRouter:
        """Build and seal the router; calling twice returns the same router."""
        if self.router is None:
            self.router = ipc_setup(self)
            self._log.info("Registered %d commands", len(self.router.names()))
        return self.router

    async def teardown(self) -> None:
        await self.metamask.close()
        self.timers.cancel_all()
        if self.router is not None:
            await self.router.drain(cancel=True)
        try:
            await self.supervisor.stop(force=True)
        except Exception:
            self._log.exception("Backend did not stop cleanly during teardown")
        self.update_tracker.reset()


__all__ = ["OrchestrationContext"]
