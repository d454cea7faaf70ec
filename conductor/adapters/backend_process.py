"""asyncio subprocess launcher for the backend process."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from conductor.domain.errors import ProcessSpawnError, ProcessStopError


class SubprocessLauncher:
    """Spawn the backend command and terminate it with a grace window.

    The command receives ``--rest-api-port <port> --loglevel <level>``; its
    stdout/stderr lines are relayed to the ``conductor.backend`` logger.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[str | Path] = None,
        startup_grace_s: float = 0.4,
        stop_grace_s: float = 10.0,
    ) -> None:
        self.command = list(command)
        self.cwd = str(cwd) if cwd else None
        self.startup_grace_s = startup_grace_s
        self.stop_grace_s = stop_grace_s
        self._log = logging.getLogger(__name__)
        self._output_log = logging.getLogger("conductor.backend")
        self._relays: set[asyncio.Task] = set()

    async def spawn(self, port: int, log_level: str) -> asyncio.subprocess.Process:
        if not self.command:
            raise ProcessSpawnError("No backend command configured.")
        argv = [*self.command, "--rest-api-port", str(port), "--loglevel", log_level]
        self._log.info("Starting backend: %s", " ".join(argv))
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.cwd,
            )
        except OSError as exc:
            raise ProcessSpawnError(f"Failed to launch {argv[0]}: {exc}") from exc

        relay = asyncio.create_task(self._relay_output(process))
        self._relays.add(relay)
        relay.add_done_callback(self._relays.discard)

        await asyncio.sleep(self.startup_grace_s)
        if process.returncode is not None:
            raise ProcessSpawnError(
                f"Backend exited during startup with code {process.returncode}."
            )
        self._log.info("Backend running with pid %s on port %s", process.pid, port)
        return process

    async def terminate(self, process: asyncio.subprocess.Process, *, force: bool) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.stop_grace_s)
        except asyncio.TimeoutError:
            if not force:
                raise ProcessStopError(
                    f"Backend pid {process.pid} did not exit within {self.stop_grace_s}s."
                )
            self._log.warning("Backend pid %s ignored terminate, killing", process.pid)
            process.kill()
            await process.wait()
        self._log.info("Backend pid %s exited with code %s", process.pid, process.returncode)

    async def _relay_output(self, process: asyncio.subprocess.Process) -> None:
        if process.stdout is None:
            return
        async for raw in process.stdout:
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                self._output_log.info(line)


__all__ = ["SubprocessLauncher"]
