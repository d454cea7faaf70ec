"""Use case for the ``install-update`` command."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from conductor.domain.commands import CommandResult, Failure, Success
from conductor.domain.errors import InvalidTransitionError
from conductor.domain.models import UpdateState
from conductor.domain.ports import UpdaterPort
from conductor.domain.update_state import UpdateTracker
from conductor.usecases.error_mapping import map_error
from conductor.utils.logging import log_to_file
from conductor.utils.timers import TimerRegistry

_log = logging.getLogger(__name__)

INSTALL_TIMER_KEY = "install-update"


@dataclass
class InstallUpdate:
    """Run quit-and-install after a settling delay.

    The delay lets the UI render its final confirmation first. On success the
    process is expected to exit, so the ``True`` response is best-effort.
    """

    updater: UpdaterPort
    tracker: UpdateTracker
    timers: TimerRegistry
    delay_ms: int = 5000

    async def __call__(self, payload: Any = None) -> CommandResult:
        try:
            self.tracker.advance(UpdateState.INSTALLING)
        except InvalidTransitionError as exc:
            _log.warning("Update install rejected: %s", exc.message)
            return Failure(exc.message, value=exc.message)

        done: asyncio.Future = asyncio.get_running_loop().create_future()

        def quit_and_install() -> None:
            if done.done():
                return
            try:
                self.updater.quit_and_install()
            except Exception as exc:
                done.set_exception(exc)
                return
            done.set_result(None)

        self.timers.schedule(INSTALL_TIMER_KEY, self.delay_ms, quit_and_install)
        try:
            await done
        except Exception as exc:
            mapped = map_error(exc, default_code="UPDATE_INSTALL_FAILED")
            _log.error("Update install failed [%s]: %s", mapped.code, mapped.message)
            log_to_file(f"Update install failed: {mapped.message}")
            self.tracker.advance(UpdateState.DOWNLOADED)
            return Failure(mapped.message, value=mapped.message)
        return Success(True)


__all__ = ["INSTALL_TIMER_KEY", "InstallUpdate"]
