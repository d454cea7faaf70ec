"""Use case for the ``check-for-updates`` command."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from conductor.domain.commands import CommandResult, Failure, Success
from conductor.domain.errors import InvalidTransitionError
from conductor.domain.models import UpdateState
from conductor.domain.ports import (
    EVENT_UPDATE_AVAILABLE,
    EVENT_UPDATE_NOT_AVAILABLE,
    UpdaterPort,
)
from conductor.domain.update_state import UpdateTracker
from conductor.usecases.error_mapping import map_error
from conductor.utils.logging import log_to_file

_log = logging.getLogger(__name__)


@dataclass
class CheckForUpdates:
    """Resolve to ``True`` when the feed announces a newer release.

    Availability is read from one-shot updater events; both subscriptions
    are removed once the check settles. Errors never reach the UI as hard
    failures, they resolve to ``False``.
    """

    updater: UpdaterPort
    tracker: UpdateTracker
    development: bool = False

    async def __call__(self, payload: Any = None) -> CommandResult:
        if self.development:
            _log.info("Running in development, skipping auto-updater check")
            return Success(False)
        try:
            self.tracker.advance(UpdateState.CHECKING)
        except InvalidTransitionError as exc:
            _log.warning("Update check rejected: %s", exc.message)
            return Failure(exc.message, value=False)

        found: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_available(*_args: Any) -> None:
            if not found.done():
                found.set_result(True)

        def on_not_available(*_args: Any) -> None:
            if not found.done():
                found.set_result(False)

        self.updater.once(EVENT_UPDATE_AVAILABLE, on_available)
        self.updater.once(EVENT_UPDATE_NOT_AVAILABLE, on_not_available)
        try:
            await self.updater.check_for_updates()
            if not found.done():
                _log.warning("Update check finished without an availability event")
                found.set_result(False)
            available = bool(found.result())
        except Exception as exc:
            mapped = map_error(exc, default_code="UPDATE_CHECK_FAILED")
            _log.error("Update check failed [%s]: %s", mapped.code, mapped.message)
            log_to_file(f"Update check failed: {mapped.message}")
            available = False
        finally:
            self.updater.off(EVENT_UPDATE_AVAILABLE, on_available)
            self.updater.off(EVENT_UPDATE_NOT_AVAILABLE, on_not_available)

        self.tracker.advance(UpdateState.AVAILABLE if available else UpdateState.NOT_AVAILABLE)
        return Success(available)


__all__ = ["CheckForUpdates"]
