"""Use case for the ``download-update`` command."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from conductor.domain.commands import CommandResult, Failure, Success
from conductor.domain.errors import InvalidTransitionError
from conductor.domain.models import UpdateState
from conductor.domain.ports import EVENT_DOWNLOAD_PROGRESS, UpdaterPort, WindowPort
from conductor.domain.update_state import UpdateTracker
from conductor.usecases.error_mapping import map_error
from conductor.utils.logging import log_to_file

_log = logging.getLogger(__name__)

ProgressFn = Callable[[float], None]


@dataclass
class DownloadUpdate:
    """Download the available release, relaying progress while it runs.

    The progress listener lives exactly as long as the download call; it is
    removed on success, failure and cancellation alike.
    """

    updater: UpdaterPort
    tracker: UpdateTracker
    window: Callable[[], Optional[WindowPort]]

    async def __call__(self, progress: ProgressFn) -> CommandResult:
        started_from = self.tracker.state
        try:
            self.tracker.advance(UpdateState.DOWNLOADING)
        except InvalidTransitionError as exc:
            _log.warning("Update download rejected: %s", exc.message)
            return Failure(exc.message, value=False)

        win = self.window()

        def on_progress(info: Any) -> None:
            percent = float(getattr(info, "percent", info))
            progress(percent)
            if win is None:
                return
            try:
                win.set_progress_bar(percent / 100.0)
            except Exception:
                _log.debug("Window progress bar unavailable", exc_info=True)

        self.updater.on(EVENT_DOWNLOAD_PROGRESS, on_progress)
        try:
            await self.updater.download_update()
            ok = True
        except Exception as exc:
            mapped = map_error(exc, default_code="UPDATE_DOWNLOAD_FAILED")
            _log.error("Update download failed [%s]: %s", mapped.code, mapped.message)
            log_to_file(f"Update download failed: {mapped.message}")
            ok = False
        finally:
            self.updater.off(EVENT_DOWNLOAD_PROGRESS, on_progress)

        self.tracker.advance(UpdateState.DOWNLOADED if ok else started_from)
        return Success(ok)


__all__ = ["DownloadUpdate"]
