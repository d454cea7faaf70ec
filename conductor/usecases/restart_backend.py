from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from conductor.domain.commands import CommandResult, Failure, Success
from conductor.domain.errors import ConductorError
from conductor.domain.models import BackendOptions
from conductor.domain.ports import WindowPort
from conductor.usecases.backend_supervisor import BackendSupervisor
from conductor.usecases.error_mapping import map_error
from conductor.utils.logging import log_to_file

_log = logging.getLogger(__name__)


@dataclass
class RestartBackend:
    """Use-case callable behind ``restart-backend``.

    Resolves to ``True`` or to a ``Failure`` whose wire value stays ``False``;
    the reason is logged and carried on the failure.
    """

    supervisor: BackendSupervisor
    window: Callable[[], Optional[WindowPort]]

    async def __call__(self, payload: Any = None) -> CommandResult:
        try:
            win = self.window()
            if win is None:
                raise ConductorError("Backend window is not available.", code="WINDOW_MISSING")
            options = BackendOptions.model_validate(payload or {})
            await self.supervisor.restart(win, options)
        except Exception as exc:
            mapped = map_error(exc, default_code="RESTART_FAILED")
            _log.error("Backend restart failed [%s]: %s", mapped.code, mapped.message)
            log_to_file(f"Backend restart failed: {mapped.message}")
            return Failure(mapped.message, value=False)
        return Success(True)


__all__ = ["RestartBackend"]
