from __future__ import annotations


class ConductorError(Exception):
    """Base class for orchestration errors (user-presentable)."""

    code = "CONDUCTOR_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.code = code or type(self).code
        self.message = message


class ProcessSpawnError(ConductorError):
    """Backend executable could not be launched or died during startup."""

    code = "PROCESS_SPAWN_FAILED"


class ProcessStopError(ConductorError):
    """Backend process did not terminate."""

    code = "PROCESS_STOP_FAILED"


class NoPortAvailableError(ConductorError):
    """No bindable local port inside the scan bound."""

    code = "NO_PORT_AVAILABLE"


class ListenerStartError(ConductorError):
    """Import handshake listener failed to come up."""

    code = "LISTENER_START_FAILED"


class UpdaterError(ConductorError):
    """Remote update subsystem failure."""

    code = "UPDATER_ERROR"


class InvalidTransitionError(ConductorError):
    """Update state machine was asked to move backwards or while busy."""

    code = "INVALID_UPDATE_TRANSITION"


__all__ = [
    "ConductorError",
    "InvalidTransitionError",
    "ListenerStartError",
    "NoPortAvailableError",
    "ProcessSpawnError",
    "ProcessStopError",
    "UpdaterError",
]
