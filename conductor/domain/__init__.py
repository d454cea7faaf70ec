"""Domain package exports for commands, value objects and errors."""

from .commands import CommandName, CommandResult, Failure, Progress, Success
from .errors import (
    ConductorError,
    ListenerStartError,
    NoPortAvailableError,
    ProcessSpawnError,
    ProcessStopError,
    UpdaterError,
)
from .models import BackendOptions, HandshakeSession, ProcessHandle, UpdateState

__all__ = [
    "BackendOptions",
    "CommandName",
    "CommandResult",
    "ConductorError",
    "Failure",
    "HandshakeSession",
    "ListenerStartError",
    "NoPortAvailableError",
    "ProcessHandle",
    "ProcessSpawnError",
    "ProcessStopError",
    "Progress",
    "Success",
    "UpdateState",
    "UpdaterError",
]
