"""Command names and the tagged result union sent back to the UI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class CommandName(str, Enum):
    """Fixed set of channel names understood by the router."""

    VERSION_INFO = "version-info"
    SERVER_URL = "server-url"
    GET_DEBUG = "get-debug"
    RESTART_BACKEND = "restart-backend"
    CHECK_FOR_UPDATES = "check-for-updates"
    DOWNLOAD_UPDATE = "download-update"
    DOWNLOAD_PROGRESS = "download-progress"
    INSTALL_UPDATE = "install-update"
    METAMASK_IMPORT = "metamask-import"
    OPEN_DIRECTORY = "open-directory"
    OPEN_PATH = "open-path"
    OPEN_URL = "open-url"
    CLOSE_APP = "close-app"


@dataclass(frozen=True)
class Success:
    """Terminal outcome carrying the value the UI awaits."""

    value: Any = True

    terminal = True

    @property
    def wire_value(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Terminal outcome with a human-readable reason.

    ``value`` is what the UI contract expects on failure (``False`` for
    boolean commands), so adding a reason never changes what older callers
    receive.
    """

    reason: str
    value: Any = False

    terminal = True

    @property
    def wire_value(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Progress:
    """Intermediate value emitted before the terminal outcome."""

    value: Any

    terminal = False

    @property
    def wire_value(self) -> Any:
        return self.value


CommandResult = Union[Success, Failure, Progress]


def result_kind(result: CommandResult) -> str:
    """Return the lowercase tag used on the wire (``success``/``failure``/``progress``)."""
    return type(result).__name__.lower()


__all__ = [
    "CommandName",
    "CommandResult",
    "Failure",
    "Progress",
    "Success",
    "result_kind",
]
