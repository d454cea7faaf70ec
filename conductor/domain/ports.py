from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from conductor.domain.commands import CommandResult

AddressesCallback = Callable[[Sequence[str]], None]
UpdaterListener = Callable[..., None]

EVENT_UPDATE_AVAILABLE = "update-available"
EVENT_UPDATE_NOT_AVAILABLE = "update-not-available"
EVENT_DOWNLOAD_PROGRESS = "download-progress"
EVENT_UPDATE_DOWNLOADED = "update-downloaded"
EVENT_UPDATER_ERROR = "error"


# ---- Ports (Hexagonal boundaries) ----
class ChannelSender(Protocol):
    """Sends a result on a named channel back to the UI."""

    def send(self, channel: str, result: CommandResult) -> None: ...


class WindowPort(Protocol):
    """The UI window the backend lifecycle is coupled to."""

    def set_progress_bar(self, fraction: float) -> None: ...


class ShellPort(Protocol):
    """OS shell integration (excluded collaborator)."""

    def open_external(self, url: str) -> Awaitable[None]: ...
    def open_path(self, path: str) -> Awaitable[str]: ...


class DialogPort(Protocol):
    """OS file pickers (excluded collaborator)."""

    def select_directory(self, title: str) -> Awaitable[Optional[str]]: ...


class UpdaterPort(Protocol):
    """Remote update-distribution subsystem.

    Events: ``update-available``, ``update-not-available``,
    ``download-progress`` (with :class:`ProgressInfo`), ``error``.
    """

    def on(self, event: str, listener: UpdaterListener) -> None: ...
    def once(self, event: str, listener: UpdaterListener) -> None: ...
    def off(self, event: str, listener: UpdaterListener) -> None: ...
    def check_for_updates(self) -> Awaitable[Any]: ...
    def download_update(self) -> Awaitable[Any]: ...
    def quit_and_install(self) -> None: ...


class ProcessLauncherPort(Protocol):
    """Spawns and terminates the backend process."""

    def spawn(self, port: int, log_level: str) -> Awaitable[Any]: ...
    def terminate(self, process: Any, *, force: bool) -> Awaitable[None]: ...


class ImportListener(Protocol):
    """A started import handshake listener."""

    port: int

    def stop(self) -> Awaitable[None]: ...


class ImportListenerFactory(Protocol):
    """Starts a listener on ``port`` that relays received addresses."""

    def __call__(self, port: int, on_addresses: AddressesCallback) -> Awaitable[ImportListener]: ...


PortAllocator = Callable[[int], int]
ShutdownHook = Callable[[], Awaitable[None]]


__all__ = [
    "EVENT_DOWNLOAD_PROGRESS",
    "EVENT_UPDATER_ERROR",
    "EVENT_UPDATE_AVAILABLE",
    "EVENT_UPDATE_DOWNLOADED",
    "EVENT_UPDATE_NOT_AVAILABLE",
    "AddressesCallback",
    "ChannelSender",
    "DialogPort",
    "ImportListener",
    "ImportListenerFactory",
    "PortAllocator",
    "ProcessLauncherPort",
    "ShellPort",
    "ShutdownHook",
    "UpdaterListener",
    "UpdaterPort",
    "WindowPort",
]
