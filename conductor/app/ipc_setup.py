"""Command table wiring.

Registration happens once, in a fixed order, before the router is exposed to
the transport. The three update handlers are registered together after the
updater has been configured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from conductor.app.router import CommandRequest, CommandRouter
from conductor.domain.commands import CommandName, CommandResult
from conductor.usecases.check_for_updates import CheckForUpdates
from conductor.usecases.download_update import DownloadUpdate
from conductor.usecases.install_update import InstallUpdate
from conductor.usecases.open_external import OpenDirectory, OpenPath, OpenUrl
from conductor.usecases.restart_backend import RestartBackend
from conductor.usecases.version_info import version_info
from conductor.utils.logging import DiagnosticLogger

if TYPE_CHECKING:
    from conductor.app.context import OrchestrationContext


def ipc_setup(context: "OrchestrationContext") -> CommandRouter:
    router = CommandRouter()
    config = context.config

    router.register_query(CommandName.GET_DEBUG, lambda _payload: dict(config.debug_settings))
    router.register_query(CommandName.SERVER_URL, lambda _payload: context.supervisor.server_url)

    async def close_app(request: CommandRequest) -> None:
        await context.shutdown()

    router.register(CommandName.CLOSE_APP, close_app, responds=False)

    open_url = OpenUrl(context.shell)
    open_path = OpenPath(context.shell)
    open_directory = OpenDirectory(context.dialog)
    router.register(CommandName.OPEN_URL, lambda request: open_url(request.payload), responds=False)
    router.register(CommandName.OPEN_PATH, lambda request: open_path(request.payload), responds=False)
    router.register(CommandName.OPEN_DIRECTORY, lambda request: open_directory(request.payload))

    _setup_metamask_import(router, context)
    _setup_backend_restart(router, context)
    router.register(CommandName.VERSION_INFO, lambda request: version_info(request.payload))
    _setup_updater_interop(router, context)

    router.seal()
    return router


def _setup_metamask_import(router: CommandRouter, context: "OrchestrationContext") -> None:
    router.register(CommandName.METAMASK_IMPORT, lambda request: context.metamask(request.payload))


def _setup_backend_restart(router: CommandRouter, context: "OrchestrationContext") -> None:
    restart = RestartBackend(supervisor=context.supervisor, window=context.current_window)
    router.register(CommandName.RESTART_BACKEND, lambda request: restart(request.payload))


def _setup_updater_interop(router: CommandRouter, context: "OrchestrationContext") -> None:
    updater = context.updater
    if hasattr(updater, "auto_download"):
        updater.auto_download = False
    if hasattr(updater, "logger"):
        updater.logger = DiagnosticLogger()

    check = CheckForUpdates(
        updater=updater,
        tracker=context.update_tracker,
        development=context.config.is_development,
    )
    download = DownloadUpdate(
        updater=updater,
        tracker=context.update_tracker,
        window=context.current_window,
    )
    install = InstallUpdate(
        updater=updater,
        tracker=context.update_tracker,
        timers=context.timers,
        delay_ms=context.config.install_delay_ms,
    )

    async def download_with_progress(request: CommandRequest) -> Optional[CommandResult]:
        return await download(
            lambda percent: request.progress(percent, channel=CommandName.DOWNLOAD_PROGRESS)
        )

    router.register(CommandName.CHECK_FOR_UPDATES, lambda request: check(request.payload))
    router.register(CommandName.DOWNLOAD_UPDATE, download_with_progress)
    router.register(CommandName.INSTALL_UPDATE, lambda request: install(request.payload))


__all__ = ["ipc_setup"]
