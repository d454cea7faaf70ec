"""Process entry point: wire adapters, start the backend and serve commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from conductor.adapters.backend_process import SubprocessLauncher
from conductor.adapters.desktop_shell import DesktopShell, TkDialogs
from conductor.adapters.feed_updater import FeedUpdater
from conductor.adapters.http_client import HttpConfig
from conductor.adapters.stdio_channel import StdioChannel
from conductor.app.context import OrchestrationContext
from conductor.app.settings import ConductorConfig, load_config
from conductor.domain.errors import ConductorError
from conductor.domain.models import BackendOptions
from conductor.domain.ports import WindowPort
from conductor.usecases.backend_supervisor import BackendSupervisor
from conductor.usecases.error_mapping import map_error
from conductor.utils import logging as logging_utils


def build_context(
    config: ConductorConfig,
    channel: StdioChannel,
    stop: asyncio.Event,
) -> OrchestrationContext:
    loop = asyncio.get_running_loop()

    async def shutdown() -> None:
        stop.set()

    updater = FeedUpdater(
        config.update_feed_url,
        config.current_version,
        config.update_cache_dir,
        http=HttpConfig(
            request_timeout_s=config.request_timeout_s,
            download_timeout_s=config.download_timeout_s,
            retries=config.retries,
        ),
        token=config.update_token or None,
        on_quit=lambda: loop.call_soon_threadsafe(stop.set),
    )
    launcher = SubprocessLauncher(config.backend_command, stop_grace_s=config.stop_grace_s)
    return OrchestrationContext(
        config,
        window=channel,
        shell=DesktopShell(),
        dialog=TkDialogs(),
        updater=updater,
        launcher=launcher,
        shutdown=shutdown,
    )


async def start_backend(supervisor: BackendSupervisor, window: WindowPort, config: ConductorConfig) -> bool:
    """Start the configured backend; failures are logged, never raised."""
    log = logging.getLogger(__name__)
    if not config.backend_command:
        log.warning("No backend command configured; backend not started")
        return False
    try:
        options = BackendOptions(log_level=config.backend_log_level)
        await supervisor.start(window, options)
    except (ConductorError, ValidationError) as exc:
        mapped = map_error(exc, default_code="BACKEND_START_FAILED")
        log.error("Backend failed to start: %s", mapped.message)
        logging_utils.log_to_file(f"Backend failed to start: {mapped.message}")
        return False
    return True


async def run(config: Optional[ConductorConfig] = None) -> int:
    log = logging.getLogger(__name__)
    config = config or load_config()
    if config.diagnostic_log_path:
        logging_utils.attach_file_sink(config.diagnostic_log_path)

    stop = asyncio.Event()
    channel = StdioChannel()
    context = build_context(config, channel, stop)
    router = context.init()

    try:
        await start_backend(context.supervisor, channel, config)
        await channel.serve(router, stop)
    finally:
        await context.teardown()
        context.updater.close()
    log.info("Conductor stopped")
    return 0


def main() -> int:
    logging_utils.configure_root()
    try:
        return asyncio.run(run())
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
