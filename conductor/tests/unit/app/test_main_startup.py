import asyncio

from conductor.app.main import start_backend
from conductor.app.settings import ConductorConfig
from conductor.domain.errors import ProcessSpawnError
from conductor.usecases.backend_supervisor import BackendSupervisor


class _ProcessStub:
    pid = 77
    returncode = None


class _LauncherStub:
    def __init__(self, error=None):
        self.error = error
        self.spawned = []

    async def spawn(self, port, log_level):
        if self.error is not None:
            raise self.error
        self.spawned.append((port, log_level))
        return _ProcessStub()

    async def terminate(self, process, *, force):
        process.returncode = 0


def _supervisor(launcher):
    return BackendSupervisor(launcher, allocate_port=lambda preferred: preferred)


def test_start_backend_uses_configured_level():
    launcher = _LauncherStub()
    config = ConductorConfig(backend_command=("backend",), backend_log_level="INFO")

    started = asyncio.run(start_backend(_supervisor(launcher), None, config))

    assert started is True
    assert launcher.spawned == [(4242, "info")]


def test_invalid_configured_level_is_logged_not_raised(caplog):
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    config = ConductorConfig(backend_command=("backend",), backend_log_level="chatty")

    started = asyncio.run(start_backend(supervisor, None, config))

    assert started is False
    assert launcher.spawned == []
    assert supervisor.handle is None
    assert "Backend failed to start: Invalid parameters" in caplog.text


def test_spawn_failure_is_logged_not_raised():
    launcher = _LauncherStub(error=ProcessSpawnError("backend executable missing"))

    started = asyncio.run(start_backend(_supervisor(launcher), None, ConductorConfig(backend_command=("x",))))

    assert started is False


def test_missing_backend_command_skips_start():
    launcher = _LauncherStub()

    started = asyncio.run(start_backend(_supervisor(launcher), None, ConductorConfig()))

    assert started is False
    assert launcher.spawned == []
