import asyncio

import pytest

from conductor.domain.commands import Failure, Success
from conductor.domain.errors import ProcessSpawnError, ProcessStopError
from conductor.domain.models import BackendOptions
from conductor.usecases.backend_supervisor import BackendSupervisor
from conductor.usecases.restart_backend import RestartBackend


class _ProcessStub:
    def __init__(self, pid):
        self.pid = pid
        self.returncode = None


class _LauncherStub:
    def __init__(self):
        self.spawned = []
        self.terminated = []
        self.stop_error = None
        self.spawn_error = None

    async def spawn(self, port, log_level):
        if self.spawn_error is not None:
            raise self.spawn_error
        self.spawned.append((port, log_level))
        return _ProcessStub(pid=1000 + len(self.spawned))

    async def terminate(self, process, *, force):
        self.terminated.append((process.pid, force))
        if self.stop_error is not None:
            raise self.stop_error
        process.returncode = -15


class _WindowStub:
    def set_progress_bar(self, fraction):
        pass


def _supervisor(launcher):
    return BackendSupervisor(launcher, allocate_port=lambda preferred: preferred, preferred_port=4242)


def test_start_records_handle_and_server_url():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    window = _WindowStub()

    handle = asyncio.run(supervisor.start(window, BackendOptions()))

    assert launcher.spawned == [(4242, "debug")]
    assert handle.window is window
    assert supervisor.server_url == "http://localhost:4242"


def test_second_start_while_running_is_refused():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)

    async def scenario():
        await supervisor.start(_WindowStub(), BackendOptions())
        await supervisor.start(_WindowStub(), BackendOptions())

    with pytest.raises(ProcessSpawnError):
        asyncio.run(scenario())
    assert len(launcher.spawned) == 1


def test_stop_without_backend_is_noop():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)

    asyncio.run(supervisor.stop())

    assert launcher.terminated == []
    assert supervisor.server_url is None


def test_failed_stop_keeps_handle():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    asyncio.run(supervisor.start(_WindowStub(), BackendOptions()))
    launcher.stop_error = ProcessStopError("still running")

    with pytest.raises(ProcessStopError):
        asyncio.run(supervisor.stop())

    assert supervisor.handle is not None
    assert supervisor.handle.pid == 1001


def test_restart_terminates_then_spawns_with_requested_level():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    window = _WindowStub()
    asyncio.run(supervisor.start(window, BackendOptions()))
    uc = RestartBackend(supervisor=supervisor, window=lambda: window)

    result = asyncio.run(uc({"loglevel": "INFO"}))

    assert result == Success(True)
    assert launcher.terminated == [(1001, True)]
    assert launcher.spawned[-1] == (4242, "info")
    assert supervisor.handle.pid == 1002


def test_restart_without_running_backend_just_starts():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    window = _WindowStub()
    uc = RestartBackend(supervisor=supervisor, window=lambda: window)

    result = asyncio.run(uc(None))

    assert result == Success(True)
    assert launcher.terminated == []
    assert launcher.spawned == [(4242, "debug")]


def test_restart_does_not_spawn_when_stop_fails():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    window = _WindowStub()
    asyncio.run(supervisor.start(window, BackendOptions()))
    launcher.stop_error = ProcessStopError("still running")
    uc = RestartBackend(supervisor=supervisor, window=lambda: window)

    result = asyncio.run(uc({}))

    assert isinstance(result, Failure)
    assert result.wire_value is False
    assert result.reason == "still running"
    assert len(launcher.spawned) == 1
    assert supervisor.handle.pid == 1001


def test_restart_without_window_is_a_recoverable_failure():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    uc = RestartBackend(supervisor=supervisor, window=lambda: None)

    result = asyncio.run(uc({}))

    assert isinstance(result, Failure)
    assert result.wire_value is False
    assert launcher.spawned == []


def test_restart_spawn_failure_reports_false():
    launcher = _LauncherStub()
    launcher.spawn_error = ProcessSpawnError("backend executable missing")
    supervisor = _supervisor(launcher)
    uc = RestartBackend(supervisor=supervisor, window=lambda: _WindowStub())

    result = asyncio.run(uc({}))

    assert result == Failure("backend executable missing", value=False)
    assert supervisor.handle is None


def test_restart_rejects_unknown_log_level():
    launcher = _LauncherStub()
    supervisor = _supervisor(launcher)
    uc = RestartBackend(supervisor=supervisor, window=lambda: _WindowStub())

    result = asyncio.run(uc({"loglevel": "chatty"}))

    assert isinstance(result, Failure)
    assert result.reason.startswith("Invalid parameters")
    assert launcher.spawned == []


class _SlowLauncherStub(_LauncherStub):
    """Launcher whose spawn and terminate suspend, like a real subprocess."""

    def __init__(self):
        super().__init__()
        self.processes = []

    async def spawn(self, port, log_level):
        await asyncio.sleep(0.01)
        process = await super().spawn(port, log_level)
        self.processes.append(process)
        return process

    async def terminate(self, process, *, force):
        await asyncio.sleep(0.01)
        await super().terminate(process, force=force)

    def live(self):
        return [p.pid for p in self.processes if p.returncode is None]


def test_overlapping_restarts_leave_one_live_process():
    launcher = _SlowLauncherStub()
    supervisor = _supervisor(launcher)
    window = _WindowStub()
    uc = RestartBackend(supervisor=supervisor, window=lambda: window)

    async def scenario():
        return await asyncio.gather(uc({}), uc({}), uc({}))

    results = asyncio.run(scenario())

    assert results == [Success(True)] * 3
    assert launcher.live() == [1003]
    assert supervisor.handle.pid == 1003
    assert [pid for pid, _force in launcher.terminated] == [1001, 1002]


def test_stop_waits_for_in_flight_start():
    launcher = _SlowLauncherStub()
    supervisor = _supervisor(launcher)

    async def scenario():
        start = asyncio.ensure_future(supervisor.start(_WindowStub(), BackendOptions()))
        await asyncio.sleep(0)
        await supervisor.stop(force=True)
        await start

    asyncio.run(scenario())

    assert launcher.terminated == [(1001, True)]
    assert launcher.live() == []
    assert supervisor.handle is None
