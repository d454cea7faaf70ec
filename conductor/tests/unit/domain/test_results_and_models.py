import pytest
from pydantic import ValidationError

from conductor.domain.commands import CommandName, Failure, Progress, Success, result_kind
from conductor.domain.models import BackendOptions, ProcessHandle, SystemVersion


class _ProcessStub:
    pid = 77
    returncode = None


def test_result_kinds_and_terminality():
    assert (result_kind(Success(1)), Success(1).terminal) == ("success", True)
    assert (result_kind(Failure("x")), Failure("x").terminal) == ("failure", True)
    assert (result_kind(Progress(3)), Progress(3).terminal) == ("progress", False)


def test_failure_keeps_boolean_wire_value_by_default():
    failure = Failure("backend did not stop")

    assert failure.wire_value is False
    assert Failure("gone", value={"error": "gone"}).wire_value == {"error": "gone"}


def test_command_names_match_channels():
    assert CommandName.RESTART_BACKEND.value == "restart-backend"
    assert CommandName("metamask-import") is CommandName.METAMASK_IMPORT
    assert len({name.value for name in CommandName}) == len(list(CommandName))


@pytest.mark.parametrize(
    "raw, expected",
    [({}, "debug"), ({"loglevel": "INFO"}, "info"), ({"loglevel": "warn"}, "warning"), ({"log_level": "error"}, "error")],
)
def test_backend_options_normalize_level(raw, expected):
    assert BackendOptions.model_validate(raw).log_level == expected


def test_backend_options_reject_unknown_level():
    with pytest.raises(ValidationError):
        BackendOptions.model_validate({"loglevel": "verbose"})


def test_process_handle_exposes_url_and_liveness():
    proc = _ProcessStub()
    handle = ProcessHandle(process=proc, port=4243)

    assert handle.server_url == "http://localhost:4243"
    assert handle.pid == 77
    assert handle.running is True
    proc.returncode = 0
    assert handle.running is False


def test_system_version_payload_uses_ui_keys():
    payload = SystemVersion("linux", "x86_64", "6.1", "3.12.1").to_payload()

    assert payload == {
        "os": "linux",
        "arch": "x86_64",
        "osVersion": "6.1",
        "runtimeVersion": "3.12.1",
    }
