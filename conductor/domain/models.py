"""Value objects shared by the orchestration components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


class BackendOptions(BaseModel):
    """Options the UI passes when (re)starting the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    log_level: str = Field(default="debug", alias="loglevel")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text == "warn":
            text = "warning"
        if text not in _LOG_LEVELS:
            raise ValueError(f"unsupported log level: {value!r}")
        return text


class UpdateState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    AVAILABLE = "available"
    NOT_AVAILABLE = "not_available"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    INSTALLING = "installing"


BUSY_UPDATE_STATES: FrozenSet[UpdateState] = frozenset(
    {UpdateState.CHECKING, UpdateState.DOWNLOADING, UpdateState.INSTALLING}
)

# Busy states settle forward on success. A failed download or install returns
# to the settled state it started from. Download preconditions are enforced by
# the remote subsystem, so any settled state may enter DOWNLOADING.
UPDATE_TRANSITIONS: Dict[UpdateState, FrozenSet[UpdateState]] = {
    UpdateState.IDLE: frozenset({UpdateState.CHECKING, UpdateState.DOWNLOADING}),
    UpdateState.CHECKING: frozenset({UpdateState.AVAILABLE, UpdateState.NOT_AVAILABLE}),
    UpdateState.AVAILABLE: frozenset({UpdateState.CHECKING, UpdateState.DOWNLOADING}),
    UpdateState.NOT_AVAILABLE: frozenset({UpdateState.CHECKING, UpdateState.DOWNLOADING}),
    UpdateState.DOWNLOADING: frozenset(
        {UpdateState.DOWNLOADED, UpdateState.IDLE, UpdateState.AVAILABLE, UpdateState.NOT_AVAILABLE}
    ),
    UpdateState.DOWNLOADED: frozenset({UpdateState.INSTALLING, UpdateState.CHECKING}),
    UpdateState.INSTALLING: frozenset({UpdateState.DOWNLOADED}),
}


@dataclass(frozen=True)
class ProgressInfo:
    """One download progress tick reported by the updater."""

    percent: float
    transferred: int = 0
    total: int = 0
    bytes_per_second: float = 0.0


@dataclass(frozen=True)
class UpdateInfo:
    """Release metadata announced by the update feed."""

    version: str
    url: str = ""
    sha256: str = ""
    release_notes: str = ""


@dataclass
class ProcessHandle:
    """Live backend process together with the port it serves on."""

    process: Any
    port: int
    window: Any = None

    @property
    def pid(self) -> Optional[int]:
        return getattr(self.process, "pid", None)

    @property
    def running(self) -> bool:
        return getattr(self.process, "returncode", None) is None

    @property
    def server_url(self) -> str:
        return f"http://localhost:{self.port}"


@dataclass
class HandshakeSession:
    """One live import listener; ``token`` identifies the issuing request."""

    token: int
    port: int
    expires_at: float
    listener: Any = None
    timer_key: str = field(default="metamask-import")


@dataclass(frozen=True)
class SystemVersion:
    os: str
    arch: str
    os_version: str
    runtime_version: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "os": self.os,
            "arch": self.arch,
            "osVersion": self.os_version,
            "runtimeVersion": self.runtime_version,
        }


__all__ = [
    "BUSY_UPDATE_STATES",
    "BackendOptions",
    "HandshakeSession",
    "ProcessHandle",
    "ProgressInfo",
    "SystemVersion",
    "UPDATE_TRANSITIONS",
    "UpdateInfo",
    "UpdateState",
]
