from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from conductor import __version__


def _default_cache_dir() -> str:
    return str(Path.home() / ".cache" / "conductor" / "updates")


@dataclass(frozen=True)
class ConductorConfig:
    """Typed runtime settings resolved once at startup."""

    environment: str = "development"
    backend_command: Tuple[str, ...] = ()
    backend_port: int = 4242
    backend_log_level: str = "debug"
    stop_grace_s: float = 10.0
    update_feed_url: str = ""
    update_token: str = ""
    current_version: str = __version__
    update_cache_dir: str = field(default_factory=_default_cache_dir)
    request_timeout_s: int = 10
    download_timeout_s: int = 60
    retries: int = 2
    import_port: int = 40000
    import_timeout_ms: int = 120_000
    install_delay_ms: int = 5000
    diagnostic_log_path: str = ""
    debug_settings: Dict[str, bool] = field(default_factory=dict)

    @property
    def is_development(self) -> bool:
        return self.environment != "production"


_ENV_KEYS: Dict[str, str] = {
    "CONDUCTOR_BACKEND_PORT": "backend_port",
    "CONDUCTOR_BACKEND_LOGLEVEL": "backend_log_level",
    "CONDUCTOR_STOP_GRACE_S": "stop_grace_s",
    "CONDUCTOR_UPDATE_FEED_URL": "update_feed_url",
    "CONDUCTOR_UPDATE_TOKEN": "update_token",
    "CONDUCTOR_APP_VERSION": "current_version",
    "CONDUCTOR_UPDATE_CACHE": "update_cache_dir",
    "CONDUCTOR_REQUEST_TIMEOUT_S": "request_timeout_s",
    "CONDUCTOR_DOWNLOAD_TIMEOUT_S": "download_timeout_s",
    "CONDUCTOR_RETRIES": "retries",
    "CONDUCTOR_IMPORT_PORT": "import_port",
    "CONDUCTOR_IMPORT_TIMEOUT_MS": "import_timeout_ms",
    "CONDUCTOR_INSTALL_DELAY_MS": "install_delay_ms",
    "CONDUCTOR_LOG_FILE": "diagnostic_log_path",
}


def _coerce(name: str, raw: str, template: Any) -> Any:
    if isinstance(template, int):
        try:
            value = int(raw)
        except ValueError as exc:
            raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
        if value < 0:
            raise ValueError(f"{name} must be non-negative")
        return value
    if isinstance(template, float):
        try:
            value = float(raw)
        except ValueError as exc:
            raise ValueError(f"{name} must be a number, got {raw!r}") from exc
        if value < 0:
            raise ValueError(f"{name} must be non-negative")
        return value
    return raw.strip()


def _parse_debug_settings(raw: Optional[str]) -> Dict[str, bool]:
    flags: Dict[str, bool] = {}
    for item in (raw or "").split(","):
        name = item.strip()
        if name:
            flags[name] = True
    return flags


def load_config(environ: Optional[Mapping[str, str]] = None) -> ConductorConfig:
    """
    Build the configuration from environment variables.

    ``CONDUCTOR_ENV`` (falling back to ``NODE_ENV``) selects the environment;
    anything other than ``production`` counts as development and skips the
    remote update check. ``CONDUCTOR_BACKEND_CMD`` is split shell-style.
    ``CONDUCTOR_DEBUG_SETTINGS`` is a comma list of enabled debug flags.
    """
    env = os.environ if environ is None else environ
    config = ConductorConfig()
    environment = env.get("CONDUCTOR_ENV") or env.get("NODE_ENV") or config.environment
    config = replace(config, environment=environment.strip().lower())

    command = env.get("CONDUCTOR_BACKEND_CMD")
    if command:
        config = replace(config, backend_command=tuple(shlex.split(command)))

    overrides: Dict[str, Any] = {}
    for var, attr in _ENV_KEYS.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        overrides[attr] = _coerce(var, raw, getattr(config, attr))
    if overrides:
        config = replace(config, **overrides)

    debug = _parse_debug_settings(env.get("CONDUCTOR_DEBUG_SETTINGS"))
    if debug:
        config = replace(config, debug_settings=debug)
    return config


__all__ = ["ConductorConfig", "load_config"]
