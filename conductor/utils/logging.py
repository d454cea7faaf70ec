from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"
_LEVEL_ENV_VARS = ("CONDUCTOR_LOG_LEVEL",)
_DEBUG_FLAGS = ("CONDUCTOR_DEBUG",)

DIAGNOSTICS_LOGGER = "conductor.diagnostics"


def _coerce_level(value: Optional[str], fallback: int) -> int:
    if not value:
        return fallback
    text = value.strip()
    if not text:
        return fallback
    if text.isdigit():
        return int(text)
    upper = text.upper()
    if upper == "WARN":
        upper = "WARNING"
    candidate = getattr(logging, upper, None)
    if isinstance(candidate, int):
        return candidate
    return fallback


def _env_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_env_level() -> Optional[int]:
    for var in _LEVEL_ENV_VARS:
        value = os.getenv(var)
        if value:
            return _coerce_level(value, logging.INFO)
    if any(_env_truthy(os.getenv(flag)) for flag in _DEBUG_FLAGS):
        return logging.DEBUG
    return None


def configure_root(default_level: int | str = logging.INFO) -> int:
    """
    Configure the root logger with a compact format.

    Environment overrides:
      - CONDUCTOR_LOG_LEVEL: explicit log level
      - CONDUCTOR_DEBUG: truthy -> DEBUG
    """
    fallback = (
        _coerce_level(default_level, logging.INFO)
        if isinstance(default_level, str)
        else int(default_level)
    )
    effective = _resolve_env_level() or fallback

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=effective, format=_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)
    root.setLevel(effective)
    return effective


def attach_file_sink(path: str | Path) -> Optional[logging.Handler]:
    """
    Append diagnostic records to ``path``.

    Returns the handler, or ``None`` when the file cannot be opened; the
    diagnostic sink is best-effort and never blocks startup.
    """
    target = Path(path).expanduser()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    except OSError:
        logging.getLogger(__name__).warning("Diagnostic log unavailable at %s", target)
        return None
    handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
    logging.getLogger(DIAGNOSTICS_LOGGER).addHandler(handler)
    return handler


def log_to_file(message: object, level: int = logging.INFO) -> None:
    """Write one line to the diagnostic sink; failures are swallowed."""
    try:
        logging.getLogger(DIAGNOSTICS_LOGGER).log(level, "%s", message)
    except Exception:
        pass


class DiagnosticLogger:
    """Logger facade writing ``(level): message`` lines to the diagnostic sink."""

    def error(self, message: object = None) -> None:
        log_to_file(f"(error): {message}", logging.ERROR)

    def warn(self, message: object = None) -> None:
        log_to_file(f"(warn): {message}", logging.WARNING)

    warning = warn

    def info(self, message: object = None) -> None:
        log_to_file(f"(info): {message}", logging.INFO)

    def debug(self, message: object = None) -> None:
        log_to_file(f"(debug): {message}", logging.DEBUG)
