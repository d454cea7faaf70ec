"""Thin use cases delegating to the shell and dialog collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from conductor.domain.commands import CommandResult, Success
from conductor.domain.ports import DialogPort, ShellPort

_log = logging.getLogger(__name__)

TRUSTED_SCHEME = "https://"


@dataclass
class OpenUrl:
    """Open an https URL externally; anything else is logged and dropped."""

    shell: ShellPort

    async def __call__(self, url: Any) -> None:
        if not isinstance(url, str) or not url.startswith(TRUSTED_SCHEME):
            _log.error("Requested to open untrusted URL: %r", url)
            return None
        await self.shell.open_external(url)
        return None


@dataclass
class OpenPath:
    shell: ShellPort

    async def __call__(self, path: Any) -> None:
        if not isinstance(path, str) or not path.strip():
            _log.error("Requested to open invalid path: %r", path)
            return None
        error = await self.shell.open_path(path)
        if error:
            _log.error("Opening %s failed: %s", path, error)
        return None


@dataclass
class OpenDirectory:
    """Ask the user for a directory; resolves to the path or ``None``."""

    dialog: DialogPort

    async def __call__(self, title: Any) -> CommandResult:
        selected: Optional[str] = await self.dialog.select_directory(str(title or ""))
        return Success(selected)


__all__ = ["OpenDirectory", "OpenPath", "OpenUrl", "TRUSTED_SCHEME"]
