from __future__ import annotations

import platform
import sys
from typing import Any

from conductor.domain.commands import CommandResult, Success
from conductor.domain.models import SystemVersion


def read_system_version() -> SystemVersion:
    return SystemVersion(
        os=sys.platform,
        arch=platform.machine() or "unknown",
        os_version=platform.release() or platform.version(),
        runtime_version=platform.python_version(),
    )


async def version_info(payload: Any = None) -> CommandResult:
    """Handler for ``version-info``."""
    return Success(read_system_version().to_payload())


__all__ = ["read_system_version", "version_info"]
