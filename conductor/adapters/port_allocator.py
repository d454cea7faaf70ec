"""Local port probing for the backend and the import handshake listener."""

from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from conductor.domain.errors import NoPortAvailableError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_SCAN_LIMIT = 100
MAX_PORT = 65535

PortProbe = Callable[[str, int], bool]

_log = logging.getLogger(__name__)


def port_is_free(host: str, port: int) -> bool:
    """Return True when ``port`` can be bound on ``host`` right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def allocate_port(
    preferred: int,
    *,
    host: str = DEFAULT_HOST,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    probe: Optional[PortProbe] = None,
) -> int:
    """Return the first free port at or after ``preferred``.

    Raises:
        NoPortAvailableError: No port in ``[preferred, preferred + scan_limit)``
            could be bound.
    """
    if not 0 < preferred <= MAX_PORT:
        raise NoPortAvailableError(f"Invalid preferred port: {preferred}")
    check = probe or port_is_free
    last = min(preferred + max(1, scan_limit), MAX_PORT + 1)
    for port in range(preferred, last):
        if check(host, port):
            if port != preferred:
                _log.debug("Port %s busy, using %s", preferred, port)
            return port
    raise NoPortAvailableError(f"No free port between {preferred} and {last - 1}")


__all__ = ["allocate_port", "port_is_free"]
