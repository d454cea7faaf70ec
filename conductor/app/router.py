"""Dispatch table from command names to handlers.

The router is the last catch boundary: it owns sending the terminal response,
so every dispatched request of a responding command produces exactly one
``Success``/``Failure`` no matter how its handler exits.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from conductor.domain.commands import CommandResult, Failure, Progress
from conductor.domain.ports import ChannelSender

NameLike = Union[str, Enum]


def _key(name: NameLike) -> str:
    return str(name.value) if isinstance(name, Enum) else str(name)


@dataclass
class CommandRequest:
    """One inbound command with a way to report progress."""

    name: str
    payload: Any
    sender: ChannelSender

    def progress(self, value: Any, *, channel: Optional[NameLike] = None) -> None:
        target = _key(channel) if channel is not None else self.name
        try:
            self.sender.send(target, Progress(value))
        except Exception:
            logging.getLogger(__name__).exception("Failed to send progress on %s", target)


Handler = Callable[[CommandRequest], Awaitable[Optional[CommandResult]]]
QueryHandler = Callable[[Any], Any]


@dataclass(frozen=True)
class _Route:
    handler: Handler
    responds: bool


class CommandRouter:
    """Route commands to handlers; holds no business state."""

    def __init__(self) -> None:
        self._log = logging.getLogger(__name__)
        self._routes: Dict[str, _Route] = {}
        self._queries: Dict[str, QueryHandler] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._sealed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(self, name: NameLike, handler: Handler, *, responds: bool = True) -> None:
        """Bind an async handler; ``responds=False`` marks fire-and-forget commands."""
        key = self._claim(name)
        self._routes[key] = _Route(handler=handler, responds=responds)

    def register_query(self, name: NameLike, handler: QueryHandler) -> None:
        """Bind a synchronous query answered through :meth:`query`."""
        key = self._claim(name)
        self._queries[key] = handler

    def seal(self) -> None:
        """Refuse further registrations once the router is exposed."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def names(self) -> Set[str]:
        return set(self._routes) | set(self._queries)

    def _claim(self, name: NameLike) -> str:
        key = _key(name)
        if self._sealed:
            raise RuntimeError(f"Router is sealed; cannot register {key}")
        if key in self._routes or key in self._queries:
            raise ValueError(f"Handler already registered for {key}")
        return key

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(self, name: NameLike, payload: Any, sender: ChannelSender) -> Optional[asyncio.Task]:
        """Start handling ``name``; returns the task, or ``None`` when dropped."""
        key = _key(name)
        route = self._routes.get(key)
        if route is None:
            self._log.warning("No handler registered for command %s, dropping", key)
            return None
        request = CommandRequest(name=key, payload=payload, sender=sender)
        task = asyncio.get_running_loop().create_task(self._run(route, request), name=f"command:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def query(self, name: NameLike, payload: Any = None) -> Any:
        """Answer a synchronous query; unknown names and errors yield ``None``."""
        key = _key(name)
        handler = self._queries.get(key)
        if handler is None:
            self._log.warning("No query handler registered for %s", key)
            return None
        try:
            return handler(payload)
        except Exception:
            self._log.exception("Query %s failed", key)
            return None

    async def _run(self, route: _Route, request: CommandRequest) -> None:
        try:
            result = await route.handler(request)
        except asyncio.CancelledError:
            if route.responds:
                self._send(request, Failure("cancelled"))
            raise
        except Exception as exc:
            self._log.exception("Command %s failed", request.name)
            result = Failure(str(exc) or type(exc).__name__)

        if not route.responds:
            return
        if result is None or not result.terminal:
            self._log.error("Command %s finished without a terminal result", request.name)
            result = Failure("no result")
        self._send(request, result)

    def _send(self, request: CommandRequest, result: CommandResult) -> None:
        try:
            request.sender.send(request.name, result)
        except Exception:
            self._log.exception("Failed to send response for %s", request.name)

    async def drain(self, *, cancel: bool = False) -> None:
        """Wait for in-flight commands, cancelling them first when asked."""
        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        if cancel:
            for task in pending:
                task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)


__all__ = ["CommandRequest", "CommandRouter", "Handler"]
