"""Line-delimited JSON transport between the UI process and the router.

Inbound lines look like ``{"channel": "restart-backend", "payload": {...}}``;
``"sync": true`` asks for a query answer instead of a dispatched command.
Outbound lines carry ``channel``, ``kind`` and ``value`` (plus ``reason`` for
failures). Window progress is reported on the ``window-progress`` channel.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import threading
from typing import IO, TYPE_CHECKING, Any, Dict, Optional

from conductor.domain.commands import CommandResult, Failure, result_kind

if TYPE_CHECKING:
    from conductor.app.router import CommandRouter

WINDOW_PROGRESS_CHANNEL = "window-progress"


class StdioChannel:
    """ChannelSender and WindowPort backed by a pair of text streams."""

    def __init__(self, reader: Optional[IO[str]] = None, writer: Optional[IO[str]] = None) -> None:
        self._log = logging.getLogger(__name__)
        self._reader = reader if reader is not None else sys.stdin
        self._writer = writer if writer is not None else sys.stdout
        self._write_lock = threading.Lock()

    # ChannelSender
    def send(self, channel: str, result: CommandResult) -> None:
        message: Dict[str, Any] = {
            "channel": channel,
            "kind": result_kind(result),
            "value": result.wire_value,
        }
        if isinstance(result, Failure):
            message["reason"] = result.reason
        self._write(message)

    # WindowPort
    def set_progress_bar(self, fraction: float) -> None:
        self._write({"channel": WINDOW_PROGRESS_CHANNEL, "kind": "progress", "value": fraction})

    def _write(self, message: Dict[str, Any]) -> None:
        line = json.dumps(message, ensure_ascii=False, default=str)
        with self._write_lock:
            self._writer.write(line + "\n")
            self._writer.flush()

    def handle_line(self, router: "CommandRouter", line: str) -> Optional[asyncio.Task]:
        """Parse one inbound line and hand it to the router."""
        line = line.strip()
        if not line:
            return None
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            self._log.warning("Ignoring malformed line: %s", line[:200])
            return None
        if not isinstance(message, dict) or not isinstance(message.get("channel"), str):
            self._log.warning("Ignoring message without a channel: %s", line[:200])
            return None

        channel = message["channel"]
        payload = message.get("payload")
        if message.get("sync"):
            self._write({"channel": channel, "kind": "return", "value": router.query(channel, payload)})
            return None
        return router.dispatch(channel, payload, self)

    async def serve(self, router: "CommandRouter", stop: asyncio.Event) -> None:
        """Feed inbound lines to ``router`` until EOF or ``stop`` is set."""
        loop = asyncio.get_running_loop()
        queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

        def push(item: Optional[str]) -> None:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, item)
            except RuntimeError:
                # Loop already closed during shutdown.
                pass

        def read_lines() -> None:
            for raw in self._reader:
                push(raw)
            push(None)

        threading.Thread(target=read_lines, name="stdio-reader", daemon=True).start()

        stop_wait = asyncio.ensure_future(stop.wait())
        try:
            while not stop.is_set():
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                if getter not in done:
                    getter.cancel()
                    break
                line = getter.result()
                if line is None:
                    self._log.info("Input stream closed")
                    break
                self.handle_line(router, line)
        finally:
            stop_wait.cancel()


__all__ = ["StdioChannel", "WINDOW_PROGRESS_CHANNEL"]
