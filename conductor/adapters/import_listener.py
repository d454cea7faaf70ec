"""Short-lived local HTTP listener for the MetaMask address import.

The user's browser opens ``http://localhost:<port>``; the served page asks the
wallet extension for its accounts and posts them to ``/import``. The first
valid payload is relayed to the orchestration core, later posts get 409.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field, field_validator

from conductor.domain.errors import ListenerStartError
from conductor.domain.ports import AddressesCallback

DEFAULT_HOST = "127.0.0.1"

_log = logging.getLogger(__name__)

IMPORT_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Import MetaMask addresses</title></head>
<body>
<p id="status">Waiting for MetaMask...</p>
<script>
async function importAddresses() {
  const status = document.getElementById("status");
  if (!window.ethereum) {
    status.textContent = "MetaMask was not detected in this browser.";
    return;
  }
  try {
    const addresses = await window.ethereum.request({ method: "eth_requestAccounts" });
    const resp = await fetch("/import", {
      method: "POST",
      headers: { "Content-Type": "application/json" },
      body: JSON.stringify({ addresses })
    });
    status.textContent = resp.ok
      ? "Addresses sent. You can close this tab."
      : "The application did not accept the addresses.";
  } catch (e) {
    status.textContent = "Import failed: " + e.message;
  }
}
importAddresses();
</script>
</body>
</html>
"""


class ImportPayload(BaseModel):
    addresses: List[str] = Field(..., min_length=1)

    @field_validator("addresses")
    @classmethod
    def _strip_addresses(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("addresses must contain at least one non-empty entry")
        return cleaned


def build_import_app(on_addresses: AddressesCallback) -> FastAPI:
    """Create the listener app; ``on_addresses`` runs on the serving loop."""
    app = FastAPI(title="conductor-import", docs_url=None, redoc_url=None, openapi_url=None)
    state = {"delivered": False}

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return IMPORT_PAGE

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True, "delivered": state["delivered"]}

    @app.post("/import")
    async def receive(payload: ImportPayload) -> dict:
        if state["delivered"]:
            raise HTTPException(status_code=409, detail="Addresses already received.")
        state["delivered"] = True
        on_addresses(list(payload.addresses))
        return {"ok": True, "count": len(payload.addresses)}

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signal handling to the host app."""

    def install_signal_handlers(self) -> None:
        return None

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class UvicornImportListener:
    """Handle to a running listener; ``stop`` is idempotent."""

    def __init__(self, server: uvicorn.Server, task: asyncio.Task, sock: socket.socket, port: int) -> None:
        self.server = server
        self.task = task
        self.port = port
        self._sock = sock
        self._stopped = False

    @property
    def running(self) -> bool:
        return not self._stopped and not self.task.done()

    async def stop(self, timeout_s: float = 5.0) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(self.task), timeout=timeout_s)
        except asyncio.TimeoutError:
            _log.warning("Import listener on port %s did not stop in time", self.port)
            self.task.cancel()
        except Exception:
            _log.exception("Import listener on port %s failed while stopping", self.port)
        finally:
            self._sock.close()
        _log.debug("Import listener on port %s stopped", self.port)


async def start_import_listener(
    port: int,
    on_addresses: AddressesCallback,
    *,
    host: str = DEFAULT_HOST,
    startup_timeout_s: float = 5.0,
) -> UvicornImportListener:
    """Bind ``port`` and serve the import app until stopped.

    Raises:
        ListenerStartError: The socket could not be bound or the server did not
            come up; nothing is left running in that case.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenerStartError(f"Cannot bind import listener on {host}:{port}: {exc}") from exc

    config = uvicorn.Config(
        build_import_app(on_addresses),
        host=host,
        port=port,
        log_level="warning",
        lifespan="off",
    )
    server = _EmbeddedServer(config)
    task = asyncio.create_task(server.serve(sockets=[sock]))
    listener = UvicornImportListener(server, task, sock, port)

    loop = asyncio.get_running_loop()
    deadline = loop.time() + startup_timeout_s
    failure: Optional[str] = None
    while not server.started:
        if task.done():
            exc = None if task.cancelled() else task.exception()
            failure = str(exc) if exc else "server exited during startup"
            break
        if loop.time() >= deadline:
            failure = "startup timed out"
            break
        await asyncio.sleep(0.02)

    if failure is not None:
        await listener.stop(timeout_s=1.0)
        raise ListenerStartError(f"Import listener on port {port} failed: {failure}")
    _log.info("Import listener ready on http://localhost:%s", port)
    return listener


__all__ = ["ImportPayload", "UvicornImportListener", "build_import_app", "start_import_listener"]
