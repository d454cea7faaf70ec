from __future__ import annotations

import asyncio
import socket
from typing import List

import httpx
import pytest
from fastapi.testclient import TestClient

from conductor.adapters.import_listener import build_import_app, start_import_listener
from conductor.adapters.port_allocator import allocate_port
from conductor.domain.errors import ListenerStartError


def _client(received: List[List[str]]) -> TestClient:
    return TestClient(build_import_app(received.append))


def test_index_serves_wallet_page() -> None:
    client = _client([])

    resp = client.get("/")

    assert resp.status_code == 200
    assert "eth_requestAccounts" in resp.text
    assert resp.headers["content-type"].startswith("text/html")


def test_first_payload_is_relayed_and_repeats_conflict() -> None:
    received: List[List[str]] = []
    client = _client(received)

    first = client.post("/import", json={"addresses": [" 0xabc ", "0xdef"]})
    second = client.post("/import", json={"addresses": ["0x123"]})

    assert first.status_code == 200
    assert first.json() == {"ok": True, "count": 2}
    assert second.status_code == 409
    assert received == [["0xabc", "0xdef"]]
    assert client.get("/health").json() == {"ok": True, "delivered": True}


@pytest.mark.parametrize(
    "body",
    [{}, {"addresses": []}, {"addresses": ["   "]}, {"addresses": "0xabc"}],
)
def test_invalid_payloads_are_rejected(body) -> None:
    received: List[List[str]] = []
    client = _client(received)

    resp = client.post("/import", json=body)

    assert resp.status_code == 422
    assert received == []
    assert client.get("/health").json()["delivered"] is False


def test_started_listener_relays_and_stops() -> None:
    received: List[List[str]] = []
    port = allocate_port(41500)

    async def scenario() -> None:
        listener = await start_import_listener(port, received.append)
        try:
            assert listener.running
            async with httpx.AsyncClient(trust_env=False) as client:
                resp = await client.post(
                    f"http://127.0.0.1:{port}/import", json={"addresses": ["0xfeed"]}
                )
            assert resp.status_code == 200
        finally:
            await listener.stop()
            await listener.stop()
        assert not listener.running

    asyncio.run(scenario())

    assert received == [["0xfeed"]]


def test_busy_port_raises_listener_start_error() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        taken = busy.getsockname()[1]

        with pytest.raises(ListenerStartError):
            asyncio.run(start_import_listener(taken, lambda addresses: None))
