from __future__ import annotations

import asyncio
import hashlib
from typing import Any, Dict, List, Optional, Sequence

import pytest

from conductor.adapters.api_errors import ApiServerError
from conductor.adapters.feed_updater import FeedUpdater, is_newer
from conductor.domain.errors import UpdaterError
from conductor.domain.ports import (
    EVENT_DOWNLOAD_PROGRESS,
    EVENT_UPDATE_AVAILABLE,
    EVENT_UPDATE_DOWNLOADED,
    EVENT_UPDATE_NOT_AVAILABLE,
    EVENT_UPDATER_ERROR,
)

FEED_URL = "https://updates.example.org/stable/latest.json"
ARTIFACT = b"installer-bytes" * 1000


class _ResponseStub:
    def __init__(self, payload: Any = None, status_code: int = 200, body: bytes = b"") -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = "" if payload is None else str(payload)
        self._body = body
        self.headers = {"Content-Length": str(len(body))} if body else {}
        self.closed = False

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def iter_content(self, chunk_size: int = 1024):
        for start in range(0, len(self._body), 4096):
            yield self._body[start:start + 4096]

    def close(self) -> None:
        self.closed = True


class _SessionStub:
    def __init__(self, responses: Dict[str, _ResponseStub]) -> None:
        self._responses = responses
        self.calls: List[Dict[str, Any]] = []

    def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        stream: bool = False,
    ) -> _ResponseStub:
        self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout, "stream": stream})
        return self._responses[url]

    def close(self) -> None:
        pass


def _updater(tmp_path, responses, *, current="1.0.0", launched=None, quits=None) -> FeedUpdater:
    updater = FeedUpdater(
        FEED_URL,
        current,
        tmp_path / "cache",
        token="secret",
        launch=(launched.append if launched is not None else None),
        on_quit=(lambda: quits.append(True)) if quits is not None else None,
    )
    updater.session.session = _SessionStub(responses)  # type: ignore[assignment]
    return updater


def _feed(version: str, sha256: str = "") -> Dict[str, str]:
    return {"version": version, "url": "app-setup.exe", "sha256": sha256}


def _record(updater: FeedUpdater, event: str) -> List[Any]:
    seen: List[Any] = []
    updater.on(event, lambda *args: seen.append(args[0] if args else None))
    return seen


@pytest.mark.parametrize(
    "candidate, current, expected",
    [
        ("1.2.0", "1.1.9", True),
        ("1.2", "1.2.0", False),
        ("v2.0.0-beta.1", "1.9.9", True),
        ("1.0.0", "1.0.1", False),
        ("1.10.0", "1.9.0", True),
    ],
)
def test_is_newer(candidate: str, current: str, expected: bool) -> None:
    assert is_newer(candidate, current) is expected


def test_check_emits_available_with_bearer_token(tmp_path) -> None:
    updater = _updater(tmp_path, {FEED_URL: _ResponseStub(_feed("1.1.0"))})
    available = _record(updater, EVENT_UPDATE_AVAILABLE)

    info = asyncio.run(updater.check_for_updates())

    assert info.version == "1.1.0"
    assert info.url == "https://updates.example.org/stable/app-setup.exe"
    assert [item.version for item in available] == ["1.1.0"]
    call = updater.session.session.calls[0]  # type: ignore[attr-defined]
    assert call["headers"]["Authorization"] == "Bearer secret"


def test_check_emits_not_available_for_same_version(tmp_path) -> None:
    updater = _updater(tmp_path, {FEED_URL: _ResponseStub(_feed("1.0.0"))})
    missing = _record(updater, EVENT_UPDATE_NOT_AVAILABLE)
    available = _record(updater, EVENT_UPDATE_AVAILABLE)

    asyncio.run(updater.check_for_updates())

    assert len(missing) == 1
    assert available == []


def test_once_listeners_fire_a_single_time(tmp_path) -> None:
    updater = _updater(tmp_path, {FEED_URL: _ResponseStub(_feed("2.0.0"))})
    seen: List[Any] = []
    updater.once(EVENT_UPDATE_AVAILABLE, seen.append)

    asyncio.run(updater.check_for_updates())
    asyncio.run(updater.check_for_updates())

    assert len(seen) == 1
    assert updater.listener_count(EVENT_UPDATE_AVAILABLE) == 0


def test_server_error_emits_error_event_and_raises(tmp_path) -> None:
    updater = _updater(tmp_path, {FEED_URL: _ResponseStub({"detail": "maintenance"}, status_code=503)})
    errors = _record(updater, EVENT_UPDATER_ERROR)

    with pytest.raises(ApiServerError):
        asyncio.run(updater.check_for_updates())

    assert len(errors) == 1


def test_check_without_feed_raises(tmp_path) -> None:
    updater = FeedUpdater("", "1.0.0", tmp_path)

    with pytest.raises(UpdaterError):
        asyncio.run(updater.check_for_updates())


def test_download_reports_monotonic_progress_and_verifies_checksum(tmp_path) -> None:
    digest = hashlib.sha256(ARTIFACT).hexdigest()
    artifact_url = "https://updates.example.org/stable/app-setup.exe"
    updater = _updater(
        tmp_path,
        {
            FEED_URL: _ResponseStub(_feed("1.1.0", digest)),
            artifact_url: _ResponseStub(body=ARTIFACT),
        },
    )
    progress = _record(updater, EVENT_DOWNLOAD_PROGRESS)
    downloaded = _record(updater, EVENT_UPDATE_DOWNLOADED)

    async def scenario():
        await updater.check_for_updates()
        return await updater.download_update()

    path = asyncio.run(scenario())

    percents = [item.percent for item in progress]
    assert percents
    assert percents == sorted(percents)
    assert percents[-1] == 100.0
    assert all(0.0 <= value <= 100.0 for value in percents)
    assert path.read_bytes() == ARTIFACT
    assert not path.with_name(path.name + ".part").exists()
    assert len(downloaded) == 1


def test_download_checksum_mismatch_fails(tmp_path) -> None:
    artifact_url = "https://updates.example.org/stable/app-setup.exe"
    updater = _updater(
        tmp_path,
        {
            FEED_URL: _ResponseStub(_feed("1.1.0", "0" * 64)),
            artifact_url: _ResponseStub(body=ARTIFACT),
        },
    )
    errors = _record(updater, EVENT_UPDATER_ERROR)

    async def scenario():
        await updater.check_for_updates()
        await updater.download_update()

    with pytest.raises(UpdaterError):
        asyncio.run(scenario())

    assert len(errors) == 1
    assert list((tmp_path / "cache").iterdir()) == []


def test_download_before_check_raises(tmp_path) -> None:
    updater = _updater(tmp_path, {})

    with pytest.raises(UpdaterError):
        asyncio.run(updater.download_update())


def test_quit_and_install_launches_downloaded_installer(tmp_path) -> None:
    artifact_url = "https://updates.example.org/stable/app-setup.exe"
    launched: List[Sequence[str]] = []
    quits: List[bool] = []
    updater = _updater(
        tmp_path,
        {
            FEED_URL: _ResponseStub(_feed("1.1.0")),
            artifact_url: _ResponseStub(body=ARTIFACT),
        },
        launched=launched,
        quits=quits,
    )

    with pytest.raises(UpdaterError):
        updater.quit_and_install()

    async def scenario():
        await updater.check_for_updates()
        return await updater.download_update()

    path = asyncio.run(scenario())
    updater.quit_and_install()

    assert launched == [[str(path)]]
    assert quits == [True]
