"""Release-feed adapter implementing the updater port.

The feed is a JSON document (``latest.json``) describing the newest release::

    {"version": "1.4.0", "url": "https://.../app-1.4.0.exe", "sha256": "..."}

Checks and downloads run the blocking ``requests`` calls through
``asyncio.to_thread``; events are always emitted on the event loop thread.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

from conductor.adapters.api_errors import raise_for_response
from conductor.adapters.http_client import HttpConfig, RetryingSession
from conductor.domain.errors import UpdaterError
from conductor.domain.models import ProgressInfo, UpdateInfo
from conductor.domain.ports import (
    EVENT_DOWNLOAD_PROGRESS,
    EVENT_UPDATE_AVAILABLE,
    EVENT_UPDATE_DOWNLOADED,
    EVENT_UPDATE_NOT_AVAILABLE,
    EVENT_UPDATER_ERROR,
    UpdaterListener,
)

_CHUNK_SIZE = 64 * 1024

Launcher = Callable[[Sequence[str]], Any]


def _version_key(text: str) -> Tuple[int, ...]:
    parts = re.findall(r"\d+", str(text or "").split("+", 1)[0].split("-", 1)[0])
    return tuple(int(part) for part in parts) or (0,)


def is_newer(candidate: str, current: str) -> bool:
    """Return whether ``candidate`` is a later release than ``current``."""
    left = _version_key(candidate)
    right = _version_key(current)
    width = max(len(left), len(right))
    return left + (0,) * (width - len(left)) > right + (0,) * (width - len(right))


def _launch_detached(argv: Sequence[str]) -> subprocess.Popen:
    kwargs: Dict[str, Any] = {"close_fds": True}
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True
    return subprocess.Popen(list(argv), **kwargs)


class FeedUpdater:
    """Event-emitting client for the remote update-distribution feed."""

    def __init__(
        self,
        feed_url: str,
        current_version: str,
        cache_dir: str | Path,
        *,
        http: Optional[HttpConfig] = None,
        token: Optional[str] = None,
        launch: Optional[Launcher] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ) -> None:
        self.feed_url = feed_url
        self.current_version = current_version
        self.cache_dir = Path(cache_dir).expanduser()
        self.cfg = http or HttpConfig()
        self.session = RetryingSession(token, self.cfg)
        self.auto_download = False
        self.logger: Any = logging.getLogger(__name__)
        self._launch = launch or _launch_detached
        self._on_quit = on_quit
        self._listeners: Dict[str, List[Tuple[UpdaterListener, bool]]] = {}
        self._available: Optional[UpdateInfo] = None
        self._downloaded: Optional[Path] = None

    # ------------------------------------------------------------------
    # Event subscription
    # ------------------------------------------------------------------
    def on(self, event: str, listener: UpdaterListener) -> None:
        self._listeners.setdefault(event, []).append((listener, False))

    def once(self, event: str, listener: UpdaterListener) -> None:
        self._listeners.setdefault(event, []).append((listener, True))

    def off(self, event: str, listener: UpdaterListener) -> None:
        entries = self._listeners.get(event)
        if not entries:
            return
        self._listeners[event] = [entry for entry in entries if entry[0] is not listener]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def _emit(self, event: str, *args: Any) -> None:
        entries = list(self._listeners.get(event, ()))
        if not entries:
            return
        self._listeners[event] = [entry for entry in entries if not entry[1]]
        for listener, _once in entries:
            try:
                listener(*args)
            except Exception as exc:
                self.logger.error(f"Listener for {event} failed: {exc}")

    # ------------------------------------------------------------------
    # Update operations
    # ------------------------------------------------------------------
    async def check_for_updates(self) -> Optional[UpdateInfo]:
        """Query the feed once and emit availability events."""
        if not self.feed_url:
            raise UpdaterError("No update feed configured.")
        self.logger.info(f"Checking for update at {self.feed_url}")
        try:
            info = await asyncio.to_thread(self._fetch_feed)
        except Exception as exc:
            self._emit(EVENT_UPDATER_ERROR, exc)
            raise
        if is_newer(info.version, self.current_version):
            self._available = info
            self.logger.info(f"Found version {info.version} (current {self.current_version})")
            self._emit(EVENT_UPDATE_AVAILABLE, info)
        else:
            self._available = None
            self.logger.info(f"Update for version {self.current_version} is not available")
            self._emit(EVENT_UPDATE_NOT_AVAILABLE, info)
        return info

    async def download_update(self) -> Path:
        """Download the release found by the last check, emitting progress."""
        info = self._available
        if info is None:
            raise UpdaterError("No update available; check for updates first.")
        loop = asyncio.get_running_loop()

        def report(progress: ProgressInfo) -> None:
            loop.call_soon_threadsafe(self._emit, EVENT_DOWNLOAD_PROGRESS, progress)

        try:
            path = await asyncio.to_thread(self._download, info, report)
        except Exception as exc:
            self._emit(EVENT_UPDATER_ERROR, exc)
            raise
        self._downloaded = path
        self.logger.info(f"Update {info.version} downloaded to {path}")
        self._emit(EVENT_UPDATE_DOWNLOADED, info)
        return path

    def quit_and_install(self) -> None:
        """Launch the downloaded installer and ask the application to quit."""
        if self._downloaded is None or not self._downloaded.exists():
            raise UpdaterError("No downloaded update to install.")
        self.logger.info(f"Installing {self._downloaded}")
        self._launch([str(self._downloaded)])
        if self._on_quit is not None:
            self._on_quit()

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    def _fetch_feed(self) -> UpdateInfo:
        resp = self.session.get(self.feed_url, timeout=self.cfg.request_timeout_s)
        raise_for_response(resp, "check_for_updates")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpdaterError("Update feed returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise UpdaterError("Update feed must be a JSON object.")
        version = str(payload.get("version") or "").strip()
        if not version:
            raise UpdaterError("Update feed is missing 'version'.")
        url = str(payload.get("url") or payload.get("path") or "").strip()
        return UpdateInfo(
            version=version,
            url=urljoin(self.feed_url, url) if url else "",
            sha256=str(payload.get("sha256") or "").strip().lower(),
            release_notes=str(payload.get("releaseNotes") or payload.get("release_notes") or ""),
        )

    def _download(self, info: UpdateInfo, report: Callable[[ProgressInfo], None]) -> Path:
        if not info.url:
            raise UpdaterError(f"Release {info.version} has no download url.")
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        name = os.path.basename(urlparse(info.url).path) or f"update-{info.version}"
        target = self.cache_dir / name
        partial = target.with_name(target.name + ".part")

        resp = self.session.get(
            info.url,
            accept="application/octet-stream",
            timeout=self.cfg.download_timeout_s,
            stream=True,
        )
        raise_for_response(resp, "download_update")
        total = int(resp.headers.get("Content-Length") or 0)
        digest = hashlib.sha256()
        transferred = 0
        last_percent = 0.0
        started = time.monotonic()
        try:
            with partial.open("wb") as handle:
                for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    digest.update(chunk)
                    transferred += len(chunk)
                    if total:
                        percent = min(100.0, max(last_percent, transferred * 100.0 / total))
                        last_percent = percent
                        elapsed = max(time.monotonic() - started, 1e-6)
                        report(ProgressInfo(percent, transferred, total, transferred / elapsed))
        finally:
            resp.close()

        if info.sha256 and digest.hexdigest() != info.sha256:
            partial.unlink(missing_ok=True)
            raise UpdaterError(f"Checksum mismatch for {name}.")
        if last_percent < 100.0:
            report(ProgressInfo(100.0, transferred, total or transferred))
        partial.replace(target)
        return target


__all__ = ["FeedUpdater", "is_newer"]
