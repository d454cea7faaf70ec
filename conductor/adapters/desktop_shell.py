"""Default shell and dialog collaborators for a desktop session."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import sys
import webbrowser
from typing import Optional

from conductor.domain.errors import ConductorError


class DesktopShell:
    """Open URLs in the default browser and paths in the file manager."""

    def __init__(self) -> None:
        self._log = logging.getLogger(__name__)

    async def open_external(self, url: str) -> None:
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            raise ConductorError(f"No browser available to open {url}", code="OPEN_EXTERNAL_FAILED")

    async def open_path(self, path: str) -> str:
        """Open ``path``; return an error message, empty on success."""
        try:
            await asyncio.to_thread(self._open_path_blocking, path)
        except (OSError, subprocess.SubprocessError) as exc:
            self._log.error("Failed to open %s: %s", path, exc)
            return str(exc)
        return ""

    @staticmethod
    def _open_path_blocking(path: str) -> None:
        if sys.platform == "win32":
            os.startfile(path)  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.run(["open", path], check=True)
        else:
            subprocess.run(["xdg-open", path], check=True)


class TkDialogs:
    """Native directory picker through Tk's ``filedialog``."""

    async def select_directory(self, title: str) -> Optional[str]:
        return await asyncio.to_thread(self._ask_directory, title)

    @staticmethod
    def _ask_directory(title: str) -> Optional[str]:
        import tkinter as tk
        from tkinter import filedialog

        root = tk.Tk()
        root.withdraw()
        try:
            selected = filedialog.askdirectory(title=title, mustexist=True, parent=root)
        finally:
            root.destroy()
        return selected or None


__all__ = ["DesktopShell", "TkDialogs"]
