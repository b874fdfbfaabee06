"""File watching that feeds edited sources into a preview session."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Callable, Optional

from .observability import get_logger
from .session import PreviewSession

logger = get_logger("mica_preview.watcher")


class PollingWatcher:
    """Lightweight cross-platform polling watcher for a single source file."""

    def __init__(self, path: Path, *, interval: float = 0.25) -> None:
        self._path = Path(path).resolve()
        self._interval = interval
        self._listener: Optional[Callable[[str], None]] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._mtime = self._read_mtime()

    @property
    def path(self) -> Path:
        return self._path

    def watch(self, listener: Callable[[str], None]) -> None:
        self._listener = listener

    def start(self) -> None:
        if self._listener is None:
            raise RuntimeError("PollingWatcher requires a listener before starting")
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="mica-preview-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

    def poll(self) -> bool:
        """Check the file once; notify the listener and return True on change."""

        mtime = self._read_mtime()
        if mtime == self._mtime:
            return False
        self._mtime = mtime
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            text = ""
        if self._listener is not None:
            self._listener(text)
        return True

    def _read_mtime(self) -> float:
        try:
            return self._path.stat().st_mtime
        except FileNotFoundError:
            return 0.0

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll()
            except Exception:  # pragma: no cover - watcher should not crash
                logger.exception("Failed to read %s", self._path)
            if self._stop.wait(self._interval):  # pragma: no branch
                break


def attach_to_session(
    watcher: PollingWatcher,
    session: PreviewSession,
    loop: asyncio.AbstractEventLoop,
) -> None:
    """Forward file changes from the watcher thread onto the session's loop."""

    def _on_change(text: str) -> None:
        logger.debug("Source %s changed", watcher.path)
        loop.call_soon_threadsafe(_deliver, text)

    def _deliver(text: str) -> None:
        if not session.closed:
            session.set_text(text)

    watcher.watch(_on_change)


__all__ = ["PollingWatcher", "attach_to_session"]
