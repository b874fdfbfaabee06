"""Delay-and-coalesce primitive running on the asyncio event loop."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, AsyncIterator, Callable, Generic, List, Optional, Set, TypeVar

from .observability import get_logger

T = TypeVar("T")

logger = get_logger("mica_preview.debounce")

_MISSING = object()


class Debouncer(Generic[T]):
    """Emit only the most recent observed value after a quiet period.

    Every :meth:`observe` call cancels the emission armed by the previous one.
    Emitted values go to the optional ``callback`` (sync or async) and to all
    active :meth:`values` iterators. Instances are fully independent.
    """

    def __init__(
        self,
        quiet_period: float,
        callback: Optional[Callable[[T], Any]] = None,
        *,
        name: str = "debouncer",
    ) -> None:
        if quiet_period < 0:
            raise ValueError("quiet_period must not be negative")
        self.quiet_period = quiet_period
        self.name = name
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Any = _MISSING
        self._subscribers: List[asyncio.Queue] = []
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def observe(self, value: T, quiet_period: Optional[float] = None) -> None:
        delay = self.quiet_period if quiet_period is None else quiet_period
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._pending = value
        self._handle = loop.call_later(delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = _MISSING

    def flush(self) -> None:
        """Emit the pending value now, if there is one."""

        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    async def values(self) -> AsyncIterator[T]:
        """Iterate over emissions from now on; each call is a fresh subscription."""

        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(queue)

    def _fire(self) -> None:
        value = self._pending
        self._handle = None
        self._pending = _MISSING
        if value is _MISSING:
            return
        for queue in list(self._subscribers):
            queue.put_nowait(value)
        if self._callback is None:
            return
        try:
            result = self._callback(value)
        except Exception:
            logger.exception(
                "Debounced callback failed",
                extra={"mica_event": "debounce_error", "mica_data": {"debouncer": self.name}},
            )
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Debounced callback failed: %s",
                exc,
                exc_info=exc,
                extra={"mica_event": "debounce_error", "mica_data": {"debouncer": self.name}},
            )


__all__ = ["Debouncer"]
