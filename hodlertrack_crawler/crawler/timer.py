"""
Cancellable periodic timer on the running event loop.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from hodlertrack_crawler.crawler_logging import get_logger

logger = get_logger(__name__)


class PeriodicTimer:
    """
    Calls `callback` every `interval_sec` until cancel().

    The callback is synchronous and must not block; it is checked against the
    cancelled flag after every sleep, so a tick that was already due never
    fires once cancel() has returned.
    """

    def __init__(self, interval_sec: float, callback: Callable[[], None]) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self._interval = interval_sec
        self._callback = callback
        self._cancelled = False
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_sec(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done() and not self._cancelled

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self._interval)
            if self._cancelled:
                return
            try:
                self._callback()
            except Exception as e:
                logger.exception("timer_callback_failed", error=str(e))
