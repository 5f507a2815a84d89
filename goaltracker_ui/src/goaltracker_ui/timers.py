# src/goaltracker_ui/timers.py

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Owns a single timer. Every trigger() restarts the window, so a burst of
    triggers runs the callback once, ``delay`` seconds after the last one.
    """

    def __init__(self, delay: float, callback: Callable[[], Any]):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        result = self._callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            # Keep a reference until done so the task is not garbage collected
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced callback failed", exc_info=task.exception())
