"""Cancellable one-shot and recurring tasks.

Debounced saves replace their pending task; the chat poller is a recurring
task. Tests swap :class:`ThreadScheduler` for a manual clock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TaskHandle:
    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self._cancelled = threading.Event()
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        if self._on_cancel is not None:
            self._on_cancel()


class Scheduler(Protocol):
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle: ...

    def call_every(self, interval_s: float, fn: Callable[[], None]) -> TaskHandle: ...


def _run_logged(fn: Callable[[], None], name: str) -> None:
    try:
        fn()
    except Exception:
        logger.exception("scheduled task %s failed", name)


class ThreadScheduler:
    def __init__(self, name: str = "timesheet") -> None:
        self.name = name

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle:
        timer = threading.Timer(delay_s, lambda: _run_logged(fn, f"{self.name}-later"))
        timer.daemon = True
        handle = TaskHandle(on_cancel=timer.cancel)
        timer.start()
        return handle

    def call_every(self, interval_s: float, fn: Callable[[], None]) -> TaskHandle:
        handle = TaskHandle()

        def _runner() -> None:
            while not handle._cancelled.wait(interval_s):
                _run_logged(fn, f"{self.name}-every")

        thread = threading.Thread(target=_runner, name=f"{self.name}-every", daemon=True)
        thread.start()
        return handle


class Debouncer:
    """Run ``fn`` once after ``delay_s`` with no further :meth:`trigger` calls."""

    def __init__(self, scheduler: Scheduler, delay_s: float, fn: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self._delay_s = delay_s
        self._fn = fn
        self._lock = threading.Lock()
        self._handle: TaskHandle | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None

    def trigger(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            self._handle = self._scheduler.call_later(
                self._delay_s, lambda: self._fire(generation)
            )

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A superseded timer may already be running when it is cancelled.
            if generation != self._generation or self._handle is None:
                return
            self._handle = None
        self._fn()

    def flush(self) -> bool:
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
            self._handle = None
            self._generation += 1
        self._fn()
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._generation += 1
