from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any

import pytest

from timesheet.sync.controller import SyncController
from timesheet.sync.fallback import LocalFallbackCache
from timesheet.sync.remote import HttpError, NetworkError
from timesheet.sync.scheduler import TaskHandle


@pytest.fixture(autouse=True)
def _isolate_timesheet_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("TIMESHEET_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("TIMESHEET_FALLBACK_DIR", str(tmp_path / "fallback"))
    monkeypatch.setenv("TIMESHEET_LOG", str(tmp_path / "timesheet.log"))
    for name in ("TIMESHEET_BIN_ID", "TIMESHEET_MASTER_KEY", "TIMESHEET_DESIGNERS"):
        monkeypatch.delenv(name, raising=False)
    yield
    root = logging.getLogger("timesheet")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    if hasattr(root, "_timesheet_configured"):
        delattr(root, "_timesheet_configured")


class ManualScheduler:
    """Scheduler driven by :meth:`advance` instead of wall-clock time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._tasks: list[dict[str, Any]] = []

    def _add(self, delay_s: float, fn: Callable[[], None], interval: float | None) -> TaskHandle:
        handle = TaskHandle()
        self._seq += 1
        self._tasks.append(
            {
                "due": self.now + delay_s,
                "seq": self._seq,
                "fn": fn,
                "handle": handle,
                "interval": interval,
            }
        )
        return handle

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle:
        return self._add(delay_s, fn, None)

    def call_every(self, interval_s: float, fn: Callable[[], None]) -> TaskHandle:
        return self._add(interval_s, fn, interval_s)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task["handle"].cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            self._tasks = [task for task in self._tasks if not task["handle"].cancelled]
            due = [task for task in self._tasks if task["due"] <= target]
            if not due:
                break
            task = min(due, key=lambda t: (t["due"], t["seq"]))
            self.now = task["due"]
            if task["interval"] is None:
                self._tasks.remove(task)
            else:
                task["due"] += task["interval"]
            task["fn"]()
        self.now = target


class ImmediateExecutor(Executor):
    def submit(self, fn, /, *args, **kwargs):  # type: ignore[override]
        future: Future[Any] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class FakeDocumentClient:
    def __init__(self, document: Any = None) -> None:
        self.document: Any = {} if document is None else document
        self.writes: list[dict[str, Any]] = []
        self.reads = 0
        self.fail_reads = False
        self.fail_writes = False

    def fetch_latest(self) -> Any:
        self.reads += 1
        if self.fail_reads:
            raise NetworkError("GET failed: offline")
        return copy.deepcopy(self.document)

    def overwrite(self, document: dict[str, Any]) -> None:
        if self.fail_writes:
            raise HttpError("PUT", 503)
        stored = copy.deepcopy(document)
        self.writes.append(stored)
        self.document = stored


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def client() -> FakeDocumentClient:
    return FakeDocumentClient()


@pytest.fixture
def fallback(tmp_path: Path) -> LocalFallbackCache:
    return LocalFallbackCache(tmp_path / "fallback")


@pytest.fixture
def make_controller(
    client: FakeDocumentClient, fallback: LocalFallbackCache, scheduler: ManualScheduler
) -> Callable[..., SyncController]:
    def _make(**kwargs: Any) -> SyncController:
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("write_executor", ImmediateExecutor())
        kwargs.setdefault("passwords", {"Rati": "Rati#2025", "Steven": "Steven#2025"})
        kwargs.setdefault("clock", lambda: 1_000_000)
        return SyncController(kwargs.pop("client", client), fallback, **kwargs)

    return _make


@pytest.fixture
def client_factory() -> type[FakeDocumentClient]:
    return FakeDocumentClient


@pytest.fixture
def immediate_executor() -> ImmediateExecutor:
    return ImmediateExecutor()
