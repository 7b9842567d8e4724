from __future__ import annotations

import threading

from timesheet.sync.scheduler import Debouncer, ThreadScheduler


def test_debouncer_fires_once_after_quiet_period(scheduler) -> None:
    calls: list[float] = []
    debouncer = Debouncer(scheduler, 0.4, lambda: calls.append(scheduler.now))

    debouncer.trigger()
    scheduler.advance(0.2)
    debouncer.trigger()
    scheduler.advance(0.2)
    debouncer.trigger()
    assert debouncer.pending is True

    scheduler.advance(1.0)

    assert calls == [0.8]
    assert debouncer.pending is False


def test_debouncer_flush_runs_pending_task_now(scheduler) -> None:
    calls: list[str] = []
    debouncer = Debouncer(scheduler, 0.4, lambda: calls.append("fired"))

    assert debouncer.flush() is False
    debouncer.trigger()
    assert debouncer.flush() is True
    scheduler.advance(1.0)

    assert calls == ["fired"]


def test_debouncer_cancel_drops_pending_task(scheduler) -> None:
    calls: list[str] = []
    debouncer = Debouncer(scheduler, 0.4, lambda: calls.append("fired"))

    debouncer.trigger()
    debouncer.cancel()
    scheduler.advance(1.0)

    assert calls == []


def test_thread_scheduler_runs_and_cancels_tasks() -> None:
    sched = ThreadScheduler(name="test")
    fired = threading.Event()
    sched.call_later(0.01, fired.set)
    assert fired.wait(2.0)

    never = threading.Event()
    handle = sched.call_later(0.5, never.set)
    handle.cancel()
    assert handle.cancelled is True
    assert never.wait(0.7) is False


def test_thread_scheduler_recurring_task_survives_errors() -> None:
    sched = ThreadScheduler(name="test")
    ticks: list[int] = []
    done = threading.Event()

    def _tick() -> None:
        ticks.append(1)
        if len(ticks) >= 3:
            done.set()
        raise RuntimeError("tick failed")

    handle = sched.call_every(0.01, _tick)
    try:
        assert done.wait(2.0)
    finally:
        handle.cancel()
