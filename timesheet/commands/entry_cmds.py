from __future__ import annotations

from rich import print
from rich.markup import escape

from timesheet.sync import SyncController
from timesheet.utils import format_duration, iso_week_range, now_ms, parse_manual_datetime

from .common import exit_on_local_error, format_entry, resolve_entry_id


def status_cmd(controller: SyncController) -> None:
    """Print a summary of the loaded document."""

    doc = controller.snapshot()
    print(f"Source: {controller.source}")
    print(f"Entries: {len(doc.entries)}")
    print(f"Chat messages: {len(doc.chat_messages)}")
    timer = doc.active_timer
    if timer is None:
        print("Timer: [dim]idle[/dim]")
        return
    assert timer.start_ms is not None
    elapsed = format_duration(now_ms() - timer.start_ms)
    print(f"Timer: [green]{escape(timer.designer)}[/green] {escape(timer.task)} ({elapsed})")


def entries_cmd(
    controller: SyncController,
    *,
    designer: str | None,
    priority: str | None,
    status: str | None,
    search: str | None,
    limit: int,
    week: str | None = None,
) -> None:
    items = controller.snapshot().entries
    span = iso_week_range(week) if week else None
    with exit_on_local_error():
        if week and span is None:
            raise ValueError(f"invalid week {week!r}; use YYYY-Www")
    if span is not None:
        items = [e for e in items if span[0] <= (e.start_ms or 0) <= span[1]]
    if designer:
        items = [e for e in items if e.designer == designer]
    if priority:
        items = [e for e in items if e.priority == priority]
    if status:
        items = [e for e in items if e.status == status]
    if search:
        needle = search.lower()
        items = [
            e
            for e in items
            if needle
            in " ".join([e.designer, e.task, e.comments, *(f"#{t}" for t in e.tags)]).lower()
        ]
    items.sort(key=lambda e: e.start_ms or 0, reverse=True)
    if not items:
        print("No entries")
        return
    for entry in items[:limit]:
        print(format_entry(entry))
    print(f"[dim]{len(items)} entries[/dim]")


def log_cmd(
    controller: SyncController,
    *,
    designer: str,
    task: str,
    date: str | None,
    start: str | None,
    end: str | None,
    priority: str,
    status: str,
    tags: str | None,
    comments: str,
) -> None:
    """Record a finished work session."""

    start_ms = parse_manual_datetime(date, start)
    end_ms = parse_manual_datetime(date, end)
    with exit_on_local_error():
        if (start or end) and start_ms is None and end_ms is None:
            raise ValueError("times need --date YYYY-MM-DD and HH:MM values")
        if date and not (start or end):
            raise ValueError("--date needs --start and/or --end (HH:MM)")
        entry = controller.create_entry(
            designer,
            task,
            comments=comments,
            priority=priority,
            status=status,
            tags=tags,
            start_ms=start_ms,
            end_ms=end_ms,
        )
    print(f"Logged {format_entry(entry)}")


def edit_cmd(
    controller: SyncController, *, entry_id: str, task: str | None, tags: str | None
) -> None:
    with exit_on_local_error():
        resolved = resolve_entry_id(controller, entry_id)
        entry = controller.document.find_entry(resolved)
        if task is not None:
            entry = controller.edit_task(resolved, task)
        if tags is not None:
            entry = controller.edit_tags(resolved, tags)
    assert entry is not None
    print(f"Updated {format_entry(entry)}")


def cycle_cmd(controller: SyncController, *, entry_id: str, field: str) -> None:
    with exit_on_local_error():
        resolved = resolve_entry_id(controller, entry_id)
        if field == "priority":
            value = controller.cycle_priority(resolved)
        elif field == "status":
            value = controller.cycle_status(resolved)
        else:
            raise ValueError(f"cannot cycle {field!r}; use priority or status")
    print(f"{field} -> {value}")


def timer_start_cmd(controller: SyncController, *, designer: str, task: str) -> None:
    with exit_on_local_error():
        timer = controller.start_timer(designer, task)
    print(f"Timer started for [green]{escape(timer.designer)}[/green]: {escape(timer.task)}")


def timer_stop_cmd(controller: SyncController) -> None:
    entry = controller.stop_timer()
    if entry is None:
        print("No timer running")
        return
    print(f"Timer stopped: {format_entry(entry)}")


def thread_cmd(
    controller: SyncController, *, entry_id: str, text: str | None, designer: str | None
) -> None:
    """Show an entry's discussion, or add a comment to it."""

    with exit_on_local_error():
        resolved = resolve_entry_id(controller, entry_id)
        if text:
            controller.post_thread_comment(resolved, text, designer=designer)
        entry = controller.document.find_entry(resolved)
    assert entry is not None
    print(f"{escape(entry.designer)} • {escape(entry.task)}")
    for comment in sorted(entry.thread, key=lambda c: c.ts):
        print(f"  [bold]{escape(comment.designer)}[/bold]: {escape(comment.text)}")
