"""Coerce untrusted remote JSON into a well-typed :class:`RemoteDocument`.

The remote document may have been written by an older or newer client, or
edited by hand. Nothing here raises: malformed fields fall back to defaults
and records that cannot be repaired are dropped.
"""

from __future__ import annotations

import math
from typing import Any

from .model import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    PRIORITIES,
    STATUSES,
    ChatMessage,
    RemoteDocument,
    ThreadComment,
    TimeEntry,
)
from .utils import new_id, now_ms, parse_tags


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_ms(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


def _as_id(value: Any) -> str:
    text = _as_str(value).strip()
    return text or new_id()


def _normalize_message(raw: Any, fallback_ts: int) -> ThreadComment | None:
    if not isinstance(raw, dict):
        return None
    designer = _as_str(raw.get("designer")).strip()
    text = _as_str(raw.get("text")).strip()
    if not designer or not text:
        return None
    ts = _as_ms(raw.get("ts"))
    return ThreadComment(
        id=_as_id(raw.get("id")),
        designer=designer,
        text=text,
        ts=fallback_ts if ts is None else ts,
    )


def _normalize_messages(raw: Any, fallback_ts: int) -> list[ThreadComment]:
    messages: list[ThreadComment] = []
    for item in _as_list(raw):
        message = _normalize_message(item, fallback_ts)
        if message is not None:
            messages.append(message)
    return messages


def _base_entry(raw: dict[str, Any], fallback_ts: int) -> TimeEntry:
    priority = raw.get("priority")
    status = raw.get("status")
    return TimeEntry(
        id=_as_id(raw.get("id")),
        designer=_as_str(raw.get("designer")).strip(),
        task=_as_str(raw.get("task")).strip(),
        comments=_as_str(raw.get("comments")),
        mentions=[m for m in (_as_str(x).strip() for x in _as_list(raw.get("mentions"))) if m],
        priority=priority if priority in PRIORITIES else DEFAULT_PRIORITY,
        status=status if status in STATUSES else DEFAULT_STATUS,
        tags=parse_tags(_as_list(raw.get("tags"))),
        thread=_normalize_messages(raw.get("thread"), fallback_ts),
    )


def normalize_entry(raw: Any, *, now: int | None = None) -> TimeEntry | None:
    if not isinstance(raw, dict):
        return None
    entry = _base_entry(raw, now if now is not None else now_ms())
    start = _as_ms(raw.get("startMs"))
    end = _as_ms(raw.get("endMs"))
    if not entry.designer or not entry.task or (start is None and end is None):
        return None
    if start is None:
        start = end
    if end is None:
        end = start
    assert start is not None and end is not None
    if start > end:
        start, end = end, start
    entry.start_ms = start
    entry.end_ms = end
    return entry


def normalize_timer(raw: Any, *, now: int | None = None) -> TimeEntry | None:
    if not isinstance(raw, dict):
        return None
    start = _as_ms(raw.get("startMs"))
    if start is None:
        return None
    timer = _base_entry(raw, now if now is not None else now_ms())
    if not timer.designer or not timer.task:
        return None
    timer.start_ms = start
    timer.end_ms = None
    return timer


def normalize_chat_messages(raw: Any, *, now: int | None = None) -> list[ChatMessage]:
    return _normalize_messages(raw, now if now is not None else now_ms())


def normalize(raw: Any, *, now: int | None = None) -> RemoteDocument:
    stamp = now if now is not None else now_ms()
    data = raw if isinstance(raw, dict) else {}
    entries: list[TimeEntry] = []
    for item in _as_list(data.get("entries")):
        entry = normalize_entry(item, now=stamp)
        if entry is not None:
            entries.append(entry)
    return RemoteDocument(
        entries=entries,
        active_timer=normalize_timer(data.get("activeTimer"), now=stamp),
        chat_messages=normalize_chat_messages(data.get("chatMessages"), now=stamp),
    )
