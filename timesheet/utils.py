from __future__ import annotations

import datetime as dt
import re
import secrets
import time
from collections.abc import Iterable

MENTION_RE = re.compile(r"@([\w.-]+)")


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    # 128 random bits rendered as 32 hex chars, same width older clients mint.
    return secrets.token_hex(16)


def parse_tags(value: str | Iterable[object] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[object] = value.split(",")
    else:
        items = value
    tags: list[str] = []
    for item in items:
        if item is None or isinstance(item, (dict, list)):
            continue
        tag = str(item).strip().lstrip("#").strip()
        if tag:
            tags.append(tag)
    return tags


def extract_mentions(text: str, designers: Iterable[str]) -> list[str]:
    known = {name.lower(): name for name in designers}
    found: list[str] = []
    for match in MENTION_RE.finditer(text or ""):
        name = known.get(match.group(1).lower())
        if name and name not in found:
            found.append(name)
    return found


def parse_manual_datetime(date_str: str | None, time_str: str | None) -> int | None:
    """Combine ``YYYY-MM-DD`` and ``HH:MM`` in local time into epoch ms."""

    if not date_str or not time_str:
        return None
    try:
        day = dt.date.fromisoformat(date_str.strip())
        hours, minutes = (int(part) for part in time_str.strip().split(":", 1))
        moment = dt.datetime(day.year, day.month, day.day, hours, minutes)
    except ValueError:
        return None
    return int(moment.timestamp() * 1000)


def iso_week_range(value: str | None) -> tuple[int, int] | None:
    """Return the UTC Monday-to-Sunday span of an ISO week like ``2025-W40``."""

    if not value or "-W" not in value:
        return None
    year_str, week_str = value.strip().split("-W", 1)
    try:
        monday = dt.date.fromisocalendar(int(year_str), int(week_str), 1)
    except ValueError:
        return None
    start = dt.datetime(monday.year, monday.month, monday.day, tzinfo=dt.timezone.utc)
    start_ms = int(start.timestamp() * 1000)
    return start_ms, start_ms + 7 * 24 * 60 * 60 * 1000 - 1


def format_duration(ms: int | float | None) -> str:
    if ms is None or ms < 0:
        return "—"
    seconds = int(ms // 1000)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_ms(ms: int | None) -> str:
    if ms is None:
        return "—"
    return dt.datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")
