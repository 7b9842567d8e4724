from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..model import TimeEntry
from ..normalize import normalize

logger = logging.getLogger(__name__)

ENTRIES_KEY = "timesheet_entries_v7_local"
TIMER_KEY = "timesheet_active_timer_v1_local"


class LocalFallbackCache:
    """On-device mirror of the last known entries and active timer.

    Read only when the startup remote read fails. Chat is never cached.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Any:
        path = self._path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("local fallback %s unreadable: %s", path, exc)
            return None
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("local fallback %s is not valid json", path)
            return None

    def load_entries(self) -> list[TimeEntry]:
        raw = self._read(ENTRIES_KEY)
        return normalize({"entries": raw if isinstance(raw, list) else []}).entries

    def load_active_timer(self) -> TimeEntry | None:
        return normalize({"activeTimer": self._read(TIMER_KEY)}).active_timer

    def save(self, entries: list[TimeEntry], active_timer: TimeEntry | None) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        timer = None
        if active_timer is not None:
            timer = active_timer.to_wire()
            timer.pop("endMs", None)
        self._path(ENTRIES_KEY).write_text(
            json.dumps([entry.to_wire() for entry in entries], ensure_ascii=False),
            encoding="utf-8",
        )
        self._path(TIMER_KEY).write_text(json.dumps(timer, ensure_ascii=False), encoding="utf-8")
