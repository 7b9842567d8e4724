from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Final

PRIORITIES: Final[tuple[str, ...]] = ("Low", "Medium", "High")
STATUSES: Final[tuple[str, ...]] = ("To Do", "In Progress", "Done")

DEFAULT_PRIORITY: Final[str] = "Medium"
DEFAULT_STATUS: Final[str] = "In Progress"


@dataclass
class ThreadComment:
    id: str
    designer: str
    text: str
    ts: int

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.id, "designer": self.designer, "text": self.text, "ts": self.ts}


# Chat messages and per-entry thread comments share one shape on the wire.
ChatMessage = ThreadComment


@dataclass
class TimeEntry:
    id: str
    designer: str
    task: str
    comments: str = ""
    mentions: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY
    status: str = DEFAULT_STATUS
    tags: list[str] = field(default_factory=list)
    thread: list[ThreadComment] = field(default_factory=list)
    start_ms: int | None = None
    end_ms: int | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "designer": self.designer,
            "task": self.task,
            "comments": self.comments,
            "mentions": list(self.mentions),
            "priority": self.priority,
            "status": self.status,
            "tags": list(self.tags),
            "thread": [comment.to_wire() for comment in self.thread],
            "startMs": self.start_ms,
            "endMs": self.end_ms,
        }

    def copy(self) -> TimeEntry:
        return replace(
            self,
            mentions=list(self.mentions),
            tags=list(self.tags),
            thread=[replace(comment) for comment in self.thread],
        )

    @property
    def duration_ms(self) -> int:
        start = self.start_ms if self.start_ms is not None else self.end_ms
        end = self.end_ms if self.end_ms is not None else self.start_ms
        if start is None or end is None:
            return 0
        return max(0, end - start)


@dataclass
class RemoteDocument:
    """The whole persisted state, read and written as one unit."""

    entries: list[TimeEntry] = field(default_factory=list)
    active_timer: TimeEntry | None = None
    chat_messages: list[ChatMessage] = field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        timer = None
        if self.active_timer is not None:
            timer = self.active_timer.to_wire()
            timer.pop("endMs", None)
        return {
            "entries": [entry.to_wire() for entry in self.entries],
            "activeTimer": timer,
            "chatMessages": [message.to_wire() for message in self.chat_messages],
        }

    def copy(self) -> RemoteDocument:
        return RemoteDocument(
            entries=[entry.copy() for entry in self.entries],
            active_timer=self.active_timer.copy() if self.active_timer else None,
            chat_messages=[replace(message) for message in self.chat_messages],
        )

    def find_entry(self, entry_id: str) -> TimeEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None


class SyncedDocument(RemoteDocument):
    """Live document owned by the sync controller and shared with the UI layer."""

    def adopt(self, other: RemoteDocument) -> None:
        self.entries = other.entries
        self.active_timer = other.active_timer
        self.chat_messages = other.chat_messages


def cycle_value(values: tuple[str, ...], current: str, default: str) -> str:
    if current not in values:
        current = default
    return values[(values.index(current) + 1) % len(values)]
