from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from ..model import ChatMessage
from ..normalize import normalize_chat_messages
from .remote import RemoteOperationFailed
from .scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)


class DocumentReader(Protocol):
    def fetch_latest(self) -> Any: ...


class ConvergencePoller:
    """Periodically re-read the remote document and refresh the chat stream.

    Change detection compares message counts only, so an upstream edit that
    keeps the count unchanged is not picked up until the count moves.
    """

    def __init__(
        self,
        client: DocumentReader,
        *,
        current_count: Callable[[], int],
        on_replace: Callable[[list[ChatMessage]], None],
        scheduler: Scheduler,
        interval_s: float = 4.0,
    ) -> None:
        self._client = client
        self._current_count = current_count
        self._on_replace = on_replace
        self._scheduler = scheduler
        self.interval_s = interval_s
        self._handle: TaskHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        if self.running:
            return
        self._handle = self._scheduler.call_every(self.interval_s, self.tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None

    def tick(self) -> bool:
        try:
            raw = self._client.fetch_latest()
        except RemoteOperationFailed as exc:
            logger.warning("chat poll failed: %s", exc)
            return False
        data = raw if isinstance(raw, dict) else {}
        messages = normalize_chat_messages(data.get("chatMessages"))
        if len(messages) == self._current_count():
            return False
        self._on_replace(messages)
        return True
