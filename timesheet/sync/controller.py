"""Synchronization controller for the shared timesheet document.

The controller owns the live :class:`SyncedDocument`. Every mutation is
applied locally first and then persisted by overwriting the whole remote
document, either immediately or after a debounce quiet period. There is no
version token: when two clients write, the later overwrite wins in full.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any, Protocol

from ..auth import check_credential
from ..config import DEFAULT_DESIGNERS, TimesheetConfig
from ..model import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    PRIORITIES,
    STATUSES,
    ChatMessage,
    RemoteDocument,
    SyncedDocument,
    ThreadComment,
    TimeEntry,
    cycle_value,
)
from ..normalize import normalize
from ..utils import extract_mentions, new_id, now_ms, parse_tags
from .fallback import LocalFallbackCache
from .poller import ConvergencePoller
from .remote import RemoteDocumentClient, RemoteOperationFailed
from .scheduler import Debouncer, Scheduler, ThreadScheduler

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class DocumentClient(Protocol):
    def fetch_latest(self) -> Any: ...

    def overwrite(self, document: dict[str, Any]) -> None: ...


class SyncController:
    def __init__(
        self,
        client: DocumentClient,
        fallback: LocalFallbackCache | None = None,
        *,
        designers: Iterable[str] | None = None,
        passwords: Mapping[str, str] | None = None,
        scheduler: Scheduler | None = None,
        debounce_s: float = 0.4,
        poll_interval_s: float = 4.0,
        write_executor: Executor | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.client = client
        self.fallback = fallback
        self.designers = list(designers) if designers is not None else list(DEFAULT_DESIGNERS)
        self._passwords = dict(passwords or {})
        self._clock = clock
        self._scheduler = scheduler or ThreadScheduler()
        self._executor = write_executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="timesheet-write"
        )
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._inflight: set[Future[bool]] = set()
        self._queued = 0
        self._writing = 0
        self._closed = False

        self.document = SyncedDocument()
        self.readiness = "unloaded"
        self.source: str | None = None
        self.session_user: str | None = None
        self.last_write_error: RemoteOperationFailed | None = None

        self._debouncer = Debouncer(self._scheduler, debounce_s, self._fire_debounced)
        self.poller = ConvergencePoller(
            client,
            current_count=self._chat_count,
            on_replace=self._adopt_chat,
            scheduler=self._scheduler,
            interval_s=poll_interval_s,
        )

    @classmethod
    def from_config(cls, config: TimesheetConfig, **kwargs: Any) -> SyncController:
        return cls(
            RemoteDocumentClient.from_config(config),
            LocalFallbackCache(config.fallback_dir),
            designers=config.designers,
            passwords=config.passwords,
            debounce_s=config.debounce_ms / 1000.0,
            poll_interval_s=config.poll_interval_ms / 1000.0,
            **kwargs,
        )

    # -- listeners --------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, reason: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                logger.exception("document listener failed (%s)", reason)

    # -- load -------------------------------------------------------------

    def load(self) -> str:
        if self.readiness == "loaded":
            assert self.source is not None
            return self.source
        try:
            loaded = normalize(self.client.fetch_latest(), now=self._clock())
            source = "remote"
        except RemoteOperationFailed as exc:
            logger.warning("remote load failed, using local fallback for timesheets: %s", exc)
            # Chat is online-only, so it starts empty offline.
            loaded = RemoteDocument()
            if self.fallback is not None:
                loaded.entries = self.fallback.load_entries()
                loaded.active_timer = self.fallback.load_active_timer()
            source = "fallback"
        with self._lock:
            self.document.adopt(loaded)
            self.readiness = "loaded"
            self.source = source
        self._notify("load")
        return source

    def snapshot(self) -> RemoteDocument:
        with self._lock:
            return self.document.copy()

    # -- writes -----------------------------------------------------------

    @property
    def write_state(self) -> str:
        if self._debouncer.pending:
            return "dirty"
        with self._lock:
            if self._writing:
                return "writing"
            if self._queued:
                return "dirty"
        return "clean"

    def save_now(self) -> Future[bool]:
        # Snapshot and submit under one lock so payloads queue in mutation order.
        with self._lock:
            payload = self.document.to_wire()
            self._queued += 1
            future = self._executor.submit(self._write, payload)
            self._inflight.add(future)
            future.add_done_callback(self._forget)
        return future

    def save_debounced(self) -> None:
        self._debouncer.trigger()

    def _fire_debounced(self) -> None:
        if self._closed:
            return
        self.save_now()

    def _forget(self, future: Future[bool]) -> None:
        with self._lock:
            self._inflight.discard(future)

    def _write(self, payload: dict[str, Any]) -> bool:
        with self._lock:
            self._queued -= 1
            self._writing += 1
        try:
            self.client.overwrite(payload)
        except RemoteOperationFailed as exc:
            # Not retried again: the local model stays ahead of the remote
            # until the next successful write.
            logger.error("remote save failed: %s", exc, exc_info=exc)
            with self._lock:
                self.last_write_error = exc
            return False
        finally:
            with self._lock:
                self._writing -= 1
        with self._lock:
            self.last_write_error = None
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Send any debounced write now and wait for outstanding writes."""

        self._debouncer.flush()
        with self._lock:
            pending = list(self._inflight)
        if not pending:
            return self.last_write_error is None
        done, not_done = wait_futures(pending, timeout=timeout)
        if not_done:
            return False
        return all(future.result() for future in done)

    def close(self, timeout: float | None = None) -> None:
        if self._closed:
            return
        self.poller.stop()
        self.flush(timeout)
        self._closed = True
        self._debouncer.cancel()
        self._executor.shutdown(wait=True)

    # -- mutations --------------------------------------------------------

    def _require_entry(self, entry_id: str) -> TimeEntry:
        entry = self.document.find_entry(entry_id)
        if entry is None:
            raise KeyError(f"unknown entry: {entry_id}")
        return entry

    def _require_designer(self, designer: str) -> str:
        designer = (designer or "").strip()
        if not designer:
            raise ValueError("designer is required")
        if self.designers and designer not in self.designers:
            raise ValueError(f"unknown designer: {designer}")
        return designer

    def _mentions(self, *texts: str) -> list[str]:
        return extract_mentions(" ".join(texts), self.designers)

    def create_entry(
        self,
        designer: str,
        task: str,
        *,
        comments: str = "",
        priority: str = DEFAULT_PRIORITY,
        status: str = DEFAULT_STATUS,
        tags: str | Iterable[str] | None = None,
        start_ms: int | None = None,
        end_ms: int | None = None,
    ) -> TimeEntry:
        designer = self._require_designer(designer)
        task = (task or "").strip()
        if not task:
            raise ValueError("task is required")
        if start_ms is None and end_ms is None:
            start_ms = end_ms = self._clock()
        elif start_ms is None:
            start_ms = end_ms
        elif end_ms is None:
            end_ms = start_ms
        assert start_ms is not None and end_ms is not None
        if start_ms > end_ms:
            start_ms, end_ms = end_ms, start_ms
        entry = TimeEntry(
            id=new_id(),
            designer=designer,
            task=task,
            comments=comments,
            mentions=self._mentions(task, comments),
            priority=priority if priority in PRIORITIES else DEFAULT_PRIORITY,
            status=status if status in STATUSES else DEFAULT_STATUS,
            tags=parse_tags(tags),
            start_ms=start_ms,
            end_ms=end_ms,
        )
        with self._lock:
            self.document.entries.append(entry)
        self._notify("entries")
        self.save_now()
        return entry

    def edit_task(self, entry_id: str, text: str) -> TimeEntry:
        with self._lock:
            entry = self._require_entry(entry_id)
            new_task = (text or "").strip()
            if new_task:
                entry.task = new_task
                entry.mentions = self._mentions(entry.task, entry.comments)
        self._notify("entries")
        self.save_debounced()
        return entry

    def edit_tags(self, entry_id: str, tags: str | Iterable[str] | None) -> TimeEntry:
        with self._lock:
            entry = self._require_entry(entry_id)
            entry.tags = parse_tags(tags)
        self._notify("entries")
        self.save_debounced()
        return entry

    def cycle_priority(self, entry_id: str) -> str:
        with self._lock:
            entry = self._require_entry(entry_id)
            entry.priority = cycle_value(PRIORITIES, entry.priority, DEFAULT_PRIORITY)
            value = entry.priority
        self._notify("entries")
        self.save_debounced()
        return value

    def cycle_status(self, entry_id: str) -> str:
        with self._lock:
            entry = self._require_entry(entry_id)
            entry.status = cycle_value(STATUSES, entry.status, DEFAULT_STATUS)
            value = entry.status
        self._notify("entries")
        self.save_debounced()
        return value

    def start_timer(self, designer: str, task: str) -> TimeEntry:
        designer = self._require_designer(designer)
        task = (task or "").strip()
        if not task:
            raise ValueError("task is required")
        with self._lock:
            if self.document.active_timer is not None:
                raise RuntimeError("a timer is already running")
            timer = TimeEntry(
                id=new_id(),
                designer=designer,
                task=task,
                mentions=self._mentions(task),
                start_ms=self._clock(),
            )
            self.document.active_timer = timer
        self._notify("timer")
        self.save_now()
        return timer

    def stop_timer(self) -> TimeEntry | None:
        with self._lock:
            timer = self.document.active_timer
            if timer is None:
                return None
            entry = timer.copy()
            entry.end_ms = self._clock()
            assert entry.start_ms is not None
            if entry.start_ms > entry.end_ms:
                entry.start_ms, entry.end_ms = entry.end_ms, entry.start_ms
            self.document.entries.append(entry)
            self.document.active_timer = None
        self._notify("timer")
        self._notify("entries")
        self.save_now()
        return entry

    def post_thread_comment(
        self, entry_id: str, text: str, designer: str | None = None
    ) -> ThreadComment:
        text = (text or "").strip()
        if not text:
            raise ValueError("comment text is required")
        author = (designer or "").strip() or self.session_user or "Anon"
        with self._lock:
            entry = self._require_entry(entry_id)
            comment = ThreadComment(id=new_id(), designer=author, text=text, ts=self._clock())
            entry.thread.append(comment)
        self._notify("entries")
        self.save_debounced()
        return comment

    def post_chat_message(self, text: str) -> ChatMessage:
        if not self.session_user:
            raise PermissionError("login required to chat")
        text = (text or "").strip()
        if not text:
            raise ValueError("message text is required")
        message = ChatMessage(id=new_id(), designer=self.session_user, text=text, ts=self._clock())
        with self._lock:
            self.document.chat_messages.append(message)
        self._notify("chat")
        self.save_debounced()
        return message

    # -- chat session -----------------------------------------------------

    def login(self, identity: str, credential: str) -> bool:
        if not check_credential(
            identity, credential, passwords=self._passwords, designers=self.designers
        ):
            logger.info("chat login rejected for %r", identity)
            return False
        self.session_user = identity
        self._notify("session")
        self.poller.start()
        return True

    def logout(self) -> None:
        self.poller.stop()
        self.session_user = None
        self._notify("session")

    def _chat_count(self) -> int:
        with self._lock:
            return len(self.document.chat_messages)

    def _adopt_chat(self, messages: list[ChatMessage]) -> None:
        with self._lock:
            self.document.chat_messages = messages
        self._notify("chat")
