"""Stateless read/overwrite client for the shared remote document."""

from __future__ import annotations

import http.client
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from ..config import TimesheetConfig
from ..utils import now_ms
from . import http_client

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RemoteOperationFailed(RuntimeError):
    pass


class NetworkError(RemoteOperationFailed):
    pass


class HttpError(RemoteOperationFailed):
    def __init__(self, method: str, status: int) -> None:
        super().__init__(f"{method} failed: {status}")
        self.method = method
        self.status = status


def with_retry(
    fn: Callable[[], T],
    *,
    attempts: int = 2,
    delay_s: float = 0.4,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    attempts = max(1, attempts)
    last_error: RemoteOperationFailed | None = None
    for attempt in range(attempts):
        try:
            return fn()
        except RemoteOperationFailed as exc:
            last_error = exc
            logger.debug("remote attempt %s/%s failed: %s", attempt + 1, attempts, exc)
            if attempt + 1 < attempts:
                sleep(delay_s)
    assert last_error is not None
    raise last_error


class RemoteDocumentClient:
    def __init__(
        self,
        base_url: str,
        bin_id: str,
        master_key: str,
        *,
        attempts: int = 2,
        retry_delay_s: float = 0.4,
        timeout_s: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = http_client.build_base_url(base_url)
        self.bin_id = bin_id.strip()
        self._master_key = master_key
        self.attempts = attempts
        self.retry_delay_s = retry_delay_s
        self.timeout_s = timeout_s
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: TimesheetConfig) -> RemoteDocumentClient:
        if not config.remote_configured():
            raise ValueError("bin_id and master_key must be configured")
        return cls(
            config.store_base_url,
            config.bin_id,
            config.master_key,
            attempts=config.retry_attempts,
            retry_delay_s=config.retry_delay_ms / 1000.0,
            timeout_s=float(config.request_timeout_s),
        )

    @property
    def document_url(self) -> str:
        return f"{self.base_url}/b/{self.bin_id}"

    def _headers(self) -> dict[str, str]:
        return {"X-Master-Key": self._master_key, "X-Bin-Meta": "false"}

    def _call(self, method: str, url: str, *, body: Any = None) -> bytes:
        headers = self._headers()
        if method == "GET":
            headers["Cache-Control"] = "no-cache"
        try:
            status, raw = http_client.request(
                method, url, headers=headers, body=body, timeout_s=self.timeout_s
            )
        except (OSError, http.client.HTTPException) as exc:
            raise NetworkError(f"{method} failed: {exc}") from exc
        if not 200 <= status < 300:
            raise HttpError(method, status)
        return raw

    def _fetch_once(self) -> Any:
        # The timestamp query defeats intermediate caches that ignore request headers.
        raw = self._call("GET", f"{self.document_url}/latest?ts={now_ms()}")
        try:
            return http_client.decode_json(raw)
        except ValueError as exc:
            raise NetworkError(f"GET failed: {exc}") from exc

    def _overwrite_once(self, document: dict[str, Any]) -> None:
        self._call("PUT", self.document_url, body=document)

    def fetch_latest(self) -> Any:
        return with_retry(
            self._fetch_once,
            attempts=self.attempts,
            delay_s=self.retry_delay_s,
            sleep=self._sleep,
        )

    def overwrite(self, document: dict[str, Any]) -> None:
        with_retry(
            lambda: self._overwrite_once(document),
            attempts=self.attempts,
            delay_s=self.retry_delay_s,
            sleep=self._sleep,
        )
