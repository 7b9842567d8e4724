from __future__ import annotations

import logging
from typing import Any

from ..model import RemoteDocument
from ..normalize import normalize
from .controller import DocumentClient
from .fallback import LocalFallbackCache

logger = logging.getLogger(__name__)


def migrate_local_to_remote(
    client: DocumentClient, fallback: LocalFallbackCache
) -> dict[str, Any]:
    """One-shot push of the local fallback into an empty remote document.

    Remote failures propagate: this is an explicit operator action, not part
    of the background sync flow.
    """

    entries = fallback.load_entries()
    timer = fallback.load_active_timer()
    if not entries and timer is None:
        return {"ok": True, "migrated": 0, "reason": "local_empty"}
    remote = normalize(client.fetch_latest())
    if remote.entries:
        return {"ok": True, "migrated": 0, "reason": "remote_not_empty"}
    document = RemoteDocument(
        entries=entries,
        active_timer=remote.active_timer or timer,
        chat_messages=remote.chat_messages,
    )
    client.overwrite(document.to_wire())
    logger.info("migrated %s local entries to remote", len(entries))
    return {"ok": True, "migrated": len(entries), "reason": "migrated"}


def snapshot_remote_to_local(client: DocumentClient, fallback: LocalFallbackCache) -> int:
    document = normalize(client.fetch_latest())
    fallback.save(document.entries, document.active_timer)
    return len(document.entries)
