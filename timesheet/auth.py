from __future__ import annotations

import hmac
from collections.abc import Iterable, Mapping


def check_credential(
    identity: str,
    credential: str,
    *,
    passwords: Mapping[str, str],
    designers: Iterable[str],
) -> bool:
    """Static shared-secret compare for a known designer identity."""

    if not identity or not credential:
        return False
    if identity not in set(designers):
        return False
    expected = passwords.get(identity)
    if not expected:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), credential.encode("utf-8"))
