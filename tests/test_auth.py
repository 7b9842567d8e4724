from __future__ import annotations

import pytest

from timesheet.auth import check_credential

PASSWORDS = {"Rati": "Rati#2025", "Ghost": "boo"}
DESIGNERS = ["Rati", "Steven"]


@pytest.mark.parametrize(
    ("identity", "credential", "expected"),
    [
        ("Rati", "Rati#2025", True),
        ("Rati", "rati#2025", False),
        ("Rati", "", False),
        ("Steven", "anything", False),
        ("Ghost", "boo", False),
        ("", "Rati#2025", False),
    ],
)
def test_check_credential(identity: str, credential: str, expected: bool) -> None:
    assert (
        check_credential(identity, credential, passwords=PASSWORDS, designers=DESIGNERS)
        is expected
    )
