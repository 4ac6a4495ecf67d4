from __future__ import annotations

import pytest
from pydantic import ValidationError

from soroban_access.models import (
    AccessSnapshot,
    HistoryQuery,
    OwnershipInfo,
    RoleAssignment,
    RoleIdentifier,
    role_label,
)
from tests.conftest import ACCOUNT, ACCOUNT_A


def test_role_identity_ignores_label_and_whitespace():
    a = RoleIdentifier(id="MINTER", label="Minter")
    b = RoleIdentifier(id=" MINTER ")
    assert a == b
    assert len({a, b}) == 1
    assert RoleIdentifier.from_id("MINTER_ROLE").label == role_label("MINTER_ROLE") == "minter role"


def test_snapshot_rejects_duplicate_roles():
    minter = RoleAssignment(role=RoleIdentifier(id="MINTER"), members=[ACCOUNT_A])
    with pytest.raises(ValidationError, match="duplicate role id"):
        AccessSnapshot(roles=[minter, minter])


def test_snapshot_serializes():
    snap = AccessSnapshot(
        roles=[RoleAssignment(role=RoleIdentifier.from_id("MINTER"), members=[ACCOUNT_A])],
        ownership=OwnershipInfo(owner=ACCOUNT),
    )
    dumped = snap.model_dump(mode="json")
    assert dumped["roles"][0]["members"] == [ACCOUNT_A]
    assert dumped["ownership"]["owner"] == ACCOUNT
    assert AccessSnapshot.model_validate(dumped) == snap


def test_history_query_bounds_and_cursor():
    with pytest.raises(ValidationError):
        HistoryQuery(limit=0)
    with pytest.raises(ValidationError):
        HistoryQuery(ledger=-1)
    q = HistoryQuery(role_id="MINTER", limit=10)
    nxt = q.with_cursor("abc")
    assert (nxt.cursor, nxt.role_id, nxt.limit) == ("abc", "MINTER", 10)
    assert q.cursor is None
