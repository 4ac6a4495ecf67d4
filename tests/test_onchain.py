from __future__ import annotations

import pytest

from soroban_access.errors import OperationFailed
from soroban_access.onchain import READ_POLICIES, FailureMode, OnChainReader, ReadPolicy
from tests.conftest import ACCOUNT, ACCOUNT_A, ACCOUNT_B, ACCOUNT_C, CONTRACT, FakeExecutor, FakeLedger

# Failure policy per read:
#  - RAISE reads wrap the cause in OperationFailed
#  - DEFAULT reads return the declared fallback
# Enumeration is bounded-concurrent and keeps index order.


def _reader(network, executor, **kw) -> OnChainReader:
    return OnChainReader(executor, network, **kw)


def test_policy_table_is_complete():
    assert READ_POLICIES["read_ownership"].mode is FailureMode.RAISE
    assert READ_POLICIES["has_role"] == ReadPolicy(FailureMode.DEFAULT, False)
    assert READ_POLICIES["get_role_member_count"].default == 0
    for op in ("read_admin", "enumerate_role_members", "get_current_ledger"):
        assert READ_POLICIES[op].mode is FailureMode.RAISE


@pytest.mark.asyncio
async def test_read_ownership(network):
    ex = FakeExecutor({"get_owner": ACCOUNT})
    info = await _reader(network, ex).read_ownership(CONTRACT)
    assert info.owner == ACCOUNT
    assert info.state is None
    assert ex.calls == [(CONTRACT, "get_owner", ())]


@pytest.mark.asyncio
async def test_read_ownership_renounced(network):
    info = await _reader(network, FakeExecutor({"get_owner": None})).read_ownership(CONTRACT)
    assert info.owner is None


@pytest.mark.asyncio
async def test_read_ownership_failure_raises(network):
    boom = RuntimeError("simulation failed")
    with pytest.raises(OperationFailed) as ei:
        await _reader(network, FakeExecutor({"get_owner": boom})).read_ownership(CONTRACT)
    assert "Failed to read ownership: simulation failed" in str(ei.value)
    assert ei.value.operation == "read_ownership"
    assert ei.value.__cause__ is boom


@pytest.mark.asyncio
async def test_default_policies_swallow_into_fallbacks(network):
    err = RuntimeError("rpc down")
    ex = FakeExecutor(
        {
            "has_role": err,
            "get_role_member_count": err,
            "get_role_member": err,
            "get_role_admin": err,
            "get_admin": err,
            "get_pending_owner": err,
            "get_pending_admin": err,
        }
    )
    r = _reader(network, ex)
    assert await r.has_role(CONTRACT, "MINTER", ACCOUNT_A) is False
    assert await r.get_role_member_count(CONTRACT, "MINTER") == 0
    assert await r.get_role_member(CONTRACT, "MINTER", 0) is None
    assert await r.get_role_admin(CONTRACT, "MINTER") is None
    assert await r.get_admin(CONTRACT) is None
    assert await r.read_pending_owner(CONTRACT) is None
    assert await r.read_pending_admin(CONTRACT) is None


@pytest.mark.asyncio
async def test_read_admin_raises_where_get_admin_defaults(network):
    ex = FakeExecutor({"get_admin": RuntimeError("nope")})
    with pytest.raises(OperationFailed, match="Failed to read admin"):
        await _reader(network, ex).read_admin(CONTRACT)


@pytest.mark.asyncio
async def test_has_role_decodes_optional_index(network):
    ex = FakeExecutor({("has_role", ACCOUNT_A, "MINTER"): 0, ("has_role", ACCOUNT_B, "MINTER"): None})
    r = _reader(network, ex)
    # Some(0) is a member at index zero
    assert await r.has_role(CONTRACT, "MINTER", ACCOUNT_A) is True
    assert await r.has_role(CONTRACT, "MINTER", ACCOUNT_B) is False
    assert ex.calls[0] == (CONTRACT, "has_role", (ACCOUNT_A, "MINTER"))


@pytest.mark.asyncio
async def test_member_count_accepts_numeric_strings(network):
    ex = FakeExecutor({("get_role_member_count", "A"): "7", ("get_role_member_count", "B"): "x"})
    r = _reader(network, ex)
    assert await r.get_role_member_count(CONTRACT, "A") == 7
    assert await r.get_role_member_count(CONTRACT, "B") == 0


# ------------------------------ Enumeration ----------------------------------


@pytest.mark.asyncio
async def test_enumeration_keeps_index_order(network):
    members = [ACCOUNT_A, ACCOUNT_B, ACCOUNT_C, ACCOUNT]
    ex = FakeExecutor(
        {
            "get_role_member_count": len(members),
            "get_role_member": lambda role, i: members[i],
        },
        delay=0.001,
    )
    assert await _reader(network, ex).enumerate_role_members(CONTRACT, "MINTER") == members


@pytest.mark.asyncio
async def test_enumeration_concurrency_is_bounded(network):
    ex = FakeExecutor(
        {"get_role_member_count": 12, "get_role_member": lambda role, i: ACCOUNT_A},
        delay=0.01,
    )
    await _reader(network, ex, concurrency_limit=3).enumerate_role_members(CONTRACT, "MINTER")
    assert ex.called("get_role_member") == 12
    assert 1 <= ex.max_in_flight <= 3


@pytest.mark.asyncio
async def test_enumeration_default_limit_is_five(network):
    ex = FakeExecutor(
        {"get_role_member_count": 20, "get_role_member": lambda role, i: ACCOUNT_A},
        delay=0.01,
    )
    await _reader(network, ex).enumerate_role_members(CONTRACT, "MINTER")
    assert ex.max_in_flight == 5


@pytest.mark.asyncio
async def test_enumeration_empty_role(network):
    ex = FakeExecutor({"get_role_member_count": 0})
    assert await _reader(network, ex).enumerate_role_members(CONTRACT, "MINTER") == []
    assert ex.called("get_role_member") == 0


@pytest.mark.asyncio
async def test_one_failed_member_read_fails_enumeration(network):
    def member(role, i):
        if i == 2:
            raise RuntimeError("ledger entry archived")
        return ACCOUNT_A

    ex = FakeExecutor({"get_role_member_count": 4, "get_role_member": member})
    with pytest.raises(OperationFailed, match="ledger entry archived"):
        await _reader(network, ex).enumerate_role_members(CONTRACT, "MINTER")


@pytest.mark.asyncio
async def test_failed_count_fails_enumeration(network):
    ex = FakeExecutor({"get_role_member_count": RuntimeError("boom")})
    with pytest.raises(OperationFailed):
        await _reader(network, ex).enumerate_role_members(CONTRACT, "MINTER")


@pytest.mark.asyncio
async def test_read_current_roles_isolates_failed_role(network):
    ex = FakeExecutor(
        {
            ("get_role_member_count", "MINTER"): 1,
            ("get_role_member", "MINTER", 0): ACCOUNT_A,
            ("get_role_member_count", "BURNER"): RuntimeError("boom"),
        }
    )
    roles = await _reader(network, ex).read_current_roles(CONTRACT, ["MINTER", "BURNER"])
    assert [r.role.id for r in roles] == ["MINTER", "BURNER"]
    assert roles[0].members == [ACCOUNT_A]
    assert roles[0].role.label == "minter"
    assert roles[1].members == []


@pytest.mark.asyncio
async def test_read_current_roles_empty(network):
    ex = FakeExecutor()
    assert await _reader(network, ex).read_current_roles(CONTRACT, []) == []
    assert ex.calls == []


# ------------------------------ Ledger ---------------------------------------


@pytest.mark.asyncio
async def test_current_ledger_from_source(network):
    ledger = FakeLedger(4242)
    assert await _reader(network, FakeExecutor(), ledger_source=ledger).get_current_ledger() == 4242
    assert ledger.calls == 1


@pytest.mark.asyncio
async def test_current_ledger_failure_raises(network):
    ledger = FakeLedger(error=RuntimeError("rpc timeout"))
    with pytest.raises(OperationFailed, match="Failed to get current ledger: rpc timeout") as ei:
        await _reader(network, FakeExecutor(), ledger_source=ledger).get_current_ledger()
    assert ei.value.operation == "get_current_ledger"


@pytest.mark.asyncio
async def test_current_ledger_via_rpc(network, respx_mock):
    respx_mock.post(network.rpc_url).respond(
        200, json={"jsonrpc": "2.0", "id": 1, "result": {"id": "abc", "protocolVersion": 22, "sequence": 777}}
    )
    assert await _reader(network, FakeExecutor()).get_current_ledger() == 777


def test_concurrency_limit_must_be_positive(network):
    with pytest.raises(ValueError):
        OnChainReader(FakeExecutor(), network, concurrency_limit=0)
