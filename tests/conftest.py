from __future__ import annotations

"""
Shared pytest fixtures:
- Deterministic Stellar addresses (real StrKey checksums)
- A fake contract-read executor that records calls and concurrency
- A GraphQL stub for the event indexer, mounted with respx
"""

import asyncio
import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
import respx

from soroban_access import strkey
from soroban_access.config import NetworkConfig
from soroban_access.indexer import IndexerClient

# Fixtures from the Stellar test suites
CONTRACT = "CAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAD2KM"
ACCOUNT = "GBZXN7PIRZGNMHGA7MUUUF4GWPY5AYPV6LY4UV2GL6VJGIQRXFDNMADI"

ACCOUNT_A = strkey.encode_account(bytes([1]) * 32)
ACCOUNT_B = strkey.encode_account(bytes([2]) * 32)
ACCOUNT_C = strkey.encode_account(bytes([3]) * 32)
CONTRACT_B = strkey.encode_contract(bytes([7]) * 32)

RPC_URL = "https://rpc.testnet.example"
INDEXER_URL = "https://indexer.testnet.example/graphql"

OWNABLE_FUNCTIONS = ["get_owner", "transfer_ownership", "accept_ownership", "renounce_ownership"]
ACCESS_CONTROL_FUNCTIONS = [
    "has_role",
    "grant_role",
    "revoke_role",
    "get_role_admin",
    "set_role_admin",
    "get_admin",
    "transfer_admin_role",
    "accept_admin_transfer",
    "renounce_admin",
    "get_role_member_count",
    "get_role_member",
]


# ----------------------------
# Networks
# ----------------------------


@pytest.fixture
def network() -> NetworkConfig:
    return NetworkConfig(id="stellar-testnet", rpc_url=RPC_URL, indexer_uri=INDEXER_URL)


@pytest.fixture
def network_no_indexer() -> NetworkConfig:
    return NetworkConfig(id="stellar-testnet", rpc_url=RPC_URL)


# ----------------------------
# Contract reads
# ----------------------------


class FakeExecutor:
    """
    Test double for the query-execution collaborator.

    ``results`` maps ``(function_name, *args)`` (or just ``function_name``)
    to a value, an exception instance (raised), or a callable taking the
    args. ``delay`` makes each call yield so concurrency can be observed.
    """

    def __init__(self, results: Optional[Dict[Any, Any]] = None, delay: float = 0.0):
        self.results: Dict[Any, Any] = dict(results or {})
        self.delay = delay
        self.calls: List[Tuple[str, str, Tuple[Any, ...]]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, contract_address, function_name, args, network):
        self.calls.append((contract_address, function_name, tuple(args)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            key = (function_name, *args)
            if key in self.results:
                value = self.results[key]
            elif function_name in self.results:
                value = self.results[function_name]
            else:
                raise RuntimeError(f"unexpected call {function_name}{tuple(args)}")
            if isinstance(value, BaseException):
                raise value
            if callable(value):
                return value(*args)
            return value
        finally:
            self.in_flight -= 1

    def called(self, function_name: str) -> int:
        return sum(1 for _, fn, _ in self.calls if fn == function_name)


class FakeLedger:
    def __init__(self, sequence: int = 1000, error: Optional[Exception] = None):
        self.sequence = sequence
        self.error = error
        self.calls = 0

    async def get_current_ledger(self) -> int:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.sequence


# ----------------------------
# Indexer (GraphQL) stub
# ----------------------------

_OP_RE = re.compile(r"query\s+(\w+)")


class GraphQLStub:
    """
    respx side effect that answers indexer POSTs by GraphQL operation name.

    ``on(op, payload, ...)`` queues responses; the last queued response is
    repeated. Unqueued operations return an empty connection. The availability check
    ``{ __typename }`` is recorded under ``"__typename"``.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, List[Tuple[int, Any]]] = {}
        self.requests: List[Tuple[str, Dict[str, Any]]] = []

    def on(self, op: str, *payloads: Any, status: int = 200) -> "GraphQLStub":
        self.responses.setdefault(op, []).extend((status, p) for p in payloads)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        query = body.get("query", "")
        if "__typename" in query:
            op = "__typename"
        else:
            m = _OP_RE.search(query)
            op = m.group(1) if m else "anonymous"
        self.requests.append((op, body))
        queue = self.responses.get(op)
        if not queue:
            if op == "__typename":
                return httpx.Response(200, json={"data": {"__typename": "Query"}})
            return httpx.Response(200, json={"data": {"accessControlEvents": {"nodes": []}}})
        status, payload = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(status, json=payload)

    def bodies(self, op: str) -> List[Dict[str, Any]]:
        return [b for o, b in self.requests if o == op]


def events(*nodes: Dict[str, Any], has_next: bool = False, cursor: Optional[str] = None) -> Dict[str, Any]:
    conn: Dict[str, Any] = {"nodes": list(nodes)}
    conn["pageInfo"] = {"hasNextPage": has_next, "endCursor": cursor}
    return {"data": {"accessControlEvents": conn}}


def node(
    tx: str,
    *,
    role: Optional[str] = "MINTER",
    account: str = ACCOUNT_A,
    type: str = "ROLE_GRANTED",
    timestamp: str = "2025-01-01T00:00:00Z",
    block: str = "100",
    **extra: Any,
) -> Dict[str, Any]:
    out = {
        "id": f"{tx}-{account}",
        "role": role,
        "account": account,
        "type": type,
        "txHash": tx,
        "timestamp": timestamp,
        "blockHeight": block,
    }
    out.update(extra)
    return out


@pytest.fixture
def gql() -> GraphQLStub:
    return GraphQLStub()


@pytest.fixture
def respx_mock():
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def indexer_route(respx_mock, gql):
    return respx_mock.post(INDEXER_URL).mock(side_effect=gql)


@pytest_asyncio.fixture
async def indexer(network, indexer_route) -> IndexerClient:
    client = IndexerClient(network)
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    return FakeExecutor
