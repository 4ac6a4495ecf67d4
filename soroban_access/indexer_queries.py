from __future__ import annotations

"""
GraphQL documents and node decoding for the access-control event indexer.

The indexer exposes one connection, ``accessControlEvents``, with
PostGraphile-style filters (``equalTo``, ``in``, ``greaterThanOrEqualTo``),
``orderBy: TIMESTAMP_DESC`` and cursor pagination (``first`` / ``after`` ->
``pageInfo { hasNextPage endCursor }``).

Builders return ``(document, variables)``; only provided filters appear in
either. Event types are GraphQL enum values and are therefore inlined, not
passed as variables.

Wire event types::

    ROLE_GRANTED  ROLE_REVOKED
    OWNERSHIP_TRANSFER_STARTED  OWNERSHIP_TRANSFER_COMPLETED
    ADMIN_TRANSFER_INITIATED    ADMIN_TRANSFER_COMPLETED
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from soroban_access.errors import ConfigurationInvalid
from soroban_access.models import (
    OWNER_ROLE_ID,
    HistoryChangeType,
    HistoryEntry,
    HistoryQuery,
    PendingTransfer,
    RoleIdentifier,
)

Query = Tuple[str, Dict[str, Any]]

AVAILABILITY_QUERY = "{ __typename }"

_TO_WIRE: Dict[HistoryChangeType, str] = {
    HistoryChangeType.GRANTED: "ROLE_GRANTED",
    HistoryChangeType.REVOKED: "ROLE_REVOKED",
    HistoryChangeType.OWNERSHIP_TRANSFER_STARTED: "OWNERSHIP_TRANSFER_STARTED",
    HistoryChangeType.OWNERSHIP_TRANSFER_COMPLETED: "OWNERSHIP_TRANSFER_COMPLETED",
    HistoryChangeType.ADMIN_TRANSFER_INITIATED: "ADMIN_TRANSFER_INITIATED",
    HistoryChangeType.ADMIN_TRANSFER_COMPLETED: "ADMIN_TRANSFER_COMPLETED",
}
_FROM_WIRE: Dict[str, HistoryChangeType] = {v: k for k, v in _TO_WIRE.items()}


def change_type_to_wire(change_type: HistoryChangeType) -> str:
    try:
        return _TO_WIRE[HistoryChangeType(change_type)]
    except (KeyError, ValueError):
        raise ConfigurationInvalid(
            f"Cannot filter history by change type {change_type!r}",
            value=change_type,
            parameter="changeType",
        ) from None


def change_type_from_wire(value: Optional[str]) -> HistoryChangeType:
    return _FROM_WIRE.get(value or "", HistoryChangeType.UNKNOWN)


# ------------------------------ Transfer kinds -------------------------------


@dataclass(frozen=True)
class TransferKind:
    """Wire vocabulary for one two-step transfer flavour (ownership or admin)."""

    name: str
    initiated: str
    completed: str


OWNERSHIP_TRANSFER = TransferKind("ownership", "OWNERSHIP_TRANSFER_STARTED", "OWNERSHIP_TRANSFER_COMPLETED")
ADMIN_TRANSFER = TransferKind("admin", "ADMIN_TRANSFER_INITIATED", "ADMIN_TRANSFER_COMPLETED")


# ------------------------------ Builders -------------------------------------

_HISTORY_NODE_FIELDS = """
            id
            role
            account
            type
            txHash
            timestamp
            blockHeight"""


def build_history_query(contract: str, q: Optional[HistoryQuery] = None) -> Query:
    q = q or HistoryQuery()
    decls = ["$contract: String!"]
    filters = ["contract: { equalTo: $contract }"]
    variables: Dict[str, Any] = {"contract": contract}

    if q.role_id:
        decls.append("$role: String")
        filters.append("role: { equalTo: $role }")
        variables["role"] = q.role_id
    if q.account:
        decls.append("$account: String")
        filters.append("account: { equalTo: $account }")
        variables["account"] = q.account
    if q.change_type is not None:
        filters.append(f"type: {{ equalTo: {change_type_to_wire(q.change_type)} }}")
    if q.tx_id:
        decls.append("$txHash: String")
        filters.append("txHash: { equalTo: $txHash }")
        variables["txHash"] = q.tx_id
    ts = []
    if q.timestamp_from:
        decls.append("$timestampFrom: Datetime")
        ts.append("greaterThanOrEqualTo: $timestampFrom")
        variables["timestampFrom"] = q.timestamp_from
    if q.timestamp_to:
        decls.append("$timestampTo: Datetime")
        ts.append("lessThanOrEqualTo: $timestampTo")
        variables["timestampTo"] = q.timestamp_to
    if ts:
        filters.append(f"timestamp: {{ {', '.join(ts)} }}")
    if q.ledger is not None:
        # BigFloat travels as a string
        decls.append("$blockHeight: BigFloat")
        filters.append("blockHeight: { equalTo: $blockHeight }")
        variables["blockHeight"] = str(q.ledger)

    paging = ""
    if q.limit:
        decls.append("$limit: Int")
        paging += ", first: $limit"
        variables["limit"] = q.limit
    if q.cursor:
        decls.append("$cursor: Cursor")
        paging += ", after: $cursor"
        variables["cursor"] = q.cursor

    doc = f"""
      query GetHistory({', '.join(decls)}) {{
        accessControlEvents(
          filter: {{ {', '.join(filters)} }}
          orderBy: TIMESTAMP_DESC{paging}
        ) {{
          nodes {{{_HISTORY_NODE_FIELDS}
          }}
          pageInfo {{
            hasNextPage
            endCursor
          }}
        }}
      }}
    """
    return doc, variables


def build_latest_grants_query(contract: str, role_id: str, accounts: Sequence[str]) -> Query:
    doc = """
      query LatestGrants($contract: String!, $role: String!, $accounts: [String!]!) {
        accessControlEvents(
          filter: {
            contract: { equalTo: $contract }
            role: { equalTo: $role }
            account: { in: $accounts }
            type: { equalTo: ROLE_GRANTED }
          }
          orderBy: TIMESTAMP_DESC
        ) {
          nodes {
            account
            txHash
            timestamp
            blockHeight
          }
        }
      }
    """
    return doc, {"contract": contract, "role": role_id, "accounts": list(accounts)}


def build_transfer_initiated_query(contract: str, kind: TransferKind) -> Query:
    doc = f"""
      query GetTransferInitiated($contract: String!) {{
        accessControlEvents(
          filter: {{
            contract: {{ equalTo: $contract }}
            type: {{ equalTo: {kind.initiated} }}
          }}
          orderBy: TIMESTAMP_DESC
          first: 1
        ) {{
          nodes {{
            id
            account
            admin
            txHash
            timestamp
            ledger
            liveUntilLedger
            blockHeight
          }}
        }}
      }}
    """
    return doc, {"contract": contract}


def build_transfer_completed_query(contract: str, kind: TransferKind, since: str) -> Query:
    doc = f"""
      query GetTransferCompleted($contract: String!, $since: Datetime!) {{
        accessControlEvents(
          filter: {{
            contract: {{ equalTo: $contract }}
            type: {{ equalTo: {kind.completed} }}
            timestamp: {{ greaterThanOrEqualTo: $since }}
          }}
          orderBy: TIMESTAMP_DESC
          first: 1
        ) {{
          nodes {{
            id
            txHash
            timestamp
          }}
        }}
      }}
    """
    return doc, {"contract": contract, "since": since}


# ------------------------------ Decoding -------------------------------------


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def entry_from_node(node: Mapping[str, Any]) -> HistoryEntry:
    """A null role marks an ownership event and is reported under ``OWNER``."""
    role_id = node.get("role") or OWNER_ROLE_ID
    return HistoryEntry(
        role=RoleIdentifier(id=role_id),
        account=node.get("account") or "",
        change_type=change_type_from_wire(node.get("type")),
        tx_id=node.get("txHash") or node.get("id") or "",
        timestamp=node.get("timestamp"),
        ledger=_as_int(node.get("blockHeight", node.get("ledger"))),
    )


# Field names used for the previous principal across schema generations
PREVIOUS_PRINCIPAL_KEYS = ("admin", "previousOwner", "previousAdmin")


@dataclass(frozen=True)
class PendingTransferEvent:
    """Decoded initiation event; ``None`` fields mean the wire event omitted them."""

    pending_principal: Optional[str]
    previous_principal: Optional[str]
    ledger: Optional[int]
    live_until_ledger: Optional[int]
    timestamp: Optional[str]
    tx_hash: Optional[str]

    @classmethod
    def from_node(cls, node: Mapping[str, Any]) -> "PendingTransferEvent":
        previous = next((node[k] for k in PREVIOUS_PRINCIPAL_KEYS if node.get(k)), None)
        return cls(
            pending_principal=node.get("account") or node.get("pendingOwner") or node.get("pendingAdmin"),
            previous_principal=previous,
            ledger=_as_int(node.get("ledger", node.get("blockHeight"))),
            live_until_ledger=_as_int(node.get("liveUntilLedger")),
            timestamp=node.get("timestamp"),
            tx_hash=node.get("txHash"),
        )

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.pending_principal:
            missing.append("account")
        if not self.previous_principal:
            missing.append("previousPrincipal")
        if self.live_until_ledger is None:
            missing.append("liveUntilLedger")
        if not self.timestamp:
            missing.append("timestamp")
        return missing

    def to_pending_transfer(self) -> PendingTransfer:
        return PendingTransfer(
            pending_principal=self.pending_principal or "",
            previous_principal=self.previous_principal or "",
            initiated_at_ledger=self.ledger or 0,
            live_until_ledger=self.live_until_ledger or 0,
            timestamp=self.timestamp,
            tx_hash=self.tx_hash,
        )


__all__ = [
    "AVAILABILITY_QUERY",
    "TransferKind",
    "OWNERSHIP_TRANSFER",
    "ADMIN_TRANSFER",
    "PREVIOUS_PRINCIPAL_KEYS",
    "PendingTransferEvent",
    "build_history_query",
    "build_latest_grants_query",
    "build_transfer_initiated_query",
    "build_transfer_completed_query",
    "change_type_from_wire",
    "change_type_to_wire",
    "entry_from_node",
]
