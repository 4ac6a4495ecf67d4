from __future__ import annotations

"""
Client for the access-control event indexer (GraphQL over HTTP).

One client instance is one logical session. It owns two memoized fields:

- the resolved endpoints (runtime override -> network config -> derivation
  from RPC (no known pattern, always empty) -> none), and
- the availability check result (one ``{ __typename }`` POST, no retry, no TTL).

Neither is shared across instances; construct a client per session. With no
resolved HTTP endpoint every operation fails fast with
:class:`~soroban_access.errors.IndexerUnavailable` and nothing is sent.

Error model
-----------
- transport failure, non-2xx status, a non-object body or ``data`` field, or
  a GraphQL ``errors`` array raise
  :class:`~soroban_access.errors.IndexerQueryError`. When every reported
  error carries an ``extensions.code`` listed in ``unsupported_codes`` the
  error is flagged ``unsupported=True`` (schema does not know the query).
- an empty ``nodes`` list is a valid empty result, never an error.
"""

from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Union,
    cast,
)

import httpx

from soroban_access.config import DEFAULT_UNSUPPORTED_QUERY_CODES, IndexerOverride, NetworkConfig
from soroban_access.errors import IndexerQueryError, IndexerUnavailable
from soroban_access.indexer_queries import (
    ADMIN_TRANSFER,
    AVAILABILITY_QUERY,
    OWNERSHIP_TRANSFER,
    PendingTransferEvent,
    TransferKind,
    build_history_query,
    build_latest_grants_query,
    build_transfer_completed_query,
    build_transfer_initiated_query,
    entry_from_node,
)
from soroban_access.logging import get_logger
from soroban_access.models import (
    OWNER_ROLE_ID,
    GrantInfo,
    HistoryEntry,
    HistoryQuery,
    PageInfo,
    PaginatedHistory,
    PendingTransfer,
)
from soroban_access.version import user_agent

log = get_logger(__name__)

OverrideValue = Union[str, IndexerOverride, Mapping[str, Optional[str]]]
OverrideLookup = Callable[[str], Optional[OverrideValue]]


@dataclass(frozen=True)
class IndexerEndpoints:
    http: Optional[str] = None
    ws: Optional[str] = None


def _nodes(data: Mapping[str, Any]) -> Optional[List[Mapping[str, Any]]]:
    conn = (data or {}).get("accessControlEvents")
    if not isinstance(conn, Mapping):
        return None
    return conn.get("nodes")


class IndexerClient:
    def __init__(
        self,
        network: NetworkConfig,
        *,
        override_lookup: Optional[OverrideLookup] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 10.0,
        unsupported_codes: Optional[Sequence[str]] = None,
        max_pages: int = 50,
    ):
        self.network = network
        self.override_lookup = override_lookup
        self.timeout_s = timeout_s
        self.unsupported_codes: Set[str] = set(
            DEFAULT_UNSUPPORTED_QUERY_CODES if unsupported_codes is None else unsupported_codes
        )
        self.max_pages = max_pages
        self._client = http_client
        self._owns_client = http_client is None
        self._resolved_endpoints: Optional[IndexerEndpoints] = None
        self._availability: Optional[bool] = None

    # ---------- lifecycle ----------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                headers={
                    "content-type": "application/json",
                    "accept": "application/json",
                    "user-agent": user_agent(),
                },
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "IndexerClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- endpoints ----------

    def _derive_from_rpc(self) -> IndexerEndpoints:
        # No safe RPC -> indexer URL pattern is known for any network yet.
        return IndexerEndpoints()

    def resolve_endpoints(self) -> IndexerEndpoints:
        if self._resolved_endpoints is not None:
            return self._resolved_endpoints

        network_id = self.network.id
        override = self.override_lookup(network_id) if self.override_lookup else None
        if override:
            if isinstance(override, str):
                endpoints = IndexerEndpoints(http=override)
            elif isinstance(override, IndexerOverride):
                endpoints = IndexerEndpoints(http=override.http, ws=override.ws)
            else:
                endpoints = IndexerEndpoints(http=override.get("http"), ws=override.get("ws"))
            log.info("indexer_endpoint_override", network_id=network_id, http=endpoints.http, ws=endpoints.ws)
        elif self.network.indexer_uri or self.network.indexer_ws_uri:
            endpoints = IndexerEndpoints(http=self.network.indexer_uri, ws=self.network.indexer_ws_uri)
            log.info("indexer_endpoint_network", network_id=network_id, http=endpoints.http, ws=endpoints.ws)
        else:
            endpoints = self._derive_from_rpc()
            if endpoints.http is None and endpoints.ws is None:
                log.debug("indexer_endpoint_none", network_id=network_id)

        self._resolved_endpoints = endpoints
        return endpoints

    # ---------- availability ----------

    async def check_availability(self) -> bool:
        if self._availability is not None:
            return self._availability

        url = self.resolve_endpoints().http
        if not url:
            log.debug("indexer_not_configured", network_id=self.network.id)
            self._availability = False
            return False

        try:
            resp = await self._http().post(url, json={"query": AVAILABILITY_QUERY})
            available = resp.is_success
            if not available:
                log.warning("indexer_unavailable", network_id=self.network.id, status=resp.status_code)
        except httpx.HTTPError as exc:
            log.warning("indexer_unavailable", network_id=self.network.id, error=str(exc))
            available = False

        self._availability = available
        return available

    async def _require_available(self, contract: str) -> str:
        if not await self.check_availability():
            raise IndexerUnavailable(
                "Indexer not available for this network",
                contract=contract,
                network_id=self.network.id,
            )
        url = self.resolve_endpoints().http
        if url is None:
            raise IndexerUnavailable(
                "No indexer endpoint configured for this network",
                contract=contract,
                network_id=self.network.id,
            )
        return url

    # ---------- transport ----------

    def _is_unsupported(self, errors: Sequence[Mapping[str, Any]]) -> bool:
        codes = [((e.get("extensions") or {}).get("code")) for e in errors if isinstance(e, Mapping)]
        return bool(codes) and all(c in self.unsupported_codes for c in codes)

    async def _post(self, operation: str, contract: str, document: str, variables: Dict[str, Any]) -> Mapping[str, Any]:
        url = await self._require_available(contract)
        log.debug("indexer_query", operation=operation, contract=contract)
        try:
            resp = await self._http().post(url, json={"query": document, "variables": variables})
        except httpx.HTTPError as exc:
            log.error("indexer_request_failed", operation=operation, contract=contract, error=str(exc))
            raise IndexerQueryError(
                f"Indexer request failed: {exc}", resource=contract, operation=operation, cause=exc
            ) from exc

        if not resp.is_success:
            log.error("indexer_request_failed", operation=operation, contract=contract, status=resp.status_code)
            raise IndexerQueryError(
                f"Indexer query failed with status {resp.status_code}",
                resource=contract,
                operation=operation,
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            log.error("indexer_request_failed", operation=operation, contract=contract, error="invalid_json")
            raise IndexerQueryError(
                "Indexer returned invalid JSON", resource=contract, operation=operation, cause=exc
            ) from exc

        if not isinstance(body, Mapping):
            log.error("indexer_request_failed", operation=operation, contract=contract, error="non_object_body")
            raise IndexerQueryError(
                "Indexer returned a non-object response", resource=contract, operation=operation
            )

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, Mapping) else str(e) for e in errors
            )
            unsupported = self._is_unsupported(errors)
            log.error(
                "indexer_query_errors",
                operation=operation,
                contract=contract,
                errors=messages,
                unsupported=unsupported,
            )
            raise IndexerQueryError(
                f"Indexer query errors: {messages}",
                resource=contract,
                operation=operation,
                errors=errors,
                unsupported=unsupported,
            )
        data = body.get("data") or {}
        if not isinstance(data, Mapping):
            log.error("indexer_request_failed", operation=operation, contract=contract, error="non_object_data")
            raise IndexerQueryError(
                "Indexer returned a non-object data field", resource=contract, operation=operation
            )
        return data

    # ---------- history ----------

    async def query_history(self, contract: str, query: Optional[HistoryQuery] = None) -> PaginatedHistory:
        document, variables = build_history_query(contract, query)
        data = await self._post("query_history", contract, document, variables)
        nodes = _nodes(data)
        if not nodes:
            return PaginatedHistory(items=[], page_info=PageInfo(has_next_page=False))
        conn = data["accessControlEvents"]
        page = conn.get("pageInfo") or {}
        return PaginatedHistory(
            items=[entry_from_node(n) for n in nodes],
            page_info=PageInfo(
                has_next_page=bool(page.get("hasNextPage")),
                end_cursor=page.get("endCursor"),
            ),
        )

    async def iter_history(
        self, contract: str, query: Optional[HistoryQuery] = None, *, max_pages: Optional[int] = None
    ) -> AsyncIterator[HistoryEntry]:
        """
        Follow cursors across pages, yielding each entry once. Entries that
        repeat at a page boundary are dropped by (tx, role, account, type).
        """
        query = query or HistoryQuery()
        limit = max_pages or self.max_pages
        seen = set()
        pages = 0
        while True:
            page = await self.query_history(contract, query)
            pages += 1
            for entry in page.items:
                if entry.dedup_key in seen:
                    continue
                seen.add(entry.dedup_key)
                yield entry
            cursor = page.page_info.end_cursor
            if not page.page_info.has_next_page or not cursor or cursor == query.cursor:
                return
            if pages >= limit:
                log.warning("history_page_limit", contract=contract, pages=pages)
                return
            query = query.with_cursor(cursor)

    async def discover_role_ids(self, contract: str) -> List[str]:
        """Distinct role ids seen in the contract's history, excluding ``OWNER``."""
        role_ids: List[str] = []
        async for entry in self.iter_history(contract):
            rid = entry.role.key
            if rid and rid != OWNER_ROLE_ID and rid not in role_ids:
                role_ids.append(rid)
        log.info("roles_discovered", contract=contract, count=len(role_ids))
        return role_ids

    async def query_latest_grants(
        self, contract: str, role_id: str, accounts: Sequence[str]
    ) -> Dict[str, GrantInfo]:
        """
        Most recent grant of ``role_id`` per account. Accounts without a grant
        event are absent from the mapping.
        """
        if not accounts:
            return {}
        document, variables = build_latest_grants_query(contract, role_id, accounts)
        data = await self._post("query_latest_grants", contract, document, variables)
        grants: Dict[str, GrantInfo] = {}
        for node in _nodes(data) or []:
            account = node.get("account")
            if not account or account in grants:
                continue
            entry = entry_from_node({**node, "role": role_id, "type": "ROLE_GRANTED"})
            grants[account] = GrantInfo(timestamp=entry.timestamp, tx_id=entry.tx_id, ledger=entry.ledger)
        return grants

    # ---------- pending transfers ----------

    async def query_pending_ownership_transfer(self, contract: str) -> Optional[PendingTransfer]:
        return await self._query_pending_transfer(contract, OWNERSHIP_TRANSFER)

    async def query_pending_admin_transfer(self, contract: str) -> Optional[PendingTransfer]:
        return await self._query_pending_transfer(contract, ADMIN_TRANSFER)

    async def _query_pending_transfer(self, contract: str, kind: TransferKind) -> Optional[PendingTransfer]:
        """
        Latest initiation event with no completion at or after it.

        An initiation event missing its principals, expiration or timestamp
        is unusable and yields ``None``. Errors from either query propagate.
        """
        document, variables = build_transfer_initiated_query(contract, kind)
        data = await self._post(f"pending_{kind.name}_initiated", contract, document, variables)
        nodes = _nodes(data)
        if not nodes:
            log.debug("no_pending_transfer", contract=contract, kind=kind.name)
            return None

        event = PendingTransferEvent.from_node(nodes[0])
        missing = event.missing_fields()
        if missing:
            log.warning("transfer_event_unusable", contract=contract, kind=kind.name, missing=missing)
            return None

        since = cast(str, event.timestamp)
        document, variables = build_transfer_completed_query(contract, kind, since)
        data = await self._post(f"pending_{kind.name}_completed", contract, document, variables)
        if _nodes(data):
            log.debug("transfer_already_completed", contract=contract, kind=kind.name)
            return None

        pending = event.to_pending_transfer()
        log.info(
            "pending_transfer_found",
            contract=contract,
            kind=kind.name,
            pending=pending.pending_principal,
            live_until_ledger=pending.live_until_ledger,
        )
        return pending


__all__ = ["IndexerEndpoints", "IndexerClient", "OverrideLookup"]
