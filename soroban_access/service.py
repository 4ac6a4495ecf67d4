from __future__ import annotations

"""
Access-control service for one Soroban network.

Coordinates the feature detector, on-chain reader, indexer client and
reconciler behind one object per network, and prepares unsigned actions for
a signing collaborator.

Contracts are registered with their function inventory (and optionally known
role ids) before capability checks, role listing or action preparation.
Ownership, admin and history reads only need a valid contract address.

Typical usage
-------------
    async with AccessControlService.from_settings(executor) as svc:
        svc.register_contract(addr, function_names)
        ownership = await svc.get_ownership(addr)
        action = await svc.prepare_transfer_ownership(addr, new_owner, live_until)
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import httpx

from soroban_access import actions
from soroban_access.config import DEFAULT_CONCURRENCY_LIMIT, NetworkConfig, Settings, get_settings
from soroban_access.errors import (
    ConfigurationInvalid,
    IndexerQueryError,
    IndexerUnavailable,
    OperationFailed,
)
from soroban_access.features import detect_access_control_capabilities, validate_access_control_support
from soroban_access.indexer import IndexerClient
from soroban_access.indexer_queries import change_type_to_wire
from soroban_access.logging import get_logger
from soroban_access.models import (
    AccessControlCapabilities,
    AccessSnapshot,
    AdminInfo,
    ContractAction,
    EnrichedRoleAssignment,
    EnrichedRoleMember,
    GrantInfo,
    HistoryChangeType,
    HistoryQuery,
    OwnershipInfo,
    PageInfo,
    PaginatedHistory,
    RoleAssignment,
)
from soroban_access.onchain import LedgerSource, OnChainReader, QueryExecutor
from soroban_access.reconciler import StateReconciler
from soroban_access.validation import (
    ensure_expiration_ledger,
    validate_address,
    validate_contract_address,
    validate_role_id,
    validate_timestamp,
    validate_role_ids,
)

log = get_logger(__name__)


@dataclass
class ContractContext:
    address: str
    function_names: List[str]
    known_role_ids: List[str] = field(default_factory=list)
    discovered_role_ids: Optional[List[str]] = None
    discovery_attempted: bool = False


class AccessControlService:
    def __init__(
        self,
        network: NetworkConfig,
        executor: QueryExecutor,
        *,
        indexer: Optional[IndexerClient] = None,
        ledger_source: Optional[LedgerSource] = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
    ):
        self.network = network
        self.indexer = indexer
        self.reader = OnChainReader(
            executor, network, ledger_source=ledger_source, concurrency_limit=concurrency_limit
        )
        self.reconciler = StateReconciler(self.reader, indexer)
        self._contexts: Dict[str, ContractContext] = {}

    @classmethod
    def from_settings(
        cls,
        executor: QueryExecutor,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        ledger_source: Optional[LedgerSource] = None,
    ) -> "AccessControlService":
        s = settings or get_settings()
        network = s.network_config()
        indexer = IndexerClient(
            network,
            override_lookup=s.indexer_override,
            http_client=http_client,
            timeout_s=s.request_timeout_s,
            unsupported_codes=s.unsupported_query_codes,
            max_pages=s.history_max_pages,
        )
        return cls(
            network,
            executor,
            indexer=indexer,
            ledger_source=ledger_source,
            concurrency_limit=s.concurrency_limit,
        )

    async def close(self) -> None:
        if self.indexer is not None:
            await self.indexer.close()

    async def __aenter__(self) -> "AccessControlService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- registration ----------

    def register_contract(
        self,
        contract_address: str,
        function_names: Sequence[str],
        known_role_ids: Optional[Sequence[str]] = None,
    ) -> ContractContext:
        address = validate_contract_address(contract_address)
        role_ids = validate_role_ids(known_role_ids, "knownRoleIds") if known_role_ids else []
        ctx = ContractContext(address=address, function_names=list(function_names), known_role_ids=role_ids)
        self._contexts[address] = ctx
        log.info("contract_registered", contract=address, functions=len(ctx.function_names), roles=len(role_ids))
        return ctx

    def add_known_role_ids(self, contract_address: str, role_ids: Sequence[str]) -> List[str]:
        ctx = self._context(contract_address)
        for rid in validate_role_ids(role_ids):
            if rid not in ctx.known_role_ids:
                ctx.known_role_ids.append(rid)
        log.info("known_roles_added", contract=ctx.address, roles=len(ctx.known_role_ids))
        return list(ctx.known_role_ids)

    def _context(self, contract_address: str) -> ContractContext:
        address = validate_contract_address(contract_address)
        ctx = self._contexts.get(address)
        if ctx is None:
            raise ConfigurationInvalid(
                "Contract not registered. Call register_contract() first.",
                value=address,
                parameter="contractAddress",
            )
        return ctx

    async def _indexer_available(self) -> bool:
        return self.indexer is not None and await self.indexer.check_availability()

    def _require_indexer(self, contract: str) -> IndexerClient:
        if self.indexer is None:
            raise IndexerUnavailable(
                "No indexer configured for this network", contract=contract, network_id=self.network.id
            )
        return self.indexer

    # ---------- capabilities ----------

    async def get_capabilities(self, contract_address: str) -> AccessControlCapabilities:
        ctx = self._context(contract_address)
        caps = detect_access_control_capabilities(ctx.function_names, await self._indexer_available())
        log.info(
            "capabilities_detected",
            contract=ctx.address,
            ownable=caps.has_ownable,
            access_control=caps.has_access_control,
            verified=caps.verified_against_standard,
        )
        return caps

    async def _guarded(self, contract_address: str) -> AccessControlCapabilities:
        caps = await self.get_capabilities(contract_address)
        validate_access_control_support(caps, contract_address)
        return caps

    # ---------- ownership / admin ----------

    async def get_ownership(self, contract_address: str, *, verify_on_chain: bool = False) -> OwnershipInfo:
        address = validate_contract_address(contract_address)
        return await self.reconciler.get_ownership(address, verify_on_chain=verify_on_chain)

    async def get_admin_info(self, contract_address: str, *, verify_on_chain: bool = False) -> AdminInfo:
        address = validate_contract_address(contract_address)
        return await self.reconciler.get_admin_info(address, verify_on_chain=verify_on_chain)

    async def get_admin_account(self, contract_address: str) -> Optional[str]:
        address = validate_contract_address(contract_address)
        return await self.reader.get_admin(address)

    # ---------- roles ----------

    async def discover_known_role_ids(self, contract_address: str) -> List[str]:
        """
        Known role ids win. Otherwise discovery runs against the indexer once
        per contract; a failed or unavailable discovery is not retried.
        """
        ctx = self._context(contract_address)
        if ctx.known_role_ids:
            return list(ctx.known_role_ids)
        if ctx.discovered_role_ids is not None:
            return list(ctx.discovered_role_ids)
        if ctx.discovery_attempted:
            return []

        ctx.discovery_attempted = True
        if not await self._indexer_available():
            log.warning("role_discovery_skipped", contract=ctx.address, network_id=self.network.id)
            return []
        indexer = self._require_indexer(ctx.address)
        try:
            ctx.discovered_role_ids = await indexer.discover_role_ids(ctx.address)
        except (IndexerQueryError, IndexerUnavailable) as exc:
            log.error("role_discovery_failed", contract=ctx.address, error=str(exc))
            return []
        return list(ctx.discovered_role_ids)

    async def get_current_roles(self, contract_address: str) -> List[RoleAssignment]:
        ctx = self._context(contract_address)
        role_ids = await self.discover_known_role_ids(ctx.address)
        if not role_ids:
            log.info("no_roles_known", contract=ctx.address)
            return []
        return await self.reader.read_current_roles(ctx.address, role_ids)

    async def get_current_roles_enriched(self, contract_address: str) -> List[EnrichedRoleAssignment]:
        address = self._context(contract_address).address
        roles = await self.get_current_roles(address)
        if not roles:
            return []

        def _bare(assignment: RoleAssignment) -> EnrichedRoleAssignment:
            return EnrichedRoleAssignment(
                role=assignment.role,
                members=[EnrichedRoleMember(address=m) for m in assignment.members],
            )

        if not await self._indexer_available():
            log.warning("role_enrichment_skipped", contract=address, reason="indexer_unavailable")
            return [_bare(r) for r in roles]
        indexer = self._require_indexer(address)

        async def _enrich(assignment: RoleAssignment) -> EnrichedRoleAssignment:
            if not assignment.members:
                return _bare(assignment)
            try:
                grants: Dict[str, GrantInfo] = await indexer.query_latest_grants(
                    address, assignment.role.id, assignment.members
                )
            except (IndexerQueryError, IndexerUnavailable) as exc:
                log.warning(
                    "role_enrichment_failed", contract=address, role=assignment.role.id, error=str(exc)
                )
                return _bare(assignment)
            return EnrichedRoleAssignment(
                role=assignment.role,
                members=[EnrichedRoleMember.from_grant(m, grants.get(m)) for m in assignment.members],
            )

        return list(await asyncio.gather(*(_enrich(r) for r in roles)))

    # ---------- history ----------

    async def get_history(
        self,
        contract_address: str,
        *,
        role_id: Optional[str] = None,
        account: Optional[str] = None,
        change_type: Optional[HistoryChangeType] = None,
        tx_id: Optional[str] = None,
        ledger: Optional[int] = None,
        timestamp_from: Optional[str] = None,
        timestamp_to: Optional[str] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> PaginatedHistory:
        address = validate_contract_address(contract_address)
        if role_id is not None:
            role_id = validate_role_id(role_id)
        if account is not None:
            account = validate_address(account, "account")
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
            raise ConfigurationInvalid("limit must be a positive integer", value=limit, parameter="limit")
        if ledger is not None and (isinstance(ledger, bool) or not isinstance(ledger, int) or ledger < 0):
            raise ConfigurationInvalid("ledger must be a non-negative integer", value=ledger, parameter="ledger")
        if change_type is not None:
            change_type_to_wire(change_type)
        if timestamp_from is not None:
            timestamp_from = validate_timestamp(timestamp_from, "timestampFrom")
        if timestamp_to is not None:
            timestamp_to = validate_timestamp(timestamp_to, "timestampTo")

        query = HistoryQuery(
            role_id=role_id,
            account=account,
            change_type=change_type,
            tx_id=tx_id,
            ledger=ledger,
            timestamp_from=timestamp_from,
            timestamp_to=timestamp_to,
            limit=limit,
            cursor=cursor,
        )

        if not await self._indexer_available():
            log.warning("history_unavailable", contract=address, network_id=self.network.id)
            return PaginatedHistory(items=[], page_info=PageInfo(has_next_page=False))
        log.info("history_query", contract=address, cursor=cursor)
        return await self._require_indexer(address).query_history(address, query)

    # ---------- snapshot ----------

    async def export_snapshot(self, contract_address: str) -> AccessSnapshot:
        address = validate_contract_address(contract_address)
        log.info("snapshot_export", contract=address)

        ownership: Optional[OwnershipInfo] = None
        try:
            ownership = await self.get_ownership(address)
        except (OperationFailed, IndexerUnavailable) as exc:
            log.debug("snapshot_ownership_unavailable", contract=address, error=str(exc))

        roles: List[RoleAssignment] = []
        if address in self._contexts:
            roles = await self.get_current_roles(address)

        try:
            snapshot = AccessSnapshot(roles=roles, ownership=ownership)
        except ValueError as exc:
            raise OperationFailed(
                f"Invalid snapshot structure for contract {address}",
                resource=address,
                operation="export_snapshot",
                cause=exc,
            ) from exc
        log.debug(
            "snapshot_created",
            contract=address,
            has_owner=bool(ownership and ownership.owner),
            roles=len(roles),
            members=sum(len(r.members) for r in roles),
        )
        return snapshot

    # ---------- action preparation ----------

    async def prepare_grant_role(
        self, contract_address: str, role_id: str, account: str, caller: Optional[str] = None
    ) -> ContractAction:
        await self._guarded(contract_address)
        return actions.assemble_grant_role_action(contract_address, role_id, account, caller)

    async def prepare_revoke_role(
        self, contract_address: str, role_id: str, account: str, caller: Optional[str] = None
    ) -> ContractAction:
        await self._guarded(contract_address)
        return actions.assemble_revoke_role_action(contract_address, role_id, account, caller)

    async def prepare_transfer_ownership(
        self, contract_address: str, new_owner: str, live_until_ledger: int
    ) -> ContractAction:
        await self._guarded(contract_address)
        validate_address(new_owner, "newOwner")
        current = await self.reader.get_current_ledger()
        ensure_expiration_ledger(live_until_ledger, current, "liveUntilLedger")
        return actions.assemble_transfer_ownership_action(contract_address, new_owner, live_until_ledger)

    async def prepare_accept_ownership(self, contract_address: str) -> ContractAction:
        await self._guarded(contract_address)
        return actions.assemble_accept_ownership_action(contract_address)

    async def prepare_renounce_ownership(self, contract_address: str) -> ContractAction:
        await self._guarded(contract_address)
        return actions.assemble_renounce_ownership_action(contract_address)

    async def prepare_transfer_admin(
        self, contract_address: str, new_admin: str, live_until_ledger: int
    ) -> ContractAction:
        await self._guarded(contract_address)
        validate_address(new_admin, "newAdmin")
        current = await self.reader.get_current_ledger()
        ensure_expiration_ledger(live_until_ledger, current, "liveUntilLedger")
        return actions.assemble_transfer_admin_action(contract_address, new_admin, live_until_ledger)

    async def prepare_accept_admin(self, contract_address: str) -> ContractAction:
        await self._guarded(contract_address)
        return actions.assemble_accept_admin_action(contract_address)

    async def prepare_renounce_admin(self, contract_address: str) -> ContractAction:
        await self._guarded(contract_address)
        return actions.assemble_renounce_admin_action(contract_address)


__all__ = ["AccessControlService", "ContractContext"]
