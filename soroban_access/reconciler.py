from __future__ import annotations

"""
Ownership / admin state reconciliation.

Combines the on-chain principal, indexer-reported pending transfers and the
current ledger into one state:

1. principal is None on-chain                   -> renounced
2. no indexer (unconfigured or unreachable)      -> owned / admin-set
3. indexer says the query is unsupported         -> owned / admin-set
4. no pending transfer                           -> owned / admin-set
5. pending and current_ledger >= live_until      -> expired
   pending and current_ledger <  live_until      -> pending

Only an :class:`~soroban_access.errors.IndexerQueryError` flagged
``unsupported`` degrades in step 3; any other indexer failure propagates,
as do on-chain read and current-ledger failures.
"""

from typing import Optional

from soroban_access.errors import IndexerQueryError
from soroban_access.indexer import IndexerClient
from soroban_access.logging import get_logger
from soroban_access.models import (
    AdminInfo,
    AdminState,
    OwnershipInfo,
    PendingTransfer,
    TransferState,
)
from soroban_access.onchain import OnChainReader

log = get_logger(__name__)


# ------------------------------ Pure state derivation ------------------------


def derive_transfer_state(
    owner: Optional[str], pending: Optional[PendingTransfer], current_ledger: Optional[int]
) -> TransferState:
    if owner is None:
        return TransferState.RENOUNCED
    if pending is None:
        return TransferState.OWNED
    if current_ledger is None:
        raise ValueError("current_ledger is required when a transfer is pending")
    if current_ledger >= pending.live_until_ledger:
        return TransferState.EXPIRED
    return TransferState.PENDING


_ADMIN_STATES = {
    TransferState.OWNED: AdminState.ADMIN_SET,
    TransferState.PENDING: AdminState.PENDING,
    TransferState.EXPIRED: AdminState.EXPIRED,
    TransferState.RENOUNCED: AdminState.RENOUNCED,
}


def derive_admin_state(
    admin: Optional[str], pending: Optional[PendingTransfer], current_ledger: Optional[int]
) -> AdminState:
    return _ADMIN_STATES[derive_transfer_state(admin, pending, current_ledger)]


# ------------------------------ Reconciler -----------------------------------


class StateReconciler:
    def __init__(self, reader: OnChainReader, indexer: Optional[IndexerClient] = None):
        self.reader = reader
        self.indexer = indexer

    async def _pending(
        self,
        contract_address: str,
        kind: str,
        method: str,
    ) -> Optional[PendingTransfer]:
        if self.indexer is None or not await self.indexer.check_availability():
            log.warning(
                "transfer_status_undetermined",
                contract=contract_address,
                network_id=self.reader.network.id,
                kind=kind,
                reason="indexer_unavailable",
            )
            return None
        try:
            return await getattr(self.indexer, method)(contract_address)
        except IndexerQueryError as exc:
            if not exc.unsupported:
                raise
            log.warning(
                "transfer_status_undetermined",
                contract=contract_address,
                kind=kind,
                reason="query_unsupported",
                error=str(exc),
            )
            return None

    async def get_ownership(self, contract_address: str, *, verify_on_chain: bool = False) -> OwnershipInfo:
        info = await self.reader.read_ownership(contract_address)
        if info.owner is None:
            log.info("ownership_state", contract=contract_address, state=TransferState.RENOUNCED.value)
            return OwnershipInfo(owner=None, state=TransferState.RENOUNCED)

        pending = await self._pending(
            contract_address, "ownership", "query_pending_ownership_transfer"
        )
        if pending is not None and verify_on_chain:
            if await self.reader.read_pending_owner(contract_address) is None:
                log.info("pending_transfer_unconfirmed", contract=contract_address, kind="ownership")
                pending = None
        if pending is None:
            return OwnershipInfo(owner=info.owner, state=TransferState.OWNED)

        current = await self.reader.get_current_ledger()
        state = derive_transfer_state(info.owner, pending, current)
        log.info(
            "ownership_state",
            contract=contract_address,
            state=state.value,
            current_ledger=current,
            live_until_ledger=pending.live_until_ledger,
        )
        return OwnershipInfo(owner=info.owner, state=state, pending_transfer=pending)

    async def get_admin_info(self, contract_address: str, *, verify_on_chain: bool = False) -> AdminInfo:
        admin = await self.reader.read_admin(contract_address)
        if admin is None:
            log.info("admin_state", contract=contract_address, state=AdminState.RENOUNCED.value)
            return AdminInfo(admin=None, state=AdminState.RENOUNCED)

        pending = await self._pending(contract_address, "admin", "query_pending_admin_transfer")
        if pending is not None and verify_on_chain:
            if await self.reader.read_pending_admin(contract_address) is None:
                log.info("pending_transfer_unconfirmed", contract=contract_address, kind="admin")
                pending = None
        if pending is None:
            return AdminInfo(admin=admin, state=AdminState.ADMIN_SET)

        current = await self.reader.get_current_ledger()
        state = derive_admin_state(admin, pending, current)
        log.info(
            "admin_state",
            contract=contract_address,
            state=state.value,
            current_ledger=current,
            live_until_ledger=pending.live_until_ledger,
        )
        return AdminInfo(admin=admin, state=state, pending_transfer=pending)


__all__ = [
    "derive_transfer_state",
    "derive_admin_state",
    "StateReconciler",
]
