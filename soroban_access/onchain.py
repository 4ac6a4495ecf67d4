from __future__ import annotations

"""
On-chain reads of ownership, admin and role state.

Every read goes through an injected :class:`QueryExecutor` (one read-only
contract invocation) and interprets the typed result. What happens when the
underlying call fails is declared per operation in :data:`READ_POLICIES`:

    operation               failure mode   default
    ---------------------   ------------   -------
    read_ownership          RAISE
    read_pending_owner      DEFAULT        None      (advisory view)
    read_pending_admin      DEFAULT        None      (advisory view)
    has_role                DEFAULT        False     ("unknown or absent")
    get_role_member_count   DEFAULT        0
    get_role_member         DEFAULT        None
    get_role_admin          DEFAULT        None
    get_admin               DEFAULT        None
    read_admin              RAISE                    (admin reconciliation)
    enumerate_role_members  RAISE                    (partial lists are worse)
    get_current_ledger      RAISE                    (expiration clock)

RAISE wraps the cause in :class:`~soroban_access.errors.OperationFailed`.
DEFAULT logs at ERROR and returns the conservative default. A ``False`` from
``has_role`` is therefore not a security decision on its own.

Role enumeration fans out one ``get_role_member`` read per index, bounded by
an ``asyncio.Semaphore`` (default limit 5), and keeps index order.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from soroban_access.adapters.soroban_rpc import SorobanRpcClient, SorobanRpcConfig
from soroban_access.config import DEFAULT_CONCURRENCY_LIMIT, NetworkConfig
from soroban_access.errors import OperationFailed
from soroban_access.logging import get_logger
from soroban_access.models import OwnershipInfo, RoleAssignment, RoleIdentifier

log = get_logger(__name__)


# ----------------------------- Collaborators --------------------------------


class QueryExecutor(Protocol):
    """Invoke a read-only contract function and return its decoded value."""

    def __call__(
        self,
        contract_address: str,
        function_name: str,
        args: Sequence[Any],
        network: NetworkConfig,
    ) -> Awaitable[Any]: ...


class LedgerSource(Protocol):
    async def get_current_ledger(self) -> int: ...


# ----------------------------- Failure policy -------------------------------


class FailureMode(str, Enum):
    RAISE = "raise"
    DEFAULT = "default"


@dataclass(frozen=True)
class ReadPolicy:
    mode: FailureMode
    default: Any = None


READ_POLICIES: Mapping[str, ReadPolicy] = {
    "read_ownership": ReadPolicy(FailureMode.RAISE),
    "read_pending_owner": ReadPolicy(FailureMode.DEFAULT, None),
    "read_pending_admin": ReadPolicy(FailureMode.DEFAULT, None),
    "has_role": ReadPolicy(FailureMode.DEFAULT, False),
    "get_role_member_count": ReadPolicy(FailureMode.DEFAULT, 0),
    "get_role_member": ReadPolicy(FailureMode.DEFAULT, None),
    "get_role_admin": ReadPolicy(FailureMode.DEFAULT, None),
    "get_admin": ReadPolicy(FailureMode.DEFAULT, None),
    "read_admin": ReadPolicy(FailureMode.RAISE),
    "enumerate_role_members": ReadPolicy(FailureMode.RAISE),
    "get_current_ledger": ReadPolicy(FailureMode.RAISE),
}


# ----------------------------- Result decoding ------------------------------


def _optional_str(result: Any) -> Optional[str]:
    if result is None:
        return None
    return result if isinstance(result, str) else str(result)


def _is_present_index(result: Any) -> bool:
    # has_role returns Option<u32>: Some(index) when the account holds the role
    return isinstance(result, int) and not isinstance(result, bool)


def _member_count(result: Any) -> int:
    if isinstance(result, bool):
        return 0
    if isinstance(result, int):
        return result
    if isinstance(result, str):
        try:
            return int(result.strip())
        except ValueError:
            return 0
    return 0


# ----------------------------- Reader ---------------------------------------


class OnChainReader:
    """
    Read-only view of one network's contracts.

    ``ledger_source`` supplies the current ledger; when omitted a
    :class:`~soroban_access.adapters.SorobanRpcClient` against
    ``network.rpc_url`` is opened per call.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        network: NetworkConfig,
        *,
        ledger_source: Optional[LedgerSource] = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        policies: Optional[Mapping[str, ReadPolicy]] = None,
    ):
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be >= 1")
        self.executor = executor
        self.network = network
        self.ledger_source = ledger_source
        self.concurrency_limit = concurrency_limit
        self.policies: Dict[str, ReadPolicy] = dict(READ_POLICIES)
        if policies:
            self.policies.update(policies)

    # ---------- core ----------

    async def _read(
        self,
        operation: str,
        contract_address: str,
        function_name: str,
        args: Sequence[Any],
        decode: Callable[[Any], Any],
        *,
        mode: Optional[FailureMode] = None,
    ) -> Any:
        policy = self.policies[operation]
        try:
            result = await self.executor(contract_address, function_name, list(args), self.network)
            return decode(result)
        except Exception as exc:
            if (mode or policy.mode) is FailureMode.DEFAULT:
                log.error(
                    "onchain_read_failed",
                    operation=operation,
                    contract=contract_address,
                    function=function_name,
                    error=str(exc),
                    fallback=policy.default,
                )
                return policy.default
            log.error(
                "onchain_read_failed",
                operation=operation,
                contract=contract_address,
                function=function_name,
                error=str(exc),
            )
            raise OperationFailed(
                f"Failed to {operation.replace('_', ' ')}: {exc}",
                resource=contract_address,
                operation=operation,
                cause=exc,
            ) from exc

    # ---------- ownership / admin ----------

    async def read_ownership(self, contract_address: str) -> OwnershipInfo:
        log.info("ownership_read", contract=contract_address)
        owner = await self._read("read_ownership", contract_address, "get_owner", [], _optional_str)
        log.debug("ownership_result", contract=contract_address, owner=owner)
        return OwnershipInfo(owner=owner)

    async def read_pending_owner(self, contract_address: str) -> Optional[str]:
        return await self._read(
            "read_pending_owner", contract_address, "get_pending_owner", [], _optional_str
        )

    async def read_pending_admin(self, contract_address: str) -> Optional[str]:
        return await self._read(
            "read_pending_admin", contract_address, "get_pending_admin", [], _optional_str
        )

    async def get_admin(self, contract_address: str) -> Optional[str]:
        log.info("admin_read", contract=contract_address)
        return await self._read("get_admin", contract_address, "get_admin", [], _optional_str)

    async def read_admin(self, contract_address: str) -> Optional[str]:
        """Like :meth:`get_admin` but failures propagate instead of looking like "no admin"."""
        log.info("admin_read", contract=contract_address, strict=True)
        return await self._read("read_admin", contract_address, "get_admin", [], _optional_str)

    # ---------- roles ----------

    async def has_role(self, contract_address: str, role_id: str, account: str) -> bool:
        log.debug("has_role", contract=contract_address, role=role_id, account=account)
        return await self._read(
            "has_role", contract_address, "has_role", [account, role_id], _is_present_index
        )

    async def get_role_member_count(
        self, contract_address: str, role_id: str, *, mode: Optional[FailureMode] = None
    ) -> int:
        log.debug("role_member_count", contract=contract_address, role=role_id)
        return await self._read(
            "get_role_member_count",
            contract_address,
            "get_role_member_count",
            [role_id],
            _member_count,
            mode=mode,
        )

    async def get_role_member(
        self, contract_address: str, role_id: str, index: int, *, mode: Optional[FailureMode] = None
    ) -> Optional[str]:
        log.debug("role_member", contract=contract_address, role=role_id, index=index)
        return await self._read(
            "get_role_member",
            contract_address,
            "get_role_member",
            [role_id, index],
            _optional_str,
            mode=mode,
        )

    async def get_role_admin(self, contract_address: str, role_id: str) -> Optional[str]:
        log.debug("role_admin", contract=contract_address, role=role_id)
        return await self._read(
            "get_role_admin", contract_address, "get_role_admin", [role_id], _optional_str
        )

    async def enumerate_role_members(self, contract_address: str, role_id: str) -> List[str]:
        """
        All members of ``role_id`` in index order. Individual reads run with
        the enumeration's own failure mode, so one failed read fails the
        whole listing.
        """
        mode = self.policies["enumerate_role_members"].mode
        log.info("role_enumeration", contract=contract_address, role=role_id)
        count = await self.get_role_member_count(contract_address, role_id, mode=mode)
        if count <= 0:
            return []

        sem = asyncio.Semaphore(self.concurrency_limit)

        async def _one(index: int) -> Optional[str]:
            async with sem:
                return await self.get_role_member(contract_address, role_id, index, mode=mode)

        results = await asyncio.gather(*(_one(i) for i in range(count)))
        members = [m for m in results if m is not None]
        log.debug("role_enumerated", contract=contract_address, role=role_id, count=count, members=len(members))
        return members

    async def read_current_roles(
        self, contract_address: str, role_ids: Sequence[str]
    ) -> List[RoleAssignment]:
        """
        Enumerate every role. A role whose enumeration fails is reported with
        no members rather than failing the whole read.
        """
        if not role_ids:
            return []
        log.info("current_roles_read", contract=contract_address, roles=len(role_ids))

        async def _role(role_id: str) -> RoleAssignment:
            try:
                members = await self.enumerate_role_members(contract_address, role_id)
            except OperationFailed as exc:
                log.warning("role_read_failed", contract=contract_address, role=role_id, error=str(exc))
                members = []
            return RoleAssignment(role=RoleIdentifier.from_id(role_id), members=members)

        return list(await asyncio.gather(*(_role(r) for r in role_ids)))

    # ---------- ledger ----------

    async def get_current_ledger(self) -> int:
        log.info("current_ledger_read", network_id=self.network.id)
        try:
            if self.ledger_source is not None:
                seq = await self.ledger_source.get_current_ledger()
            else:
                async with SorobanRpcClient(SorobanRpcConfig(url=self.network.rpc_url)) as rpc:
                    seq = await rpc.get_current_ledger()
        except Exception as exc:
            log.error("current_ledger_failed", network_id=self.network.id, error=str(exc))
            raise OperationFailed(
                f"Failed to get current ledger: {exc}",
                resource=self.network.rpc_url,
                operation="get_current_ledger",
                cause=exc,
            ) from exc
        log.debug("current_ledger", network_id=self.network.id, sequence=seq)
        return seq


__all__ = [
    "QueryExecutor",
    "LedgerSource",
    "FailureMode",
    "ReadPolicy",
    "READ_POLICIES",
    "OnChainReader",
]
