from __future__ import annotations

"""
Public model surface for the access-control library.

Submodules:
- roles.py         -> RoleIdentifier, RoleAssignment, GrantInfo, Enriched*, AccessSnapshot
- transfer.py      -> TransferState, AdminState, PendingTransfer, OwnershipInfo, AdminInfo
- history.py       -> HistoryChangeType, HistoryEntry, PageInfo, PaginatedHistory, HistoryQuery
- capabilities.py  -> AccessControlCapabilities
- actions.py       -> ContractAction, ExpirationValidationResult
"""

from .actions import ContractAction, ExpirationValidationResult
from .capabilities import AccessControlCapabilities
from .history import (
    HistoryChangeType,
    HistoryEntry,
    HistoryQuery,
    PageInfo,
    PaginatedHistory,
)
from .roles import (
    OWNER_ROLE_ID,
    AccessSnapshot,
    EnrichedRoleAssignment,
    EnrichedRoleMember,
    GrantInfo,
    RoleAssignment,
    RoleIdentifier,
    role_label,
)
from .transfer import (
    AdminInfo,
    AdminState,
    OwnershipInfo,
    PendingTransfer,
    TransferState,
)

__all__ = [
    "AccessControlCapabilities",
    "AccessSnapshot",
    "AdminInfo",
    "AdminState",
    "ContractAction",
    "EnrichedRoleAssignment",
    "EnrichedRoleMember",
    "ExpirationValidationResult",
    "GrantInfo",
    "HistoryChangeType",
    "HistoryEntry",
    "HistoryQuery",
    "OWNER_ROLE_ID",
    "OwnershipInfo",
    "PageInfo",
    "PaginatedHistory",
    "PendingTransfer",
    "RoleAssignment",
    "RoleIdentifier",
    "TransferState",
    "role_label",
]
