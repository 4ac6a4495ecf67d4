from __future__ import annotations

"""
History models

Entries are read from the event indexer in descending timestamp order.
``HistoryChangeType`` is the library-facing vocabulary; the indexer's wire
enum differs for role events (``ROLE_GRANTED`` vs ``GRANTED``) and the
mapping lives in :mod:`soroban_access.indexer_queries`.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .roles import RoleIdentifier


class HistoryChangeType(str, Enum):
    GRANTED = "GRANTED"
    REVOKED = "REVOKED"
    OWNERSHIP_TRANSFER_STARTED = "OWNERSHIP_TRANSFER_STARTED"
    OWNERSHIP_TRANSFER_COMPLETED = "OWNERSHIP_TRANSFER_COMPLETED"
    ADMIN_TRANSFER_INITIATED = "ADMIN_TRANSFER_INITIATED"
    ADMIN_TRANSFER_COMPLETED = "ADMIN_TRANSFER_COMPLETED"
    UNKNOWN = "UNKNOWN"


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: RoleIdentifier
    account: str
    change_type: HistoryChangeType
    tx_id: str
    timestamp: Optional[str] = None
    ledger: Optional[int] = None

    @property
    def dedup_key(self) -> Tuple[str, str, str, str]:
        """Identity across page boundaries: (tx, role, account, change type)."""
        return (self.tx_id, self.role.key, self.account, self.change_type.value)


class PageInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_next_page: bool = False
    end_cursor: Optional[str] = None


class PaginatedHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[HistoryEntry] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)


class HistoryQuery(BaseModel):
    """Filters for a history query; only the provided ones are sent."""

    model_config = ConfigDict(frozen=True)

    role_id: Optional[str] = None
    account: Optional[str] = None
    change_type: Optional[HistoryChangeType] = None
    tx_id: Optional[str] = None
    ledger: Optional[int] = Field(default=None, ge=0)
    timestamp_from: Optional[str] = None
    timestamp_to: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)
    cursor: Optional[str] = None

    def with_cursor(self, cursor: Optional[str]) -> "HistoryQuery":
        return self.model_copy(update={"cursor": cursor})


__all__ = [
    "HistoryChangeType",
    "HistoryEntry",
    "PageInfo",
    "PaginatedHistory",
    "HistoryQuery",
]
