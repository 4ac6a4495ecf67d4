from __future__ import annotations

"""
Ownership / admin transfer models

A two-step transfer is initiated by the current principal and must be
accepted by the new principal before ``live_until_ledger``. The state
enums are always derived from on-chain reads plus indexer events; nothing
here is persisted.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TransferState(str, Enum):
    OWNED = "owned"
    PENDING = "pending"
    EXPIRED = "expired"
    RENOUNCED = "renounced"


class AdminState(str, Enum):
    ADMIN_SET = "admin-set"
    PENDING = "pending"
    EXPIRED = "expired"
    RENOUNCED = "renounced"


class PendingTransfer(BaseModel):
    """Reconstructed from the most recent initiation event; same shape for owner and admin."""

    model_config = ConfigDict(frozen=True)

    pending_principal: str
    previous_principal: str
    initiated_at_ledger: int
    live_until_ledger: int
    timestamp: Optional[str] = None
    tx_hash: Optional[str] = None


class OwnershipInfo(BaseModel):
    """
    ``owner`` is None when ownership was renounced. ``state`` and
    ``pending_transfer`` are only filled in by reconciliation; a raw on-chain
    read leaves them unset.
    """

    model_config = ConfigDict(frozen=True)

    owner: Optional[str] = None
    state: Optional[TransferState] = None
    pending_transfer: Optional[PendingTransfer] = None


class AdminInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    admin: Optional[str] = None
    state: Optional[AdminState] = None
    pending_transfer: Optional[PendingTransfer] = None


__all__ = [
    "TransferState",
    "AdminState",
    "PendingTransfer",
    "OwnershipInfo",
    "AdminInfo",
]
