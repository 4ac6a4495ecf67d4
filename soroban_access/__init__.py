"""
soroban_access: access-control state for Soroban contracts.

Reconciles on-chain reads (owner, admin, role members, current ledger) with
an optional historical event indexer into one ownership/admin state, and
assembles unsigned access-control actions.

Entry points:
- AccessControlService   per-network coordinator
- OnChainReader          contract reads with per-operation failure policy
- IndexerClient          GraphQL history, role discovery, pending transfers
- StateReconciler        owned / pending / expired / renounced
"""

from .version import __version__
from .errors import (
    AccessControlError,
    ConfigurationInvalid,
    IndexerQueryError,
    IndexerUnavailable,
    OperationFailed,
    UnsupportedContractFeatures,
)
from .config import NetworkConfig, Settings, get_settings
from .indexer import IndexerClient
from .onchain import FailureMode, OnChainReader
from .reconciler import StateReconciler
from .service import AccessControlService

__all__ = [
    "__version__",
    "AccessControlError",
    "AccessControlService",
    "ConfigurationInvalid",
    "FailureMode",
    "IndexerClient",
    "IndexerQueryError",
    "IndexerUnavailable",
    "NetworkConfig",
    "OnChainReader",
    "OperationFailed",
    "Settings",
    "StateReconciler",
    "UnsupportedContractFeatures",
    "get_settings",
]
