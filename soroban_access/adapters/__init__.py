"""
Transport adapters (httpx-backed) for the access-control library.

- soroban_rpc.py  -> SorobanRpcClient (getLatestLedger, getNetwork, getHealth)
"""

from .soroban_rpc import (
    RpcResponseError,
    RpcTransportError,
    SorobanRpcClient,
    SorobanRpcConfig,
    SorobanRpcError,
)

__all__ = [
    "RpcResponseError",
    "RpcTransportError",
    "SorobanRpcClient",
    "SorobanRpcConfig",
    "SorobanRpcError",
]
