"""
JSON-RPC client for a Soroban RPC server.

This adapter is intentionally small. It provides:
- an async JSON-RPC transport over HTTP(S) with optional bounded retries
  (disabled by default; the access-control layer never retries on its own)
- typed methods for the endpoints the access-control layer uses:
  * getLatestLedger  -> current ledger sequence (the expiration clock)
  * getNetwork       -> passphrase / protocol version
  * getHealth        -> liveness

Transport and JSON-RPC errors are raised as :class:`SorobanRpcError`
subclasses, which are :class:`~soroban_access.errors.OperationFailed`, so
callers can handle them with the rest of the domain errors.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, cast

import httpx

from soroban_access.errors import OperationFailed
from soroban_access.logging import get_logger
from soroban_access.version import user_agent

log = get_logger(__name__)


# ----------------------------- Errors ---------------------------------------


class SorobanRpcError(OperationFailed):
    """Base class for all Soroban RPC errors."""


class RpcTransportError(SorobanRpcError):
    """Network/HTTP transport-level error."""


class RpcResponseError(SorobanRpcError):
    """JSON-RPC error object returned by the server."""

    def __init__(self, code: int, message: str, data: Any | None = None, *, method: Optional[str] = None):
        super().__init__(f"RPC error {code}: {message}", resource="soroban-rpc", operation=method)
        self.rpc_code = code
        self.rpc_message = message
        self.data = data


# ----------------------------- Helpers --------------------------------------


def _should_retry(status: Optional[int]) -> bool:
    return status in (502, 503, 504)


def _build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    hdrs = {
        "content-type": "application/json",
        "accept": "application/json",
        "user-agent": user_agent(),
    }
    if extra:
        hdrs.update(extra)
    return hdrs


# ----------------------------- Client ---------------------------------------


@dataclass
class SorobanRpcConfig:
    url: str
    timeout_s: float = 10.0
    max_retries: int = 0
    backoff_base_s: float = 0.25
    headers: Optional[Dict[str, str]] = None


class SorobanRpcClient:
    """
    Minimal async JSON-RPC client for Soroban RPC.

    Pass ``http_client`` to share a connection pool (or a mocked transport);
    the client then does not own it and ``close()`` leaves it open.
    """

    def __init__(self, config: SorobanRpcConfig, *, http_client: Optional[httpx.AsyncClient] = None):
        self._cfg = config
        self._id = 0
        self._client: Optional[httpx.AsyncClient] = http_client
        self._owns_client = http_client is None

    # ---------- lifecycle ----------

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._cfg.timeout_s,
                headers=_build_headers(self._cfg.headers),
            )
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SorobanRpcClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def _call(self, method: str, params: Any | None = None) -> Any:
        if self._client is None:
            await self.start()
        client = cast(httpx.AsyncClient, self._client)

        self._id += 1
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": self._id, "method": method}
        if params is not None:
            payload["params"] = params

        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await client.post(self._cfg.url, json=payload)
                if resp.status_code != 200:
                    raise RpcTransportError(
                        f"HTTP {resp.status_code} from Soroban RPC for {method}",
                        resource="soroban-rpc",
                        operation=method,
                        details={"status_code": resp.status_code},
                    )
                try:
                    data = resp.json()
                except ValueError as exc:
                    raise RpcTransportError(
                        f"Invalid JSON from Soroban RPC for {method}",
                        resource="soroban-rpc",
                        operation=method,
                        cause=exc,
                    ) from exc
                err = data.get("error")
                if err is not None:
                    raise RpcResponseError(
                        err.get("code", -32000), err.get("message", "Unknown error"), err.get("data"), method=method
                    )
                return data.get("result")
            except (httpx.TimeoutException, httpx.TransportError, RpcTransportError) as exc:
                status = exc.details.get("status_code") if isinstance(exc, RpcTransportError) and exc.details else None
                retriable = not isinstance(exc, RpcTransportError) or _should_retry(status)
                if not retriable or attempt > self._cfg.max_retries:
                    log.error("soroban_rpc_failed", method=method, attempts=attempt, error=str(exc))
                    if isinstance(exc, RpcTransportError):
                        raise
                    raise RpcTransportError(
                        f"Soroban RPC call {method} failed after {attempt} attempt(s): {exc}",
                        resource="soroban-rpc",
                        operation=method,
                        cause=exc,
                    ) from exc
                delay = self._cfg.backoff_base_s * (2 ** (attempt - 1))
                log.debug("soroban_rpc_retry", method=method, attempt=attempt, delay_s=delay)
                await asyncio.sleep(delay)

    # ---------- typed methods ----------

    async def get_latest_ledger(self) -> Dict[str, Any]:
        return await self._call("getLatestLedger")

    async def get_network(self) -> Dict[str, Any]:
        return await self._call("getNetwork")

    async def get_health(self) -> Dict[str, Any]:
        return await self._call("getHealth")

    async def get_current_ledger(self) -> int:
        """Current ledger sequence; raises if the server omits it."""
        result = await self.get_latest_ledger()
        seq = (result or {}).get("sequence")
        if seq is None:
            raise SorobanRpcError(
                "getLatestLedger response has no sequence",
                resource="soroban-rpc",
                operation="getLatestLedger",
            )
        return int(seq)


__all__ = [
    "SorobanRpcError",
    "RpcTransportError",
    "RpcResponseError",
    "SorobanRpcConfig",
    "SorobanRpcClient",
]
