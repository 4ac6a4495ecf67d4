from __future__ import annotations

"""
Configuration loader for the Soroban access-control library.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Provides the per-network :class:`NetworkConfig` consumed by the on-chain
  reader and the indexer client.
- Exposes a cached `get_settings()` accessor.

Environment variables (all prefixed with ``SOROBAN_AC_``):
    NETWORK_ID                (str, default "stellar-testnet")
    RPC_URL                   (str)                 Soroban RPC endpoint
    NETWORK_PASSPHRASE        (str, optional)
    INDEXER_HTTP_URL          (str, optional)       default GraphQL endpoint
    INDEXER_WS_URL            (str, optional)
    INDEXER_OVERRIDES         (json mapping)        {"stellar-testnet": "https://...",
                                                     "futurenet": {"http": "...", "ws": "..."}}
    CONCURRENCY_LIMIT         (int, default 5)      role member fan-out bound
    REQUEST_TIMEOUT_S         (float, default 10)
    HISTORY_MAX_PAGES         (int, default 50)
    UNSUPPORTED_QUERY_CODES   (csv|json list)       GraphQL error codes meaning
                                                    "query not supported by schema"
    LOG_LEVEL                 (str, default "INFO")

Notes
-----
- Lists accept comma-separated strings or JSON arrays.
- INDEXER_OVERRIDES must be JSON if provided.
"""

import json
from functools import lru_cache
from typing import Annotated, Dict, List, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from soroban_access.errors import ConfigurationInvalid

DEFAULT_CONCURRENCY_LIMIT = 5
DEFAULT_UNSUPPORTED_QUERY_CODES = ["GRAPHQL_VALIDATION_FAILED", "UNSUPPORTED_QUERY"]

# ----------------------------- Helpers & Models ------------------------------ #


def _parse_list(val: Optional[str | List[str]], *, default: List[str]) -> List[str]:
    if val is None:
        return list(default)
    if isinstance(val, list):
        return [str(x) for x in val]
    s = val.strip()
    if not s:
        return []
    if s.startswith("[") and s.endswith("]"):
        try:
            parsed = json.loads(s)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(x) for x in parsed]
    return [x.strip() for x in s.split(",") if x.strip()]


def _check_scheme(url: Optional[str], schemes: tuple, parameter: str) -> Optional[str]:
    if url is None:
        return None
    s = str(url).strip()
    if not s:
        return None
    parsed = urlparse(s)
    if parsed.scheme not in schemes or not parsed.netloc:
        raise ConfigurationInvalid(
            f"{parameter} must be an absolute {'/'.join(schemes)} URL, got {s!r}",
            value=s,
            parameter=parameter,
        )
    return s


class IndexerOverride(BaseModel):
    """Runtime override for one network: HTTP endpoint plus optional websocket endpoint."""

    http: Optional[str] = None
    ws: Optional[str] = None

    @field_validator("http", mode="before")
    @classmethod
    def _check_http(cls, v):
        return _check_scheme(v, ("http", "https"), "indexer_overrides.http")

    @field_validator("ws", mode="before")
    @classmethod
    def _check_ws(cls, v):
        return _check_scheme(v, ("ws", "wss"), "indexer_overrides.ws")


class NetworkConfig(BaseModel):
    """Per-network endpoint defaults."""

    id: str
    rpc_url: str
    network_passphrase: Optional[str] = None
    indexer_uri: Optional[str] = None
    indexer_ws_uri: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("rpc_url", mode="before")
    @classmethod
    def _check_rpc(cls, v):
        checked = _check_scheme(v, ("http", "https"), "rpc_url")
        if checked is None:
            raise ConfigurationInvalid("rpc_url is required", value=v, parameter="rpc_url")
        return checked

    @field_validator("indexer_uri", mode="before")
    @classmethod
    def _check_indexer(cls, v):
        return _check_scheme(v, ("http", "https"), "indexer_uri")

    @field_validator("indexer_ws_uri", mode="before")
    @classmethod
    def _check_indexer_ws(cls, v):
        return _check_scheme(v, ("ws", "wss"), "indexer_ws_uri")


# --------------------------------- Settings ---------------------------------- #


class Settings(BaseSettings):
    # Network
    network_id: str = Field("stellar-testnet", description="Network identifier")
    rpc_url: str = Field(
        "https://soroban-testnet.stellar.org", description="Soroban RPC endpoint"
    )
    network_passphrase: Optional[str] = Field(
        "Test SDF Network ; September 2015", description="Network passphrase"
    )

    # Indexer
    indexer_http_url: Optional[str] = None
    indexer_ws_url: Optional[str] = None
    indexer_overrides: Dict[str, IndexerOverride] = Field(default_factory=dict)
    unsupported_query_codes: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_UNSUPPORTED_QUERY_CODES)
    )
    history_max_pages: int = Field(50, ge=1)

    # Reads
    concurrency_limit: int = Field(DEFAULT_CONCURRENCY_LIMIT, ge=1)
    request_timeout_s: float = Field(10.0, gt=0)

    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")

    model_config = SettingsConfigDict(
        env_prefix="SOROBAN_AC_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("unsupported_query_codes", mode="before")
    @classmethod
    def _coerce_codes(cls, v):
        return _parse_list(v, default=DEFAULT_UNSUPPORTED_QUERY_CODES)

    @field_validator("indexer_overrides", mode="before")
    @classmethod
    def _parse_overrides(cls, v):
        if v is None:
            return {}
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return {}
            try:
                v = json.loads(s)
            except ValueError as e:
                raise ValueError(
                    "INDEXER_OVERRIDES must be a JSON mapping of network id -> url or {http, ws}"
                ) from e
        if not isinstance(v, dict):
            raise TypeError("Invalid type for indexer overrides")
        out: Dict[str, IndexerOverride] = {}
        for k, vv in v.items():
            if isinstance(vv, IndexerOverride):
                out[str(k)] = vv
            elif isinstance(vv, str):
                out[str(k)] = IndexerOverride(http=vv)
            else:
                out[str(k)] = IndexerOverride(**vv)
        return out

    # ------------------------------ Convenience ------------------------------ #

    def network_config(self) -> NetworkConfig:
        return NetworkConfig(
            id=self.network_id,
            rpc_url=self.rpc_url,
            network_passphrase=self.network_passphrase,
            indexer_uri=self.indexer_http_url,
            indexer_ws_uri=self.indexer_ws_url,
        )

    def indexer_override(self, network_id: str) -> Optional[Union[str, IndexerOverride]]:
        """
        Runtime override lookup keyed by network id. Returns a bare URL string
        when only the HTTP endpoint is overridden.
        """
        ov = self.indexer_overrides.get(network_id)
        if ov is None:
            return None
        if ov.ws is None and ov.http is not None:
            return ov.http
        return ov


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


__all__ = [
    "DEFAULT_CONCURRENCY_LIMIT",
    "DEFAULT_UNSUPPORTED_QUERY_CODES",
    "IndexerOverride",
    "NetworkConfig",
    "Settings",
    "get_settings",
]
