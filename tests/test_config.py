from __future__ import annotations

import os

import pytest

from soroban_access.config import (
    DEFAULT_UNSUPPORTED_QUERY_CODES,
    IndexerOverride,
    NetworkConfig,
    Settings,
    get_settings,
)
from soroban_access.errors import ConfigurationInvalid


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("SOROBAN_AC_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    s = Settings(_env_file=None)
    assert s.network_id == "stellar-testnet"
    assert s.concurrency_limit == 5
    assert s.unsupported_query_codes == DEFAULT_UNSUPPORTED_QUERY_CODES
    assert s.indexer_overrides == {}
    cfg = s.network_config()
    assert cfg.rpc_url == "https://soroban-testnet.stellar.org"
    assert cfg.indexer_uri is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SOROBAN_AC_NETWORK_ID", "futurenet")
    monkeypatch.setenv("SOROBAN_AC_RPC_URL", "https://rpc-futurenet.example")
    monkeypatch.setenv("SOROBAN_AC_INDEXER_HTTP_URL", "https://idx.example/graphql")
    monkeypatch.setenv("SOROBAN_AC_CONCURRENCY_LIMIT", "8")
    monkeypatch.setenv("SOROBAN_AC_UNSUPPORTED_QUERY_CODES", "A, B ,C")
    monkeypatch.setenv(
        "SOROBAN_AC_INDEXER_OVERRIDES",
        '{"futurenet": {"http": "https://o.example/graphql", "ws": "wss://o.example/graphql"}}',
    )

    s = get_settings()
    assert s is get_settings()
    assert s.concurrency_limit == 8
    assert s.unsupported_query_codes == ["A", "B", "C"]
    cfg = s.network_config()
    assert (cfg.id, cfg.indexer_uri) == ("futurenet", "https://idx.example/graphql")
    ov = s.indexer_override("futurenet")
    assert isinstance(ov, IndexerOverride) and ov.ws == "wss://o.example/graphql"
    assert s.indexer_override("stellar-testnet") is None


def test_json_list_of_codes(monkeypatch):
    monkeypatch.setenv("SOROBAN_AC_UNSUPPORTED_QUERY_CODES", '["X", "Y"]')
    assert Settings(_env_file=None).unsupported_query_codes == ["X", "Y"]


def test_http_only_override_is_plain_url():
    s = Settings(_env_file=None, indexer_overrides={"testnet": "https://o.example/graphql"})
    assert s.indexer_override("testnet") == "https://o.example/graphql"


def test_bad_override_json(monkeypatch):
    monkeypatch.setenv("SOROBAN_AC_INDEXER_OVERRIDES", "not json")
    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_concurrency_limit_must_be_positive():
    with pytest.raises(ValueError):
        Settings(_env_file=None, concurrency_limit=0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rpc_url": "soroban-testnet.stellar.org"},
        {"rpc_url": ""},
        {"rpc_url": "https://rpc.example", "indexer_uri": "wss://idx.example"},
        {"rpc_url": "https://rpc.example", "indexer_ws_uri": "https://idx.example"},
    ],
)
def test_network_config_url_checks(kwargs):
    with pytest.raises(ConfigurationInvalid):
        NetworkConfig(id="testnet", **kwargs)


def test_network_config_blank_indexer_is_none():
    cfg = NetworkConfig(id="testnet", rpc_url="https://rpc.example", indexer_uri="  ")
    assert cfg.indexer_uri is None
