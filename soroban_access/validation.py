from __future__ import annotations

"""
Input validators.

Every validator raises :class:`~soroban_access.errors.ConfigurationInvalid`
(carrying the offending value and the parameter name) so that malformed input
fails before any network call. The one exception is
:func:`validate_expiration_ledger`, which returns an
:class:`~soroban_access.models.ExpirationValidationResult` for callers that
want to display the outcome; :func:`ensure_expiration_ledger` is its raising
counterpart.
"""

import re
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from soroban_access import strkey
from soroban_access.errors import ConfigurationInvalid
from soroban_access.models import ExpirationValidationResult

ROLE_ID_MAX_LENGTH = 32
_ROLE_ID_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ------------------------------ Addresses ------------------------------------


def _require_string(value: Any, parameter: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationInvalid(
            f"{parameter} is required and must be a non-empty string",
            value=value,
            parameter=parameter,
        )
    return value.strip()


def validate_contract_address(address: Any, parameter: str = "contractAddress") -> str:
    s = _require_string(address, parameter)
    if not s.startswith("C"):
        raise ConfigurationInvalid(
            f"Invalid Stellar contract address for {parameter}: {s}. "
            "Contract addresses must start with 'C'",
            value=address,
            parameter=parameter,
        )
    if not strkey.is_valid_contract(s):
        raise ConfigurationInvalid(
            f"Invalid Stellar contract address for {parameter}: {s}",
            value=address,
            parameter=parameter,
        )
    return s


def validate_account_address(address: Any, parameter: str = "account") -> str:
    s = _require_string(address, parameter)
    if not s.startswith("G"):
        raise ConfigurationInvalid(
            f"Invalid Stellar account address for {parameter}: {s}. "
            "Account addresses must start with 'G'",
            value=address,
            parameter=parameter,
        )
    if not strkey.is_valid_account(s):
        raise ConfigurationInvalid(
            f"Invalid Stellar account address for {parameter}: {s}",
            value=address,
            parameter=parameter,
        )
    return s


def validate_address(address: Any, parameter: str = "address") -> str:
    """Accept either an account (``G...``) or a contract (``C...``) address."""
    s = _require_string(address, parameter)
    if strkey.is_valid_account(s) or strkey.is_valid_contract(s):
        return s
    raise ConfigurationInvalid(
        f"Invalid Stellar address for {parameter}: {s}. "
        "Address must be a valid account address (G...) or contract address (C...)",
        value=address,
        parameter=parameter,
    )


def validate_addresses(contract_address: Any, account: Any) -> Tuple[str, str]:
    return validate_contract_address(contract_address), validate_account_address(account)


def normalize_address(address: Optional[str]) -> str:
    """Trim surrounding whitespace; StrKeys stay uppercase. ``None`` yields ``""``."""
    if not address:
        return ""
    return address.strip()


# ------------------------------ Role ids -------------------------------------


def validate_role_id(role_id: Any, parameter: str = "roleId") -> str:
    s = _require_string(role_id, parameter)
    if len(s) > ROLE_ID_MAX_LENGTH:
        raise ConfigurationInvalid(
            f"{parameter} must be at most {ROLE_ID_MAX_LENGTH} characters, got {len(s)}: {s}",
            value=role_id,
            parameter=parameter,
        )
    if not _ROLE_ID_RE.match(s):
        raise ConfigurationInvalid(
            f"{parameter} contains invalid characters: {s}. "
            "Only alphanumeric characters and underscores are allowed, "
            "and it must not start with a digit",
            value=role_id,
            parameter=parameter,
        )
    return s


def validate_role_ids(role_ids: Iterable[Any], parameter: str = "roleIds") -> List[str]:
    """Validate each id and dedupe, preserving first-seen order."""
    if isinstance(role_ids, (str, bytes)) or role_ids is None:
        raise ConfigurationInvalid(
            f"{parameter} must be a list of role ids", value=role_ids, parameter=parameter
        )
    out: List[str] = []
    for i, rid in enumerate(role_ids):
        s = validate_role_id(rid, f"{parameter}[{i}]")
        if s not in out:
            out.append(s)
    return out


# ------------------------------ Timestamps -----------------------------------


def validate_timestamp(value: Any, parameter: str = "timestamp") -> str:
    """ISO-8601 datetime string; a trailing ``Z`` is accepted for UTC."""
    s = _require_string(value, parameter)
    try:
        datetime.fromisoformat(s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s)
    except ValueError:
        raise ConfigurationInvalid(
            f"{parameter} must be an ISO-8601 timestamp, got {s}",
            value=value,
            parameter=parameter,
        ) from None
    return s


# ------------------------------ Expiration -----------------------------------


def validate_expiration_ledger(expiration_ledger: int, current_ledger: int) -> ExpirationValidationResult:
    """
    ``expiration_ledger`` must be strictly greater than ``current_ledger``;
    equality is a zero-length acceptance window and is rejected.
    """
    if expiration_ledger > current_ledger:
        return ExpirationValidationResult(valid=True, current_ledger=current_ledger)
    return ExpirationValidationResult(
        valid=False,
        current_ledger=current_ledger,
        error=(
            f"Expiration ledger {expiration_ledger} must be strictly greater than "
            f"current ledger {current_ledger}"
        ),
    )


def ensure_expiration_ledger(
    expiration_ledger: int, current_ledger: int, parameter: str = "expirationLedger"
) -> int:
    if isinstance(expiration_ledger, bool) or not isinstance(expiration_ledger, int) or expiration_ledger < 0:
        raise ConfigurationInvalid(
            f"{parameter} must be a non-negative integer ledger sequence",
            value=expiration_ledger,
            parameter=parameter,
        )
    result = validate_expiration_ledger(expiration_ledger, current_ledger)
    if not result.valid:
        raise ConfigurationInvalid(result.error or "invalid expiration", value=expiration_ledger, parameter=parameter)
    return expiration_ledger


__all__ = [
    "ROLE_ID_MAX_LENGTH",
    "validate_contract_address",
    "validate_account_address",
    "validate_address",
    "validate_addresses",
    "normalize_address",
    "validate_role_id",
    "validate_role_ids",
    "validate_timestamp",
    "validate_expiration_ledger",
    "ensure_expiration_ledger",
]
