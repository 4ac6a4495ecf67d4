from __future__ import annotations

"""
Capability detection from a contract's declared function names.

Detection is a pure classification over the function inventory:

- Ownable is detected iff ``get_owner`` is present.
- AccessControl is detected iff ``has_role``, ``grant_role`` and
  ``revoke_role`` are all present.
- Role enumeration needs both ``get_role_member_count`` and ``get_role_member``.
- Two-step variants add ``accept_ownership`` / ``accept_admin_transfer``.

Conformance (``verified_against_standard``) additionally requires at least
2 of the 3 optional Ownable functions and at least 4 of the 7 optional
AccessControl functions for each pattern that was detected.

:func:`validate_access_control_support` is the guard every mutating flow
calls before assembling an action.
"""

from typing import FrozenSet, Iterable, Optional

from soroban_access.errors import UnsupportedContractFeatures
from soroban_access.logging import get_logger
from soroban_access.models import AccessControlCapabilities

log = get_logger(__name__)

OWNABLE_REQUIRED: FrozenSet[str] = frozenset({"get_owner"})
OWNABLE_OPTIONAL: FrozenSet[str] = frozenset(
    {"transfer_ownership", "accept_ownership", "renounce_ownership"}
)
OWNABLE_MIN_OPTIONAL = 2

ACCESS_CONTROL_REQUIRED: FrozenSet[str] = frozenset({"has_role", "grant_role", "revoke_role"})
ACCESS_CONTROL_OPTIONAL: FrozenSet[str] = frozenset(
    {
        "get_role_admin",
        "set_role_admin",
        "get_admin",
        "transfer_admin_role",
        "accept_admin_transfer",
        "renounce_admin",
        "renounce_role",
    }
)
ACCESS_CONTROL_MIN_OPTIONAL = 4

ENUMERATION_FUNCTIONS: FrozenSet[str] = frozenset({"get_role_member_count", "get_role_member"})


def _verify(names: FrozenSet[str], has_ownable: bool, has_access_control: bool) -> bool:
    if not has_ownable and not has_access_control:
        return False
    if has_ownable and len(OWNABLE_OPTIONAL & names) < OWNABLE_MIN_OPTIONAL:
        return False
    if has_access_control and len(ACCESS_CONTROL_OPTIONAL & names) < ACCESS_CONTROL_MIN_OPTIONAL:
        return False
    return True


def detect_access_control_capabilities(
    function_names: Iterable[str], indexer_available: bool = False
) -> AccessControlCapabilities:
    """
    Classify a function inventory. ``supports_history`` mirrors
    ``indexer_available`` as given; no connectivity is probed here.
    """
    names = frozenset(function_names)

    has_ownable = OWNABLE_REQUIRED <= names
    has_two_step_ownable = has_ownable and "accept_ownership" in names
    has_access_control = ACCESS_CONTROL_REQUIRED <= names
    has_two_step_admin = has_access_control and "accept_admin_transfer" in names
    has_enumerable_roles = ENUMERATION_FUNCTIONS <= names

    notes = []
    if has_ownable:
        if has_two_step_ownable:
            notes.append("OpenZeppelin two-step Ownable interface detected (with accept_ownership)")
        else:
            notes.append("OpenZeppelin Ownable interface detected")
    if has_access_control:
        if has_two_step_admin:
            notes.append(
                "OpenZeppelin two-step AccessControl interface detected (with accept_admin_transfer)"
            )
        else:
            notes.append("OpenZeppelin AccessControl interface detected")
    if has_enumerable_roles:
        notes.append("Role enumeration supported (get_role_member_count, get_role_member)")
    elif has_access_control:
        notes.append("Role enumeration not available - requires event reconstruction")
    if not indexer_available and (has_ownable or has_access_control):
        notes.append("History queries unavailable without indexer configuration")
    if not has_ownable and not has_access_control:
        notes.append("No OpenZeppelin access control interfaces detected")

    return AccessControlCapabilities(
        has_ownable=has_ownable,
        has_access_control=has_access_control,
        has_enumerable_roles=has_enumerable_roles,
        has_two_step_ownable=has_two_step_ownable,
        has_two_step_admin=has_two_step_admin,
        supports_history=bool(indexer_available),
        verified_against_standard=_verify(names, has_ownable, has_access_control),
        notes=notes,
    )


def validate_access_control_support(
    capabilities: AccessControlCapabilities, contract_address: Optional[str] = None
) -> None:
    if not capabilities.has_ownable and not capabilities.has_access_control:
        log.warning("unsupported_contract", contract=contract_address, reason="no_interface")
        raise UnsupportedContractFeatures(
            "Contract does not implement OpenZeppelin Ownable or AccessControl interfaces",
            contract=contract_address,
            missing=["Ownable", "AccessControl"],
        )
    if not capabilities.verified_against_standard:
        log.warning("unsupported_contract", contract=contract_address, reason="not_conformant")
        raise UnsupportedContractFeatures(
            "Contract interfaces do not conform to OpenZeppelin standards",
            contract=contract_address,
        )


__all__ = [
    "OWNABLE_REQUIRED",
    "OWNABLE_OPTIONAL",
    "ACCESS_CONTROL_REQUIRED",
    "ACCESS_CONTROL_OPTIONAL",
    "ENUMERATION_FUNCTIONS",
    "detect_access_control_capabilities",
    "validate_access_control_support",
]
