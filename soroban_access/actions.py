from __future__ import annotations

"""
Unsigned action assembly.

Each builder validates its inputs and returns a
:class:`~soroban_access.models.ContractAction`. Builders are synchronous and
never touch the network; a signing collaborator turns the action into a
transaction. Argument types are Soroban type names.

Grant/revoke take an explicit ``caller``. When omitted the
:data:`CALLER_PLACEHOLDER` is emitted and the signing collaborator
substitutes the connected account.
"""

from typing import Optional

from soroban_access.errors import ConfigurationInvalid
from soroban_access.logging import get_logger
from soroban_access.models import ContractAction
from soroban_access.validation import (
    validate_account_address,
    validate_address,
    validate_contract_address,
    validate_role_id,
)

log = get_logger(__name__)

CALLER_PLACEHOLDER = "__CALLER__"

ADDRESS = "Address"
SYMBOL = "Symbol"
U32 = "u32"


def _ledger(value: int, parameter: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFFFFFF:
        raise ConfigurationInvalid(
            f"{parameter} must be a u32 ledger sequence, got {value!r}",
            value=value,
            parameter=parameter,
        )
    return value


def _caller(caller: Optional[str]) -> str:
    if caller is None or caller == CALLER_PLACEHOLDER:
        return CALLER_PLACEHOLDER
    return validate_account_address(caller, "caller")


# ------------------------------ Roles ----------------------------------------


def assemble_grant_role_action(
    contract_address: str, role_id: str, account: str, caller: Optional[str] = None
) -> ContractAction:
    contract = validate_contract_address(contract_address)
    role = validate_role_id(role_id)
    target = validate_address(account, "account")
    log.info("action_assembled", action="grant_role", contract=contract, role=role, account=target)
    return ContractAction(
        contract_address=contract,
        function_name="grant_role",
        args=[target, role, _caller(caller)],
        arg_types=[ADDRESS, SYMBOL, ADDRESS],
    )


def assemble_revoke_role_action(
    contract_address: str, role_id: str, account: str, caller: Optional[str] = None
) -> ContractAction:
    contract = validate_contract_address(contract_address)
    role = validate_role_id(role_id)
    target = validate_address(account, "account")
    log.info("action_assembled", action="revoke_role", contract=contract, role=role, account=target)
    return ContractAction(
        contract_address=contract,
        function_name="revoke_role",
        args=[target, role, _caller(caller)],
        arg_types=[ADDRESS, SYMBOL, ADDRESS],
    )


# ------------------------------ Ownership ------------------------------------


def assemble_transfer_ownership_action(
    contract_address: str, new_owner: str, live_until_ledger: int
) -> ContractAction:
    """
    Initiate a two-step ownership transfer. The expiration is only shape-checked
    here; monotonicity against the current ledger is enforced by the caller
    that has read it.
    """
    contract = validate_contract_address(contract_address)
    owner = validate_address(new_owner, "newOwner")
    ledger = _ledger(live_until_ledger, "liveUntilLedger")
    log.info("action_assembled", action="transfer_ownership", contract=contract, new_owner=owner)
    return ContractAction(
        contract_address=contract,
        function_name="transfer_ownership",
        args=[owner, ledger],
        arg_types=[ADDRESS, U32],
    )


def assemble_accept_ownership_action(contract_address: str) -> ContractAction:
    contract = validate_contract_address(contract_address)
    log.info("action_assembled", action="accept_ownership", contract=contract)
    return ContractAction(contract_address=contract, function_name="accept_ownership")


def assemble_renounce_ownership_action(contract_address: str) -> ContractAction:
    contract = validate_contract_address(contract_address)
    log.info("action_assembled", action="renounce_ownership", contract=contract)
    return ContractAction(contract_address=contract, function_name="renounce_ownership")


# ------------------------------ Admin ----------------------------------------


def assemble_transfer_admin_action(
    contract_address: str, new_admin: str, live_until_ledger: int
) -> ContractAction:
    contract = validate_contract_address(contract_address)
    admin = validate_address(new_admin, "newAdmin")
    ledger = _ledger(live_until_ledger, "liveUntilLedger")
    log.info("action_assembled", action="transfer_admin_role", contract=contract, new_admin=admin)
    return ContractAction(
        contract_address=contract,
        function_name="transfer_admin_role",
        args=[admin, ledger],
        arg_types=[ADDRESS, U32],
    )


def assemble_accept_admin_action(contract_address: str) -> ContractAction:
    contract = validate_contract_address(contract_address)
    log.info("action_assembled", action="accept_admin_transfer", contract=contract)
    return ContractAction(contract_address=contract, function_name="accept_admin_transfer")


def assemble_renounce_admin_action(contract_address: str) -> ContractAction:
    contract = validate_contract_address(contract_address)
    log.info("action_assembled", action="renounce_admin", contract=contract)
    return ContractAction(contract_address=contract, function_name="renounce_admin")


__all__ = [
    "CALLER_PLACEHOLDER",
    "assemble_grant_role_action",
    "assemble_revoke_role_action",
    "assemble_transfer_ownership_action",
    "assemble_accept_ownership_action",
    "assemble_renounce_ownership_action",
    "assemble_transfer_admin_action",
    "assemble_accept_admin_action",
    "assemble_renounce_admin_action",
]
