from __future__ import annotations

"""
Action models

- ContractAction:               unsigned call parameters handed to a signing
                                collaborator. ``to_payload()`` renders the
                                camelCase wire shape.
- ExpirationValidationResult:   outcome of an expiration-ledger check.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContractAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    contract_address: str
    function_name: str
    args: List[Any] = Field(default_factory=list)
    arg_types: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _args_match_types(self) -> "ContractAction":
        if len(self.args) != len(self.arg_types):
            raise ValueError(
                f"args/arg_types length mismatch ({len(self.args)} != {len(self.arg_types)})"
            )
        return self

    def to_payload(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract_address,
            "functionName": self.function_name,
            "args": list(self.args),
            "argTypes": list(self.arg_types),
        }


class ExpirationValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    current_ledger: int
    error: Optional[str] = None


__all__ = ["ContractAction", "ExpirationValidationResult"]
