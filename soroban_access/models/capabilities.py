from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class AccessControlCapabilities(BaseModel):
    """Capability flags derived from a contract's function inventory. Never persisted."""

    model_config = ConfigDict(frozen=True)

    has_ownable: bool = False
    has_access_control: bool = False
    has_enumerable_roles: bool = False
    has_two_step_ownable: bool = False
    has_two_step_admin: bool = False
    supports_history: bool = False
    verified_against_standard: bool = False
    notes: List[str] = Field(default_factory=list)


__all__ = ["AccessControlCapabilities"]
