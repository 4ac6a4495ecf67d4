from __future__ import annotations

"""
Role models

- RoleIdentifier:          Symbol-constrained role id plus a display label.
- RoleAssignment:          a role and its current members (on-chain view).
- GrantInfo:               most recent grant of a role to one account (indexer view).
- EnrichedRoleMember /
  EnrichedRoleAssignment:  members decorated with grant metadata when available.
- AccessSnapshot:          exportable roles + ownership.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .transfer import OwnershipInfo

OWNER_ROLE_ID = "OWNER"


def role_label(role_id: str) -> str:
    """``MINTER_ROLE`` -> ``minter role``."""
    return role_id.replace("_", " ").lower()


class RoleIdentifier(BaseModel):
    """
    Role id rendered from a Soroban ``Symbol``.

    Two identifiers compare equal iff their normalized (stripped) ids match;
    the label is presentation only.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: Optional[str] = None

    @classmethod
    def from_id(cls, role_id: str) -> "RoleIdentifier":
        return cls(id=role_id, label=role_label(role_id))

    @property
    def key(self) -> str:
        return self.id.strip()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RoleIdentifier):
            return self.key == other.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.key)


class RoleAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: RoleIdentifier
    members: List[str] = Field(default_factory=list)


class GrantInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: Optional[str] = None
    tx_id: str
    ledger: Optional[int] = None


class EnrichedRoleMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    granted_at: Optional[str] = None
    granted_tx_id: Optional[str] = None
    granted_ledger: Optional[int] = None

    @classmethod
    def from_grant(cls, address: str, grant: Optional[GrantInfo]) -> "EnrichedRoleMember":
        if grant is None:
            return cls(address=address)
        return cls(
            address=address,
            granted_at=grant.timestamp,
            granted_tx_id=grant.tx_id,
            granted_ledger=grant.ledger,
        )


class EnrichedRoleAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: RoleIdentifier
    members: List[EnrichedRoleMember] = Field(default_factory=list)


class AccessSnapshot(BaseModel):
    """
    Point-in-time export of roles and ownership.

    Role ids must be unique within a snapshot; members are plain address strings.
    """

    model_config = ConfigDict(frozen=True)

    roles: List[RoleAssignment] = Field(default_factory=list)
    ownership: Optional[OwnershipInfo] = None

    @model_validator(mode="after")
    def _unique_roles(self) -> "AccessSnapshot":
        seen = set()
        for assignment in self.roles:
            if assignment.role.key in seen:
                raise ValueError(f"duplicate role id in snapshot: {assignment.role.id}")
            seen.add(assignment.role.key)
        return self


__all__ = [
    "OWNER_ROLE_ID",
    "role_label",
    "RoleIdentifier",
    "RoleAssignment",
    "GrantInfo",
    "EnrichedRoleMember",
    "EnrichedRoleAssignment",
    "AccessSnapshot",
]
