"""Actor, resource and access-decision data models.

An actor is built per request from the claims of an already-verified
session token. Nothing here is persisted: the models only carry the
identity, role and ownership facts an access check needs.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Role(str, enum.Enum):
    """Ordered role set (access_policy.json → roles).

    Declaration order is rank order: USER < ADMIN < SUPER_USER.
    """
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_USER = "SUPER_USER"

    @property
    def rank(self) -> int:
        return list(Role).index(self)

    def at_least(self, other: Role) -> bool:
        """True if this role ranks at or above ``other``."""
        return self.rank >= other.rank


class Operation(str, enum.Enum):
    """Operations an actor may request on a resource."""
    READ = "read"
    UPDATE = "update"
    LIST = "list"


class AccessBasis(str, enum.Enum):
    """Why an access decision came out the way it did."""
    ELEVATED_ROLE = "elevated_role"
    OWNERSHIP = "ownership"
    NONE = "none"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Actor:
    """The authenticated identity performing an operation.

    identity_id is stored as stripped text whatever type the token claim
    carried, so it compares equal to a ResourceRef owner id.
    """
    identity_id: str
    role: Role

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity_id", _canonical_id(self.identity_id))

    @classmethod
    def from_claims(cls, identity_id: str, role_name: str) -> Actor:
        """Build an actor from verified token claims.

        Raises ValueError for a blank identity or an unknown role name.
        """
        canonical = _canonical_id(identity_id)
        if not canonical:
            raise ValueError("Cannot build actor with blank identity ID")
        return cls(identity_id=canonical, role=Role(role_name.strip().upper()))


@dataclass(frozen=True)
class ResourceRef:
    """The record being acted on.

    owner_id is resolved by the caller before the access check. A
    collection target (listing every record) has no owner. Both ids are
    stored as stripped text, so 7, "7" and " 7 " name the same record.
    """
    record_id: Optional[str] = None
    owner_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.record_id is not None:
            object.__setattr__(self, "record_id", _canonical_id(self.record_id))
        if self.owner_id is not None:
            object.__setattr__(self, "owner_id", _canonical_id(self.owner_id))

    def is_owned_by(self, actor: Actor) -> bool:
        return bool(self.owner_id) and self.owner_id == actor.identity_id


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of one coarse-grained access check."""
    allowed: bool
    reason: str
    basis: AccessBasis
    operation: Operation


def _canonical_id(value: object) -> str:
    return str(value).strip()
