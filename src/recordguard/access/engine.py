"""Access decision engine: role/ownership gate for every operation.

Pure computation: no side effects and no lookups. Ownership is resolved
by the caller before the check and arrives on the ResourceRef.

Rule, first match wins:
1. Elevated role (ADMIN, SUPER_USER by default) → allow.
2. Actor owns the resource → allow.
3. Otherwise → deny.
"""

from __future__ import annotations

from typing import Iterable, Optional

from recordguard.models.actor import (
    AccessBasis,
    AccessDecision,
    Actor,
    Operation,
    ResourceRef,
    Role,
)
from recordguard.policy.resolver import PolicyResolver

DEFAULT_ELEVATED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPER_USER})

REASON_ELEVATED = "elevated role"
REASON_OWNERSHIP = "ownership"
REASON_DENIED = "neither owner nor elevated role"


class AccessDecisionEngine:
    """Decides whether an actor may perform an operation on a resource.

    Usage:
        engine = AccessDecisionEngine()
        decision = engine.decide(actor, ResourceRef("42", owner_id="7"), Operation.UPDATE)
    """

    def __init__(self, elevated_roles: Optional[Iterable[Role]] = None) -> None:
        self._elevated = (
            frozenset(elevated_roles) if elevated_roles is not None
            else DEFAULT_ELEVATED_ROLES
        )

    @classmethod
    def from_resolver(cls, resolver: PolicyResolver) -> AccessDecisionEngine:
        return cls(resolver.elevated_roles())

    @property
    def elevated_roles(self) -> frozenset[Role]:
        return self._elevated

    def is_elevated(self, actor: Actor) -> bool:
        return actor.role in self._elevated

    def decide(
        self,
        actor: Actor,
        resource: ResourceRef,
        operation: Operation,
    ) -> AccessDecision:
        """Evaluate the access rule for one request."""
        if self.is_elevated(actor):
            return AccessDecision(
                allowed=True,
                reason=REASON_ELEVATED,
                basis=AccessBasis.ELEVATED_ROLE,
                operation=operation,
            )
        if resource.is_owned_by(actor):
            return AccessDecision(
                allowed=True,
                reason=REASON_OWNERSHIP,
                basis=AccessBasis.OWNERSHIP,
                operation=operation,
            )
        return AccessDecision(
            allowed=False,
            reason=REASON_DENIED,
            basis=AccessBasis.NONE,
            operation=operation,
        )
