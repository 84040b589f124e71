"""Authorization service: unified facade for request handlers.

This is the single entry point a handler calls before touching a record:
- Reads: role/ownership access check.
- Listing: access check against the whole collection (elevated only).
- Updates: access check, then the field-level mutation guard.
- Payload allow-listing for the access basis a decision was granted on.

All operations return typed outcomes; denials and violations are data,
never exceptions. An unauthorized actor is denied before any field
constraint is evaluated, so a denial never reveals which fields are
immutable.

The facade performs no I/O. Auditing wraps it: see
recordguard.auditing.AuditedAuthorizationService.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from recordguard.access.engine import AccessDecisionEngine
from recordguard.guard.engine import MutationGuard
from recordguard.models.actor import AccessDecision, Actor, Operation, ResourceRef
from recordguard.models.constraint import Violation
from recordguard.policy.allowlist import PayloadAllowList
from recordguard.policy.registry import SchemaConstraintRegistry
from recordguard.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)

COLLECTION = ResourceRef(record_id=None, owner_id=None)


@dataclass(frozen=True)
class MutationOutcome:
    """Result of authorizing one update.

    violations is non-empty only when access was granted and the guard
    rejected one or more changed fields. errors is always empty here; the
    audited service fills it when the audit trail fails.
    """
    allowed: bool
    decision: AccessDecision
    violations: list[Violation] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return self.decision.reason


class AuthorizationService:
    """Record-mutation authorization facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = AuthorizationService(resolver)

        decision = service.authorize_read(actor, ResourceRef("42", owner_id="7"))
        payload = service.restrict_payload(decision, "User", request_body)
        outcome = service.authorize_mutation(
            actor, "User", ResourceRef("42", owner_id="7"), previous, payload,
        )
        if outcome.allowed:
            ...  # commit inside the same transaction
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        registry: Optional[SchemaConstraintRegistry] = None,
    ) -> None:
        self._resolver = resolver
        self._access_engine = AccessDecisionEngine.from_resolver(resolver)
        self._registry = registry or SchemaConstraintRegistry.from_resolver(resolver)
        self._guard = MutationGuard(self._registry)
        self._allow_list = PayloadAllowList.from_resolver(resolver)

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> AuthorizationService:
        return cls(PolicyResolver.from_config_dir(config_dir))

    @property
    def guard(self) -> MutationGuard:
        return self._guard

    @property
    def registry(self) -> SchemaConstraintRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Reads and listing
    # ------------------------------------------------------------------

    def authorize_read(self, actor: Actor, resource: ResourceRef) -> AccessDecision:
        """Gate a read of one record. No field-level checks apply."""
        decision = self._access_engine.decide(actor, resource, Operation.READ)
        _log_decision(actor, resource, decision)
        return decision

    def authorize_list(self, actor: Actor) -> AccessDecision:
        """Gate a listing of every record of a type.

        A collection has no owner, so only elevated roles pass.
        """
        decision = self._access_engine.decide(actor, COLLECTION, Operation.LIST)
        _log_decision(actor, COLLECTION, decision)
        return decision

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def authorize_mutation(
        self,
        actor: Actor,
        record_type: str,
        resource: ResourceRef,
        previous: Mapping[str, Any],
        proposed: Mapping[str, Any],
    ) -> MutationOutcome:
        """Gate an update: access check first, then the mutation guard."""
        decision = self._access_engine.decide(actor, resource, Operation.UPDATE)
        if not decision.allowed:
            logger.info(
                "Update of %s %s denied for %s: %s",
                record_type, resource.record_id, actor.identity_id, decision.reason,
            )
            return MutationOutcome(allowed=False, decision=decision)

        violations = self._guard.guard(record_type, previous, proposed)
        if violations:
            logger.info(
                "Update of %s %s by %s rejected: %s",
                record_type, resource.record_id, actor.identity_id,
                [v.field_name for v in violations],
            )
            return MutationOutcome(allowed=False, decision=decision, violations=violations)

        logger.debug(
            "Update of %s %s by %s approved (%s)",
            record_type, resource.record_id, actor.identity_id, decision.reason,
        )
        return MutationOutcome(allowed=True, decision=decision)

    def restrict_payload(
        self,
        decision: AccessDecision,
        record_type: str,
        proposed: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Drop request keys the decision's access basis may not write."""
        dropped = self._allow_list.dropped_fields(record_type, decision.basis, proposed)
        if dropped:
            logger.debug(
                "Dropping fields %s from %s payload (%s)",
                dropped, record_type, decision.basis.value,
            )
        return self._allow_list.restrict(record_type, decision.basis, proposed)


def _log_decision(actor: Actor, resource: ResourceRef, decision: AccessDecision) -> None:
    if decision.allowed:
        logger.debug(
            "%s of %s granted to %s (%s)",
            decision.operation.value, resource.record_id,
            actor.identity_id, decision.reason,
        )
    else:
        logger.info(
            "%s of %s denied for %s: %s",
            decision.operation.value, resource.record_id,
            actor.identity_id, decision.reason,
        )
