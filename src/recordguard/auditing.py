"""Audited authorization: the facade plus an append-only audit trail.

AuditedAuthorizationService wraps an AuthorizationService and appends one
AuditRecord per decision. The wrapped facade stays pure; every lock and
file write happens here.

Audit failures fail closed. A grant that cannot be recorded is turned into
a denial:
- reads and listings: AccessDecision(allowed=False,
  reason="audit-trail failure: ...", basis=NONE).
- updates: MutationOutcome(allowed=False, violations=[]) with the failure
  in errors, while decision still shows the access check that passed.
Denials and rejections stay what they were; the failure is added to
errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from recordguard.guard.engine import MutationGuard
from recordguard.models.actor import AccessBasis, AccessDecision, Actor, ResourceRef
from recordguard.persistence.audit_log import AuditKind, AuditLog, AuditRecord
from recordguard.policy.registry import SchemaConstraintRegistry
from recordguard.service import COLLECTION, AuthorizationService, MutationOutcome

logger = logging.getLogger(__name__)


class AuditedAuthorizationService:
    """AuthorizationService with every decision appended to an AuditLog.

    Usage:
        service = AuditedAuthorizationService(
            AuthorizationService(resolver), AuditLog(path),
        )
        outcome = service.authorize_mutation(actor, "User", ref, previous, payload)
    """

    def __init__(self, service: AuthorizationService, audit_log: AuditLog) -> None:
        self._service = service
        self._audit_log = audit_log

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Path,
        audit_log: AuditLog,
    ) -> AuditedAuthorizationService:
        return cls(AuthorizationService.from_config_dir(config_dir), audit_log)

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def guard(self) -> MutationGuard:
        return self._service.guard

    @property
    def registry(self) -> SchemaConstraintRegistry:
        return self._service.registry

    # ------------------------------------------------------------------
    # Facade operations
    # ------------------------------------------------------------------

    def authorize_read(self, actor: Actor, resource: ResourceRef) -> AccessDecision:
        decision = self._service.authorize_read(actor, resource)
        return self._audited_decision(actor, resource, decision)

    def authorize_list(self, actor: Actor) -> AccessDecision:
        decision = self._service.authorize_list(actor)
        return self._audited_decision(actor, COLLECTION, decision)

    def authorize_mutation(
        self,
        actor: Actor,
        record_type: str,
        resource: ResourceRef,
        previous: Mapping[str, Any],
        proposed: Mapping[str, Any],
    ) -> MutationOutcome:
        outcome = self._service.authorize_mutation(
            actor, record_type, resource, previous, proposed,
        )
        decision = outcome.decision
        payload: dict[str, Any] = {
            "record_type": record_type,
            "record_id": _text(resource.record_id),
            "operation": decision.operation.value,
        }
        if not decision.allowed:
            kind = AuditKind.ACCESS_DENIED
            payload["reason"] = decision.reason
        else:
            payload["basis"] = decision.basis.value
            payload["fields"] = list(proposed)
            if outcome.violations:
                kind = AuditKind.MUTATION_REJECTED
                payload["violations"] = [v.to_dict() for v in outcome.violations]
            else:
                kind = AuditKind.MUTATION_APPROVED

        error = self._record(kind, actor, payload)
        if error is None:
            return outcome
        return MutationOutcome(
            allowed=False,
            decision=decision,
            violations=outcome.violations,
            errors=[error],
        )

    def restrict_payload(
        self,
        decision: AccessDecision,
        record_type: str,
        proposed: Mapping[str, Any],
    ) -> dict[str, Any]:
        return self._service.restrict_payload(decision, record_type, proposed)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _audited_decision(
        self,
        actor: Actor,
        resource: ResourceRef,
        decision: AccessDecision,
    ) -> AccessDecision:
        kind = AuditKind.ACCESS_GRANTED if decision.allowed else AuditKind.ACCESS_DENIED
        error = self._record(kind, actor, {
            "record_id": _text(resource.record_id),
            "operation": decision.operation.value,
            "reason": decision.reason,
        })
        if error and decision.allowed:
            return AccessDecision(
                allowed=False,
                reason=f"audit-trail failure: {error}",
                basis=AccessBasis.NONE,
                operation=decision.operation,
            )
        return decision

    def _record(
        self,
        kind: AuditKind,
        actor: Actor,
        payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit record. Returns error string or None."""
        payload = {**payload, "role": actor.role.value}
        try:
            self._audit_log.append(AuditRecord.create(
                event_id=self._audit_log.next_event_id(),
                kind=kind,
                actor_id=actor.identity_id,
                payload=payload,
            ))
        except (ValueError, TypeError, OSError) as e:
            logger.warning("Audit-trail failure recording %s: %s", kind.value, e)
            return f"Audit log failure: {e}"
        return None


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)
