"""recordguard: role/ownership access checks and field-level mutation guards."""

from recordguard.auditing import AuditedAuthorizationService
from recordguard.errors import MutationRejected, RecordGuardError
from recordguard.models.actor import AccessDecision, Actor, Operation, ResourceRef, Role
from recordguard.models.constraint import FieldConstraint, Violation, ViolationKind
from recordguard.service import AuthorizationService, MutationOutcome

__all__ = [
    "AccessDecision",
    "Actor",
    "AuditedAuthorizationService",
    "AuthorizationService",
    "FieldConstraint",
    "MutationOutcome",
    "MutationRejected",
    "Operation",
    "RecordGuardError",
    "ResourceRef",
    "Role",
    "Violation",
    "ViolationKind",
]
