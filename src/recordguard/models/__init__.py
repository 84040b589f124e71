"""Data models: actors, resources, constraints, violations."""

from recordguard.models.actor import (
    AccessBasis,
    AccessDecision,
    Actor,
    Operation,
    ResourceRef,
    Role,
)
from recordguard.models.constraint import FieldConstraint, Violation, ViolationKind

__all__ = [
    "AccessBasis",
    "AccessDecision",
    "Actor",
    "Operation",
    "ResourceRef",
    "Role",
    "FieldConstraint",
    "Violation",
    "ViolationKind",
]
