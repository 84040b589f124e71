"""Mutation guard: rejects updates that touch immutable fields.

Pure computation: no side effects. Receives the previous and proposed
record state, returns every violation found. The caller decides what to
do with them (report, abort the transaction).

Rules, per changed field:
- readOnly: always a violation, whatever the previous value.
- writeOnceIfUnset: a violation only if the previous value is set
  (not None). Initialising an unset field is allowed exactly once.
- none or undeclared: never a violation.

Only ever applied to updates of existing records. Creation has no
previous state and is not guarded.
"""

from __future__ import annotations

from typing import Any, Mapping

from recordguard.guard.changeset import compute_changes
from recordguard.models.constraint import FieldConstraint, Violation
from recordguard.policy.registry import SchemaConstraintRegistry


class MutationGuard:
    """Checks a proposed update against declared field constraints.

    Holds only the read-only registry, so one instance may serve any
    number of concurrent checks.
    """

    def __init__(self, registry: SchemaConstraintRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> SchemaConstraintRegistry:
        return self._registry

    def guard(
        self,
        record_type: str,
        previous: Mapping[str, Any],
        proposed: Mapping[str, Any],
    ) -> list[Violation]:
        """Return violations in change-set order; an empty list approves."""
        changed = compute_changes(previous, proposed)
        if not changed:
            return []

        constraints = self._registry.constraints_for(record_type)
        violations: list[Violation] = []
        for name in changed:
            constraint = constraints.get(name, FieldConstraint.NONE)
            if constraint == FieldConstraint.READ_ONLY:
                violations.append(Violation.read_only(name, proposed[name]))
            elif constraint == FieldConstraint.WRITE_ONCE_IF_UNSET:
                if previous.get(name) is not None:
                    violations.append(Violation.write_once(name, proposed[name]))
        return violations
