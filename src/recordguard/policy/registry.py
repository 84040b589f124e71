"""Schema constraint registry: declared field mutability per record type.

Populated once at start-up, from config or from the ORM schema, and
read-only afterwards. Lookups for an undeclared record type return an
empty mapping: no declaration means fully mutable.

Safe for unsynchronised concurrent reads: nothing mutates after
construction and callers only ever see read-only views.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping

from recordguard.models.constraint import FieldConstraint
from recordguard.policy.resolver import PolicyResolver, parse_constraint

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, FieldConstraint] = MappingProxyType({})


class SchemaConstraintRegistry:
    """Per-record-type field constraints.

    Usage:
        registry = SchemaConstraintRegistry({
            "User": {"role": "readOnly", "verifiedAt": "writeOnceIfUnset"},
        })
        registry.constraints_for("User")["role"]  # FieldConstraint.READ_ONLY
    """

    def __init__(self, declarations: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        tables: dict[str, Mapping[str, FieldConstraint]] = {}
        for record_type, fields in (declarations or {}).items():
            canonical = record_type.strip()
            if not canonical:
                raise ValueError("Cannot declare constraints for a blank record type")
            tables[canonical] = MappingProxyType({
                name: parse_constraint(value, f"{canonical}.{name}")
                for name, value in fields.items()
            })
        self._tables: Mapping[str, Mapping[str, FieldConstraint]] = MappingProxyType(tables)
        logger.debug(
            "Constraint registry loaded: %s",
            {t: len(f) for t, f in self._tables.items()},
        )

    @classmethod
    def from_resolver(cls, resolver: PolicyResolver) -> SchemaConstraintRegistry:
        """Build from the field_constraints section of the policy config."""
        return cls(resolver.field_constraints())

    def constraints_for(self, record_type: str) -> Mapping[str, FieldConstraint]:
        """Return field → constraint for a record type (empty if undeclared)."""
        return self._tables.get(record_type, _EMPTY)

    def constraint_of(self, record_type: str, field_name: str) -> FieldConstraint:
        """Return one field's constraint, NONE when undeclared."""
        return self.constraints_for(record_type).get(field_name, FieldConstraint.NONE)

    def record_types(self) -> list[str]:
        """Return every record type with declared constraints."""
        return sorted(self._tables)

    def __contains__(self, record_type: object) -> bool:
        return record_type in self._tables
