"""Policy resolver: loads access_policy.json and field_constraints.json
and exposes every authorization setting as a typed method call.

No magic. If a required value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from recordguard.models.actor import Role
from recordguard.models.constraint import FieldConstraint


class PolicyResolver:
    """Loads and resolves access and field-constraint policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        elevated = resolver.elevated_roles()
        constraints = resolver.field_constraints()
    """

    def __init__(
        self,
        access_policy: dict[str, Any],
        field_constraints: dict[str, Any],
    ) -> None:
        self._policy = access_policy
        self._constraints = field_constraints
        self._validate_versions()
        self._validate_roles()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        policy = _load_json(config_dir / "access_policy.json")
        constraints = _load_json(config_dir / "field_constraints.json")
        return cls(policy, constraints)

    def _validate_versions(self) -> None:
        if "version" not in self._policy:
            raise ValueError("access_policy.json missing version")
        if "version" not in self._constraints:
            raise ValueError("field_constraints.json missing version")

    def _validate_roles(self) -> None:
        order = self.role_order()
        if order != list(Role):
            raise ValueError(
                f"Role order {[r.value for r in order]} does not match "
                f"the known roles {[r.value for r in Role]}"
            )
        self.elevated_roles()

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def role_order(self) -> list[Role]:
        """Return the configured roles, lowest rank first."""
        names = self._policy.get("roles")
        if names is None:
            raise ValueError("access_policy.json missing roles")
        return [_parse_role(name) for name in names]

    def elevated_roles(self) -> frozenset[Role]:
        """Return the roles granted blanket access over owned records."""
        names = self._policy.get("elevated_roles")
        if names is None:
            raise ValueError("access_policy.json missing elevated_roles")
        return frozenset(_parse_role(name) for name in names)

    # ------------------------------------------------------------------
    # Payload allow-lists
    # ------------------------------------------------------------------

    def writable_fields(self) -> dict[str, dict[str, list[str]]]:
        """Return record_type → access basis → writable field names.

        Optional section: an empty mapping means no allow-listing.
        """
        raw = self._policy.get("writable_fields", {})
        return {
            record_type: {basis: list(fields) for basis, fields in by_basis.items()}
            for record_type, by_basis in raw.items()
        }

    # ------------------------------------------------------------------
    # Field constraints
    # ------------------------------------------------------------------

    def field_constraints(self) -> dict[str, dict[str, FieldConstraint]]:
        """Return record_type → field → declared constraint."""
        raw = self._constraints.get("field_constraints")
        if raw is None:
            raise ValueError("field_constraints.json missing field_constraints")
        result: dict[str, dict[str, FieldConstraint]] = {}
        for record_type, fields in raw.items():
            result[record_type] = {
                name: parse_constraint(value, f"{record_type}.{name}")
                for name, value in fields.items()
            }
        return result


def parse_constraint(value: Any, where: str = "") -> FieldConstraint:
    """Parse a declared constraint name, failing loud on unknown names."""
    if isinstance(value, FieldConstraint):
        return value
    try:
        return FieldConstraint(value)
    except ValueError:
        known = ", ".join(c.value for c in FieldConstraint)
        raise ValueError(
            f"Unknown field constraint {value!r} for {where or 'field'} "
            f"(expected one of: {known})"
        ) from None


def _parse_role(name: str) -> Role:
    try:
        return Role(name)
    except ValueError:
        raise ValueError(f"Unknown role in access policy: {name!r}") from None


def _load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file or raise with clear path."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
