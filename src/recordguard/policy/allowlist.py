"""Payload allow-list: which request keys may reach a record.

Owners may write only a narrow set of profile fields; elevated roles a
broader one. Keys outside the list for the caller's access basis are
dropped before the change set is computed, the same way an ORM write
restricted to a field list ignores everything else.
"""

from __future__ import annotations

from typing import Any, Mapping

from recordguard.models.actor import AccessBasis
from recordguard.policy.resolver import PolicyResolver


class PayloadAllowList:
    """Restricts proposed payloads per record type and access basis."""

    def __init__(self, writable_fields: Mapping[str, Mapping[str, list[str]]] | None = None) -> None:
        self._lists: dict[str, dict[AccessBasis, frozenset[str]]] = {}
        for record_type, by_basis in (writable_fields or {}).items():
            self._lists[record_type] = {
                AccessBasis(basis): frozenset(fields)
                for basis, fields in by_basis.items()
            }

    @classmethod
    def from_resolver(cls, resolver: PolicyResolver) -> PayloadAllowList:
        return cls(resolver.writable_fields())

    def allowed_fields(self, record_type: str, basis: AccessBasis) -> frozenset[str] | None:
        """Return the allow-list, or None if the payload is unrestricted."""
        if basis == AccessBasis.NONE:
            return frozenset()
        return self._lists.get(record_type, {}).get(basis)

    def restrict(
        self,
        record_type: str,
        basis: AccessBasis,
        proposed: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Return a copy of ``proposed`` holding only allow-listed keys."""
        allowed = self.allowed_fields(record_type, basis)
        if allowed is None:
            return dict(proposed)
        return {k: v for k, v in proposed.items() if k in allowed}

    def dropped_fields(
        self,
        record_type: str,
        basis: AccessBasis,
        proposed: Mapping[str, Any],
    ) -> list[str]:
        """Return the keys ``restrict`` would remove, in payload order."""
        allowed = self.allowed_fields(record_type, basis)
        if allowed is None:
            return []
        return [k for k in proposed if k not in allowed]
