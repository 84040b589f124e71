"""Exceptions raised at the persistence boundary.

Authorization outcomes are returned as data everywhere else. The only
place a violation becomes an exception is the ORM flush hook, where
raising is what aborts the write.
"""

from __future__ import annotations

from recordguard.models.constraint import Violation


class RecordGuardError(Exception):
    """Base class for recordguard errors."""


class MutationRejected(RecordGuardError):
    """A flush tried to write fields their constraints forbid.

    Carries every violation found, not just the first, so the caller can
    report them all in one response.
    """

    def __init__(self, record_type: str, violations: list[Violation]) -> None:
        self.record_type = record_type
        self.violations = list(violations)
        fields = ", ".join(v.field_name for v in self.violations)
        super().__init__(f"{record_type} update rejected: {fields}")

    @property
    def messages(self) -> list[str]:
        return [v.message for v in self.violations]
