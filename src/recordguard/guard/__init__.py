"""Guard module: change-set extraction and field-level mutation guard."""

from recordguard.guard.changeset import compute_changes
from recordguard.guard.engine import MutationGuard

__all__ = ["MutationGuard", "compute_changes"]
