"""Change-set extraction: which fields a proposed update actually changes.

Pure computation over two plain mappings. Comparison is by value
equality, so re-sending a field with its current value is not a change.
Only keys of the proposed state are considered: a field left out of the
update is untouched, whatever its constraint.
"""

from __future__ import annotations

from typing import Any, Mapping


def compute_changes(
    previous: Mapping[str, Any],
    proposed: Mapping[str, Any],
) -> tuple[str, ...]:
    """Return the changed field names, in the key order of ``proposed``.

    A key missing from ``previous`` counts as changed, even when the
    proposed value is None.
    """
    return tuple(
        name for name, value in proposed.items()
        if name not in previous or previous[name] != value
    )
