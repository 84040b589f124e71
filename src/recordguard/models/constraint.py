"""Field constraint and violation models.

A record type declares, per field, how the field may change once the
record exists:
- none: fully mutable.
- readOnly: never writable after creation.
- writeOnceIfUnset: writable after creation only while still unset,
  i.e. it may be initialised late but never edited.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class FieldConstraint(str, enum.Enum):
    """Post-creation mutability of a single field."""
    NONE = "none"
    READ_ONLY = "readOnly"
    WRITE_ONCE_IF_UNSET = "writeOnceIfUnset"


class ViolationKind(str, enum.Enum):
    """Kind strings reported to callers for each violated constraint."""
    READ_ONLY = "readOnly Violation"
    WRITE_ONCE = "noUpdate Violation"


@dataclass(frozen=True)
class Violation:
    """A changed field that its constraint does not allow to change."""
    field_name: str
    kind: ViolationKind
    message: str
    value: Any = None

    @classmethod
    def read_only(cls, field_name: str, value: Any = None) -> Violation:
        return cls(
            field_name=field_name,
            kind=ViolationKind.READ_ONLY,
            message=(
                f"`{field_name}` cannot be updated due to "
                f"`noUpdate:readOnly` constraint"
            ),
            value=value,
        )

    @classmethod
    def write_once(cls, field_name: str, value: Any = None) -> Violation:
        return cls(
            field_name=field_name,
            kind=ViolationKind.WRITE_ONCE,
            message=f"`{field_name}` cannot be updated due to `noUpdate` constraint",
            value=value,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain form for error payloads and audit records."""
        return {
            "field": self.field_name,
            "kind": self.kind.value,
            "message": self.message,
        }
