"""SQLAlchemy integration: field constraints declared on mapped columns,
enforced inside the flush.

Declare a constraint in the column's ``info``:

    class User(Base):
        __tablename__ = "users"
        id: Mapped[int] = mapped_column(primary_key=True)
        role: Mapped[str] = mapped_column(info={"no_update": "readOnly"})
        verified_at: Mapped[Optional[datetime]] = mapped_column(
            info={"no_update": "writeOnceIfUnset"},
        )

then build a registry from the models and install the guard on a
session factory:

    registry = registry_from_models(User)
    install_mutation_guard(SessionLocal, MutationGuard(registry), [User])

The guard runs in ``before_flush``, so a rejected update raises
MutationRejected before any UPDATE is emitted and the surrounding
transaction can be rolled back as a whole.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from recordguard.errors import MutationRejected
from recordguard.guard.engine import MutationGuard
from recordguard.models.constraint import FieldConstraint
from recordguard.policy.registry import SchemaConstraintRegistry

logger = logging.getLogger(__name__)

NO_UPDATE_INFO_KEY = "no_update"

# Stands in for a previous value the session never loaded. It is not
# None, so an unloaded write-once field counts as already set.
_UNLOADED = object()


def default_record_type(mapped_class: type) -> str:
    """Record type of a mapped class: its class name."""
    return mapped_class.__name__


def registry_from_models(
    *mapped_classes: type,
    record_type_of: Callable[[type], str] = default_record_type,
) -> SchemaConstraintRegistry:
    """Build a constraint registry from ``Column.info["no_update"]``."""
    declarations: dict[str, dict[str, Any]] = {}
    for mapped_class in mapped_classes:
        fields: dict[str, Any] = {}
        for prop in inspect(mapped_class).column_attrs:
            for column in prop.columns:
                declared = column.info.get(NO_UPDATE_INFO_KEY)
                if declared is not None:
                    fields[prop.key] = declared
        declarations[record_type_of(mapped_class)] = fields
    return SchemaConstraintRegistry(declarations)


def install_mutation_guard(
    target: Any,
    guard: MutationGuard,
    models: Iterable[type],
    record_type_of: Callable[[type], str] = default_record_type,
) -> Callable[..., None]:
    """Run ``guard`` on every flush of ``target``.

    ``target`` is anything SQLAlchemy accepts for session events: the
    Session class, a sessionmaker, or a single Session. ``models`` lists
    the mapped classes to guard; their constrained attributes are switched
    to active history so the previous value is loaded before being
    replaced, even after the attribute was expired.

    Returns the installed listener, for remove_mutation_guard().
    Raises ValueError if ``models`` is empty.
    """
    models = list(models)
    if not models:
        raise ValueError("install_mutation_guard needs at least one mapped class")

    def load_previous_value(
        instance: Any, value: Any, oldvalue: Any, initiator: Any,
    ) -> None:
        """No-op; registering it with active_history loads the old value."""

    attribute_listeners: list[tuple[Any, Callable[..., None]]] = []
    for mapped_class in models:
        constraints = guard.registry.constraints_for(record_type_of(mapped_class))
        for name, constraint in constraints.items():
            if constraint != FieldConstraint.NONE:
                attribute = getattr(mapped_class, name)
                event.listen(attribute, "set", load_previous_value, active_history=True)
                attribute_listeners.append((attribute, load_previous_value))

    def before_flush(session: Session, flush_context: Any, instances: Optional[Any]) -> None:
        for instance in list(session.dirty):
            record_type = record_type_of(type(instance))
            if not guard.registry.constraints_for(record_type):
                continue
            previous, proposed = _states_of(instance)
            if not proposed:
                continue
            violations = guard.guard(record_type, previous, proposed)
            if violations:
                logger.info(
                    "Flush of %s rejected: %s",
                    record_type, [v.field_name for v in violations],
                )
                raise MutationRejected(record_type, violations)

    before_flush.attribute_listeners = attribute_listeners
    event.listen(target, "before_flush", before_flush)
    return before_flush


def remove_mutation_guard(target: Any, listener: Callable[..., None]) -> None:
    """Detach a listener returned by install_mutation_guard(), together
    with the attribute listeners it registered."""
    event.remove(target, "before_flush", listener)
    for attribute, fn in getattr(listener, "attribute_listeners", ()):
        event.remove(attribute, "set", fn)


def _states_of(instance: Any) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return (previous, proposed) column values for changed attributes."""
    state = inspect(instance)
    previous: dict[str, Any] = {}
    proposed: dict[str, Any] = {}
    for prop in state.mapper.column_attrs:
        history = state.attrs[prop.key].history
        if not history.has_changes():
            continue
        proposed[prop.key] = history.added[0] if history.added else None
        if history.deleted:
            previous[prop.key] = history.deleted[0]
        elif history.unchanged:
            previous[prop.key] = history.unchanged[0]
        else:
            previous[prop.key] = _UNLOADED
    return previous, proposed
