"""Tests for the SQLAlchemy flush hook: constraints declared on columns,
enforced inside the session's transaction on a real SQLite database.
"""

from pathlib import Path
from typing import Optional

import pytest
from sqlalchemy import String, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from recordguard.errors import MutationRejected
from recordguard.guard.engine import MutationGuard
from recordguard.integrations.sqla import (
    install_mutation_guard,
    registry_from_models,
    remove_mutation_guard,
)
from recordguard.models.constraint import FieldConstraint, ViolationKind


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    uuid: Mapped[str] = mapped_column(String(36), info={"no_update": "readOnly"})
    firstname: Mapped[str] = mapped_column(String(50))
    role: Mapped[str] = mapped_column(String(20), info={"no_update": "readOnly"})
    verified_at: Mapped[Optional[str]] = mapped_column(
        String(32), info={"no_update": "writeOnceIfUnset"},
    )


@pytest.fixture
def factory(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'guard.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(engine)
    engine.dispose()


@pytest.fixture
def guarded(factory: sessionmaker):
    listener = _install(factory)
    yield factory
    remove_mutation_guard(factory, listener)


def _install(factory: sessionmaker):
    guard = MutationGuard(registry_from_models(User))
    return install_mutation_guard(factory, guard, [User])


def _seed(factory: sessionmaker, verified_at: Optional[str] = None) -> int:
    with factory() as session:
        user = User(uuid="u-7", firstname="Ada", role="USER", verified_at=verified_at)
        session.add(user)
        session.commit()
        return user.id


def _stored(factory: sessionmaker, user_id: int) -> User:
    with factory(expire_on_commit=False) as session:
        user = session.get(User, user_id)
        session.expunge(user)
        return user


# ===================================================================
# registry_from_models
# ===================================================================

class TestRegistryFromModels:
    def test_reads_column_info(self) -> None:
        registry = registry_from_models(User)
        assert dict(registry.constraints_for("User")) == {
            "uuid": FieldConstraint.READ_ONLY,
            "role": FieldConstraint.READ_ONLY,
            "verified_at": FieldConstraint.WRITE_ONCE_IF_UNSET,
        }

    def test_custom_record_type(self) -> None:
        registry = registry_from_models(User, record_type_of=lambda cls: cls.__tablename__)
        assert registry.record_types() == ["users"]


# ===================================================================
# Flush hook
# ===================================================================

class TestFlushHook:
    def test_insert_not_guarded(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded, verified_at="2026-03-01")
        assert _stored(guarded, user_id).verified_at == "2026-03-01"

    def test_unconstrained_change_commits(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded)
        with guarded() as session:
            user = session.get(User, user_id)
            user.firstname = "Grace"
            session.commit()
        assert _stored(guarded, user_id).firstname == "Grace"

    def test_read_only_change_rejected_and_rolled_back(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded)
        with guarded() as session:
            user = session.get(User, user_id)
            assert user.role == "USER"
            user.role = "ADMIN"
            user.firstname = "Grace"
            with pytest.raises(MutationRejected) as exc_info:
                session.commit()
            session.rollback()

        rejected = exc_info.value
        assert rejected.record_type == "User"
        assert [(v.field_name, v.kind) for v in rejected.violations] == [
            ("role", ViolationKind.READ_ONLY),
        ]
        stored = _stored(guarded, user_id)
        assert stored.role == "USER"
        assert stored.firstname == "Ada"

    def test_every_violation_carried(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded)
        with guarded() as session:
            user = session.get(User, user_id)
            user.uuid = "u-8"
            user.role = "ADMIN"
            with pytest.raises(MutationRejected) as exc_info:
                session.flush()
            session.rollback()
        assert {v.field_name for v in exc_info.value.violations} == {"uuid", "role"}
        assert len(exc_info.value.messages) == 2

    def test_resending_same_value_commits(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded)
        with guarded() as session:
            user = session.get(User, user_id)
            user.role = "USER"
            session.commit()
        assert _stored(guarded, user_id).role == "USER"

    def test_write_once_late_initialisation(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded, verified_at=None)
        with guarded() as session:
            user = session.get(User, user_id)
            user.verified_at = "2026-03-01"
            session.commit()
        assert _stored(guarded, user_id).verified_at == "2026-03-01"

        with guarded() as session:
            user = session.get(User, user_id)
            user.verified_at = "2026-04-01"
            with pytest.raises(MutationRejected) as exc_info:
                session.commit()
            session.rollback()
        assert exc_info.value.violations[0].kind == ViolationKind.WRITE_ONCE
        assert _stored(guarded, user_id).verified_at == "2026-03-01"

    def test_previous_value_loaded_for_expired_attribute(self, guarded: sessionmaker) -> None:
        user_id = _seed(guarded, verified_at=None)
        with guarded() as session:
            user = session.get(User, user_id)
            session.expire(user, ["verified_at"])
            user.verified_at = "2026-03-01"
            session.commit()
        assert _stored(guarded, user_id).verified_at == "2026-03-01"

    def test_late_initialisation_after_commit_expiry(self, guarded: sessionmaker) -> None:
        with guarded() as session:
            user = User(uuid="u-7", firstname="Ada", role="USER", verified_at=None)
            session.add(user)
            session.commit()
            user.verified_at = "2026-03-01"
            session.commit()
            user_id = user.id
        assert _stored(guarded, user_id).verified_at == "2026-03-01"

    def test_set_value_guarded_after_commit_expiry(self, guarded: sessionmaker) -> None:
        with guarded() as session:
            user = User(uuid="u-7", firstname="Ada", role="USER", verified_at="2026-03-01")
            session.add(user)
            session.commit()
            user.verified_at = "2026-04-01"
            with pytest.raises(MutationRejected):
                session.commit()
            session.rollback()


# ===================================================================
# Installing and removing
# ===================================================================

class TestInstallation:
    def test_models_required(self, factory: sessionmaker) -> None:
        guard = MutationGuard(registry_from_models(User))
        with pytest.raises(ValueError, match="at least one mapped class"):
            install_mutation_guard(factory, guard, [])

    def test_remove_guard(self, factory: sessionmaker) -> None:
        listener = _install(factory)
        remove_mutation_guard(factory, listener)
        user_id = _seed(factory)
        with factory() as session:
            user = session.get(User, user_id)
            user.role = "ADMIN"
            session.commit()
        assert _stored(factory, user_id).role == "ADMIN"

    def test_remove_detaches_attribute_listeners(self, factory: sessionmaker) -> None:
        listener = _install(factory)
        attached = listener.attribute_listeners
        assert len(attached) == 3
        assert all(event.contains(attr, "set", fn) for attr, fn in attached)

        remove_mutation_guard(factory, listener)
        assert not event.contains(factory, "before_flush", listener)
        assert not any(event.contains(attr, "set", fn) for attr, fn in attached)

    def test_reinstalling_does_not_accumulate(self, factory: sessionmaker) -> None:
        first = _install(factory)
        remove_mutation_guard(factory, first)
        second = _install(factory)
        try:
            assert not any(event.contains(attr, "set", fn) for attr, fn in first.attribute_listeners)
            assert all(event.contains(attr, "set", fn) for attr, fn in second.attribute_listeners)
        finally:
            remove_mutation_guard(factory, second)
