from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from powermap import app
from powermap.domain.merging import EntityNotFoundError, MissingArgumentError
from powermap.domain.model import Ability, User, utcnow
from powermap.domain.permissions import PermissionDeniedError
from tests.helpers.entities import make_org, make_person

if TYPE_CHECKING:
    from collections.abc import Callable

    from powermap.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from powermap.domain.model import Entity

    type UowFactory = Callable[[], SqlAlchemyUnitOfWork]


def _store[T](factory: UowFactory, *records: T) -> tuple[T, ...]:
    with factory() as uow:
        uow.session.add_all(records)
        uow.commit()
    return records


def _id(record: Entity | User) -> int:
    assert record.id is not None
    return record.id


def _user(factory: UowFactory, username: str, *abilities: Ability) -> User:
    (user,) = _store(factory, User(username=username, abilities=frozenset(abilities)))
    return user


def test_merge_requires_merge_ability(sqlite_unit_of_work: UowFactory) -> None:
    editor = _user(sqlite_unit_of_work, "editor", Ability.EDIT)
    source, dest = _store(sqlite_unit_of_work, make_person("Alice Source"), make_person("Alice Dest"))

    with pytest.raises(PermissionDeniedError) as excinfo:
        app.merge(_id(source), _id(dest), user_id=_id(editor), unit_of_work_factory=sqlite_unit_of_work)

    assert excinfo.value.action == "merge"
    with sqlite_unit_of_work() as uow:
        untouched = uow.repositories.entities.get(_id(source))
        assert untouched is not None
        assert not untouched.is_deleted


def test_merge_rejects_unknown_user(sqlite_unit_of_work: UowFactory) -> None:
    with pytest.raises(PermissionDeniedError, match="unknown user"):
        app.merge(1, 2, user_id=404, unit_of_work_factory=sqlite_unit_of_work)


def test_merge_rejects_missing_entities(sqlite_unit_of_work: UowFactory) -> None:
    merger = _user(sqlite_unit_of_work, "merger", Ability.MERGE)
    (dest,) = _store(sqlite_unit_of_work, make_person())

    with pytest.raises(MissingArgumentError) as excinfo:
        app.merge(404, _id(dest), user_id=_id(merger), unit_of_work_factory=sqlite_unit_of_work)

    assert excinfo.value.argument == "source"


def test_merge_then_resolve_follows_the_chain(sqlite_unit_of_work: UowFactory) -> None:
    merger = _user(sqlite_unit_of_work, "merger", Ability.MERGE)
    first, second, final = _store(
        sqlite_unit_of_work, make_org("First"), make_org("Second"), make_org("Final")
    )

    app.merge(_id(first), _id(second), user_id=_id(merger), unit_of_work_factory=sqlite_unit_of_work)
    result = app.merge(
        _id(second), _id(final), user_id=_id(merger), unit_of_work_factory=sqlite_unit_of_work
    )

    assert result.committed
    resolved = app.resolve(_id(first), unit_of_work_factory=sqlite_unit_of_work)
    assert resolved.id == _id(final)
    assert app.resolve(_id(final), unit_of_work_factory=sqlite_unit_of_work).id == _id(final)


def test_resolve_of_missing_entity_raises(sqlite_unit_of_work: UowFactory) -> None:
    with pytest.raises(EntityNotFoundError):
        app.resolve(404, unit_of_work_factory=sqlite_unit_of_work)


def test_merge_dry_run_does_not_commit(sqlite_unit_of_work: UowFactory) -> None:
    admin = _user(sqlite_unit_of_work, "admin", Ability.ADMIN)
    source, dest = _store(sqlite_unit_of_work, make_org("Source"), make_org("Dest"))

    result = app.merge(
        _id(source),
        _id(dest),
        user_id=_id(admin),
        dry_run=True,
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert not result.committed
    assert app.resolve(_id(source), unit_of_work_factory=sqlite_unit_of_work).id == _id(source)


def test_creator_can_delete_and_restore(sqlite_unit_of_work: UowFactory) -> None:
    creator = _user(sqlite_unit_of_work, "creator", Ability.EDIT)
    (org,) = _store(sqlite_unit_of_work, make_org(created_by_user_id=_id(creator)))

    deleted = app.delete(_id(org), user_id=_id(creator), unit_of_work_factory=sqlite_unit_of_work)
    assert deleted.is_deleted

    restored = app.restore(_id(org), unit_of_work_factory=sqlite_unit_of_work)
    assert not restored.is_deleted


def test_delete_is_denied_for_old_entities_of_others(sqlite_unit_of_work: UowFactory) -> None:
    creator = _user(sqlite_unit_of_work, "creator", Ability.EDIT)
    other = _user(sqlite_unit_of_work, "other", Ability.EDIT, Ability.DELETE)
    (org,) = _store(
        sqlite_unit_of_work,
        make_org(created_by_user_id=_id(creator), created_at=utcnow() - timedelta(days=30)),
    )

    for user in (creator, other):
        with pytest.raises(PermissionDeniedError):
            app.delete(_id(org), user_id=_id(user), unit_of_work_factory=sqlite_unit_of_work)


def test_delete_of_missing_entity(sqlite_unit_of_work: UowFactory) -> None:
    admin = _user(sqlite_unit_of_work, "admin", Ability.ADMIN)

    with pytest.raises(EntityNotFoundError):
        app.delete(404, user_id=_id(admin), unit_of_work_factory=sqlite_unit_of_work)


def test_create_user_persists_abilities_and_rejects_duplicates(
    sqlite_unit_of_work: UowFactory,
) -> None:
    user = app.create_user(
        username="reviewer",
        email="reviewer@example.org",
        abilities=[Ability.MERGE, Ability.EDIT],
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert user.id is not None
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.users.get(user.id)
        assert stored is not None
        assert stored.abilities == frozenset({Ability.MERGE, Ability.EDIT})
    with pytest.raises(ValueError, match="already exists"):
        app.create_user(username="reviewer", unit_of_work_factory=sqlite_unit_of_work)
