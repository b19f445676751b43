from __future__ import annotations

from typing import TYPE_CHECKING

from powermap import app
from powermap.domain.deletion import soft_delete_entity
from powermap.domain.merging import merge_entities
from powermap.domain.model import Ability, RelationshipCategory, User
from tests.helpers.entities import make_org, make_person, make_relationship

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


def _recount(factory: UowFactory, *entities: Entity) -> None:
    with factory() as uow:
        for entity in entities:
            uow.repositories.entities.refresh_link_count(_id(entity))
        uow.commit()


def _link_counts(factory: UowFactory, *entities: Entity) -> list[int]:
    with factory() as uow:
        counts: list[int] = []
        for entity in entities:
            stored = uow.repositories.entities.get(_id(entity))
            assert stored is not None
            counts.append(stored.link_count)
        return counts


def _linked_trio(factory: UowFactory) -> tuple[Entity, Entity, Entity]:
    """A donor giving to both the source and the destination of a merge."""

    source, dest, donor = _store(
        factory, make_org("Acme PAC"), make_org("Acme Committee"), make_person("Bob Donor")
    )
    _store(
        factory,
        make_relationship(_id(donor), _id(source), RelationshipCategory.DONATION, amount=100),
        make_relationship(_id(donor), _id(dest), RelationshipCategory.DONATION, amount=250),
    )
    _recount(factory, source, dest, donor)
    return source, dest, donor


def test_merge_recounts_entities_linked_to_the_source(sqlite_unit_of_work: UowFactory) -> None:
    source, dest, donor = _linked_trio(sqlite_unit_of_work)
    assert _link_counts(sqlite_unit_of_work, source, dest, donor) == [1, 1, 2]

    result = merge_entities(
        source_id=_id(source),
        dest_id=_id(dest),
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert len(result.potential_duplicates) == 1
    assert _link_counts(sqlite_unit_of_work, source, dest, donor) == [0, 1, 1]


def test_delete_recounts_entities_linked_to_the_deleted_one(
    sqlite_unit_of_work: UowFactory,
) -> None:
    source, dest, donor = _linked_trio(sqlite_unit_of_work)
    (admin,) = _store(
        sqlite_unit_of_work, User(username="admin", abilities=frozenset({Ability.ADMIN}))
    )

    app.delete(_id(source), user_id=_id(admin), unit_of_work_factory=sqlite_unit_of_work)

    assert _link_counts(sqlite_unit_of_work, source, dest, donor) == [0, 1, 1]


def test_restore_with_relationships_recounts_both_ends(sqlite_unit_of_work: UowFactory) -> None:
    source, dest, donor = _linked_trio(sqlite_unit_of_work)
    soft_delete_entity(entity_id=_id(donor), unit_of_work_factory=sqlite_unit_of_work)
    assert _link_counts(sqlite_unit_of_work, source, dest, donor) == [0, 0, 0]

    restored = app.restore(
        _id(donor), with_relationships=True, unit_of_work_factory=sqlite_unit_of_work
    )

    assert restored.link_count == 2
    assert _link_counts(sqlite_unit_of_work, source, dest, donor) == [1, 1, 2]
