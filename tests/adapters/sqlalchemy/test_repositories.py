from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from powermap.adapters.sqlalchemy.repositories import (
    SqlAlchemyEntityRepository,
    SqlAlchemyListRepository,
    SqlAlchemyTagRepository,
    SqlAlchemyUserRepository,
)
from powermap.domain.merging import EntityNotFoundError, MergeChainTooDeepError, MergedEntityError
from powermap.domain.model import (
    Ability,
    EntityList,
    ExtensionKind,
    ListAccess,
    PrimaryType,
    RelationshipCategory,
    Tag,
    User,
)
from tests.helpers.entities import (
    make_ny_match,
    make_org,
    make_os_match,
    make_person,
    make_relationship,
    persist,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from powermap.domain.model import Entity


def _ids(*entities: Entity) -> list[int]:
    ids = [entity.id for entity in entities]
    assert all(entity_id is not None for entity_id in ids)
    return [entity_id for entity_id in ids if entity_id is not None]


def test_entity_round_trips_through_storage(sqlite_session: Session) -> None:
    person = make_person("Alice Example")
    person.add_alias("Ally")
    person.add_extension(ExtensionKind.POLITICAL_CANDIDATE, {"is_federal": True, "crp_id": "N001"})
    person.add_phone("555 0100", kind="work")
    persist(sqlite_session, person)
    (person_id,) = _ids(person)
    sqlite_session.expunge_all()

    loaded = SqlAlchemyEntityRepository(sqlite_session).get(person_id)

    assert loaded is not None
    assert loaded is not person
    assert loaded.primary_type is PrimaryType.PERSON
    assert loaded.alias_names == frozenset({"Alice Example", "Ally"})
    candidate = loaded.extension_record(ExtensionKind.POLITICAL_CANDIDATE)
    assert candidate is not None
    assert candidate.attributes == {"is_federal": True, "crp_id": "N001"}
    assert [phone.number for phone in loaded.phones] == ["555 0100"]


def test_load_aggregate_collects_live_relationships_and_matches(sqlite_session: Session) -> None:
    alice, acme, other = persist(sqlite_session, make_person(), make_org(), make_org("Other Corp"))
    alice_id, acme_id, other_id = _ids(alice, acme, other)
    live, _, _ = persist(
        sqlite_session,
        make_relationship(alice_id, acme_id, RelationshipCategory.DONATION),
        make_relationship(acme_id, alice_id, is_deleted=True),
        make_relationship(acme_id, other_id),
    )
    os_match, ny_match = persist(
        sqlite_session,
        make_os_match(None, amount=100, donor_id=alice_id, recip_id=acme_id, relationship_id=live.id, fec_cycle_id="c1"),
        make_ny_match(None, amount=40, donor_id=other_id, recip_id=alice_id),
    )

    aggregate = SqlAlchemyEntityRepository(sqlite_session).load_aggregate(alice_id)

    assert aggregate is not None
    assert aggregate.relationships == (live,)
    assert aggregate.os_matches == (os_match,)
    assert aggregate.ny_matches == (ny_match,)
    assert aggregate.os_matches[0].amount == 100


def test_load_aggregate_of_missing_entity_is_none(sqlite_session: Session) -> None:
    assert SqlAlchemyEntityRepository(sqlite_session).load_aggregate(404) is None


def test_relationship_ids_and_link_count(sqlite_session: Session) -> None:
    alice, acme, other = persist(sqlite_session, make_person(), make_org(), make_org("Other Corp"))
    alice_id, acme_id, other_id = _ids(alice, acme, other)
    first, second, _ = persist(
        sqlite_session,
        make_relationship(alice_id, acme_id),
        make_relationship(other_id, alice_id),
        make_relationship(alice_id, other_id, is_deleted=True),
    )
    repo = SqlAlchemyEntityRepository(sqlite_session)

    assert repo.relationship_ids(alice_id) == [first.id, second.id]
    assert repo.refresh_link_count(alice_id) == 2
    assert alice.link_count == 2


def test_merge_aware_lookups(sqlite_session: Session) -> None:
    final = persist(sqlite_session, make_org("Final"))[0]
    (final_id,) = _ids(final)
    merged = persist(sqlite_session, make_org("Merged", merged_id=final_id, is_deleted=True))[0]
    (merged_id,) = _ids(merged)
    repo = SqlAlchemyEntityRepository(sqlite_session)

    assert repo.resolve_merges(merged_id) is final
    with pytest.raises(MergedEntityError) as excinfo:
        repo.find_with_merges(merged_id)
    assert excinfo.value.entity is final
    with pytest.raises(EntityNotFoundError):
        repo.resolve_merges(404)


def test_merge_chain_depth_comes_from_repository(sqlite_session: Session) -> None:
    final = persist(sqlite_session, make_org("Final"))[0]
    middle = persist(sqlite_session, make_org("Middle", merged_id=final.id, is_deleted=True))[0]
    first = persist(sqlite_session, make_org("First", merged_id=middle.id, is_deleted=True))[0]
    (first_id,) = _ids(first)

    with pytest.raises(MergeChainTooDeepError):
        SqlAlchemyEntityRepository(sqlite_session, max_merge_depth=1).resolve_merges(first_id)


def test_entities_by_relationship_count_ranks_tagged_entities(sqlite_session: Session) -> None:
    oil, finance = persist(sqlite_session, Tag(name="oil"), Tag(name="finance"))
    hub, spoke_a, spoke_b, untagged, person = persist(
        sqlite_session,
        make_org("Hub"),
        make_org("Spoke A"),
        make_org("Spoke B"),
        make_org("Untagged"),
        make_person("Tagged Person"),
    )
    hub_id, a_id, b_id, untagged_id, person_id = _ids(hub, spoke_a, spoke_b, untagged, person)
    assert oil.id is not None
    assert finance.id is not None
    for entity in (hub, spoke_a, spoke_b, person):
        entity.add_tag(oil.id)
    untagged.add_tag(finance.id)
    persist(
        sqlite_session,
        make_relationship(hub_id, a_id),
        make_relationship(b_id, hub_id),
        make_relationship(hub_id, untagged_id),
        make_relationship(person_id, hub_id),
        make_relationship(a_id, b_id, is_deleted=True),
    )
    repo = SqlAlchemyTagRepository(sqlite_session)

    ranked = repo.entities_by_relationship_count(oil.id, PrimaryType.ORG)
    second_page = repo.entities_by_relationship_count(oil.id, PrimaryType.ORG, page=2, per_page=2)

    assert [(entity.name, count) for entity, count in ranked] == [
        ("Hub", 3),
        ("Spoke A", 1),
        ("Spoke B", 1),
    ]
    assert [entity.name for entity, _ in second_page] == ["Spoke B"]
    with pytest.raises(ValueError, match="positive"):
        repo.entities_by_relationship_count(oil.id, PrimaryType.ORG, page=0)


def test_tag_repository_lookups(sqlite_session: Session) -> None:
    persist(sqlite_session, Tag(name="oil", restricted=True), Tag(name="finance"))
    repo = SqlAlchemyTagRepository(sqlite_session)

    assert [tag.name for tag in repo.all()] == ["oil", "finance"]
    oil = repo.get_by_name("oil")
    assert oil is not None
    assert oil.is_restricted()
    assert repo.get_by_name("gas") is None


def test_user_and_list_repositories(sqlite_session: Session) -> None:
    users = SqlAlchemyUserRepository(sqlite_session)
    lists = SqlAlchemyListRepository(sqlite_session)
    user = User(username="lister", abilities=frozenset({Ability.LIST, Ability.EDIT}))
    user.grant_tag_ownership(3)
    users.add(user)
    sqlite_session.flush()
    entity_list = EntityList(name="Board", access=ListAccess.CLOSED, creator_user_id=user.id)
    lists.add(entity_list)
    sqlite_session.flush()
    assert user.id is not None
    assert entity_list.id is not None
    sqlite_session.expunge_all()

    loaded_user = users.get_by_username("lister")
    loaded_list = lists.get(entity_list.id)

    assert loaded_user is not None
    assert loaded_user.abilities == frozenset({Ability.LIST, Ability.EDIT})
    assert loaded_user.owned_tag_ids == frozenset({3})
    assert users.get(user.id) is loaded_user
    assert loaded_list is not None
    assert loaded_list.access is ListAccess.CLOSED
