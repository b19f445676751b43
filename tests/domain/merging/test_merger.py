from __future__ import annotations

import logging

import pytest

from powermap.domain.merging import (
    AddAlias,
    AddContactItem,
    AddExtension,
    AlreadyMergedError,
    CreateRelationship,
    EntityMerger,
    ExistingRelationship,
    ExtensionMismatchError,
    FillExtensionAttributes,
    MergeCategory,
    MissingArgumentError,
    RefreshDonationTotals,
    RepointDonationMatch,
    RepointImage,
    StagedRelationship,
    ValidationFailureError,
)
from powermap.domain.model import (
    ContactKind,
    DonationDataset,
    DonationRole,
    ExtensionKind,
    RelationshipCategory,
)
from tests.helpers.entities import (
    make_aggregate,
    make_ny_match,
    make_org,
    make_os_match,
    make_person,
    make_relationship,
)

SOURCE_ID = 1
DEST_ID = 2


def _people(source_name: str = "Alice Source", dest_name: str = "Alice Dest"):  # noqa: ANN202
    return make_person(source_name, entity_id=SOURCE_ID), make_person(dest_name, entity_id=DEST_ID)


# Construction ----------------------------------------------------------------


def test_merger_requires_both_aggregates() -> None:
    source, _ = _people()

    with pytest.raises(MissingArgumentError) as excinfo:
        EntityMerger(source=make_aggregate(source))

    assert excinfo.value.argument == "dest"
    assert isinstance(excinfo.value, TypeError)


def test_merger_rejects_non_aggregates() -> None:
    source, dest = _people()

    with pytest.raises(MissingArgumentError, match="EntityAggregate"):
        EntityMerger(source=source, dest=make_aggregate(dest))  # pyright: ignore[reportArgumentType]


def test_merger_rejects_unpersisted_entities() -> None:
    with pytest.raises(MissingArgumentError, match="persisted"):
        EntityMerger(
            source=make_aggregate(make_person()),
            dest=make_aggregate(make_person(entity_id=DEST_ID)),
        )


def test_merger_rejects_merging_into_itself() -> None:
    source, _ = _people()

    with pytest.raises(MissingArgumentError, match="itself"):
        EntityMerger(source=make_aggregate(source), dest=make_aggregate(source))


def test_merger_rejects_mismatched_primary_types() -> None:
    with pytest.raises(ExtensionMismatchError):
        EntityMerger(
            source=make_aggregate(make_person(entity_id=SOURCE_ID)),
            dest=make_aggregate(make_org(entity_id=DEST_ID)),
        )


def test_merger_rejects_already_merged_entities() -> None:
    source, dest = _people()
    source.merged_id = 9

    with pytest.raises(AlreadyMergedError) as excinfo:
        EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))

    assert (excinfo.value.entity_id, excinfo.value.merged_id) == (SOURCE_ID, 9)


def test_merger_rejects_deleted_entities() -> None:
    source, dest = _people()
    dest.is_deleted = True

    with pytest.raises(ValidationFailureError) as excinfo:
        EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))

    assert excinfo.value.field == "dest"


# Per-category planning -------------------------------------------------------


def test_merge_extensions_adds_missing_and_fills_blank_attributes() -> None:
    source, dest = _people()
    source.add_extension(ExtensionKind.POLITICAL_CANDIDATE, {"is_federal": True})
    source_person = source.extension_record(ExtensionKind.PERSON)
    dest_person = dest.extension_record(ExtensionKind.PERSON)
    assert source_person is not None
    assert dest_person is not None
    source_person.attributes = {"name_first": "Alice", "name_last": "Source"}
    dest_person.attributes = {"name_last": "Dest"}

    merger = EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))
    merger.merge_extensions()

    assert merger.extensions == [
        FillExtensionAttributes(
            entity_id=DEST_ID,
            kind=ExtensionKind.PERSON,
            attributes={"name_first": "Alice"},
        ),
        AddExtension(
            entity_id=DEST_ID,
            kind=ExtensionKind.POLITICAL_CANDIDATE,
            attributes={"is_federal": True},
        ),
    ]


def test_merge_contact_info_skips_items_dest_already_has() -> None:
    source, dest = _people()
    source.add_phone("555 0100")
    source.add_phone("555 0199")
    source.add_email("alice@example.org")
    dest.add_phone("5550100")

    merger = EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))
    merger.merge_contact_info()

    assert merger.contact_info == [
        AddContactItem(
            entity_id=DEST_ID,
            kind=ContactKind.PHONE,
            attributes={"number": "555 0199", "kind": None},
        ),
        AddContactItem(
            entity_id=DEST_ID,
            kind=ContactKind.EMAIL,
            attributes={"address": "alice@example.org"},
        ),
    ]


def test_merge_lists_references_and_tags_take_set_differences() -> None:
    source, dest = _people()
    for list_id in (10, 11):
        source.add_to_list(list_id)
    for list_id in (11, 12):
        dest.add_to_list(list_id)
    source.attach_document(5)
    dest.attach_document(5)
    source.attach_document(6)
    source.add_tag(1)
    source.add_tag(2)
    dest.add_tag(2)

    merger = EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))
    merger.merge_lists()
    merger.merge_references()
    merger.merge_tags()

    assert merger.lists == frozenset({10})
    assert merger.document_ids == frozenset({6})
    assert merger.tag_ids == frozenset({1})


def test_merge_images_repoints_every_live_image() -> None:
    source, dest = _people()
    second = source.add_image("b.png")
    second.id = 31
    first = source.add_image("a.png")
    first.id = 30
    hidden = source.add_image("c.png")
    hidden.id = 32
    hidden.is_deleted = True

    merger = EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))
    merger.merge_images()

    assert merger.images == [
        RepointImage(image_id=30, entity_id=DEST_ID),
        RepointImage(image_id=31, entity_id=DEST_ID),
    ]


def test_merge_aliases_adds_only_new_names() -> None:
    source, dest = _people(source_name="Alice", dest_name="Alice B. Example")
    source.add_alias("Alice B. Example")
    source.add_alias("Ally")

    merger = EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))
    merger.merge_aliases()

    assert merger.aliases == [
        AddAlias(entity_id=DEST_ID, name="Alice"),
        AddAlias(entity_id=DEST_ID, name="Ally"),
    ]


def test_merge_articles_and_categories_skip_what_dest_has() -> None:
    source, dest = _people()
    source.link_article(100)
    source.link_article(101)
    dest.link_article(100)
    source.add_external_category("cat-a")
    dest.add_external_category("cat-a")
    for index, link in enumerate((*source.article_links, *source.external_categories), start=1):
        link.id = index

    merger = EntityMerger(source=make_aggregate(source), dest=make_aggregate(dest))
    merger.merge_articles()
    merger.merge_external_categories()

    assert [command.article_id for command in merger.articles] == [101]
    assert merger.external_categories == []


def test_merge_relationships_copies_skips_and_flags_duplicates(caplog: pytest.LogCaptureFixture) -> None:
    source, dest = _people()
    copied = make_relationship(SOURCE_ID, 3, relationship_id=10, notes="met at gala")
    copied.attach_document(77)
    between = make_relationship(SOURCE_ID, DEST_ID, relationship_id=11)
    clash = make_relationship(4, SOURCE_ID, RelationshipCategory.SOCIAL, relationship_id=12)
    repeat_a = make_relationship(SOURCE_ID, 5, relationship_id=13)
    repeat_b = make_relationship(SOURCE_ID, 5, relationship_id=14)
    existing = make_relationship(4, DEST_ID, RelationshipCategory.SOCIAL, relationship_id=20)

    merger = EntityMerger(
        source=make_aggregate(source, copied, between, clash, repeat_a, repeat_b),
        dest=make_aggregate(dest, existing),
    )
    with caplog.at_level(logging.INFO, logger="powermap.domain.merging.merger"):
        merger.merge_relationships()

    assert [command.triplet for command in merger.relationships] == [
        (DEST_ID, 3, RelationshipCategory.GENERIC),
        (DEST_ID, 5, RelationshipCategory.GENERIC),
    ]
    first = merger.relationships[0]
    assert first.key == "relationship:10"
    assert first.copied_from_id == 10
    assert first.document_ids == (77,)
    assert first.attributes["notes"] == "met at gala"
    assert merger.skipped_relationships == [between]
    assert [(d.relationship_id, d.existing_relationship_id) for d in merger.potential_duplicate_relationships] == [
        (12, 20),
        (14, None),
    ]
    assert "potential duplicate" in caplog.text


def test_merge_relationships_ignores_deleted_edges() -> None:
    source, dest = _people()
    deleted = make_relationship(SOURCE_ID, 3, relationship_id=10, is_deleted=True)

    merger = EntityMerger(source=make_aggregate(source, deleted), dest=make_aggregate(dest))
    merger.merge_relationships()

    assert merger.relationships == []
    assert merger.skipped_relationships == []


def test_merge_donation_matches_stages_one_backing_copy_per_triplet() -> None:
    source, dest = _people()
    backing = make_relationship(
        SOURCE_ID,
        6,
        RelationshipCategory.DONATION,
        relationship_id=30,
        description1="Campaign Contribution",
        amount=150,
        filings=2,
    )
    first = make_os_match(50, amount=100, donor_id=SOURCE_ID, recip_id=6, relationship_id=30)
    second = make_os_match(51, amount=50, donor_id=SOURCE_ID, recip_id=6, relationship_id=30)

    merger = EntityMerger(
        source=make_aggregate(source, backing, os_matches=(second, first)),
        dest=make_aggregate(dest),
    )
    merger.merge_relationships()
    merger.merge_donation_matches()

    staged = StagedRelationship("relationship:30")
    assert merger.os_match_relationships == [backing]
    assert merger.relationships == []
    create, repoint_first, repoint_second, refresh = merger.donation_matches
    assert isinstance(create, CreateRelationship)
    assert create.triplet == (DEST_ID, 6, RelationshipCategory.DONATION)
    assert repoint_first == RepointDonationMatch(
        dataset=DonationDataset.OPEN_SECRETS,
        match_id=50,
        role=DonationRole.DONOR,
        entity_id=DEST_ID,
        relationship=staged,
    )
    assert isinstance(repoint_second, RepointDonationMatch)
    assert repoint_second.match_id == 51
    assert repoint_second.relationship == staged
    assert refresh == RefreshDonationTotals(relationship=staged)


def test_merge_donation_matches_reuses_dest_relationship() -> None:
    source, dest = _people()
    backing = make_relationship(7, SOURCE_ID, RelationshipCategory.DONATION, relationship_id=30)
    dest_edge = make_relationship(7, DEST_ID, RelationshipCategory.DONATION, relationship_id=40)
    match = make_ny_match(60, amount=25, donor_id=7, recip_id=SOURCE_ID, relationship_id=30)

    merger = EntityMerger(
        source=make_aggregate(source, backing, ny_matches=(match,)),
        dest=make_aggregate(dest, dest_edge),
    )
    merger.merge_donation_matches()

    assert merger.donation_matches == [
        RepointDonationMatch(
            dataset=DonationDataset.NYS,
            match_id=60,
            role=DonationRole.RECIPIENT,
            entity_id=DEST_ID,
            relationship=ExistingRelationship(40),
        ),
        RefreshDonationTotals(relationship=ExistingRelationship(40)),
    ]


def test_merge_donation_matches_without_backing_relationship_clears_it() -> None:
    source, dest = _people()
    match = make_os_match(50, amount=10, recip_id=SOURCE_ID)

    merger = EntityMerger(source=make_aggregate(source, os_matches=(match,)), dest=make_aggregate(dest))
    merger.merge_donation_matches()

    assert merger.donation_matches == [
        RepointDonationMatch(
            dataset=DonationDataset.OPEN_SECRETS,
            match_id=50,
            role=DonationRole.RECIPIENT,
            entity_id=DEST_ID,
            relationship=None,
        )
    ]


# Whole plan ------------------------------------------------------------------


def _rich_pair():  # noqa: ANN202
    source, dest = _people()
    source.add_extension(ExtensionKind.LOBBYIST, {"lda_registrant_id": "L-1"})
    source.add_email("alice@example.org")
    source.add_to_list(10)
    source.add_tag(3)
    image = source.add_image("portrait.png")
    image.id = 70
    relationships = (
        make_relationship(SOURCE_ID, 3, relationship_id=10),
        make_relationship(SOURCE_ID, DEST_ID, relationship_id=11),
    )
    return make_aggregate(source, *relationships), make_aggregate(dest)


def test_plan_is_repeatable_and_ordered_by_category() -> None:
    source, dest = _rich_pair()

    first = EntityMerger(source=source, dest=dest).plan()
    second = EntityMerger(source=source, dest=dest).plan()

    assert first == second
    categories = [command.CATEGORY for command in first.commands]
    assert categories == [
        MergeCategory.EXTENSIONS,
        MergeCategory.CONTACT_INFO,
        MergeCategory.LISTS,
        MergeCategory.IMAGES,
        MergeCategory.ALIASES,
        MergeCategory.TAGS,
        MergeCategory.RELATIONSHIPS,
    ]
    assert first.skipped_relationship_ids == (11,)
    assert first.counts()[MergeCategory.RELATIONSHIPS] == 1
    assert first.counts()[MergeCategory.ARTICLES] == 0


def test_planning_does_not_touch_the_entities() -> None:
    source, dest = _rich_pair()

    EntityMerger(source=source, dest=dest).plan()

    assert dest.entity.extension_kinds == frozenset({ExtensionKind.PERSON})
    assert dest.entity.list_ids == frozenset()
    assert source.entity.images[0].entity_id is None
