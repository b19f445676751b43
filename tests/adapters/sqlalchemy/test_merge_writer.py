from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from powermap.adapters.sqlalchemy.merge_writer import SqlAlchemyMergeWriter
from powermap.domain.merging import MergeCategory, ReferenceInvalidError
from powermap.domain.model import (
    ContactKind,
    DonationDataset,
    DonationRole,
    Document,
    EntityMerge,
    ExtensionKind,
    OsMatch,
    Phone,
    Reference,
    RelationshipCategory,
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


def test_repointing_a_missing_image_is_an_invalid_reference(sqlite_session: Session) -> None:
    writer = SqlAlchemyMergeWriter(sqlite_session)

    with pytest.raises(ReferenceInvalidError) as excinfo:
        writer.repoint_image(404, 1)

    assert excinfo.value.category is MergeCategory.IMAGES
    assert "Image 404" in excinfo.value.detail


def test_integrity_violations_become_invalid_references(sqlite_session: Session) -> None:
    (person,) = persist(sqlite_session, make_person())
    assert person.id is not None
    writer = SqlAlchemyMergeWriter(sqlite_session)

    with pytest.raises(ReferenceInvalidError) as excinfo:
        writer.add_tagging(person.id, tag_id=999)

    assert excinfo.value.category is MergeCategory.TAGS


def test_add_contact_item_inserts_typed_record(sqlite_session: Session) -> None:
    (person,) = persist(sqlite_session, make_person())
    assert person.id is not None
    writer = SqlAlchemyMergeWriter(sqlite_session)

    phone_id = writer.add_contact_item(person.id, ContactKind.PHONE, {"number": "555 0100", "kind": None})

    phone = sqlite_session.get(Phone, phone_id)
    assert phone is not None
    assert phone.entity_id == person.id


def test_fill_extension_attributes_keeps_existing_values(sqlite_session: Session) -> None:
    person = make_person()
    person.add_extension(ExtensionKind.POLITICAL_CANDIDATE, {"crp_id": "N001"})
    persist(sqlite_session, person)
    assert person.id is not None
    writer = SqlAlchemyMergeWriter(sqlite_session)

    writer.fill_extension_attributes(person.id, ExtensionKind.POLITICAL_CANDIDATE, {"is_federal": True})

    record = person.extension_record(ExtensionKind.POLITICAL_CANDIDATE)
    assert record is not None
    assert record.attributes == {"crp_id": "N001", "is_federal": True}
    with pytest.raises(ReferenceInvalidError, match="no Lobbyist extension"):
        writer.fill_extension_attributes(person.id, ExtensionKind.LOBBYIST, {"lda_registrant_id": "L1"})


def test_create_relationship_and_attach_documents(sqlite_session: Session) -> None:
    alice, acme = persist(sqlite_session, make_person(), make_org())
    (document,) = persist(sqlite_session, Document(url="https://example.org/filing"))
    assert alice.id is not None
    assert acme.id is not None
    assert document.id is not None
    writer = SqlAlchemyMergeWriter(sqlite_session)

    relationship_id = writer.create_relationship(
        entity1_id=alice.id,
        entity2_id=acme.id,
        category=RelationshipCategory.POSITION,
        attributes={"description1": "Director", "is_current": True},
    )
    reference_id = writer.attach_relationship_document(relationship_id, document.id)

    reference = sqlite_session.get(Reference, reference_id)
    assert reference is not None
    assert reference.referenceable_id == relationship_id


def test_self_relationship_is_rejected_by_storage(sqlite_session: Session) -> None:
    (alice,) = persist(sqlite_session, make_person())
    assert alice.id is not None
    writer = SqlAlchemyMergeWriter(sqlite_session)

    with pytest.raises(ReferenceInvalidError) as excinfo:
        writer.create_relationship(
            entity1_id=alice.id,
            entity2_id=alice.id,
            category=RelationshipCategory.GENERIC,
            attributes={},
        )

    assert excinfo.value.category is MergeCategory.RELATIONSHIPS


def test_repoint_donation_match_sets_role_column(sqlite_session: Session) -> None:
    donor, recipient, new_donor = persist(sqlite_session, make_person(), make_org(), make_person("Bob"))
    (match,) = persist(
        sqlite_session,
        make_os_match(None, amount=10, donor_id=donor.id, recip_id=recipient.id, fec_cycle_id="c1"),
    )
    assert match.id is not None
    assert new_donor.id is not None
    writer = SqlAlchemyMergeWriter(sqlite_session)

    writer.repoint_donation_match(
        DonationDataset.OPEN_SECRETS,
        match.id,
        role=DonationRole.DONOR,
        entity_id=new_donor.id,
        relationship_id=None,
    )

    stored = sqlite_session.get(OsMatch, match.id)
    assert stored is not None
    assert (stored.donor_id, stored.recip_id) == (new_donor.id, recipient.id)


def test_refresh_donation_totals_sums_both_datasets(sqlite_session: Session) -> None:
    donor, recipient = persist(sqlite_session, make_person(), make_org())
    assert donor.id is not None
    assert recipient.id is not None
    (relationship,) = persist(
        sqlite_session,
        make_relationship(donor.id, recipient.id, RelationshipCategory.DONATION, amount=1, filings=1),
    )
    persist(
        sqlite_session,
        make_os_match(None, amount=100, donor_id=donor.id, relationship_id=relationship.id, fec_cycle_id="c1"),
        make_os_match(None, amount=50, donor_id=donor.id, relationship_id=relationship.id, fec_cycle_id="c2"),
        make_os_match(None, amount=999, donor_id=donor.id, fec_cycle_id="c3"),
        make_ny_match(None, amount=25, donor_id=donor.id, relationship_id=relationship.id),
    )
    assert relationship.id is not None

    SqlAlchemyMergeWriter(sqlite_session).refresh_donation_totals(relationship.id)

    assert relationship.amount == 175
    assert relationship.filings == 3


def test_record_merge_persists_audit_row(sqlite_session: Session) -> None:
    source, dest = persist(sqlite_session, make_person(), make_person("Alice Dest"))
    assert source.id is not None
    assert dest.id is not None
    merge = EntityMerge(source_id=source.id, dest_id=dest.id, summary={"aliases": 1})

    SqlAlchemyMergeWriter(sqlite_session).record_merge(merge)

    assert merge.id is not None
