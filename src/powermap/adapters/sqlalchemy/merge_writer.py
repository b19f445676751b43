"""Storage-side application of merge commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from powermap.adapters.sqlalchemy.mappings import (
    extension_record_table,
    ny_disclosure_table,
    ny_match_table,
    os_donation_table,
    os_match_table,
)
from powermap.domain.merging import MergeCategory, ReferenceInvalidError
from powermap.domain.model import (
    Address,
    Alias,
    ArticleLink,
    ContactKind,
    DonationDataset,
    DonationRole,
    Email,
    ExtensionRecord,
    ExternalCategoryLink,
    Image,
    ListMembership,
    NyMatch,
    OsMatch,
    Phone,
    Reference,
    ReferenceableType,
    Relationship,
    Tagging,
    TaggableType,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Session

    from powermap.domain.model import (
        EntityMerge,
        ExtensionKind,
        RelationshipCategory,
    )

log = logging.getLogger(__name__)

_CONTACT_CLASSES: dict[ContactKind, type[Address | Phone | Email]] = {
    ContactKind.ADDRESS: Address,
    ContactKind.PHONE: Phone,
    ContactKind.EMAIL: Email,
}

_MATCH_CLASSES: dict[DonationDataset, type[OsMatch | NyMatch]] = {
    DonationDataset.OPEN_SECRETS: OsMatch,
    DonationDataset.NYS: NyMatch,
}


class SqlAlchemyMergeWriter:
    """Writes merge commands into the session, flushing after each one.

    An integrity violation while flushing becomes ``ReferenceInvalidError``
    for the category being written.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # Entity records ----------------------------------------------------------

    def add_extension(
        self,
        entity_id: int,
        kind: ExtensionKind,
        attributes: Mapping[str, object],
    ) -> int:
        record = ExtensionRecord(entity_id=entity_id, kind=kind, attributes=dict(attributes))
        return self._insert(record, MergeCategory.EXTENSIONS)

    def fill_extension_attributes(
        self,
        entity_id: int,
        kind: ExtensionKind,
        attributes: Mapping[str, object],
    ) -> None:
        record = self.session.scalars(
            select(ExtensionRecord)
            .where(extension_record_table.c.entity_id == entity_id)
            .where(extension_record_table.c.kind == kind)
        ).one_or_none()
        if record is None:
            raise ReferenceInvalidError(
                category=MergeCategory.EXTENSIONS,
                detail=f"entity {entity_id} has no {kind} extension",
            )
        record.attributes = {**record.attributes, **attributes}
        self._flush(MergeCategory.EXTENSIONS)

    def add_contact_item(
        self,
        entity_id: int,
        kind: ContactKind,
        attributes: Mapping[str, object],
    ) -> int:
        contact_cls = _CONTACT_CLASSES[kind]
        item = contact_cls(entity_id=entity_id, **attributes)  # pyright: ignore[reportArgumentType]
        return self._insert(item, MergeCategory.CONTACT_INFO)

    def add_list_membership(self, entity_id: int, list_id: int) -> int:
        return self._insert(ListMembership(list_id=list_id, entity_id=entity_id), MergeCategory.LISTS)

    def repoint_image(self, image_id: int, entity_id: int) -> None:
        image = self._require(Image, image_id, MergeCategory.IMAGES)
        image.entity_id = entity_id
        self._flush(MergeCategory.IMAGES)

    def add_alias(self, entity_id: int, name: str) -> int:
        return self._insert(Alias(entity_id=entity_id, name=name), MergeCategory.ALIASES)

    def attach_entity_document(self, entity_id: int, document_id: int) -> int:
        reference = Reference(
            document_id=document_id,
            referenceable_type=ReferenceableType.ENTITY,
            referenceable_id=entity_id,
        )
        return self._insert(reference, MergeCategory.REFERENCES)

    def attach_relationship_document(self, relationship_id: int, document_id: int) -> int:
        reference = Reference(
            document_id=document_id,
            referenceable_type=ReferenceableType.RELATIONSHIP,
            referenceable_id=relationship_id,
        )
        return self._insert(reference, MergeCategory.RELATIONSHIPS)

    def add_tagging(self, entity_id: int, tag_id: int) -> int:
        tagging = Tagging(tag_id=tag_id, tagable_type=TaggableType.ENTITY, tagable_id=entity_id)
        return self._insert(tagging, MergeCategory.TAGS)

    def repoint_article_link(self, link_id: int, entity_id: int) -> None:
        link = self._require(ArticleLink, link_id, MergeCategory.ARTICLES)
        link.entity_id = entity_id
        self._flush(MergeCategory.ARTICLES)

    def repoint_external_category(self, link_id: int, entity_id: int) -> None:
        link = self._require(ExternalCategoryLink, link_id, MergeCategory.EXTERNAL_CATEGORIES)
        link.entity_id = entity_id
        self._flush(MergeCategory.EXTERNAL_CATEGORIES)

    # Relationships and donations ---------------------------------------------

    def create_relationship(
        self,
        *,
        entity1_id: int,
        entity2_id: int,
        category: RelationshipCategory,
        attributes: Mapping[str, object],
    ) -> int:
        relationship = Relationship(
            entity1_id=entity1_id,
            entity2_id=entity2_id,
            category=category,
            **attributes,  # pyright: ignore[reportArgumentType]
        )
        return self._insert(relationship, MergeCategory.RELATIONSHIPS)

    def repoint_donation_match(
        self,
        dataset: DonationDataset,
        match_id: int,
        *,
        role: DonationRole,
        entity_id: int,
        relationship_id: int | None,
    ) -> None:
        match = self._require(_MATCH_CLASSES[dataset], match_id, MergeCategory.DONATION_MATCHES)
        if role is DonationRole.DONOR:
            match.donor_id = entity_id
        else:
            match.recip_id = entity_id
        match.relationship_id = relationship_id
        self._flush(MergeCategory.DONATION_MATCHES)

    def refresh_donation_totals(self, relationship_id: int) -> None:
        """Set amount and filings of a relationship from the donations matched to it."""

        relationship = self._require(Relationship, relationship_id, MergeCategory.DONATION_MATCHES)
        self.session.flush()
        os_count, os_total = self.session.execute(
            select(func.count(os_match_table.c.id), func.coalesce(func.sum(os_donation_table.c.amount), 0))
            .select_from(os_match_table)
            .join(os_donation_table, os_donation_table.c.id == os_match_table.c.os_donation_id)
            .where(os_match_table.c.relationship_id == relationship_id)
        ).one()
        ny_count, ny_total = self.session.execute(
            select(func.count(ny_match_table.c.id), func.coalesce(func.sum(ny_disclosure_table.c.amount), 0))
            .select_from(ny_match_table)
            .join(ny_disclosure_table, ny_disclosure_table.c.id == ny_match_table.c.ny_disclosure_id)
            .where(ny_match_table.c.relationship_id == relationship_id)
        ).one()
        relationship.amount = int(os_total) + int(ny_total)
        relationship.filings = int(os_count) + int(ny_count)
        self._flush(MergeCategory.DONATION_MATCHES)
        log.debug(
            "Relationship %s now totals %s over %s filing(s)",
            relationship_id,
            relationship.amount,
            relationship.filings,
        )

    # Audit -------------------------------------------------------------------

    def record_merge(self, merge: EntityMerge) -> None:
        self.session.add(merge)
        self.session.flush()

    # Helpers -----------------------------------------------------------------

    def _require[TRecord](self, record_cls: type[TRecord], record_id: int, category: MergeCategory) -> TRecord:
        record = self.session.get(record_cls, record_id)
        if record is None:
            raise ReferenceInvalidError(
                category=category,
                detail=f"{record_cls.__name__} {record_id} does not exist",
            )
        return record

    def _insert(self, record: object, category: MergeCategory) -> int:
        self.session.add(record)
        self._flush(category)
        record_id = getattr(record, "id", None)
        if not isinstance(record_id, int):
            raise ReferenceInvalidError(category=category, detail="storage assigned no id")
        return record_id

    def _flush(self, category: MergeCategory) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ReferenceInvalidError(category=category, detail=str(exc.orig)) from exc


if TYPE_CHECKING:
    from powermap.domain.ports.persistence import MergeWriter

    _session_stub = cast("Session", object())
    _writer_check: MergeWriter = SqlAlchemyMergeWriter(_session_stub)
