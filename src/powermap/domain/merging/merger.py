"""Merge planning: fold one entity aggregate into another without duplication.

Every ``merge_<category>`` method inspects ``source`` and ``dest`` and rebuilds
exactly one staged attribute. Nothing here touches storage, so the methods can
run any number of times; ``plan()`` runs all of them and freezes the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from powermap.domain.model import (
    EntityAggregate,
    RelationshipCategory,
    fillable_attributes,
    role_of,
)

from .commands import (
    AddAlias,
    AddContactItem,
    AddExtension,
    AddListMembership,
    AddTagging,
    AttachDocument,
    CreateRelationship,
    ExistingRelationship,
    FillExtensionAttributes,
    RefreshDonationTotals,
    RepointArticleLink,
    RepointDonationMatch,
    RepointExternalCategory,
    RepointImage,
)
from .errors import (
    AlreadyMergedError,
    ExtensionMismatchError,
    MissingArgumentError,
    ValidationFailureError,
)
from .plan import MergePlan, PotentialDuplicate

if TYPE_CHECKING:
    from powermap.domain.model import DonationMatch, Relationship, Triplet

    from .commands import MergeCommand, RelationshipTarget

log = logging.getLogger(__name__)

RELATIONSHIP_COPY_FIELDS: Final[tuple[str, ...]] = (
    "description1",
    "description2",
    "amount",
    "filings",
    "start_date",
    "end_date",
    "is_current",
    "notes",
)

type ExtensionCommand = AddExtension | FillExtensionAttributes
type DonationCommand = CreateRelationship | RepointDonationMatch | RefreshDonationTotals


def _require_aggregate(argument: str, value: object) -> EntityAggregate:
    if value is None:
        raise MissingArgumentError(argument=argument, reason="is required")
    if not isinstance(value, EntityAggregate):
        raise MissingArgumentError(
            argument=argument,
            reason=f"expected an EntityAggregate, got {type(value).__name__}",
        )
    if value.entity.id is None:
        raise MissingArgumentError(argument=argument, reason="entity has not been persisted")
    return value


def _require_id(record_id: int | None, what: str) -> int:
    if record_id is None:
        raise MissingArgumentError(argument="source", reason=f"{what} has not been persisted")
    return record_id


def _by_id[T: object](records: tuple[T, ...]) -> list[T]:
    return sorted(records, key=lambda record: getattr(record, "id", None) or 0)


def _staging_key(relationship: Relationship) -> str:
    return f"relationship:{relationship.id}"


@dataclass(slots=True)
class _RelationshipSplit:
    copies: list[CreateRelationship] = field(default_factory=list["CreateRelationship"])
    duplicates: list[PotentialDuplicate] = field(default_factory=list["PotentialDuplicate"])
    os_backed: list[Relationship] = field(default_factory=list["Relationship"])
    ny_backed: list[Relationship] = field(default_factory=list["Relationship"])
    skipped: list[Relationship] = field(default_factory=list["Relationship"])


class EntityMerger:
    """Plans how ``source`` is folded into ``dest``.

    Construction validates the pair. Input problems are raised here and never
    reach a transaction.
    """

    def __init__(
        self,
        *,
        source: EntityAggregate | None = None,
        dest: EntityAggregate | None = None,
    ) -> None:
        self.source = _require_aggregate("source", source)
        self.dest = _require_aggregate("dest", dest)

        if self.source.id == self.dest.id:
            raise MissingArgumentError(argument="dest", reason="cannot merge an entity into itself")

        source_type = self.source.entity.primary_type
        dest_type = self.dest.entity.primary_type
        if source_type is not dest_type:
            raise ExtensionMismatchError(source_type=source_type, dest_type=dest_type)

        for side, aggregate in (("source", self.source), ("dest", self.dest)):
            entity = aggregate.entity
            if entity.merged_id is not None:
                raise AlreadyMergedError(entity_id=aggregate.id, merged_id=entity.merged_id)
            if entity.is_deleted:
                raise ValidationFailureError(field=side, reason="entity is deleted")

        self.extensions: list[ExtensionCommand] = []
        self.contact_info: list[AddContactItem] = []
        self.lists: frozenset[int] = frozenset()
        self.images: list[RepointImage] = []
        self.aliases: list[AddAlias] = []
        self.document_ids: frozenset[int] = frozenset()
        self.tag_ids: frozenset[int] = frozenset()
        self.articles: list[RepointArticleLink] = []
        self.external_categories: list[RepointExternalCategory] = []
        self.relationships: list[CreateRelationship] = []
        self.potential_duplicate_relationships: list[PotentialDuplicate] = []
        self.os_match_relationships: list[Relationship] = []
        self.ny_match_relationships: list[Relationship] = []
        self.skipped_relationships: list[Relationship] = []
        self.donation_matches: list[DonationCommand] = []

    @property
    def source_id(self) -> int:
        return self.source.id

    @property
    def dest_id(self) -> int:
        return self.dest.id

    # Per-category planning ---------------------------------------------------

    def merge_extensions(self) -> None:
        commands: list[ExtensionCommand] = []
        dest_entity = self.dest.entity
        for record in sorted(self.source.entity.extension_records, key=lambda r: r.kind.value):
            existing = dest_entity.extension_record(record.kind)
            if existing is None:
                commands.append(
                    AddExtension(
                        entity_id=self.dest_id,
                        kind=record.kind,
                        attributes=dict(record.attributes),
                    )
                )
                continue
            fill = fillable_attributes(record.kind, record.attributes, existing.attributes)
            if fill:
                commands.append(
                    FillExtensionAttributes(entity_id=self.dest_id, kind=record.kind, attributes=fill)
                )
        self.extensions = commands

    def merge_contact_info(self) -> None:
        seen = {item.merge_key for item in self.dest.entity.contact_items}
        commands: list[AddContactItem] = []
        for item in self.source.entity.contact_items:
            key = item.merge_key
            if key in seen:
                continue
            seen.add(key)
            commands.append(
                AddContactItem(
                    entity_id=self.dest_id,
                    kind=item.KIND,
                    attributes=item.contact_attributes(),
                )
            )
        self.contact_info = commands

    def merge_lists(self) -> None:
        self.lists = self.source.entity.list_ids - self.dest.entity.list_ids

    def merge_images(self) -> None:
        self.images = [
            RepointImage(image_id=_require_id(image.id, "image"), entity_id=self.dest_id)
            for image in _by_id(self.source.entity.images)
        ]

    def merge_aliases(self) -> None:
        names = set(self.dest.entity.alias_names)
        commands: list[AddAlias] = []
        for alias in self.source.entity.aliases:
            if alias.name in names:
                continue
            names.add(alias.name)
            commands.append(AddAlias(entity_id=self.dest_id, name=alias.name))
        self.aliases = commands

    def merge_references(self) -> None:
        self.document_ids = self.source.entity.document_ids - self.dest.entity.document_ids

    def merge_tags(self) -> None:
        self.tag_ids = self.source.entity.tag_ids - self.dest.entity.tag_ids

    def merge_articles(self) -> None:
        present = {link.article_id for link in self.dest.entity.article_links}
        commands: list[RepointArticleLink] = []
        for link in _by_id(self.source.entity.article_links):
            if link.article_id in present:
                continue
            present.add(link.article_id)
            commands.append(
                RepointArticleLink(
                    link_id=_require_id(link.id, "article link"),
                    article_id=link.article_id,
                    entity_id=self.dest_id,
                )
            )
        self.articles = commands

    def merge_external_categories(self) -> None:
        present = {link.category_id for link in self.dest.entity.external_categories}
        commands: list[RepointExternalCategory] = []
        for link in _by_id(self.source.entity.external_categories):
            if link.category_id in present:
                continue
            present.add(link.category_id)
            commands.append(
                RepointExternalCategory(
                    link_id=_require_id(link.id, "external category link"),
                    category_id=link.category_id,
                    entity_id=self.dest_id,
                )
            )
        self.external_categories = commands

    def merge_relationships(self) -> None:
        split = self._split_relationships()
        self.relationships = split.copies
        self.potential_duplicate_relationships = split.duplicates
        self.os_match_relationships = split.os_backed
        self.ny_match_relationships = split.ny_backed
        self.skipped_relationships = split.skipped
        if split.duplicates:
            log.info(
                "Merging %s into %s: %d potential duplicate relationship(s) left for review: %s",
                self.source_id,
                self.dest_id,
                len(split.duplicates),
                ", ".join(str(duplicate.relationship_id) for duplicate in split.duplicates),
            )

    def merge_donation_matches(self) -> None:
        targets: dict[Triplet, RelationshipTarget] = {
            triplet: ExistingRelationship(_require_id(relationship.id, "relationship"))
            for triplet, relationship in self.dest.triplets.items()
        }
        for copy in self._split_relationships().copies:
            targets.setdefault(copy.triplet, copy.target)

        relationships_by_id = {
            relationship.id: relationship for relationship in self.source.relationships
        }
        commands: list[DonationCommand] = []
        refresh: list[RelationshipTarget] = []
        matches: list[DonationMatch] = [
            *_by_id(self.source.os_matches),
            *_by_id(self.source.ny_matches),
        ]
        for match in matches:
            role = role_of(match, self.source_id)
            if role is None:
                continue
            target: RelationshipTarget | None = None
            backing = relationships_by_id.get(match.relationship_id)
            if backing is not None and not backing.is_deleted and not backing.involves(self.dest_id):
                copy = self._copy_relationship(backing)
                target = targets.get(copy.triplet)
                if target is None:
                    commands.append(copy)
                    target = copy.target
                    targets[copy.triplet] = target
            commands.append(
                RepointDonationMatch(
                    dataset=match.DATASET,
                    match_id=_require_id(match.id, "donation match"),
                    role=role,
                    entity_id=self.dest_id,
                    relationship=target,
                )
            )
            if target is not None and target not in refresh:
                refresh.append(target)
        commands.extend(RefreshDonationTotals(relationship=target) for target in refresh)
        self.donation_matches = commands

    # Whole plan --------------------------------------------------------------

    def plan(self) -> MergePlan:
        self.merge_extensions()
        self.merge_contact_info()
        self.merge_lists()
        self.merge_images()
        self.merge_aliases()
        self.merge_references()
        self.merge_tags()
        self.merge_articles()
        self.merge_external_categories()
        self.merge_relationships()
        self.merge_donation_matches()

        commands: list[MergeCommand] = [
            *self.extensions,
            *self.contact_info,
            *(
                AddListMembership(entity_id=self.dest_id, list_id=list_id)
                for list_id in sorted(self.lists)
            ),
            *self.images,
            *self.aliases,
            *(
                AttachDocument(entity_id=self.dest_id, document_id=document_id)
                for document_id in sorted(self.document_ids)
            ),
            *(AddTagging(entity_id=self.dest_id, tag_id=tag_id) for tag_id in sorted(self.tag_ids)),
            *self.articles,
            *self.external_categories,
            *self.relationships,
            *self.donation_matches,
        ]
        return MergePlan(
            source_id=self.source_id,
            dest_id=self.dest_id,
            commands=tuple(commands),
            potential_duplicates=tuple(self.potential_duplicate_relationships),
            skipped_relationship_ids=tuple(
                _require_id(relationship.id, "relationship")
                for relationship in self.skipped_relationships
            ),
        )

    # Helpers -----------------------------------------------------------------

    def _split_relationships(self) -> _RelationshipSplit:
        split = _RelationshipSplit()
        os_backed = {m.relationship_id for m in self.source.os_matches if m.relationship_id}
        ny_backed = {m.relationship_id for m in self.source.ny_matches if m.relationship_id}
        existing = self.dest.triplets
        staged: set[Triplet] = set()

        for relationship in _by_id(self.source.relationships):
            if relationship.is_deleted:
                continue
            if relationship.id in os_backed:
                split.os_backed.append(relationship)
                continue
            if relationship.id in ny_backed:
                split.ny_backed.append(relationship)
                continue
            copy = self._copy_relationship(relationship)
            if relationship.involves(self.dest_id) or copy.entity1_id == copy.entity2_id:
                split.skipped.append(relationship)
                continue
            if copy.triplet in existing or copy.triplet in staged:
                match = existing.get(copy.triplet)
                split.duplicates.append(
                    PotentialDuplicate(
                        relationship_id=_require_id(relationship.id, "relationship"),
                        triplet=copy.triplet,
                        existing_relationship_id=match.id if match is not None else None,
                    )
                )
                continue
            staged.add(copy.triplet)
            split.copies.append(copy)
        return split

    def _copy_relationship(self, relationship: Relationship) -> CreateRelationship:
        def swap(entity_id: int) -> int:
            return self.dest_id if entity_id == self.source_id else entity_id

        return CreateRelationship(
            key=_staging_key(relationship),
            copied_from_id=relationship.id,
            entity1_id=swap(relationship.entity1_id),
            entity2_id=swap(relationship.entity2_id),
            category=RelationshipCategory(relationship.category),
            attributes={name: getattr(relationship, name) for name in RELATIONSHIP_COPY_FIELDS},
            document_ids=tuple(sorted(relationship.document_ids)),
        )
