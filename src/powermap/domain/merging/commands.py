"""Explicit change commands produced by merge planning.

Commands carry plain values only (ids, field values), never loaded records, so
a plan can outlive the session it was computed in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from powermap.domain.model import (
        ContactKind,
        DonationDataset,
        DonationRole,
        ExtensionKind,
        RelationshipCategory,
    )


class MergeCategory(StrEnum):
    EXTENSIONS = "extensions"
    CONTACT_INFO = "contact_info"
    LISTS = "lists"
    IMAGES = "images"
    ALIASES = "aliases"
    REFERENCES = "references"
    TAGS = "tags"
    ARTICLES = "articles"
    EXTERNAL_CATEGORIES = "external_categories"
    RELATIONSHIPS = "relationships"
    DONATION_MATCHES = "donation_matches"


@dataclass(frozen=True, slots=True)
class ExistingRelationship:
    relationship_id: int


@dataclass(frozen=True, slots=True)
class StagedRelationship:
    """A relationship created earlier in the same plan, addressed by its staging key."""

    key: str


type RelationshipTarget = ExistingRelationship | StagedRelationship


@dataclass(frozen=True, slots=True, kw_only=True)
class AddExtension:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.EXTENSIONS

    entity_id: int
    kind: ExtensionKind
    attributes: dict[str, object] = field(default_factory=dict[str, object])


@dataclass(frozen=True, slots=True, kw_only=True)
class FillExtensionAttributes:
    """Copy values into blank attributes of an extension both entities carry."""

    CATEGORY: ClassVar[MergeCategory] = MergeCategory.EXTENSIONS

    entity_id: int
    kind: ExtensionKind
    attributes: dict[str, object]


@dataclass(frozen=True, slots=True, kw_only=True)
class AddContactItem:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.CONTACT_INFO

    entity_id: int
    kind: ContactKind
    attributes: dict[str, object]


@dataclass(frozen=True, slots=True, kw_only=True)
class AddListMembership:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.LISTS

    entity_id: int
    list_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class RepointImage:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.IMAGES

    image_id: int
    entity_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class AddAlias:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.ALIASES

    entity_id: int
    name: str


@dataclass(frozen=True, slots=True, kw_only=True)
class AttachDocument:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.REFERENCES

    entity_id: int
    document_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class AddTagging:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.TAGS

    entity_id: int
    tag_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class RepointArticleLink:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.ARTICLES

    link_id: int
    article_id: int
    entity_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class RepointExternalCategory:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.EXTERNAL_CATEGORIES

    link_id: int
    category_id: str
    entity_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class CreateRelationship:
    """A copy of ``copied_from_id`` with the merged endpoint swapped."""

    CATEGORY: ClassVar[MergeCategory] = MergeCategory.RELATIONSHIPS

    key: str
    copied_from_id: int | None
    entity1_id: int
    entity2_id: int
    category: RelationshipCategory
    attributes: dict[str, object] = field(default_factory=dict[str, object])
    document_ids: tuple[int, ...] = ()

    @property
    def triplet(self) -> tuple[int, int, RelationshipCategory]:
        return (self.entity1_id, self.entity2_id, self.category)

    @property
    def target(self) -> StagedRelationship:
        return StagedRelationship(self.key)


@dataclass(frozen=True, slots=True, kw_only=True)
class RepointDonationMatch:
    CATEGORY: ClassVar[MergeCategory] = MergeCategory.DONATION_MATCHES

    dataset: DonationDataset
    match_id: int
    role: DonationRole
    entity_id: int
    relationship: RelationshipTarget | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RefreshDonationTotals:
    """Recompute amount and filings of a donation relationship from its matches."""

    CATEGORY: ClassVar[MergeCategory] = MergeCategory.DONATION_MATCHES

    relationship: RelationshipTarget


type MergeCommand = (
    AddExtension
    | FillExtensionAttributes
    | AddContactItem
    | AddListMembership
    | RepointImage
    | AddAlias
    | AttachDocument
    | AddTagging
    | RepointArticleLink
    | RepointExternalCategory
    | CreateRelationship
    | RepointDonationMatch
    | RefreshDonationTotals
)
