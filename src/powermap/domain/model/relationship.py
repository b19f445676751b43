"""Relationships between entities and their per-direction link projections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Reference, utcnow
from .enums import ReferenceableType, RelationshipCategory

if TYPE_CHECKING:
    from datetime import datetime

type Triplet = tuple[int, int, RelationshipCategory]

CAMPAIGN_CONTRIBUTION_DESCRIPTIONS = frozenset(
    {"Campaign Contribution", "NYS Campaign Contribution"}
)


@dataclass(eq=False, kw_only=True)
class Relationship:
    """A directed, categorized edge from ``entity1_id`` to ``entity2_id``."""

    id: int | None = None
    entity1_id: int
    entity2_id: int
    category: RelationshipCategory
    description1: str | None = None
    description2: str | None = None
    amount: int | None = None
    filings: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current: bool | None = None
    notes: str | None = None
    is_deleted: bool = False
    created_by_user_id: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    _references: list[Reference] = field(default_factory=list["Reference"], repr=False)

    @property
    def triplet(self) -> Triplet:
        return (self.entity1_id, self.entity2_id, self.category)

    @property
    def document_ids(self) -> frozenset[int]:
        return frozenset(reference.document_id for reference in self._references)

    @property
    def references(self) -> tuple[Reference, ...]:
        return tuple(self._references)

    @property
    def is_campaign_contribution(self) -> bool:
        return (
            self.category is RelationshipCategory.DONATION
            and self.description1 in CAMPAIGN_CONTRIBUTION_DESCRIPTIONS
            and (self.filings or 0) > 0
        )

    def involves(self, entity_id: int) -> bool:
        return entity_id in (self.entity1_id, self.entity2_id)

    def counterpart_of(self, entity_id: int) -> int:
        if self.entity1_id == entity_id:
            return self.entity2_id
        if self.entity2_id == entity_id:
            return self.entity1_id
        raise ValueError(f"Entity {entity_id} is not an endpoint of relationship {self.id}")

    def attach_document(self, document_id: int) -> None:
        if document_id in self.document_ids:
            return
        self._references.append(
            Reference(document_id=document_id, referenceable_type=ReferenceableType.RELATIONSHIP)
        )

    def links(self) -> tuple[Link, Link]:
        return (Link(relationship=self, is_reverse=False), Link(relationship=self, is_reverse=True))

    def link_for(self, entity_id: int) -> Link:
        """The link as seen from ``entity_id``."""

        if self.entity1_id == entity_id:
            return Link(relationship=self, is_reverse=False)
        if self.entity2_id == entity_id:
            return Link(relationship=self, is_reverse=True)
        raise ValueError(f"Entity {entity_id} is not an endpoint of relationship {self.id}")


@dataclass(frozen=True, slots=True)
class Link:
    """One direction of a relationship, read from the ``entity1_id`` side."""

    relationship: Relationship
    is_reverse: bool = False

    @property
    def entity1_id(self) -> int:
        rel = self.relationship
        return rel.entity2_id if self.is_reverse else rel.entity1_id

    @property
    def entity2_id(self) -> int:
        rel = self.relationship
        return rel.entity1_id if self.is_reverse else rel.entity2_id

    @property
    def category(self) -> RelationshipCategory:
        return self.relationship.category

    @property
    def relationship_id(self) -> int | None:
        return self.relationship.id
