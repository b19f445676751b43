"""Ports for persisting domain aggregates and applying merges."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from powermap.domain.model import (
        AssociationData,
        ContactKind,
        DonationDataset,
        DonationRole,
        Entity,
        EntityAggregate,
        EntityList,
        EntityMerge,
        ExtensionKind,
        PrimaryType,
        RelationshipCategory,
        Tag,
        User,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class EntityRepository(Repository["Entity"], Protocol):
    """Persistence contract for entities, including deleted and merged ones."""

    def get(self, entity_id: int) -> Entity | None: ...

    def lock_for_merge(self, entity_ids: Iterable[int]) -> None: ...

    def load_aggregate(self, entity_id: int) -> EntityAggregate | None: ...

    def relationship_ids(self, entity_id: int) -> list[int]: ...

    def resolve_merges(self, entity_id: int) -> Entity: ...

    def find_with_merges(self, entity_id: int) -> Entity: ...

    def soft_delete(
        self,
        entity: Entity,
        *,
        association_data: AssociationData,
        merged_id: int | None = None,
    ) -> None: ...

    def restore_images(self, entity_id: int) -> None: ...

    def restore_relationships(self, relationship_ids: Iterable[int]) -> None: ...

    def refresh_link_count(self, entity_id: int) -> int: ...


@runtime_checkable
class MergeWriter(Protocol):
    """Storage-side application of merge commands.

    Methods that create a row return its id.
    """

    def add_extension(
        self,
        entity_id: int,
        kind: ExtensionKind,
        attributes: Mapping[str, object],
    ) -> int: ...

    def fill_extension_attributes(
        self,
        entity_id: int,
        kind: ExtensionKind,
        attributes: Mapping[str, object],
    ) -> None: ...

    def add_contact_item(
        self,
        entity_id: int,
        kind: ContactKind,
        attributes: Mapping[str, object],
    ) -> int: ...

    def add_list_membership(self, entity_id: int, list_id: int) -> int: ...

    def repoint_image(self, image_id: int, entity_id: int) -> None: ...

    def add_alias(self, entity_id: int, name: str) -> int: ...

    def attach_entity_document(self, entity_id: int, document_id: int) -> int: ...

    def attach_relationship_document(self, relationship_id: int, document_id: int) -> int: ...

    def add_tagging(self, entity_id: int, tag_id: int) -> int: ...

    def repoint_article_link(self, link_id: int, entity_id: int) -> None: ...

    def repoint_external_category(self, link_id: int, entity_id: int) -> None: ...

    def create_relationship(
        self,
        *,
        entity1_id: int,
        entity2_id: int,
        category: RelationshipCategory,
        attributes: Mapping[str, object],
    ) -> int: ...

    def repoint_donation_match(
        self,
        dataset: DonationDataset,
        match_id: int,
        *,
        role: DonationRole,
        entity_id: int,
        relationship_id: int | None,
    ) -> None: ...

    def refresh_donation_totals(self, relationship_id: int) -> None: ...

    def record_merge(self, merge: EntityMerge) -> None: ...


@runtime_checkable
class TagRepository(Repository["Tag"], Protocol):
    def all(self) -> list[Tag]: ...

    def get_by_name(self, name: str) -> Tag | None: ...

    def entities_by_relationship_count(
        self,
        tag_id: int,
        primary_type: PrimaryType,
        *,
        page: int = 1,
        per_page: int = 20,
    ) -> list[tuple[Entity, int]]: ...


@runtime_checkable
class UserRepository(Repository["User"], Protocol):
    def get(self, user_id: int) -> User | None: ...

    def get_by_username(self, username: str) -> User | None: ...


@runtime_checkable
class ListRepository(Repository["EntityList"], Protocol):
    def get(self, list_id: int) -> EntityList | None: ...
