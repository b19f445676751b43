"""Soft delete and restore of entities through their association snapshot."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from powermap.domain.model import AssociationData, definition_for

from .merging.errors import EntityNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

    from powermap.domain.model import Entity
    from powermap.domain.ports.unit_of_work import PowerMapUnitOfWork

type UnitOfWorkFactory = Callable[[], PowerMapUnitOfWork]

log = logging.getLogger(__name__)


class CannotRestoreError(RuntimeError):
    """Raised when restoring an entity that is live or was merged away."""

    def __init__(self, *, entity_id: int, reason: str) -> None:
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot restore entity {entity_id}: {reason}")


class MissingAssociationDataError(RuntimeError):
    """Raised when a deleted entity carries no association snapshot."""

    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        super().__init__(f"Entity {entity_id} has no association data to restore from")


def soft_delete_entity(*, entity_id: int, unit_of_work_factory: UnitOfWorkFactory) -> Entity:
    """Snapshot the entity's associations, strip them and mark it deleted."""

    with unit_of_work_factory() as uow:
        entities = uow.repositories.entities
        entity = entities.get(entity_id)
        if entity is None or entity.is_deleted:
            raise EntityNotFoundError(entity_id)
        snapshot = AssociationData.capture(
            entity,
            relationship_ids=entities.relationship_ids(entity_id),
        )
        entities.soft_delete(entity, association_data=snapshot)
        uow.commit()
    log.info(
        "Soft-deleted entity %s (%d relationship(s) retired)",
        entity_id,
        len(snapshot.relationship_ids),
    )
    return entity


def restore_entity(
    *,
    entity_id: int,
    unit_of_work_factory: UnitOfWorkFactory,
    restore_relationships: bool = False,
) -> Entity:
    """Undo a soft delete from the entity's association snapshot."""

    with unit_of_work_factory() as uow:
        entities = uow.repositories.entities
        entity = entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        if not entity.is_deleted:
            raise CannotRestoreError(entity_id=entity_id, reason="entity is not deleted")
        if entity.merged_id is not None:
            raise CannotRestoreError(
                entity_id=entity_id,
                reason=f"entity was merged into {entity.merged_id}",
            )
        snapshot = entity.association_data
        if snapshot is None:
            raise MissingAssociationDataError(entity_id)

        entity.is_deleted = False
        entity.association_data = None
        entity.ensure_primary_records()
        for kind in snapshot.extension_kinds:
            if definition_for(kind).applies_to(entity.primary_type):
                entity.add_extension(kind)
            else:
                log.warning("Not restoring extension %s on %s entity %s", kind, entity.primary_type, entity_id)
        for name in snapshot.aliases:
            entity.add_alias(name)
        for tag_id in snapshot.tag_ids:
            entity.add_tag(tag_id)
        entities.restore_images(entity_id)
        if restore_relationships:
            entities.restore_relationships(snapshot.relationship_ids)
        entities.refresh_link_count(entity_id)
        uow.commit()
    log.info("Restored entity %s (relationships restored: %s)", entity_id, restore_relationships)
    return entity
