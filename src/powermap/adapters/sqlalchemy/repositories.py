"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from sqlalchemy import and_, delete, desc, func, or_, select, update

from powermap.adapters.sqlalchemy.mappings import (
    alias_table,
    entity_table,
    extension_record_table,
    image_table,
    list_membership_table,
    ny_match_table,
    os_match_table,
    relationship_table,
    tag_table,
    tagging_table,
    user_table,
)
from powermap.domain.merging import (
    DEFAULT_MAX_MERGE_DEPTH,
    EntityNotFoundError,
    find_with_merges,
    resolve_merge_chain,
)
from powermap.domain.model import (
    Alias,
    Entity,
    EntityAggregate,
    EntityList,
    ExtensionRecord,
    Image,
    ListMembership,
    NyMatch,
    OsMatch,
    Relationship,
    Tag,
    TaggableType,
    Tagging,
    User,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import ColumnElement
    from sqlalchemy.orm import Session

    from powermap.domain.model import AssociationData, PrimaryType

log = logging.getLogger(__name__)

_STRIPPED_COLLECTIONS = ("_aliases", "_extension_records", "_list_memberships", "_taggings", "_images")


def _involves(entity_id: int) -> ColumnElement[bool]:
    return or_(
        relationship_table.c.entity1_id == entity_id,
        relationship_table.c.entity2_id == entity_id,
    )


def _endpoint_ids(session: Session, condition: ColumnElement[bool]) -> set[int]:
    rows = session.execute(
        select(relationship_table.c.entity1_id, relationship_table.c.entity2_id).where(condition)
    ).all()
    return {entity_id for row in rows for entity_id in row}


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session, *, max_merge_depth: int = DEFAULT_MAX_MERGE_DEPTH) -> None:
        self.session = session
        self.max_merge_depth = max_merge_depth

    def add(self, entity: Entity) -> None:
        self.session.add(entity)

    def get(self, entity_id: int) -> Entity | None:
        return self.session.get(Entity, entity_id)

    def lock_for_merge(self, entity_ids: Iterable[int]) -> None:
        """Lock entity rows in ascending id order and refresh them from storage."""

        stmt = (
            select(Entity)
            .where(entity_table.c.id.in_(sorted(set(entity_ids))))
            .order_by(entity_table.c.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        locked = self.session.scalars(stmt).all()
        log.debug("Locked %d entity row(s) for merge", len(locked))

    def load_aggregate(self, entity_id: int) -> EntityAggregate | None:
        entity = self.get(entity_id)
        if entity is None:
            return None
        relationships = self.session.scalars(
            select(Relationship)
            .where(_involves(entity_id))
            .where(relationship_table.c.is_deleted.is_(False))
            .order_by(relationship_table.c.id)
        ).all()
        os_matches = self.session.scalars(
            select(OsMatch)
            .where(
                or_(os_match_table.c.donor_id == entity_id, os_match_table.c.recip_id == entity_id)
            )
            .order_by(os_match_table.c.id)
        ).all()
        ny_matches = self.session.scalars(
            select(NyMatch)
            .where(
                or_(ny_match_table.c.donor_id == entity_id, ny_match_table.c.recip_id == entity_id)
            )
            .order_by(ny_match_table.c.id)
        ).all()
        return EntityAggregate(
            entity=entity,
            relationships=tuple(relationships),
            os_matches=tuple(os_matches),
            ny_matches=tuple(ny_matches),
        )

    def relationship_ids(self, entity_id: int) -> list[int]:
        self.session.flush()
        stmt = (
            select(relationship_table.c.id)
            .where(_involves(entity_id))
            .where(relationship_table.c.is_deleted.is_(False))
            .order_by(relationship_table.c.id)
        )
        return list(self.session.scalars(stmt).all())

    def resolve_merges(self, entity_id: int) -> Entity:
        entity = self.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return resolve_merge_chain(entity, self.get, max_depth=self.max_merge_depth)

    def find_with_merges(self, entity_id: int) -> Entity:
        return find_with_merges(entity_id, self.get, max_depth=self.max_merge_depth)

    def soft_delete(
        self,
        entity: Entity,
        *,
        association_data: AssociationData,
        merged_id: int | None = None,
    ) -> None:
        """Strip the entity's associations and mark it deleted.

        Rows are matched by what storage holds, so records that were already
        re-pointed at another entity in this transaction are left alone.
        """

        entity_id = entity.id
        if entity_id is None:
            raise ValueError("Cannot soft-delete an entity that has not been persisted")
        self.session.flush()
        now = utcnow()

        self.session.execute(delete(Alias).where(alias_table.c.entity_id == entity_id))
        self.session.execute(
            delete(ExtensionRecord).where(extension_record_table.c.entity_id == entity_id)
        )
        self.session.execute(
            delete(ListMembership).where(list_membership_table.c.entity_id == entity_id)
        )
        self.session.execute(
            delete(Tagging)
            .where(tagging_table.c.tagable_type == TaggableType.ENTITY)
            .where(tagging_table.c.tagable_id == entity_id)
        )
        self.session.execute(
            update(Image).where(image_table.c.entity_id == entity_id).values(is_deleted=True)
        )
        live_edges = and_(_involves(entity_id), relationship_table.c.is_deleted.is_(False))
        counterpart_ids = _endpoint_ids(self.session, live_edges) - {entity_id}
        self.session.execute(
            update(Relationship).where(live_edges).values(is_deleted=True, updated_at=now)
        )
        self.session.expire(entity, list(_STRIPPED_COLLECTIONS))

        entity.is_deleted = True
        entity.merged_id = merged_id
        entity.association_data = association_data
        entity.link_count = 0
        entity.updated_at = now
        self.session.flush()
        for counterpart_id in sorted(counterpart_ids):
            self.refresh_link_count(counterpart_id)
        log.debug("Soft-deleted entity %s (merged_id=%s)", entity_id, merged_id)

    def restore_images(self, entity_id: int) -> None:
        self.session.flush()
        self.session.execute(
            update(Image).where(image_table.c.entity_id == entity_id).values(is_deleted=False)
        )

    def restore_relationships(self, relationship_ids: Iterable[int]) -> None:
        """Undelete relationships whose endpoints are both live, then recount both ends."""

        ids = sorted(set(relationship_ids))
        if not ids:
            return
        self.session.flush()
        deleted_entities = select(entity_table.c.id).where(entity_table.c.is_deleted.is_(True))
        restorable = and_(
            relationship_table.c.id.in_(ids),
            relationship_table.c.entity1_id.not_in(deleted_entities),
            relationship_table.c.entity2_id.not_in(deleted_entities),
        )
        endpoint_ids = _endpoint_ids(self.session, restorable)
        result = self.session.execute(
            update(Relationship)
            .where(restorable)
            .values(is_deleted=False, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        log.debug("Restored %s of %d relationship(s)", result.rowcount, len(ids))  # pyright: ignore[reportAttributeAccessIssue]
        for entity_id in sorted(endpoint_ids):
            self.refresh_link_count(entity_id)

    def refresh_link_count(self, entity_id: int) -> int:
        self.session.flush()
        count = self.session.scalar(
            select(func.count(relationship_table.c.id))
            .where(_involves(entity_id))
            .where(relationship_table.c.is_deleted.is_(False))
        )
        link_count = int(count or 0)
        entity = self.get(entity_id)
        if entity is not None:
            entity.link_count = link_count
        return link_count


class SqlAlchemyTagRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Tag) -> None:
        self.session.add(entity)

    def all(self) -> list[Tag]:
        return list(self.session.scalars(select(Tag).order_by(tag_table.c.id)).all())

    def get_by_name(self, name: str) -> Tag | None:
        return self.session.scalars(select(Tag).where(tag_table.c.name == name)).one_or_none()

    def entities_by_relationship_count(
        self,
        tag_id: int,
        primary_type: PrimaryType,
        *,
        page: int = 1,
        per_page: int = 20,
    ) -> list[tuple[Entity, int]]:
        """Live tagged entities ordered by relationships to other entities with the same tag."""

        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be positive")
        tagged_ids = (
            select(tagging_table.c.tagable_id)
            .where(tagging_table.c.tag_id == tag_id)
            .where(tagging_table.c.tagable_type == TaggableType.ENTITY)
        )
        related = or_(
            (relationship_table.c.entity1_id == entity_table.c.id)
            & relationship_table.c.entity2_id.in_(tagged_ids),
            (relationship_table.c.entity2_id == entity_table.c.id)
            & relationship_table.c.entity1_id.in_(tagged_ids),
        )
        num_related = func.count(relationship_table.c.id).label("num_related")
        stmt = (
            select(Entity, num_related)
            .select_from(entity_table)
            .outerjoin(
                relationship_table,
                related & relationship_table.c.is_deleted.is_(False),
            )
            .where(entity_table.c.id.in_(tagged_ids))
            .where(entity_table.c.primary_type == primary_type)
            .where(entity_table.c.is_deleted.is_(False))
            .group_by(entity_table.c.id)
            .order_by(desc(num_related), entity_table.c.id)
            .limit(per_page)
            .offset((page - 1) * per_page)
        )
        rows = self.session.execute(stmt).all()
        return [(cast(Entity, entity), int(count)) for entity, count in rows]


class SqlAlchemyUserRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: User) -> None:
        self.session.add(entity)

    def get(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> User | None:
        return self.session.scalars(
            select(User).where(user_table.c.username == username)
        ).one_or_none()


class SqlAlchemyListRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: EntityList) -> None:
        self.session.add(entity)

    def get(self, list_id: int) -> EntityList | None:
        return self.session.get(EntityList, list_id)


if TYPE_CHECKING:
    from powermap.domain.ports.persistence import (
        EntityRepository,
        ListRepository,
        TagRepository,
        UserRepository,
    )

    _session_stub = cast("Session", object())
    _entity_repo: EntityRepository = SqlAlchemyEntityRepository(_session_stub)
    _tag_repo: TagRepository = SqlAlchemyTagRepository(_session_stub)
    _user_repo: UserRepository = SqlAlchemyUserRepository(_session_stub)
    _list_repo: ListRepository = SqlAlchemyListRepository(_session_stub)
