"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from logging import getLogger
from typing import TYPE_CHECKING

from powermap.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from powermap.config import get_permission_policy
from powermap.domain.deletion import restore_entity, soft_delete_entity
from powermap.domain.merging import (
    EntityNotFoundError,
    MergedEntityError,
    MissingArgumentError,
    merge_entities,
)
from powermap.domain.model import Ability, User
from powermap.domain.permissions import PermissionDeniedError, Permissions
from powermap.domain.ports.unit_of_work import PowerMapUnitOfWork

if TYPE_CHECKING:
    from powermap.domain.merging import MergeResult
    from powermap.domain.model import Entity

UnitOfWorkFactory = Callable[[], PowerMapUnitOfWork]


log = getLogger(__name__)


def _ensure_started(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


def _permissions_for(uow: PowerMapUnitOfWork, user_id: int, *, action: str) -> Permissions:
    user = uow.repositories.users.get(user_id)
    if user is None:
        raise PermissionDeniedError(user_id=user_id, action=action, detail="unknown user")
    return Permissions(user, get_permission_policy())


def merge(
    source_id: int,
    dest_id: int,
    *,
    user_id: int,
    dry_run: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergeResult:
    """Merge ``source_id`` into ``dest_id`` on behalf of ``user_id``.

    The user must be allowed to merge both entities; the check runs before
    any planning.
    """

    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        permissions = _permissions_for(uow, user_id, action="merge")
        source = uow.repositories.entities.get(source_id)
        dest = uow.repositories.entities.get(dest_id)
        if source is None:
            raise MissingArgumentError(argument="source", reason=f"entity {source_id} does not exist")
        if dest is None:
            raise MissingArgumentError(argument="dest", reason=f"entity {dest_id} does not exist")
        if not permissions.can_merge(source, dest):
            raise PermissionDeniedError(
                user_id=user_id,
                action="merge",
                detail=f"entities {source_id} and {dest_id}",
            )

    log.info("Starting merge %s -> %s (user=%s, dry_run=%s)", source_id, dest_id, user_id, dry_run)
    result = merge_entities(
        source_id=source_id,
        dest_id=dest_id,
        unit_of_work_factory=effective_uow,
        actor_id=user_id,
        dry_run=dry_run,
    )
    log.info(
        "Finished merge %s -> %s: committed=%s, changes=%s, potential_duplicates=%s",
        source_id,
        dest_id,
        result.committed,
        sum(result.counts.values()),
        len(result.potential_duplicates),
    )
    return result


def resolve(entity_id: int, *, unit_of_work_factory: UnitOfWorkFactory | None = None) -> Entity:
    """Return the live entity ``entity_id`` ends up at after following merges."""

    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        try:
            return uow.repositories.entities.find_with_merges(entity_id)
        except MergedEntityError as exc:
            log.info("Entity %s was merged into %s", entity_id, exc.entity.id)
            return exc.entity


def delete(
    entity_id: int,
    *,
    user_id: int,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Entity:
    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        permissions = _permissions_for(uow, user_id, action="delete")
        entity = uow.repositories.entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        if not permissions.entity_permissions(entity).deleteable:
            raise PermissionDeniedError(user_id=user_id, action="delete", detail=f"entity {entity_id}")
    return soft_delete_entity(entity_id=entity_id, unit_of_work_factory=effective_uow)


def restore(
    entity_id: int,
    *,
    with_relationships: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Entity:
    effective_uow = _ensure_started(unit_of_work_factory)
    return restore_entity(
        entity_id=entity_id,
        unit_of_work_factory=effective_uow,
        restore_relationships=with_relationships,
    )


def create_user(
    *,
    username: str,
    email: str | None = None,
    abilities: Iterable[Ability] = (),
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> User:
    """Create and persist a user with the given abilities."""

    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        if uow.repositories.users.get_by_username(username) is not None:
            raise ValueError(f"User {username!r} already exists")
        user = User(username=username, email=email, abilities=frozenset(abilities))
        uow.repositories.users.add(user)
        uow.commit()
    log.info("Created user %s (%s)", user.id, username)
    return user
