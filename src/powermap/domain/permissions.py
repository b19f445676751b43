"""Capability evaluation for users against entities, lists, tags and relationships.

``Permissions`` is a pure evaluator: it reads the user's abilities and the
resource's ownership and access fields and never writes anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, timedelta
from typing import TYPE_CHECKING, Final

from powermap.domain.model import Ability, ListAccess, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from powermap.domain.model import Entity, EntityList, Relationship, Tag, User

DEFAULT_DELETION_GRACE_WINDOW: Final[timedelta] = timedelta(weeks=1)
DEFAULT_DELETABLE_LINK_LIMIT: Final[int] = 3


class PermissionDeniedError(PermissionError):
    """Raised by the application layer when an actor may not perform an action."""

    def __init__(self, *, user_id: int | None, action: str, detail: str | None = None) -> None:
        self.user_id = user_id
        self.action = action
        self.detail = detail
        message = f"User {user_id} is not permitted to {action}"
        super().__init__(f"{message}: {detail}" if detail else message)


@dataclass(frozen=True, slots=True)
class PermissionPolicy:
    """How long a creator may delete their own records, and up to what size."""

    deletion_grace_window: timedelta = DEFAULT_DELETION_GRACE_WINDOW
    deletable_link_limit: int = DEFAULT_DELETABLE_LINK_LIMIT


@dataclass(frozen=True, slots=True)
class EntityCapabilities:
    mergeable: bool
    deleteable: bool


@dataclass(frozen=True, slots=True)
class ListCapabilities:
    viewable: bool
    editable: bool
    configurable: bool


@dataclass(frozen=True, slots=True)
class TagCapabilities:
    viewable: bool
    editable: bool


@dataclass(frozen=True, slots=True)
class RelationshipCapabilities:
    deleteable: bool


_ALL_LIST_ACCESS: Final = ListCapabilities(viewable=True, editable=True, configurable=True)
_VIEW_LIST_ACCESS: Final = ListCapabilities(viewable=True, editable=False, configurable=False)
_NO_LIST_ACCESS: Final = ListCapabilities(viewable=False, editable=False, configurable=False)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class Permissions:
    user: User
    policy: PermissionPolicy = field(default_factory=PermissionPolicy)
    clock: Callable[[], datetime] = utcnow

    # Abilities ---------------------------------------------------------------

    @property
    def is_editor(self) -> bool:
        return self.user.has_ability(Ability.EDIT)

    @property
    def is_lister(self) -> bool:
        return self.user.has_ability(Ability.LIST)

    @property
    def is_admin(self) -> bool:
        return self.user.has_ability(Ability.ADMIN)

    @property
    def is_deleter(self) -> bool:
        return self.user.has_ability(Ability.DELETE)

    @property
    def is_merger(self) -> bool:
        return self.user.has_ability(Ability.MERGE)

    # Resources ---------------------------------------------------------------

    def entity_permissions(self, entity: Entity) -> EntityCapabilities:
        return EntityCapabilities(
            mergeable=self.is_merger or self.is_admin,
            deleteable=self.is_admin
            or (
                self._created(entity.created_by_user_id)
                and self._within_grace_window(entity.created_at)
                and entity.link_count < self.policy.deletable_link_limit
            ),
        )

    def list_permissions(self, entity_list: EntityList) -> ListCapabilities:
        if self.is_admin or self._created(entity_list.creator_user_id):
            return _ALL_LIST_ACCESS
        match entity_list.access:
            case ListAccess.OPEN:
                return ListCapabilities(
                    viewable=True,
                    editable=self.is_lister,
                    configurable=False,
                )
            case ListAccess.CLOSED:
                return _VIEW_LIST_ACCESS
            case _:
                return _NO_LIST_ACCESS

    @staticmethod
    def anon_list_permissions(entity_list: EntityList) -> ListCapabilities:
        if entity_list.access is ListAccess.PRIVATE:
            return _NO_LIST_ACCESS
        return _VIEW_LIST_ACCESS

    def tag_permissions(self, tag: Tag) -> TagCapabilities:
        if not tag.is_restricted():
            return TagCapabilities(viewable=True, editable=True)
        owns = tag.id is not None and tag.id in self.user.owned_tag_ids
        return TagCapabilities(viewable=True, editable=owns or self.is_admin)

    @staticmethod
    def anon_tag_permissions() -> TagCapabilities:
        return TagCapabilities(viewable=True, editable=False)

    def relationship_permissions(self, relationship: Relationship) -> RelationshipCapabilities:
        if self.is_deleter or self.is_admin:
            return RelationshipCapabilities(deleteable=True)
        if relationship.is_campaign_contribution:
            return RelationshipCapabilities(deleteable=False)
        return RelationshipCapabilities(
            deleteable=self._created(relationship.created_by_user_id)
            and self._within_grace_window(relationship.created_at)
        )

    def can_merge(self, source: Entity, dest: Entity) -> bool:
        if source.is_deleted or dest.is_deleted:
            return False
        return (
            self.entity_permissions(source).mergeable and self.entity_permissions(dest).mergeable
        )

    # Helpers -----------------------------------------------------------------

    def _created(self, creator_id: int | None) -> bool:
        return creator_id is not None and creator_id == self.user.id

    def _within_grace_window(self, created_at: datetime) -> bool:
        return self.clock() - _aware(created_at) < self.policy.deletion_grace_window


__all__ = [
    "DEFAULT_DELETABLE_LINK_LIMIT",
    "DEFAULT_DELETION_GRACE_WINDOW",
    "EntityCapabilities",
    "ListCapabilities",
    "PermissionDeniedError",
    "PermissionPolicy",
    "Permissions",
    "RelationshipCapabilities",
    "TagCapabilities",
]
