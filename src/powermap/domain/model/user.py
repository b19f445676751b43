"""User accounts, their abilities and per-resource access rules."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from .entity import utcnow
from .enums import Ability

if TYPE_CHECKING:
    from datetime import datetime

TAG_RESOURCE: Final[str] = "Tag"


class SetOperation(StrEnum):
    UNION = "union"
    DIFFERENCE = "difference"


class InvalidOperationError(ValueError):
    """Raised for access-rule updates other than union or difference."""


class TagAccessRules:
    """Set arithmetic over the ``tag_ids`` a user owns."""

    @staticmethod
    def update(
        current: Iterable[int] | None,
        delta: Iterable[int],
        operation: SetOperation | str,
    ) -> frozenset[int]:
        try:
            op = SetOperation(operation)
        except ValueError:
            raise InvalidOperationError(f"Unsupported access rule operation: {operation!r}") from None
        base = frozenset(current or ())
        if op is SetOperation.UNION:
            return base | frozenset(delta)
        return base - frozenset(delta)


@dataclass(eq=False, kw_only=True)
class UserPermission:
    id: int | None = None
    user_id: int | None = None
    resource_type: str
    access_rules: dict[str, object] = field(default_factory=dict[str, object])


@dataclass(eq=False, kw_only=True)
class User:
    id: int | None = None
    username: str
    email: str | None = None
    abilities: frozenset[Ability] = frozenset()
    created_at: datetime = field(default_factory=utcnow)

    _permissions: list[UserPermission] = field(default_factory=list["UserPermission"], repr=False)

    def has_ability(self, ability: Ability) -> bool:
        return ability in self.abilities

    def grant(self, *abilities: Ability) -> None:
        self.abilities = self.abilities | frozenset(abilities)

    def revoke(self, *abilities: Ability) -> None:
        self.abilities = self.abilities - frozenset(abilities)

    @property
    def owned_tag_ids(self) -> frozenset[int]:
        permission = self._tag_permission()
        if permission is None:
            return frozenset()
        raw = permission.access_rules.get("tag_ids") or []
        if not isinstance(raw, list):
            return frozenset()
        return frozenset(int(tag_id) for tag_id in raw)  # pyright: ignore[reportUnknownArgumentType]

    def grant_tag_ownership(self, tag_id: int) -> None:
        self._update_tag_rules([tag_id], SetOperation.UNION)

    def revoke_tag_ownership(self, tag_id: int) -> None:
        self._update_tag_rules([tag_id], SetOperation.DIFFERENCE)

    def _update_tag_rules(self, delta: Iterable[int], operation: SetOperation) -> None:
        updated = TagAccessRules.update(self.owned_tag_ids, delta, operation)
        permission = self._tag_permission()
        if permission is None:
            permission = UserPermission(resource_type=TAG_RESOURCE)
            self._permissions.append(permission)
        # reassign so change tracking sees a new value
        permission.access_rules = {**permission.access_rules, "tag_ids": sorted(updated)}

    def _tag_permission(self) -> UserPermission | None:
        for permission in self._permissions:
            if permission.resource_type == TAG_RESOURCE:
                return permission
        return None
