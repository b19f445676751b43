"""Association snapshots kept on soft-deleted entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .entity import Entity
    from .extensions import ExtensionKind


@dataclass(frozen=True, slots=True, kw_only=True)
class AssociationData:
    """What a soft delete removes from an entity, so it can be restored later."""

    extension_kinds: tuple[ExtensionKind, ...] = ()
    relationship_ids: tuple[int, ...] = ()
    aliases: tuple[str, ...] = ()
    tag_ids: tuple[int, ...] = ()

    @classmethod
    def capture(cls, entity: Entity, *, relationship_ids: Iterable[int]) -> AssociationData:
        return cls(
            extension_kinds=tuple(sorted(entity.extension_kinds, key=lambda kind: kind.value)),
            relationship_ids=tuple(sorted(relationship_ids)),
            aliases=tuple(alias.name for alias in entity.aliases if not alias.is_primary),
            tag_ids=tuple(sorted(entity.tag_ids)),
        )
