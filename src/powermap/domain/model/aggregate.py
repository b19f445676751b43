"""Loaded view of an entity together with the edges that point at it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .donations import NyMatch, OsMatch
    from .entity import Entity
    from .relationship import Relationship, Triplet


@dataclass(frozen=True, slots=True, kw_only=True)
class EntityAggregate:
    """An entity, its live relationships and the donation matches naming it."""

    entity: Entity
    relationships: tuple[Relationship, ...] = ()
    os_matches: tuple[OsMatch, ...] = ()
    ny_matches: tuple[NyMatch, ...] = ()

    @property
    def id(self) -> int:
        if self.entity.id is None:
            raise ValueError("Aggregate entity has not been persisted")
        return self.entity.id

    @property
    def triplets(self) -> dict[Triplet, Relationship]:
        """Live relationships keyed by triplet; the first one wins on repeats."""

        index: dict[Triplet, Relationship] = {}
        for relationship in self.relationships:
            if relationship.is_deleted:
                continue
            index.setdefault(relationship.triplet, relationship)
        return index
