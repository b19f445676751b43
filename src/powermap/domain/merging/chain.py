"""Resolution of ``merged_id`` chains to the entity that absorbed them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from .errors import (
    BrokenMergeChainError,
    EntityNotFoundError,
    MergeChainTooDeepError,
    MergeCycleError,
    MergedEntityError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from powermap.domain.model import Entity

DEFAULT_MAX_MERGE_DEPTH: Final[int] = 32

type EntityLookup = Callable[[int], Entity | None]


def resolve_merge_chain(
    entity: Entity,
    lookup: EntityLookup,
    *,
    max_depth: int = DEFAULT_MAX_MERGE_DEPTH,
) -> Entity:
    """Follow ``merged_id`` hops from ``entity`` to the entity that was never merged.

    ``lookup`` must return deleted entities too, since every hop but the last
    is soft-deleted.
    """

    current = entity
    chain: list[int] = [current.id] if current.id is not None else []
    seen = set(chain)
    while current.merged_id is not None:
        next_id = current.merged_id
        if next_id in seen:
            raise MergeCycleError(
                f"Merge chain cycles back to entity {next_id}",
                chain=(*chain, next_id),
            )
        if len(chain) > max_depth:
            raise MergeChainTooDeepError(
                f"Merge chain from entity {chain[0]} exceeds {max_depth} hops",
                chain=tuple(chain),
            )
        following = lookup(next_id)
        if following is None:
            raise BrokenMergeChainError(
                f"Entity {current.id} was merged into missing entity {next_id}",
                chain=(*chain, next_id),
            )
        chain.append(next_id)
        seen.add(next_id)
        current = following
    return current


def find_with_merges(
    entity_id: int,
    lookup: EntityLookup,
    *,
    max_depth: int = DEFAULT_MAX_MERGE_DEPTH,
) -> Entity:
    """Return the live entity ``entity_id``.

    Raises ``MergedEntityError`` pointing at the surviving entity when the
    requested one was merged away, and ``EntityNotFoundError`` when it is
    missing or deleted.
    """

    entity = lookup(entity_id)
    if entity is not None and entity.has_merges:
        raise MergedEntityError(
            requested_id=entity_id,
            entity=resolve_merge_chain(entity, lookup, max_depth=max_depth),
        )
    if entity is None or entity.is_deleted:
        raise EntityNotFoundError(entity_id)
    return entity
