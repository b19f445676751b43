"""Merge services: preview a merge, then commit it inside one unit of work."""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from powermap.domain.model import AssociationData, EntityMerge

from .apply import apply_merge_plan
from .commands import MergeCategory
from .errors import MissingArgumentError
from .merger import EntityMerger
from .plan import MergeResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from powermap.domain.model import EntityAggregate
    from powermap.domain.ports.persistence import EntityRepository
    from powermap.domain.ports.unit_of_work import PowerMapUnitOfWork

    from .plan import MergeEvent, MergePlan

type UnitOfWorkFactory = Callable[[], PowerMapUnitOfWork]

log = logging.getLogger(__name__)


def plan_merge(
    *,
    source_id: int,
    dest_id: int,
    unit_of_work_factory: UnitOfWorkFactory,
) -> MergePlan:
    """Compute the merge plan for ``source_id`` into ``dest_id`` without writing."""

    with unit_of_work_factory() as uow:
        source, dest = _load_pair(uow.repositories.entities, source_id, dest_id)
        plan = EntityMerger(source=source, dest=dest).plan()
    log.debug(
        "Planned merge %s -> %s: %d command(s), %d potential duplicate(s)",
        source_id,
        dest_id,
        len(plan.commands),
        len(plan.potential_duplicates),
    )
    return plan


def commit_merge(
    plan: MergePlan,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
) -> MergeResult:
    """Apply ``plan`` atomically.

    Both entity rows are locked in ascending id order and the plan is rebuilt
    from the locked state, so a preview that went stale never writes stale
    commands. Any error rolls the whole merge back.
    """

    with unit_of_work_factory() as uow:
        entities = uow.repositories.entities
        entities.lock_for_merge(sorted({plan.source_id, plan.dest_id}))
        source, dest = _load_pair(entities, plan.source_id, plan.dest_id)

        current = EntityMerger(source=source, dest=dest).plan()
        if current != plan:
            log.info(
                "Merge %s -> %s changed since it was planned: %d command(s) now, %d before",
                plan.source_id,
                plan.dest_id,
                len(current.commands),
                len(plan.commands),
            )

        events = apply_merge_plan(
            current,
            uow.repositories.merges,
            primary_type=dest.entity.primary_type,
        )

        snapshot = AssociationData.capture(
            source.entity,
            relationship_ids=entities.relationship_ids(current.source_id),
        )
        entities.soft_delete(source.entity, association_data=snapshot, merged_id=current.dest_id)
        link_count = entities.refresh_link_count(current.dest_id)

        counts = _count_events(events)
        uow.repositories.merges.record_merge(
            EntityMerge(
                source_id=current.source_id,
                dest_id=current.dest_id,
                created_by_user_id=actor_id,
                summary={str(category): count for category, count in counts.items()},
                potential_duplicate_ids=[
                    duplicate.relationship_id for duplicate in current.potential_duplicates
                ],
            )
        )
        uow.commit()

    log.info(
        "Merged entity %s into %s: %d change(s), %d potential duplicate(s), link_count=%d",
        current.source_id,
        current.dest_id,
        len(events),
        len(current.potential_duplicates),
        link_count,
    )
    return MergeResult(
        source_id=current.source_id,
        dest_id=current.dest_id,
        committed=True,
        counts=counts,
        potential_duplicates=current.potential_duplicates,
        events=tuple(events),
    )


def merge_entities(
    *,
    source_id: int,
    dest_id: int,
    unit_of_work_factory: UnitOfWorkFactory,
    actor_id: int | None = None,
    dry_run: bool = False,
) -> MergeResult:
    """Plan and commit in one call; ``dry_run`` stops after planning."""

    plan = plan_merge(
        source_id=source_id,
        dest_id=dest_id,
        unit_of_work_factory=unit_of_work_factory,
    )
    if dry_run:
        return MergeResult(
            source_id=plan.source_id,
            dest_id=plan.dest_id,
            committed=False,
            counts=plan.counts(),
            potential_duplicates=plan.potential_duplicates,
        )
    return commit_merge(plan, unit_of_work_factory=unit_of_work_factory, actor_id=actor_id)


def _load_pair(
    entities: EntityRepository,
    source_id: int,
    dest_id: int,
) -> tuple[EntityAggregate, EntityAggregate]:
    loaded: list[EntityAggregate] = []
    for argument, entity_id in (("source", source_id), ("dest", dest_id)):
        aggregate = entities.load_aggregate(entity_id)
        if aggregate is None:
            raise MissingArgumentError(argument=argument, reason=f"entity {entity_id} does not exist")
        loaded.append(aggregate)
    return loaded[0], loaded[1]


def _count_events(events: list[MergeEvent]) -> dict[MergeCategory, int]:
    counter = Counter(event.category for event in events)
    return {category: counter.get(category, 0) for category in MergeCategory}
