"""Merge plan and merge result types.

The plan is the contract between merge planning (read-only, repeatable) and
the commit stage that applies it inside one unit of work.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .commands import MergeCategory

if TYPE_CHECKING:
    from powermap.domain.model import Triplet

    from .commands import MergeCommand


@dataclass(frozen=True, slots=True, kw_only=True)
class PotentialDuplicate:
    """A source relationship whose re-pointed triplet already exists on dest.

    Reported for manual review; nothing is staged for it.
    """

    relationship_id: int
    triplet: Triplet
    existing_relationship_id: int | None


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePlan:
    source_id: int
    dest_id: int
    commands: tuple[MergeCommand, ...] = ()
    potential_duplicates: tuple[PotentialDuplicate, ...] = ()
    skipped_relationship_ids: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.commands

    def commands_for(self, category: MergeCategory) -> tuple[MergeCommand, ...]:
        return tuple(command for command in self.commands if command.CATEGORY is category)

    def counts(self) -> dict[MergeCategory, int]:
        counter = Counter(command.CATEGORY for command in self.commands)
        return {category: counter.get(category, 0) for category in MergeCategory}


@dataclass(frozen=True, slots=True)
class MergeEvent:
    """One applied command; ``record_id`` is the id storage returned, if any."""

    category: MergeCategory
    command: MergeCommand
    record_id: int | None = None


@dataclass(slots=True)
class MergeResult:
    """Summary of one committed merge."""

    source_id: int
    dest_id: int
    committed: bool
    counts: dict[MergeCategory, int] = field(default_factory=dict["MergeCategory", int])
    potential_duplicates: tuple[PotentialDuplicate, ...] = ()
    events: tuple[MergeEvent, ...] = ()

    @property
    def applied(self) -> int:
        return len(self.events)
