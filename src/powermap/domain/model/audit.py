"""Audit records for entity merges."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False)
class EntityMerge:
    """Audit record written when one entity is folded into another."""

    source_id: int
    dest_id: int
    created_at: datetime = field(default_factory=utcnow)
    created_by_user_id: int | None = None
    summary: dict[str, int] = field(default_factory=dict[str, int])
    potential_duplicate_ids: list[int] = field(default_factory=list[int])
    id: int | None = None
