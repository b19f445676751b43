"""Domain ports (interfaces) for adapters."""

from __future__ import annotations

from .persistence import (
    EntityRepository,
    ListRepository,
    MergeWriter,
    Repository,
    TagRepository,
    UserRepository,
)
from .unit_of_work import (
    PowerMapRepositories,
    PowerMapUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "EntityRepository",
    "ListRepository",
    "MergeWriter",
    "PowerMapRepositories",
    "PowerMapUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "TagRepository",
    "UnitOfWork",
    "UserRepository",
]
