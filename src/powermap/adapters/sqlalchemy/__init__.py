"""SQLAlchemy adapter package for powermap."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    enable_sqlite_foreign_keys,
    mapper_registry,
    start_mappers,
)
from .merge_writer import SqlAlchemyMergeWriter
from .repositories import (
    SqlAlchemyEntityRepository,
    SqlAlchemyListRepository,
    SqlAlchemyTagRepository,
    SqlAlchemyUserRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyEntityRepository",
    "SqlAlchemyListRepository",
    "SqlAlchemyMergeWriter",
    "SqlAlchemyTagRepository",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyUserRepository",
    "StartupError",
    "create_all_tables",
    "enable_sqlite_foreign_keys",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
