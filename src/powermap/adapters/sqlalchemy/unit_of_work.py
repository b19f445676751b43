"""SQLAlchemy-backed unit of work for merge, delete and restore workflows."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Self

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from powermap.adapters.sqlalchemy.mappings import enable_sqlite_foreign_keys, start_mappers
from powermap.adapters.sqlalchemy.merge_writer import SqlAlchemyMergeWriter
from powermap.adapters.sqlalchemy.migrations import upgrade_head
from powermap.adapters.sqlalchemy.repositories import (
    SqlAlchemyEntityRepository,
    SqlAlchemyListRepository,
    SqlAlchemyTagRepository,
    SqlAlchemyUserRepository,
)
from powermap.config import DatabaseConfig, get_database_config, get_merge_policy
from powermap.domain.ports.unit_of_work import PowerMapRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter or a unit of work is used in the wrong state."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self.session_factory = (
            None if engine is None else sessionmaker(bind=engine, expire_on_commit=False)
        )

    def require_session_factory(self) -> sessionmaker[Session]:
        if self.session_factory is None:
            raise StartupError(
                "Database not started. Call powermap.adapters.sqlalchemy.startup() "
                "before opening a unit of work."
            )
        return self.session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one) and migrate it to head."""

    if _STATE.engine is not None and not force:
        raise StartupError("Database already started. Pass force=True to rebind.")

    if engine is None:
        database = get_database_config() if database_uri is None else DatabaseConfig(uri=database_uri)
        engine = create_engine(database.uri, echo=database.echo, future=True)
    enable_sqlite_foreign_keys(engine)
    start_mappers()
    upgrade_head(engine=engine)
    _STATE.bind(engine)
    log.debug("Database started on %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it; ``startup`` may be called again."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.bind(None)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block.

    Nothing persists without ``commit()``. Leaving the block closes the
    session, and an exception rolls it back first.
    """

    def __init__(self) -> None:
        self.session_factory = _STATE.require_session_factory()
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> Self:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                log.debug("Rolling back unit of work after %s", exc_type.__name__)
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Repositories are only available inside the unit of work")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[PowerMapRepositories]):
    """Unit of work over entities, merges, tags, users and lists."""

    def _build_repositories(self, session: Session) -> PowerMapRepositories:
        return PowerMapRepositories(
            entities=SqlAlchemyEntityRepository(
                session,
                max_merge_depth=get_merge_policy().max_chain_depth,
            ),
            merges=SqlAlchemyMergeWriter(session),
            tags=SqlAlchemyTagRepository(session),
            users=SqlAlchemyUserRepository(session),
            lists=SqlAlchemyListRepository(session),
        )


if TYPE_CHECKING:
    from powermap.domain.ports.unit_of_work import PowerMapUnitOfWork

    _uow_check: PowerMapUnitOfWork = SqlAlchemyUnitOfWork()
