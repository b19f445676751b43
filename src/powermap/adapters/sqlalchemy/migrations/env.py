"""Alembic environment for the power-map schema.

Migrations run programmatically through ``upgrade_head``, which either hands
over an open connection or sets ``sqlalchemy.url``. Logging is left to the
caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from powermap.adapters.sqlalchemy import enable_sqlite_foreign_keys, mapper_registry, start_mappers
from powermap.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

log = logging.getLogger("powermap.migrations")

config = context.config
start_mappers()
target_metadata = mapper_registry.metadata


def _configure(**options: object) -> None:
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=True,
        compare_type=True,
        **options,  # pyright: ignore[reportArgumentType]
    )


def _migrate(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    log.info("Rendering migrations for %s", url)
    _configure(url=url, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection: Connection | None = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection)
        return

    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    engine = create_engine(url, poolclass=pool.NullPool, future=True)
    enable_sqlite_foreign_keys(engine)
    try:
        with engine.connect() as owned:
            _migrate(owned)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
