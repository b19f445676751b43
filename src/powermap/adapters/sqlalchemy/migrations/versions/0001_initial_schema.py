"""Initial power-map schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op

from powermap.adapters.sqlalchemy.mappings import mapper_registry

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    mapper_registry.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    mapper_registry.metadata.drop_all(bind=op.get_bind())
