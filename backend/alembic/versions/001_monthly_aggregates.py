"""monthly_aggregates

Revision ID: 001_monthly_aggregates
Revises:
Create Date: 2026-10-19

Creates the monthly_aggregates table: one full KPI snapshot per
(team_id, kpi_category, month_key).

DDL is guarded by inspector checks so the migration is idempotent, safe
to run even when Base.metadata.create_all() already created the table.
"""
import logging
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects.postgresql import JSONB

revision = '001_monthly_aggregates'
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.001")

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def _table_exists(conn, table_name: str) -> bool:
    return inspect(conn).has_table(table_name)


def _index_exists(conn, table_name: str, index_name: str) -> bool:
    return any(ix["name"] == index_name for ix in inspect(conn).get_indexes(table_name))


def upgrade() -> None:
    conn = op.get_bind()

    if not _table_exists(conn, 'monthly_aggregates'):
        op.create_table(
            'monthly_aggregates',
            sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
            sa.Column('team_id', sa.String(64), nullable=False),
            sa.Column('kpi_category', sa.String(32), nullable=False),
            sa.Column('month_key', sa.Date, nullable=False),
            sa.Column('kpi_value', sa.Integer, nullable=True),
            sa.Column('monthly_target', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('employees', JSONType, nullable=False),
            sa.Column('incidents', JSONType, nullable=False),
            sa.Column('formulas', JSONType, nullable=False),
            sa.Column('stats', JSONType, nullable=False),
            sa.Column('notes', sa.Text, nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint('team_id', 'kpi_category', 'month_key', name='uq_monthly_aggregate_key'),
        )
        logger.info("Created table: monthly_aggregates")
    else:
        logger.info("Table monthly_aggregates already exists, skipping create")

    if not _index_exists(conn, 'monthly_aggregates', 'ix_monthly_aggregates_team_category'):
        op.create_index(
            'ix_monthly_aggregates_team_category',
            'monthly_aggregates',
            ['team_id', 'kpi_category'],
        )
        logger.info("Created index: ix_monthly_aggregates_team_category")


def downgrade() -> None:
    conn = op.get_bind()
    if _table_exists(conn, 'monthly_aggregates'):
        op.drop_index('ix_monthly_aggregates_team_category', table_name='monthly_aggregates')
        op.drop_table('monthly_aggregates')
