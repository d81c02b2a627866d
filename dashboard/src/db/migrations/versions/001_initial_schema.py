"""
Initial schema: power_samples log and daily_baselines.

Creates the append-only ``power_samples`` table with its timestamp index,
and ``daily_baselines`` keyed by calendar date so that inserting a
baseline twice for the same date is rejected by the primary key.

Revision ID: 001
Revises: None
Create Date: 2026-10-03

CHANGELOG:
- 2026-10-03: Initial creation

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "power_samples",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ts", sa.DateTime(), nullable=False),
        sa.Column("solar_w", sa.Double(), nullable=False),
        sa.Column("battery_w", sa.Double(), nullable=False),
        sa.Column("grid_w", sa.Double(), nullable=False),
        sa.Column("load_w", sa.Double(), nullable=False),
        sa.Column("battery_soe", sa.Double(), nullable=False),
        sa.Column("battery_status", sa.Text(), nullable=False),
    )
    op.create_index("idx_power_ts", "power_samples", ["ts"])

    op.create_table(
        "daily_baselines",
        sa.Column("date", sa.Text(), primary_key=True),
        sa.Column("solar_exported_wh", sa.Double(), nullable=False),
        sa.Column("battery_exported_wh", sa.Double(), nullable=False),
        sa.Column("battery_imported_wh", sa.Double(), nullable=False),
        sa.Column("grid_imported_wh", sa.Double(), nullable=False),
        sa.Column("grid_exported_wh", sa.Double(), nullable=False),
        sa.Column("load_imported_wh", sa.Double(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("daily_baselines")
    op.drop_index("idx_power_ts", table_name="power_samples")
    op.drop_table("power_samples")
