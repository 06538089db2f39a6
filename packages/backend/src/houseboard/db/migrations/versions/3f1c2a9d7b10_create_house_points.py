"""create house_points

The append-only event table plus the two recency indexes used by the
leaderboard (all houses) and per-house queries.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "house_points",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", name="uq_house_points_event_id"),
        sa.CheckConstraint("points >= 1", name="ck_house_points_points_positive"),
        sa.CheckConstraint(
            "category IN ('Gryff', 'Slyth', 'Raven', 'Huff')",
            name="ck_house_points_category",
        ),
    )
    op.create_index("idx_house_points_timestamp", "house_points", ["timestamp"])
    op.create_index(
        "idx_house_points_category_timestamp", "house_points", ["category", "timestamp"]
    )


def downgrade() -> None:
    op.drop_index("idx_house_points_category_timestamp", table_name="house_points")
    op.drop_index("idx_house_points_timestamp", table_name="house_points")
    op.drop_table("house_points")
