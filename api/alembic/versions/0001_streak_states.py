"""streak states table

Revision ID: 0001_streak_states
Revises:
Create Date: 2026-10-18

One row per user key holding the full check-in streak aggregate.
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_streak_states"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "streak_states",
        sa.Column("user_key", sa.String(255), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        # Nullable: legacy imports may lack it; loading falls back to current_streak
        sa.Column("best_streak", sa.Integer(), nullable=True),
        sa.Column("connected_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_check_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unlocked_badges", sa.JSON(), nullable=True),
        sa.Column("unlocked_ranks", sa.JSON(), nullable=True),
        sa.Column("check_in_history", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_key"),
    )


def downgrade() -> None:
    op.drop_table("streak_states")
