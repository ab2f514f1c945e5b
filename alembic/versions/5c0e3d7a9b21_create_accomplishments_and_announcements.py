"""Create accomplishments and period_announcements tables

Revision ID: 5c0e3d7a9b21
Revises:
Create Date: 2025-03-10 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c0e3d7a9b21"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Accomplishment records plus the boundary-announcement flags."""
    op.create_table(
        "accomplishments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("challenge", sa.Text(), nullable=False),
        sa.Column("companion_kind", sa.String(20), nullable=False),
        sa.Column("companion_user_id", sa.String(32), nullable=True),
        sa.Column("companion_name", sa.String(255), nullable=True),
        sa.Column("location", sa.String(255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("period_key", sa.String(16), nullable=False),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("line_bonus", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("line_bonus_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "full_board_bonus", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("full_board_bonus_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_accomplishments_user_period", "accomplishments", ["user_id", "month", "year"]
    )
    op.create_index(
        "ix_accomplishments_period_xp", "accomplishments", ["month", "year", "xp"]
    )
    op.create_index("ix_accomplishments_created_at", "accomplishments", ["created_at"])

    # At most one line / full-board bonus per (user, period)
    op.create_index(
        "uq_accomplishments_line_bonus",
        "accomplishments",
        ["user_id", "period_key"],
        unique=True,
        postgresql_where=sa.text("line_bonus"),
        sqlite_where=sa.text("line_bonus"),
    )
    op.create_index(
        "uq_accomplishments_full_board_bonus",
        "accomplishments",
        ["user_id", "period_key"],
        unique=True,
        postgresql_where=sa.text("full_board_bonus"),
        sqlite_where=sa.text("full_board_bonus"),
    )

    op.create_table(
        "period_announcements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("period_key", sa.String(16), nullable=False),
        sa.Column("winner_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("announced_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "kind", "period_key", name="uq_period_announcements_kind_period"
        ),
    )


def downgrade() -> None:
    op.drop_table("period_announcements")
    op.drop_index("uq_accomplishments_full_board_bonus", table_name="accomplishments")
    op.drop_index("uq_accomplishments_line_bonus", table_name="accomplishments")
    op.drop_index("ix_accomplishments_created_at", table_name="accomplishments")
    op.drop_index("ix_accomplishments_period_xp", table_name="accomplishments")
    op.drop_index("ix_accomplishments_user_period", table_name="accomplishments")
    op.drop_table("accomplishments")
