"""
howlo.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- accomplishments       — One row per recorded challenge (the achievement record)
- period_announcements  — "Winners already announced" flags per boundary + period

Bonus idempotence is enforced by the database: two partial unique indexes
allow at most one line-bonus row and one full-board-bonus row per
``(user_id, period_key)``.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from howlo.constants import BASE_XP


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all HOWLO ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class CompanionKind(enum.StrEnum):
    """How the person a challenge was completed with was identified."""
    WORKSPACE_USER = "workspace_user"
    NAME = "name"


class AnnouncementKind(enum.StrEnum):
    """Boundary events that produce a one-time announcement."""
    LAUNCH = "launch"
    LAUNCH_WINNERS = "launch_winners"
    MONTHLY_WINNERS = "monthly_winners"


# ---------------------------------------------------------------------------
# Accomplishments — one row per recorded challenge
# ---------------------------------------------------------------------------
class Accomplishment(Base):
    __tablename__ = "accomplishments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    challenge: Mapped[str] = mapped_column(Text, nullable=False)

    # Companion: exactly one of companion_user_id / companion_name is set
    companion_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    companion_user_id: Mapped[str | None] = mapped_column(String(32), default=None)
    companion_name: Mapped[str | None] = mapped_column(String(255), default=None)

    location: Mapped[str] = mapped_column(String(255), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Period stamping
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 0–11
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_key: Mapped[str] = mapped_column(String(16), nullable=False)

    # XP + one-time bonuses
    xp: Mapped[int] = mapped_column(Integer, default=BASE_XP)
    line_bonus: Mapped[bool] = mapped_column(Boolean, default=False)
    line_bonus_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    full_board_bonus: Mapped[bool] = mapped_column(Boolean, default=False)
    full_board_bonus_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    __table_args__ = (
        Index("ix_accomplishments_user_period", "user_id", "month", "year"),
        Index("ix_accomplishments_period_xp", "month", "year", "xp"),
        Index("ix_accomplishments_created_at", "created_at"),
        Index(
            "uq_accomplishments_line_bonus",
            "user_id", "period_key",
            unique=True,
            postgresql_where=text("line_bonus"),
            sqlite_where=text("line_bonus"),
        ),
        Index(
            "uq_accomplishments_full_board_bonus",
            "user_id", "period_key",
            unique=True,
            postgresql_where=text("full_board_bonus"),
            sqlite_where=text("full_board_bonus"),
        ),
    )

    @property
    def companion_mention(self) -> str:
        """Slack-formatted companion: ``<@U123>`` or ``@Name``."""
        if self.companion_kind == CompanionKind.WORKSPACE_USER:
            return f"<@{self.companion_user_id}>"
        name = self.companion_name or ""
        return name if name.startswith("@") else f"@{name}"

    def __repr__(self) -> str:
        return (
            f"<Accomplishment id={self.id} user={self.user_id} "
            f"period={self.period_key} xp={self.xp}>"
        )


# ---------------------------------------------------------------------------
# PeriodAnnouncement — idempotence flag for boundary announcements
# ---------------------------------------------------------------------------
class PeriodAnnouncement(Base):
    __tablename__ = "period_announcements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    period_key: Mapped[str] = mapped_column(String(16), nullable=False)
    winner_count: Mapped[int] = mapped_column(Integer, default=0)
    announced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("kind", "period_key", name="uq_period_announcements_kind_period"),
    )

    def __repr__(self) -> str:
        return f"<PeriodAnnouncement kind={self.kind} period={self.period_key}>"
