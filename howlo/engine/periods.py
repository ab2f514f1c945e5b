"""
howlo.engine.periods — Period Classifier
=========================================

Classifies a wall-clock instant into one of three regimes:

    now <  launch_start                               → PRE_LAUNCH
    launch_start <= now < first_monthly_reset_start   → EXTENDED_LAUNCH
    now >= first_monthly_reset_start                  → MONTHLY (month, year)

The extended launch spans parts of two calendar months and is a single
scoring period, so its records are selected by a ``created_at`` range.
Monthly periods are selected by the ``month``/``year`` stamp.  Both
shapes are produced here and nowhere else.

Pure calculation — no database I/O.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from howlo.constants import MONTH_NAMES

if TYPE_CHECKING:
    from howlo.config import HowloConfig

PRE_LAUNCH_KEY = "pre-launch"
LAUNCH_KEY = "launch"


class Regime(enum.StrEnum):
    PRE_LAUNCH = "pre_launch"
    EXTENDED_LAUNCH = "extended_launch"
    MONTHLY = "monthly"


@dataclass(frozen=True, slots=True)
class Period:
    """A scoring epoch.  ``month`` (0–11) and ``year`` are set for MONTHLY only."""

    regime: Regime
    key: str
    month: int | None = None
    year: int | None = None

    @property
    def ranked(self) -> bool:
        return self.regime != Regime.PRE_LAUNCH


@dataclass(frozen=True, slots=True)
class PeriodPredicate:
    """Query shape selecting one period's records.

    ``start`` is inclusive and ``end`` exclusive on ``created_at``; ``month``
    and ``year`` match the stamped period.  Unset parts don't filter.
    """

    start: datetime | None = None
    end: datetime | None = None
    month: int | None = None
    year: int | None = None


def month_key(month: int, year: int) -> str:
    """``(4, 2025)`` → ``"2025-05"``."""
    return f"{year:04d}-{month + 1:02d}"


def previous_month(month: int, year: int) -> tuple[int, int]:
    if month == 0:
        return 11, year - 1
    return month - 1, year


class PeriodCalendar:
    """Regime boundaries for one deployment of the game."""

    def __init__(
        self,
        launch_start: datetime,
        first_monthly_reset_start: datetime,
        tz: ZoneInfo,
    ) -> None:
        self.tz = tz
        self.launch_start = self.localize(launch_start)
        self.first_monthly_reset_start = self.localize(first_monthly_reset_start)
        if self.launch_start >= self.first_monthly_reset_start:
            raise ValueError("launch_start must precede first_monthly_reset_start")

    @classmethod
    def from_config(cls, cfg: HowloConfig) -> PeriodCalendar:
        return cls(cfg.launch_start, cfg.first_monthly_reset_start, cfg.timezone)

    def localize(self, when: datetime) -> datetime:
        """Naive datetimes are read as local game time."""
        if when.tzinfo is None:
            return when.replace(tzinfo=self.tz)
        return when.astimezone(self.tz)

    # -------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------
    def classify(self, now: datetime) -> Period:
        local = self.localize(now)
        if local < self.launch_start:
            return Period(Regime.PRE_LAUNCH, PRE_LAUNCH_KEY)
        if local < self.first_monthly_reset_start:
            return self.launch_period()
        return self.monthly_period(local.month - 1, local.year)

    def launch_period(self) -> Period:
        return Period(Regime.EXTENDED_LAUNCH, LAUNCH_KEY)

    def monthly_period(self, month: int, year: int) -> Period:
        return Period(Regime.MONTHLY, month_key(month, year), month, year)

    # -------------------------------------------------------------------
    # Query shapes
    # -------------------------------------------------------------------
    def predicate_for(self, period: Period) -> PeriodPredicate:
        if period.regime == Regime.PRE_LAUNCH:
            return PeriodPredicate(end=self.launch_start)
        if period.regime == Regime.EXTENDED_LAUNCH:
            return PeriodPredicate(
                start=self.launch_start, end=self.first_monthly_reset_start
            )
        reset = self.first_monthly_reset_start
        # The month holding the first reset also holds launch records
        if period.month == reset.month - 1 and period.year == reset.year:
            return PeriodPredicate(start=reset, month=period.month, year=period.year)
        return PeriodPredicate(month=period.month, year=period.year)

    def match_predicate_for_current_period(self, now: datetime) -> PeriodPredicate:
        return self.predicate_for(self.classify(now))

    # -------------------------------------------------------------------
    # Boundary days
    # -------------------------------------------------------------------
    def is_launch_day(self, now: datetime) -> bool:
        return self.localize(now).date() == self.launch_start.date()

    def is_first_reset_day(self, now: datetime) -> bool:
        return self.localize(now).date() == self.first_monthly_reset_start.date()

    def period_before_today(self, now: datetime) -> Period:
        """The period that was active at the last instant of yesterday."""
        local = self.localize(now)
        midnight = datetime.combine(local.date(), time.min, tzinfo=self.tz)
        return self.classify(midnight - timedelta(microseconds=1))

    # -------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------
    def describe(self, period: Period) -> str:
        """``"May 2025"`` or ``"March 24 – April 30, 2025"``."""
        if period.regime == Regime.MONTHLY:
            return f"{MONTH_NAMES[period.month]} {period.year}"
        if period.regime == Regime.EXTENDED_LAUNCH:
            start = self.launch_start
            last = self.first_monthly_reset_start - timedelta(microseconds=1)
            return (
                f"{MONTH_NAMES[start.month - 1]} {start.day} – "
                f"{MONTH_NAMES[last.month - 1]} {last.day}, {last.year}"
            )
        return "Pre-launch"
