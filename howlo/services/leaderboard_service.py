"""
howlo.services.leaderboard_service — Leaderboard Aggregator
============================================================

Ranks users within a period: total XP descending, ties broken by
achievement count descending.  A user with no in-period records has no
rank.  Aggregation failures surface as
:class:`~howlo.errors.RankingUnavailable`.
"""

from __future__ import annotations

import logging
from datetime import datetime

from howlo.engine.periods import Period, PeriodCalendar, PeriodPredicate
from howlo.engine.ranking import LeaderboardEntry, position_of
from howlo.services.record_store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_LIMIT = 10


def rank(
    store: RecordStore, predicate: PeriodPredicate, limit: int | None = None
) -> list[LeaderboardEntry]:
    """Ranked entries for the period, truncated to *limit* (``None`` = all)."""
    return store.aggregate(predicate, limit=limit)


def rank_of(store: RecordStore, user_id: str, predicate: PeriodPredicate) -> int | None:
    """1-based position of *user_id*, or ``None`` if absent this period."""
    return position_of(rank(store, predicate), user_id)


def get_leaderboard(
    store: RecordStore,
    calendar: PeriodCalendar,
    now: datetime,
    limit: int | None = DEFAULT_DISPLAY_LIMIT,
) -> tuple[Period, list[LeaderboardEntry]]:
    """The current period and its top *limit* entries.  Empty pre-launch."""
    period = calendar.classify(now)
    if not period.ranked:
        return period, []
    return period, rank(store, calendar.predicate_for(period), limit)


def get_user_rank(
    store: RecordStore, calendar: PeriodCalendar, user_id: str, now: datetime
) -> int | None:
    period = calendar.classify(now)
    if not period.ranked:
        return None
    return rank_of(store, user_id, calendar.predicate_for(period))


def period_winners(
    store: RecordStore, calendar: PeriodCalendar, period: Period, count: int = 3
) -> list[LeaderboardEntry]:
    """Top *count* entries of a (usually finished) period."""
    winners = rank(store, calendar.predicate_for(period), limit=count)
    logger.info("Winners for %s: %s", period.key, [w.user_id for w in winners])
    return winners
