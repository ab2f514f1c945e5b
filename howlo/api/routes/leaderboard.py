"""
howlo.api.routes.leaderboard — Public leaderboard
==================================================
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from howlo.api.deps import get_calendar, get_store
from howlo.engine.periods import PeriodCalendar
from howlo.errors import RankingUnavailable
from howlo.services.leaderboard_service import get_leaderboard
from howlo.services.record_store import RecordStore

router = APIRouter(tags=["leaderboard"])


@router.get("/leaderboard")
def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    store: RecordStore = Depends(get_store),
    calendar: PeriodCalendar = Depends(get_calendar),
):
    try:
        period, entries = get_leaderboard(store, calendar, datetime.now(UTC), limit)
    except RankingUnavailable:
        raise HTTPException(503, "Leaderboard is unavailable right now") from None

    return {
        "period": {
            "key": period.key,
            "regime": str(period.regime),
            "label": calendar.describe(period),
        },
        "entries": [
            {
                "rank": e.rank,
                "user_id": e.user_id,
                "total_xp": e.total_xp,
                "achievement_count": e.achievement_count,
                "line_bonus": e.has_line_bonus,
                "full_board_bonus": e.has_full_board_bonus,
            }
            for e in entries
        ],
    }
