"""
howlo.api.routes.card — Read-only card view
============================================

``GET /api/card?token=…`` — the link handed out by ``/howlo progress``.
No login: the signed token names the user and expires after an hour.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from howlo.api.deps import get_calendar, get_card_token_secret, get_config, get_store
from howlo.config import HowloConfig
from howlo.database.engine import run_db
from howlo.engine.grid import BINGO_CARD
from howlo.engine.periods import PeriodCalendar
from howlo.errors import PersistenceFailure
from howlo.services.achievement_service import get_progress
from howlo.services.card_token import verify_card_token
from howlo.services.record_store import RecordStore

router = APIRouter(tags=["card"])


@router.get("/card")
async def get_card(
    token: str = Query(..., min_length=1),
    cfg: HowloConfig = Depends(get_config),
    store: RecordStore = Depends(get_store),
    calendar: PeriodCalendar = Depends(get_calendar),
    secret: str = Depends(get_card_token_secret),
):
    """The token holder's card for the current period."""
    user_id = verify_card_token(token, secret)
    if user_id is None:
        raise HTTPException(401, "Invalid or expired card link")

    try:
        progress = await run_db(get_progress, store, calendar, user_id, datetime.now(UTC))
    except PersistenceFailure:
        raise HTTPException(503, "Card is unavailable right now") from None

    grid = progress.status.grid
    return {
        "game": cfg.game_name,
        "user_id": user_id,
        "period": {
            "key": progress.period.key,
            "label": calendar.describe(progress.period),
        },
        "slots": [
            {
                "index": slot.index,
                "text": slot.text,
                "free": slot.free,
                "done": grid[slot.row][slot.col],
            }
            for slot in BINGO_CARD
        ],
        "lines": [
            {"kind": str(line.kind), "index": line.index}
            for line in progress.status.lines
        ],
        "full_board": progress.status.full_board,
        "total_xp": progress.total_xp,
        "achievement_count": progress.achievement_count,
    }
