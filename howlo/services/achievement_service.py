"""
howlo.services.achievement_service — Recording Accomplishments
===============================================================

``record_achievement`` is the scoring engine's entry point:

1. Validate (challenge, location, companion; optional duplicate rule).
2. Classify ``now`` into a period.
3. Insert the record with base XP, period stamped, no bonuses.
4. Rebuild the user's card for the period, including the new record.
5. Claim the HOWLO line bonus (+500) if a line is complete and the user
   has not yet earned it this period.
6. Claim the DENOUT full-board bonus (+1000) likewise.
7. Return the final record state.

Validation failures come back as ``SubmissionResult.rejection`` and leave
no trace.  Store failures raise :class:`~howlo.errors.PersistenceFailure`;
the base insert is committed before any bonus write is attempted, so a
failed bonus write never leaves a half-flagged record.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from howlo.constants import FULL_BOARD_BONUS_XP, LINE_BONUS_XP
from howlo.database.models import Accomplishment, CompanionKind
from howlo.engine.grid import BINGO_CARD, ChallengeSlot
from howlo.engine.periods import Period, PeriodCalendar, PeriodPredicate
from howlo.engine.scoring import (
    CardStatus,
    Companion,
    Rejection,
    SubmissionResult,
    base_xp_for,
    evaluate_card,
    validate_submission,
)
from howlo.errors import DuplicateCompanion, SubmissionRejected
from howlo.services.record_store import BonusKind, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Progress:
    """A user's standing on their card for the current period."""

    period: Period
    status: CardStatus
    total_xp: int
    achievement_count: int


def _check_duplicate_companion(
    store: RecordStore,
    user_id: str,
    companion: Companion,
    predicate: PeriodPredicate,
) -> None:
    if companion.kind == CompanionKind.WORKSPACE_USER:
        existing = store.find_one(
            predicate, user_id=user_id, companion_user_id=companion.user_id.strip()
        )
    else:
        existing = store.find_one(
            predicate, user_id=user_id, companion_name=(companion.name or "").strip()
        )
    if existing is not None:
        raise DuplicateCompanion(
            "You already tagged this person this period. Try meeting someone new!"
        )


def record_achievement(
    store: RecordStore,
    calendar: PeriodCalendar,
    user_id: str,
    challenge_text: str | None,
    companion: Companion,
    location: str | None,
    now: datetime,
    *,
    reject_duplicate_companion: bool = False,
    card: Sequence[ChallengeSlot] = BINGO_CARD,
) -> SubmissionResult:
    """Validate, persist and score one accomplishment.

    Raises
    ------
    PersistenceFailure
        If the record store fails.  Nothing is retried here.
    """
    period = calendar.classify(now)
    predicate = calendar.predicate_for(period)

    try:
        slot = validate_submission(challenge_text, companion, location, card)
        if reject_duplicate_companion:
            _check_duplicate_companion(store, user_id, companion, predicate)
    except SubmissionRejected as exc:
        logger.info("Submission from %s rejected: %s", user_id, exc.message)
        return SubmissionResult(rejection=Rejection(field=exc.field, message=exc.message))

    local = calendar.localize(now)
    workspace_user = companion.kind == CompanionKind.WORKSPACE_USER
    record = Accomplishment(
        user_id=user_id,
        challenge=slot.text,
        companion_kind=companion.kind.value,
        companion_user_id=companion.user_id.strip() if workspace_user else None,
        companion_name=None if workspace_user else (companion.name or "").strip(),
        location=(location or "").strip(),
        created_at=now,
        month=local.month - 1,
        year=local.year,
        period_key=period.key,
        xp=base_xp_for(period),
        line_bonus=False,
        full_board_bonus=False,
    )
    record_id = store.insert(record)
    logger.info(
        "Accomplishment %d recorded for %s (slot %d, period %s)",
        record_id, user_id, slot.index, period.key,
    )

    status = evaluate_card(store.find_by_user_and_period(user_id, predicate), card)

    line_awarded = False
    full_board_awarded = False
    if period.ranked:
        if status.has_line and store.find_one(
            predicate, user_id=user_id, line_bonus=True
        ) is None:
            line_awarded = store.award_bonus_if_unset(
                record_id, BonusKind.LINE, LINE_BONUS_XP, now
            )
        if status.full_board and store.find_one(
            predicate, user_id=user_id, full_board_bonus=True
        ) is None:
            full_board_awarded = store.award_bonus_if_unset(
                record_id, BonusKind.FULL_BOARD, FULL_BOARD_BONUS_XP, now
            )

    if line_awarded:
        logger.info("HOWLO! %s completed a line in %s", user_id, period.key)
    if full_board_awarded:
        logger.info("DENOUT! %s completed the full board in %s", user_id, period.key)

    final = store.get(record_id) if (line_awarded or full_board_awarded) else record
    return SubmissionResult(
        record=final,
        xp_awarded=final.xp if final is not None else record.xp,
        line_bonus_awarded=line_awarded,
        full_board_bonus_awarded=full_board_awarded,
        lines=status.lines,
    )


def get_progress(
    store: RecordStore,
    calendar: PeriodCalendar,
    user_id: str,
    now: datetime,
    card: Sequence[ChallengeSlot] = BINGO_CARD,
) -> Progress:
    """Card, lines, full-board flag and XP for *user_id* this period."""
    period = calendar.classify(now)
    records = store.find_by_user_and_period(user_id, calendar.predicate_for(period))
    return Progress(
        period=period,
        status=evaluate_card(records, card),
        total_xp=sum(r.xp for r in records),
        achievement_count=len(records),
    )
