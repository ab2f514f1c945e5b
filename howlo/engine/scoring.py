"""
howlo.engine.scoring — Submission Validation & XP Arithmetic
=============================================================

Pure half of the scoring engine.  No Slack I/O, no DB I/O.

Pipeline stages (the I/O half lives in
:mod:`howlo.services.achievement_service`):

  validate → stamp period → insert (BASE_XP) → rebuild card
  → detect lines / full board → claim one-time bonuses → SubmissionResult
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from howlo.constants import BASE_XP, FULL_BOARD_BONUS_XP, LINE_BONUS_XP
from howlo.database.models import CompanionKind
from howlo.engine.completion import Line, detect_full_board, detect_lines
from howlo.engine.grid import (
    BINGO_CARD,
    ChallengeSlot,
    CompletionGrid,
    HasChallenge,
    all_non_free_slots,
    build_completion_grid,
    find_slot,
)
from howlo.errors import AmbiguousCompanion, InvalidChallenge, ValidationError

if TYPE_CHECKING:
    from howlo.database.models import Accomplishment
    from howlo.engine.periods import Period


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Companion:
    """Who the challenge was completed with.

    Exactly one of ``user_id`` (a workspace member) or ``name`` (free text,
    for people outside Slack) must be given.
    """

    user_id: str | None = None
    name: str | None = None

    @property
    def kind(self) -> CompanionKind:
        if self.user_id and self.user_id.strip():
            return CompanionKind.WORKSPACE_USER
        return CompanionKind.NAME


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Rejection:
    """Structured, user-correctable reason a submission was not recorded."""

    field: str
    message: str


@dataclass
class SubmissionResult:
    """Outcome of ``record_achievement``.

    On rejection only ``rejection`` is set.  ``xp_awarded`` is the final XP
    stored on the new record (base + any bonuses).
    """

    record: Accomplishment | None = None
    xp_awarded: int = 0
    line_bonus_awarded: bool = False
    full_board_bonus_awarded: bool = False
    lines: list[Line] = field(default_factory=list)
    rejection: Rejection | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None


@dataclass(frozen=True, slots=True)
class CardStatus:
    """Completion state of one user's card within one period."""

    grid: CompletionGrid
    lines: list[Line]
    full_board: bool

    @property
    def has_line(self) -> bool:
        return bool(self.lines)


# ---------------------------------------------------------------------------
# Stage 1: validation
# ---------------------------------------------------------------------------
def validate_submission(
    challenge_text: str | None,
    companion: Companion,
    location: str | None,
    card: Sequence[ChallengeSlot] = BINGO_CARD,
) -> ChallengeSlot:
    """Check a submission and return the slot it completes.

    Raises
    ------
    InvalidChallenge
        The text matches no non-free slot.
    ValidationError
        The location is missing or blank.
    AmbiguousCompanion
        Neither or both of a workspace user and a free-text name were given.
    """
    slot = find_slot(challenge_text or "", card)
    if slot is None:
        raise InvalidChallenge("Please choose a challenge from the card.")

    if not location or not location.strip():
        raise ValidationError("Please enter an event or location.")

    has_user = bool(companion.user_id and companion.user_id.strip())
    has_name = bool(companion.name and companion.name.strip())
    if has_user == has_name:
        message = (
            "Please either select a workspace member or type a name, not both."
            if has_user else "Please select a user or enter a name."
        )
        raise AmbiguousCompanion(message)

    return slot


# ---------------------------------------------------------------------------
# Stage 2: card evaluation
# ---------------------------------------------------------------------------
def evaluate_card(
    records: Iterable[HasChallenge],
    card: Sequence[ChallengeSlot] = BINGO_CARD,
) -> CardStatus:
    grid = build_completion_grid(records, card)
    return CardStatus(
        grid=grid,
        lines=detect_lines(grid),
        full_board=detect_full_board(grid, all_non_free_slots(card)),
    )


# ---------------------------------------------------------------------------
# Stage 3: XP arithmetic
# ---------------------------------------------------------------------------
def base_xp_for(period: Period) -> int:
    """Pre-launch submissions fill the card but earn nothing."""
    return BASE_XP if period.ranked else 0


def total_xp(
    base: int, *, line_bonus: bool = False, full_board_bonus: bool = False
) -> int:
    """Bonuses stack on top of the base: at most 100 + 500 + 1000."""
    xp = base
    if line_bonus:
        xp += LINE_BONUS_XP
    if full_board_bonus:
        xp += FULL_BOARD_BONUS_XP
    return xp
