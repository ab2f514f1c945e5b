"""
tests/test_scoring.py — Submission Validation & XP Arithmetic
==============================================================
"""

from __future__ import annotations

import pytest

from howlo.constants import BASE_XP, format_rank, ordinal
from howlo.database.models import CompanionKind
from howlo.engine.grid import BINGO_CARD, FREE_SLOT_TEXT
from howlo.engine.periods import LAUNCH_KEY, PRE_LAUNCH_KEY, Period, Regime
from howlo.engine.scoring import (
    Companion,
    base_xp_for,
    evaluate_card,
    total_xp,
    validate_submission,
)
from howlo.errors import AmbiguousCompanion, InvalidChallenge, ValidationError

CHALLENGE = BINGO_CARD[0].text


class TestValidateSubmission:
    def test_valid_returns_slot(self):
        slot = validate_submission(CHALLENGE, Companion(user_id="U2"), "Coffee Chat")
        assert slot.index == 0

    def test_unknown_challenge(self):
        with pytest.raises(InvalidChallenge) as exc:
            validate_submission("Not a challenge", Companion(user_id="U2"), "Here")
        assert exc.value.field == "challenge_block"

    def test_free_slot_is_not_submittable(self):
        with pytest.raises(InvalidChallenge):
            validate_submission(FREE_SLOT_TEXT, Companion(user_id="U2"), "Here")

    @pytest.mark.parametrize("location", [None, "", "   "])
    def test_blank_location(self, location):
        with pytest.raises(ValidationError) as exc:
            validate_submission(CHALLENGE, Companion(user_id="U2"), location)
        assert exc.value.field == "location_block"

    def test_no_companion(self):
        with pytest.raises(AmbiguousCompanion):
            validate_submission(CHALLENGE, Companion(), "Here")

    def test_whitespace_name_counts_as_none(self):
        with pytest.raises(AmbiguousCompanion):
            validate_submission(CHALLENGE, Companion(name="  "), "Here")

    def test_both_companions(self):
        with pytest.raises(AmbiguousCompanion):
            validate_submission(CHALLENGE, Companion(user_id="U2", name="Jo"), "Here")

    def test_companion_kind(self):
        assert Companion(user_id="U2").kind == CompanionKind.WORKSPACE_USER
        assert Companion(name="Jo").kind == CompanionKind.NAME

    def test_blank_user_id_is_a_named_companion(self):
        assert Companion(user_id="  ", name="Bob").kind == CompanionKind.NAME


class TestXp:
    def test_base_xp_ranked(self):
        assert base_xp_for(Period(Regime.EXTENDED_LAUNCH, LAUNCH_KEY)) == BASE_XP

    def test_base_xp_pre_launch(self):
        assert base_xp_for(Period(Regime.PRE_LAUNCH, PRE_LAUNCH_KEY)) == 0

    def test_bonuses_are_additive(self):
        assert total_xp(100) == 100
        assert total_xp(100, line_bonus=True) == 600
        assert total_xp(100, line_bonus=True, full_board_bonus=True) == 1600


class TestEvaluateCard:
    def test_empty(self):
        status = evaluate_card([])
        assert not status.has_line and not status.full_board


class TestFormatRank:
    @pytest.mark.parametrize(
        ("n", "expected"),
        [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
         (12, "12th"), (13, "13th"), (21, "21st"), (102, "102nd"), (111, "111th")],
    )
    def test_ordinal(self, n, expected):
        assert ordinal(n) == expected

    def test_podium(self):
        assert format_rank(1) == "\U0001f947 1st Place"
        assert format_rank(3) == "\U0001f949 3rd Place"

    def test_beyond_podium(self):
        assert format_rank(12) == "\U0001f3c6 12th Place"

    def test_unranked(self):
        assert format_rank(None) == "Not ranked yet"
