"""
tests/test_achievement_service.py — Recording & Scoring End-to-End
===================================================================

Runs ``record_achievement`` against the in-memory SQLite store.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import local, slot_texts

from howlo.constants import BASE_XP, FULL_BOARD_BONUS_XP, LINE_BONUS_XP
from howlo.database.models import Accomplishment, CompanionKind
from howlo.engine.completion import Line, LineKind
from howlo.engine.grid import BINGO_CARD
from howlo.engine.periods import PRE_LAUNCH_KEY
from howlo.engine.scoring import Companion
from howlo.errors import PersistenceFailure
from howlo.services.achievement_service import get_progress, record_achievement
from howlo.services.record_store import RecordStore

USER = "U_ALICE"
FRIEND = Companion(user_id="U_BOB")

ROW_0 = [BINGO_CARD[i].text for i in range(5)]


def _submit(store, calendar, text, when, *, user=USER, companion=FRIEND, **kw):
    return record_achievement(
        store, calendar, user, text, companion, "SD Startup Week", when, **kw
    )


def _submit_all(store, calendar, texts, day=(2025, 4, 2), **kw):
    return [
        _submit(store, calendar, text, local(*day, 10, i), **kw)
        for i, text in enumerate(texts)
    ]


class TestRecordAchievement:
    def test_basic_record(self, store, calendar):
        result = _submit(store, calendar, ROW_0[0], local(2025, 4, 2, 9))
        assert result.accepted
        assert result.xp_awarded == BASE_XP
        assert not result.line_bonus_awarded
        record = store.get(result.record.id)
        assert record.challenge == ROW_0[0]
        assert record.period_key == "launch"
        assert (record.month, record.year) == (3, 2025)
        assert record.companion_user_id == "U_BOB"

    def test_trimmed_inputs_are_stored(self, store, calendar):
        result = record_achievement(
            store, calendar, USER, f"  {ROW_0[1]} ", Companion(name=" Jane "),
            "  Coffee Chat ", local(2025, 4, 2, 9),
        )
        record = store.get(result.record.id)
        assert record.challenge == ROW_0[1]
        assert record.companion_name == "Jane"
        assert record.location == "Coffee Chat"

    def test_blank_user_select_stores_named_companion(self, store, calendar):
        result = record_achievement(
            store, calendar, USER, ROW_0[2], Companion(user_id="  ", name="Bob"),
            "Meetup", local(2025, 4, 2, 9),
        )
        record = store.get(result.record.id)
        assert record.companion_kind == CompanionKind.NAME
        assert record.companion_user_id is None
        assert record.companion_name == "Bob"
        assert record.companion_mention == "@Bob"

    def test_scenario_a_first_line_awards_bonus_once(self, store, calendar):
        results = _submit_all(store, calendar, ROW_0)
        assert [r.line_bonus_awarded for r in results] == [False] * 4 + [True]
        assert results[-1].xp_awarded == BASE_XP + LINE_BONUS_XP == 600
        assert Line(LineKind.ROW, 0) in results[-1].lines

        sixth = _submit(store, calendar, BINGO_CARD[5].text, local(2025, 4, 3, 9))
        assert not sixth.line_bonus_awarded
        assert sixth.xp_awarded == BASE_XP

    def test_second_line_same_period_no_bonus(self, store, calendar):
        _submit_all(store, calendar, ROW_0)
        column_0 = [BINGO_CARD[i].text for i in (5, 10, 15, 20)]
        results = _submit_all(store, calendar, column_0, day=(2025, 4, 3))
        assert results[-1].lines  # column 0 is now complete too
        assert not any(r.line_bonus_awarded for r in results)

    def test_repeat_submission_of_completed_slot(self, store, calendar):
        _submit_all(store, calendar, ROW_0)
        again = _submit(store, calendar, ROW_0[0], local(2025, 4, 5, 9))
        assert again.accepted
        assert not again.line_bonus_awarded
        assert again.xp_awarded == BASE_XP

    def test_scenario_b_full_board(self, store, calendar):
        results = _submit_all(store, calendar, slot_texts())
        last = results[-1]
        assert last.full_board_bonus_awarded
        # Filling the card in order earns the line bonus early on
        assert not last.line_bonus_awarded
        assert last.xp_awarded == BASE_XP + FULL_BOARD_BONUS_XP
        assert sum(r.line_bonus_awarded for r in results) == 1
        assert sum(r.full_board_bonus_awarded for r in results) == 1

        pred = calendar.predicate_for(calendar.launch_period())
        total = sum(r.xp for r in store.find_by_user_and_period(USER, pred))
        assert total == 24 * BASE_XP + LINE_BONUS_XP + FULL_BOARD_BONUS_XP

    def test_both_bonuses_on_one_record(self, store, calendar):
        # 23 slots recorded without scoring, so no bonus is held yet
        for i, text in enumerate(slot_texts()[:-1]):
            store.insert(Accomplishment(
                user_id=USER, challenge=text, companion_kind="name",
                companion_name="Jo", location="x", created_at=local(2025, 4, 1, 9, i),
                month=3, year=2025, period_key="launch", xp=BASE_XP,
                line_bonus=False, full_board_bonus=False,
            ))
        result = _submit(store, calendar, slot_texts()[-1], local(2025, 4, 2, 9))
        assert result.line_bonus_awarded and result.full_board_bonus_awarded
        assert result.xp_awarded == 1600

    def test_bonus_available_again_next_period(self, store, calendar):
        _submit_all(store, calendar, ROW_0)
        may = _submit_all(store, calendar, ROW_0, day=(2025, 5, 3))
        assert may[-1].line_bonus_awarded
        assert may[-1].record.period_key == "2025-05"

    def test_users_are_independent(self, store, calendar):
        _submit_all(store, calendar, ROW_0)
        bob = _submit_all(store, calendar, ROW_0, user="U_BOB",
                          companion=Companion(user_id="U_ALICE"))
        assert bob[-1].line_bonus_awarded


class TestRejections:
    def test_invalid_challenge_writes_nothing(self, store, calendar):
        result = _submit(store, calendar, "Not on the card", local(2025, 4, 2))
        assert not result.accepted
        assert result.rejection.field == "challenge_block"
        assert store.find_one() is None

    def test_missing_location(self, store, calendar):
        result = record_achievement(
            store, calendar, USER, ROW_0[0], FRIEND, "  ", local(2025, 4, 2)
        )
        assert result.rejection.field == "location_block"
        assert store.find_one() is None

    def test_ambiguous_companion(self, store, calendar):
        result = _submit(store, calendar, ROW_0[0], local(2025, 4, 2),
                         companion=Companion(user_id="U_BOB", name="Bob"))
        assert result.rejection.field == "companion_user_block"

    def test_duplicate_companion_allowed_by_default(self, store, calendar):
        _submit(store, calendar, ROW_0[0], local(2025, 4, 2, 9))
        assert _submit(store, calendar, ROW_0[1], local(2025, 4, 2, 10)).accepted

    def test_duplicate_companion_rejected_when_enabled(self, store, calendar):
        _submit(store, calendar, ROW_0[0], local(2025, 4, 2, 9),
                reject_duplicate_companion=True)
        again = _submit(store, calendar, ROW_0[1], local(2025, 4, 2, 10),
                        reject_duplicate_companion=True)
        assert again.rejection.field == "companion_user_block"

    def test_persistence_failure_propagates(self, calendar):
        broken = MagicMock(spec=RecordStore)
        broken.insert.side_effect = PersistenceFailure("db down")
        with pytest.raises(PersistenceFailure):
            _submit(broken, calendar, ROW_0[0], local(2025, 4, 2))
        broken.award_bonus_if_unset.assert_not_called()


class TestPreLaunch:
    def test_recorded_without_xp_or_bonus(self, store, calendar):
        results = _submit_all(store, calendar, ROW_0, day=(2025, 3, 20))
        assert all(r.accepted for r in results)
        assert all(r.xp_awarded == 0 for r in results)
        assert not any(r.line_bonus_awarded for r in results)
        assert results[-1].record.period_key == PRE_LAUNCH_KEY

    def test_pre_launch_records_do_not_count_at_launch(self, store, calendar):
        _submit_all(store, calendar, ROW_0[:4], day=(2025, 3, 20))
        result = _submit(store, calendar, ROW_0[4], local(2025, 3, 24, 12))
        assert not result.line_bonus_awarded


class TestGetProgress:
    def test_progress(self, store, calendar):
        _submit_all(store, calendar, ROW_0)
        progress = get_progress(store, calendar, USER, local(2025, 4, 10))
        assert progress.total_xp == 5 * BASE_XP + LINE_BONUS_XP
        assert progress.achievement_count == 5
        assert progress.status.has_line
        assert not progress.status.full_board

    def test_progress_resets_with_period(self, store, calendar):
        _submit_all(store, calendar, ROW_0)
        progress = get_progress(store, calendar, USER, local(2025, 5, 2))
        assert progress.achievement_count == 0
        assert progress.period.key == "2025-05"
