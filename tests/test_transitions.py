"""
tests/test_transitions.py — Period Transition Orchestrator
===========================================================

Launch, launch-winner and monthly-winner announcements against the
in-memory store with a mock gateway.
"""

from __future__ import annotations

from dataclasses import replace

from conftest import local

from howlo.database.models import AnnouncementKind
from howlo.engine.grid import BINGO_CARD
from howlo.engine.scoring import Companion
from howlo.errors import PersistenceFailure
from howlo.services import transition_service
from howlo.services.achievement_service import record_achievement
from howlo.services.transition_service import run_period_transition_check


def _seed(store, calendar, user, n, day):
    for i in range(n):
        record_achievement(
            store, calendar, user, BINGO_CARD[i + 5].text, Companion(name="Jo"),
            "Meetup", local(*day, 10, i),
        )


def _channel_posts(gateway):
    return [c.args for c in gateway.post_channel_message.call_args_list]


class TestLaunchAnnouncement:
    def test_announced_once_on_launch_day(self, store, gateway, cfg, calendar):
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 3, 24, 9))
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 3, 24, 9, 5))
        assert gateway.post_channel_message.call_count == 1
        channel, content = _channel_posts(gateway)[0]
        assert channel == "C_ANNOUNCE"
        assert "Now Live" in content.text
        assert store.has_announcement(AnnouncementKind.LAUNCH, "launch")

    def test_not_before_launch_instant(self, store, gateway, cfg, calendar):
        late_launch = replace(cfg, launch_start=local(2025, 3, 24, 12))
        cal = type(calendar).from_config(late_launch)
        run_period_transition_check(store, gateway, late_launch, cal, local(2025, 3, 24, 8))
        gateway.post_channel_message.assert_not_called()

    def test_not_on_other_days(self, store, gateway, cfg, calendar):
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 3, 25, 9))
        gateway.post_channel_message.assert_not_called()

    def test_failed_post_is_retried(self, store, gateway, cfg, calendar):
        gateway.post_channel_message.side_effect = RuntimeError("slack down")
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 3, 24, 9)
        )
        assert not store.has_announcement(AnnouncementKind.LAUNCH, "launch")
        assert report.failed == [(AnnouncementKind.LAUNCH, "launch")]

        gateway.post_channel_message.side_effect = None
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 3, 24, 9, 5))
        assert store.has_announcement(AnnouncementKind.LAUNCH, "launch")

    def test_no_channel_configured(self, store, gateway, cfg, calendar):
        no_channel = replace(cfg, announcements_channel_id=None)
        run_period_transition_check(store, gateway, no_channel, calendar, local(2025, 3, 24, 9))
        assert not store.has_announcement(AnnouncementKind.LAUNCH, "launch")


class TestLaunchWinners:
    def test_top_three_announced_once(self, store, gateway, cfg, calendar):
        for i, user in enumerate(["U1", "U2", "U3", "U4"]):
            _seed(store, calendar, user, i + 1, day=(2025, 4, 10))
        now = local(2025, 5, 1, 9)
        run_period_transition_check(store, gateway, cfg, calendar, now)
        run_period_transition_check(store, gateway, cfg, calendar, now)

        assert gateway.post_channel_message.call_count == 1
        _, content = _channel_posts(gateway)[0]
        body = content.blocks[0]["text"]["text"]
        assert "Name U4" in body and "Name U2" in body and "Name U1" not in body
        assert "March 24 – April 30, 2025" in body
        assert store.has_announcement(AnnouncementKind.LAUNCH_WINNERS, "launch")

    def test_may_first_does_not_announce_april(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 1, day=(2025, 4, 10))
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 5, 1, 9))
        assert not store.has_announcement(AnnouncementKind.MONTHLY_WINNERS, "2025-04")

    def test_no_winners_marks_handled(self, store, gateway, cfg, calendar):
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 5, 1, 9)
        )
        gateway.post_channel_message.assert_not_called()
        assert (AnnouncementKind.LAUNCH_WINNERS, "launch") in report.handled

    def test_channel_failure_falls_back_to_dms(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 2, day=(2025, 4, 10))
        _seed(store, calendar, "U2", 1, day=(2025, 4, 10))
        gateway.post_channel_message.side_effect = RuntimeError("channel_not_found")
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 5, 1, 9))

        dm_users = [c.args[0] for c in gateway.post_direct_message.call_args_list]
        assert dm_users == ["U1", "U2"]
        assert store.has_announcement(AnnouncementKind.LAUNCH_WINNERS, "launch")

    def test_total_failure_not_recorded(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 1, day=(2025, 4, 10))
        gateway.post_channel_message.side_effect = RuntimeError("down")
        gateway.post_direct_message.side_effect = RuntimeError("down")
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 5, 1, 9))
        assert not store.has_announcement(AnnouncementKind.LAUNCH_WINNERS, "launch")


class TestMonthlyWinners:
    def test_june_first_announces_may(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 2, day=(2025, 5, 10))
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 6, 1, 9))
        assert store.has_announcement(AnnouncementKind.MONTHLY_WINNERS, "2025-05")
        _, content = _channel_posts(gateway)[0]
        assert "May 2025" in content.blocks[0]["text"]["text"]
        assert "June 2025" in content.blocks[0]["text"]["text"]

    def test_only_on_first_of_month(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 2, day=(2025, 5, 10))
        run_period_transition_check(store, gateway, cfg, calendar, local(2025, 6, 2, 9))
        assert not store.has_announcement(AnnouncementKind.MONTHLY_WINNERS, "2025-05")

    def test_idempotent(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 2, day=(2025, 5, 10))
        for minute in (0, 5, 10):
            run_period_transition_check(
                store, gateway, cfg, calendar, local(2025, 6, 1, 9, minute)
            )
        assert gateway.post_channel_message.call_count == 1

    def test_store_failure_does_not_raise(self, store, gateway, cfg, calendar, monkeypatch):
        def boom(*_args, **_kw):
            raise PersistenceFailure("down")
        monkeypatch.setattr(store, "has_announcement", boom)
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 6, 1, 9)
        )
        assert report.handled == []


class TestCollaboratorFailures:
    def test_name_lookup_failure_still_announces(self, store, gateway, cfg, calendar):
        _seed(store, calendar, "U1", 2, day=(2025, 4, 10))
        gateway.resolve_display_name.side_effect = ConnectionError("slack down")
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 5, 1, 9)
        )
        _, content = _channel_posts(gateway)[0]
        assert "<@U1>" in content.blocks[0]["text"]["text"]
        assert report.handled == [(AnnouncementKind.LAUNCH_WINNERS, "launch")]
        assert store.has_announcement(AnnouncementKind.LAUNCH_WINNERS, "launch")

    def test_unexpected_error_is_reported_and_retried(
        self, store, gateway, cfg, calendar, monkeypatch
    ):
        _seed(store, calendar, "U1", 2, day=(2025, 4, 10))

        def unreachable(*_args, **_kw):
            raise ConnectionError("slack down")
        monkeypatch.setattr(transition_service, "announce_winners", unreachable)
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 5, 1, 9)
        )
        assert report.failed == [(AnnouncementKind.LAUNCH_WINNERS, "launch")]
        assert not store.has_announcement(AnnouncementKind.LAUNCH_WINNERS, "launch")

        monkeypatch.undo()
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 5, 1, 9, 5)
        )
        assert report.handled == [(AnnouncementKind.LAUNCH_WINNERS, "launch")]

    def test_failing_check_does_not_stop_the_others(
        self, store, gateway, cfg, calendar, monkeypatch
    ):
        _seed(store, calendar, "U1", 2, day=(2025, 4, 10))

        def broken(*_args, **_kw):
            raise ConnectionError("slack down")
        monkeypatch.setattr(transition_service, "_check_launch", broken)
        report = run_period_transition_check(
            store, gateway, cfg, calendar, local(2025, 5, 1, 9)
        )
        assert report.handled == [(AnnouncementKind.LAUNCH_WINNERS, "launch")]
