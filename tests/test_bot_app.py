"""
tests/test_bot_app.py — Slash Command & Modal Handlers
=======================================================

Drives the handler functions directly with a :class:`HowloContext` built
on the in-memory store and a mock gateway; no Slack connection.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from conftest import local

from howlo.bot import app as bot_app
from howlo.bot.app import (
    HowloContext,
    after_submission,
    handle_command,
    handle_submission,
    register_handlers,
)
from howlo.bot.payloads import CommandKind, SlashCommand
from howlo.engine.grid import BINGO_CARD
from howlo.engine.leader_tracker import LeaderChangeTracker
from howlo.errors import RankingUnavailable
from howlo.services.blocks import SUBMISSION_CALLBACK_ID
from howlo.services.record_store import RecordStore

SECRET = "k" * 48


@pytest.fixture
def ctx(cfg, calendar, store, gateway):
    return HowloContext(
        cfg=cfg,
        calendar=calendar,
        store=store,
        gateway=gateway,
        tracker=LeaderChangeTracker(),
        card_token_secret=SECRET,
    )


def _command(kind, text=""):
    return SlashCommand(kind=kind, user_id="U1", channel_id="C1", trigger_id="T1", text=text)


def _view(slot=0, user="U2", name=None, location="Cafe"):
    return {
        "user": {"id": "U1"},
        "view": {
            "callback_id": SUBMISSION_CALLBACK_ID,
            "private_metadata": json.dumps({"channel_id": "C_GAME"}),
            "state": {"values": {
                "challenge_block": {"challenge_select": {"selected_option": {"value": str(slot)}}},
                "companion_user_block": {"companion_user_select": {"selected_user": user}},
                "companion_name_block": {"companion_name_input": {"value": name}},
                "location_block": {"location_input": {"value": location}},
            }},
        },
    }


def _ephemeral_text(gateway):
    channel, user, content = gateway.post_ephemeral_message.call_args.args
    assert (channel, user) == ("C1", "U1")
    return content.text


class TestHandleCommand:
    def test_record_opens_modal(self, ctx, gateway):
        handle_command(ctx, _command(CommandKind.RECORD), now=local(2025, 4, 2))
        trigger, form = gateway.open_input_form.call_args.args
        assert trigger == "T1"
        assert form["callback_id"] == SUBMISSION_CALLBACK_ID

    def test_modal_failure_replies(self, ctx, gateway):
        gateway.open_input_form.side_effect = RuntimeError("expired_trigger_id")
        handle_command(ctx, _command(CommandKind.RECORD), now=local(2025, 4, 2))
        assert "couldn't open" in _ephemeral_text(gateway)

    def test_leaderboard(self, ctx, gateway):
        handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        handle_command(ctx, _command(CommandKind.LEADERBOARD), now=local(2025, 4, 2, 10))
        content = gateway.post_ephemeral_message.call_args.args[2]
        assert "Name U1" in content.blocks[1]["text"]["text"]

    def test_leaderboard_name_lookup_failure(self, ctx, gateway):
        handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        gateway.resolve_display_name.side_effect = ConnectionError("slack down")
        handle_command(ctx, _command(CommandKind.LEADERBOARD), now=local(2025, 4, 2, 10))
        content = gateway.post_ephemeral_message.call_args.args[2]
        assert "<@U1>" in content.blocks[1]["text"]["text"]

    def test_leaderboard_unavailable(self, ctx, gateway):
        broken = MagicMock(spec=RecordStore)
        broken.aggregate.side_effect = RankingUnavailable("down")
        ctx.store = broken
        handle_command(ctx, _command(CommandKind.LEADERBOARD), now=local(2025, 4, 2))
        assert "unavailable" in _ephemeral_text(gateway)

    def test_rank(self, ctx, gateway):
        handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        handle_command(ctx, _command(CommandKind.RANK), now=local(2025, 4, 2, 10))
        assert "1st Place" in _ephemeral_text(gateway)

    def test_progress_includes_card_link(self, ctx, gateway):
        handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        handle_command(ctx, _command(CommandKind.PROGRESS), now=local(2025, 4, 2, 10))
        text = _ephemeral_text(gateway)
        assert "1 of 24 challenges" in text
        assert "https://howlo.example.com/api/card?token=" in text

    def test_rules(self, ctx, gateway):
        handle_command(ctx, _command(CommandKind.RULES))
        assert "How to Play HOWLO" in _ephemeral_text(gateway)

    def test_help_for_unknown(self, ctx, gateway):
        handle_command(ctx, _command(CommandKind.HELP, "dance"))
        assert "/howlo dance" in _ephemeral_text(gateway)


class TestHandleSubmission:
    def test_success_clears_modal(self, ctx, store):
        ack, submission, result = handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        assert ack == {"response_action": "clear"}
        assert submission.channel_id == "C_GAME"
        assert store.get(result.record.id).challenge == BINGO_CARD[0].text

    def test_free_slot_rejected(self, ctx):
        ack, _, result = handle_submission(ctx, _view(slot=12), now=local(2025, 4, 2))
        assert ack["response_action"] == "errors"
        assert "challenge_block" in ack["errors"]
        assert result is None

    def test_both_companions_rejected(self, ctx):
        ack, _, _ = handle_submission(ctx, _view(name="Bob"), now=local(2025, 4, 2))
        assert "companion_user_block" in ack["errors"]

    def test_blank_location_rejected(self, ctx):
        ack, _, _ = handle_submission(ctx, _view(location=" "), now=local(2025, 4, 2))
        assert "location_block" in ack["errors"]

    def test_after_submission_announces(self, ctx, gateway):
        _, submission, result = handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        after_submission(ctx, submission, result, now=local(2025, 4, 2, 9))
        assert gateway.post_channel_message.call_args_list[0].args[0] == "C_GAME"
        assert gateway.post_direct_message.call_args.args[0] == "U2"
        assert ctx.tracker.seeded

    def test_name_lookup_failure_still_notifies(self, ctx, gateway):
        gateway.resolve_display_name.side_effect = ConnectionError("slack down")
        _, submission, result = handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        after_submission(ctx, submission, result, now=local(2025, 4, 2, 9))
        user, content = gateway.post_direct_message.call_args.args
        assert user == "U2"
        assert "*<@U1>* (<@U1>)" in content.text
        assert ctx.tracker.seeded

    def test_tracker_fed_when_announcements_raise(self, ctx, monkeypatch):
        def unreachable(*_args, **_kw):
            raise ConnectionError("slack down")
        monkeypatch.setattr(bot_app, "announce_submission", unreachable)
        _, submission, result = handle_submission(ctx, _view(), now=local(2025, 4, 2, 9))
        after_submission(ctx, submission, result, now=local(2025, 4, 2, 9))
        assert ctx.tracker.seeded
        assert ctx.tracker.period_key == "launch"


class TestRegisterHandlers:
    def test_registers_command_and_view(self, ctx):
        app = MagicMock()
        register_handlers(app, ctx)
        app.command.assert_called_once_with("/howlo")
        app.view.assert_called_once_with(SUBMISSION_CALLBACK_ID)
