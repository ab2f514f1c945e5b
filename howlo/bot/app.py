"""
howlo.bot.app — Slack Bolt handlers
====================================

Registers the ``/howlo`` command and the record-modal submission on a
``slack_bolt.App``.  The real work lives in plain functions
(:func:`handle_command`, :func:`handle_submission`) that take a
:class:`HowloContext`, so they can be driven without a live Slack
connection.

``/howlo``               open the record modal
``/howlo leaderboard``   current period's top N
``/howlo rank``          your position
``/howlo progress``      card status + link
``/howlo card``          link to your card
``/howlo rules``         how to play
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from slack_bolt import App

from howlo.bot.payloads import (
    AchievementSubmission,
    CommandKind,
    PayloadError,
    SlashCommand,
)
from howlo.config import HowloConfig
from howlo.engine.grid import all_non_free_slots
from howlo.engine.leader_tracker import LeaderChangeTracker
from howlo.engine.periods import PeriodCalendar
from howlo.errors import PersistenceFailure, RankingUnavailable
from howlo.services.achievement_service import get_progress, record_achievement
from howlo.services.announcement_service import announce_submission, check_leader_change
from howlo.services.blocks import (
    CHALLENGE_BLOCK,
    SUBMISSION_CALLBACK_ID,
    build_card_message,
    build_error_message,
    build_help_message,
    build_leaderboard,
    build_progress_message,
    build_rank_message,
    build_rejection_errors,
    build_rules_message,
    build_submission_modal,
)
from howlo.services.card_token import card_url, issue_card_token
from howlo.services.gateway import MessageContent, MessagingGateway, display_name
from howlo.services.leaderboard_service import get_leaderboard, get_user_rank
from howlo.services.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class HowloContext:
    """Everything a handler needs, built once at startup."""

    cfg: HowloConfig
    calendar: PeriodCalendar
    store: RecordStore
    gateway: MessagingGateway
    tracker: LeaderChangeTracker
    card_token_secret: str

    def card_link(self, user_id: str) -> str | None:
        if not self.cfg.app_base_url:
            return None
        token = issue_card_token(user_id, self.card_token_secret, self.cfg.card_token_ttl_seconds)
        return card_url(self.cfg.app_base_url, token)


# ---------------------------------------------------------------------------
# Slash command
# ---------------------------------------------------------------------------
def _reply(ctx: HowloContext, command: SlashCommand, content: MessageContent) -> None:
    try:
        ctx.gateway.post_ephemeral_message(command.channel_id, command.user_id, content)
    except Exception:
        logger.exception("Failed to reply to /howlo %s for %s", command.kind, command.user_id)


def handle_command(ctx: HowloContext, command: SlashCommand, now: datetime | None = None) -> None:
    now = now or datetime.now(UTC)
    logger.info("/howlo %s from %s", command.kind, command.user_id)

    if command.kind == CommandKind.RECORD:
        try:
            ctx.gateway.open_input_form(
                command.trigger_id, build_submission_modal(command.channel_id)
            )
        except Exception:
            logger.exception("Failed to open record modal for %s", command.user_id)
            _reply(ctx, command, build_error_message(
                "Sorry, I couldn't open the form. Please try `/howlo` again."
            ))
        return

    if command.kind == CommandKind.LEADERBOARD:
        try:
            period, entries = get_leaderboard(
                ctx.store, ctx.calendar, now, ctx.cfg.leaderboard_size
            )
        except RankingUnavailable:
            _reply(ctx, command, build_error_message("The leaderboard is unavailable right now."))
            return
        names = {e.user_id: display_name(ctx.gateway, e.user_id) for e in entries}
        _reply(ctx, command, build_leaderboard(
            ctx.cfg.game_name, ctx.calendar.describe(period), entries, names
        ))
        return

    if command.kind == CommandKind.RANK:
        try:
            rank = get_user_rank(ctx.store, ctx.calendar, command.user_id, now)
        except RankingUnavailable:
            _reply(ctx, command, build_error_message("Your rank is unavailable right now."))
            return
        period = ctx.calendar.classify(now)
        _reply(ctx, command, build_rank_message(rank, ctx.calendar.describe(period)))
        return

    if command.kind == CommandKind.PROGRESS:
        try:
            progress = get_progress(ctx.store, ctx.calendar, command.user_id, now)
        except PersistenceFailure:
            _reply(ctx, command, build_error_message("Your progress is unavailable right now."))
            return
        grid = progress.status.grid
        completed = sum(grid[slot.row][slot.col] for slot in all_non_free_slots())
        _reply(ctx, command, build_progress_message(
            ctx.calendar.describe(progress.period),
            progress.total_xp,
            completed,
            len(progress.status.lines),
            progress.status.full_board,
            ctx.card_link(command.user_id),
        ))
        return

    if command.kind == CommandKind.CARD:
        link = ctx.card_link(command.user_id)
        if link is None:
            _reply(ctx, command, build_error_message("Card view is not configured."))
        else:
            _reply(ctx, command, build_card_message(link))
        return

    if command.kind == CommandKind.RULES:
        _reply(ctx, command, build_rules_message(ctx.cfg.game_name))
        return

    _reply(ctx, command, build_help_message(command.text))


# ---------------------------------------------------------------------------
# Modal submission
# ---------------------------------------------------------------------------
def handle_submission(
    ctx: HowloContext, body: dict[str, Any], now: datetime | None = None
) -> tuple[dict[str, Any], AchievementSubmission | None, Any]:
    """Parse and record one modal submission.

    Returns ``(ack_payload, submission, result)``.  ``ack_payload`` is what
    the view listener must ``ack`` with; ``result`` is ``None`` unless the
    accomplishment was recorded.
    """
    now = now or datetime.now(UTC)
    try:
        submission = AchievementSubmission.from_view(body)
    except PayloadError as exc:
        logger.warning("Malformed submission: %s", exc)
        return build_rejection_errors(exc.field, str(exc)), None, None

    try:
        result = record_achievement(
            ctx.store,
            ctx.calendar,
            submission.user_id,
            submission.challenge,
            submission.companion,
            submission.location,
            now,
            reject_duplicate_companion=ctx.cfg.reject_duplicate_companion,
        )
    except PersistenceFailure:
        return build_rejection_errors(
            CHALLENGE_BLOCK, "Failed to save your accomplishment. Please try again."
        ), submission, None

    if result.rejection is not None:
        return build_rejection_errors(
            result.rejection.field, result.rejection.message
        ), submission, None

    return {"response_action": "clear"}, submission, result


def after_submission(
    ctx: HowloContext, submission: AchievementSubmission, result: Any, now: datetime | None = None
) -> None:
    """Public follow-up once the modal has been acknowledged."""
    now = now or datetime.now(UTC)
    try:
        announce_submission(
            ctx.gateway,
            user_id=submission.user_id,
            channel_id=submission.channel_id,
            result=result,
            card_url=ctx.card_link(submission.user_id),
        )
    except Exception:
        logger.exception("Submission announcements failed for %s", submission.user_id)
    check_leader_change(
        ctx.store, ctx.gateway, ctx.cfg, ctx.calendar, ctx.tracker, now,
        fallback_channel_id=submission.channel_id,
    )


# ---------------------------------------------------------------------------
# Bolt wiring
# ---------------------------------------------------------------------------
def register_handlers(app: App, ctx: HowloContext) -> None:
    @app.command("/howlo")
    def howlo_command(ack, body):
        ack()
        try:
            command = SlashCommand.from_payload(body)
        except PayloadError:
            logger.exception("Unparseable /howlo payload")
            return
        handle_command(ctx, command)

    @app.view(SUBMISSION_CALLBACK_ID)
    def record_submission(ack, body):
        payload, submission, result = handle_submission(ctx, body)
        ack(**payload)
        if result is not None:
            after_submission(ctx, submission, result)


def create_app(ctx: HowloContext, token: str, signing_secret: str | None = None) -> App:
    app = App(token=token, signing_secret=signing_secret)
    register_handlers(app, ctx)
    return app
