"""
howlo.services.announcement_service — Slack Announcements
==========================================================

Everything the game says in public or by DM after the fact: the
per-submission post, the companion DM, HOWLO / DENOUT celebrations,
leader-change broadcasts and period-boundary announcements.

Sends go through a :class:`~howlo.services.gateway.MessagingGateway`.
A failed send is logged and reported back as ``False``; it never undoes
a recorded accomplishment.  Callers that keep "already sent" flags must
only set them when the send reported success.

Message layout lives in :mod:`howlo.services.blocks`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from howlo.database.models import CompanionKind
from howlo.engine.leader_tracker import LeaderChange, LeaderChangeTracker
from howlo.engine.periods import Period, PeriodCalendar, Regime
from howlo.engine.ranking import LeaderboardEntry
from howlo.errors import RankingUnavailable
from howlo.services.blocks import (
    build_accomplishment_message,
    build_companion_notification,
    build_full_board_celebration,
    build_launch_announcement,
    build_leader_change,
    build_line_celebration,
    build_winner_dm,
    build_winners_announcement,
)
from howlo.services.gateway import MessageContent, MessagingGateway, display_name

if TYPE_CHECKING:
    from howlo.config import HowloConfig
    from howlo.engine.scoring import SubmissionResult
    from howlo.services.record_store import RecordStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sending helper
# ---------------------------------------------------------------------------
def _send(what: str, send: Callable[..., None], *args: object) -> bool:
    try:
        send(*args)
    except Exception:
        logger.exception("Failed to send %s", what)
        return False
    return True


def _resolve_names(gateway: MessagingGateway, user_ids: Sequence[str]) -> dict[str, str]:
    return {uid: display_name(gateway, uid) for uid in user_ids}


# ---------------------------------------------------------------------------
# Per-submission
# ---------------------------------------------------------------------------
def announce_submission(
    gateway: MessagingGateway,
    *,
    user_id: str,
    channel_id: str,
    result: SubmissionResult,
    card_url: str | None = None,
) -> None:
    """Post the accomplishment, DM a workspace companion, celebrate bonuses."""
    record = result.record
    if record is None:
        return

    _send(
        f"accomplishment post for {user_id}",
        gateway.post_channel_message,
        channel_id,
        build_accomplishment_message(
            user_id, record.challenge, record.companion_mention, record.location,
            result.xp_awarded,
        ),
    )

    if record.companion_kind == CompanionKind.WORKSPACE_USER and record.companion_user_id:
        tagger_name = display_name(gateway, user_id)
        _send(
            f"companion DM to {record.companion_user_id}",
            gateway.post_direct_message,
            record.companion_user_id,
            build_companion_notification(
                tagger_name, user_id, record.challenge, record.location, channel_id
            ),
        )

    if result.line_bonus_awarded:
        _send(
            f"HOWLO celebration for {user_id}",
            gateway.post_channel_message,
            channel_id,
            build_line_celebration(user_id, card_url),
        )
    if result.full_board_bonus_awarded:
        _send(
            f"DENOUT celebration for {user_id}",
            gateway.post_channel_message,
            channel_id,
            build_full_board_celebration(user_id, card_url),
        )


# ---------------------------------------------------------------------------
# Leader changes
# ---------------------------------------------------------------------------
def announce_leader_change(
    gateway: MessagingGateway,
    cfg: HowloConfig,
    calendar: PeriodCalendar,
    period: Period,
    change: LeaderChange,
    fallback_channel_id: str | None = None,
) -> bool:
    target = cfg.announcements_channel_id or fallback_channel_id
    if not target:
        logger.warning("No channel for leader-change announcement in %s", period.key)
        return False

    if period.regime == Regime.EXTENDED_LAUNCH:
        footer = (
            f"We're in the launch period! The leaderboard runs "
            f"{calendar.describe(period)}. Check your standing with `/howlo leaderboard`"
        )
    else:
        footer = "View the full monthly leaderboard with `/howlo leaderboard`"

    content = build_leader_change(
        cfg.game_name,
        display_name(gateway, change.new_leader.user_id),
        change.new_leader.total_xp,
        display_name(gateway, change.previous_leader.user_id),
        footer,
    )
    return _send(f"leader change in {period.key}", gateway.post_channel_message, target, content)


def check_leader_change(
    store: RecordStore,
    gateway: MessagingGateway,
    cfg: HowloConfig,
    calendar: PeriodCalendar,
    tracker: LeaderChangeTracker,
    now: datetime,
    fallback_channel_id: str | None = None,
) -> LeaderChange | None:
    """Feed the current top-N to *tracker* and announce a new #1.

    Aggregation failures are logged and skipped; the tracker is left as is.
    """
    period = calendar.classify(now)
    if not period.ranked:
        return None
    try:
        board = store.aggregate(calendar.predicate_for(period), limit=tracker.top_n)
    except RankingUnavailable:
        logger.warning("Skipping leader-change check: leaderboard unavailable")
        return None

    change = tracker.check(period.key, board)
    if change is not None:
        logger.info(
            "New leader in %s: %s (was %s)",
            period.key, change.new_leader.user_id, change.previous_leader.user_id,
        )
        announce_leader_change(gateway, cfg, calendar, period, change, fallback_channel_id)
    return change


# ---------------------------------------------------------------------------
# Period boundaries
# ---------------------------------------------------------------------------
def announce_launch(
    gateway: MessagingGateway, cfg: HowloConfig, calendar: PeriodCalendar
) -> bool:
    if not cfg.announcements_channel_id:
        logger.warning("No announcements channel configured; launch not announced")
        return False
    reset = calendar.first_monthly_reset_start
    content = build_launch_announcement(
        cfg.game_name,
        calendar.describe(calendar.launch_period()),
        f"{reset:%B} {reset.day}, {reset.year}",
    )
    return _send("launch announcement", gateway.post_channel_message,
                 cfg.announcements_channel_id, content)


def announce_winners(
    gateway: MessagingGateway,
    cfg: HowloConfig,
    calendar: PeriodCalendar,
    period: Period,
    winners: Sequence[LeaderboardEntry],
    next_period: Period,
) -> bool:
    """Post the final standings; if the channel post fails (or no channel
    is configured) DM each winner instead.

    Returns True if the channel post or at least one DM went out.
    """
    period_label = calendar.describe(period)
    next_label = calendar.describe(next_period)
    names = _resolve_names(gateway, [w.user_id for w in winners])

    if cfg.announcements_channel_id:
        content = build_winners_announcement(
            cfg.game_name, period_label, winners, names, next_label
        )
        if _send(f"{period.key} winners announcement", gateway.post_channel_message,
                 cfg.announcements_channel_id, content):
            return True
    else:
        logger.warning("No announcements channel configured for %s winners", period.key)

    delivered = 0
    for position, entry in enumerate(winners, start=1):
        dm: MessageContent = build_winner_dm(
            cfg.game_name, position, entry.total_xp, period_label, next_label
        )
        if _send(f"winner DM to {entry.user_id}", gateway.post_direct_message,
                 entry.user_id, dm):
            delivered += 1
    logger.info("Delivered %d/%d winner DMs for %s", delivered, len(winners), period.key)
    return delivered > 0
