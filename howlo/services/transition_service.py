"""
howlo.services.transition_service — Period Transition Checks
=============================================================

Run periodically (see :mod:`howlo.bot.scheduler`).  Three independent
checks, each guarded by a persisted ``(kind, period_key)`` flag so every
boundary is announced at most once across restarts and concurrent
instances:

1. **Launch** — on launch day, once ``launch_start`` has passed.
2. **Launch winners** — on the first-reset day, once the reset instant
   has passed: top N of the extended launch.
3. **Monthly winners** — on the 1st of a month, when the previous day
   was in a monthly period: top N of that month.

A flag is written only after the announcement reported success.  A
boundary with no ranked users is marked handled without posting.  A
failure in one check is logged and never blocks the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from howlo.config import HowloConfig
from howlo.database.models import AnnouncementKind
from howlo.engine.periods import LAUNCH_KEY, Period, PeriodCalendar, Regime
from howlo.services.announcement_service import announce_launch, announce_winners
from howlo.services.gateway import MessagingGateway
from howlo.services.leaderboard_service import period_winners
from howlo.services.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class TransitionReport:
    """Which boundaries this run handled (flag newly written)."""

    handled: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


def _announce_period_winners(
    store: RecordStore,
    gateway: MessagingGateway,
    cfg: HowloConfig,
    calendar: PeriodCalendar,
    kind: AnnouncementKind,
    period: Period,
    next_period: Period,
    now: datetime,
    report: TransitionReport,
) -> None:
    if store.has_announcement(kind, period.key):
        return

    try:
        winners = period_winners(store, calendar, period, cfg.winners_count)
        delivered = bool(winners) and announce_winners(
            gateway, cfg, calendar, period, winners, next_period
        )
    except Exception:
        logger.exception("%s for %s failed; will retry next run", kind, period.key)
        report.failed.append((kind, period.key))
        return

    if not winners:
        logger.info("No ranked users in %s; marking %s handled", period.key, kind)
        if store.record_announcement(kind, period.key, now, winner_count=0):
            report.handled.append((kind, period.key))
        return

    if not delivered:
        logger.warning("%s for %s not delivered; will retry next run", kind, period.key)
        report.failed.append((kind, period.key))
        return

    if store.record_announcement(kind, period.key, now, winner_count=len(winners)):
        report.handled.append((kind, period.key))


def _check_launch(store, gateway, cfg, calendar, now, report) -> None:
    if not calendar.is_launch_day(now) or calendar.classify(now).regime == Regime.PRE_LAUNCH:
        return
    if store.has_announcement(AnnouncementKind.LAUNCH, LAUNCH_KEY):
        return
    if not announce_launch(gateway, cfg, calendar):
        report.failed.append((AnnouncementKind.LAUNCH, LAUNCH_KEY))
        return
    if store.record_announcement(AnnouncementKind.LAUNCH, LAUNCH_KEY, now):
        report.handled.append((AnnouncementKind.LAUNCH, LAUNCH_KEY))


def _check_launch_winners(store, gateway, cfg, calendar, now, report) -> None:
    if not calendar.is_first_reset_day(now):
        return
    current = calendar.classify(now)
    if current.regime != Regime.MONTHLY:
        return
    _announce_period_winners(
        store, gateway, cfg, calendar,
        AnnouncementKind.LAUNCH_WINNERS, calendar.launch_period(), current, now, report,
    )


def _check_monthly_winners(store, gateway, cfg, calendar, now, report) -> None:
    if calendar.localize(now).day != 1:
        return
    current = calendar.classify(now)
    previous = calendar.period_before_today(now)
    # The month before the first reset belongs to the launch period
    if current.regime != Regime.MONTHLY or previous.regime != Regime.MONTHLY:
        return
    _announce_period_winners(
        store, gateway, cfg, calendar,
        AnnouncementKind.MONTHLY_WINNERS, previous, current, now, report,
    )


def run_period_transition_check(
    store: RecordStore,
    gateway: MessagingGateway,
    cfg: HowloConfig,
    calendar: PeriodCalendar,
    now: datetime,
) -> TransitionReport:
    report = TransitionReport()
    for check in (_check_launch, _check_launch_winners, _check_monthly_winners):
        try:
            check(store, gateway, cfg, calendar, now, report)
        except Exception:
            logger.exception("Transition check %s failed", check.__name__)
    if report.handled:
        logger.info("Transition check handled: %s", report.handled)
    return report
