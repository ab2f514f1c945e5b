"""
howlo.services.record_store — Record Store Capability
======================================================

The only component that talks to the database.  Everything above it sees
a narrow capability: insert, find, find-one, update-by-id, aggregate, plus
the two atomic operations the game relies on:

- :meth:`RecordStore.award_bonus_if_unset` — flips a bonus flag on one
  record unless the user already holds that bonus for the period.  The
  partial unique indexes on ``accomplishments`` make this a single
  compare-and-set; a losing writer gets an ``IntegrityError`` and is told
  "not awarded".
- :meth:`RecordStore.record_announcement` — inserts the
  ``(kind, period_key)`` flag, reporting whether this call created it.

SQLAlchemy failures are re-raised as
:class:`~howlo.errors.PersistenceFailure`, except for :meth:`aggregate`,
which raises :class:`~howlo.errors.RankingUnavailable`.
"""

from __future__ import annotations

import enum
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from howlo.database.engine import get_session
from howlo.database.models import Accomplishment, PeriodAnnouncement
from howlo.engine.periods import PeriodPredicate
from howlo.engine.ranking import LeaderboardEntry, rank_entries
from howlo.errors import PersistenceFailure, RankingUnavailable

logger = logging.getLogger(__name__)

# Columns update_by_id may touch
UPDATABLE_FIELDS: frozenset[str] = frozenset({
    "xp",
    "location",
    "line_bonus",
    "line_bonus_at",
    "full_board_bonus",
    "full_board_bonus_at",
})


class BonusKind(enum.StrEnum):
    LINE = "line"
    FULL_BOARD = "full_board"


def to_utc(when: datetime) -> datetime:
    """Normalise to UTC; naive values are assumed to already be UTC."""
    if when.tzinfo is None:
        return when.replace(tzinfo=UTC)
    return when.astimezone(UTC)


def period_clauses(predicate: PeriodPredicate) -> list[Any]:
    """Translate a :class:`PeriodPredicate` into WHERE clauses."""
    clauses: list[Any] = []
    if predicate.start is not None:
        clauses.append(Accomplishment.created_at >= to_utc(predicate.start))
    if predicate.end is not None:
        clauses.append(Accomplishment.created_at < to_utc(predicate.end))
    if predicate.month is not None:
        clauses.append(Accomplishment.month == predicate.month)
    if predicate.year is not None:
        clauses.append(Accomplishment.year == predicate.year)
    return clauses


class RecordStore:
    """Accomplishment + announcement persistence on a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -------------------------------------------------------------------
    # Accomplishments
    # -------------------------------------------------------------------
    def insert(self, record: Accomplishment) -> int:
        """Persist a new record and return its id."""
        record.created_at = to_utc(record.created_at)
        try:
            with get_session(self.engine) as session:
                session.add(record)
                session.flush()
                return record.id
        except SQLAlchemyError as exc:
            logger.exception("Failed to insert accomplishment for %s", record.user_id)
            raise PersistenceFailure("Could not save the accomplishment") from exc

    def get(self, record_id: int) -> Accomplishment | None:
        try:
            with get_session(self.engine) as session:
                return session.get(Accomplishment, record_id)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load accomplishment {record_id}") from exc

    def find_by_user_and_period(
        self, user_id: str, predicate: PeriodPredicate
    ) -> list[Accomplishment]:
        stmt = (
            select(Accomplishment)
            .where(Accomplishment.user_id == user_id, *period_clauses(predicate))
            .order_by(Accomplishment.created_at, Accomplishment.id)
        )
        try:
            with get_session(self.engine) as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load accomplishments for {user_id}") from exc

    def find_one(
        self,
        predicate: PeriodPredicate | None = None,
        **filters: Any,
    ) -> Accomplishment | None:
        """First record matching *predicate* and column equality *filters*.

        Example: ``find_one(pred, user_id="U1", line_bonus=True)``.
        """
        clauses = period_clauses(predicate) if predicate is not None else []
        for name, value in filters.items():
            clauses.append(getattr(Accomplishment, name) == value)
        stmt = select(Accomplishment).where(*clauses).order_by(Accomplishment.id).limit(1)
        try:
            with get_session(self.engine) as session:
                return session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Record lookup failed") from exc

    def update_by_id(self, record_id: int, patch: dict[str, Any]) -> None:
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        stmt = update(Accomplishment).where(Accomplishment.id == record_id).values(**patch)
        try:
            with get_session(self.engine) as session:
                session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Failed to update accomplishment %d", record_id)
            raise PersistenceFailure(f"Could not update accomplishment {record_id}") from exc

    def award_bonus_if_unset(
        self, record_id: int, bonus: BonusKind, xp: int, at: datetime
    ) -> bool:
        """Set *bonus* on *record_id* and add *xp*, unless the user already
        holds it for the record's period.  Returns True iff this call won."""
        if bonus == BonusKind.LINE:
            flag, stamp = Accomplishment.line_bonus, "line_bonus_at"
        else:
            flag, stamp = Accomplishment.full_board_bonus, "full_board_bonus_at"

        stmt = (
            update(Accomplishment)
            .where(Accomplishment.id == record_id, flag.is_(False))
            .values({flag.key: True, stamp: to_utc(at), "xp": Accomplishment.xp + xp})
            .execution_options(synchronize_session=False)
        )
        try:
            with get_session(self.engine) as session:
                try:
                    with session.begin_nested():   # SAVEPOINT
                        won = session.execute(stmt).rowcount == 1
                except IntegrityError:
                    # Partial unique index: another record already holds this bonus
                    logger.info(
                        "Bonus %s already held for record %d's period", bonus, record_id
                    )
                    return False
        except SQLAlchemyError as exc:
            logger.exception("Failed to award %s bonus on record %d", bonus, record_id)
            raise PersistenceFailure("Could not save the bonus") from exc
        return won

    def aggregate(
        self, predicate: PeriodPredicate, limit: int | None = None
    ) -> list[LeaderboardEntry]:
        """Group in-period records by user and return ranked entries."""
        total_xp = func.coalesce(func.sum(Accomplishment.xp), 0).label("total_xp")
        count = func.count(Accomplishment.id).label("achievement_count")
        has_line = func.max(
            case((Accomplishment.line_bonus.is_(True), 1), else_=0)
        ).label("has_line")
        has_full = func.max(
            case((Accomplishment.full_board_bonus.is_(True), 1), else_=0)
        ).label("has_full")

        stmt = (
            select(Accomplishment.user_id, total_xp, count, has_line, has_full)
            .where(*period_clauses(predicate))
            .group_by(Accomplishment.user_id)
            .order_by(total_xp.desc(), count.desc(), Accomplishment.user_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            with get_session(self.engine) as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.exception("Leaderboard aggregation failed")
            raise RankingUnavailable("Leaderboard is unavailable right now") from exc

        return rank_entries(
            LeaderboardEntry(
                user_id=row.user_id,
                total_xp=int(row.total_xp),
                achievement_count=int(row.achievement_count),
                has_line_bonus=bool(row.has_line),
                has_full_board_bonus=bool(row.has_full),
            )
            for row in rows
        )

    # -------------------------------------------------------------------
    # Period announcements
    # -------------------------------------------------------------------
    def has_announcement(self, kind: str, period_key: str) -> bool:
        stmt = select(PeriodAnnouncement.id).where(
            PeriodAnnouncement.kind == kind,
            PeriodAnnouncement.period_key == period_key,
        )
        try:
            with get_session(self.engine) as session:
                return session.scalar(stmt) is not None
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Announcement lookup failed") from exc

    def record_announcement(
        self, kind: str, period_key: str, at: datetime, winner_count: int = 0
    ) -> bool:
        """Store the sent flag.  False if another writer stored it first."""
        try:
            with get_session(self.engine) as session:
                session.add(PeriodAnnouncement(
                    kind=kind,
                    period_key=period_key,
                    winner_count=winner_count,
                    announced_at=to_utc(at),
                ))
        except IntegrityError:
            logger.info("Announcement %s/%s was already recorded", kind, period_key)
            return False
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Could not record announcement") from exc
        return True
