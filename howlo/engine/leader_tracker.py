"""
howlo.engine.leader_tracker — Leader-Change Tracker
====================================================

Remembers the last top-N snapshot for the active period and reports when
the #1 position passes to a different user.

States:

- *unseeded* — no snapshot.  The next ``check`` stores one and reports
  nothing.
- *seeded* — holds a snapshot.  ``check`` compares top-1, reports a
  :class:`LeaderChange` if it moved, then stores the new snapshot.

A ``check`` for a different period key discards the old snapshot and
re-seeds from the new data without reporting, so no change is ever
attributed across a period rollover.

State is process-local and not persisted: a restart costs at most one
missed announcement.  The tracker is constructed by the application and
handed to whoever needs it; there is no module-level instance.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from threading import Lock

from howlo.engine.ranking import LeaderboardEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LeaderChange:
    period_key: str
    new_leader: LeaderboardEntry
    previous_leader: LeaderboardEntry


class LeaderChangeTracker:
    """Thread-safe top-N snapshot holder."""

    def __init__(self, top_n: int = 5) -> None:
        self.top_n = top_n
        self._lock = Lock()
        self._period_key: str | None = None
        self._snapshot: list[LeaderboardEntry] | None = None

    @property
    def seeded(self) -> bool:
        return self._snapshot is not None

    @property
    def period_key(self) -> str | None:
        return self._period_key

    @property
    def snapshot(self) -> list[LeaderboardEntry]:
        return list(self._snapshot or [])

    def check(
        self, period_key: str, leaderboard: Sequence[LeaderboardEntry]
    ) -> LeaderChange | None:
        """Compare *leaderboard* against the stored snapshot.

        Returns a :class:`LeaderChange` exactly when a seeded snapshot for
        the same period had a different #1.
        """
        current = list(leaderboard[: self.top_n])

        with self._lock:
            if self._snapshot is not None and self._period_key != period_key:
                logger.info(
                    "Period rolled over (%s → %s); leader tracking reset",
                    self._period_key, period_key,
                )
                self._snapshot = None

            if self._snapshot is None:
                self._period_key = period_key
                self._snapshot = current
                return None

            previous = self._snapshot
            self._snapshot = current

            if not current or not previous:
                return None
            if current[0].user_id == previous[0].user_id:
                return None

            return LeaderChange(
                period_key=period_key,
                new_leader=current[0],
                previous_leader=previous[0],
            )
