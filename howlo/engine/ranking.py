"""
howlo.engine.ranking — Leaderboard entries & ordering
======================================================

Ordering: total XP descending, then achievement count descending, then
user id for a deterministic tail.  Ranks are 1-based positions.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    user_id: str
    total_xp: int
    achievement_count: int
    has_line_bonus: bool = False
    has_full_board_bonus: bool = False
    rank: int | None = None


def sort_key(entry: LeaderboardEntry) -> tuple[int, int, str]:
    return (-entry.total_xp, -entry.achievement_count, entry.user_id)


def rank_entries(
    entries: Iterable[LeaderboardEntry], limit: int | None = None
) -> list[LeaderboardEntry]:
    """Sort, truncate to *limit* (``None`` = unbounded) and stamp ranks."""
    ordered = sorted(entries, key=sort_key)
    if limit is not None:
        ordered = ordered[:limit]
    return [replace(e, rank=i + 1) for i, e in enumerate(ordered)]


def position_of(entries: Sequence[LeaderboardEntry], user_id: str) -> int | None:
    """1-based position of *user_id* in an already-ranked list, else ``None``."""
    for i, entry in enumerate(entries):
        if entry.user_id == user_id:
            return i + 1
    return None
