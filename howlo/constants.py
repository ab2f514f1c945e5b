"""
howlo.constants — Shared Constants & Helpers
=============================================

Single source of truth for XP values and presentation constants.
Import from here instead of duplicating in services and handlers.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# XP economy
# ---------------------------------------------------------------------------
BASE_XP = 100
LINE_BONUS_XP = 500
FULL_BOARD_BONUS_XP = 1000

# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉
TROPHY = "\U0001f3c6"  # 🏆

MONTH_NAMES: list[str] = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# Slack caps static_select option text at 75 characters
MAX_OPTION_LABEL = 75


def ordinal(n: int) -> str:
    """Return ``1st``, ``2nd``, ``11th``, ``23rd`` …"""
    if n % 100 in (11, 12, 13):
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_rank(rank: int | None) -> str:
    """Human rank label with a medal for the podium, e.g. ``🥇 1st Place``."""
    if not rank:
        return "Not ranked yet"
    badge = RANK_BADGES[rank - 1] if rank <= len(RANK_BADGES) else TROPHY
    return f"{badge} {ordinal(rank)} Place"
