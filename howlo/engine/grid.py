"""
howlo.engine.grid — The HOWLO Card
===================================

The fixed, ordered 25-slot challenge card (row-major, 5×5) and the pure
projection of a user's accomplishments onto a boolean completion grid.

Index 12 (the centre) is the FREE slot: it is always complete and is never
matched against user input.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

GRID_SIZE = 5
SLOT_COUNT = GRID_SIZE * GRID_SIZE
FREE_SLOT_INDEX = 12
FREE_SLOT_TEXT = "FREE"

# Challenge text that matches no slot (renamed or retired between
# deployments) is skipped when building a grid, never rejected.
UNMATCHED_CHALLENGE_IS_IGNORED = True

CompletionGrid = list[list[bool]]


@dataclass(frozen=True, slots=True)
class ChallengeSlot:
    """One position on the card."""

    index: int
    text: str
    free: bool = False

    @property
    def row(self) -> int:
        return self.index // GRID_SIZE

    @property
    def col(self) -> int:
        return self.index % GRID_SIZE


class HasChallenge(Protocol):
    challenge: str


# ---------------------------------------------------------------------------
# Card definition
# ---------------------------------------------------------------------------
_CHALLENGE_TEXTS: tuple[str, ...] = (
    "Find someone who's new to San Diego (Ask what brought them here!)",
    "Introduce yourself to someone outside your industry",
    "Meet someone who works remotely (Ask about their favorite workspace!)",
    "Find someone looking for a co-founder or collaborator (Ask about their dream project!)",
    "Meet someone who's attended 3+ networking events this month (They're a super-connector!)",
    "Find someone who moved here for a job or startup (What's their story?)",
    "Thank the event organizer (Do it in person or via social media)",
    "Post a photo with the event organizer thanking them (Tag them and The Social Coyote!)",
    "Make 2 intros between people who haven't met before (Be the connection hero!)",
    "Snap a photo with someone you just met (Post it on LinkedIn or Slack)",
    "Ask someone what their biggest goal this year is (Listen, then offer support!)",
    "Share a favorite local coffee shop or co-working spot with someone",
    FREE_SLOT_TEXT,
    "Ask someone about the best event they've attended this year (Why was it great?)",
    "Go to an event you haven't been to before and meet someone new",
    "Go to an event in a new part of town you haven't explored and meet someone new",
    "Ask someone for their best networking tip (Write it down and share later!)",
    "Find someone who has launched a startup (Ask what stage they're at)",
    "Find someone who has raised funding for their business (Ask about their biggest lesson)",
    "Find someone who bootstrapped their business (Ask about a key challenge they overcame)",
    "Schedule a follow-up meeting with someone you met (Coffee, Zoom, or a walk!)",
    "Find another Social Coyote in the wild (Meet another event regular!)",
    'Howl or say "Ahwoo!" at another Social Coyote (Get them to howl back!)',
    "Come up with your own networking challenge and tag someone you completed it with!",
    "Find someone who's been to 3+ San Diego tech events this month (Ask which was their favorite and why!)",
)

BINGO_CARD: tuple[ChallengeSlot, ...] = tuple(
    ChallengeSlot(index=i, text=t, free=(i == FREE_SLOT_INDEX))
    for i, t in enumerate(_CHALLENGE_TEXTS)
)


# ---------------------------------------------------------------------------
# Slot access
# ---------------------------------------------------------------------------
def slot_at(index: int, card: Sequence[ChallengeSlot] = BINGO_CARD) -> ChallengeSlot:
    """Return the slot at 0-based *index* (row = index // 5, col = index % 5)."""
    if not 0 <= index < SLOT_COUNT:
        raise IndexError(f"Slot index out of range: {index}")
    return card[index]


def is_free_slot(slot: ChallengeSlot) -> bool:
    return slot.free


def all_non_free_slots(card: Sequence[ChallengeSlot] = BINGO_CARD) -> list[ChallengeSlot]:
    """Every slot except FREE — the full-board target set."""
    return [s for s in card if not is_free_slot(s)]


def find_slot(
    challenge_text: str, card: Sequence[ChallengeSlot] = BINGO_CARD
) -> ChallengeSlot | None:
    """Exact trimmed-text lookup.  The FREE slot never matches."""
    needle = challenge_text.strip()
    for slot in card:
        if not is_free_slot(slot) and slot.text.strip() == needle:
            return slot
    return None


# ---------------------------------------------------------------------------
# Completion grid
# ---------------------------------------------------------------------------
def empty_grid() -> CompletionGrid:
    return [[False] * GRID_SIZE for _ in range(GRID_SIZE)]


def build_completion_grid(
    records: Iterable[HasChallenge],
    card: Sequence[ChallengeSlot] = BINGO_CARD,
) -> CompletionGrid:
    """Project *records* onto a 5×5 boolean grid.

    Order-independent and idempotent: each matching record marks its cell,
    duplicates collapse onto the same cell, and the FREE cell is always set.
    """
    grid = empty_grid()
    for record in records:
        slot = find_slot(record.challenge, card)
        if slot is None:
            if UNMATCHED_CHALLENGE_IS_IGNORED:
                continue
            raise ValueError(f"Challenge not on the card: {record.challenge!r}")
        grid[slot.row][slot.col] = True

    for slot in card:
        if slot.free:
            grid[slot.row][slot.col] = True
    return grid
