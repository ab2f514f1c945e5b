"""
howlo.engine.completion — Line & Full-Board Detection
======================================================

Pure, stateless checks over a 5×5 completion grid:

- **HOWLO** — any complete row, column or diagonal.
- **DENOUT** — every non-free slot complete.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from howlo.engine.grid import GRID_SIZE, ChallengeSlot, CompletionGrid


class LineKind(enum.StrEnum):
    ROW = "row"
    COLUMN = "column"
    DIAGONAL = "diagonal"


@dataclass(frozen=True, slots=True)
class Line:
    """A completed line.  Diagonal 0 runs top-left → bottom-right,
    diagonal 1 runs top-right → bottom-left."""

    kind: LineKind
    index: int


def detect_lines(grid: CompletionGrid) -> list[Line]:
    """Return every complete row, column and diagonal (not just the first)."""
    lines: list[Line] = []
    span = range(GRID_SIZE)

    for row in span:
        if all(grid[row][col] for col in span):
            lines.append(Line(LineKind.ROW, row))

    for col in span:
        if all(grid[row][col] for row in span):
            lines.append(Line(LineKind.COLUMN, col))

    if all(grid[i][i] for i in span):
        lines.append(Line(LineKind.DIAGONAL, 0))

    if all(grid[i][GRID_SIZE - 1 - i] for i in span):
        lines.append(Line(LineKind.DIAGONAL, 1))

    return lines


def detect_full_board(
    grid: CompletionGrid, required_slots: Iterable[ChallengeSlot]
) -> bool:
    """True iff every slot in *required_slots* is marked on *grid*."""
    return all(grid[slot.row][slot.col] for slot in required_slots)
