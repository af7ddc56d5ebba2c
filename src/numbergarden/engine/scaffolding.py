"""Scaffold-aware problem presentation.

Decides how much help goes on screen with a problem:
- Full: whole number grid, the hop path drawn in, hint text
- Partial: only the grid rows around the starting number, hint text
- Peek: grid hidden, a "peek" button flashes it briefly
- None: nothing; hints only when the learner asks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from numbergarden.engine.adaptive import ScaffoldLevel
from numbergarden.engine.problems import Problem

GRID_SIZE = 10


@dataclass
class Scaffold:
    level: ScaffoldLevel
    grid_visibility: str  # "full", "rows", "hidden"
    visible_rows: list[int] = field(default_factory=list)
    show_path: bool = False
    path: list[int] = field(default_factory=list)
    hint: Optional[str] = None
    peek_available: bool = False
    bee_position: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "gridVisibility": self.grid_visibility,
            "visibleRows": self.visible_rows,
            "showPath": self.show_path,
            "path": self.path,
            "hint": self.hint,
            "peekAvailable": self.peek_available,
            "beePosition": self.bee_position,
        }


def build_scaffold(problem: Problem, level: ScaffoldLevel | str) -> Scaffold:
    """Build the support shown alongside a problem at a scaffold level."""
    level = ScaffoldLevel(level)

    if level == ScaffoldLevel.FULL:
        return _full_scaffold(problem)
    elif level == ScaffoldLevel.PARTIAL:
        return _partial_scaffold(problem)
    elif level == ScaffoldLevel.PEEK:
        return Scaffold(
            level=level,
            grid_visibility="hidden",
            peek_available=True,
            bee_position=problem.start,
        )
    return Scaffold(level=level, grid_visibility="hidden")


def _full_scaffold(problem: Problem) -> Scaffold:
    return Scaffold(
        level=ScaffoldLevel.FULL,
        grid_visibility="full",
        visible_rows=list(range(GRID_SIZE)),
        show_path=bool(problem.grid_path),
        path=list(problem.grid_path),
        hint=problem.hint or None,
        bee_position=problem.start,
    )


def _partial_scaffold(problem: Problem) -> Scaffold:
    """Rows from the start number's row through the answer's row, plus one either side."""
    rows = _rows_around(problem.start, problem.answer)
    return Scaffold(
        level=ScaffoldLevel.PARTIAL,
        grid_visibility="rows" if rows else "hidden",
        visible_rows=rows,
        hint=problem.hint or None,
        bee_position=problem.start,
    )


def _rows_around(start: Optional[int], answer: int) -> list[int]:
    if start is None or not (0 <= start < GRID_SIZE * GRID_SIZE):
        return []
    lo = start // GRID_SIZE
    hi = lo
    if 0 <= answer < GRID_SIZE * GRID_SIZE:
        lo, hi = min(lo, answer // GRID_SIZE), max(hi, answer // GRID_SIZE)
    return list(range(max(0, lo - 1), min(GRID_SIZE - 1, hi + 1) + 1))


def peek_view(problem: Problem) -> Scaffold:
    """The whole grid with only the bee on it: no hop path, no hint."""
    return Scaffold(
        level=ScaffoldLevel.PEEK,
        grid_visibility="full",
        visible_rows=list(range(GRID_SIZE)),
        bee_position=problem.start,
    )


# --- Terminal rendering ---


def render_text(scaffold: Scaffold, show_answer: Optional[int] = None) -> str:
    """Render the visible part of the grid and the hint as plain text."""
    lines: list[str] = []

    if scaffold.grid_visibility != "hidden":
        marked = set(scaffold.path) if scaffold.show_path else set()
        for row in scaffold.visible_rows:
            cells = []
            for col in range(GRID_SIZE):
                n = row * GRID_SIZE + col
                if n == scaffold.bee_position:
                    cells.append(f"[{n:2d}]")
                elif n == show_answer or n in marked:
                    cells.append(f"*{n:2d}*")
                else:
                    cells.append(f" {n:2d} ")
            lines.append("".join(cells))
        lines.append("")

    if scaffold.peek_available:
        lines.append("(type 'peek' to glance at the garden grid)")
    if scaffold.hint:
        lines.append(f"Hint: {scaffold.hint}")

    return "\n".join(lines)
