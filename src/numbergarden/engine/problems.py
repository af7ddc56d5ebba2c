"""Arithmetic problem generation for each skill and level."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FALLBACK_SKILL = "navigator_find"

LOCATIONS = [
    "Beecroft Station", "Woolworths", "the playground",
    "Beecroft Public School", "the library", "the park",
    "the bakery", "the post office",
]
ITEMS = [
    ("gold coins", "💰"), ("apples", "🍎"), ("flowers", "🌸"),
    ("books", "📚"), ("stickers", "⭐"), ("cards", "🃏"),
]


@dataclass
class Problem:
    kind: str  # "find", "pattern", "addition", "subtraction", "multiplication", "word_problem"
    question: str
    answer: int
    display_answer: str
    hint: str = ""
    operands: list[int] = field(default_factory=list)
    operation: Optional[str] = None  # "+", "-", "×"
    grid_highlight: str = "none"
    grid_path: list[int] = field(default_factory=list)
    strategy: Optional[str] = None
    has_carry: bool = False
    has_borrow: bool = False
    time_limit: Optional[int] = None

    @property
    def start(self) -> Optional[int]:
        return self.operands[0] if self.operands else None

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "question": self.question,
            "answer": self.answer,
            "displayAnswer": self.display_answer,
            "hint": self.hint,
            "operands": self.operands,
            "operation": self.operation,
            "gridHighlight": self.grid_highlight,
            "gridPath": self.grid_path,
            "strategy": self.strategy,
            "hasCarry": self.has_carry,
            "hasBorrow": self.has_borrow,
            "timeLimit": self.time_limit,
        }


def grid_path(start: int, amount: int, operation: str) -> list[int]:
    """Cells visited on the 10x10 grid: whole-row jumps first, then single hops."""
    path = [start]
    step = 1 if operation == "add" else -1 if operation == "subtract" else 0
    if step == 0:
        return path

    current = start
    rows, cols = divmod(amount, 10)
    for _ in range(rows):
        current += 10 * step
        path.append(current)
    for _ in range(cols):
        current += step
        path.append(current)
    return path


def grid_highlight_for_level(level: int) -> str:
    if level <= 2:
        return "full"
    if level == 3:
        return "partial"
    if level == 4:
        return "peek"
    return "none"


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


class ProblemGenerator:
    """Builds problems; pass a seeded ``random.Random`` for repeatable output."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._generators: dict[str, Callable[[int], Problem]] = {
            "navigator_find": self._navigator_find,
            "navigator_patterns": self._navigator_patterns,
            "addition_small": self._addition_small,
            "addition_jumping": self._addition_jumping,
            "subtraction_small": self._subtraction_small,
            "subtraction_jumping": self._subtraction_jumping,
            "multiplication_easy": self._multiplication_easy,
            "multiplication_medium": self._multiplication_medium,
            "multiplication_hard": self._multiplication_hard,
            "strategy_doubles": self._strategy_doubles,
            "strategy_compensation": self._strategy_compensation,
            "word_problems": self._word_problems,
        }

    @property
    def skill_ids(self) -> list[str]:
        return list(self._generators)

    def generate(self, skill_id: Optional[str], level: int) -> Problem:
        generator = self._generators.get(skill_id or "")
        if generator is None:
            logger.warning("No generator for skill: %s", skill_id)
            return self._navigator_find(1)
        return generator(level)

    def _randint(self, low: int, high: int) -> int:
        return self.rng.randint(low, high)

    # --- Navigator ---

    def _navigator_find(self, level: int) -> Problem:
        target = self._randint(0, 50) if level == 1 else self._randint(0, 99)
        row = target // 10
        return Problem(
            kind="find",
            question=f"Find {target} on the grid",
            answer=target,
            display_answer=str(target),
            grid_highlight={1: "full", 2: "partial"}.get(level, "none"),
            time_limit=3 if level == 3 else None,
            hint=f"Look at row {row} (the {row}0s row)",
        )

    def _navigator_patterns(self, level: int) -> Problem:
        if level == 1:
            return Problem(
                kind="pattern",
                question="What column has all the numbers ending in 0? (10, 20, 30...)",
                answer=0,
                display_answer="The rightmost column (0, 10, 20, 30...)",
                grid_highlight="column_10s",
                hint="Look for the column where every number ends in 0",
            )
        if level == 2:
            digit = self.rng.choice([0, 5])
            return Problem(
                kind="pattern",
                question="Numbers in the x5 columns end in 0 or which other digit?",
                answer=5,
                display_answer="5 (5, 15, 25...)",
                grid_highlight="column_5s",
                hint=f"Count by fives from {digit}: {digit}, {digit + 5}, {digit + 10}...",
            )
        start = self._randint(1, 5)
        step = self.rng.choice([2, 5, 10])
        seq = [start + step * i for i in range(4)]
        nxt = start + step * 4
        return Problem(
            kind="pattern",
            question=f"What comes next? {', '.join(map(str, seq))}, ...",
            answer=nxt,
            display_answer=str(nxt),
            grid_highlight="none",
            hint=f"Each number is {step} more than the one before",
        )

    # --- Addition ---

    def _addition_small(self, level: int) -> Problem:
        carry = False
        if level == 1:
            a = self._randint(20, 89)
            b = self._randint(1, max(1, 9 - a % 10))
            if a % 10 == 9:
                a -= 1
        elif level == 2:
            a = self._randint(21, 89)
            if a % 10 == 0:
                a += 1
            b = self._randint(10 - a % 10, 9)
            carry = True
        else:
            a = self._randint(10, 90)
            b = self._randint(1, 9)
            carry = a % 10 + b >= 10

        if carry:
            hint = f"{a} + {b}: Add {b}, but you'll cross into the next row!"
        else:
            hint = f"Start at {a}, hop right {b} times"
        return Problem(
            kind="addition",
            question=f"{a} + {b}",
            operands=[a, b],
            operation="+",
            answer=a + b,
            display_answer=str(a + b),
            grid_highlight=grid_highlight_for_level(level),
            grid_path=grid_path(a, b, "add"),
            has_carry=carry,
            hint=hint,
        )

    def _addition_jumping(self, level: int) -> Problem:
        if level == 1:
            a, b = self._randint(10, 80), 10
        elif level == 2:
            a, b = self._randint(10, 60), self.rng.choice([10, 20, 30])
        elif level == 3:
            a, b = self._randint(10, 50), self._randint(10, 40)
            if a % 10 + b % 10 >= 10:
                b = (b // 10) * 10 + (9 - a % 10)
        elif level == 4:
            a, b = self._randint(15, 70), self._randint(15, 50)
            if a % 10 + b % 10 < 10:
                a = (a // 10) * 10 + self._randint(5, 9)
                b = (b // 10) * 10 + self._randint(10 - a % 10, 9)
        else:
            a, b = self._randint(10, 70), self._randint(10, 50)

        if a + b > 99:
            b = max(10, 99 - a - self._randint(0, 10))
            if a + b > 99:
                a = 99 - b

        rows, cols = divmod(b, 10)
        return Problem(
            kind="addition",
            question=f"{a} + {b}",
            operands=[a, b],
            operation="+",
            answer=a + b,
            display_answer=str(a + b),
            grid_highlight=grid_highlight_for_level(level),
            grid_path=grid_path(a, b, "add"),
            hint=f"Start at {a}, jump down {_plural(rows, 'row')}, then right {cols}",
        )

    # --- Subtraction ---

    def _subtraction_small(self, level: int) -> Problem:
        if level == 1:
            a = self._randint(21, 99)
            if a % 10 == 0:
                a += 1
            b = self._randint(1, a % 10)
            borrow = False
        elif level == 2:
            a = self._randint(20, 98)
            if a % 10 == 9:
                a -= 1
            b = self._randint(a % 10 + 1, 9)
            borrow = True
        else:
            a = self._randint(20, 99)
            b = self._randint(1, 9)
            borrow = b > a % 10

        if borrow:
            hint = f"{a} - {b}: You'll need to go up a row!"
        else:
            hint = f"Start at {a}, hop left {b} times"
        return Problem(
            kind="subtraction",
            question=f"{a} - {b}",
            operands=[a, b],
            operation="-",
            answer=a - b,
            display_answer=str(a - b),
            grid_highlight=grid_highlight_for_level(level),
            grid_path=grid_path(a, b, "subtract"),
            has_borrow=borrow,
            hint=hint,
        )

    def _subtraction_jumping(self, level: int) -> Problem:
        if level == 1:
            a, b = self._randint(20, 99), 10
        elif level == 2:
            a, b = self._randint(30, 99), self.rng.choice([10, 20, 30])
        elif level == 3:
            a, b = self._randint(40, 99), self._randint(10, 30)
            if a % 10 < b % 10:
                b = (b // 10) * 10 + max(0, a % 10 - self._randint(0, 2))
        elif level == 4:
            a, b = self._randint(40, 99), self._randint(15, 40)
        else:
            a = self._randint(40, 99)
            b = self._randint(10, a - 10)

        if a - b < 0:
            b = a - self._randint(5, 15)

        rows, cols = divmod(b, 10)
        return Problem(
            kind="subtraction",
            question=f"{a} - {b}",
            operands=[a, b],
            operation="-",
            answer=a - b,
            display_answer=str(a - b),
            grid_highlight=grid_highlight_for_level(level),
            grid_path=grid_path(a, b, "subtract"),
            hint=f"Start at {a}, jump up {_plural(rows, 'row')}, then left {cols}",
        )

    # --- Multiplication ---

    def _times(self, a: int, b: int, hint: str, grid_highlight: str = "none") -> Problem:
        return Problem(
            kind="multiplication",
            question=f"{a} × {b}",
            operands=[a, b],
            operation="×",
            answer=a * b,
            display_answer=str(a * b),
            grid_highlight=grid_highlight,
            hint=hint,
        )

    def _multiplication_easy(self, level: int) -> Problem:
        a = self._randint(1, 10)
        if level == 1:
            b = 2
        elif level == 2:
            b = self.rng.choice([5, 10])
        else:
            b = self.rng.choice([2, 5, 10])
        skip_count = ", ".join(str((i + 1) * b) for i in range(a))
        return self._times(
            a, b,
            hint=f"{a} groups of {b}, or skip count by {b}: {skip_count}",
            grid_highlight="array" if level == 1 else "none",
        )

    def _multiplication_medium(self, level: int) -> Problem:
        tables = {1: [3, 4], 2: [6, 7]}.get(level, [3, 4, 6, 7])
        b = self.rng.choice(tables)
        a = self._randint(1, 10)
        return self._times(a, b, hint=f"Think: {a} groups of {b}")

    def _multiplication_hard(self, level: int) -> Problem:
        if level == 1:
            b = 8
        elif level == 2:
            b = 9
        else:
            b = self.rng.choice([2, 3, 4, 5, 6, 7, 8, 9, 10])
        a = self._randint(1, 10)

        if b == 9:
            hint = f"9 trick: {a} × 9 = {a} × 10 - {a} = {a * 10} - {a} = {a * 9}"
        elif b == 8:
            hint = f"8 trick: {a} × 8 = {a} × 10 - {a} × 2 = {a * 10} - {a * 2}"
        else:
            hint = f"{a} × {b} = ?"
        return self._times(a, b, hint=hint)

    # --- Strategies ---

    def _strategy_doubles(self, level: int) -> Problem:
        if level == 1:
            a = self._randint(2, 10)
            b = a
        elif level == 2:
            a = self._randint(2, 9)
            b = a + 1
        else:
            a = self._randint(12, 45)
            b = a + self.rng.choice([0, 1])

        if a == b:
            hint = f"Double {a}! That's {a} + {a} = {a * 2}"
        else:
            hint = f"Near double! {a} + {a} = {a * 2}, then add 1 more = {a * 2 + 1}"
        return Problem(
            kind="addition",
            question=f"{a} + {b}",
            operands=[a, b],
            operation="+",
            answer=a + b,
            display_answer=str(a + b),
            strategy="doubles",
            hint=hint,
        )

    def _strategy_compensation(self, level: int) -> Problem:
        if level == 1:
            a, b = self._randint(10, 80), 9
            hint = f"{a} + 9 = {a} + 10 - 1 = {a + 10} - 1 = {a + 9}"
        elif level == 2:
            a, b = self._randint(100, 800), 99
            hint = f"{a} + 99 = {a} + 100 - 1 = {a + 100} - 1 = {a + 99}"
        else:
            b = self.rng.choice([9, 19, 29, 11, 21])
            a = self._randint(20, 70)
            rounded = ((b + 5) // 10) * 10
            adjust = b - rounded
            sign = "+" if adjust >= 0 else "-"
            hint = (
                f"{a} + {b} = {a} + {rounded} {sign} {abs(adjust)} "
                f"= {a + rounded} {sign} {abs(adjust)} = {a + b}"
            )
        return Problem(
            kind="addition",
            question=f"{a} + {b}",
            operands=[a, b],
            operation="+",
            answer=a + b,
            display_answer=str(a + b),
            strategy="compensation",
            hint=hint,
        )

    # --- Word problems ---

    def _word_problems(self, level: int) -> Problem:
        if level == 3:
            return self._word_problems(self.rng.choice([1, 2]))

        location = self.rng.choice(LOCATIONS)
        item, emoji = self.rng.choice(ITEMS)

        if level == 1:
            a, b = self._randint(12, 45), self._randint(10, 30)
            answer = a + b
            question = (
                f"Wei Wei has {a} {item} {emoji}. She finds {b} more at {location}. "
                f"How many {item} does she have now?"
            )
            hint = f"This is addition: {a} + {b}"
        elif level == 2:
            a = self._randint(30, 60)
            b = self._randint(10, a - 10)
            answer = a - b
            question = (
                f"Wei Wei has {a} {item} {emoji}. She gives {b} to a friend at {location}. "
                f"How many {item} does she have left?"
            )
            hint = f"This is subtraction: {a} - {b}"
        elif level == 4:
            a, b, c = self._randint(20, 40), self._randint(10, 25), self._randint(5, 15)
            answer = a + b - c
            question = (
                f"Wei Wei starts with {a} {item} {emoji}. She finds {b} more at {location}, "
                f"then gives {c} to her friend. How many does she have now?"
            )
            hint = f"Two steps: First {a} + {b} = {a + b}, then {a + b} - {c}"
        else:
            groups, per_group, extra = (
                self._randint(3, 6), self._randint(4, 8), self._randint(5, 15)
            )
            answer = groups * per_group + extra
            question = (
                f"Wei Wei finds {groups} bags of {item} {emoji} at {location}. "
                f"Each bag has {per_group} {item}. She also finds {extra} loose ones. "
                f"How many {item} does she have in total?"
            )
            hint = (
                f"First multiply: {groups} × {per_group} = {groups * per_group}. "
                f"Then add: {groups * per_group} + {extra}"
            )

        return Problem(
            kind="word_problem",
            question=question,
            answer=answer,
            display_answer=f"{answer} {item}",
            hint=hint,
        )
