"""Adaptive difficulty engine.

Watches a stream of (correct, elapsed time) answers for the current skill
and level and decides when to move the level and the scaffolding support.

Two policies apply:

- Calibration: the first few problems of a freshly selected skill probe
  quickly for a starting level (fast correct jumps up two levels).
- Adaptive: afterwards streaks and the recent-window accuracy/time nudge
  the level by one and move scaffolding a step.

Every decision is applied to the engine's state before it is returned.
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from numbergarden.config.settings import AdaptiveThresholds

if TYPE_CHECKING:
    from numbergarden.skills.registry import SkillRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEVEL = 5


class ScaffoldLevel(str, Enum):
    """On-screen support, ordered from most help to none."""
    FULL = "full"
    PARTIAL = "partial"
    PEEK = "peek"
    NONE = "none"

    @classmethod
    def ordered(cls) -> list["ScaffoldLevel"]:
        return [cls.FULL, cls.PARTIAL, cls.PEEK, cls.NONE]

    @property
    def index(self) -> int:
        return ScaffoldLevel.ordered().index(self)

    def reduced(self) -> "ScaffoldLevel":
        """One step toward NONE; NONE stays NONE."""
        order = ScaffoldLevel.ordered()
        return order[min(self.index + 1, len(order) - 1)]

    def increased(self) -> "ScaffoldLevel":
        """One step toward FULL; FULL stays FULL."""
        order = ScaffoldLevel.ordered()
        return order[max(self.index - 1, 0)]


class Action(str, Enum):
    CONTINUE = "continue"
    LEVEL_UP = "level_up"
    LEVEL_DOWN = "level_down"


class ScaffoldChange(str, Enum):
    REDUCE = "reduce"
    INCREASE = "increase"


class LearnerState(str, Enum):
    NORMAL = "normal"
    FRUSTRATED = "frustrated"  # fast wrong answers, guessing
    DISTRACTED = "distracted"  # very slow answers
    DECLINING = "declining"


@dataclass
class PracticeResult:
    correct: bool
    time: float
    skill: Optional[str]
    level: int
    timestamp: float


@dataclass
class LevelChange:
    direction: str  # "up" or "down"
    level: int
    timestamp: float

    def to_dict(self) -> dict:
        return {"direction": self.direction, "level": self.level, "time": self.timestamp}


@dataclass
class SessionStats:
    start_time: float
    total_problems: int = 0
    correct: int = 0
    total_time: float = 0.0
    skills_attempted: set[str] = field(default_factory=set)
    level_changes: list[LevelChange] = field(default_factory=list)


@dataclass
class Metrics:
    accuracy: float
    avg_time: float
    sample_size: int = 0


@dataclass
class Adjustment:
    action: Action
    reason: str
    amount: Optional[int] = None
    scaffold_change: Optional[ScaffoldChange] = None
    calibration_complete: bool = False
    found_level: Optional[int] = None
    metrics: Optional[Metrics] = None

    @property
    def changes_level(self) -> bool:
        return self.action in (Action.LEVEL_UP, Action.LEVEL_DOWN)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"action": self.action.value, "reason": self.reason}
        if self.amount is not None:
            d["amount"] = self.amount
        if self.scaffold_change is not None:
            d["scaffoldChange"] = self.scaffold_change.value
        if self.calibration_complete:
            d["calibrationComplete"] = True
            d["foundLevel"] = self.found_level
        if self.metrics is not None:
            d["metrics"] = {
                "accuracy": self.metrics.accuracy,
                "avgTime": self.metrics.avg_time,
                "sampleSize": self.metrics.sample_size,
            }
        return d


@dataclass
class SessionSummary:
    duration_minutes: int
    total_problems: int
    correct: int
    accuracy_percent: int
    avg_time_seconds: float
    skills_attempted: list[str]
    level_changes: list[LevelChange]
    final_level: int
    final_scaffold: ScaffoldLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration_minutes,
            "totalProblems": self.total_problems,
            "correct": self.correct,
            "accuracy": self.accuracy_percent,
            "avgTime": self.avg_time_seconds,
            "skillsWorked": list(self.skills_attempted),
            "levelProgression": [c.to_dict() for c in self.level_changes],
            "finalLevel": self.final_level,
            "finalScaffold": self.final_scaffold.value,
        }


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


class AdaptiveDifficultyEngine:
    """Tracks one learner's recent answers and adjusts level and scaffolding."""

    def __init__(
        self,
        registry: Optional["SkillRegistry"] = None,
        thresholds: Optional[AdaptiveThresholds] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.thresholds = thresholds or AdaptiveThresholds()
        self._clock = clock

        self.recent_results: deque[PracticeResult] = deque(
            maxlen=self.thresholds.recent_window
        )
        self.session_stats = SessionStats(start_time=self._clock())

        self.current_skill: Optional[str] = None
        self.current_level = 1
        self.scaffolding_level = ScaffoldLevel.FULL
        self.consecutive_correct = 0
        self.consecutive_wrong = 0

        self.is_calibrating = True
        self.calibration_problems = 0

    @property
    def calibration_max(self) -> int:
        return self.thresholds.calibration_max

    def max_level(self, skill_id: Optional[str] = None) -> int:
        skill_id = skill_id if skill_id is not None else self.current_skill
        if self.registry is None:
            return DEFAULT_MAX_LEVEL
        return self.registry.max_level(skill_id)

    # --- Recording ---

    def record_result(
        self,
        correct: bool,
        time_seconds: float,
        problem: Any = None,  # noqa: ARG002
    ) -> Adjustment:
        """Record one answered problem and return the applied adjustment."""
        time_seconds = max(0.0, float(time_seconds))

        self.recent_results.append(PracticeResult(
            correct=correct,
            time=time_seconds,
            skill=self.current_skill,
            level=self.current_level,
            timestamp=self._clock(),
        ))

        if correct:
            self.consecutive_correct += 1
            self.consecutive_wrong = 0
        else:
            self.consecutive_wrong += 1
            self.consecutive_correct = 0

        stats = self.session_stats
        stats.total_problems += 1
        if correct:
            stats.correct += 1
        stats.total_time += time_seconds
        if self.current_skill is not None:
            stats.skills_attempted.add(self.current_skill)

        if self.is_calibrating:
            adjustment = self._calibration_adjust(correct, time_seconds)
        else:
            adjustment = self._adaptive_adjust()

        logger.debug(
            "skill=%s correct=%s time=%.1f -> %s (level=%d scaffold=%s)",
            self.current_skill, correct, time_seconds, adjustment.action.value,
            self.current_level, self.scaffolding_level.value,
        )
        return adjustment

    def _calibration_adjust(self, correct: bool, time_seconds: float) -> Adjustment:
        t = self.thresholds
        if correct and time_seconds < t.calibration_fast_seconds:
            adjustment = Adjustment(
                Action.LEVEL_UP, "Fast and correct - jumping ahead", amount=2,
            )
        elif correct and time_seconds < t.calibration_steady_seconds:
            adjustment = Adjustment(
                Action.LEVEL_UP, "Correct - trying slightly harder", amount=1,
            )
        elif not correct:
            adjustment = Adjustment(
                Action.LEVEL_DOWN, "Finding your level...", amount=1,
            )
        else:
            adjustment = Adjustment(Action.CONTINUE, "Correct - let's see another one")

        self._apply_level_change(adjustment)

        self.calibration_problems += 1
        if self.calibration_problems >= self.calibration_max:
            self.is_calibrating = False
            adjustment.calibration_complete = True
            adjustment.found_level = self.current_level
            logger.info(
                "Calibration finished for %s at level %d",
                self.current_skill, self.current_level,
            )

        return adjustment

    def _adaptive_adjust(self) -> Adjustment:
        t = self.thresholds
        metrics = self.calculate_metrics()

        if self.consecutive_correct >= t.bump_up_streak:
            adjustment = Adjustment(
                Action.LEVEL_UP,
                f"{self.consecutive_correct} correct in a row! Let's try harder!",
                amount=1,
                scaffold_change=ScaffoldChange.REDUCE,
            )
            self.consecutive_correct = 0
        elif self.consecutive_wrong >= t.bump_down_streak:
            adjustment = Adjustment(
                Action.LEVEL_DOWN,
                "Let's slow down and try an easier one",
                amount=1,
                scaffold_change=ScaffoldChange.INCREASE,
            )
            self.consecutive_wrong = 0
        elif metrics.accuracy >= t.too_easy_accuracy and metrics.avg_time <= t.too_easy_avg_time:
            adjustment = Adjustment(
                Action.LEVEL_UP,
                "You're flying through these!",
                amount=1,
                scaffold_change=ScaffoldChange.REDUCE,
            )
        elif metrics.accuracy < t.too_hard_accuracy or metrics.avg_time > t.too_hard_avg_time:
            adjustment = Adjustment(
                Action.LEVEL_DOWN,
                "These seem tricky - let's practice more",
                amount=1,
                scaffold_change=ScaffoldChange.INCREASE,
            )
        else:
            adjustment = Adjustment(Action.CONTINUE, "Nice steady work - keep going")

        adjustment.metrics = metrics
        self._apply_level_change(adjustment)
        self._apply_scaffold_change(adjustment)
        return adjustment

    def calculate_metrics(self) -> Metrics:
        """Accuracy and mean time over the recent window."""
        if not self.recent_results:
            return Metrics(accuracy=0.5, avg_time=10.0, sample_size=0)

        size = len(self.recent_results)
        correct = sum(1 for r in self.recent_results if r.correct)
        total_time = sum(r.time for r in self.recent_results)
        return Metrics(
            accuracy=correct / size,
            avg_time=total_time / size,
            sample_size=size,
        )

    def _apply_level_change(self, adjustment: Adjustment) -> None:
        amount = adjustment.amount or 1
        if adjustment.action == Action.LEVEL_UP:
            self.current_level = min(self.max_level(), self.current_level + amount)
            direction = "up"
        elif adjustment.action == Action.LEVEL_DOWN:
            self.current_level = max(1, self.current_level - amount)
            direction = "down"
        else:
            return
        self.session_stats.level_changes.append(
            LevelChange(direction=direction, level=self.current_level, timestamp=self._clock())
        )

    def _apply_scaffold_change(self, adjustment: Adjustment) -> None:
        if adjustment.scaffold_change == ScaffoldChange.REDUCE:
            self.scaffolding_level = self.scaffolding_level.reduced()
        elif adjustment.scaffold_change == ScaffoldChange.INCREASE:
            self.scaffolding_level = self.scaffolding_level.increased()

    # --- Skill selection ---

    def set_skill(self, skill_id: str, start_level: Optional[int] = None) -> None:
        """Switch skill; without a start level, calibrate from the middle level."""
        self.current_skill = skill_id

        if start_level is not None:
            self.current_level = min(max(1, int(start_level)), self.max_level(skill_id))
            self.is_calibrating = False
        else:
            self.current_level = math.ceil(self.max_level(skill_id) / 2)
            self.is_calibrating = True
            self.calibration_problems = 0

        self.consecutive_correct = 0
        self.consecutive_wrong = 0

    # --- Read-only views ---

    def detect_state(self) -> LearnerState:
        """Spot guessing, distraction or a downturn in the recent window."""
        t = self.thresholds
        results = list(self.recent_results)
        if len(results) < 2:
            return LearnerState.NORMAL

        last_two = results[-2:]
        avg_time = sum(r.time for r in last_two) / 2
        accuracy = sum(1 for r in last_two if r.correct) / 2

        if accuracy < t.frustrated_accuracy and avg_time < t.frustrated_avg_time:
            return LearnerState.FRUSTRATED

        if avg_time > t.distracted_avg_time:
            return LearnerState.DISTRACTED

        # Earliest two vs latest two; the middle of a 5-wide window is ignored
        if len(results) >= 4:
            first_acc = sum(1 for r in results[:2] if r.correct) / 2
            last_acc = sum(1 for r in results[-2:] if r.correct) / 2
            if first_acc > t.declining_early_accuracy and last_acc < t.declining_late_accuracy:
                return LearnerState.DECLINING

        return LearnerState.NORMAL

    def get_session_summary(self) -> SessionSummary:
        stats = self.session_stats
        duration = (self._clock() - stats.start_time) / 60

        if stats.total_problems > 0:
            accuracy = int(_round_half_up(stats.correct / stats.total_problems * 100))
            avg_time = _round_half_up(stats.total_time / stats.total_problems, 1)
        else:
            accuracy = 0
            avg_time = 0.0

        return SessionSummary(
            duration_minutes=int(_round_half_up(duration)),
            total_problems=stats.total_problems,
            correct=stats.correct,
            accuracy_percent=accuracy,
            avg_time_seconds=avg_time,
            skills_attempted=sorted(stats.skills_attempted),
            level_changes=list(stats.level_changes),
            final_level=self.current_level,
            final_scaffold=self.scaffolding_level,
        )

    # --- Lifecycle ---

    def reset(self) -> None:
        """Start a new session; the current skill and level are kept."""
        self.recent_results.clear()
        self.session_stats = SessionStats(start_time=self._clock())
        self.consecutive_correct = 0
        self.consecutive_wrong = 0
        self.is_calibrating = True
        self.calibration_problems = 0
        self.scaffolding_level = ScaffoldLevel.FULL
