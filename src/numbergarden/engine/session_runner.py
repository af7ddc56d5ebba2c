"""Practice session state machine: greeting → warmup → calibration → practice → summary."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from numbergarden.config.settings import Settings
from numbergarden.engine.adaptive import (
    AdaptiveDifficultyEngine,
    Adjustment,
    LearnerState,
    SessionSummary,
)
from numbergarden.engine.problems import Problem, ProblemGenerator
from numbergarden.engine.scaffolding import Scaffold, build_scaffold
from numbergarden.engine.tutor_voice import TutorVoice
from numbergarden.skills.registry import DEFAULT_SKILL, SkillRegistry
from numbergarden.state.progress import ProgressStore

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    GREETING = "greeting"
    WARMUP = "warmup"  # Easy level-1 problems on a familiar skill
    CALIBRATION = "calibration"  # Engine probing for a starting level
    PRACTICE = "practice"
    SUMMARY = "summary"  # Session finished


@dataclass
class Medal:
    skill_id: str
    medal: str  # "bronze", "silver", "gold"

    def to_dict(self) -> dict:
        return {"skill": self.skill_id, "type": self.medal}


@dataclass
class NextProblem:
    problem: Problem
    scaffold: Scaffold
    phase: SessionPhase
    skill_id: str
    level: int
    message: Optional[str] = None  # Set when the phase just changed


@dataclass
class AnswerOutcome:
    correct: bool
    expected: int
    adjustment: Adjustment
    learner_state: LearnerState
    message: str
    gold_earned: int = 0
    suggest_break: bool = False
    new_medal: Optional[Medal] = None


@dataclass
class SessionReport:
    summary: SessionSummary
    medals: list[Medal]
    gold: int
    message: str


@dataclass
class SessionState:
    phase: SessionPhase = SessionPhase.GREETING
    problems_in_phase: int = 0
    current_problem: Optional[Problem] = None
    hint_attempts: int = 0
    gold: int = 0
    medals: list[Medal] = field(default_factory=list)
    levels_reached: dict[str, int] = field(default_factory=dict)


class SessionRunner:
    """Drives one practice session around an adaptive engine."""

    def __init__(
        self,
        engine: AdaptiveDifficultyEngine,
        registry: SkillRegistry,
        progress: ProgressStore,
        voice: TutorVoice,
        generator: Optional[ProblemGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self.engine = engine
        self.registry = registry
        self.progress = progress
        self.voice = voice
        self.generator = generator or ProblemGenerator()
        self.settings = settings or voice.settings
        self.state = SessionState()

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    # --- Phases ---

    def start(self) -> str:
        """Open a fresh session, returning Buzzy's greeting."""
        self.engine.reset()
        self.voice.clear_history()
        self.state = SessionState()

        greeting = self.voice.greeting(
            self.settings.student_name, self.progress.get_last_session()
        )
        self._enter_warmup()
        return greeting

    def _enter_warmup(self) -> None:
        skill_id = self.registry.mastered_skill(self.progress.get_stats()) or DEFAULT_SKILL
        self.engine.set_skill(skill_id, 1)
        self._set_phase(SessionPhase.WARMUP)

    def _enter_calibration(self) -> str:
        skill_id = self.registry.recommended_skill(
            self.progress.get_levels(), self.progress.get_stats()
        )
        self.engine.set_skill(skill_id)
        self._set_phase(SessionPhase.CALIBRATION)
        return "Now let's find your level! I'll try a few different problems..."

    def _enter_practice(self) -> str:
        self._set_phase(SessionPhase.PRACTICE)
        skill = self.registry.get_skill(self.engine.current_skill)
        name = skill.name if skill else "practice"
        return f"Bee-rilliant! You're ready for Level {self.engine.current_level} {name}! Let's go!"

    def _set_phase(self, phase: SessionPhase) -> None:
        logger.info("Session phase %s -> %s", self.state.phase.value, phase.value)
        self.state.phase = phase
        self.state.problems_in_phase = 0

    def select_skill(self, skill_id: str) -> str:
        """Jump straight to practising an unlocked skill (calibrating first)."""
        if not self.registry.is_unlocked(skill_id, self.progress.get_levels()):
            raise ValueError(f"Skill is locked: {skill_id}")
        self.engine.set_skill(skill_id)
        self._set_phase(SessionPhase.PRACTICE)
        skill = self.registry.get_skill(skill_id)
        return f"Let's practice {skill.name if skill else skill_id}!"

    # --- Problems ---

    def next_problem(self) -> NextProblem:
        if self.state.phase == SessionPhase.GREETING:
            raise ValueError("No session started")
        if self.state.phase == SessionPhase.SUMMARY:
            raise ValueError("Session already finished")

        message = None
        if (
            self.state.phase == SessionPhase.WARMUP
            and self.state.problems_in_phase >= self.settings.warmup_problems
        ):
            message = self._enter_calibration()
        elif self.state.phase == SessionPhase.CALIBRATION and not self.engine.is_calibrating:
            message = self._enter_practice()

        skill_id = self.engine.current_skill or DEFAULT_SKILL
        level = self.engine.current_level
        problem = self._make_problem(skill_id, level)
        scaffold = build_scaffold(problem, self.engine.scaffolding_level)

        self.state.current_problem = problem
        self.state.hint_attempts = 0

        return NextProblem(
            problem=problem,
            scaffold=scaffold,
            phase=self.state.phase,
            skill_id=skill_id,
            level=level,
            message=message,
        )

    def _make_problem(self, skill_id: str, level: int) -> Problem:
        if skill_id == "word_problems":
            skill = self.registry.get_skill(skill_id)
            themed = self.voice.word_problem(
                skill.name if skill else skill_id, level, self.settings.student_name
            )
            if themed is not None:
                return themed
        return self.generator.generate(skill_id, level)

    def submit(self, answer: int, time_seconds: float) -> AnswerOutcome:
        """Check an answer to the current problem and feed it to the engine."""
        problem = self.state.current_problem
        if problem is None:
            raise ValueError("No problem in progress")

        correct = answer == problem.answer
        skill_id = self.engine.current_skill or DEFAULT_SKILL
        level = self.engine.current_level

        adjustment = self.engine.record_result(correct, time_seconds, problem)
        stats = self.progress.record_attempt(skill_id, correct, max(0.0, time_seconds))

        gold = 0
        new_medal = None
        suggest_break = False
        learner_state = LearnerState.NORMAL

        if correct:
            reached = self.state.levels_reached.get(skill_id, 0)
            self.state.levels_reached[skill_id] = max(reached, level)
            gold = self.settings.gold_per_correct
            self.state.gold += gold
            new_medal = self._check_medal(skill_id, stats)
            message = self.voice.correct_response(
                problem, time_seconds, self.engine.consecutive_correct
            )
        else:
            learner_state = self.engine.detect_state()
            if learner_state in (LearnerState.FRUSTRATED, LearnerState.DISTRACTED):
                suggest_break = True
                message = self.voice.break_suggestion(learner_state.value)
            else:
                message = self.voice.incorrect_response(problem, answer, learner_state.value)

        self.state.problems_in_phase += 1
        self.state.current_problem = None

        return AnswerOutcome(
            correct=correct,
            expected=problem.answer,
            adjustment=adjustment,
            learner_state=learner_state,
            message=message,
            gold_earned=gold,
            suggest_break=suggest_break,
            new_medal=new_medal,
        )

    def _check_medal(self, skill_id: str, stats) -> Optional[Medal]:
        medal = self.registry.get_medal(stats)
        if medal is None:
            return None

        existing = next((m for m in self.state.medals if m.skill_id == skill_id), None)
        if existing and self.registry.medal_rank(medal) <= self.registry.medal_rank(existing.medal):
            return None

        self.state.medals = [m for m in self.state.medals if m.skill_id != skill_id]
        awarded = Medal(skill_id=skill_id, medal=medal)
        self.state.medals.append(awarded)
        logger.info("Medal %s earned for %s", medal, skill_id)
        return awarded

    def hint(self) -> str:
        problem = self.state.current_problem
        if problem is None:
            raise ValueError("No problem in progress")
        self.state.hint_attempts += 1
        return self.voice.hint(problem, self.state.hint_attempts)

    # --- Wrap-up ---

    def finish(self) -> SessionReport:
        """End the session, persist progress and return the summary."""
        summary = self.engine.get_session_summary()

        for skill_id, level in self.state.levels_reached.items():
            self.progress.save_level(skill_id, level)

        summary_dict = summary.to_dict()
        if summary.total_problems > 0:
            self.progress.save_last_session(summary_dict)

        medal_names = [f"{m.medal} {m.skill_id}" for m in self.state.medals]
        message = self.voice.session_wrap_up(summary_dict, medal_names, self.state.gold)

        self._set_phase(SessionPhase.SUMMARY)
        self.state.current_problem = None
        self.voice.clear_history()

        return SessionReport(
            summary=summary,
            medals=list(self.state.medals),
            gold=self.state.gold,
            message=message,
        )
