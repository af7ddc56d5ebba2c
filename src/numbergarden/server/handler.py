"""Server handler: dispatches JSON-lines requests to the tutor components."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from numbergarden.config.settings import Settings
from numbergarden.engine.adaptive import AdaptiveDifficultyEngine, Adjustment
from numbergarden.engine.problems import ProblemGenerator
from numbergarden.engine.session_runner import AnswerOutcome, NextProblem, SessionRunner
from numbergarden.engine.tutor_voice import TutorVoice
from numbergarden.skills.registry import SkillRegistry
from numbergarden.state.progress import ProgressStore

from .protocol import Notification

logger = logging.getLogger(__name__)


def _next_problem_to_dict(nxt: NextProblem) -> dict:
    return {
        "problem": nxt.problem.to_dict(),
        "scaffold": nxt.scaffold.to_dict(),
        "phase": nxt.phase.value,
        "skillId": nxt.skill_id,
        "level": nxt.level,
        "message": nxt.message,
    }


def _outcome_to_dict(outcome: AnswerOutcome) -> dict:
    return {
        "correct": outcome.correct,
        "expected": outcome.expected,
        "adjustment": outcome.adjustment.to_dict(),
        "learnerState": outcome.learner_state.value,
        "message": outcome.message,
        "goldEarned": outcome.gold_earned,
        "suggestBreak": outcome.suggest_break,
        "newMedal": outcome.new_medal.to_dict() if outcome.new_medal else None,
    }


class ServerHandler:
    """Routes incoming requests to engine methods and returns result dicts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        write_notification: Optional[Callable[[Notification], None]] = None,
        registry: Optional[SkillRegistry] = None,
        progress: Optional[ProgressStore] = None,
        generator: Optional[ProblemGenerator] = None,
    ):
        self.settings = settings or Settings.load()
        self._write_notification = write_notification or (lambda n: None)

        self.registry = registry or SkillRegistry()
        self.progress = progress or ProgressStore(
            db_path=self.settings.data_dir / "progress.db"
        )
        self.voice = TutorVoice(settings=self.settings)
        self.engine = AdaptiveDifficultyEngine(
            registry=self.registry, thresholds=self.settings.adaptive
        )
        self.runner = SessionRunner(
            engine=self.engine,
            registry=self.registry,
            progress=self.progress,
            voice=self.voice,
            generator=generator,
            settings=self.settings,
        )

    async def dispatch(self, msg: dict) -> dict:
        """Route a request message to the appropriate handler method."""
        method = msg.get("method", "")
        params = msg.get("params") or {}

        handler_map = {
            "listSkills": self._list_skills,
            "getProgress": self._get_progress,
            "startSession": self._start_session,
            "nextProblem": self._next_problem,
            "submitAnswer": self._submit_answer,
            "getHint": self._get_hint,
            "selectSkill": self._select_skill,
            "finishSession": self._finish_session,
            "setSkill": self._set_skill,
            "recordResult": self._record_result,
            "detectState": self._detect_state,
            "getSessionSummary": self._get_session_summary,
            "resetEngine": self._reset_engine,
        }

        handler = handler_map.get(method)
        if handler is None:
            raise ValueError(f"Unknown method: {method}")

        logger.debug("dispatch %s", method)
        return await handler(params)

    def _notify_level_change(self, adjustment: Adjustment) -> None:
        if adjustment.changes_level:
            self._write_notification(Notification("levelChanged", {
                "skillId": self.engine.current_skill,
                "level": self.engine.current_level,
                "scaffold": self.engine.scaffolding_level.value,
                "reason": adjustment.reason,
            }))

    # --- Catalog & progress ---

    async def _list_skills(self, params: dict) -> dict:
        levels = self.progress.get_levels()
        stats = self.progress.get_stats()
        return {
            "skills": [
                {
                    "id": s.id,
                    "name": s.name,
                    "branch": s.branch,
                    "description": s.description,
                    "icon": s.icon,
                    "maxLevel": s.max_level,
                    "requires": s.requires,
                    "unlocked": self.registry.is_unlocked(s.id, levels),
                    "level": levels.get(s.id, 0),
                    "medal": self.registry.get_medal(stats.get(s.id)),
                }
                for s in self.registry.list_skills()
            ]
        }

    async def _get_progress(self, params: dict) -> dict:
        return {
            "levels": self.progress.get_levels(),
            "stats": {
                skill_id: {
                    "attempts": s.attempts,
                    "correct": s.correct,
                    "totalTime": s.total_time,
                }
                for skill_id, s in self.progress.get_stats().items()
            },
            "lastSession": self.progress.get_last_session(),
        }

    # --- Session flow ---

    async def _start_session(self, params: dict) -> dict:
        greeting = self.runner.start()
        return {"greeting": greeting, "phase": self.runner.phase.value}

    async def _next_problem(self, params: dict) -> dict:
        return _next_problem_to_dict(self.runner.next_problem())

    async def _submit_answer(self, params: dict) -> dict:
        outcome = self.runner.submit(int(params["answer"]), float(params["timeSeconds"]))
        self._notify_level_change(outcome.adjustment)
        return _outcome_to_dict(outcome)

    async def _get_hint(self, params: dict) -> dict:
        return {"hint": self.runner.hint()}

    async def _select_skill(self, params: dict) -> dict:
        message = self.runner.select_skill(params["skillId"])
        return {
            "message": message,
            "level": self.engine.current_level,
            "isCalibrating": self.engine.is_calibrating,
        }

    async def _finish_session(self, params: dict) -> dict:
        report = self.runner.finish()
        return {
            "summary": report.summary.to_dict(),
            "medals": [m.to_dict() for m in report.medals],
            "gold": report.gold,
            "message": report.message,
        }

    # --- Raw engine surface ---

    async def _set_skill(self, params: dict) -> dict:
        start_level = params.get("startLevel")
        self.engine.set_skill(
            params["skillId"], int(start_level) if start_level is not None else None
        )
        return self._engine_state()

    async def _record_result(self, params: dict) -> dict:
        adjustment = self.engine.record_result(
            bool(params["correct"]), float(params["timeSeconds"])
        )
        self._notify_level_change(adjustment)
        return {"adjustment": adjustment.to_dict(), **self._engine_state()}

    async def _detect_state(self, params: dict) -> dict:
        return {"state": self.engine.detect_state().value}

    async def _get_session_summary(self, params: dict) -> dict:
        return self.engine.get_session_summary().to_dict()

    async def _reset_engine(self, params: dict) -> dict:
        self.engine.reset()
        return self._engine_state()

    def _engine_state(self) -> dict:
        return {
            "skillId": self.engine.current_skill,
            "level": self.engine.current_level,
            "scaffold": self.engine.scaffolding_level.value,
            "isCalibrating": self.engine.is_calibrating,
            "calibrationProblems": self.engine.calibration_problems,
        }
