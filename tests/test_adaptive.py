"""Tests for the adaptive difficulty engine."""

from __future__ import annotations

import random

from numbergarden.config.settings import AdaptiveThresholds
from numbergarden.engine.adaptive import (
    Action,
    AdaptiveDifficultyEngine,
    LearnerState,
    ScaffoldChange,
    ScaffoldLevel,
)


class TestScaffoldLevel:
    def test_order(self):
        assert [s.value for s in ScaffoldLevel.ordered()] == ["full", "partial", "peek", "none"]

    def test_reduce_steps_toward_none(self):
        assert ScaffoldLevel.FULL.reduced() == ScaffoldLevel.PARTIAL
        assert ScaffoldLevel.PARTIAL.reduced() == ScaffoldLevel.PEEK
        assert ScaffoldLevel.PEEK.reduced() == ScaffoldLevel.NONE

    def test_increase_steps_toward_full(self):
        assert ScaffoldLevel.NONE.increased() == ScaffoldLevel.PEEK
        assert ScaffoldLevel.PARTIAL.increased() == ScaffoldLevel.FULL

    def test_saturates_at_ends(self):
        assert ScaffoldLevel.NONE.reduced() == ScaffoldLevel.NONE
        assert ScaffoldLevel.FULL.increased() == ScaffoldLevel.FULL


class TestSetSkill:
    def test_unknown_skill_calibrates_from_middle_of_five(self, engine):
        engine.set_skill("x")
        assert engine.current_skill == "x"
        assert engine.current_level == 3
        assert engine.is_calibrating
        assert engine.calibration_problems == 0

    def test_middle_level_rounds_up(self, engine):
        engine.set_skill("navigator_find")  # max level 3
        assert engine.current_level == 2

    def test_start_level_skips_calibration(self, engine):
        engine.set_skill("addition_small", start_level=4)
        assert engine.current_level == 4
        assert not engine.is_calibrating

    def test_start_level_above_max_is_clamped(self, engine):
        engine.set_skill("navigator_find", start_level=9)  # max level 3
        assert engine.current_level == 3
        assert not engine.is_calibrating

    def test_start_level_below_one_is_clamped(self, engine):
        engine.set_skill("navigator_find", start_level=0)
        assert engine.current_level == 1
        engine.set_skill("x", start_level=-4)
        assert engine.current_level == 1

    def test_resets_streaks(self, engine):
        engine.set_skill("x", start_level=2)
        engine.record_result(True, 12)
        engine.record_result(True, 12)
        assert engine.consecutive_correct == 2
        engine.set_skill("y")
        assert engine.consecutive_correct == 0
        assert engine.consecutive_wrong == 0

    def test_without_registry_defaults_to_five(self, clock):
        engine = AdaptiveDifficultyEngine(clock=clock)
        engine.set_skill("addition_small")
        assert engine.current_level == 3
        assert engine.max_level() == 5


class TestCalibration:
    def test_fast_correct_then_wrong(self, engine):
        engine.set_skill("x")

        adj = engine.record_result(True, 3)
        assert adj.action == Action.LEVEL_UP
        assert adj.amount == 2
        assert engine.current_level == 5

        adj = engine.record_result(False, 8)
        assert adj.action == Action.LEVEL_DOWN
        assert adj.amount == 1
        assert engine.current_level == 4

    def test_steady_correct_moves_up_one(self, engine):
        engine.set_skill("x")
        adj = engine.record_result(True, 7)
        assert adj.action == Action.LEVEL_UP
        assert adj.amount == 1
        assert engine.current_level == 4

    def test_slow_correct_continues(self, engine):
        engine.set_skill("x")
        adj = engine.record_result(True, 10)
        assert adj.action == Action.CONTINUE
        assert adj.reason
        assert engine.current_level == 3

    def test_jump_clamps_at_max_level(self, engine):
        engine.set_skill("navigator_find")  # starts at 2 of 3
        adj = engine.record_result(True, 1)
        assert adj.action == Action.LEVEL_UP
        assert engine.current_level == 3
        change = engine.session_stats.level_changes[-1]
        assert change.direction == "up"
        assert change.level == 3

    def test_level_down_clamps_at_one(self, engine):
        engine.set_skill("navigator_find")
        engine.record_result(False, 5)
        engine.record_result(False, 5)
        assert engine.current_level == 1
        assert [c.level for c in engine.session_stats.level_changes] == [1, 1]

    def test_ends_after_exactly_five_results(self, engine):
        engine.set_skill("x")
        flags = []
        for i in range(7):
            adj = engine.record_result(i % 2 == 0, 12)
            flags.append(adj.calibration_complete)
            if i < 4:
                assert engine.is_calibrating
        assert flags == [False, False, False, False, True, False, False]
        assert not engine.is_calibrating

    def test_found_level_is_after_final_adjustment(self, engine):
        engine.set_skill("x")
        for _ in range(4):
            engine.record_result(True, 12)
        adj = engine.record_result(True, 7)
        assert adj.calibration_complete
        assert adj.found_level == 4
        assert engine.current_level == 4

    def test_calibration_does_not_change_scaffold(self, engine):
        engine.set_skill("x")
        for _ in range(5):
            engine.record_result(True, 1)
        assert engine.scaffolding_level == ScaffoldLevel.FULL


class TestAdaptivePolicy:
    def test_correct_streak_levels_up(self, engine):
        engine.set_skill("x", start_level=2)

        first = engine.record_result(True, 12)
        second = engine.record_result(True, 12)
        assert first.action == Action.CONTINUE
        assert second.action == Action.CONTINUE

        third = engine.record_result(True, 12)
        assert third.action == Action.LEVEL_UP
        assert third.amount == 1
        assert third.scaffold_change == ScaffoldChange.REDUCE
        assert engine.consecutive_correct == 0
        assert engine.current_level == 3
        assert engine.scaffolding_level == ScaffoldLevel.PARTIAL

    def test_wrong_streak_levels_down(self, engine):
        engine.set_skill("x", start_level=3)
        engine.record_result(False, 8)  # too hard by accuracy
        assert engine.current_level == 2

        adj = engine.record_result(False, 8)
        assert adj.action == Action.LEVEL_DOWN
        assert adj.scaffold_change == ScaffoldChange.INCREASE
        assert adj.reason == "Let's slow down and try an easier one"
        assert engine.consecutive_wrong == 0
        assert engine.current_level == 1

    def test_too_easy_by_metrics(self, engine):
        engine.set_skill("x", start_level=1)
        adj = engine.record_result(True, 2)
        assert adj.action == Action.LEVEL_UP
        assert adj.scaffold_change == ScaffoldChange.REDUCE
        assert adj.metrics.accuracy == 1.0
        assert engine.current_level == 2

    def test_too_slow_by_metrics(self, engine):
        engine.set_skill("x", start_level=3)
        adj = engine.record_result(True, 25)
        assert adj.action == Action.LEVEL_DOWN
        assert adj.scaffold_change == ScaffoldChange.INCREASE
        assert engine.current_level == 2
        assert engine.scaffolding_level == ScaffoldLevel.FULL

    def test_continue_keeps_level_and_scaffold(self, engine):
        engine.set_skill("x", start_level=3)
        engine.scaffolding_level = ScaffoldLevel.PEEK
        adj = engine.record_result(True, 12)
        assert adj.action == Action.CONTINUE
        assert adj.scaffold_change is None
        assert engine.current_level == 3
        assert engine.scaffolding_level == ScaffoldLevel.PEEK

    def test_streak_at_max_level_still_logged(self, engine):
        engine.set_skill("x", start_level=5)
        for _ in range(3):
            adj = engine.record_result(True, 12)
        assert adj.action == Action.LEVEL_UP
        assert engine.current_level == 5
        assert engine.session_stats.level_changes[-1].level == 5

    def test_scaffold_reduces_to_none_and_stops(self, engine):
        engine.set_skill("x", start_level=1)
        for _ in range(6):
            engine.record_result(True, 1)
        assert engine.scaffolding_level == ScaffoldLevel.NONE


class TestInvariants:
    def test_level_stays_in_bounds(self, engine):
        rng = random.Random(3)
        engine.set_skill("multiplication_easy")  # max level 3
        for _ in range(200):
            engine.record_result(rng.random() < 0.6, rng.uniform(0, 40))
            assert 1 <= engine.current_level <= 3

    def test_streaks_mutually_exclusive(self, engine):
        rng = random.Random(11)
        engine.set_skill("x")
        for _ in range(200):
            engine.record_result(rng.random() < 0.5, rng.uniform(0, 15))
            assert not (engine.consecutive_correct > 0 and engine.consecutive_wrong > 0)

    def test_recent_window_evicts_oldest(self, engine):
        engine.set_skill("x")
        for t in range(1, 7):
            engine.record_result(True, t)
            assert len(engine.recent_results) <= 5
        assert [r.time for r in engine.recent_results] == [2, 3, 4, 5, 6]

    def test_custom_window(self, clock):
        engine = AdaptiveDifficultyEngine(
            thresholds=AdaptiveThresholds(recent_window=3), clock=clock
        )
        for _ in range(5):
            engine.record_result(True, 12)
        assert len(engine.recent_results) == 3

    def test_result_records_skill_and_level(self, engine, clock):
        engine.set_skill("x", start_level=2)
        engine.record_result(False, 4)
        result = engine.recent_results[-1]
        assert result.skill == "x"
        assert result.level == 2
        assert result.timestamp == clock.now

    def test_negative_time_counts_as_zero(self, engine):
        engine.set_skill("x", start_level=2)
        engine.record_result(True, -5)
        assert engine.recent_results[-1].time == 0.0
        assert engine.session_stats.total_time == 0.0


class TestMetrics:
    def test_defaults_without_data(self, engine):
        metrics = engine.calculate_metrics()
        assert metrics.accuracy == 0.5
        assert metrics.avg_time == 10
        assert metrics.sample_size == 0

    def test_over_window(self, engine):
        engine.set_skill("x")
        engine.record_result(True, 4)
        engine.record_result(False, 8)
        metrics = engine.calculate_metrics()
        assert metrics.accuracy == 0.5
        assert metrics.avg_time == 6
        assert metrics.sample_size == 2


class TestDetectState:
    def _feed(self, engine, results):
        engine.set_skill("x", start_level=3)
        for correct, t in results:
            engine.record_result(correct, t)

    def test_normal_with_too_few_results(self, engine):
        self._feed(engine, [(False, 1)])
        assert engine.detect_state() == LearnerState.NORMAL

    def test_frustrated_fast_guessing(self, engine):
        self._feed(engine, [(False, 1), (False, 2)])
        assert engine.detect_state() == LearnerState.FRUSTRATED

    def test_half_right_is_not_frustrated(self, engine):
        self._feed(engine, [(False, 1), (True, 1)])
        assert engine.detect_state() == LearnerState.NORMAL

    def test_distracted_long_pauses(self, engine):
        self._feed(engine, [(True, 40), (True, 35)])
        assert engine.detect_state() == LearnerState.DISTRACTED

    def test_declining(self, engine):
        self._feed(engine, [(True, 10), (True, 10), (False, 10), (False, 10)])
        assert engine.detect_state() == LearnerState.DECLINING

    def test_declining_ignores_middle_of_window(self, engine):
        self._feed(engine, [(True, 10), (True, 10), (True, 10), (False, 10), (False, 10)])
        # Window is full: earliest two are correct, latest two wrong
        assert engine.detect_state() == LearnerState.DECLINING

    def test_read_only(self, engine):
        self._feed(engine, [(False, 1), (False, 2)])
        snapshot = (
            list(engine.recent_results),
            engine.current_level,
            engine.consecutive_wrong,
        )
        assert engine.detect_state() == engine.detect_state() == LearnerState.FRUSTRATED
        assert snapshot == (
            list(engine.recent_results),
            engine.current_level,
            engine.consecutive_wrong,
        )


class TestSessionSummary:
    def test_accuracy_and_average(self, engine, clock):
        engine.set_skill("x")
        for correct in (True, True, False, True):
            engine.record_result(correct, 10)
        clock.advance(90)

        summary = engine.get_session_summary()
        assert summary.total_problems == 4
        assert summary.correct == 3
        assert summary.accuracy_percent == 75
        assert summary.avg_time_seconds == 10.0
        assert summary.duration_minutes == 2  # 1.5 rounds half up
        assert summary.skills_attempted == ["x"]
        assert summary.final_level == engine.current_level
        assert summary.final_scaffold == engine.scaffolding_level

    def test_rounds_half_up(self, engine):
        engine.set_skill("x", start_level=3)
        engine.record_result(True, 1)
        for _ in range(7):
            engine.record_result(False, 1)
        assert engine.get_session_summary().accuracy_percent == 13  # 12.5

    def test_empty_session(self, engine):
        summary = engine.get_session_summary()
        assert summary.total_problems == 0
        assert summary.accuracy_percent == 0
        assert summary.avg_time_seconds == 0

    def test_skills_attempted_is_a_set(self, engine):
        engine.set_skill("a", start_level=1)
        engine.record_result(True, 12)
        engine.set_skill("b", start_level=1)
        engine.record_result(True, 12)
        engine.set_skill("a", start_level=1)
        engine.record_result(True, 12)
        assert sorted(engine.get_session_summary().skills_attempted) == ["a", "b"]

    def test_no_skill_not_listed(self, engine):
        engine.record_result(True, 4)
        summary = engine.get_session_summary()
        assert summary.total_problems == 1
        assert summary.skills_attempted == []

    def test_to_dict_shape(self, engine):
        engine.set_skill("x")
        engine.record_result(True, 3)
        d = engine.get_session_summary().to_dict()
        assert d["totalProblems"] == 1
        assert d["finalScaffold"] == "full"
        assert d["levelProgression"][0]["direction"] == "up"
        assert d["levelProgression"][0]["level"] == 5


class TestReset:
    def test_clears_session(self, engine):
        engine.set_skill("x", start_level=2)
        for _ in range(6):
            engine.record_result(True, 1)
        level = engine.current_level

        engine.reset()

        summary = engine.get_session_summary()
        assert summary.total_problems == 0
        assert summary.accuracy_percent == 0
        assert summary.skills_attempted == []
        assert summary.level_changes == []
        assert len(engine.recent_results) == 0
        assert engine.consecutive_correct == 0
        assert engine.is_calibrating
        assert engine.calibration_problems == 0
        assert engine.scaffolding_level == ScaffoldLevel.FULL
        assert engine.current_skill == "x"
        assert engine.current_level == level


class TestAdjustmentDict:
    def test_calibration_complete_fields(self, engine):
        engine.set_skill("x")
        for _ in range(5):
            adj = engine.record_result(True, 12)
        d = adj.to_dict()
        assert d["action"] == "continue"
        assert d["calibrationComplete"] is True
        assert d["foundLevel"] == 3
        assert "scaffoldChange" not in d

    def test_adaptive_fields(self, engine):
        engine.set_skill("x", start_level=1)
        d = engine.record_result(True, 2).to_dict()
        assert d == {
            "action": "level_up",
            "reason": "You're flying through these!",
            "amount": 1,
            "scaffoldChange": "reduce",
            "metrics": {"accuracy": 1.0, "avgTime": 2.0, "sampleSize": 1},
        }
