"""Tests for the SQLite progress store."""

from numbergarden.state.progress import ProgressStore, SkillStats


class TestLevels:
    def test_empty(self, progress):
        assert progress.get_levels() == {}

    def test_keeps_highest(self, progress):
        progress.save_level("addition_small", 3)
        progress.save_level("addition_small", 2)
        assert progress.get_levels() == {"addition_small": 3}
        progress.save_level("addition_small", 4)
        assert progress.get_levels()["addition_small"] == 4

    def test_persists_across_instances(self, progress):
        progress.save_level("navigator_find", 2)
        again = ProgressStore(db_path=progress.db_path)
        assert again.get_levels() == {"navigator_find": 2}


class TestStats:
    def test_unknown_skill(self, progress):
        stats = progress.get_skill_stats("nope")
        assert stats == SkillStats("nope")
        assert stats.accuracy == 0.0
        assert stats.avg_time == 0.0

    def test_record_accumulates(self, progress):
        progress.record_attempt("addition_small", True, 4.0)
        progress.record_attempt("addition_small", False, 6.0)
        stats = progress.record_attempt("addition_small", True, 5.0)
        assert stats.attempts == 3
        assert stats.correct == 2
        assert stats.total_time == 15.0
        assert stats.avg_time == 5.0
        assert progress.get_stats()["addition_small"] == stats


class TestSessions:
    def test_last_session(self, progress):
        assert progress.get_last_session() is None
        progress.save_last_session({"totalProblems": 4, "accuracy": 75})
        progress.save_last_session({"totalProblems": 8, "accuracy": 50})
        assert progress.get_last_session() == {"totalProblems": 8, "accuracy": 50}


class TestReset:
    def test_reset_skill(self, progress):
        progress.save_level("a", 2)
        progress.save_level("b", 1)
        progress.record_attempt("a", True, 3)
        progress.reset_skill("a")
        assert progress.get_levels() == {"b": 1}
        assert "a" not in progress.get_stats()

    def test_reset_all(self, progress):
        progress.save_level("a", 2)
        progress.record_attempt("a", True, 3)
        progress.save_last_session({"totalProblems": 1})
        progress.reset_all()
        assert progress.get_levels() == {}
        assert progress.get_stats() == {}
        assert progress.get_last_session() is None
