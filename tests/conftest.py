"""Shared fixtures for Number Garden tests."""

from __future__ import annotations

import random

import pytest

from numbergarden.config.settings import Settings
from numbergarden.engine.adaptive import AdaptiveDifficultyEngine
from numbergarden.engine.problems import ProblemGenerator
from numbergarden.engine.session_runner import SessionRunner
from numbergarden.engine.tutor_voice import TutorVoice
from numbergarden.skills.registry import SkillRegistry
from numbergarden.state.progress import ProgressStore


class FakeClock:
    """Manually advanced stand-in for time.time()."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def no_api_key(monkeypatch):
    """Keep tests offline: the tutor voice falls back to canned text."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("NUMBERGARDEN_CLAUDE_MODEL", raising=False)


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return SkillRegistry()


@pytest.fixture
def engine(registry, clock):
    return AdaptiveDifficultyEngine(registry=registry, clock=clock)


@pytest.fixture
def progress(tmp_path):
    return ProgressStore(db_path=tmp_path / "data" / "progress.db")


@pytest.fixture
def generator():
    return ProblemGenerator(rng=random.Random(7))


@pytest.fixture
def voice(settings):
    return TutorVoice(settings=settings)


@pytest.fixture
def runner(engine, registry, progress, voice, generator, settings):
    return SessionRunner(
        engine=engine,
        registry=registry,
        progress=progress,
        voice=voice,
        generator=generator,
        settings=settings,
    )
