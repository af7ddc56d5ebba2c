"""Configuration model for Number Garden."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class AdaptiveThresholds(BaseModel):
    """Tuning constants for the adaptive difficulty engine."""
    recent_window: int = 5
    calibration_max: int = 5
    # Calibration: correct faster than these jumps up by 2 / by 1
    calibration_fast_seconds: float = 5.0
    calibration_steady_seconds: float = 10.0
    too_easy_accuracy: float = 0.9
    too_easy_avg_time: float = 5.0
    too_hard_accuracy: float = 0.6
    too_hard_avg_time: float = 20.0
    bump_up_streak: int = 3
    bump_down_streak: int = 2
    # detect_state
    frustrated_accuracy: float = 0.5
    frustrated_avg_time: float = 3.0
    distracted_avg_time: float = 30.0
    declining_early_accuracy: float = 0.7
    declining_late_accuracy: float = 0.4


class ClaudeConfig(BaseModel):
    api_key: Optional[str] = Field(default=None)
    model: str = "claude-sonnet-4-6"
    max_tokens: int = 200

    def get_api_key(self) -> Optional[str]:
        return self.api_key or os.environ.get("ANTHROPIC_API_KEY")

    def get_model(self) -> str:
        return os.environ.get("NUMBERGARDEN_CLAUDE_MODEL") or self.model


class Settings(BaseModel):
    student_name: str = "Wei Wei"
    log_level: str = "WARNING"
    claude: ClaudeConfig = Field(default_factory=ClaudeConfig)
    adaptive: AdaptiveThresholds = Field(default_factory=AdaptiveThresholds)
    warmup_problems: int = 3
    gold_per_correct: int = 5
    data_dir: Path = Path.home() / ".numbergarden"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        config_path = config_path or (Path.home() / ".numbergarden" / "config.yaml")
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.data_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
