"""YAML skill catalog parser for Number Garden."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class Skill:
    id: str
    name: str
    branch: str
    description: str = ""
    icon: str = ""
    max_level: int = 5
    requires: list[str] = field(default_factory=list)  # "skill_id:level"
    level_descriptions: dict[int, str] = field(default_factory=dict)

    def requirements(self) -> list[tuple[str, int]]:
        """Split ``requires`` entries into (skill_id, level) pairs."""
        pairs = []
        for req in self.requires:
            skill_id, _, level = req.partition(":")
            pairs.append((skill_id, int(level or 1)))
        return pairs


@dataclass
class MedalRule:
    accuracy: float
    min_attempts: int
    avg_time_under: Optional[float] = None


@dataclass
class SkillCatalog:
    title: str
    skills: list[Skill]
    medals: dict[str, MedalRule] = field(default_factory=dict)
    branch_names: dict[str, str] = field(default_factory=dict)


def _parse_skill(raw: dict) -> Skill:
    return Skill(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        branch=raw.get("branch", "general"),
        description=raw.get("description", ""),
        icon=raw.get("icon", ""),
        max_level=int(raw.get("max_level", 5)),
        requires=list(raw.get("requires") or []),
        level_descriptions={
            int(k): str(v) for k, v in (raw.get("levels") or {}).items()
        },
    )


def _parse_medals(raw: Optional[dict]) -> dict[str, MedalRule]:
    if not raw:
        return {}
    return {
        name: MedalRule(
            accuracy=float(rule["accuracy"]),
            min_attempts=int(rule["min_attempts"]),
            avg_time_under=rule.get("avg_time_under"),
        )
        for name, rule in raw.items()
    }


def load_catalog(catalog_file: Path) -> SkillCatalog:
    """Load a skill catalog YAML file."""
    with open(catalog_file) as f:
        data = yaml.safe_load(f)

    c = data["catalog"]
    return SkillCatalog(
        title=c.get("title", catalog_file.stem),
        skills=[_parse_skill(raw) for raw in c.get("skills", [])],
        medals=_parse_medals(c.get("medals")),
        branch_names=c.get("branches", {}),
    )
