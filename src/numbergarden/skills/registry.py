"""Skill catalog lookup, unlock rules, medals and recommendations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from numbergarden.engine.skill_loader import Skill, SkillCatalog, load_catalog
from numbergarden.state.progress import SkillStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEVEL = 5
DEFAULT_SKILL = "navigator_find"

MEDAL_RANKS = {"bronze": 1, "silver": 2, "gold": 3}


class SkillRegistry:
    """Loads the skill tree and answers questions about it."""

    def __init__(self, catalog_path: Path | None = None):
        self.catalog_path = catalog_path or (
            Path(__file__).parent / "number_garden.yaml"
        )
        self.catalog: SkillCatalog = load_catalog(self.catalog_path)
        self._by_id = {s.id: s for s in self.catalog.skills}
        logger.debug("Loaded %d skills from %s", len(self._by_id), self.catalog_path)

    def list_skills(self) -> list[Skill]:
        return list(self.catalog.skills)

    def get_skill(self, skill_id: Optional[str]) -> Skill | None:
        if skill_id is None:
            return None
        return self._by_id.get(skill_id)

    def max_level(self, skill_id: Optional[str]) -> int:
        skill = self.get_skill(skill_id)
        return skill.max_level if skill else DEFAULT_MAX_LEVEL

    def branches(self) -> dict[str, list[Skill]]:
        """Group skills by branch, preserving catalog order."""
        grouped: dict[str, list[Skill]] = {}
        for skill in self.catalog.skills:
            grouped.setdefault(skill.branch, []).append(skill)
        return grouped

    def branch_name(self, branch: str) -> str:
        return self.catalog.branch_names.get(branch, branch)

    def is_unlocked(self, skill_id: str, progress: Mapping[str, int]) -> bool:
        """A skill is unlocked once every prerequisite reached its level."""
        skill = self.get_skill(skill_id)
        if skill is None:
            return False
        return all(
            progress.get(req_id, 0) >= req_level
            for req_id, req_level in skill.requirements()
        )

    def get_medal(self, stats: Optional[SkillStats]) -> str | None:
        """Return the best medal earned by the given stats, if any."""
        medals = self.catalog.medals
        bronze = medals.get("bronze")
        if stats is None or bronze is None or stats.attempts < bronze.min_attempts:
            return None

        accuracy = stats.accuracy
        avg_time = stats.avg_time

        for name in ("gold", "silver"):
            rule = medals.get(name)
            if rule is None:
                continue
            if (
                accuracy >= rule.accuracy
                and stats.attempts >= rule.min_attempts
                and (rule.avg_time_under is None or avg_time <= rule.avg_time_under)
            ):
                return name
        if accuracy >= bronze.accuracy:
            return "bronze"
        return None

    @staticmethod
    def medal_rank(medal: Optional[str]) -> int:
        return MEDAL_RANKS.get(medal or "", 0)

    def recommended_skill(
        self,
        progress: Mapping[str, int],
        stats: Mapping[str, SkillStats],
    ) -> str:
        """Pick the unlocked, unfinished skill most worth practising next."""
        best_id: Optional[str] = None
        best_priority = float("-inf")

        for index, skill in enumerate(self.catalog.skills):
            if not self.is_unlocked(skill.id, progress):
                continue
            level = progress.get(skill.id, 0)
            if level >= skill.max_level:
                continue

            skill_stats = stats.get(skill.id) or SkillStats(skill_id=skill.id)
            medal = self.get_medal(skill_stats)

            priority = 0.0
            if level > 0 and not medal:
                priority += 10
            if 0 < skill_stats.attempts < 30:
                priority += 5
            if skill_stats.attempts > 5:
                accuracy = skill_stats.accuracy
                if 0.5 <= accuracy < 0.7:
                    priority += 8
            # Earlier skills in the tree win ties
            priority -= index * 0.1

            if priority > best_priority:
                best_id, best_priority = skill.id, priority

        return best_id or DEFAULT_SKILL

    def mastered_skill(self, stats: Mapping[str, SkillStats]) -> str | None:
        """First skill whose stats earn any medal."""
        for skill_id, skill_stats in stats.items():
            if self.get_medal(skill_stats):
                return skill_id
        return None
