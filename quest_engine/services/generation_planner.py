# quest_engine/services/generation_planner.py
import datetime
import math
from typing import Dict, Iterable, List, Optional, Set

from quest_engine import config as app_config
from quest_engine.core.logger import setup_logging
from quest_engine.exceptions import InvalidConfiguration, TemplatePoolExhausted
from quest_engine.models.quest import (
    GenerationConfig, QuestGranularity, QuestPreferences, QuestTemplate,
)
from quest_engine.services.seeded_selector import SeededRandom, derive_seed, weighted_pick

logger = setup_logging("generation_planner")


class GenerationPlanner:
    """
    粒度ごとに、カテゴリのバランスと多様性を保ちながらテンプレートを選ぶ。
    乱数は日付+粒度から作るので、同じ入力なら必ず同じ結果になる。
    """

    def __init__(self, config: Optional[GenerationConfig] = None, preferences: Optional[QuestPreferences] = None):
        self.config = config or GenerationConfig.default()
        self.config.ensure_valid()
        self.preferences = preferences or QuestPreferences()
        self.diagnostics: List[TemplatePoolExhausted] = []

    # ==========================================
    # Public
    # ==========================================

    def plan(
        self,
        granularity: QuestGranularity,
        count: int,
        available_templates: Iterable[QuestTemplate],
        recently_completed_ids: Iterable[str],
        player_level: int,
        on_date: datetime.date,
        completed_template_ids: Optional[Iterable[str]] = None,
    ) -> List[QuestTemplate]:
        granularity = QuestGranularity(granularity)
        if count < 0:
            raise InvalidConfiguration("count", "count must not be negative")
        if count == 0:
            return []

        rng = SeededRandom(derive_seed(on_date.isoformat(), granularity.value))
        pool = self._eligible(
            granularity, available_templates, set(recently_completed_ids),
            player_level, on_date, set(completed_template_ids or []),
        )

        selected: List[QuestTemplate] = []
        selected_ids: Set[str] = set()
        used_categories: Set[str] = set()

        # 1. カテゴリごとに1つずつ (多様性の確保)
        if self.config.ensure_variety:
            for category in rng.shuffle(list(self.config.category_balance.keys())):
                if len(selected) >= count:
                    break
                if category in used_categories:
                    continue
                candidates = [t for t in pool if t.category.value == category and t.id not in selected_ids]
                picked = weighted_pick(candidates, lambda t: self._weight(t, used_categories), rng)
                if picked is None:
                    continue
                selected.append(picked)
                selected_ids.add(picked.id)
                used_categories.add(category)

        # 2. 残り枠を重み付きで埋める
        while len(selected) < count:
            remaining = [t for t in pool if t.id not in selected_ids]
            picked = weighted_pick(remaining, lambda t: self._weight(t, used_categories), rng)
            if picked is None:
                break
            selected.append(picked)
            selected_ids.add(picked.id)
            used_categories.add(picked.category.value)

        if len(selected) < count:
            shortage = TemplatePoolExhausted(granularity.value, count, len(selected))
            self.diagnostics.append(shortage)
            logger.warning(f"⚠️ {shortage.message}")

        return selected

    def difficulty_cap(self, player_level: int) -> int:
        """レベルに応じた難易度の上限 (1〜5)"""
        cap = math.ceil(player_level / 3) + self.config.max_difficulty_per_level - 1
        return max(1, min(5, cap))

    @staticmethod
    def level_tier(player_level: int) -> Dict:
        """レベル帯 (beginner / intermediate / advanced / expert) の設定"""
        for pool in app_config.QUEST_POOLS_BY_LEVEL:
            if pool["max_level"] is None or player_level <= pool["max_level"]:
                return pool
        return app_config.QUEST_POOLS_BY_LEVEL[-1]

    # ==========================================
    # Internal
    # ==========================================

    def _eligible(
        self,
        granularity: QuestGranularity,
        templates: Iterable[QuestTemplate],
        recent_ids: Set[str],
        player_level: int,
        on_date: datetime.date,
        completed_ids: Set[str],
    ) -> List[QuestTemplate]:
        difficulty_cap = self.difficulty_cap(player_level)
        tier = self.level_tier(player_level)
        seen: Set[str] = set()
        pool = []
        for t in templates:
            if t.id in seen:
                continue
            seen.add(t.id)
            if not t.allows(granularity):
                continue
            if t.level_requirement > player_level:
                continue
            if self.config.adapt_to_player_level:
                if t.difficulty > difficulty_cap or t.difficulty > tier["max_difficulty"]:
                    continue
                if t.category.value in tier["avoid_categories"]:
                    continue
            if t.seasonal_availability and on_date.month not in t.seasonal_availability:
                continue
            if granularity == QuestGranularity.SPECIAL and not t.window_contains(on_date):
                continue
            if any(pre not in completed_ids for pre in t.prerequisites):
                continue
            if self.config.consider_player_history and t.id in recent_ids:
                continue
            pool.append(t)
        return pool

    def _weight(self, template: QuestTemplate, used_categories: Set[str]) -> float:
        category = template.category.value
        weight = template.weight
        if category not in used_categories:
            weight *= app_config.FIRST_CATEGORY_BOOST
        weight *= self.config.category_balance.get(category, 1.0)
        if template.category in self.preferences.preferred_categories:
            weight *= app_config.PREFERRED_CATEGORY_BOOST
        if template.category in self.preferences.avoided_categories:
            weight *= app_config.AVOIDED_CATEGORY_PENALTY
        return weight

    def diagnostics_as_dicts(self) -> List[Dict]:
        return [d.to_dict() for d in self.diagnostics]
