# quest_engine/services/progression_engine.py
from typing import Any, Dict, List, Optional, Tuple

from quest_engine import config
from quest_engine.core.logger import setup_logging
from quest_engine.core.utils import round_half_up
from quest_engine.models.quest import (
    PlayerProgress, Quest, QuestCategory, QuestGranularity, QuestSystemState, RewardResult,
)

logger = setup_logging("progression_engine")


class ProgressionEngine:
    """
    経験値の計算とレベルアップ判定を担当するクラス
    state は読むだけで、結果は新しいオブジェクトで返す
    """

    @staticmethod
    def calculate_next_level_exp(level: int) -> int:
        """次のレベルに必要な経験値"""
        return level * config.XP_PER_LEVEL

    @staticmethod
    def level_scaling(player_level: int) -> float:
        return min(1 + (player_level - 1) * config.LEVEL_SCALING_PER_LEVEL, config.LEVEL_SCALING_CAP)

    @staticmethod
    def time_bonus(time_limit_minutes: Optional[int], completion_time_minutes: Optional[float]) -> Optional[float]:
        """
        制限時間に対する達成時間の補正
        制限時間か達成時間が無い場合は None (補正なし)
        """
        if not time_limit_minutes or completion_time_minutes is None:
            return None
        if completion_time_minutes < time_limit_minutes * config.FAST_COMPLETION_RATIO:
            return config.FAST_COMPLETION_BONUS
        if completion_time_minutes > time_limit_minutes * config.SLOW_COMPLETION_RATIO:
            return config.SLOW_COMPLETION_PENALTY
        return 1.0

    def reward(
        self,
        quest: Quest,
        player_level: int,
        completion_time_minutes: Optional[float] = None,
        streak_multiplier: float = 1.0,
    ) -> RewardResult:
        multipliers: Dict[str, float] = {
            "category": config.CATEGORY_XP_MULTIPLIERS.get(quest.category.value, 1.0),
            "granularity": config.GRANULARITY_XP_MULTIPLIERS.get(quest.granularity.value, 1.0),
            "level": self.level_scaling(player_level),
        }
        bonus = self.time_bonus(quest.time_limit_minutes, completion_time_minutes)
        if bonus is not None:
            multipliers["time"] = bonus
        if streak_multiplier != 1.0:
            multipliers["streak"] = streak_multiplier

        total = float(quest.xp)
        for factor in multipliers.values():
            total *= factor
        total_xp = round_half_up(total)

        return RewardResult(
            base_xp=quest.xp,
            bonus_xp=total_xp - quest.xp,
            total_xp=total_xp,
            multipliers=multipliers,
        )

    def apply_xp(self, progress: PlayerProgress, total_xp: int) -> Tuple[PlayerProgress, int]:
        """
        経験値を加算し、レベルアップ判定を行う
        Returns: (new_progress, levels_gained)
        """
        if total_xp < 0:
            raise ValueError(f"XP grant must not be negative: {total_xp}")

        level = progress.current_level
        current_xp = progress.current_xp + total_xp
        next_exp = progress.xp_to_next_level
        levels_gained = 0

        # 余った経験値は次のレベルに持ち越す
        while current_xp >= next_exp:
            current_xp -= next_exp
            level += 1
            levels_gained += 1
            next_exp = self.calculate_next_level_exp(level)

        new_progress = progress.model_copy(update={
            "current_level": level,
            "current_xp": current_xp,
            "xp_to_next_level": next_exp,
            "total_xp": progress.total_xp + total_xp,
        })
        if levels_gained:
            logger.info(f"🎉 Level up! {progress.current_level} -> {level}")
        return new_progress, levels_gained

    def apply_reward(
        self,
        progress: PlayerProgress,
        quest: Quest,
        player_level: int,
        completion_time_minutes: Optional[float] = None,
        streak_multiplier: float = 1.0,
    ) -> Tuple[PlayerProgress, RewardResult]:
        result = self.reward(quest, player_level, completion_time_minutes, streak_multiplier)
        new_progress, _ = self.apply_xp(progress, result.total_xp)
        new_progress = new_progress.model_copy(update={
            "quests_completed": new_progress.quests_completed.incremented(quest.granularity),
        })
        return new_progress, result

    # ==========================================
    # Streak / Unlock / Mastery
    # ==========================================

    @staticmethod
    def streak_multiplier(state: QuestSystemState, granularity: QuestGranularity) -> float:
        granularity = QuestGranularity(granularity)
        streak = state.current_streak.get(granularity)
        multiplier = 1.0
        if granularity == QuestGranularity.DAILY:
            multiplier += config.STREAK_DAILY_STEP * streak
        elif granularity == QuestGranularity.WEEKLY and streak > 0:
            multiplier += config.STREAK_WEEKLY_BONUS
        elif granularity == QuestGranularity.MONTHLY and streak > 0:
            multiplier += config.STREAK_MONTHLY_BONUS
        return min(multiplier, config.STREAK_MULTIPLIER_CAP)

    @staticmethod
    def unlocked_categories(player_level: int) -> List[QuestCategory]:
        return [
            QuestCategory(category) for category in config.CATEGORIES
            if config.CATEGORY_UNLOCK_LEVELS.get(category, 1) <= player_level
        ]

    @staticmethod
    def category_mastery(category: QuestCategory, completed_count: int, player_level: int) -> Dict[str, Any]:
        """カテゴリの習熟度 (称号・進捗率)"""
        category = QuestCategory(category)
        required = config.CATEGORY_MASTERY_LEVELS.get(category.value, 20)
        unlocked = config.CATEGORY_UNLOCK_LEVELS.get(category.value, 1) <= player_level

        titles = config.MASTERY_TITLES
        rank = min(len(titles) - 1, completed_count * (len(titles) - 1) // required) if unlocked else 0
        progress = min(100, round_half_up(completed_count * 100 / required))

        return {
            "category": category.value,
            "unlocked": unlocked,
            "completed": completed_count,
            "required": required,
            "rank": rank,
            "title": titles[rank] if unlocked else None,
            "progress": progress if unlocked else 0,
            "mastered": unlocked and completed_count >= required,
        }
