import unittest
import sys
import os
from datetime import date

# プロジェクトルートにパスを通す
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quest_engine.models.quest import (
    GranularityCounters, PlayerProgress, QuestCategory, QuestGranularity, QuestSystemState, QuestTemplate,
)
from quest_engine.services.progression_engine import ProgressionEngine
from quest_engine.services.quest_factory import QuestInstanceFactory


def make_quest(base_xp=100, category="personal", granularity="daily", difficulty=1, time_limit_minutes=None):
    template = QuestTemplate(
        id=f"q{base_xp}{difficulty}", title="テスト", category=category, difficulty=difficulty,
        base_xp=base_xp, allowed_granularities=[granularity], time_limit_minutes=time_limit_minutes,
    )
    return QuestInstanceFactory("Asia/Tokyo").materialize(template, None, granularity, date(2024, 3, 1))


class TestProgressionEngine(unittest.TestCase):

    def setUp(self):
        self.engine = ProgressionEngine()

    def test_level_up_carries_over_xp(self):
        """Lv1 95XP に 250XP 加算 → Lv3 45XP (2回レベルアップ)"""
        progress = PlayerProgress(current_level=1, current_xp=95, xp_to_next_level=100)
        new_progress, gained = self.engine.apply_xp(progress, 250)
        self.assertEqual(gained, 2)
        self.assertEqual(new_progress.current_level, 3)
        self.assertEqual(new_progress.current_xp, 45)
        self.assertEqual(new_progress.xp_to_next_level, 300)
        self.assertEqual(new_progress.total_xp, 250)
        # 入力は変更されない
        self.assertEqual(progress.current_level, 1)

    def test_no_level_up(self):
        new_progress, gained = self.engine.apply_xp(PlayerProgress(), 99)
        self.assertEqual(gained, 0)
        self.assertEqual(new_progress.current_level, 1)
        self.assertEqual(new_progress.current_xp, 99)

    def test_negative_grant_rejected(self):
        with self.assertRaises(ValueError):
            self.engine.apply_xp(PlayerProgress(), -1)

    def test_reward_base_case(self):
        result = self.engine.reward(make_quest(), player_level=1)
        self.assertEqual(result.total_xp, 100)
        self.assertEqual(result.base_xp, 100)
        self.assertEqual(result.bonus_xp, 0)
        self.assertNotIn("time", result.multipliers)

    def test_reward_multipliers(self):
        # 100 x 1.1 (health) x 1.3 (weekly) x 1.2 (Lv11) = 171.6 → 172
        quest = make_quest(category="health", granularity="weekly")
        result = self.engine.reward(quest, player_level=11)
        self.assertEqual(result.total_xp, 172)
        self.assertEqual(result.bonus_xp, 72)
        self.assertAlmostEqual(result.multipliers["level"], 1.2)

    def test_level_scaling_is_capped(self):
        self.assertEqual(self.engine.level_scaling(1), 1.0)
        self.assertEqual(self.engine.level_scaling(100), 1.5)

    def test_time_bonus(self):
        quest = make_quest(time_limit_minutes=60)
        self.assertEqual(self.engine.reward(quest, 1, completion_time_minutes=20).total_xp, 120)
        self.assertEqual(self.engine.reward(quest, 1, completion_time_minutes=40).total_xp, 100)
        self.assertEqual(self.engine.reward(quest, 1, completion_time_minutes=58).total_xp, 90)
        # 制限時間なしなら補正なし
        self.assertEqual(self.engine.reward(make_quest(), 1, completion_time_minutes=1).total_xp, 100)

    def test_xp_monotonicity(self):
        easy = make_quest(base_xp=15, difficulty=1)
        hard = make_quest(base_xp=45, difficulty=3)
        for level in (1, 5, 20):
            self.assertGreaterEqual(self.engine.reward(hard, level).total_xp, self.engine.reward(easy, level).total_xp)
        self.assertGreaterEqual(self.engine.reward(easy, 10).total_xp, self.engine.reward(easy, 1).total_xp)

    def test_streak_multiplier(self):
        state = QuestSystemState(current_streak=GranularityCounters(daily=4, weekly=1, monthly=0, special=3))
        self.assertAlmostEqual(self.engine.streak_multiplier(state, QuestGranularity.DAILY), 1.2)
        self.assertAlmostEqual(self.engine.streak_multiplier(state, QuestGranularity.WEEKLY), 1.2)
        self.assertEqual(self.engine.streak_multiplier(state, QuestGranularity.MONTHLY), 1.0)
        self.assertEqual(self.engine.streak_multiplier(state, QuestGranularity.SPECIAL), 1.0)

        long_streak = QuestSystemState(current_streak=GranularityCounters(daily=30))
        self.assertEqual(self.engine.streak_multiplier(long_streak, QuestGranularity.DAILY), 2.0)

    def test_streak_applied_to_reward(self):
        result = self.engine.reward(make_quest(), 1, streak_multiplier=1.5)
        self.assertEqual(result.total_xp, 150)
        self.assertEqual(result.multipliers["streak"], 1.5)

    def test_apply_reward_counts_completions(self):
        quest = make_quest(granularity="weekly")
        progress, result = self.engine.apply_reward(PlayerProgress(), quest, 1)
        self.assertEqual(progress.quests_completed.weekly, 1)
        self.assertEqual(progress.quests_completed.daily, 0)
        self.assertEqual(progress.total_xp, result.total_xp)
        self.assertEqual(progress.current_level, 2)  # 130XP

    def test_unlocked_categories(self):
        self.assertEqual(
            self.engine.unlocked_categories(1),
            [QuestCategory.HEALTH, QuestCategory.PERSONAL, QuestCategory.MINDFULNESS],
        )
        self.assertEqual(len(self.engine.unlocked_categories(5)), 8)

    def test_category_mastery(self):
        locked = self.engine.category_mastery(QuestCategory.CREATIVITY, 3, 1)
        self.assertFalse(locked["unlocked"])
        self.assertIsNone(locked["title"])

        half = self.engine.category_mastery(QuestCategory.HEALTH, 10, 1)
        self.assertEqual(half["rank"], 4)
        self.assertEqual(half["title"], "熟練者")
        self.assertEqual(half["progress"], 50)
        self.assertFalse(half["mastered"])

        full = self.engine.category_mastery(QuestCategory.HEALTH, 20, 1)
        self.assertTrue(full["mastered"])
        self.assertEqual(full["title"], "伝説")


if __name__ == '__main__':
    unittest.main()
