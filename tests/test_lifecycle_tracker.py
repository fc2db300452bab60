import unittest
import sys
import os
from datetime import date, datetime, timedelta

import pytz

# プロジェクトルートにパスを通す
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quest_engine.exceptions import InvalidQuestTransition, QuestNotFound
from quest_engine.models.quest import PlayerQuestState, QuestStatus, QuestSystemState, QuestTemplate
from quest_engine.services.lifecycle_tracker import LifecycleTracker
from quest_engine.services.quest_factory import QuestInstanceFactory

TOKYO = pytz.timezone("Asia/Tokyo")


class TestLifecycleTracker(unittest.TestCase):

    def setUp(self):
        """水を飲むクエスト1件だけの state を用意する"""
        self.tracker = LifecycleTracker()
        factory = QuestInstanceFactory("Asia/Tokyo")
        water = QuestTemplate(
            id="water", title="水を飲む", category="health", difficulty=1,
            base_xp=10, allowed_granularities=["daily"], max_completions=1,
        )
        self.quest = factory.materialize(water, None, "daily", date(2024, 3, 1))
        self.state = QuestSystemState(
            active_quests=[self.quest],
            player_quest_states={self.quest.id: PlayerQuestState(quest_id=self.quest.id, expires_at=self.quest.end_date)},
        )
        self.now = TOKYO.localize(datetime(2024, 3, 1, 9, 0))

    def test_start(self):
        state = self.tracker.start(self.state, self.quest.id, self.now)
        self.assertEqual(self.tracker.status_of(state, self.quest.id), QuestStatus.ACTIVE)
        self.assertEqual(state.player_quest_states[self.quest.id].started_at, self.now)
        # 入力は変更されない
        self.assertEqual(self.tracker.status_of(self.state, self.quest.id), QuestStatus.AVAILABLE)
        # 開始済みなら何もしない
        self.assertIs(self.tracker.start(state, self.quest.id, self.now), state)

    def test_complete(self):
        state, entry = self.tracker.complete(self.state, self.quest.id, self.now, time_spent=5, rating=4)
        quest = state.find_quest(self.quest.id)
        self.assertTrue(quest.completed)
        self.assertEqual(quest.progress, 100)
        self.assertEqual(quest.current_completions, 1)
        self.assertEqual(quest.completed_at, self.now)
        self.assertEqual(self.tracker.status_of(state, self.quest.id), QuestStatus.COMPLETED)

        self.assertEqual(entry.quest_id, self.quest.id)
        self.assertEqual(entry.template_id, "water")
        self.assertEqual(entry.xp_earned, 10)
        self.assertEqual(entry.rating, 4)
        self.assertEqual(state.quest_history, [entry])
        self.assertEqual(self.state.quest_history, [])

    def test_complete_records_bonus_xp(self):
        """基本XPが閾値を超えるクエストはボーナス込みで履歴に残る"""
        factory = QuestInstanceFactory("Asia/Tokyo")
        run = QuestTemplate(
            id="run", title="ランニング", category="fitness", difficulty=3,
            base_xp=100, allowed_granularities=["daily"],
        )
        quest = factory.materialize(run, None, "daily", date(2024, 3, 1))
        self.assertEqual(quest.xp, 100)
        self.assertEqual(quest.bonus_xp, 20)
        state = QuestSystemState(
            active_quests=[quest],
            player_quest_states={quest.id: PlayerQuestState(quest_id=quest.id, expires_at=quest.end_date)},
        )

        _, entry = self.tracker.complete(state, quest.id, self.now)
        self.assertEqual(entry.xp_earned, 120)

    def test_complete_is_idempotent(self):
        """2回達成しても履歴は1件だけ"""
        state, _ = self.tracker.complete(self.state, self.quest.id, self.now)
        again, entry = self.tracker.complete(state, self.quest.id, self.now + timedelta(minutes=1))
        self.assertIs(again, state)
        self.assertIsNone(entry)
        self.assertEqual(len(again.quest_history), 1)
        self.assertEqual(again.find_quest(self.quest.id).current_completions, 1)

    def test_unknown_quest(self):
        with self.assertRaises(QuestNotFound):
            self.tracker.complete(self.state, "nope", self.now)
        with self.assertRaises(QuestNotFound):
            self.tracker.skip(self.state, "nope", self.now)
        with self.assertRaises(QuestNotFound):
            self.tracker.status_of(self.state, "nope")

    def test_skip_is_terminal(self):
        state = self.tracker.skip(self.state, self.quest.id, self.now)
        self.assertEqual(self.tracker.status_of(state, self.quest.id), QuestStatus.SKIPPED)
        with self.assertRaises(InvalidQuestTransition):
            self.tracker.complete(state, self.quest.id, self.now)
        with self.assertRaises(InvalidQuestTransition):
            self.tracker.start(state, self.quest.id, self.now)
        self.assertIs(self.tracker.skip(state, self.quest.id, self.now), state)

    def test_cannot_skip_completed(self):
        state, _ = self.tracker.complete(self.state, self.quest.id, self.now)
        with self.assertRaises(InvalidQuestTransition):
            self.tracker.skip(state, self.quest.id, self.now)

    def test_expire_overdue(self):
        before, expired = self.tracker.expire_overdue(self.state, self.now)
        self.assertIs(before, self.state)
        self.assertEqual(expired, [])

        later = TOKYO.localize(datetime(2024, 3, 2, 0, 0, 1))
        state, expired = self.tracker.expire_overdue(self.state, later)
        self.assertEqual(expired, [self.quest.id])
        self.assertEqual(self.tracker.status_of(state, self.quest.id), QuestStatus.EXPIRED)
        with self.assertRaises(InvalidQuestTransition):
            self.tracker.complete(state, self.quest.id, later)

    def test_expire_skips_completed(self):
        state, _ = self.tracker.complete(self.state, self.quest.id, self.now)
        later = TOKYO.localize(datetime(2024, 3, 2, 0, 0, 1))
        same, expired = self.tracker.expire_overdue(state, later)
        self.assertIs(same, state)
        self.assertEqual(expired, [])

    def test_update_progress(self):
        state = self.tracker.update_progress(self.state, self.quest.id, 150, self.now)
        self.assertEqual(state.find_quest(self.quest.id).progress, 100)
        self.assertEqual(self.tracker.status_of(state, self.quest.id), QuestStatus.ACTIVE)

        state = self.tracker.update_progress(state, self.quest.id, -10, self.now)
        self.assertEqual(state.player_quest_states[self.quest.id].progress, 0)

    def test_missing_player_state_defaults_to_available(self):
        state = QuestSystemState(active_quests=[self.quest])
        self.assertEqual(self.tracker.status_of(state, self.quest.id), QuestStatus.AVAILABLE)
        new_state, entry = self.tracker.complete(state, self.quest.id, self.now)
        self.assertIsNotNone(entry)
        self.assertEqual(state.player_quest_states, {})
        self.assertIn(self.quest.id, new_state.player_quest_states)


if __name__ == '__main__':
    unittest.main()
