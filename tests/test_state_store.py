import unittest
import sys
import os
import shutil
import tempfile
from datetime import date

# プロジェクトルートにパスを通す
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quest_engine import config
from quest_engine.core.utils import FixedClock
from quest_engine.models.quest import QuestGranularity, QuestSystemState
from quest_engine.services.quest_engine import QuestEngine
from quest_engine.services.state_store import SqliteQuestStateStore
from quest_engine.services.template_catalog import TemplateCatalog


class TestSqliteQuestStateStore(unittest.TestCase):

    def setUp(self):
        """テスト用DBを一時ディレクトリに作る"""
        self.original_webhook = config.DISCORD_WEBHOOK_ERROR
        config.DISCORD_WEBHOOK_ERROR = None

        self.tmp_dir = tempfile.mkdtemp()
        self.store = SqliteQuestStateStore(os.path.join(self.tmp_dir, "test_quest_state.db"))
        engine = QuestEngine(TemplateCatalog.default(), FixedClock(date(2024, 3, 1), "Asia/Tokyo"))
        self.state, _ = engine.check_and_reset(QuestSystemState(), 5)

    def tearDown(self):
        config.DISCORD_WEBHOOK_ERROR = self.original_webhook
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_load_missing_user(self):
        self.assertIsNone(self.store.load("nobody"))

    def test_save_and_load(self):
        self.assertTrue(self.store.save("user1", self.state))
        loaded = self.store.load("user1")
        self.assertEqual(loaded.model_dump_json(), self.state.model_dump_json())
        self.assertEqual(len(loaded.quests_of(QuestGranularity.DAILY)), len(self.state.quests_of(QuestGranularity.DAILY)))

    def test_previous_state_is_backed_up(self):
        """上書き前の内容がバックアップされる"""
        empty = QuestSystemState()
        self.assertTrue(self.store.save("user1", empty))
        self.assertEqual(self.store.list_backups("user1"), [])

        self.assertTrue(self.store.save("user1", self.state))
        backups = self.store.list_backups("user1")
        self.assertEqual(len(backups), 1)
        self.assertEqual(backups[0].model_dump_json(), empty.model_dump_json())
        self.assertEqual(self.store.load("user1").model_dump_json(), self.state.model_dump_json())

    def test_users_are_separated(self):
        self.store.save("user1", self.state)
        self.assertIsNone(self.store.load("user2"))


if __name__ == '__main__':
    unittest.main()
