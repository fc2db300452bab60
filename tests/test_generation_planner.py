import unittest
import sys
import os
from datetime import date

# プロジェクトルートにパスを通す
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quest_engine.exceptions import InvalidConfiguration, TemplatePoolExhausted
from quest_engine.models.quest import (
    GenerationConfig, QuestCategory, QuestGranularity, QuestPreferences, QuestTemplate,
)
from quest_engine.services.generation_planner import GenerationPlanner
from quest_engine.services.template_catalog import TemplateCatalog

DAILY = QuestGranularity.DAILY


def make_template(template_id, category="health", difficulty=1, granularities=("daily",), **kwargs):
    return QuestTemplate(
        id=template_id,
        title=template_id,
        category=category,
        difficulty=difficulty,
        base_xp=kwargs.pop("base_xp", 10),
        allowed_granularities=list(granularities),
        **kwargs,
    )


class TestGenerationPlanner(unittest.TestCase):

    def setUp(self):
        self.catalog = TemplateCatalog.default()
        self.on_date = date(2024, 3, 1)

    def test_water_scenario(self):
        """候補が1件だけなら、それがそのまま選ばれる"""
        water = make_template("water", weight=5)
        planner = GenerationPlanner(GenerationConfig(daily_quests_count=1))
        result = planner.plan(DAILY, 1, [water], [], 1, self.on_date)
        self.assertEqual([t.id for t in result], ["water"])
        self.assertEqual(planner.diagnostics, [])

    def test_deterministic_for_same_date(self):
        templates = self.catalog.list_templates(granularity=DAILY)
        first = GenerationPlanner().plan(DAILY, 8, templates, [], 10, self.on_date)
        second = GenerationPlanner().plan(DAILY, 8, templates, [], 10, self.on_date)
        self.assertEqual([t.id for t in first], [t.id for t in second])

    def test_variety_covers_every_category(self):
        """全カテゴリに候補があれば、8件で8カテゴリ全てが揃う"""
        templates = self.catalog.list_templates(granularity=DAILY)
        result = GenerationPlanner().plan(DAILY, 8, templates, [], 10, self.on_date)
        self.assertEqual(len(result), 8)
        self.assertEqual(len({t.category for t in result}), 8)

    def test_no_duplicates_and_length_bound(self):
        templates = self.catalog.list_templates(granularity=DAILY)
        result = GenerationPlanner().plan(DAILY, 5, templates, [], 10, self.on_date)
        ids = [t.id for t in result]
        self.assertLessEqual(len(ids), 5)
        self.assertEqual(len(ids), len(set(ids)))

    def test_pool_exhausted_is_diagnostic(self):
        """候補不足は例外にせず、選べた分だけ返して診断情報を残す"""
        templates = [make_template("a"), make_template("b", category="mindfulness")]
        planner = GenerationPlanner()
        result = planner.plan(DAILY, 5, templates, [], 1, self.on_date)
        self.assertEqual(len(result), 2)
        self.assertEqual(len(planner.diagnostics), 1)
        shortage = planner.diagnostics[0]
        self.assertIsInstance(shortage, TemplatePoolExhausted)
        self.assertEqual(shortage.requested, 5)
        self.assertEqual(shortage.selected, 2)
        self.assertEqual(planner.diagnostics_as_dicts()[0]["error_type"], "TemplatePoolExhausted")

    def test_empty_pool_returns_empty(self):
        planner = GenerationPlanner()
        self.assertEqual(planner.plan(DAILY, 3, [], [], 1, self.on_date), [])
        self.assertEqual(len(planner.diagnostics), 1)

    def test_recently_completed_excluded(self):
        templates = [make_template("water"), make_template("stretch", category="personal")]
        result = GenerationPlanner().plan(DAILY, 2, templates, ["water"], 1, self.on_date)
        self.assertEqual([t.id for t in result], ["stretch"])

        # 履歴を考慮しない設定なら除外しない
        config = GenerationConfig(consider_player_history=False)
        result = GenerationPlanner(config).plan(DAILY, 2, templates, ["water"], 1, self.on_date)
        self.assertEqual({t.id for t in result}, {"water", "stretch"})

    def test_level_and_difficulty_gating(self):
        templates = [
            make_template("easy"),
            make_template("locked", level_requirement=5),
            make_template("hard", category="work", difficulty=3),
        ]
        result = GenerationPlanner().plan(DAILY, 3, templates, [], 1, self.on_date)
        self.assertEqual([t.id for t in result], ["easy"])

        # レベル適応を切れば難易度では絞らない
        config = GenerationConfig(adapt_to_player_level=False)
        result = GenerationPlanner(config).plan(DAILY, 3, templates, [], 1, self.on_date)
        self.assertEqual({t.id for t in result}, {"easy", "hard"})

    def test_difficulty_cap(self):
        planner = GenerationPlanner()
        self.assertEqual(planner.difficulty_cap(1), 1)
        self.assertEqual(planner.difficulty_cap(4), 2)
        self.assertEqual(planner.difficulty_cap(30), 5)
        self.assertEqual(GenerationPlanner(GenerationConfig(max_difficulty_per_level=2)).difficulty_cap(1), 2)

    def test_level_tier(self):
        self.assertEqual(GenerationPlanner.level_tier(1)["tier"], "beginner")
        self.assertEqual(GenerationPlanner.level_tier(3)["tier"], "beginner")
        self.assertEqual(GenerationPlanner.level_tier(4)["tier"], "intermediate")
        self.assertEqual(GenerationPlanner.level_tier(12)["tier"], "advanced")
        self.assertEqual(GenerationPlanner.level_tier(13)["tier"], "expert")

    def test_beginner_tier_filters_pool(self):
        """初心者帯では fitness / work と難易度3以上を出さない"""
        templates = [
            make_template("walk", category="health", difficulty=2),
            make_template("gym", category="fitness"),
            make_template("report", category="work"),
            make_template("essay", category="learning", difficulty=3),
        ]
        # 計算式の上限を緩めても帯の上限 (2) が効く
        config = GenerationConfig(max_difficulty_per_level=5)
        result = GenerationPlanner(config).plan(DAILY, 4, templates, [], 1, self.on_date)
        self.assertEqual([t.id for t in result], ["walk"])

        # 中級帯 (レベル4) なら fitness / work も難易度3も出る
        result = GenerationPlanner(config).plan(DAILY, 4, templates, [], 4, self.on_date)
        self.assertEqual({t.id for t in result}, {"walk", "gym", "report", "essay"})

        # レベル適応を切れば帯でも絞らない
        config = GenerationConfig(max_difficulty_per_level=5, adapt_to_player_level=False)
        result = GenerationPlanner(config).plan(DAILY, 4, templates, [], 1, self.on_date)
        self.assertEqual(len(result), 4)

    def test_seasonal_availability(self):
        templates = [make_template("summer", seasonal_availability=[7, 8])]
        self.assertEqual(GenerationPlanner().plan(DAILY, 1, templates, [], 1, date(2024, 3, 1)), [])
        self.assertEqual(len(GenerationPlanner().plan(DAILY, 1, templates, [], 1, date(2024, 7, 1))), 1)

    def test_prerequisites(self):
        templates = [make_template("advanced", prerequisites=["basic"])]
        self.assertEqual(GenerationPlanner().plan(DAILY, 1, templates, [], 1, self.on_date), [])
        result = GenerationPlanner().plan(DAILY, 1, templates, [], 1, self.on_date, completed_template_ids=["basic"])
        self.assertEqual([t.id for t in result], ["advanced"])

    def test_special_event_window(self):
        templates = [
            make_template("event", granularities=("special",),
                          event_start=date(2025, 12, 25), event_end=date(2025, 12, 31)),
            make_template("always", category="personal", granularities=("special",)),
        ]
        special = QuestGranularity.SPECIAL
        outside = GenerationPlanner().plan(special, 2, templates, [], 1, date(2025, 12, 1))
        inside = GenerationPlanner().plan(special, 2, templates, [], 1, date(2025, 12, 28))
        self.assertEqual([t.id for t in outside], ["always"])
        self.assertEqual({t.id for t in inside}, {"event", "always"})

    def test_category_weights(self):
        prefs = QuestPreferences(
            preferred_categories=[QuestCategory.HEALTH],
            avoided_categories=[QuestCategory.WORK],
        )
        planner = GenerationPlanner(preferences=prefs)
        health = make_template("h", weight=5)
        work = make_template("w", category="work", weight=5)
        # 5 x 2 (初出カテゴリ) x 9 (バランス) x 1.5 (好み)
        self.assertAlmostEqual(planner._weight(health, set()), 135.0)
        # 使用済みカテゴリは x2 が付かない
        self.assertAlmostEqual(planner._weight(health, {"health"}), 67.5)
        # 5 x 2 x 8 x 0.3 (苦手)
        self.assertAlmostEqual(planner._weight(work, set()), 24.0)

    def test_invalid_configuration(self):
        with self.assertRaises(InvalidConfiguration):
            GenerationPlanner(GenerationConfig(daily_quests_count=-1))
        with self.assertRaises(InvalidConfiguration):
            GenerationPlanner(GenerationConfig(category_balance={"cooking": 1.0}))
        with self.assertRaises(InvalidConfiguration):
            GenerationPlanner().plan(DAILY, -1, [], [], 1, self.on_date)

    def test_zero_count(self):
        planner = GenerationPlanner()
        self.assertEqual(planner.plan(DAILY, 0, [make_template("a")], [], 1, self.on_date), [])
        self.assertEqual(planner.diagnostics, [])


if __name__ == '__main__':
    unittest.main()
