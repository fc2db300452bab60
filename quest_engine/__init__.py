# quest_engine/__init__.py
"""
クエスト生成・スケジューリングエンジン

日次 / 週次 / 月次 / 特別 の各粒度について、
テンプレートから決定的にクエストを選び、期間の境界でリセットし、
達成時の経験値とレベルアップを計算する。
"""
from quest_engine.core.utils import FixedClock, SystemClock
from quest_engine.exceptions import (
    InvalidConfiguration, InvalidQuestTransition, QuestEngineError,
    QuestNotFound, StaleState, TemplatePoolExhausted,
)
from quest_engine.models.quest import (
    GenerationConfig, PlayerProgress, PlayerQuestState, Quest, QuestCategory,
    QuestGranularity, QuestHistory, QuestPreferences, QuestStatus, QuestSystemState,
    QuestTemplate, QuestVariation, ResetResult, RewardResult,
)
from quest_engine.services.quest_engine import QuestEngine
from quest_engine.services.state_store import QuestStateStore, SqliteQuestStateStore
from quest_engine.services.template_catalog import TemplateCatalog

__version__ = "1.0.0"
