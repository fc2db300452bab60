# quest_engine/services/quest_engine.py
from typing import Any, Dict, List, Optional, Tuple

from quest_engine.core.logger import setup_logging
from quest_engine.models.quest import (
    GenerationConfig, PlayerProgress, Quest, QuestGranularity, QuestHistory,
    QuestSystemState, ResetResult, RewardResult,
)
from quest_engine.services.lifecycle_tracker import LifecycleTracker
from quest_engine.services.progression_engine import ProgressionEngine
from quest_engine.services.quest_factory import QuestInstanceFactory
from quest_engine.services.reset_scheduler import ResetScheduler
from quest_engine.services.template_catalog import TemplateCatalog

logger = setup_logging("quest_engine")


class QuestEngine:
    """
    呼び出し側に公開する窓口。
    カタログ・時計・設定を受け取り、各サービスに処理を振り分ける。
    state の保存は呼び出し側 (QuestStateStore) の責任。
    """

    def __init__(self, catalog: TemplateCatalog, clock, config: Optional[GenerationConfig] = None):
        self.catalog = catalog
        self.clock = clock
        self.config = config or GenerationConfig.default()
        self.config.ensure_valid()
        self.factory = QuestInstanceFactory(getattr(clock, "tz", None))
        self.scheduler = ResetScheduler(catalog, clock, self.factory)
        self.tracker = LifecycleTracker()
        self.progression = ProgressionEngine()

    # --- 生成・リセット ---
    def generate_for_granularity(
        self,
        state: QuestSystemState,
        granularity: QuestGranularity,
        player_level: int,
        progress: Optional[PlayerProgress] = None,
    ) -> Tuple[QuestSystemState, List[Quest], List[Dict[str, Any]]]:
        return self.scheduler.generate_for_granularity(state, granularity, player_level, self.config, progress)

    def check_and_reset(
        self, state: QuestSystemState, player_level: int, progress: Optional[PlayerProgress] = None,
    ) -> Tuple[QuestSystemState, ResetResult]:
        """progress を渡すと節目クエストも特別クエストに加わる"""
        return self.scheduler.check_and_reset(state, player_level, self.config, progress)

    # --- 状態遷移 ---
    def start(self, state: QuestSystemState, quest_id: str) -> QuestSystemState:
        return self.tracker.start(state, quest_id, self.clock.now())

    def update_progress(self, state: QuestSystemState, quest_id: str, progress: int) -> QuestSystemState:
        return self.tracker.update_progress(state, quest_id, progress, self.clock.now())

    def complete(
        self, state: QuestSystemState, quest_id: str, time_spent: int = 0, rating: Optional[int] = None,
    ) -> Tuple[QuestSystemState, Optional[QuestHistory]]:
        return self.tracker.complete(state, quest_id, self.clock.now(), time_spent, rating)

    def skip(self, state: QuestSystemState, quest_id: str) -> QuestSystemState:
        return self.tracker.skip(state, quest_id, self.clock.now())

    def expire_overdue(self, state: QuestSystemState) -> Tuple[QuestSystemState, List[str]]:
        return self.tracker.expire_overdue(state, self.clock.now())

    # --- 報酬 ---
    def apply_reward(
        self,
        progress: PlayerProgress,
        quest: Quest,
        player_level: int,
        completion_time: Optional[float] = None,
        state: Optional[QuestSystemState] = None,
    ) -> Tuple[PlayerProgress, RewardResult]:
        """state を渡すと連続達成ボーナスも反映する"""
        streak = self.progression.streak_multiplier(state, quest.granularity) if state is not None else 1.0
        return self.progression.apply_reward(progress, quest, player_level, completion_time, streak)

    def complete_and_reward(
        self,
        state: QuestSystemState,
        progress: PlayerProgress,
        quest_id: str,
        time_spent: int = 0,
        rating: Optional[int] = None,
    ) -> Tuple[QuestSystemState, PlayerProgress, Optional[RewardResult]]:
        """
        達成と経験値付与をまとめて行う。
        達成済みのクエストなら報酬は None で、progress もそのまま返す。
        """
        new_state, entry = self.complete(state, quest_id, time_spent, rating)
        if entry is None:
            return new_state, progress, None

        quest = new_state.find_quest(quest_id)
        completion_time = time_spent if time_spent > 0 else None
        new_progress, reward = self.apply_reward(progress, quest, progress.current_level, completion_time, new_state)

        if new_progress.current_level > progress.current_level:
            unlocked = list(new_state.unlocked_categories)
            for category in self.progression.unlocked_categories(new_progress.current_level):
                if category not in unlocked:
                    unlocked.append(category)
                    logger.info(f"🔓 Category unlocked: {category.value}")
            new_state.unlocked_categories = unlocked
        return new_state, new_progress, reward
