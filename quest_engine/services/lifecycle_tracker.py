# quest_engine/services/lifecycle_tracker.py
import datetime
from typing import List, Optional, Tuple

from quest_engine.core.logger import setup_logging
from quest_engine.exceptions import InvalidQuestTransition, QuestNotFound
from quest_engine.models.quest import (
    TERMINAL_STATUSES, PlayerQuestState, Quest, QuestHistory, QuestStatus, QuestSystemState,
)

logger = setup_logging("lifecycle_tracker")


class LifecycleTracker:
    """
    クエスト1件ごとの状態遷移を管理する。
      available → active → completed
      available / active → skipped
      未終了 → expired (期限切れ)
    completed / expired / skipped は終端状態で、元には戻らない。
    """

    def status_of(self, state: QuestSystemState, quest_id: str) -> QuestStatus:
        quest = state.find_quest(quest_id)
        if quest is None:
            raise QuestNotFound(quest_id)
        return self._current_status(state, quest)

    def start(self, state: QuestSystemState, quest_id: str, now: datetime.datetime) -> QuestSystemState:
        status = self.status_of(state, quest_id)
        if status == QuestStatus.ACTIVE:
            return state
        if status != QuestStatus.AVAILABLE:
            raise InvalidQuestTransition(quest_id, status.value, QuestStatus.ACTIVE.value)

        new_state = state.model_copy(deep=True)
        quest = new_state.find_quest(quest_id)
        player_state = self._player_state(new_state, quest)
        player_state.status = QuestStatus.ACTIVE
        player_state.started_at = now
        return new_state

    def update_progress(self, state: QuestSystemState, quest_id: str, progress: int, now: datetime.datetime) -> QuestSystemState:
        """進捗 (0〜100) を更新する。available なら同時に開始扱いにする。"""
        status = self.status_of(state, quest_id)
        if status in TERMINAL_STATUSES:
            raise InvalidQuestTransition(quest_id, status.value, QuestStatus.ACTIVE.value)

        progress = max(0, min(100, progress))
        new_state = state.model_copy(deep=True)
        quest = new_state.find_quest(quest_id)
        player_state = self._player_state(new_state, quest)
        if player_state.status == QuestStatus.AVAILABLE:
            player_state.status = QuestStatus.ACTIVE
            player_state.started_at = now
        quest.progress = progress
        player_state.progress = progress
        return new_state

    def complete(
        self,
        state: QuestSystemState,
        quest_id: str,
        now: datetime.datetime,
        time_spent: int = 0,
        rating: Optional[int] = None,
    ) -> Tuple[QuestSystemState, Optional[QuestHistory]]:
        """
        クエストを達成にする。
        既に達成済みなら何もせず (入力state, None) を返すので、二重付与は起きない。
        """
        quest = state.find_quest(quest_id)
        if quest is None:
            raise QuestNotFound(quest_id)
        status = self._current_status(state, quest)
        if quest.completed or status == QuestStatus.COMPLETED:
            logger.info(f"Quest already completed: {quest_id}")
            return state, None
        if status in TERMINAL_STATUSES:
            raise InvalidQuestTransition(quest_id, status.value, QuestStatus.COMPLETED.value)

        new_state = state.model_copy(deep=True)
        quest = new_state.find_quest(quest_id)
        player_state = self._player_state(new_state, quest)

        completions = quest.current_completions + 1
        if quest.max_completions is not None:
            completions = min(completions, quest.max_completions)

        quest.completed = True
        quest.completed_at = now
        quest.progress = 100
        quest.current_completions = completions

        player_state.status = QuestStatus.COMPLETED
        player_state.progress = 100
        player_state.completed_at = now
        player_state.current_completions = completions
        player_state.time_spent += time_spent
        if player_state.started_at is None:
            player_state.started_at = now

        entry = QuestHistory(
            quest_id=quest.id,
            template_id=quest.template_id,
            granularity=quest.granularity,
            category=quest.category,
            completed_at=now,
            xp_earned=quest.xp + (quest.bonus_xp or 0),
            time_spent=time_spent,
            rating=rating,
        )
        new_state.quest_history.append(entry)
        logger.info(f"✅ Quest completed: {quest.title} ({quest.id})")
        return new_state, entry

    def skip(self, state: QuestSystemState, quest_id: str, now: datetime.datetime) -> QuestSystemState:
        status = self.status_of(state, quest_id)
        if status == QuestStatus.SKIPPED:
            return state
        if status in TERMINAL_STATUSES:
            raise InvalidQuestTransition(quest_id, status.value, QuestStatus.SKIPPED.value)

        new_state = state.model_copy(deep=True)
        player_state = self._player_state(new_state, new_state.find_quest(quest_id))
        player_state.status = QuestStatus.SKIPPED
        player_state.notes = f"skipped at {now.isoformat()}"
        return new_state

    def expire_overdue(self, state: QuestSystemState, now: datetime.datetime) -> Tuple[QuestSystemState, List[str]]:
        """期限 (end_date) を過ぎた未終了クエストを expired にする"""
        overdue = [
            q.id for q in state.active_quests
            if q.end_date < now and self._current_status(state, q) not in TERMINAL_STATUSES
        ]
        if not overdue:
            return state, []

        new_state = state.model_copy(deep=True)
        for quest_id in overdue:
            player_state = self._player_state(new_state, new_state.find_quest(quest_id))
            player_state.status = QuestStatus.EXPIRED
        logger.info(f"⌛ {len(overdue)} quests expired")
        return new_state, overdue

    def _current_status(self, state: QuestSystemState, quest: Quest) -> QuestStatus:
        player_state = state.player_quest_states.get(quest.id)
        if player_state is not None:
            return player_state.status
        return QuestStatus.COMPLETED if quest.completed else QuestStatus.AVAILABLE

    def _player_state(self, state: QuestSystemState, quest: Quest) -> PlayerQuestState:
        # 状態が欠けているクエストはその場で補う
        player_state = state.player_quest_states.get(quest.id)
        if player_state is None:
            player_state = PlayerQuestState(
                quest_id=quest.id,
                status=QuestStatus.COMPLETED if quest.completed else QuestStatus.AVAILABLE,
                expires_at=quest.end_date,
            )
            state.player_quest_states[quest.id] = player_state
        return player_state
