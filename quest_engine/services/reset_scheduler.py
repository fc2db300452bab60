# quest_engine/services/reset_scheduler.py
import datetime
import math
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from quest_engine import config as app_config
from quest_engine import quest_data
from quest_engine.core.logger import setup_logging
from quest_engine.core.utils import month_start, parse_date, start_of_day, week_start, add_months
from quest_engine.exceptions import StaleState
from quest_engine.models.quest import (
    GenerationConfig, PlayerProgress, PlayerQuestState, Quest, QuestGranularity, QuestStatus,
    QuestSystemState, QuestTemplate, ResetResult,
)
from quest_engine.services.generation_planner import GenerationPlanner
from quest_engine.services.quest_factory import QuestInstanceFactory
from quest_engine.services.template_catalog import TemplateCatalog

logger = setup_logging("reset_scheduler")


class ResetScheduler:
    """
    粒度ごとのリセット判定と再生成を担当する。

    各粒度は独立した状態機械として扱う:
    Fresh (最終リセットと同じ期間) → Stale (期間の境界を越えた) → 再生成 → Fresh

    progress (PlayerProgress) を渡すと、特別クエストに節目クエストが加わる。
    """

    def __init__(self, catalog: TemplateCatalog, clock, factory: Optional[QuestInstanceFactory] = None):
        self.catalog = catalog
        self.clock = clock
        self.factory = factory or QuestInstanceFactory(getattr(clock, "tz", None))

    # ==========================================
    # Staleness
    # ==========================================

    def is_stale(
        self,
        state: QuestSystemState,
        granularity: QuestGranularity,
        today: Optional[datetime.date] = None,
        progress: Optional[PlayerProgress] = None,
    ) -> bool:
        granularity = QuestGranularity(granularity)
        today = today or self.clock.today()
        last_reset = state.last_reset_dates.get(granularity)
        if not last_reset:
            return True

        last_date = parse_date(last_reset)
        if last_date > today:
            raise StaleState(granularity.value, last_reset, today.isoformat())

        if granularity == QuestGranularity.DAILY:
            return last_date != today
        elif granularity == QuestGranularity.WEEKLY:
            return week_start(last_date) != week_start(today)
        elif granularity == QuestGranularity.MONTHLY:
            return (last_date.year, last_date.month) != (today.year, today.month)
        elif granularity == QuestGranularity.SPECIAL:
            return self._special_is_stale(state, last_date, today, progress)
        raise ValueError(f"Unknown granularity: {granularity}")

    def _special_is_stale(
        self,
        state: QuestSystemState,
        last_date: datetime.date,
        today: datetime.date,
        progress: Optional[PlayerProgress],
    ) -> bool:
        if self.catalog.event_window_keys(last_date) != self.catalog.event_window_keys(today):
            return True
        specials = state.quests_of(QuestGranularity.SPECIAL)
        day_start = start_of_day(today, self.factory.tz)
        if any(q.end_date <= day_start for q in specials):
            return True
        if progress is None:
            return False
        # 新しく節目に差し掛かった場合
        offered = {q.template_id for q in specials}
        due = {t.id for t in self.milestone_templates(progress, self._completed_template_ids(state))}
        return bool(due - offered)

    # ==========================================
    # Generation
    # ==========================================

    def generate_for_granularity(
        self,
        state: QuestSystemState,
        granularity: QuestGranularity,
        player_level: int,
        config: Optional[GenerationConfig] = None,
        progress: Optional[PlayerProgress] = None,
    ) -> Tuple[QuestSystemState, List[Quest], List[Dict[str, Any]]]:
        """
        指定粒度のクエストを (鮮度に関係なく) 作り直す。
        Returns: (new_state, new_quests, diagnostics)
        diagnostics は候補不足 (TemplatePoolExhausted) の記録。
        """
        granularity = QuestGranularity(granularity)
        today = self.clock.today()
        # 未来日付の検出だけ行う
        self.is_stale(state, granularity, today)

        new_state = state.model_copy(deep=True)
        planner = GenerationPlanner(config, new_state.quest_preferences)
        new_quests = self._regenerate(new_state, granularity, player_level, planner, today, progress)
        return new_state, new_quests, planner.diagnostics_as_dicts()

    def check_and_reset(
        self,
        state: QuestSystemState,
        player_level: int,
        config: Optional[GenerationConfig] = None,
        progress: Optional[PlayerProgress] = None,
    ) -> Tuple[QuestSystemState, ResetResult]:
        """
        境界を越えた粒度だけ再生成する。
        何も古くなっていなければ入力された state をそのまま返す。
        """
        today = self.clock.today()
        stale = [g for g in QuestGranularity if self.is_stale(state, g, today, progress)]
        if not stale:
            return state, ResetResult()

        new_state = state.model_copy(deep=True)
        planner = GenerationPlanner(config, new_state.quest_preferences)
        flags: Dict[str, bool] = {}
        new_quests: List[Quest] = []
        for granularity in stale:
            new_quests.extend(self._regenerate(new_state, granularity, player_level, planner, today, progress))
            flags[f"{granularity.value}_reset"] = True

        logger.info(f"🔄 Quest reset on {today.isoformat()}: {', '.join(g.value for g in stale)} ({len(new_quests)} new)")
        return new_state, ResetResult(new_quests=new_quests, diagnostics=planner.diagnostics_as_dicts(), **flags)

    def recently_completed_ids(self, state: QuestSystemState, granularity: QuestGranularity, today: datetime.date) -> Set[str]:
        """履歴ウィンドウ (日数) 内に達成したテンプレートID"""
        window = app_config.HISTORY_WINDOW_DAYS[QuestGranularity(granularity).value]
        cutoff = today - datetime.timedelta(days=window)
        return {
            h.template_id for h in state.quest_history
            if h.completed_at.astimezone(self.factory.tz).date() >= cutoff
        }

    def milestone_templates(self, progress: PlayerProgress, completed_ids: Iterable[str] = ()) -> List[QuestTemplate]:
        """
        次の節目まであと1つのときの節目クエスト
          レベル: 5の倍数の1つ手前
          達成数: 50の倍数の1つ手前
        達成済みの節目は除く。
        """
        candidates = []
        next_level = math.ceil(progress.current_level / app_config.LEVEL_MILESTONE_STEP) * app_config.LEVEL_MILESTONE_STEP
        if progress.current_level == next_level - 1:
            candidates.append(self._milestone("level", next_level))

        completed_count = progress.total_quests_completed
        next_count = math.ceil(completed_count / app_config.QUEST_MILESTONE_STEP) * app_config.QUEST_MILESTONE_STEP
        if completed_count == next_count - 1:
            candidates.append(self._milestone("quests", next_count))

        done = set(completed_ids)
        return [t for t in candidates if t.id not in done]

    # ==========================================
    # Internal
    # ==========================================

    def _milestone(self, kind: str, target: int) -> QuestTemplate:
        record = dict(quest_data.MILESTONE_QUEST_TEMPLATES[kind])
        record["title"] = record["title"].format(target=target)
        record["description"] = record["description"].format(target=target)
        return QuestTemplate(
            id=f"milestone_{kind}_{target}",
            allowed_granularities=[QuestGranularity.SPECIAL],
            **record,
        )

    def _completed_template_ids(self, state: QuestSystemState) -> Set[str]:
        return {h.template_id for h in state.quest_history}

    def _regenerate(
        self,
        state: QuestSystemState,
        granularity: QuestGranularity,
        player_level: int,
        planner: GenerationPlanner,
        today: datetime.date,
        progress: Optional[PlayerProgress] = None,
    ) -> List[Quest]:
        # state は呼び出し側でコピー済みのものを直接書き換える
        outgoing = state.quests_of(granularity)
        self._update_streak(state, granularity, outgoing, today)

        outgoing_ids = {q.id for q in outgoing}
        state.active_quests = [q for q in state.active_quests if q.id not in outgoing_ids]
        for quest_id in outgoing_ids:
            state.player_quest_states.pop(quest_id, None)

        completed_ids = self._completed_template_ids(state)
        selected = planner.plan(
            granularity,
            planner.config.count_for(granularity),
            self.catalog.list_templates(granularity=granularity),
            self.recently_completed_ids(state, granularity, today),
            player_level,
            today,
            completed_ids,
        )
        # 節目クエストは件数の枠外で追加する
        if granularity == QuestGranularity.SPECIAL and progress is not None:
            selected = selected + self.milestone_templates(progress, completed_ids)

        new_quests = [self.factory.build(t, granularity, today) for t in selected]
        for quest in new_quests:
            state.active_quests.append(quest)
            state.player_quest_states[quest.id] = PlayerQuestState(
                quest_id=quest.id, status=QuestStatus.AVAILABLE, expires_at=quest.end_date,
            )

        state.last_reset_dates = state.last_reset_dates.with_value(granularity, self._period_key(granularity, today))
        logger.debug(f"{granularity.value}: {len(new_quests)} quests generated")
        return new_quests

    def _period_key(self, granularity: QuestGranularity, today: datetime.date) -> str:
        if granularity == QuestGranularity.WEEKLY:
            return week_start(today).isoformat()
        elif granularity == QuestGranularity.MONTHLY:
            return month_start(today).isoformat()
        return today.isoformat()

    def _update_streak(self, state: QuestSystemState, granularity: QuestGranularity, outgoing: List[Quest], today: datetime.date) -> None:
        if granularity == QuestGranularity.SPECIAL:
            return
        previous = parse_date(state.last_reset_dates.get(granularity))
        if previous is not None and self._period_key(granularity, previous) == self._period_key(granularity, today):
            # 同じ期間内の作り直しでは連続記録を動かさない
            return

        streak = state.current_streak.get(granularity)
        if not any(q.completed for q in outgoing):
            streak = 0
        elif previous is not None and self._is_previous_period(granularity, previous, today):
            streak += 1
        else:
            streak = 1
        state.current_streak = state.current_streak.with_value(granularity, streak)

    def _is_previous_period(self, granularity: QuestGranularity, previous: datetime.date, today: datetime.date) -> bool:
        if granularity == QuestGranularity.DAILY:
            return previous == today - datetime.timedelta(days=1)
        elif granularity == QuestGranularity.WEEKLY:
            return week_start(previous) == week_start(today) - datetime.timedelta(days=7)
        elif granularity == QuestGranularity.MONTHLY:
            return add_months(month_start(previous), 1) == month_start(today)
        return False
