# quest_engine/models/quest.py
import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from quest_engine import config
from quest_engine.exceptions import InvalidConfiguration

# ==========================================
# Enums
# ==========================================

class QuestCategory(str, Enum):
    HEALTH = "health"
    WORK = "work"
    PERSONAL = "personal"
    SOCIAL = "social"
    LEARNING = "learning"
    CREATIVITY = "creativity"
    FITNESS = "fitness"
    MINDFULNESS = "mindfulness"


class QuestGranularity(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIAL = "special"


class QuestStatus(str, Enum):
    AVAILABLE = "available"
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    SKIPPED = "skipped"


TERMINAL_STATUSES = (QuestStatus.COMPLETED, QuestStatus.EXPIRED, QuestStatus.SKIPPED)

# ==========================================
# Catalog Models (マスタデータ)
# ==========================================

class QuestVariation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    xp_modifier: Optional[float] = None
    difficulty_modifier: Optional[int] = None
    conditions: List[str] = Field(default_factory=list)


class QuestTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    category: QuestCategory
    difficulty: int = Field(ge=1, le=5)
    base_xp: int = Field(gt=0)
    allowed_granularities: List[QuestGranularity]
    weight: float = Field(default=1.0, gt=0)
    level_requirement: int = 1
    seasonal_availability: Optional[List[int]] = None
    variations: List[QuestVariation] = Field(default_factory=list)
    is_dynamic: bool = False
    personalized_fields: Optional[List[str]] = None
    prerequisites: List[str] = Field(default_factory=list)
    max_completions: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    icon: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    # 特別クエスト用のイベント期間
    event_start: Optional[datetime.date] = None
    event_end: Optional[datetime.date] = None
    # 特別クエストの有効日数 (未指定なら config.SPECIAL_QUEST_DAYS)
    duration_days: Optional[int] = Field(default=None, gt=0)

    def allows(self, granularity: QuestGranularity) -> bool:
        return granularity in self.allowed_granularities

    def has_event_window(self) -> bool:
        return self.event_start is not None or self.event_end is not None

    def window_contains(self, day: datetime.date) -> bool:
        """イベント期間内か (期間未設定なら常に True)"""
        if self.event_start and day < self.event_start:
            return False
        if self.event_end and day > self.event_end:
            return False
        return True

# ==========================================
# Instance Models
# ==========================================

class Quest(BaseModel):
    id: str
    template_id: str
    variation_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    category: QuestCategory
    difficulty: int
    xp: int
    bonus_xp: Optional[int] = None
    granularity: QuestGranularity
    start_date: datetime.datetime
    end_date: datetime.datetime
    completed: bool = False
    completed_at: Optional[datetime.datetime] = None
    progress: int = 0
    max_completions: Optional[int] = None
    current_completions: int = 0
    time_limit_minutes: Optional[int] = None
    icon: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)


class PlayerQuestState(BaseModel):
    quest_id: str
    status: QuestStatus = QuestStatus.AVAILABLE
    progress: int = 0
    current_completions: int = 0
    started_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    expires_at: Optional[datetime.datetime] = None
    time_spent: int = 0
    notes: Optional[str] = None


class QuestHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    quest_id: str
    template_id: str
    granularity: QuestGranularity
    category: QuestCategory
    completed_at: datetime.datetime
    xp_earned: int
    time_spent: int = 0
    rating: Optional[int] = Field(default=None, ge=1, le=5)

# ==========================================
# Per-granularity structs
# ==========================================

class GranularityDates(BaseModel):
    """粒度ごとの最終リセット日 ('YYYY-MM-DD')"""
    daily: Optional[str] = None
    weekly: Optional[str] = None
    monthly: Optional[str] = None
    special: Optional[str] = None

    def get(self, granularity: QuestGranularity) -> Optional[str]:
        if granularity == QuestGranularity.DAILY:
            return self.daily
        elif granularity == QuestGranularity.WEEKLY:
            return self.weekly
        elif granularity == QuestGranularity.MONTHLY:
            return self.monthly
        elif granularity == QuestGranularity.SPECIAL:
            return self.special
        raise ValueError(f"Unknown granularity: {granularity}")

    def with_value(self, granularity: QuestGranularity, value: Optional[str]) -> "GranularityDates":
        return self.model_copy(update={QuestGranularity(granularity).value: value})


class GranularityCounters(BaseModel):
    daily: int = 0
    weekly: int = 0
    monthly: int = 0
    special: int = 0

    def get(self, granularity: QuestGranularity) -> int:
        if granularity == QuestGranularity.DAILY:
            return self.daily
        elif granularity == QuestGranularity.WEEKLY:
            return self.weekly
        elif granularity == QuestGranularity.MONTHLY:
            return self.monthly
        elif granularity == QuestGranularity.SPECIAL:
            return self.special
        raise ValueError(f"Unknown granularity: {granularity}")

    def with_value(self, granularity: QuestGranularity, value: int) -> "GranularityCounters":
        return self.model_copy(update={QuestGranularity(granularity).value: value})

    def incremented(self, granularity: QuestGranularity, amount: int = 1) -> "GranularityCounters":
        return self.with_value(granularity, self.get(granularity) + amount)

# ==========================================
# Aggregate State
# ==========================================

class QuestPreferences(BaseModel):
    preferred_categories: List[QuestCategory] = Field(default_factory=list)
    avoided_categories: List[QuestCategory] = Field(default_factory=list)
    difficulty_preference: str = "balanced"  # easy, balanced, challenging


class QuestSystemState(BaseModel):
    active_quests: List[Quest] = Field(default_factory=list)
    quest_history: List[QuestHistory] = Field(default_factory=list)
    player_quest_states: Dict[str, PlayerQuestState] = Field(default_factory=dict)
    last_reset_dates: GranularityDates = Field(default_factory=GranularityDates)
    current_streak: GranularityCounters = Field(default_factory=GranularityCounters)
    unlocked_categories: List[QuestCategory] = Field(
        default_factory=lambda: [QuestCategory.HEALTH, QuestCategory.PERSONAL, QuestCategory.MINDFULNESS]
    )
    quest_preferences: QuestPreferences = Field(default_factory=QuestPreferences)

    def find_quest(self, quest_id: str) -> Optional[Quest]:
        for quest in self.active_quests:
            if quest.id == quest_id:
                return quest
        return None

    def quests_of(self, granularity: QuestGranularity) -> List[Quest]:
        return [q for q in self.active_quests if q.granularity == granularity]


class GenerationConfig(BaseModel):
    daily_quests_count: int = config.DEFAULT_QUEST_COUNTS["daily"]
    weekly_quests_count: int = config.DEFAULT_QUEST_COUNTS["weekly"]
    monthly_quests_count: int = config.DEFAULT_QUEST_COUNTS["monthly"]
    special_quests_count: int = config.DEFAULT_QUEST_COUNTS["special"]
    max_difficulty_per_level: int = 1
    category_balance: Dict[str, float] = Field(default_factory=lambda: dict(config.CATEGORY_WEIGHTS))
    ensure_variety: bool = True
    consider_player_history: bool = True
    adapt_to_player_level: bool = True

    @classmethod
    def default(cls) -> "GenerationConfig":
        return cls()

    def count_for(self, granularity: QuestGranularity) -> int:
        if granularity == QuestGranularity.DAILY:
            return self.daily_quests_count
        elif granularity == QuestGranularity.WEEKLY:
            return self.weekly_quests_count
        elif granularity == QuestGranularity.MONTHLY:
            return self.monthly_quests_count
        elif granularity == QuestGranularity.SPECIAL:
            return self.special_quests_count
        raise ValueError(f"Unknown granularity: {granularity}")

    def ensure_valid(self) -> None:
        """設定値の検証。不正なら InvalidConfiguration を送出する。"""
        for name in ("daily_quests_count", "weekly_quests_count", "monthly_quests_count", "special_quests_count"):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(name, "count must not be negative")
        if self.max_difficulty_per_level < 0:
            raise InvalidConfiguration("max_difficulty_per_level", "must not be negative")
        for category, weight in self.category_balance.items():
            if category not in config.CATEGORIES:
                raise InvalidConfiguration("category_balance", f"unknown category '{category}'")
            if weight < 0:
                raise InvalidConfiguration("category_balance", f"negative weight for '{category}'")

# ==========================================
# Progression / Result Models
# ==========================================

class PlayerProgress(BaseModel):
    current_level: int = 1
    current_xp: int = 0
    xp_to_next_level: int = config.XP_PER_LEVEL
    total_xp: int = 0
    quests_completed: GranularityCounters = Field(default_factory=GranularityCounters)

    @property
    def total_quests_completed(self) -> int:
        counters = self.quests_completed
        return counters.daily + counters.weekly + counters.monthly + counters.special


class RewardResult(BaseModel):
    base_xp: int
    bonus_xp: int
    total_xp: int
    multipliers: Dict[str, float] = Field(default_factory=dict)


class ResetResult(BaseModel):
    daily_reset: bool = False
    weekly_reset: bool = False
    monthly_reset: bool = False
    special_reset: bool = False
    new_quests: List[Quest] = Field(default_factory=list)
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list)

    def flag(self, granularity: QuestGranularity) -> bool:
        if granularity == QuestGranularity.DAILY:
            return self.daily_reset
        elif granularity == QuestGranularity.WEEKLY:
            return self.weekly_reset
        elif granularity == QuestGranularity.MONTHLY:
            return self.monthly_reset
        elif granularity == QuestGranularity.SPECIAL:
            return self.special_reset
        raise ValueError(f"Unknown granularity: {granularity}")

    @property
    def any_reset(self) -> bool:
        return self.daily_reset or self.weekly_reset or self.monthly_reset or self.special_reset
