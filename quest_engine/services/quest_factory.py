# quest_engine/services/quest_factory.py
import datetime
import re
from typing import Dict, Optional, Union

from quest_engine import config
from quest_engine.core.utils import (
    add_months, end_of_day, get_timezone, localize, round_half_up, start_of_day,
)
from quest_engine.models.quest import Quest, QuestGranularity, QuestTemplate, QuestVariation
from quest_engine.services.seeded_selector import SeededRandom, weighted_pick

# {{minutes}} のようなプレースホルダ
PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

KNOWN_PLACEHOLDERS = (
    "amount", "minutes", "pages", "number", "time",
    "skill", "topic", "meals", "hours", "steps",
)


class QuestInstanceFactory:
    """テンプレート (+バリエーション) から具体的な Quest を作る"""

    def __init__(self, tz: Union[str, datetime.tzinfo, None] = None):
        if tz is None or isinstance(tz, str):
            self.tz = get_timezone(tz)
        else:
            self.tz = tz

    def rng_for(self, template: QuestTemplate, granularity: QuestGranularity, on_date: datetime.date) -> SeededRandom:
        """テンプレートごとの乱数 ('{date}:{granularity}:{template_id}')"""
        return SeededRandom.from_date(on_date.isoformat(), f"{QuestGranularity(granularity).value}:{template.id}")

    def choose_variation(self, template: QuestTemplate, rng: SeededRandom) -> Optional[QuestVariation]:
        return weighted_pick(template.variations, lambda v: 1.0, rng)

    def build(self, template: QuestTemplate, granularity: QuestGranularity, on_date: datetime.date) -> Quest:
        rng = self.rng_for(template, granularity, on_date)
        variation = self.choose_variation(template, rng)
        return self.materialize(template, variation, granularity, on_date, rng)

    def materialize(
        self,
        template: QuestTemplate,
        variation: Optional[QuestVariation],
        granularity: QuestGranularity,
        start_date: Union[datetime.date, datetime.datetime],
        rng: Optional[SeededRandom] = None,
    ) -> Quest:
        granularity = QuestGranularity(granularity)
        start = self._to_start(start_date)
        day = start.date()
        if rng is None:
            rng = self.rng_for(template, granularity, day)

        title = variation.title if variation else template.title
        description = (variation.description if variation else None) or template.description

        difficulty_modifier = variation.difficulty_modifier if variation and variation.difficulty_modifier else 0
        difficulty = max(1, min(5, template.difficulty + difficulty_modifier))

        if template.is_dynamic:
            values: Dict[str, str] = {}
            title = self._personalize(title, template, difficulty, rng, values)
            if description:
                description = self._personalize(description, template, difficulty, rng, values)

        xp_modifier = variation.xp_modifier if variation and variation.xp_modifier is not None else 1.0
        xp = max(config.MIN_QUEST_XP, round_half_up(template.base_xp * xp_modifier))

        bonus_xp = None
        if template.base_xp > config.BONUS_XP_THRESHOLD:
            bonus_xp = round_half_up(template.base_xp * config.BONUS_XP_RATE)

        return Quest(
            id=f"{template.id}_{granularity.value}_{day.isoformat()}",
            template_id=template.id,
            variation_id=variation.id if variation else None,
            title=title,
            description=description,
            category=template.category,
            difficulty=difficulty,
            xp=xp,
            bonus_xp=bonus_xp,
            granularity=granularity,
            start_date=start,
            end_date=self.end_date_for(template, granularity, start),
            max_completions=template.max_completions,
            time_limit_minutes=template.time_limit_minutes,
            icon=template.icon,
            tags=list(template.tags),
            prerequisites=list(template.prerequisites),
        )

    def end_date_for(self, template: QuestTemplate, granularity: QuestGranularity, start: datetime.datetime) -> datetime.datetime:
        day = start.date()
        if granularity == QuestGranularity.DAILY:
            return end_of_day(day, self.tz)
        elif granularity == QuestGranularity.WEEKLY:
            return self._same_time_on(start, day + datetime.timedelta(days=7))
        elif granularity == QuestGranularity.MONTHLY:
            return self._same_time_on(start, add_months(day, 1))
        elif granularity == QuestGranularity.SPECIAL:
            if template.event_end is not None:
                event_end = end_of_day(template.event_end, self.tz)
                if event_end > start:
                    return event_end
            days = template.duration_days or config.SPECIAL_QUEST_DAYS
            return self._same_time_on(start, day + datetime.timedelta(days=days))
        raise ValueError(f"Unknown granularity: {granularity}")

    # ==========================================
    # Internal
    # ==========================================

    def _to_start(self, value: Union[datetime.date, datetime.datetime]) -> datetime.datetime:
        if isinstance(value, datetime.datetime):
            if value.tzinfo is None:
                return localize(value, self.tz)
            return value.astimezone(self.tz)
        return start_of_day(value, self.tz)

    def _same_time_on(self, start: datetime.datetime, day: datetime.date) -> datetime.datetime:
        # 壁時計の時刻を保ったまま日付だけ移す (DST対策)
        return localize(datetime.datetime.combine(day, start.time()), self.tz)

    def _personalize(self, text: str, template: QuestTemplate, difficulty: int, rng: SeededRandom, values: Dict[str, str]) -> str:
        allowed = template.personalized_fields or KNOWN_PLACEHOLDERS

        def replace(match: "re.Match") -> str:
            field = match.group(1)
            if field not in allowed or field not in KNOWN_PLACEHOLDERS:
                return match.group(0)
            if field not in values:
                values[field] = self._value_for(field, difficulty, rng)
            return values[field]

        return PLACEHOLDER_PATTERN.sub(replace, text)

    def _value_for(self, field: str, difficulty: int, rng: SeededRandom) -> str:
        if field in config.PERSONALIZATION_BY_DIFFICULTY:
            return rng.choice(config.PERSONALIZATION_BY_DIFFICULTY[field][difficulty])
        return rng.choice(config.PERSONALIZATION_VALUES[field])
