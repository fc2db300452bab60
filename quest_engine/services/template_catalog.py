# quest_engine/services/template_catalog.py
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from quest_engine import quest_data
from quest_engine.core.logger import setup_logging
from quest_engine.models.quest import QuestCategory, QuestGranularity, QuestTemplate

logger = setup_logging("template_catalog")


class TemplateCatalog:
    """
    クエストテンプレートの読み取り専用カタログ。
    カテゴリ・粒度ごとのインデックスを構築時に作っておく。
    """

    def __init__(self, templates: Iterable[QuestTemplate]):
        self._templates: Dict[str, QuestTemplate] = {}
        self._by_category: Dict[QuestCategory, List[QuestTemplate]] = defaultdict(list)
        self._by_granularity: Dict[QuestGranularity, List[QuestTemplate]] = defaultdict(list)

        for template in templates:
            if template.id in self._templates:
                logger.warning(f"⚠️ Duplicate template id ignored: {template.id}")
                continue
            self._templates[template.id] = template
            self._by_category[template.category].append(template)
            for granularity in template.allowed_granularities:
                self._by_granularity[granularity].append(template)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "TemplateCatalog":
        """辞書 (quest_data 形式) からカタログを作る"""
        return cls(QuestTemplate(**record) for record in records)

    @classmethod
    def default(cls) -> "TemplateCatalog":
        catalog = cls.from_records(quest_data.QUEST_TEMPLATES + quest_data.SPECIAL_QUEST_TEMPLATES)
        logger.info(f"📚 Template catalog loaded: {len(catalog)} templates")
        return catalog

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def get(self, template_id: str) -> Optional[QuestTemplate]:
        return self._templates.get(template_id)

    def all(self) -> List[QuestTemplate]:
        return list(self._templates.values())

    def list_templates(
        self,
        granularity: Optional[QuestGranularity] = None,
        category: Optional[QuestCategory] = None,
        max_level: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[QuestTemplate]:
        """
        条件に合うテンプレートを定義順で返す。
        month を指定すると季節限定テンプレートを月で絞り込む。
        """
        if granularity is not None:
            candidates = self._by_granularity.get(QuestGranularity(granularity), [])
        elif category is not None:
            candidates = self._by_category.get(QuestCategory(category), [])
        else:
            candidates = self.all()

        result = []
        for template in candidates:
            if category is not None and template.category != category:
                continue
            if max_level is not None and template.level_requirement > max_level:
                continue
            if month is not None and template.seasonal_availability and month not in template.seasonal_availability:
                continue
            result.append(template)
        return result

    def event_window_keys(self, day) -> List[str]:
        """day 時点で開催中のイベント期間を持つテンプレートID (ソート済み)"""
        return sorted(
            t.id for t in self._by_granularity.get(QuestGranularity.SPECIAL, [])
            if t.has_event_window() and t.window_contains(day)
        )
