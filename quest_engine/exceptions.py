# quest_engine/exceptions.py
from typing import Any, Dict, Optional


class QuestEngineError(Exception):
    """
    クエストエンジンの例外の基底クラス
    ログ出力用に構造化された details を持つ。
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class InvalidConfiguration(QuestEngineError):
    """生成設定が不正 (負の件数、未知のカテゴリなど)。復旧不能。"""

    def __init__(self, field: str, reason: str):
        self.field = field
        super().__init__(f"Invalid configuration for {field}: {reason}", {"field": field, "reason": reason})


class TemplatePoolExhausted(QuestEngineError):
    """
    候補テンプレートが要求数に満たなかったことを示す診断情報。
    raise はせず、planner.diagnostics に積まれる。
    """

    def __init__(self, granularity: str, requested: int, selected: int):
        self.granularity = granularity
        self.requested = requested
        self.selected = selected
        super().__init__(
            f"Template pool exhausted for {granularity}: requested {requested}, selected {selected}",
            {"granularity": granularity, "requested": requested, "selected": selected},
        )


class QuestNotFound(QuestEngineError):
    """指定IDのクエストがアクティブ一覧に存在しない"""

    def __init__(self, quest_id: str):
        self.quest_id = quest_id
        super().__init__(f"Quest not found: {quest_id}", {"quest_id": quest_id})


class InvalidQuestTransition(QuestEngineError):
    """終了済み (expired / skipped) のクエストに対する不正な状態遷移"""

    def __init__(self, quest_id: str, current: str, target: str):
        self.quest_id = quest_id
        self.current = current
        self.target = target
        super().__init__(
            f"Quest {quest_id} cannot move from {current} to {target}",
            {"quest_id": quest_id, "current": current, "target": target},
        )


class StaleState(QuestEngineError):
    """保存された最終リセット日が現在日より未来 (時計ずれ・データ破損)"""

    def __init__(self, granularity: str, last_reset: str, today: str):
        self.granularity = granularity
        self.last_reset = last_reset
        self.today = today
        super().__init__(
            f"Last {granularity} reset {last_reset} is after today ({today})",
            {"granularity": granularity, "last_reset": last_reset, "today": today},
        )
