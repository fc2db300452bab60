# quest_engine/config.py
import os
from typing import Dict, List, Optional
from dotenv import load_dotenv

# .envファイルのロード
load_dotenv()

# ==========================================
# 1. 通知設定 (Secrets)
# ==========================================
# Discord Webhooks (エラー通知用)
DISCORD_WEBHOOK_ERROR: Optional[str] = os.getenv("DISCORD_WEBHOOK_ERROR")

# ==========================================
# 2. システム・パス設定
# ==========================================
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# タイムゾーン (日付境界の判定に使用)
QUEST_TIMEZONE: str = os.getenv("QUEST_TIMEZONE", "Asia/Tokyo")

# 状態保存用DB (外部ストア用アダプタが使用)
SQLITE_DB_PATH: str = os.getenv("QUEST_DB_PATH", os.path.join(BASE_DIR, "quest_state.db"))
SQLITE_TABLE_STATE = "quest_states"
SQLITE_TABLE_STATE_BACKUP = "quest_state_backups"

# ログ
# ファイル出力は明示的に有効化した場合のみ (パッケージ内には書き込まない)
LOG_DIR: str = os.getenv("QUEST_LOG_DIR", os.path.join(os.getcwd(), "logs"))
FILE_LOGGING: bool = os.getenv("QUEST_FILE_LOGGING", "false").lower() == "true"

# ==========================================
# 3. クエスト生成ルール
# ==========================================
CATEGORIES: List[str] = [
    "health", "work", "personal", "social",
    "learning", "creativity", "fitness", "mindfulness",
]

GRANULARITIES: List[str] = ["daily", "weekly", "monthly", "special"]

# 粒度ごとのデフォルト生成数
DEFAULT_QUEST_COUNTS: Dict[str, int] = {
    "daily": 8,
    "weekly": 6,
    "monthly": 4,
    "special": 2,
}

# カテゴリの出現バランス
CATEGORY_WEIGHTS: Dict[str, float] = {
    "health": 9,
    "fitness": 7,
    "work": 8,
    "personal": 9,
    "social": 6,
    "learning": 8,
    "creativity": 5,
    "mindfulness": 8,
}

# 最近達成したクエストを除外する期間 (日)
HISTORY_WINDOW_DAYS: Dict[str, int] = {
    "daily": 3,
    "weekly": 14,
    "monthly": 30,
    "special": 30,
}

# 選択重みの補正
FIRST_CATEGORY_BOOST = 2.0
PREFERRED_CATEGORY_BOOST = 1.5
AVOIDED_CATEGORY_PENALTY = 0.3

# 特別クエストのデフォルト期間 (日)
SPECIAL_QUEST_DAYS = 30

# レベル帯ごとのクエストプール (レベル適応が有効なときに適用)
# max_level: この帯の上限レベル (None は上限なし)
QUEST_POOLS_BY_LEVEL: List[Dict] = [
    {"tier": "beginner", "max_level": 3, "max_difficulty": 2, "avoid_categories": ["fitness", "work"]},
    {"tier": "intermediate", "max_level": 7, "max_difficulty": 3, "avoid_categories": []},
    {"tier": "advanced", "max_level": 12, "max_difficulty": 4, "avoid_categories": []},
    {"tier": "expert", "max_level": None, "max_difficulty": 5, "avoid_categories": []},
]

# 節目クエスト (レベル / 累計達成数)
LEVEL_MILESTONE_STEP = 5
QUEST_MILESTONE_STEP = 50

# ==========================================
# 4. 経験値・レベル設定
# ==========================================
MIN_QUEST_XP = 10
BONUS_XP_THRESHOLD = 50
BONUS_XP_RATE = 0.2

CATEGORY_XP_MULTIPLIERS: Dict[str, float] = {
    "health": 1.1,
    "fitness": 1.2,
    "work": 1.15,
    "personal": 1.0,
    "social": 1.1,
    "learning": 1.2,
    "creativity": 1.3,
    "mindfulness": 1.1,
}

GRANULARITY_XP_MULTIPLIERS: Dict[str, float] = {
    "daily": 1.0,
    "weekly": 1.3,
    "monthly": 1.8,
    "special": 2.5,
}

LEVEL_SCALING_PER_LEVEL = 0.02
LEVEL_SCALING_CAP = 1.5

FAST_COMPLETION_RATIO = 0.5
FAST_COMPLETION_BONUS = 1.2
SLOW_COMPLETION_RATIO = 0.9
SLOW_COMPLETION_PENALTY = 0.9

XP_PER_LEVEL = 100

# カテゴリ解放レベルとマスタリー基準
CATEGORY_UNLOCK_LEVELS: Dict[str, int] = {
    "health": 1,
    "personal": 1,
    "mindfulness": 1,
    "fitness": 2,
    "learning": 2,
    "work": 3,
    "social": 4,
    "creativity": 5,
}

CATEGORY_MASTERY_LEVELS: Dict[str, int] = {
    "health": 20,
    "personal": 15,
    "mindfulness": 20,
    "fitness": 25,
    "learning": 25,
    "work": 30,
    "social": 20,
    "creativity": 35,
}

MASTERY_TITLES: List[str] = [
    "見習い", "駆け出し", "初級者", "一人前", "熟練者",
    "上級者", "達人", "名人", "大名人", "伝説",
]

# 連続達成ボーナス
STREAK_DAILY_STEP = 0.05
STREAK_WEEKLY_BONUS = 0.2
STREAK_MONTHLY_BONUS = 0.3
STREAK_MULTIPLIER_CAP = 2.0

# ==========================================
# 5. パーソナライズ用の値セット
# ==========================================
# 難易度 (1〜5) ごとの候補
PERSONALIZATION_BY_DIFFICULTY: Dict[str, Dict[int, List[str]]] = {
    "minutes": {
        1: ["5", "10", "15"],
        2: ["10", "15", "20"],
        3: ["20", "30", "45"],
        4: ["30", "45", "60"],
        5: ["45", "60", "90"],
    },
    "pages": {
        1: ["5", "10", "15"],
        2: ["10", "20", "30"],
        3: ["20", "40", "60"],
        4: ["40", "60", "80"],
        5: ["60", "80", "100"],
    },
    "number": {
        1: ["1", "2", "3"],
        2: ["3", "5", "7"],
        3: ["5", "7", "10"],
        4: ["7", "10", "15"],
        5: ["10", "15", "20"],
    },
}

# 難易度に依存しない候補
PERSONALIZATION_VALUES: Dict[str, List[str]] = {
    "amount": ["4", "6", "8"],
    "time": ["21:00", "22:00", "22:30", "23:00"],
    "skill": ["ギター", "イラスト", "新しい言語", "プログラミング", "写真"],
    "topic": ["歴史", "科学", "アート", "テクノロジー", "哲学"],
    "meals": ["3", "5", "7"],
    "hours": ["1", "2", "4", "8"],
    "steps": ["5000", "8000", "10000", "12000"],
}
