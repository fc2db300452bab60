# quest_engine/services/state_store.py
import sqlite3
from typing import List, Optional, Protocol

from quest_engine import config
from quest_engine.core.database import get_db_cursor
from quest_engine.core.logger import setup_logging
from quest_engine.core.utils import get_now_iso
from quest_engine.models.quest import QuestSystemState

logger = setup_logging("state_store")


class QuestStateStore(Protocol):
    """ユーザーごとの QuestSystemState を読み書きする保存先"""

    def load(self, user_id: str) -> Optional[QuestSystemState]:
        ...

    def save(self, user_id: str, state: QuestSystemState) -> bool:
        ...


class SqliteQuestStateStore:
    """
    SQLite に state を JSON で保存するアダプタ。
    上書き前に直前の内容をバックアップテーブルへ退避する。
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.SQLITE_DB_PATH
        self.init_schema()

    def init_schema(self) -> None:
        with get_db_cursor(self.db_path, commit=True) as cur:
            cur.execute(f"""
                CREATE TABLE IF NOT EXISTS {config.SQLITE_TABLE_STATE} (
                    user_id TEXT PRIMARY KEY,
                    state_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            cur.execute(f"""
                CREATE TABLE IF NOT EXISTS {config.SQLITE_TABLE_STATE_BACKUP} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    state_json TEXT NOT NULL,
                    backed_up_at TEXT NOT NULL
                )
            """)

    def load(self, user_id: str) -> Optional[QuestSystemState]:
        with get_db_cursor(self.db_path) as cur:
            row = cur.execute(
                f"SELECT state_json FROM {config.SQLITE_TABLE_STATE} WHERE user_id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return QuestSystemState.model_validate_json(row["state_json"])

    def save(self, user_id: str, state: QuestSystemState) -> bool:
        now_iso = get_now_iso()
        try:
            with get_db_cursor(self.db_path, commit=True) as cur:
                prev = cur.execute(
                    f"SELECT state_json FROM {config.SQLITE_TABLE_STATE} WHERE user_id = ?", (user_id,)
                ).fetchone()
                if prev:
                    cur.execute(
                        f"INSERT INTO {config.SQLITE_TABLE_STATE_BACKUP} (user_id, state_json, backed_up_at) VALUES (?, ?, ?)",
                        (user_id, prev["state_json"], now_iso),
                    )
                cur.execute(
                    f"INSERT OR REPLACE INTO {config.SQLITE_TABLE_STATE} (user_id, state_json, updated_at) VALUES (?, ?, ?)",
                    (user_id, state.model_dump_json(), now_iso),
                )
            return True
        except sqlite3.Error as e:
            logger.error(f"状態保存失敗 ({user_id}): {e}")
            return False

    def list_backups(self, user_id: str, limit: int = 10) -> List[QuestSystemState]:
        """新しい順にバックアップを返す"""
        with get_db_cursor(self.db_path) as cur:
            rows = cur.execute(
                f"SELECT state_json FROM {config.SQLITE_TABLE_STATE_BACKUP} WHERE user_id = ? ORDER BY id DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [QuestSystemState.model_validate_json(r["state_json"]) for r in rows]
