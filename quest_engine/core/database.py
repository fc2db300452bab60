import sqlite3
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from quest_engine import config
from quest_engine.core.logger import setup_logging

logger = setup_logging("core.database")

MAX_RETRIES = 5
RETRY_DELAY = 1.0


def _connect(db_path: str) -> sqlite3.Connection:
    """DB接続 (ロック時はリトライ)"""
    for attempt in range(MAX_RETRIES):
        conn = None
        try:
            conn = sqlite3.connect(db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            if db_path != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL;")
            return conn
        except sqlite3.OperationalError as e:
            # PRAGMA で失敗した接続はリトライ前に閉じる
            if conn is not None:
                conn.close()
            if "locked" not in str(e) or attempt == MAX_RETRIES - 1:
                logger.error(f"データベース接続エラー: {e}")
                raise
            logger.warning(f"⚠️ DB is locked. Retrying... ({attempt+1}/{MAX_RETRIES})")
            time.sleep(RETRY_DELAY)
    raise sqlite3.OperationalError("DB Retry limit reached")


@contextmanager
def get_db_cursor(db_path: Optional[str] = None, commit: bool = False) -> Iterator[sqlite3.Cursor]:
    """DB接続コンテキストマネージャ (リトライ機能付き)"""
    conn = _connect(db_path or config.SQLITE_DB_PATH)
    try:
        yield conn.cursor()
        if commit:
            conn.commit()
    except Exception as e:
        logger.error(f"データベース操作エラー: {e}")
        conn.rollback()
        raise
    finally:
        conn.close()
