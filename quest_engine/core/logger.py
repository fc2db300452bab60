import logging
import traceback
import os
import requests
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from quest_engine import config

# === ロギング設定 ===
class DiscordErrorHandler(logging.Handler):
    """エラーログをDiscordに通知するハンドラ (スタックトレース対応版)"""
    def __init__(self, webhook_url: Optional[str] = None):
        super().__init__()
        self.webhook_url = webhook_url

    def emit(self, record):
        # 通知失敗ログの再帰を防ぐ
        if record.levelno < logging.ERROR or "Discord" in str(record.msg):
            return

        url = self.webhook_url or config.DISCORD_WEBHOOK_ERROR
        if not url:
            return

        log_msg = self.format(record)

        stack_trace = ""
        if record.exc_info:
            stack_trace = "".join(traceback.format_exception(*record.exc_info))

        content = f"😰 **クエストエンジンでエラー発生**\n```python\n{log_msg}\n```"
        if stack_trace:
            trace_snippet = stack_trace[-1000:]
            content += f"\n**Stack Trace (End):**\n```python\n{trace_snippet}```"

        try:
            requests.post(url, json={"content": content[:1900]}, timeout=5)
        except requests.RequestException:
            # ハンドラ内での例外はloggingの仕組みに任せる
            self.handleError(record)


def setup_logging(name: str, webhook_url: Optional[str] = None) -> logging.Logger:
    """ロガーのセットアップ"""
    logger = logging.getLogger(name)
    logger.propagate = False

    if logger.handlers:
        logger.handlers.clear()

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S')

    # コンソール出力
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    # ファイル出力
    if config.FILE_LOGGING:
        os.makedirs(config.LOG_DIR, exist_ok=True)
        log_file = os.path.join(config.LOG_DIR, "quest_engine.log")
        file_handler = TimedRotatingFileHandler(
            filename=log_file,
            when='midnight',
            interval=1,
            backupCount=7,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Discord通知
    # 引数でURLが指定されていれば優先、なければconfig.DISCORD_WEBHOOK_ERRORを使用
    target_url = webhook_url or config.DISCORD_WEBHOOK_ERROR
    if target_url:
        discord_handler = DiscordErrorHandler(webhook_url=target_url)
        discord_handler.setLevel(logging.ERROR)
        discord_handler.setFormatter(formatter)
        logger.addHandler(discord_handler)

    return logger
