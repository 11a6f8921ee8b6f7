"""Structured logging setup.

構造化ログ（JSON 1 行 1 イベント）の初期化をまとめる。リクエスト単位の
`request_id` は structlog の ContextVar 経由で全ログに付与される。
"""

import logging

import structlog
from structlog import contextvars as structlog_contextvars

from .config import settings


def _resolve_level(raw: str | None) -> int:
    """Map a level name such as ``"debug"`` to a stdlib logging level."""

    level = logging.getLevelName((raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Configure structlog for application-wide logging.

    アプリ全体のロギング設定を行う。標準 logging を初期化し、
    structlog で ISO タイムスタンプと JSON 形式の出力を有効化する。
    """
    # stdlib 側の出力に "INFO:logger:" などのプレフィックスを付けない。
    # force=True で既存ハンドラ（uvicorn 等）を上書きする。
    logging.basicConfig(
        level=_resolve_level(settings.log_level),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


logger = structlog.get_logger()
