from __future__ import annotations

from ..config import Settings
from .common import ReviewItemStore, StoredReviewItemError, dump_item, load_item
from .memory import InMemoryReviewStore
from .sqlite_store import SQLiteReviewStore


def create_store(settings: Settings) -> ReviewItemStore:
    """設定に応じて復習アイテムのストアを初期化する。"""

    if settings.review_store_backend == "memory":
        return InMemoryReviewStore()
    return SQLiteReviewStore(settings.review_db_path)


__all__ = [
    "InMemoryReviewStore",
    "ReviewItemStore",
    "SQLiteReviewStore",
    "StoredReviewItemError",
    "create_store",
    "dump_item",
    "load_item",
]
