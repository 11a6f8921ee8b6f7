from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterator

from ..models.review import ReviewItem
from .common import dump_item, load_item


class SQLiteReviewStore:
    """SQLite-backed key-value store for review items.

    - 1 アイテム = 1 行。`data` に camelCase の JSON をそのまま保存する
    - save は id をキーにした upsert（既存行の rowid を保つため load の順序は作成順）
    - 接続は操作ごとに開閉する。`:memory:` は接続ごとに消えるため、Settings が memory バックエンドへ切り替える
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on pragma
            conn.execute("pragma journal_mode=WAL;")
        return conn

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS review_items (
                        id TEXT PRIMARY KEY,
                        data TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );
                    """
                )

    # --- public API ---
    def load(self) -> list[ReviewItem]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT id, data FROM review_items ORDER BY rowid ASC;"
            ).fetchall()
        return [load_item(row["id"], row["data"]) for row in rows]

    def get(self, item_id: str) -> ReviewItem | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT id, data FROM review_items WHERE id = ?;", (item_id,)
            ).fetchone()
        if row is None:
            return None
        return load_item(row["id"], row["data"])

    def save(self, item: ReviewItem) -> None:
        now = datetime.now(UTC).isoformat()
        with self._conn() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO review_items (id, data, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        data = excluded.data,
                        updated_at = excluded.updated_at;
                    """,
                    (item.id, dump_item(item), now),
                )

    def delete(self, item_id: str) -> bool:
        with self._conn() as conn:
            with conn:
                cur = conn.execute("DELETE FROM review_items WHERE id = ?;", (item_id,))
        return cur.rowcount > 0
