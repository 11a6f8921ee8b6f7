import sqlite3
from datetime import timedelta
from pathlib import Path

import pytest

from mastery.config import Settings
from mastery.scheduler import apply_review, create_review_item
from mastery.store import (
    InMemoryReviewStore,
    SQLiteReviewStore,
    StoredReviewItemError,
    create_store,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryReviewStore()
    return SQLiteReviewStore(str(tmp_path / "review.sqlite3"))


def test_empty_store_loads_nothing(store):
    assert store.load() == []
    assert store.get("rv:missing") is None


def test_save_upserts_by_id_and_keeps_creation_order(store, now):
    first = create_review_item("Gravity", "What is gravity?", now=now)
    second = create_review_item("Osmosis", "What is osmosis?", now=now + timedelta(minutes=1))
    store.save(first)
    store.save(second)

    graded = apply_review(first, 5, now + timedelta(minutes=5))
    store.save(graded)

    loaded = store.load()
    assert [it.id for it in loaded] == [first.id, second.id]
    assert loaded[0] == graded
    assert store.get(first.id).review_count == 1


def test_delete_reports_whether_item_existed(store, now):
    item = create_review_item("Gravity", "What is gravity?", now=now)
    store.save(item)

    assert store.delete(item.id) is True
    assert store.delete(item.id) is False
    assert store.load() == []


def test_sqlite_store_persists_across_instances(tmp_path: Path, now):
    db_path = tmp_path / "nested" / "dir" / "review.sqlite3"
    item = create_review_item("Gravity", "What is gravity?", now=now)

    SQLiteReviewStore(str(db_path)).save(item)

    assert db_path.exists()
    assert SQLiteReviewStore(str(db_path)).get(item.id) == item


def test_sqlite_store_raises_on_corrupt_rows(tmp_path: Path):
    db_path = tmp_path / "review.sqlite3"
    store = SQLiteReviewStore(str(db_path))
    conn = sqlite3.connect(db_path)
    with conn:
        conn.execute(
            "INSERT INTO review_items (id, data, updated_at) VALUES (?, ?, ?);",
            (
                "rv:bad",
                '{"id": "rv:bad", "concept": "c", "prompt": "p", "createdAt": "yesterday-ish"}',
                "2026-10-19T00:00:00+00:00",
            ),
        )
    conn.close()

    with pytest.raises(StoredReviewItemError) as excinfo:
        store.load()
    assert excinfo.value.item_id == "rv:bad"


def test_create_store_follows_settings(tmp_path: Path):
    memory = create_store(Settings(review_store_backend="memory"))
    sqlite_store = create_store(
        Settings(review_store_backend="sqlite", review_db_path=str(tmp_path / "s.sqlite3"))
    )

    assert isinstance(memory, InMemoryReviewStore)
    assert isinstance(sqlite_store, SQLiteReviewStore)


def test_create_store_uses_memory_for_sqlite_memory_path(now):
    store = create_store(Settings(review_store_backend="sqlite", review_db_path=":memory:"))
    item = create_review_item("Osmosis", "What is osmosis?", now=now)

    store.save(item)

    assert isinstance(store, InMemoryReviewStore)
    assert store.load() == [item]
