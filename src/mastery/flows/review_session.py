"""Review session orchestration.

復習ループ（期日の来たアイテムを取得 → 出題 → quality を受け取る → 更新 → 保存）を
ストアと時計を注入して組み立てる。スケジューラ自体は純粋関数のまま保ち、
永続化とログ出力はこのフローが担う。
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import tzinfo
from typing import Any

from ..clock import Clock, SystemClock
from ..logging import logger
from ..models.review import DEFAULT_LEVEL, ReviewItem, ReviewItemView, ReviewStats
from ..scheduler import (
    apply_review,
    clamp_quality,
    create_review_item,
    due_items,
    generate_schedule,
    get_stats,
    memory_strength,
    sort_by_due_date,
)
from ..store import ReviewItemStore


DEFAULT_MAX_TODAY = 20
DEFAULT_SEED_LIMIT = 10


def seed_prompt(query: str) -> str:
    return f"What is {query}?"


class ReviewSessionFlow:
    """Drive the review loop over an injected store and clock."""

    def __init__(
        self,
        store: ReviewItemStore,
        clock: Clock | None = None,
        *,
        max_today: int = DEFAULT_MAX_TODAY,
        timezone: tzinfo | None = None,
        default_level: str = DEFAULT_LEVEL,
        seed_limit: int = DEFAULT_SEED_LIMIT,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.max_today = max_today
        self.timezone = timezone
        self.default_level = default_level
        self.seed_limit = seed_limit

    # --- queries ---
    def list_items(self) -> list[ReviewItemView]:
        """全アイテムを期日順に、現在の記憶強度付きで返す。"""

        now = self.clock.now()
        return [
            ReviewItemView(**item.model_dump(), memory_strength=memory_strength(item, now))
            for item in sort_by_due_date(self.store.load())
        ]

    def due_today(self, limit: int | None = None) -> list[ReviewItem]:
        cap = self.max_today if limit is None else max(0, min(limit, self.max_today))
        return due_items(self.store.load(), self.clock.now())[:cap]

    def stats(self) -> ReviewStats:
        return get_stats(self.store.load(), self.clock.now(), self.timezone)

    def schedule(self) -> dict[str, list[ReviewItem]]:
        return generate_schedule(sort_by_due_date(self.store.load()), self.timezone)

    # --- commands ---
    def create_item(self, concept: str, prompt: str, level: str | None = None) -> ReviewItem:
        item = create_review_item(
            concept, prompt, level or self.default_level, self.clock.now()
        )
        self.store.save(item)
        logger.info("review_item_created", item_id=item.id, level=item.level)
        return item

    def grade(self, item_id: str, quality: Any) -> ReviewItem | None:
        """Apply one review to ``item_id``; returns None when the id is unknown."""

        current = self.store.get(item_id)
        if current is None:
            logger.warning("review_item_not_found", item_id=item_id)
            return None
        updated = apply_review(current, quality, self.clock.now())
        self.store.save(updated)
        logger.info(
            "review_item_graded",
            item_id=item_id,
            quality=clamp_quality(quality),
            interval=updated.interval,
            ease=round(updated.ease, 3),
            review_count=updated.review_count,
            next_review_date=updated.next_review_date.isoformat() if updated.next_review_date else None,
        )
        return updated

    def delete(self, item_id: str) -> bool:
        removed = self.store.delete(item_id)
        logger.info("review_item_deleted", item_id=item_id, removed=removed)
        return removed

    def seed_from_queries(self, queries: Iterable[str], level: str | None = None) -> list[ReviewItem]:
        """Create review items from past search queries.

        - 空白のみのクエリは無視し、重複は最初の出現だけを採用
        - seed_limit 件まで。既に同じ concept のアイテムがあれば作成しない
        """

        existing = {item.concept.strip().lower() for item in self.store.load()}
        unique: list[str] = []
        seen: set[str] = set()
        for raw in queries:
            if len(unique) >= self.seed_limit:
                break
            query = (raw or "").strip()
            key = query.lower()
            if not query or key in seen:
                continue
            seen.add(key)
            unique.append(query)

        created: list[ReviewItem] = []
        for query in unique:
            if query.lower() in existing:
                continue
            item = create_review_item(
                query, seed_prompt(query), level or self.default_level, self.clock.now()
            )
            self.store.save(item)
            created.append(item)

        logger.info(
            "review_items_seeded",
            requested=len(unique),
            created=len(created),
        )
        return created
