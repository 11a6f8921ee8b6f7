"""Spaced-repetition review scheduler (SM-2 variant).

復習スケジューラ本体。すべて純粋関数で、I/O や共有状態を持たない。
時刻に依存する関数は `now` を受け取り、省略時のみシステム時計を読む。

- quality: 0=完全に忘れた 〜 5=完璧に想起
- ease: 1.3 を下限とする易しさ係数（初期値 2.5）
- interval: 次回までの日数。失敗で 1 に戻り、成功が続くと 1 → 6 → interval×ease と伸びる
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Any

from .clock import ensure_utc, utc_now
from .id_factory import generate_review_item_id
from .models.review import (
    DEFAULT_EASE,
    DEFAULT_LEVEL,
    MIN_EASE,
    NextReview,
    ReviewItem,
    ReviewStats,
)


MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3
SECOND_INTERVAL_DAYS = 6

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_SECONDS_PER_DAY = 86400


def _now(now: datetime | None) -> datetime:
    return ensure_utc(now) if now is not None else utc_now()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _whole_days(start: datetime, end: datetime) -> int:
    """Number of full days elapsed from ``start`` to ``end`` (floored)."""

    return math.floor((ensure_utc(end) - ensure_utc(start)).total_seconds() / _SECONDS_PER_DAY)


def _calendar_date(value: datetime, tz: tzinfo | None) -> str:
    return ensure_utc(value).astimezone(tz or UTC).date().isoformat()


def clamp_quality(quality: Any) -> int:
    """Coerce a quality rating to an int in [0, 5].

    数値に変換できない値（None/NaN/文字列など）は 0（完全な失敗）として扱う。
    ±inf や巨大な整数は範囲の端に丸める。
    """

    if isinstance(quality, int):
        q = quality
    else:
        try:
            value = quality if isinstance(quality, float) else float(quality)
        except (TypeError, ValueError):
            return MIN_QUALITY
        if math.isnan(value):
            return MIN_QUALITY
        if math.isinf(value):
            return MAX_QUALITY if value > 0 else MIN_QUALITY
        q = int(value)
    return max(MIN_QUALITY, min(MAX_QUALITY, q))


def is_due(item: ReviewItem, now: datetime | None = None) -> bool:
    """Return True when the item has no due date or it has arrived."""

    if item.next_review_date is None:
        return True
    return item.next_review_date <= _now(now)


def compute_next_review(
    quality: Any,
    interval: int | None = 0,
    ease: float | None = DEFAULT_EASE,
    now: datetime | None = None,
) -> NextReview:
    """Compute the next interval, ease and due date after one review.

    1. ease を quality に応じて更新（下限 1.3）
    2. quality < 3 なら interval=1 にリセット、初回成功は 1、2 回目は 6、
       以降は round(interval × new_ease)
    3. next_review_date = now + interval 日
    """

    q = clamp_quality(quality)
    current_interval = interval or 0
    current_ease = ease or DEFAULT_EASE

    miss = MAX_QUALITY - q
    new_ease = max(MIN_EASE, current_ease + (0.1 - miss * (0.08 + miss * 0.02)))

    if q < PASSING_QUALITY:
        new_interval = 1
    elif current_interval < 1:
        new_interval = 1
    elif current_interval == 1:
        new_interval = SECOND_INTERVAL_DAYS
    else:
        new_interval = _round_half_up(current_interval * new_ease)

    return NextReview(
        interval=new_interval,
        ease=new_ease,
        next_review_date=_now(now) + timedelta(days=new_interval),
    )


def apply_review(item: ReviewItem, quality: Any, now: datetime | None = None) -> ReviewItem:
    """Return a copy of ``item`` updated by one completed review."""

    reviewed_at = _now(now)
    result = compute_next_review(quality, item.interval, item.ease, reviewed_at)
    # 時計ずれで created_at より前に戻らないようにする
    next_review_date = max(result.next_review_date, item.created_at)
    return item.model_copy(
        update={
            "interval": result.interval,
            "ease": result.ease,
            "next_review_date": next_review_date,
            "review_count": item.review_count + 1,
            "last_reviewed_at": reviewed_at,
        }
    )


def create_review_item(
    concept: str,
    prompt: str,
    level: str = DEFAULT_LEVEL,
    now: datetime | None = None,
) -> ReviewItem:
    """Create a fresh item that is due immediately."""

    created_at = _now(now)
    return ReviewItem(
        id=generate_review_item_id(),
        concept=concept,
        prompt=prompt,
        level=level,
        interval=0,
        ease=DEFAULT_EASE,
        review_count=0,
        created_at=created_at,
        last_reviewed_at=None,
        next_review_date=created_at,
    )


def generate_schedule(
    items: Iterable[ReviewItem], tz: tzinfo | None = None
) -> dict[str, list[ReviewItem]]:
    """Group items by the calendar date (YYYY-MM-DD) of their next review."""

    schedule: dict[str, list[ReviewItem]] = {}
    for item in items:
        if item.next_review_date is None:
            continue
        schedule.setdefault(_calendar_date(item.next_review_date, tz), []).append(item)
    return schedule


def memory_strength(item: ReviewItem, now: datetime | None = None) -> int:
    """Heuristic retention estimate in percent (0-100).

    表示用の目安。平均間隔と経過日数の比に ease を掛け、
    最終レビューからの経過日数に応じて減衰させる。
    """

    if item.review_count <= 0:
        return 0

    current = _now(now)
    avg_interval = item.interval / item.review_count
    days_since_creation = max(1, _whole_days(item.created_at, current))
    raw_strength = min(100.0, (avg_interval / days_since_creation) * 100 * item.ease)

    if item.last_reviewed_at is not None:
        days_since_last_review = _whole_days(item.last_reviewed_at, current)
        decay_factor = max(0.0, 1 - days_since_last_review / max(item.interval, 1))
        return _round_half_up(raw_strength * decay_factor)

    return _round_half_up(raw_strength)


def sort_by_due_date(items: Iterable[ReviewItem]) -> list[ReviewItem]:
    """Sort ascending by next review date; items without one come first."""

    return sorted(items, key=lambda it: it.next_review_date or _EPOCH)


def due_items(items: Iterable[ReviewItem], now: datetime | None = None) -> list[ReviewItem]:
    current = _now(now)
    return sort_by_due_date(item for item in items if is_due(item, current))


class ReviewStatsAggregator:
    """Accumulate per-item figures and produce a :class:`ReviewStats`."""

    def __init__(self, now: datetime | None = None, tz: tzinfo | None = None) -> None:
        self.now = _now(now)
        self.tz = tz
        self._today = _calendar_date(self.now, tz)
        self.total_items = 0
        self.due_count = 0
        self.reviewed_today = 0
        self.total_interval = 0
        self.total_strength = 0

    def add(self, item: ReviewItem) -> None:
        self.total_items += 1
        if is_due(item, self.now):
            self.due_count += 1
        if item.last_reviewed_at is not None and _calendar_date(item.last_reviewed_at, self.tz) == self._today:
            self.reviewed_today += 1
        self.total_interval += item.interval
        self.total_strength += memory_strength(item, self.now)

    def extend(self, items: Iterable[ReviewItem]) -> "ReviewStatsAggregator":
        for item in items:
            self.add(item)
        return self

    def result(self) -> ReviewStats:
        if not self.total_items:
            return ReviewStats()
        return ReviewStats(
            total_items=self.total_items,
            due_count=self.due_count,
            reviewed_today=self.reviewed_today,
            average_interval=_round_half_up(self.total_interval / self.total_items * 10) / 10,
            average_strength=_round_half_up(self.total_strength / self.total_items),
        )


def get_stats(
    items: Iterable[ReviewItem], now: datetime | None = None, tz: tzinfo | None = None
) -> ReviewStats:
    return ReviewStatsAggregator(now, tz).extend(items).result()
