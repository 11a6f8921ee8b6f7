from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..clock import ensure_utc


DEFAULT_EASE = 2.5
MIN_EASE = 1.3
DEFAULT_LEVEL = "middle"


def normalize_non_negative_int(value: Any) -> int:
    """与えられた値を非負整数に正規化する（不正値/負値は0）。"""

    try:
        ivalue = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return ivalue if ivalue >= 0 else 0


class _CamelModel(BaseModel):
    """Models persisted and served with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ReviewItem(_CamelModel):
    """A single concept tracked for long-term retention.

    保存形式（JSON）では camelCase のキー、Python 側では snake_case の属性で扱う。
    日時はすべて UTC の aware datetime に正規化される。
    """

    id: str
    concept: str
    prompt: str
    level: str = DEFAULT_LEVEL
    interval: int = 0
    ease: float = DEFAULT_EASE
    review_count: int = Field(default=0, alias="reviewCount")
    created_at: datetime = Field(alias="createdAt")
    last_reviewed_at: datetime | None = Field(default=None, alias="lastReviewedAt")
    next_review_date: datetime | None = Field(default=None, alias="nextReviewDate")

    @field_validator("interval", "review_count", mode="before")
    @classmethod
    def _normalise_counter(cls, value: Any) -> int:
        return normalize_non_negative_int(value)

    @field_validator("ease", mode="before")
    @classmethod
    def _default_ease(cls, value: Any) -> Any:
        # None / 0 / "" は未設定扱い
        return value or DEFAULT_EASE

    @field_validator("ease", mode="after")
    @classmethod
    def _floor_ease(cls, value: float) -> float:
        return max(MIN_EASE, value)

    @field_validator("level", mode="before")
    @classmethod
    def _default_level(cls, value: Any) -> Any:
        return value or DEFAULT_LEVEL

    @field_validator("created_at", "last_reviewed_at", "next_review_date", mode="after")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class NextReview(BaseModel):
    """Result of one SM-2 step: new spacing, ease and due date."""

    interval: int
    ease: float
    next_review_date: datetime


class ReviewStats(_CamelModel):
    """Aggregate progress figures over a collection of review items.

    - total_items: 全アイテム数
    - due_count: 現在時点で出題すべき件数
    - reviewed_today: 今日レビュー済みの件数
    - average_interval: 平均間隔（日、小数1桁）
    - average_strength: 平均記憶強度（%）
    """

    total_items: int = Field(default=0, alias="totalItems")
    due_count: int = Field(default=0, alias="dueCount")
    reviewed_today: int = Field(default=0, alias="reviewedToday")
    average_interval: float = Field(default=0.0, alias="averageInterval")
    average_strength: int = Field(default=0, alias="averageStrength")


# --- API request/response models ---


class ReviewItemView(ReviewItem):
    """ReviewItem enriched with its current memory-strength estimate."""

    memory_strength: int = Field(default=0, alias="memoryStrength")


class ReviewTodayResponse(_CamelModel):
    """Response model for today's review items.

    今日の復習対象（間隔が来たアイテム）を期日順で返す。
    """

    items: list[ReviewItem]
    due_count: int = Field(alias="dueCount")


class ReviewItemsResponse(BaseModel):
    items: list[ReviewItemView]


class ReviewItemCreateRequest(BaseModel):
    """復習アイテム作成のリクエストモデル。"""

    concept: str = Field(min_length=1, max_length=200)
    prompt: str = Field(min_length=1, max_length=1000)
    level: str | None = Field(default=None, max_length=32)


class ReviewGradeRequest(BaseModel):
    """Request model for submitting a recall-quality rating.

    quality は 0〜5 を想定するが範囲外の値もそのまま受け付け、スケジューラ側で丸める。
    """

    item_id: str = Field(min_length=1)
    quality: int


class ReviewGradeResponse(_CamelModel):
    ok: bool
    item: ReviewItem
    next_review_date: datetime = Field(alias="nextReviewDate")


class ReviewScheduleResponse(BaseModel):
    """日付（YYYY-MM-DD）ごとの次回復習予定。"""

    days: dict[str, list[ReviewItem]]


class ReviewSeedRequest(BaseModel):
    """検索履歴のクエリ群から復習アイテムをまとめて作成するリクエスト。"""

    queries: list[str] = Field(default_factory=list)
    level: str | None = Field(default=None, max_length=32)


class ReviewSeedResponse(BaseModel):
    items: list[ReviewItem]
