from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..clock import Clock, SystemClock
from ..config import settings
from ..flows.review_session import ReviewSessionFlow
from ..models.review import (
    ReviewGradeRequest,
    ReviewGradeResponse,
    ReviewItem,
    ReviewItemCreateRequest,
    ReviewItemsResponse,
    ReviewScheduleResponse,
    ReviewSeedRequest,
    ReviewSeedResponse,
    ReviewStats,
    ReviewTodayResponse,
)
from ..store import ReviewItemStore, create_store

router = APIRouter(tags=["review"])


@lru_cache(maxsize=1)
def get_store() -> ReviewItemStore:
    """アプリ全体で共有する復習アイテムストア（初回アクセス時に生成）。"""
    return create_store(settings)


def get_clock() -> Clock:
    return SystemClock()


def get_review_flow(
    store: ReviewItemStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> ReviewSessionFlow:
    return ReviewSessionFlow(
        store,
        clock,
        max_today=settings.review_max_today,
        timezone=settings.tzinfo,
        default_level=settings.review_default_level,
        seed_limit=settings.review_seed_limit,
    )


@router.get("/today", response_model=ReviewTodayResponse, summary="本日の復習アイテムを取得")
def review_today(
    limit: int | None = Query(default=None, ge=0),
    flow: ReviewSessionFlow = Depends(get_review_flow),
) -> ReviewTodayResponse:
    """Return items whose next review date has arrived, earliest first."""
    items = flow.due_today(limit=limit)
    return ReviewTodayResponse(items=items, due_count=flow.stats().due_count)


@router.get("/items", response_model=ReviewItemsResponse, summary="復習アイテム一覧（記憶強度付き）")
def list_items(flow: ReviewSessionFlow = Depends(get_review_flow)) -> ReviewItemsResponse:
    return ReviewItemsResponse(items=flow.list_items())


@router.post(
    "/items",
    response_model=ReviewItem,
    status_code=status.HTTP_201_CREATED,
    summary="復習アイテムを作成（即時に出題対象）",
)
def create_item(
    req: ReviewItemCreateRequest,
    flow: ReviewSessionFlow = Depends(get_review_flow),
) -> ReviewItem:
    return flow.create_item(req.concept, req.prompt, req.level)


@router.delete(
    "/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="復習アイテムを削除",
)
def delete_item(item_id: str, flow: ReviewSessionFlow = Depends(get_review_flow)) -> Response:
    if not flow.delete(item_id):
        raise HTTPException(status_code=404, detail="item not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/grade", response_model=ReviewGradeResponse, summary="採点して次回復習日を更新")
def grade_item(
    req: ReviewGradeRequest,
    flow: ReviewSessionFlow = Depends(get_review_flow),
) -> ReviewGradeResponse:
    """Grade a review item using SM-2 and return the updated item.

    quality は 0〜5。範囲外の値は 0/5 に丸めて扱う。
    """
    updated = flow.grade(req.item_id, req.quality)
    if updated is None:
        raise HTTPException(status_code=404, detail="item not found")
    return ReviewGradeResponse(ok=True, item=updated, next_review_date=updated.next_review_date)


@router.get("/stats", response_model=ReviewStats, summary="進捗統計")
def review_stats(flow: ReviewSessionFlow = Depends(get_review_flow)) -> ReviewStats:
    """Return total/due/reviewed-today counts and average interval/strength."""
    return flow.stats()


@router.get("/schedule", response_model=ReviewScheduleResponse, summary="日付ごとの復習予定")
def review_schedule(flow: ReviewSessionFlow = Depends(get_review_flow)) -> ReviewScheduleResponse:
    return ReviewScheduleResponse(days=flow.schedule())


@router.post("/seed", response_model=ReviewSeedResponse, summary="検索履歴から復習アイテムを作成")
def seed_items(
    req: ReviewSeedRequest,
    flow: ReviewSessionFlow = Depends(get_review_flow),
) -> ReviewSeedResponse:
    return ReviewSeedResponse(items=flow.seed_from_queries(req.queries, req.level))
