from __future__ import annotations

import json
from typing import Any, Protocol

from pydantic import ValidationError

from ..models.review import ReviewItem


class StoredReviewItemError(ValueError):
    """A persisted review item could not be parsed (broken JSON or timestamps)."""

    def __init__(self, item_id: str, detail: str) -> None:
        super().__init__(f"stored review item {item_id!r} is invalid: {detail}")
        self.item_id = item_id
        self.detail = detail


class ReviewItemStore(Protocol):
    """Key-value style persistence for review items (upsert by id)."""

    def load(self) -> list[ReviewItem]: ...

    def save(self, item: ReviewItem) -> None: ...

    def get(self, item_id: str) -> ReviewItem | None: ...

    def delete(self, item_id: str) -> bool: ...


def dump_item(item: ReviewItem) -> str:
    """Serialise an item as JSON with camelCase keys and ISO-8601 UTC timestamps."""

    return item.model_dump_json(by_alias=True)


def load_item(item_id: str, payload: str | dict[str, Any]) -> ReviewItem:
    """保存済みペイロードを ReviewItem に復元する。

    解析できない日時や JSON は StoredReviewItemError として呼び出し側へ伝える。
    """

    try:
        data = json.loads(payload) if isinstance(payload, str) else dict(payload)
        return ReviewItem.model_validate(data)
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise StoredReviewItemError(item_id, str(exc)) from exc
