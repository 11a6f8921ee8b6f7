from __future__ import annotations

from ..models.review import ReviewItem


class InMemoryReviewStore:
    """Process-local store; items are kept in insertion order."""

    def __init__(self, items: list[ReviewItem] | None = None) -> None:
        self._items: dict[str, ReviewItem] = {}
        for item in items or []:
            self.save(item)

    def load(self) -> list[ReviewItem]:
        return list(self._items.values())

    def save(self, item: ReviewItem) -> None:
        self._items[item.id] = item

    def get(self, item_id: str) -> ReviewItem | None:
        return self._items.get(item_id)

    def delete(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None
