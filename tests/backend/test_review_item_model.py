import json
from datetime import UTC, datetime

import pytest

from mastery.models.review import ReviewItem
from mastery.store import StoredReviewItemError, dump_item, load_item


def _payload(**overrides) -> dict:
    data = {
        "id": "rv:1",
        "concept": "Gravity",
        "prompt": "What is gravity?",
        "createdAt": "2026-10-19T09:00:00Z",
    }
    data.update(overrides)
    return data


def test_absent_numeric_fields_fall_back_to_defaults():
    item = ReviewItem.model_validate(_payload(interval=None, ease=None, reviewCount=None, level=None))

    assert item.interval == 0
    assert item.ease == 2.5
    assert item.review_count == 0
    assert item.level == "middle"
    assert item.last_reviewed_at is None
    assert item.next_review_date is None


def test_negative_counters_are_normalised_and_ease_is_floored():
    item = ReviewItem.model_validate(_payload(interval=-2, reviewCount=-1, ease=0.9))

    assert item.interval == 0
    assert item.review_count == 0
    assert item.ease == 1.3


def test_timestamps_are_normalised_to_utc():
    item = ReviewItem.model_validate(
        _payload(createdAt="2026-10-19T09:00:00", nextReviewDate="2026-10-19T18:00:00+09:00")
    )

    assert item.created_at == datetime(2026, 10, 19, 9, 0, tzinfo=UTC)
    assert item.created_at.tzinfo is not None
    assert item.next_review_date == datetime(2026, 10, 19, 9, 0, tzinfo=UTC)
    assert item.next_review_date.utcoffset().total_seconds() == 0


def test_python_names_and_aliases_are_both_accepted(now):
    item = ReviewItem(id="rv:2", concept="c", prompt="p", created_at=now, review_count=3)
    assert item.review_count == 3


def test_dump_item_uses_camel_case_and_iso_timestamps(now):
    item = ReviewItem(id="rv:3", concept="c", prompt="p", created_at=now, next_review_date=now)

    data = json.loads(dump_item(item))

    assert {"reviewCount", "createdAt", "lastReviewedAt", "nextReviewDate"} <= set(data)
    assert data["lastReviewedAt"] is None
    assert datetime.fromisoformat(data["createdAt"]) == now
    assert load_item(item.id, dump_item(item)) == item


def test_unparseable_timestamp_is_reported_with_item_id():
    with pytest.raises(StoredReviewItemError) as excinfo:
        load_item("rv:broken", _payload(id="rv:broken", nextReviewDate="not-a-date"))

    assert excinfo.value.item_id == "rv:broken"
    assert "rv:broken" in str(excinfo.value)


def test_broken_json_is_reported():
    with pytest.raises(StoredReviewItemError):
        load_item("rv:x", "{not json")
