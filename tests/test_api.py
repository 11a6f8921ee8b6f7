import pytest
from fastapi.testclient import TestClient

from mastery.main import create_app
from mastery.routers.review import get_clock, get_store


@pytest.fixture()
def client(memory_store, clock):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient, concept: str = "Photosynthesis", **extra) -> dict:
    resp = client.post(
        "/api/review/items",
        json={"concept": concept, "prompt": f"What is {concept}?", **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers.get("X-Request-ID")


def test_create_item_returns_camel_case_item(client):
    body = _create(client, level="high")

    assert body["id"].startswith("rv:")
    assert body["concept"] == "Photosynthesis"
    assert body["level"] == "high"
    assert body["interval"] == 0
    assert body["ease"] == 2.5
    assert body["reviewCount"] == 0
    assert body["lastReviewedAt"] is None
    assert body["nextReviewDate"] == body["createdAt"]


def test_create_item_validates_input(client):
    resp = client.post("/api/review/items", json={"concept": "", "prompt": "?"})
    assert resp.status_code == 422


def test_review_loop_over_http(client, clock):
    item = _create(client)

    today = client.get("/api/review/today").json()
    assert [it["id"] for it in today["items"]] == [item["id"]]
    assert today["dueCount"] == 1

    resp = client.post("/api/review/grade", json={"item_id": item["id"], "quality": 5})
    assert resp.status_code == 200
    graded = resp.json()
    assert graded["ok"] is True
    assert graded["nextReviewDate"] == graded["item"]["nextReviewDate"]
    assert "next_review_date" not in graded
    assert graded["item"]["interval"] == 1
    assert graded["item"]["reviewCount"] == 1
    assert graded["item"]["ease"] == pytest.approx(2.6)

    assert client.get("/api/review/today").json()["items"] == []

    stats = client.get("/api/review/stats").json()
    assert stats == {
        "totalItems": 1,
        "dueCount": 0,
        "reviewedToday": 1,
        "averageInterval": 1.0,
        "averageStrength": 100,
    }

    clock.advance(days=1)
    assert len(client.get("/api/review/today").json()["items"]) == 1


def test_grade_clamps_out_of_range_quality(client):
    item = _create(client)

    graded = client.post("/api/review/grade", json={"item_id": item["id"], "quality": 9}).json()

    assert graded["item"]["interval"] == 1
    assert graded["item"]["ease"] == pytest.approx(2.6)


def test_grade_clamps_huge_quality_to_perfect_recall(client):
    item = _create(client)
    huge = int("1" + "0" * 400)

    resp = client.post("/api/review/grade", json={"item_id": item["id"], "quality": huge})

    assert resp.status_code == 200
    graded = resp.json()
    assert graded["item"]["interval"] == 1
    assert graded["item"]["ease"] == pytest.approx(2.6)


def test_grade_unknown_item_is_404(client):
    resp = client.post("/api/review/grade", json={"item_id": "rv:missing", "quality": 3})
    assert resp.status_code == 404


def test_delete_item(client):
    item = _create(client)

    assert client.delete(f"/api/review/items/{item['id']}").status_code == 204
    assert client.delete(f"/api/review/items/{item['id']}").status_code == 404
    assert client.get("/api/review/items").json() == {"items": []}


def test_items_include_memory_strength(client):
    item = _create(client)

    items = client.get("/api/review/items").json()["items"]

    assert items[0]["id"] == item["id"]
    assert items[0]["memoryStrength"] == 0


def test_schedule_groups_by_date(client, now):
    item = _create(client)

    days = client.get("/api/review/schedule").json()["days"]

    assert list(days) == [now.date().isoformat()]
    assert days[now.date().isoformat()][0]["id"] == item["id"]


def test_seed_from_search_history(client):
    resp = client.post(
        "/api/review/seed",
        json={"queries": ["Gravity", "gravity", "Osmosis"], "level": "elementary"},
    )

    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [it["prompt"] for it in items] == ["What is Gravity?", "What is Osmosis?"]
    assert client.get("/api/review/stats").json()["totalItems"] == 2
