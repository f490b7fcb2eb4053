import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from flashdeck.db.sqlite import get_db, save_schedule
from flashdeck.models.schedule import CardScheduleState


def test_health(client: TestClient):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_new_card_is_due_without_schedule(client: TestClient, make_card):
    card = make_card()

    assert card["schedule"] is None
    assert card["status"] == "new"
    assert card["version"] == 0

    due = client.get("/quiz/due").json()
    assert [c["id"] for c in due["items"]] == [card["id"]]


def test_first_review_good(client: TestClient, make_card):
    card = make_card()

    resp = client.post(f"/quiz/{card['id']}/review", json={"quality": "good"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["interval"] == 3
    assert body["repetitions"] == 1
    assert body["ease_factor"] == 2.5
    assert body["days_until_due"] == 3
    assert body["status"] == "learning"

    assert client.get("/quiz/due").json()["total"] == 0


def test_review_result_matches_persisted_schedule(client: TestClient, make_card):
    card = make_card()
    client.post(f"/quiz/{card['id']}/review", json={"quality": "easy"})
    result = client.post(f"/quiz/{card['id']}/review", json={"quality": "hard"}).json()

    stored = client.get(f"/quiz/{card['id']}").json()
    schedule = stored["schedule"]
    assert schedule["interval"] == result["interval"] == 3
    assert schedule["repetitions"] == result["repetitions"] == 2
    assert schedule["ease_factor"] == result["ease_factor"]
    assert schedule["due_date"] == result["due_date"]
    assert schedule["last_reviewed"] == result["last_reviewed"]
    assert stored["version"] == 2


def test_integer_grade_is_mapped_to_quality(client: TestClient, make_card):
    card = make_card()

    body = client.post(f"/quiz/{card['id']}/review", json={"grade": 5}).json()
    assert body["quality"] == "easy"
    assert body["interval"] == 5

    body = client.post(f"/quiz/{card['id']}/review", json={"grade": 1}).json()
    assert body["quality"] == "again"
    assert body["interval"] == 0
    assert body["repetitions"] == 0


def test_lapsed_card_is_due_again(client: TestClient, make_card):
    card = make_card()
    client.post(f"/quiz/{card['id']}/review", json={"quality": "good"})
    client.post(f"/quiz/{card['id']}/review", json={"quality": "again"})

    due_ids = [c["id"] for c in client.get("/quiz/due").json()["items"]]
    assert due_ids == [card["id"]]


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"quality": "good", "grade": 4},
        {"quality": "meh"},
        {"grade": 6},
        {"grade": -1},
        {"grade": True},
        {"grade": "4"},
    ],
)
def test_invalid_review_payload(client: TestClient, make_card, payload):
    card = make_card()
    resp = client.post(f"/quiz/{card['id']}/review", json=payload)
    assert resp.status_code == 422


def test_review_missing_card(client: TestClient):
    resp = client.post("/quiz/nope/review", json={"quality": "good"})
    assert resp.status_code == 404


def test_lost_update_returns_conflict(
    client: TestClient, make_card, monkeypatch: pytest.MonkeyPatch
):
    card = make_card()

    async def _stale(*args, **kwargs):
        return None

    monkeypatch.setattr("flashdeck.routers.quiz.save_schedule", _stale)
    resp = client.post(f"/quiz/{card['id']}/review", json={"quality": "good"})
    assert resp.status_code == 409


def test_save_schedule_checks_version(client: TestClient, make_card):
    card = make_card()
    now = datetime.now(timezone.utc)
    state = CardScheduleState(
        interval=1, repetitions=1, due_date=now + timedelta(days=1), last_reviewed=now
    )

    async def _save(expected_version: int):
        async for db in get_db():
            return await save_schedule(db, card["id"], state, expected_version)

    assert asyncio.run(_save(5)) is None
    saved = asyncio.run(_save(0))
    assert saved is not None
    assert saved.version == 1
    assert saved.schedule == state
    assert asyncio.run(_save(0)) is None


def test_add_card_to_missing_deck(client: TestClient):
    resp = client.post(
        "/quiz/cards", json={"deck_id": "missing", "front": "a", "back": "b"}
    )
    assert resp.status_code == 404


def test_edit_and_delete_card(client: TestClient, make_card):
    card = make_card()

    resp = client.patch(f"/quiz/{card['id']}", json={"back": "to talk"})
    assert resp.status_code == 200
    assert resp.json()["front"] == "hablar"
    assert resp.json()["back"] == "to talk"

    assert client.delete(f"/quiz/{card['id']}").status_code == 204
    assert client.get(f"/quiz/{card['id']}").status_code == 404
    assert client.delete(f"/quiz/{card['id']}").status_code == 404


def test_list_cards_by_deck(client: TestClient, make_card):
    make_card("comer", "to eat")
    make_card("vivir", "to live")
    other = client.post("/decks/", json={"name": "Other"}).json()
    client.post("/quiz/cards", json={"deck_id": other["id"], "front": "x", "back": "y"})

    assert client.get("/quiz/cards").json()["total"] == 3
    listed = client.get("/quiz/cards", params={"deck_id": other["id"]}).json()
    assert listed["total"] == 1
    assert listed["items"][0]["front"] == "x"


def test_deck_crud(client: TestClient, deck: dict, make_card):
    make_card()

    fetched = client.get(f"/decks/{deck['id']}").json()
    assert fetched["name"] == "Spanish verbs"
    assert fetched["card_count"] == 1

    renamed = client.patch(f"/decks/{deck['id']}", json={"name": "Verbos"}).json()
    assert renamed["name"] == "Verbos"

    listed = client.get("/decks/").json()
    assert listed["total"] == 1

    assert client.delete(f"/decks/{deck['id']}").status_code == 204
    assert client.get(f"/decks/{deck['id']}").status_code == 404
    assert client.get("/quiz/cards").json()["total"] == 0


def test_deck_stats(client: TestClient, deck: dict, make_card):
    reviewed = make_card()
    make_card("comer", "to eat")
    client.post(f"/quiz/{reviewed['id']}/review", json={"quality": "good"})

    stats = client.get(f"/decks/{deck['id']}/stats").json()
    assert stats == {
        "total_cards": 2,
        "new_count": 1,
        "learning_count": 1,
        "young_count": 0,
        "mature_count": 0,
        "due_count": 1,
    }
    assert client.get("/decks/missing/stats").status_code == 404


def test_forecast(client: TestClient, make_card):
    card = make_card()
    make_card("comer", "to eat")
    client.post(f"/quiz/{card['id']}/review", json={"quality": "good"})

    forecast = client.get("/quiz/forecast", params={"days": 5}).json()
    assert len(forecast["days"]) == 5
    assert forecast["total"] == 1
    assert [d["count"] for d in forecast["days"]] == [0, 0, 0, 1, 0]
