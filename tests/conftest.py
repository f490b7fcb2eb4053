"""Shared fixtures: an app instance backed by a throwaway SQLite file."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from flashdeck import app
from flashdeck.config import Settings, settings


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("FLASHDECK_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(settings, "data_dir", Settings().data_dir)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def now() -> datetime:
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def deck(client: TestClient) -> dict:
    resp = client.post("/decks/", json={"name": "Spanish verbs"})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture()
def make_card(client: TestClient, deck: dict):
    def _make(front: str = "hablar", back: str = "to speak") -> dict:
        resp = client.post(
            "/quiz/cards", json={"deck_id": deck["id"], "front": front, "back": back}
        )
        assert resp.status_code == 201
        return resp.json()

    return _make
