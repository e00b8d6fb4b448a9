"""HTTP tests for the practice and recommendation endpoints."""

from __future__ import annotations

import json
from typing import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from shifu.accumulation import AccumulationService
from shifu.config import get_settings
from shifu.errors import StoreUnavailableError
from shifu.main import app
from shifu.practice_routes import get_accumulation_service, get_pronunciation_store, get_stats_aggregator
from shifu.practice_store import PronunciationStore
from shifu.pronunciation import MAX_USERNAME_LENGTH
from shifu.recommendation_client import RecommendationClient, get_recommendation_client
from shifu.stats_aggregator import StatsAggregator


class CountingStore(PronunciationStore):
    def __init__(self) -> None:
        self.calls = 0

    def find(self, username):  # type: ignore[override]
        self.calls += 1
        return iter(())

    def find_one(self, username, syllable):  # type: ignore[override]
        self.calls += 1
        return None

    def insert_one(self, record):  # type: ignore[override]
        self.calls += 1
        return record

    def increment(self, username, syllable, *, correct, timestamp):  # type: ignore[override]
        self.calls += 1
        return None

    def list_recent(self, username):  # type: ignore[override]
        self.calls += 1
        return []


class UnavailableStore(PronunciationStore):
    def find(self, username):  # type: ignore[override]
        raise StoreUnavailableError("Failed to query practice records: server selection timeout")

    def find_one(self, username, syllable):  # type: ignore[override]
        raise StoreUnavailableError("Failed to query practice records: server selection timeout")


def _recommendation_client(contents: list[str]) -> tuple[RecommendationClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        content = contents[min(len(requests), len(contents)) - 1]
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return RecommendationClient("sk-test", endpoint="https://completions.test/v1", client=http_client), requests


@pytest.fixture
def client() -> Iterator[TestClient]:
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_first_attempt_returns_created(practice_db, client: TestClient) -> None:
    response = client.post(
        "/api/v0/pronounce",
        headers={"username": "learner"},
        json={"syllable": "ma", "correct": True, "timestamp": "2026-10-19T08:00:00Z"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["result"] == "success"
    assert payload["record"]["correct"] == 1
    assert payload["record"]["incorrect"] == 0


def test_repeat_attempt_returns_ok_and_increments(practice_db, client: TestClient) -> None:
    client.post("/api/v0/pronounce", headers={"username": "learner"}, json={"syllable": "ma", "correct": True})
    response = client.post("/api/v0/pronounce", headers={"username": "learner"}, json={"syllable": "ma"})

    assert response.status_code == 200
    record = response.json()["record"]
    assert (record["correct"], record["incorrect"]) == (1, 1)


def test_pinyin_field_is_accepted_as_syllable(practice_db, client: TestClient) -> None:
    response = client.post(
        "/api/v0/pronounce",
        headers={"username": "learner"},
        json={"pinyin": "shi", "correct": False},
    )

    assert response.status_code == 201
    assert response.json()["record"]["syllable"] == "shi"


def test_missing_syllable_is_rejected(practice_db, client: TestClient) -> None:
    response = client.post("/api/v0/pronounce", headers={"username": "learner"}, json={})

    assert response.status_code == 400
    assert response.json() == {"result": "error", "message": "syllable is required"}


def test_malformed_body_is_rejected(practice_db, client: TestClient) -> None:
    response = client.post(
        "/api/v0/pronounce",
        headers={"username": "learner", "Content-Type": "application/json"},
        content=b"{not json",
    )

    assert response.status_code == 400
    assert response.json()["result"] == "error"


def test_missing_username_on_write_makes_no_store_calls(client: TestClient) -> None:
    store = CountingStore()
    app.dependency_overrides[get_accumulation_service] = lambda: AccumulationService(store=store)

    response = client.post("/api/v0/pronounce", json={"syllable": "ma", "correct": True})

    assert response.status_code == 400
    assert response.json() == {"result": "error", "message": "username is required"}
    assert store.calls == 0


def test_missing_username_on_read_makes_no_store_calls(client: TestClient) -> None:
    store = CountingStore()
    recommender, requests = _recommendation_client(['{"syllable": "ma", "displayForm": "mā"}'])
    app.dependency_overrides[get_stats_aggregator] = lambda: StatsAggregator(store=store)
    app.dependency_overrides[get_recommendation_client] = lambda: recommender

    response = client.get("/api/v0/pinyin/recommend")

    assert response.status_code == 400
    assert response.json()["result"] == "error"
    assert store.calls == 0
    assert requests == []


def test_missing_username_on_listing_makes_no_store_calls(client: TestClient) -> None:
    store = CountingStore()
    app.dependency_overrides[get_pronunciation_store] = lambda: store

    response = client.get("/api/v0/pronounce", headers={"username": ""})

    assert response.status_code == 400
    assert store.calls == 0


def test_recommendation_returns_stats_and_recommendation(practice_db, client: TestClient) -> None:
    for index in range(10):
        client.post(
            "/api/v0/pronounce",
            headers={"username": "learner"},
            json={"syllable": "ma", "correct": index < 7},
        )
    for _ in range(3):
        client.post("/api/v0/pronounce", headers={"username": "learner"}, json={"syllable": "ba", "correct": True})
    recommender, requests = _recommendation_client(
        ["sure, here you go", json.dumps({"syllable": "ma", "displayForm": "mǎ"}, ensure_ascii=False)]
    )
    app.dependency_overrides[get_recommendation_client] = lambda: recommender

    response = client.get("/api/v0/pinyin/recommend", headers={"username": "learner"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["result"] == "success"
    assert payload["recommendation"] == {"syllable": "ma", "displayForm": "mǎ"}
    assert [stat["syllable"] for stat in payload["stats"]] == ["ma"]
    assert payload["stats"][0]["accuracy_percent"] == 70.0
    assert len(requests) == 2
    prompt = json.loads(requests[0].content)["messages"][0]["content"]
    assert "ma: 70.0% accuracy (7/10 correct)" in prompt
    assert "ba:" not in prompt


def test_recommendation_exhaustion_returns_error_envelope(practice_db, client: TestClient) -> None:
    recommender, requests = _recommendation_client(["nope"])
    app.dependency_overrides[get_recommendation_client] = lambda: recommender

    response = client.get("/api/v0/pinyin/recommend", headers={"username": "learner"})

    assert response.status_code == 500
    assert response.json() == {"result": "error", "message": "Invalid response format: nope"}
    assert len(requests) == 4


def test_store_failure_returns_error_envelope(client: TestClient) -> None:
    app.dependency_overrides[get_accumulation_service] = lambda: AccumulationService(store=UnavailableStore())
    app.dependency_overrides[get_stats_aggregator] = lambda: StatsAggregator(store=UnavailableStore())

    write = client.post("/api/v0/pronounce", headers={"username": "learner"}, json={"syllable": "ma"})
    read = client.get("/api/v0/pinyin/recommend", headers={"username": "learner"})

    for response in (write, read):
        assert response.status_code == 500
        assert response.json()["result"] == "error"
        assert "server selection timeout" in response.json()["message"]


def test_listing_orders_records_by_recency(practice_db, client: TestClient) -> None:
    attempts = [
        ("ma", "2026-10-19T08:00:00Z"),
        ("ba", "2026-10-19T09:00:00Z"),
        ("pa", "2026-10-19T07:00:00Z"),
    ]
    for syllable, timestamp in attempts:
        client.post(
            "/api/v0/pronounce",
            headers={"username": "learner"},
            json={"syllable": syllable, "correct": True, "timestamp": timestamp},
        )
    client.post("/api/v0/pronounce", headers={"username": "someone-else"}, json={"syllable": "zhi"})

    response = client.get("/api/v0/pronounce", headers={"username": "learner"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["count"] == 3
    assert [record["syllable"] for record in payload["records"]] == ["ba", "ma", "pa"]


def test_missing_credential_returns_error_envelope(practice_db, client: TestClient, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_settings.cache_clear()
    get_recommendation_client.cache_clear()

    response = client.get("/api/v0/pinyin/recommend", headers={"username": "learner"})

    assert response.status_code == 500
    assert response.json()["result"] == "error"
    assert "OPENAI_API_KEY" in response.json()["message"]


def test_overlong_username_is_rejected(client: TestClient) -> None:
    store = CountingStore()
    app.dependency_overrides[get_pronunciation_store] = lambda: store

    response = client.get("/api/v0/pronounce", headers={"username": "x" * (MAX_USERNAME_LENGTH + 1)})

    assert response.status_code == 400
    assert response.json() == {"result": "error", "message": "username must be at most 128 characters"}
    assert store.calls == 0
