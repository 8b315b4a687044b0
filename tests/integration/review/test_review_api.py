"""Integration tests for the review queue HTTP API.

Runs the FastAPI app with the queue dependency overridden by an
in-memory queue.
"""

import asyncio
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from rxmatch.main import app
from rxmatch.review.models import CalculationRecord, CalculationStatus
from rxmatch.review.queue import ReviewQueue, get_review_queue

API = "/api/v1/review-queue"


@pytest.fixture
def api_queue(store, audit_emitter) -> ReviewQueue:
    return ReviewQueue(store, audit_emitter)


@pytest.fixture
def client(api_queue, monkeypatch):
    monkeypatch.setattr("rxmatch.main.get_review_queue", lambda: api_queue)
    app.dependency_overrides[get_review_queue] = lambda: api_queue
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def calculation_id(store):
    record = asyncio.run(store.put_calculation(CalculationRecord(confidence_score=0.41)))
    return str(record.id)


def enqueue(client, calculation_id, priority="medium") -> dict:
    response = client.post(API, json={"calculation_id": calculation_id, "priority": priority})
    assert response.status_code == 201
    return response.json()["data"]


class TestEnqueueEndpoint:
    """Tests for POST /review-queue."""

    def test_create(self, client, calculation_id):
        response = client.post(API, json={"calculation_id": calculation_id, "priority": "high"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "pending"
        assert body["data"]["priority"] == "high"
        assert body["data"]["assigned_to"] is None

    def test_duplicate(self, client, calculation_id):
        enqueue(client, calculation_id)

        response = client.post(API, json={"calculation_id": calculation_id})

        assert response.status_code == 400
        assert response.json()["error_code"] == "DUPLICATE"
        assert response.headers["X-Error-Code"] == "DUPLICATE"

    def test_unknown_priority(self, client, calculation_id):
        response = client.post(API, json={"calculation_id": calculation_id, "priority": "asap"})

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_INPUT"
        assert body["details"][0]["field"] == "priority"

    def test_unknown_calculation(self, client):
        response = client.post(API, json={"calculation_id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestReadEndpoints:
    """Tests for listing and fetching items."""

    def test_next_empty(self, client):
        response = client.get(f"{API}/next")

        assert response.status_code == 200
        assert response.json()["data"] is None
        assert response.json()["message"] == "No review items available"

    def test_list_ordered(self, client, store, calculation_id):
        other = asyncio.run(store.put_calculation(CalculationRecord(confidence_score=0.2)))
        low = enqueue(client, calculation_id, "low")
        high = enqueue(client, str(other.id), "high")

        body = client.get(API).json()["data"]

        assert body["count"] == 2
        assert [i["id"] for i in body["items"]] == [high["id"], low["id"]]

        pending_low = client.get(API, params={"priority": "low"}).json()["data"]
        assert [i["id"] for i in pending_low["items"]] == [low["id"]]

    def test_get_with_calculation(self, client, calculation_id):
        item = enqueue(client, calculation_id)

        response = client.get(f"{API}/{item['id']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["item"]["id"] == item["id"]
        assert data["calculation"]["id"] == calculation_id

    def test_get_missing(self, client):
        response = client.get(f"{API}/{uuid4()}")
        assert response.status_code == 404

    def test_malformed_id(self, client):
        response = client.get(f"{API}/not-a-uuid")

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_INPUT"
        assert body["details"][0]["field"] == "item_id"


class TestWorkflowEndpoints:
    """Tests for assign, approve, reject, notes and priority."""

    def test_assign_then_reject(self, client, store, calculation_id):
        item = enqueue(client, calculation_id, "high")

        assigned = client.post(f"{API}/{item['id']}/assign", json={"reviewer_id": "pharm-1"})
        assert assigned.status_code == 200
        assert assigned.json()["data"]["status"] == "in_review"

        rejected = client.post(
            f"{API}/{item['id']}/reject",
            json={"reviewer_id": "pharm-1", "reason": "wrong dosage form"},
        )
        assert rejected.status_code == 200
        data = rejected.json()["data"]
        assert data["status"] == "completed"
        assert "[REJECTED] Reason: wrong dosage form" in data["notes"]

        record = asyncio.run(store.get_calculation(UUID(calculation_id)))
        assert record.status == CalculationStatus.REJECTED

    def test_assign_conflict(self, client, calculation_id):
        item = enqueue(client, calculation_id)
        client.post(f"{API}/{item['id']}/assign", json={"reviewer_id": "pharm-1"})

        response = client.post(f"{API}/{item['id']}/assign", json={"reviewer_id": "pharm-2"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "CONFLICT"

    def test_assign_blank_reviewer(self, client, calculation_id):
        item = enqueue(client, calculation_id)

        response = client.post(f"{API}/{item['id']}/assign", json={"reviewer_id": "  "})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_approve_unassigned(self, client, calculation_id):
        item = enqueue(client, calculation_id)

        response = client.post(
            f"{API}/{item['id']}/approve",
            json={"reviewer_id": "pharm-2", "notes": "ok"},
        )

        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["assigned_to"] is None
        assert "[APPROVED] ok" in data["notes"]

    def test_notes(self, client, calculation_id):
        item = enqueue(client, calculation_id)

        first = client.post(f"{API}/{item['id']}/notes", json={"notes": "called prescriber"})
        second = client.post(
            f"{API}/{item['id']}/notes",
            json={"note": "awaiting callback", "reviewer_id": "pharm-1"},
        )

        assert first.status_code == 200
        assert second.json()["data"]["notes"].startswith(first.json()["data"]["notes"])

    def test_blank_note(self, client, calculation_id):
        item = enqueue(client, calculation_id)

        response = client.post(f"{API}/{item['id']}/notes", json={"note": ""})

        assert response.status_code == 400

    def test_priority(self, client, calculation_id):
        item = enqueue(client, calculation_id, "low")

        response = client.post(f"{API}/{item['id']}/priority", json={"priority": "high"})

        assert response.json()["data"]["priority"] == "high"

    @pytest.mark.parametrize(
        "path,payload",
        [
            ("assign", {"reviewer_id": "pharm-1"}),
            ("approve", {"reviewer_id": "pharm-1"}),
            ("reject", {"reviewer_id": "pharm-1", "reason": "wrong dosage form"}),
            ("notes", {"note": "hello"}),
            ("priority", {"priority": "high"}),
        ],
    )
    def test_unknown_item(self, client, path, payload):
        response = client.post(f"{API}/{uuid4()}/{path}", json=payload)

        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.parametrize(
        "path,payload,missing",
        [
            ("assign", {}, "reviewer_id"),
            ("approve", {"notes": "ok"}, "reviewer_id"),
            ("reject", {"reviewer_id": "pharm-1"}, "reason"),
            ("reject", {"reason": "wrong dosage form"}, "reviewer_id"),
            ("notes", {"reviewer_id": "pharm-1"}, "note"),
            ("priority", {}, "priority"),
        ],
    )
    def test_missing_field(self, client, calculation_id, path, payload, missing):
        """An omitted field is reported like a blank one: 400 INVALID_INPUT."""
        item = enqueue(client, calculation_id)

        response = client.post(f"{API}/{item['id']}/{path}", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "INVALID_INPUT"
        assert missing in [d["field"] for d in body["details"]]
        assert response.headers["X-Error-Code"] == "INVALID_INPUT"

    def test_missing_and_blank_reason_agree(self, client, calculation_id):
        item = enqueue(client, calculation_id)

        missing = client.post(f"{API}/{item['id']}/reject", json={"reviewer_id": "pharm-1"})
        blank = client.post(
            f"{API}/{item['id']}/reject",
            json={"reviewer_id": "pharm-1", "reason": " "},
        )

        assert missing.status_code == blank.status_code == 400
        assert missing.json()["error_code"] == blank.json()["error_code"]

    def test_missing_calculation_id(self, client):
        response = client.post(API, json={"priority": "high"})

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "calculation_id"


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_live(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}
