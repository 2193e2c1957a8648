"""
Tests for the HTTP API with the inference client replaced by an in-process fake.
"""

import asyncio
import uuid
from typing import Any, Callable, Dict, List
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from meeting_knowledge.agents.base_agent import AgentProcessingError, MalformedResponseError
from meeting_knowledge.models.participant import Participant
from meeting_knowledge.models.transcript import Transcript


def error_of(response: Any) -> Dict[str, Any]:
    return response.json()["error"]


class TestIngestEndpoint:
    """Test POST /api/ingest."""

    def test_ingest_success(self, client: TestClient, ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        response = client.post("/api/ingest", json=ingest_payload())

        assert response.status_code == 201
        data = response.json()
        uuid.UUID(data["id"])
        assert data["status"] == "processed"
        assert data["summary"] == "The team reviewed the roadmap. They agreed on next steps."
        assert data["insights"][0] == "The meeting focused on Quarterly roadmap."
        assert data["extracted"]["topics"] == ["Quarterly roadmap"]
        assert data["extracted"]["decisions"] == ["Ship the beta in May"]
        assert data["extracted"]["sentiment"] == "positive"
        assert data["extracted"]["action_items"] == [
            {"text": "Draft the launch plan", "assignee": "Alice", "due_date": None, "priority": "medium"},
        ]

    def test_duplicate_returns_conflict_without_inference(self, client: TestClient, test_db: Session,
                                                          fake_inference_client: Any,
                                                          ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        assert client.post("/api/ingest", json=ingest_payload()).status_code == 201
        calls_before = list(fake_inference_client.calls)

        response = client.post("/api/ingest", json=ingest_payload(title="Retitled"))

        assert response.status_code == 409
        assert error_of(response)["code"] == "DUPLICATE_TRANSCRIPT"
        assert fake_inference_client.calls == calls_before
        assert test_db.query(Transcript).count() == 1

    @pytest.mark.parametrize("overrides, field", [
        ({"participants": [{"name": "Alice", "email": "not-an-email"}]}, "participants.0.email"),
        ({"duration_minutes": 0}, "duration_minutes"),
        ({"participants": []}, "participants"),
        ({"transcript": "too short"}, "transcript"),
        ({"title": "   "}, "title"),
        ({"occurred_at": "last tuesday"}, "occurred_at"),
        ({"metadata": {"recording_url": "not a url"}}, "metadata.recording_url"),
    ])
    def test_validation_errors(self, client: TestClient, fake_inference_client: Any,
                               ingest_payload: Callable[..., Dict[str, Any]],
                               overrides: Dict[str, Any], field: str) -> None:
        response = client.post("/api/ingest", json=ingest_payload(**overrides))

        assert response.status_code == 400
        error = error_of(response)
        assert error["code"] == "VALIDATION_ERROR"
        assert field in [detail["field"] for detail in error["details"]]
        assert fake_inference_client.calls == []

    def test_missing_field(self, client: TestClient, ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        payload = ingest_payload()
        del payload["title"]

        response = client.post("/api/ingest", json=payload)

        assert response.status_code == 400
        assert [d["field"] for d in error_of(response)["details"]] == ["title"]

    def test_duplicate_participant_emails(self, client: TestClient, ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        response = client.post("/api/ingest", json=ingest_payload(participants=[
            {"name": "Alice", "email": "alice@example.com"},
            {"name": "Alice again", "email": "ALICE@example.com"},
        ]))

        assert response.status_code == 400
        assert "duplicate participant email" in error_of(response)["details"][0]["message"]

    def test_malformed_extraction(self, client: TestClient, test_db: Session, fake_inference_client: Any,
                                  ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        def malformed(text: str) -> None:
            raise MalformedResponseError("Response is not valid JSON")

        fake_inference_client.extract_entities = malformed

        response = client.post("/api/ingest", json=ingest_payload())

        assert response.status_code == 502
        error = error_of(response)
        assert error["code"] == "EXTRACTION_MALFORMED"
        assert error["stage"] == "entity_extraction"
        assert test_db.query(Transcript).count() == 0
        assert test_db.query(Participant).count() == 0

    def test_failed_extraction(self, client: TestClient, test_db: Session, fake_inference_client: Any,
                               ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        def unavailable(text: str) -> None:
            raise AgentProcessingError("Claude API error: overloaded")

        fake_inference_client.embed = unavailable

        response = client.post("/api/ingest", json=ingest_payload())

        assert response.status_code == 502
        error = error_of(response)
        assert error["code"] == "EXTRACTION_FAILED"
        assert error["stage"] == "embedding"
        assert test_db.query(Transcript).count() == 0

    def test_database_work_is_dispatched_to_worker_threads(self, client: TestClient,
                                                           ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        to_thread = asyncio.to_thread
        dispatched: List[str] = []

        async def recording_to_thread(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
            dispatched.append(func.__name__)
            return await to_thread(func, *args, **kwargs)

        with patch("asyncio.to_thread", recording_to_thread):
            assert client.post("/api/ingest", json=ingest_payload()).status_code == 201
            assert client.get("/api/search", params={"q": "beta launch"}).status_code == 200

        assert "get_transcript_by_external_id" in dispatched
        assert "ingest" in dispatched
        assert "_score_stored_embeddings" in dispatched

    def test_correlation_id_is_echoed(self, client: TestClient, ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        response = client.post("/api/ingest", json=ingest_payload(duration_minutes=-5),
                               headers={"X-Correlation-ID": "req-123"})

        assert response.headers["X-Correlation-ID"] == "req-123"
        assert error_of(response)["correlation_id"] == "req-123"


class TestSearchEndpoint:
    """Test GET /api/search."""

    def test_verbatim_phrase_ranks_its_transcript_first(self, client: TestClient,
                                                        ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        t1 = client.post("/api/ingest", json=ingest_payload(
            "t1", transcript="Alice: We will migrate the billing database to Postgres next sprint."))
        stored = client.get(f"/api/transcripts/{t1.json()['id']}").json()
        assert stored["summary"]
        assert stored["decisions"] == ["Ship the beta in May"]
        assert stored["action_items"][0]["priority"] == "medium"
        assert len(stored["participants"]) == 2

        client.post("/api/ingest", json=ingest_payload(
            "t2", transcript="Bob: The marketing campaign for the holiday season needs new creative assets."))

        response = client.get("/api/search", params={"q": "migrate the billing database to Postgres"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "migrate the billing database to Postgres"
        assert data["total_searched"] == 2
        assert [r["transcript_id"] for r in data["results"]] == ["t1", "t2"]
        assert data["results"][0]["similarity_score"] > data["results"][1]["similarity_score"]
        assert data["results"][0]["title"] == "Beta launch planning"

    def test_k_limits_results(self, client: TestClient, ingest_payload: Callable[..., Dict[str, Any]]) -> None:
        for i in range(3):
            client.post("/api/ingest", json=ingest_payload(f"meeting-{i}"))

        response = client.get("/api/search", params={"q": "beta launch", "k": 2})

        assert response.status_code == 200
        assert len(response.json()["results"]) == 2
        assert response.json()["total_searched"] == 3

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    def test_empty_query(self, client: TestClient, params: Dict[str, str]) -> None:
        response = client.get("/api/search", params=params)

        assert response.status_code == 400
        assert error_of(response)["code"] == "INVALID_QUERY"

    def test_invalid_k(self, client: TestClient) -> None:
        response = client.get("/api/search", params={"q": "roadmap", "k": 0})

        assert response.status_code == 400
        assert error_of(response)["code"] == "VALIDATION_ERROR"

    def test_query_embedding_failure(self, client: TestClient, fake_inference_client: Any) -> None:
        def unavailable(text: str) -> None:
            raise AgentProcessingError("OpenAI API error: timeout")

        fake_inference_client.embed = unavailable

        response = client.get("/api/search", params={"q": "roadmap"})

        assert response.status_code == 502
        assert error_of(response)["stage"] == "query_embedding"


class TestTranscriptEndpoints:
    """Test the transcript browsing and analytics endpoints."""

    @pytest.fixture
    def ingested_id(self, client: TestClient, ingest_payload: Callable[..., Dict[str, Any]]) -> str:
        return client.post("/api/ingest", json=ingest_payload()).json()["id"]

    def test_list_transcripts(self, client: TestClient, ingested_id: str) -> None:
        response = client.get("/api/transcripts", params={"page": 1, "per_page": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["page"] == 1
        assert data["per_page"] == 10
        assert data["transcripts"][0]["id"] == ingested_id
        assert data["transcripts"][0]["participant_count"] == 2

    def test_get_transcript(self, client: TestClient, ingested_id: str) -> None:
        response = client.get(f"/api/transcripts/{ingested_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["transcript_id"] == "meeting-001"
        assert data["topics"] == ["Quarterly roadmap"]
        assert len(data["participants"]) == 2

    def test_get_transcript_not_found(self, client: TestClient) -> None:
        response = client.get(f"/api/transcripts/{uuid.uuid4()}")

        assert response.status_code == 404
        assert error_of(response)["code"] == "TRANSCRIPT_NOT_FOUND"

    def test_get_transcript_invalid_id(self, client: TestClient) -> None:
        response = client.get("/api/transcripts/not-a-uuid")

        assert response.status_code == 400
        assert error_of(response)["code"] == "VALIDATION_ERROR"

    def test_topic_analytics(self, client: TestClient, ingested_id: str) -> None:
        response = client.get("/api/analytics/topics")

        assert response.status_code == 200
        assert response.json() == {"count": 1, "topics": [{"topic_name": "Quarterly roadmap", "topic_count": 1}]}

    def test_participant_analytics(self, client: TestClient, ingested_id: str) -> None:
        response = client.get("/api/analytics/participants")

        assert response.status_code == 200
        data = response.json()
        assert data["total_participants"] == 2
        alice = next(p for p in data["participants"] if p["name"] == "Alice")
        assert alice["meetings_attended"] == 1
        assert alice["action_items_assigned"] == 1


class TestHealthEndpoints:
    """Test the service information endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"
