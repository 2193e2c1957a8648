"""
Pytest configuration and fixtures for testing.
"""

import os

# Settings and the engine are created at import time, so configure them first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ANTHROPIC_API_KEY"] = "test-key"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["EMBEDDING_DIMENSIONS"] = "64"
os.environ["INFERENCE_BASE_DELAY"] = "0"
os.environ["INFERENCE_MAX_DELAY"] = "0"

import re
import zlib
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from meeting_knowledge.db.database import Base, SessionLocal, engine, get_db, init_db
from meeting_knowledge.main import app
from meeting_knowledge.schemas.ingest import ActionItemData, ExtractedEntities, IngestRequest
from meeting_knowledge.services.extraction_service import KnowledgeRecord
from meeting_knowledge.services.inference_client import get_inference_client

EMBEDDING_DIMENSIONS = 64


def bag_of_words_embedding(text: str, dimensions: int = EMBEDDING_DIMENSIONS) -> List[float]:
    """Deterministic embedding: word counts hashed into a fixed number of buckets."""
    vector = [0.0] * dimensions
    for word in re.findall(r"[a-z0-9]+", text.lower()):
        vector[zlib.crc32(word.encode("utf-8")) % dimensions] += 1.0
    return vector


class FakeInferenceClient:
    """In-process stand-in for the inference client."""

    def __init__(self, entities: Optional[ExtractedEntities] = None) -> None:
        self.entities = entities or ExtractedEntities(
            topics=["Quarterly roadmap"],
            action_items=[ActionItemData(text="Draft the launch plan", assignee="Alice", priority="medium")],
            decisions=["Ship the beta in May"],
            sentiment="positive",
        )
        self.calls: List[str] = []

    def extract_entities(self, text: str) -> ExtractedEntities:
        self.calls.append("extract_entities")
        return self.entities

    def summarize(self, text: str) -> str:
        self.calls.append("summarize")
        return "The team reviewed the roadmap. They agreed on next steps."

    def derive_insights(self, text: str, topics: List[str], decisions: List[str]) -> List[str]:
        self.calls.append("derive_insights")
        return [f"The meeting focused on {topic}." for topic in topics] + [
            "Decisions were reached quickly.",
            "Ownership of follow-ups is clear.",
        ]

    def embed(self, text: str) -> List[float]:
        self.calls.append("embed")
        return bag_of_words_embedding(text)


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database and session for each test."""
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_inference_client() -> FakeInferenceClient:
    return FakeInferenceClient()


@pytest.fixture(scope="function")
def client(test_db: Session, fake_inference_client: FakeInferenceClient) -> Generator[TestClient, None, None]:
    """Create test client with database and inference dependency overrides."""
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_inference_client] = lambda: fake_inference_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_anthropic_client() -> Mock:
    """Mock Anthropic client for testing."""
    mock_client = Mock()
    mock_response = Mock()
    mock_response.content = [Mock()]
    mock_response.content[0].text = "Test response from Claude"
    mock_response.usage.input_tokens = 100
    mock_response.usage.output_tokens = 50
    mock_client.messages.create.return_value = mock_response
    return mock_client


@pytest.fixture
def mock_openai_client() -> Mock:
    """Mock OpenAI client returning a valid embedding."""
    mock_client = Mock()
    mock_response = Mock()
    mock_response.data = [Mock()]
    mock_response.data[0].embedding = [0.1] * EMBEDDING_DIMENSIONS
    mock_client.embeddings.create.return_value = mock_response
    return mock_client


@pytest.fixture
def sample_transcript() -> str:
    """Sample meeting transcript."""
    return """Alice: Thanks for joining. Today we need to settle the beta launch date.
Bob: Engineering can be ready by the end of April if we freeze scope this week.
Alice: Then let's decide to ship the beta in May.
Bob: Agreed. I'll draft the launch plan by Friday, it's high priority.
Alice: Great, and the pricing discussion moves to next week."""


@pytest.fixture
def ingest_payload(sample_transcript: str) -> Callable[..., Dict[str, Any]]:
    """Factory for valid ingestion request payloads."""
    def build(transcript_id: str = "meeting-001", **overrides: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "transcript_id": transcript_id,
            "title": "Beta launch planning",
            "occurred_at": "2025-03-10T15:00:00Z",
            "duration_minutes": 45,
            "participants": [
                {"name": "Alice", "email": "alice@example.com", "role": "host"},
                {"name": "Bob", "email": "bob@example.com", "role": "engineer"},
            ],
            "transcript": sample_transcript,
            "metadata": {"platform": "zoom", "recording_url": "https://example.com/recordings/1"},
        }
        payload.update(overrides)
        return payload
    return build


@pytest.fixture
def make_request(ingest_payload: Callable[..., Dict[str, Any]]) -> Callable[..., IngestRequest]:
    """Factory for validated IngestRequest objects."""
    def build(transcript_id: str = "meeting-001", **overrides: Any) -> IngestRequest:
        return IngestRequest(**ingest_payload(transcript_id, **overrides))
    return build


@pytest.fixture
def make_knowledge() -> Callable[..., KnowledgeRecord]:
    """Factory for complete knowledge records."""
    def build(embedding: Optional[List[float]] = None, **overrides: Any) -> KnowledgeRecord:
        fields: Dict[str, Any] = {
            "topics": ["Beta launch", "Pricing"],
            "action_items": [
                ActionItemData(text="Draft the launch plan", assignee="Bob", due_date="2025-03-14", priority="high"),
            ],
            "decisions": ["Ship the beta in May"],
            "sentiment": "positive",
            "summary": "The team set the beta launch date. Bob owns the launch plan.",
            "insights": ["Scope freeze is the critical path.", "Pricing is unresolved.", "The team aligned quickly."],
            "embedding": embedding if embedding is not None else [1.0] + [0.0] * (EMBEDDING_DIMENSIONS - 1),
        }
        fields.update(overrides)
        return KnowledgeRecord(**fields)
    return build
