"""
Inference client: the four AI operations the knowledge pipeline depends on.
"""

from functools import lru_cache
from typing import List

from meeting_knowledge.agents.base_agent import default_retry_policy
from meeting_knowledge.agents.entity_extractor import EntityExtractorAgent
from meeting_knowledge.agents.insight_generator import InsightGeneratorAgent
from meeting_knowledge.agents.summarizer import SummarizerAgent
from meeting_knowledge.config import get_settings
from meeting_knowledge.schemas.ingest import ExtractedEntities
from meeting_knowledge.services.embedding_service import EmbeddingService
from meeting_knowledge.utils.retry import CircuitBreaker

settings = get_settings()


class InferenceClient:
    """
    Thin facade over the external AI capabilities.

    Maps each operation to the agent or service that performs it. All
    operations share one circuit breaker, so a failing provider trips it
    for the whole pipeline. Each method blocks until the remote call
    completes and raises AgentProcessingError (or its subclass
    MalformedResponseError) on failure.
    """

    def __init__(self) -> None:
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            recovery_timeout=settings.circuit_breaker_recovery_timeout,
        )
        retry_policy = default_retry_policy()
        self.entity_extractor = EntityExtractorAgent(self.circuit_breaker, retry_policy)
        self.summarizer = SummarizerAgent(self.circuit_breaker, retry_policy)
        self.insight_generator = InsightGeneratorAgent(self.circuit_breaker, retry_policy)
        self.embedding_service = EmbeddingService(self.circuit_breaker)

    def extract_entities(self, text: str) -> ExtractedEntities:
        return self.entity_extractor.process(text)

    def summarize(self, text: str) -> str:
        return self.summarizer.process(text)

    def derive_insights(self, text: str, topics: List[str], decisions: List[str]) -> List[str]:
        return self.insight_generator.process(text, topics=topics, decisions=decisions)

    def embed(self, text: str) -> List[float]:
        return self.embedding_service.embed_text(text)


@lru_cache()
def get_inference_client() -> InferenceClient:
    """FastAPI dependency returning the process-wide inference client."""
    return InferenceClient()
