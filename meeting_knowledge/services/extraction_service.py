"""
Extraction orchestration: turns raw transcript text into a knowledge record
by sequencing calls to the inference client.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, List

from meeting_knowledge.agents.base_agent import MalformedResponseError
from meeting_knowledge.schemas.ingest import ActionItemData, ExtractedEntities
from meeting_knowledge.services.inference_client import InferenceClient
from meeting_knowledge.utils.logger import get_logger, log_stage

logger = get_logger(__name__)

STAGE_ENTITY_EXTRACTION = "entity_extraction"
STAGE_SUMMARIZATION = "summarization"
STAGE_EMBEDDING = "embedding"
STAGE_INSIGHT_DERIVATION = "insight_derivation"


class ExtractionFailure(Exception):
    """Raised when any extraction stage fails; no partial record is produced."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"Extraction failed at stage '{stage}': {cause}")

    @property
    def malformed(self) -> bool:
        """True when the stage answered with data of the wrong shape."""
        return isinstance(self.cause, MalformedResponseError)


@dataclass
class KnowledgeRecord:
    """Everything derived from one transcript's text."""
    topics: List[str]
    action_items: List[ActionItemData]
    decisions: List[str]
    sentiment: str
    summary: str
    insights: List[str]
    embedding: List[float] = field(repr=False)

    @property
    def entities(self) -> ExtractedEntities:
        return ExtractedEntities(
            topics=self.topics,
            action_items=self.action_items,
            decisions=self.decisions,
            sentiment=self.sentiment,
        )


class ExtractionOrchestrator:
    """
    Runs the four extraction stages for a transcript.

    Entity extraction, summarization and embedding are independent and run
    concurrently in worker threads. Insight derivation needs the extracted
    topics and decisions, so it starts once entity extraction has finished.
    """

    def __init__(self, inference_client: InferenceClient) -> None:
        self.inference_client = inference_client

    async def extract(self, raw_text: str) -> KnowledgeRecord:
        """
        Extract a complete knowledge record from transcript text.

        Args:
            raw_text: Non-empty transcript text

        Returns:
            KnowledgeRecord with every field populated

        Raises:
            ExtractionFailure: If any stage fails, tagged with that stage
        """
        if not raw_text or not raw_text.strip():
            raise ValueError("Cannot extract knowledge from empty transcript text")

        logger.info("Knowledge extraction starting",
                    transcript_length=len(raw_text),
                    word_count=len(raw_text.split()))

        stages = [
            (STAGE_ENTITY_EXTRACTION, self.inference_client.extract_entities),
            (STAGE_SUMMARIZATION, self.inference_client.summarize),
            (STAGE_EMBEDDING, self.inference_client.embed),
        ]
        # Let every sibling finish before reporting, so nothing keeps running
        outcomes = await asyncio.gather(
            *(self._run_stage(stage, func, raw_text) for stage, func in stages),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        entities, summary, embedding = outcomes

        insights = await self._run_stage(
            STAGE_INSIGHT_DERIVATION,
            self.inference_client.derive_insights,
            raw_text,
            entities.topics,
            entities.decisions,
        )

        logger.info("Knowledge extraction complete",
                    topics=len(entities.topics),
                    action_items=len(entities.action_items),
                    decisions=len(entities.decisions),
                    insights=len(insights),
                    embedding_dimensions=len(embedding))

        return KnowledgeRecord(
            topics=entities.topics,
            action_items=entities.action_items,
            decisions=entities.decisions,
            sentiment=entities.sentiment,
            summary=summary,
            insights=insights,
            embedding=embedding,
        )

    async def _run_stage(self, stage: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run one blocking inference call in a worker thread, tagging failures with the stage."""
        try:
            with log_stage(logger, stage):
                return await asyncio.to_thread(func, *args)
        except Exception as e:
            raise ExtractionFailure(stage, e) from e
