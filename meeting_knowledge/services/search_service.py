"""
Similarity search over stored transcript embeddings.
Flat scan with cosine similarity; no index.
"""

import asyncio
import math
from typing import List, Sequence, Tuple

from sqlalchemy.orm import Session

from meeting_knowledge.config import get_settings
from meeting_knowledge.models.knowledge import Embedding
from meeting_knowledge.models.transcript import Transcript
from meeting_knowledge.schemas.search import SearchResult
from meeting_knowledge.services.extraction_service import ExtractionFailure
from meeting_knowledge.services.inference_client import InferenceClient
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

STAGE_QUERY_EMBEDDING = "query_embedding"


class InvalidQueryError(Exception):
    """Raised when a search query is empty or malformed."""
    pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors: dot(a, b) / (|a| * |b|).

    Returns 0.0 when either vector has zero magnitude. The result is
    clamped to [-1.0, 1.0].

    Raises:
        ValueError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    dot_product = math.fsum(x * y for x, y in zip(a, b))
    magnitude_a = math.sqrt(math.fsum(x * x for x in a))
    magnitude_b = math.sqrt(math.fsum(y * y for y in b))

    if magnitude_a == 0.0 or magnitude_b == 0.0:
        return 0.0

    return max(-1.0, min(1.0, dot_product / (magnitude_a * magnitude_b)))


def rank_results(results: List[SearchResult]) -> List[SearchResult]:
    """
    Order results by similarity, highest first.

    Equal scores are ordered by most recent occurred_at, then by
    transcript_id ascending.
    """
    ranked = sorted(results, key=lambda r: r.transcript_id)
    ranked.sort(key=lambda r: r.occurred_at, reverse=True)
    ranked.sort(key=lambda r: r.similarity_score, reverse=True)
    return ranked


class SearchService:
    """
    Finds the transcripts most similar to a free-text query.

    Every stored embedding is loaded and scored on each query, which is
    O(n * d) for n transcripts of dimension d.
    """

    def __init__(self, db: Session, inference_client: InferenceClient) -> None:
        """
        Initialize the search service.

        Args:
            db: Database session for operations
            inference_client: Client used to embed the query text
        """
        self.db: Session = db
        self.inference_client = inference_client

    async def search(self, query_text: str, k: int = 5) -> Tuple[List[SearchResult], int]:
        """
        Rank stored transcripts by similarity to the query.

        Args:
            query_text: Free-text search query
            k: Maximum number of results to return

        Returns:
            Tuple of (top_k_results, total_searched)

        Raises:
            InvalidQueryError: If the query is empty or not a string, or k is not positive
            ExtractionFailure: If the query embedding cannot be generated
        """
        if not isinstance(query_text, str) or not query_text.strip():
            raise InvalidQueryError("Query must be a non-empty string")
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise InvalidQueryError("k must be a positive integer")

        logger.info("Search started", query_length=len(query_text), k=k)

        try:
            query_embedding = await asyncio.to_thread(self.inference_client.embed, query_text)
        except Exception as e:
            logger.error("Query embedding failed", error=str(e))
            raise ExtractionFailure(STAGE_QUERY_EMBEDDING, e) from e

        results, total_searched = await asyncio.to_thread(self._score_stored_embeddings, query_embedding)
        top_results = rank_results(results)[:k]

        logger.info("Search completed",
                    total_searched=total_searched,
                    excluded=total_searched - len(results),
                    returned=len(top_results),
                    top_score=top_results[0].similarity_score if top_results else None)

        return top_results, total_searched

    def _score_stored_embeddings(self, query_embedding: List[float]) -> Tuple[List[SearchResult], int]:
        """
        Score every stored embedding against the query, in insertion order.

        Returns:
            Tuple of (scored_results, rows_scanned); rows whose vector length
            differs from the query are left out of the results
        """
        rows = (self.db.query(Embedding.embedding_vector, Transcript)
                .join(Transcript, Embedding.transcript_id == Transcript.id)
                .order_by(Transcript.created_at, Transcript.id)
                .all())

        results = []
        for stored_vector, transcript in rows:
            try:
                score = cosine_similarity(query_embedding, stored_vector)
            except ValueError as e:
                logger.warning("Stored embedding excluded from ranking",
                               transcript_id=transcript.transcript_id,
                               error=str(e))
                continue

            results.append(SearchResult(
                id=transcript.id,
                transcript_id=transcript.transcript_id,
                title=transcript.title,
                occurred_at=transcript.occurred_at,
                duration_minutes=transcript.duration_minutes,
                sentiment=transcript.sentiment,
                similarity_score=score,
            ))

        return results, len(rows)
