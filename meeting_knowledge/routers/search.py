"""
API route for semantic search over ingested transcripts.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from meeting_knowledge.config import get_settings
from meeting_knowledge.db.database import get_db
from meeting_knowledge.schemas.search import SearchResponse
from meeting_knowledge.services.inference_client import InferenceClient, get_inference_client
from meeting_knowledge.services.search_service import SearchService
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/api", tags=["search"])


@router.get("/search", response_model=SearchResponse)
async def semantic_search(
    q: Optional[str] = Query(None, description="Free-text search query"),
    k: int = Query(settings.search_default_k, ge=1, le=settings.search_max_k, description="Number of results"),
    db: Session = Depends(get_db),
    inference_client: InferenceClient = Depends(get_inference_client)
) -> SearchResponse:
    """
    Find the transcripts most similar to a query.

    Scores every stored transcript embedding by cosine similarity against
    the query embedding and returns the top ``k``.
    """
    logger.info("Search request", k=k)

    service = SearchService(db, inference_client)
    results, total_searched = await service.search(q, k=k)

    return SearchResponse(query=q, results=results, total_searched=total_searched)
