"""
API routes for browsing ingested transcripts.
Handles listing and detail retrieval.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from meeting_knowledge.db.database import get_db
from meeting_knowledge.schemas.transcript import TranscriptDetailResponse, TranscriptListResponse
from meeting_knowledge.services.transcript_service import TranscriptService
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/transcripts", tags=["transcripts"])


@router.get("", response_model=TranscriptListResponse)
def list_transcripts(
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page (max 100)"),
    db: Session = Depends(get_db)
) -> TranscriptListResponse:
    """
    List all transcripts with pagination.

    Returns transcripts ordered by meeting date (newest first) with
    participant and topic counts.
    """
    logger.info("List transcripts request", page=page, per_page=per_page)

    service = TranscriptService(db)
    skip = (page - 1) * per_page
    transcripts, total = service.list_transcripts(skip=skip, limit=per_page)

    return TranscriptListResponse(
        transcripts=transcripts,
        total=total,
        page=page,
        per_page=per_page
    )


@router.get("/{transcript_id}", response_model=TranscriptDetailResponse)
def get_transcript(
    transcript_id: uuid.UUID,
    db: Session = Depends(get_db)
) -> TranscriptDetailResponse:
    """
    Get a transcript with its participants, topics, action items and decisions.

    ``transcript_id`` is the internal id returned by ingestion.
    """
    logger.info("Get transcript request", id=transcript_id)

    service = TranscriptService(db)
    return service.get_transcript_detail(transcript_id)
