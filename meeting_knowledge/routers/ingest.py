"""
API route for transcript ingestion.
Extracts knowledge from a transcript and stores it atomically.
"""

import asyncio

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from meeting_knowledge.db.database import get_db
from meeting_knowledge.schemas.ingest import IngestRequest, IngestResponse
from meeting_knowledge.services.extraction_service import ExtractionOrchestrator
from meeting_knowledge.services.inference_client import InferenceClient, get_inference_client
from meeting_knowledge.services.ingestion_service import DuplicateTranscriptError, IngestionService
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["ingest"])


@router.post("/ingest", response_model=IngestResponse, status_code=201)
async def ingest_transcript(
    request: IngestRequest,
    db: Session = Depends(get_db),
    inference_client: InferenceClient = Depends(get_inference_client)
) -> IngestResponse:
    """
    Ingest a meeting transcript.

    Runs knowledge extraction, then stores the transcript, participants and
    extracted entities in one transaction. Returns the summary, insights and
    extracted entities.
    """
    logger.info("Ingest transcript request received",
                transcript_id=request.transcript_id,
                participants=len(request.participants),
                transcript_length=len(request.transcript))

    service = IngestionService(db)

    # Fail fast before spending inference calls; ingest() re-checks inside the transaction
    if await asyncio.to_thread(service.get_transcript_by_external_id, request.transcript_id) is not None:
        raise DuplicateTranscriptError(request.transcript_id)

    orchestrator = ExtractionOrchestrator(inference_client)
    knowledge = await orchestrator.extract(request.transcript)

    transcript_pk = await asyncio.to_thread(service.ingest, request, knowledge)

    return IngestResponse(
        id=transcript_pk,
        summary=knowledge.summary,
        insights=knowledge.insights,
        extracted=knowledge.entities,
    )
