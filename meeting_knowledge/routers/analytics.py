"""
API routes for cross-meeting analytics.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from meeting_knowledge.db.database import get_db
from meeting_knowledge.schemas.transcript import ParticipantAnalyticsResponse, TopicFrequencyResponse
from meeting_knowledge.services.transcript_service import TranscriptService
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/topics", response_model=TopicFrequencyResponse)
def get_topics(db: Session = Depends(get_db)) -> TopicFrequencyResponse:
    """Topic names with how many meetings discussed them, most frequent first."""
    logger.info("Topic analytics request")

    topics = TranscriptService(db).topic_frequencies()
    return TopicFrequencyResponse(count=len(topics), topics=topics)


@router.get("/participants", response_model=ParticipantAnalyticsResponse)
def get_participant_analytics(db: Session = Depends(get_db)) -> ParticipantAnalyticsResponse:
    """Per-participant meeting, action item, topic and decision counts."""
    logger.info("Participant analytics request")

    participants = TranscriptService(db).participant_analytics()
    return ParticipantAnalyticsResponse(total_participants=len(participants), participants=participants)
