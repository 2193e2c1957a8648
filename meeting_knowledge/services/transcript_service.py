"""
Service layer for read-only transcript queries.
Handles listing, detail retrieval and cross-meeting analytics.
"""

import uuid
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from meeting_knowledge.models.knowledge import ActionItem, Decision, Topic
from meeting_knowledge.models.participant import Participant, TranscriptParticipant
from meeting_knowledge.models.transcript import Transcript
from meeting_knowledge.schemas.transcript import (
    ActionItemResponse, ParticipantAnalytics, ParticipantWithRole, TopicFrequency,
    TranscriptDetailResponse, TranscriptListItem
)
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)


class TranscriptNotFoundError(Exception):
    """Raised when a transcript is not found in the database."""
    pass


class TranscriptService:
    """
    Service class for reading stored transcripts and their knowledge.

    Never writes; ingestion lives in IngestionService.
    """

    def __init__(self, db: Session) -> None:
        """
        Initialize the transcript service.

        Args:
            db: Database session for operations
        """
        self.db: Session = db

    def list_transcripts(self, skip: int = 0, limit: int = 100) -> Tuple[List[TranscriptListItem], int]:
        """
        List transcripts with participant and topic counts.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (transcript_list, total_count)
        """
        participant_count = (select(func.count(TranscriptParticipant.participant_id))
                             .where(TranscriptParticipant.transcript_id == Transcript.id)
                             .correlate(Transcript)
                             .scalar_subquery())
        topic_count = (select(func.count(Topic.id))
                       .where(Topic.transcript_id == Transcript.id)
                       .correlate(Transcript)
                       .scalar_subquery())

        total = self.db.query(func.count(Transcript.id)).scalar()
        rows = (self.db.query(Transcript, participant_count, topic_count)
                .order_by(Transcript.occurred_at.desc(), Transcript.transcript_id)
                .offset(skip)
                .limit(limit)
                .all())

        transcripts = [
            TranscriptListItem(
                id=transcript.id,
                transcript_id=transcript.transcript_id,
                title=transcript.title,
                occurred_at=transcript.occurred_at,
                duration_minutes=transcript.duration_minutes,
                sentiment=transcript.sentiment,
                platform=transcript.platform,
                created_at=transcript.created_at,
                participant_count=participants or 0,
                topic_count=topics or 0,
            )
            for transcript, participants, topics in rows
        ]

        logger.info("Listed transcripts", count=len(transcripts), total=total, skip=skip, limit=limit)

        return transcripts, total

    def get_transcript_detail(self, transcript_pk: uuid.UUID) -> TranscriptDetailResponse:
        """
        Retrieve a transcript with its participants and extracted knowledge.

        Args:
            transcript_pk: Internal id of the transcript

        Returns:
            TranscriptDetailResponse

        Raises:
            TranscriptNotFoundError: If no transcript has this id
        """
        transcript = (self.db.query(Transcript)
                      .options(selectinload(Transcript.participant_links).selectinload(TranscriptParticipant.participant),
                               selectinload(Transcript.topics),
                               selectinload(Transcript.action_items),
                               selectinload(Transcript.decisions))
                      .filter(Transcript.id == transcript_pk)
                      .first())

        if not transcript:
            logger.warning("Transcript not found", id=transcript_pk)
            raise TranscriptNotFoundError(f"Transcript {transcript_pk} not found")

        participants = [
            ParticipantWithRole(
                id=link.participant.id,
                name=link.participant.name,
                email=link.participant.email,
                role=link.role,
            )
            for link in transcript.participant_links
        ]

        logger.info("Retrieved transcript detail",
                    id=transcript.id,
                    transcript_id=transcript.transcript_id,
                    participants=len(participants))

        return TranscriptDetailResponse(
            id=transcript.id,
            transcript_id=transcript.transcript_id,
            title=transcript.title,
            occurred_at=transcript.occurred_at,
            duration_minutes=transcript.duration_minutes,
            transcript_text=transcript.transcript_text,
            platform=transcript.platform,
            recording_url=transcript.recording_url,
            sentiment=transcript.sentiment,
            summary=transcript.summary,
            insights=transcript.insights or [],
            created_at=transcript.created_at,
            participants=participants,
            topics=[topic.topic_name for topic in transcript.topics],
            action_items=[ActionItemResponse.model_validate(item) for item in transcript.action_items],
            decisions=[decision.decision_text for decision in transcript.decisions],
        )

    def topic_frequencies(self) -> List[TopicFrequency]:
        """
        Count how often each topic name occurs across all transcripts.

        Returns:
            Topics ordered by count (highest first), then name
        """
        topic_count = func.count(Topic.id).label("topic_count")
        rows = (self.db.query(Topic.topic_name, topic_count)
                .group_by(Topic.topic_name)
                .order_by(topic_count.desc(), Topic.topic_name)
                .all())

        logger.info("Computed topic frequencies", distinct_topics=len(rows))

        return [TopicFrequency(topic_name=name, topic_count=count) for name, count in rows]

    def participant_analytics(self) -> List[ParticipantAnalytics]:
        """
        Summarize each participant's involvement across meetings.

        Action items are attributed by matching the free-text assignee to
        the participant's name. Topics and decisions count every row from
        meetings the participant attended.

        Returns:
            Participants ordered by meetings attended, action items assigned, then name
        """
        meetings_attended = (select(func.count(TranscriptParticipant.transcript_id))
                             .where(TranscriptParticipant.participant_id == Participant.id)
                             .correlate(Participant)
                             .scalar_subquery()
                             .label("meetings_attended"))
        action_items_assigned = (select(func.count(ActionItem.id))
                                 .where(ActionItem.assignee == Participant.name)
                                 .correlate(Participant)
                                 .scalar_subquery()
                                 .label("action_items_assigned"))
        topics_discussed = (select(func.count(Topic.id))
                            .join(TranscriptParticipant, TranscriptParticipant.transcript_id == Topic.transcript_id)
                            .where(TranscriptParticipant.participant_id == Participant.id)
                            .correlate(Participant)
                            .scalar_subquery()
                            .label("topics_discussed"))
        decisions_involved_in = (select(func.count(Decision.id))
                                 .join(TranscriptParticipant, TranscriptParticipant.transcript_id == Decision.transcript_id)
                                 .where(TranscriptParticipant.participant_id == Participant.id)
                                 .correlate(Participant)
                                 .scalar_subquery()
                                 .label("decisions_involved_in"))

        rows = (self.db.query(Participant, meetings_attended, action_items_assigned,
                              topics_discussed, decisions_involved_in)
                .order_by(meetings_attended.desc(), action_items_assigned.desc(), Participant.name)
                .all())

        logger.info("Computed participant analytics", participants=len(rows))

        return [
            ParticipantAnalytics(
                id=participant.id,
                name=participant.name,
                email=participant.email,
                meetings_attended=meetings or 0,
                action_items_assigned=actions or 0,
                topics_discussed=topics or 0,
                decisions_involved_in=decisions or 0,
            )
            for participant, meetings, actions, topics, decisions in rows
        ]
