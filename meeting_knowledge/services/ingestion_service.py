"""
Service layer for transcript ingestion.
Commits a transcript and everything extracted from it as one atomic unit.
"""

import uuid
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from meeting_knowledge.config import get_settings
from meeting_knowledge.models.knowledge import ActionItem, Decision, Embedding, Topic
from meeting_knowledge.models.participant import Participant, TranscriptParticipant
from meeting_knowledge.models.transcript import Transcript
from meeting_knowledge.schemas.ingest import IngestRequest, ParticipantIn
from meeting_knowledge.services.extraction_service import KnowledgeRecord
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class DuplicateTranscriptError(Exception):
    """Raised when a transcript with the same external transcript_id already exists."""

    def __init__(self, transcript_id: str) -> None:
        self.transcript_id = transcript_id
        super().__init__(f"Transcript '{transcript_id}' has already been ingested")


class PersistenceError(Exception):
    """Raised when the ingestion transaction is aborted; nothing from it was stored."""
    pass


class IngestionService:
    """
    Persists ingested transcripts.

    One ingestion writes the transcript, its participant links, topics,
    action items, decisions and embedding in a single transaction on the
    given session: either all rows are committed or none are.
    """

    def __init__(self, db: Session) -> None:
        """
        Initialize the ingestion service.

        Args:
            db: Database session for operations
        """
        self.db: Session = db

    def get_transcript_by_external_id(self, transcript_id: str) -> Optional[Transcript]:
        """Look up a transcript by its caller-supplied transcript_id."""
        return self.db.query(Transcript).filter(Transcript.transcript_id == transcript_id).first()

    def ingest(self, request: IngestRequest, knowledge: KnowledgeRecord) -> uuid.UUID:
        """
        Store a validated ingestion request together with its knowledge record.

        Args:
            request: Validated ingestion request
            knowledge: Complete knowledge record extracted from the transcript

        Returns:
            The new transcript's internal id

        Raises:
            DuplicateTranscriptError: If transcript_id was already ingested (no writes)
            PersistenceError: If the transaction failed and was rolled back
        """
        if self.get_transcript_by_external_id(request.transcript_id) is not None:
            logger.warning("Duplicate transcript rejected", transcript_id=request.transcript_id)
            raise DuplicateTranscriptError(request.transcript_id)

        try:
            transcript = self._add_transcript(request, knowledge)
            for participant in request.participants:
                self._link_participant(transcript.id, participant)
            self._add_knowledge(transcript.id, knowledge)
            self._add_embedding(transcript.id, knowledge)
            self.db.commit()

        except IntegrityError as e:
            self.db.rollback()
            # A concurrent ingestion of the same id can slip past the check above
            if self.get_transcript_by_external_id(request.transcript_id) is not None:
                logger.warning("Duplicate transcript rejected by unique constraint",
                               transcript_id=request.transcript_id)
                raise DuplicateTranscriptError(request.transcript_id) from e
            logger.error("Ingestion transaction rolled back",
                         transcript_id=request.transcript_id,
                         error=str(e))
            raise PersistenceError(f"Failed to store transcript '{request.transcript_id}'") from e

        except Exception as e:
            self.db.rollback()
            logger.error("Ingestion transaction rolled back",
                         transcript_id=request.transcript_id,
                         error=str(e),
                         error_type=type(e).__name__)
            raise PersistenceError(f"Failed to store transcript '{request.transcript_id}'") from e

        logger.info("Transcript ingested",
                    id=transcript.id,
                    transcript_id=request.transcript_id,
                    participants=len(request.participants),
                    topics=len(knowledge.topics),
                    action_items=len(knowledge.action_items),
                    decisions=len(knowledge.decisions))

        return transcript.id

    def _add_transcript(self, request: IngestRequest, knowledge: KnowledgeRecord) -> Transcript:
        metadata = request.metadata
        transcript = Transcript(
            id=uuid.uuid4(),
            transcript_id=request.transcript_id,
            title=request.title,
            occurred_at=request.occurred_at,
            duration_minutes=request.duration_minutes,
            transcript_text=request.transcript,
            platform=metadata.platform if metadata else None,
            recording_url=str(metadata.recording_url) if metadata and metadata.recording_url else None,
            sentiment=knowledge.sentiment,
            summary=knowledge.summary,
            insights=list(knowledge.insights),
        )
        self.db.add(transcript)
        # Surface the transcript_id unique constraint before writing children
        self.db.flush()
        return transcript

    def _link_participant(self, transcript_pk: uuid.UUID, participant: ParticipantIn) -> None:
        participant_id = self._upsert_participant(participant)
        self.db.add(TranscriptParticipant(
            transcript_id=transcript_pk,
            participant_id=participant_id,
            role=participant.role,
        ))

    def _upsert_participant(self, participant: ParticipantIn) -> uuid.UUID:
        """
        Return the id of the participant with this email, creating it if needed.

        Uses INSERT ... ON CONFLICT (email) DO NOTHING so that concurrent
        ingestions introducing the same new email cannot create duplicates.
        An existing participant keeps its stored name.
        """
        dialect = self.db.get_bind().dialect.name
        insert = _DIALECT_INSERTS.get(dialect)
        if insert is None:
            raise PersistenceError(f"Unsupported database dialect for participant upsert: {dialect}")

        statement = (
            insert(Participant)
            .values(id=uuid.uuid4(), name=participant.name, email=participant.email)
            .on_conflict_do_nothing(index_elements=["email"])
        )
        self.db.execute(statement)

        return self.db.query(Participant.id).filter(Participant.email == participant.email).scalar()

    def _add_knowledge(self, transcript_pk: uuid.UUID, knowledge: KnowledgeRecord) -> None:
        for topic in knowledge.topics:
            self.db.add(Topic(transcript_id=transcript_pk, topic_name=topic))

        for item in knowledge.action_items:
            self.db.add(ActionItem(
                transcript_id=transcript_pk,
                text=item.text,
                assignee=item.assignee,
                due_date=item.due_date,
                priority=item.priority,
            ))

        for decision in knowledge.decisions:
            self.db.add(Decision(transcript_id=transcript_pk, decision_text=decision))

    def _add_embedding(self, transcript_pk: uuid.UUID, knowledge: KnowledgeRecord) -> None:
        if not knowledge.embedding:
            raise ValueError("Knowledge record has no embedding vector")
        # Every stored vector must be comparable with every query embedding
        if len(knowledge.embedding) != settings.embedding_dimensions:
            raise ValueError(
                f"Embedding has {len(knowledge.embedding)} dimensions, expected {settings.embedding_dimensions}"
            )
        self.db.add(Embedding(
            transcript_id=transcript_pk,
            embedding_vector=list(knowledge.embedding),
            dimensions=len(knowledge.embedding),
        ))
