"""
SQLAlchemy models for meeting participants and their per-meeting roles.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from meeting_knowledge.db.database import Base


class Participant(Base):
    """
    Database model for a person who attends meetings.

    Identity is the email address, shared across transcripts. Roles are
    stored per meeting on TranscriptParticipant.
    """

    __tablename__ = "participants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    transcript_links = relationship("TranscriptParticipant", back_populates="participant")

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, email='{self.email}')>"


class TranscriptParticipant(Base):
    """Link between a transcript and a participant, carrying the meeting role."""

    __tablename__ = "transcript_participants"

    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id", ondelete="CASCADE"), primary_key=True)
    participant_id = Column(Uuid(as_uuid=True), ForeignKey("participants.id"), primary_key=True, index=True)
    role = Column(String(100), nullable=True)

    transcript = relationship("Transcript", back_populates="participant_links")
    participant = relationship("Participant", back_populates="transcript_links")

    def __repr__(self) -> str:
        return f"<TranscriptParticipant(transcript_id={self.transcript_id}, participant_id={self.participant_id}, role='{self.role}')>"
