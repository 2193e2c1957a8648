"""
SQLAlchemy model for ingested meeting transcripts.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from meeting_knowledge.db.database import Base, JSONType


class Transcript(Base):
    """
    Database model for an ingested meeting transcript.

    Identified externally by the caller-supplied ``transcript_id`` (unique)
    and internally by ``id``. Owns its topics, action items, decisions and
    its single embedding; rows are append-only.
    """

    __tablename__ = "transcripts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    transcript_id = Column(String(255), nullable=False, unique=True, index=True)
    title = Column(String(500), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    transcript_text = Column(Text, nullable=False)
    platform = Column(String(100), nullable=True)
    recording_url = Column(String(2048), nullable=True)
    sentiment = Column(String(20), nullable=False)  # positive, neutral, negative
    summary = Column(Text, nullable=False)
    insights = Column(JSONType, nullable=False)  # Array of insight strings
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    participant_links = relationship("TranscriptParticipant", back_populates="transcript", cascade="all, delete-orphan")
    topics = relationship("Topic", back_populates="transcript", cascade="all, delete-orphan")
    action_items = relationship("ActionItem", back_populates="transcript", cascade="all, delete-orphan")
    decisions = relationship("Decision", back_populates="transcript", cascade="all, delete-orphan")
    embedding = relationship("Embedding", back_populates="transcript", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Transcript(id={self.id}, transcript_id='{self.transcript_id}', title='{self.title}')>"
