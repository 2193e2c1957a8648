"""
SQLAlchemy models for knowledge extracted from a transcript:
topics, action items, decisions and the embedding vector.
"""

import uuid
from sqlalchemy import Column, String, Integer, Date, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from meeting_knowledge.db.database import Base, JSONType


class Topic(Base):
    """A topic discussed in a meeting."""

    __tablename__ = "topics"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_name = Column(String(500), nullable=False, index=True)

    transcript = relationship("Transcript", back_populates="topics")

    def __repr__(self) -> str:
        return f"<Topic(id={self.id}, topic_name='{self.topic_name}')>"


class ActionItem(Base):
    """A follow-up task agreed in a meeting."""

    __tablename__ = "action_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    assignee = Column(String(255), nullable=True, index=True)  # Free text, not a participant FK
    due_date = Column(Date, nullable=True)
    priority = Column(String(10), nullable=False)  # high, medium, low

    transcript = relationship("Transcript", back_populates="action_items")

    def __repr__(self) -> str:
        return f"<ActionItem(id={self.id}, priority='{self.priority}', assignee='{self.assignee}')>"


class Decision(Base):
    """A decision recorded in a meeting."""

    __tablename__ = "decisions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id", ondelete="CASCADE"), nullable=False, index=True)
    decision_text = Column(Text, nullable=False)

    transcript = relationship("Transcript", back_populates="decisions")

    def __repr__(self) -> str:
        return f"<Decision(id={self.id})>"


class Embedding(Base):
    """
    Embedding vector for a transcript's full text.

    One-to-one with Transcript. Vectors are stored as JSON arrays and
    scanned in full by the similarity search.
    """

    __tablename__ = "embeddings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    embedding_vector = Column(JSONType, nullable=False)  # Array of floats
    dimensions = Column(Integer, nullable=False)

    transcript = relationship("Transcript", back_populates="embedding")

    def __repr__(self) -> str:
        return f"<Embedding(id={self.id}, transcript_id={self.transcript_id}, dimensions={self.dimensions})>"
