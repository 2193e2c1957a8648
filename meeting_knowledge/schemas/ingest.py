"""
Pydantic schemas for transcript ingestion requests, responses and the
structured entities extracted from a transcript.
"""

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import AnyUrl, BaseModel, Field, field_validator, model_validator

MIN_TRANSCRIPT_LENGTH = 10

# Syntactic check only: local part, "@", dotted domain
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

Priority = Literal["high", "medium", "low"]
Sentiment = Literal["positive", "neutral", "negative"]


class ParticipantIn(BaseModel):
    """A meeting participant as supplied by the caller."""
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)
    role: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        """Emails identify participants case-insensitively."""
        return value.strip().lower()


class IngestMetadata(BaseModel):
    """Optional meeting metadata."""
    platform: Optional[str] = Field(None, max_length=100)
    recording_url: Optional[AnyUrl] = None


class IngestRequest(BaseModel):
    """Schema for a transcript ingestion request."""
    transcript_id: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=500)
    occurred_at: datetime
    duration_minutes: int = Field(..., gt=0)
    participants: List[ParticipantIn] = Field(..., min_length=1)
    transcript: str = Field(..., min_length=MIN_TRANSCRIPT_LENGTH)
    metadata: Optional[IngestMetadata] = None

    @field_validator("transcript_id", "title", "transcript")
    @classmethod
    def reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def check_unique_participant_emails(self) -> "IngestRequest":
        seen = set()
        for participant in self.participants:
            if participant.email in seen:
                raise ValueError(f"duplicate participant email: {participant.email}")
            seen.add(participant.email)
        return self


class ActionItemData(BaseModel):
    """An action item as extracted from a transcript."""
    text: str = Field(..., min_length=1)
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    priority: Priority


class ExtractedEntities(BaseModel):
    """Structured entities returned by the entity extraction step."""
    topics: List[str]
    action_items: List[ActionItemData]
    decisions: List[str]
    sentiment: Sentiment


class IngestResponse(BaseModel):
    """Schema for the ingestion API response."""
    id: UUID
    status: Literal["processed"] = "processed"
    summary: str
    insights: List[str]
    extracted: ExtractedEntities
