"""
Pydantic schemas for transcript read and analytics API responses.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class TranscriptListItem(BaseModel):
    """Schema for one row of the transcript listing."""
    id: UUID
    transcript_id: str
    title: str
    occurred_at: datetime
    duration_minutes: int
    sentiment: str
    platform: Optional[str] = None
    created_at: datetime
    participant_count: int
    topic_count: int


class TranscriptListResponse(BaseModel):
    """Schema for paginated transcript list responses."""
    transcripts: List[TranscriptListItem]
    total: int
    page: int
    per_page: int


class ParticipantWithRole(BaseModel):
    id: UUID
    name: str
    email: str
    role: Optional[str] = None


class ActionItemResponse(BaseModel):
    id: UUID
    text: str
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    priority: str

    class Config:
        from_attributes = True


class TranscriptDetailResponse(BaseModel):
    """Schema for a single transcript with all extracted knowledge."""
    id: UUID
    transcript_id: str
    title: str
    occurred_at: datetime
    duration_minutes: int
    transcript_text: str
    platform: Optional[str] = None
    recording_url: Optional[str] = None
    sentiment: str
    summary: str
    insights: List[str]
    created_at: datetime
    participants: List[ParticipantWithRole]
    topics: List[str]
    action_items: List[ActionItemResponse]
    decisions: List[str]


class TopicFrequency(BaseModel):
    topic_name: str
    topic_count: int


class TopicFrequencyResponse(BaseModel):
    count: int
    topics: List[TopicFrequency]


class ParticipantAnalytics(BaseModel):
    """Activity figures for one participant across all meetings."""
    id: UUID
    name: str
    email: str
    meetings_attended: int
    action_items_assigned: int
    topics_discussed: int
    decisions_involved_in: int


class ParticipantAnalyticsResponse(BaseModel):
    total_participants: int
    participants: List[ParticipantAnalytics]
