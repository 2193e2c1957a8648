"""
Pydantic schemas for similarity search responses.
"""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """A transcript ranked by similarity to the search query."""
    id: UUID
    transcript_id: str
    title: str
    occurred_at: datetime
    duration_minutes: int
    sentiment: str
    similarity_score: float = Field(..., ge=-1.0, le=1.0)


class SearchResponse(BaseModel):
    """Schema for the search API response."""
    query: str
    results: List[SearchResult]
    total_searched: int
