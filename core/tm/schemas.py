"""
Translation Memory Pydantic Schemas
Domain entities returned by the store and API validation schemas.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from enum import Enum


# ==================== ENUMS ====================

class FeedbackAction(str, Enum):
    USED = "used"             # Inserted into the translation
    COPIED = "copied"         # Copied to clipboard
    RATED = "rated"           # Rated 1-5
    DISMISSED = "dismissed"   # Rejected as unhelpful


# ==================== SEGMENT SCHEMAS ====================

class SegmentBase(BaseModel):
    """Base schema for TM Segment."""
    source_text: str = Field(..., min_length=1)
    target_text: str = Field(..., min_length=1)
    source_language: Optional[str] = Field(None, max_length=10)
    target_language: Optional[str] = Field(None, max_length=10)
    context: Optional[str] = None
    event: Optional[str] = Field(None, max_length=255)
    topic: Optional[str] = Field(None, max_length=255)
    translated_by: Optional[int] = None
    content_id: Optional[int] = None
    project_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class SegmentCreate(SegmentBase):
    """Schema for creating a segment. Languages default to the deployment pair."""
    pass


class SegmentUpdate(BaseModel):
    """Schema for a partial segment update."""
    source_text: Optional[str] = Field(None, min_length=1)
    target_text: Optional[str] = Field(None, min_length=1)
    source_language: Optional[str] = Field(None, max_length=10)
    target_language: Optional[str] = Field(None, max_length=10)
    context: Optional[str] = None
    event: Optional[str] = Field(None, max_length=255)
    topic: Optional[str] = Field(None, max_length=255)
    translated_by: Optional[int] = None
    content_id: Optional[int] = None
    project_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class Segment(SegmentBase):
    """A stored TM segment."""
    id: int
    source_language: str
    target_language: str
    usage_count: int = Field(default=0, ge=0)
    avg_rating: Optional[float] = Field(None, ge=1.0, le=5.0)
    rating_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SegmentListResponse(BaseModel):
    """Schema for paginated segment list."""
    segments: List[Segment]
    total: int
    page: int
    limit: int
    pages: int


# ==================== MATCHING ====================

class SearchRequest(BaseModel):
    """Request to search the TM for a source fragment."""
    source_text: str = Field(..., min_length=1)
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    similarity_threshold: Optional[int] = Field(None, ge=0, le=100)
    event: Optional[str] = None
    topic: Optional[str] = None
    translator_id: Optional[int] = None
    limit: Optional[int] = Field(None, ge=1)


class TMMatch(BaseModel):
    """A ranked match: the segment and its boosted 0-100 score."""
    segment: Segment
    match_score: int = Field(..., ge=0, le=100)


class SearchResponse(BaseModel):
    """Response with ranked TM matches."""
    matches: List[TMMatch]
    best_match: Optional[TMMatch] = None
    match_count: int


# ==================== FEEDBACK ====================

class FeedbackCreate(BaseModel):
    """Request to record feedback. Rating rules are enforced by the recorder."""
    user_id: int
    action: FeedbackAction
    rating: Optional[int] = None
    project_id: Optional[int] = None
    comment: Optional[str] = None


class FeedbackEvent(BaseModel):
    """An immutable feedback fact."""
    id: int
    segment_id: int
    user_id: int
    action: FeedbackAction
    rating: Optional[int] = None
    comment: Optional[str] = None
    project_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ==================== VERSIONS ====================

class VersionCreate(BaseModel):
    """Request to append a version, or to revise a segment."""
    source_text: str = Field(..., min_length=1)
    target_text: str = Field(..., min_length=1)
    changed_by: int
    change_reason: Optional[str] = None


class VersionRecord(BaseModel):
    """A snapshot of a segment's content in its edit history."""
    id: int
    segment_id: int
    source_text: str
    target_text: str
    changed_by: int
    change_reason: Optional[str] = None
    version: int = Field(..., ge=1)
    created_at: datetime

    class Config:
        from_attributes = True


class RevisionResult(BaseModel):
    """Result of revising a segment: new state plus the ledger entry."""
    segment: Segment
    version: VersionRecord


# ==================== STATS ====================

class TMStats(BaseModel):
    """TM corpus and feedback statistics."""
    total_segments: int
    language_pairs: List[str]
    total_usage: int
    rated_segments: int
    feedback_by_action: Dict[str, int]
    version_records: int
    top_segments: List[Segment]
