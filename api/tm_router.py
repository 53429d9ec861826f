"""
Translation Memory API Router
FastAPI endpoints for TM search, feedback and version history.

Endpoints are sync: FastAPI runs them in its threadpool, and the TM
service is safe to call from concurrent request threads.
"""
from fastapi import APIRouter, HTTPException, Query
from typing import Optional, List
import logging

from core.tm.exceptions import (
    InvalidArgumentError, SegmentNotFoundError, ConcurrentUpdateConflict,
)
from core.tm.service import get_tm_service, TMService
from core.tm.schemas import (
    Segment, SegmentCreate, SegmentUpdate, SegmentListResponse,
    SearchRequest, SearchResponse,
    FeedbackCreate, FeedbackEvent,
    VersionCreate, VersionRecord, RevisionResult,
    TMStats,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service() -> TMService:
    """Get TM service instance."""
    return get_tm_service()


def _raise_http(e: Exception):
    """Map TM errors to HTTP errors."""
    if isinstance(e, SegmentNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConcurrentUpdateConflict):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidArgumentError):
        raise HTTPException(status_code=400, detail=str(e))
    raise e


# =============================================================================
# Segment CRUD
# =============================================================================

@router.post("/segments", response_model=Segment, status_code=201)
def create_segment(data: SegmentCreate):
    """
    Add a new segment to the Translation Memory.

    - **source_text** / **target_text**: Translation pair
    - **source_language** / **target_language**: Defaults to the deployment pair
    - **event**, **topic**, **context**: Context tags used for match boosting
    - **translated_by**: Contributing user id
    """
    service = get_service()
    try:
        return service.create_segment(data)
    except InvalidArgumentError as e:
        _raise_http(e)


@router.get("/segments", response_model=SegmentListResponse)
def list_segments(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    search: Optional[str] = Query(None, description="Search source/target text"),
    source_language: Optional[str] = Query(None, description="Filter by source language"),
    target_language: Optional[str] = Query(None, description="Filter by target language"),
):
    """List segments newest first."""
    service = get_service()
    return service.list_segments(
        page=page,
        limit=limit,
        search=search,
        source_language=source_language,
        target_language=target_language,
    )


@router.get("/segments/{segment_id}", response_model=Segment)
def get_segment(segment_id: int):
    """Get a specific segment."""
    service = get_service()
    try:
        return service.get_segment(segment_id)
    except SegmentNotFoundError as e:
        _raise_http(e)


@router.patch("/segments/{segment_id}", response_model=Segment)
def update_segment(segment_id: int, data: SegmentUpdate):
    """Update segment fields (no version record; see /revise)."""
    service = get_service()
    try:
        return service.update_segment(segment_id, data)
    except (SegmentNotFoundError, InvalidArgumentError) as e:
        _raise_http(e)


@router.delete("/segments/{segment_id}")
def delete_segment(segment_id: int):
    """Delete a segment with its feedback and version history."""
    service = get_service()
    if not service.delete_segment(segment_id):
        raise HTTPException(status_code=404, detail="Segment not found")
    return {"status": "deleted", "segment_id": segment_id}


# =============================================================================
# Search
# =============================================================================

@router.post("/search", response_model=SearchResponse)
def search(data: SearchRequest):
    """
    Search the Translation Memory.

    Scores every segment of the language pair by edit-distance similarity,
    boosts shared event (+10), topic (+10) and translator (+5), and returns
    matches at or above the threshold, best first.

    - **source_text**: Text to look up
    - **similarity_threshold**: Minimum match score 0-100 (default: 70)
    - **limit**: Maximum results (default: 10)
    """
    service = get_service()
    try:
        return service.search(data)
    except InvalidArgumentError as e:
        _raise_http(e)


# =============================================================================
# Feedback
# =============================================================================

@router.post("/segments/{segment_id}/feedback", response_model=FeedbackEvent, status_code=201)
def record_feedback(segment_id: int, data: FeedbackCreate):
    """
    Record what the user did with a suggested match.

    - **action**: used, copied, rated or dismissed
    - **rating**: 1-5, required for (and only for) rated
    """
    service = get_service()
    try:
        return service.record_feedback(segment_id, data)
    except (SegmentNotFoundError, InvalidArgumentError) as e:
        _raise_http(e)


@router.get("/segments/{segment_id}/feedback", response_model=List[FeedbackEvent])
def list_feedback(segment_id: int):
    """Get feedback events for a segment, newest first."""
    service = get_service()
    try:
        return service.list_feedback(segment_id)
    except SegmentNotFoundError as e:
        _raise_http(e)


# =============================================================================
# Version History
# =============================================================================

@router.post("/segments/{segment_id}/versions", response_model=VersionRecord, status_code=201)
def record_version(segment_id: int, data: VersionCreate):
    """Append a version record to a segment's history."""
    service = get_service()
    try:
        return service.record_version(segment_id, data)
    except (SegmentNotFoundError, InvalidArgumentError, ConcurrentUpdateConflict) as e:
        _raise_http(e)


@router.get("/segments/{segment_id}/versions", response_model=List[VersionRecord])
def list_versions(
    segment_id: int,
    order: str = Query("asc", pattern="^(asc|desc)$", description="Version order"),
):
    """Get a segment's version history."""
    service = get_service()
    try:
        return service.list_versions(segment_id, descending=order == "desc")
    except SegmentNotFoundError as e:
        _raise_http(e)


@router.post("/segments/{segment_id}/revise", response_model=RevisionResult)
def revise_segment(segment_id: int, data: VersionCreate):
    """
    Edit a segment's texts and record the edit as a new version.
    """
    service = get_service()
    try:
        return service.revise_segment(segment_id, data)
    except (SegmentNotFoundError, InvalidArgumentError, ConcurrentUpdateConflict) as e:
        _raise_http(e)


# =============================================================================
# Statistics
# =============================================================================

@router.get("/stats", response_model=TMStats)
def get_stats(top: int = Query(5, ge=0, le=50, description="Most used segments to include")):
    """Get Translation Memory statistics."""
    service = get_service()
    return service.stats(top_n=top)
