"""
Translation Memory Service
Business logic layer wiring the store, matcher, feedback recorder and
version ledger over one database.
"""
import logging
from pathlib import Path
from typing import Optional, List, Union

from .feedback import FeedbackRecorder
from .locks import SegmentLockRegistry
from .matcher import TMMatcher
from .repository import SegmentStore
from .schemas import (
    Segment, SegmentCreate, SegmentUpdate, SegmentListResponse,
    SearchRequest, SearchResponse,
    FeedbackCreate, FeedbackEvent,
    VersionCreate, VersionRecord, RevisionResult,
    TMStats,
)
from .versions import VersionLedger

logger = logging.getLogger(__name__)


class TMService:
    """
    Service layer for Translation Memory operations.

    Safe to share between request threads: every call opens its own
    database session, and feedback/version writes share one per-segment
    lock registry.
    """

    def __init__(self, db_path: Union[str, Path, None] = None, **store_options):
        """Initialize service (settings database by default)."""
        self.store = SegmentStore(db_path, **store_options)
        self.locks = SegmentLockRegistry()
        self.matcher = TMMatcher(self.store)
        self.feedback = FeedbackRecorder(self.store, self.locks)
        self.versions = VersionLedger(self.store, self.locks)

    # ==================== SEGMENT OPERATIONS ====================

    def create_segment(self, data: SegmentCreate) -> Segment:
        """Add a segment to the TM."""
        return self.store.insert(data)

    def get_segment(self, segment_id: int) -> Segment:
        """Get a segment (raises SegmentNotFoundError)."""
        return self.store.require(segment_id)

    def list_segments(
        self,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> SegmentListResponse:
        """List segments with pagination."""
        segments, total = self.store.list(
            page=page,
            limit=limit,
            search=search,
            source_language=source_language,
            target_language=target_language,
        )

        pages = (total + limit - 1) // limit

        return SegmentListResponse(
            segments=segments,
            total=total,
            page=page,
            limit=limit,
            pages=pages,
        )

    def update_segment(self, segment_id: int, data: SegmentUpdate) -> Segment:
        """Update segment fields without touching the version ledger."""
        return self.store.update(segment_id, data)

    def delete_segment(self, segment_id: int) -> bool:
        """Delete a segment and its history."""
        deleted = self.store.delete(segment_id)
        if deleted:
            self.locks.discard(segment_id)
        return deleted

    # ==================== SEARCH ====================

    def search(self, request: SearchRequest) -> SearchResponse:
        """
        Search the TM for a source fragment.

        Returns matching segments ranked by match score.
        """
        matches = self.matcher.search(
            request.source_text,
            source_language=request.source_language,
            target_language=request.target_language,
            similarity_threshold=request.similarity_threshold,
            event=request.event,
            topic=request.topic,
            translator_id=request.translator_id,
            limit=request.limit,
        )

        return SearchResponse(
            matches=matches,
            best_match=matches[0] if matches else None,
            match_count=len(matches),
        )

    # ==================== FEEDBACK ====================

    def record_feedback(self, segment_id: int, data: FeedbackCreate) -> FeedbackEvent:
        """Record user feedback on a suggested segment."""
        return self.feedback.record(
            segment_id,
            user_id=data.user_id,
            action=data.action,
            rating=data.rating,
            project_id=data.project_id,
            comment=data.comment,
        )

    def list_feedback(self, segment_id: int) -> List[FeedbackEvent]:
        """Get feedback for a segment, newest first."""
        return self.feedback.list_for_segment(segment_id)

    # ==================== VERSIONS ====================

    def record_version(self, segment_id: int, data: VersionCreate) -> VersionRecord:
        """Append a version record without editing the segment."""
        return self.versions.record_version(
            segment_id,
            data.source_text,
            data.target_text,
            changed_by=data.changed_by,
            change_reason=data.change_reason,
        )

    def list_versions(self, segment_id: int, descending: bool = False) -> List[VersionRecord]:
        """Get a segment's edit history."""
        return self.versions.list_versions(segment_id, descending=descending)

    def revise_segment(self, segment_id: int, data: VersionCreate) -> RevisionResult:
        """
        Edit a segment's texts and record the edit in the ledger.

        Used by the bilingual editor when a translator corrects a TM entry.
        """
        segment, version = self.versions.revise_segment(
            segment_id,
            data.source_text,
            data.target_text,
            changed_by=data.changed_by,
            change_reason=data.change_reason,
        )
        return RevisionResult(segment=segment, version=version)

    # ==================== STATS ====================

    def stats(self, top_n: int = 5) -> TMStats:
        """Get TM statistics."""
        return self.store.stats(top_n=top_n)


# Global instance
_service: Optional[TMService] = None


def get_tm_service() -> TMService:
    """Get or create the global service instance."""
    global _service
    if _service is None:
        _service = TMService()
    return _service
