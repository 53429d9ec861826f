"""
Translation Memory Repository
Segment Store: database access layer for TM segments.
"""
import logging
from pathlib import Path
from typing import Optional, List, Tuple, Union

from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import sessionmaker, Session

from .exceptions import InvalidArgumentError, SegmentNotFoundError
from .models import TMSegment, TMFeedback, TMVersion, get_engine, create_tables, utcnow
from .schemas import Segment, SegmentCreate, SegmentUpdate, TMStats

logger = logging.getLogger(__name__)

# Fields owned by the store or by feedback; never set through update()
READ_ONLY_FIELDS = frozenset({
    "id", "usage_count", "avg_rating", "rating_count", "created_at", "updated_at",
})

REQUIRED_FIELDS = frozenset({
    "source_text", "target_text", "source_language", "target_language",
})


def to_segment(row: TMSegment) -> Segment:
    """Hydrate an ORM row into a detached domain entity."""
    return Segment.model_validate(row.to_dict())


class SegmentStore:
    """
    Store for TM segments.

    Owns segment identity and lifecycle. Everything it returns is a
    detached ``Segment`` snapshot; other components refer to segments by id.
    """

    def __init__(
        self,
        db_path: Union[str, Path, None] = None,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize store with database path and default language pair."""
        from config.settings import settings

        self.db_path = str(db_path or settings.tm_db_path)
        default_source, default_target = settings.get_default_language_pair()
        self.source_language = source_language or default_source
        self.target_language = target_language or default_target
        self.timeout = timeout if timeout is not None else settings.tm_db_timeout
        self._engine = None
        self._session_factory = None

    @property
    def engine(self):
        """Get or create SQLAlchemy engine."""
        if self._engine is None:
            self._engine = create_tables(get_engine(self.db_path, timeout=self.timeout))
        return self._engine

    @property
    def session_factory(self):
        """Get session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.session_factory()

    def get_row(self, session: Session, segment_id: int) -> TMSegment:
        """Load a segment row inside a caller's session or raise NotFound."""
        row = session.get(TMSegment, segment_id)
        if row is None:
            raise SegmentNotFoundError(segment_id)
        return row

    def dispose(self):
        """Close pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    # ==================== CRUD ====================

    def insert(self, data: Union[SegmentCreate, dict]) -> Segment:
        """Insert a new segment with a fresh id, zero usage and no rating."""
        if isinstance(data, dict):
            try:
                data = SegmentCreate(**data)
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid segment: {e}") from e
        if not data.source_text.strip() or not data.target_text.strip():
            raise InvalidArgumentError("source_text and target_text must not be blank")

        now = utcnow()
        with self.get_session() as session:
            row = TMSegment(
                source_text=data.source_text,
                target_text=data.target_text,
                source_language=data.source_language or self.source_language,
                target_language=data.target_language or self.target_language,
                context=data.context,
                event=data.event,
                topic=data.topic,
                translated_by=data.translated_by,
                content_id=data.content_id,
                project_id=data.project_id,
                extra=data.metadata,
                usage_count=0,
                avg_rating=None,
                rating_count=0,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            logger.info(f"Created TM segment {row.id} ({row.source_language}->{row.target_language})")
            return to_segment(row)

    def get(self, segment_id: int) -> Optional[Segment]:
        """Get segment by ID."""
        with self.get_session() as session:
            row = session.get(TMSegment, segment_id)
            return to_segment(row) if row else None

    def require(self, segment_id: int) -> Segment:
        """Get segment by ID or raise SegmentNotFoundError."""
        segment = self.get(segment_id)
        if segment is None:
            raise SegmentNotFoundError(segment_id)
        return segment

    def update(self, segment_id: int, data: Union[SegmentUpdate, dict]) -> Segment:
        """Merge the given fields into a segment and refresh updated_at."""
        if isinstance(data, dict):
            read_only = READ_ONLY_FIELDS.intersection(data)
            if read_only:
                raise InvalidArgumentError(f"Fields cannot be updated: {', '.join(sorted(read_only))}")
            try:
                data = SegmentUpdate(**data)
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid segment update: {e}") from e

        # Explicit nulls clear optional fields
        fields = data.model_dump(exclude_unset=True)
        for key in REQUIRED_FIELDS.intersection(fields):
            if fields[key] is None:
                raise InvalidArgumentError(f"{key} cannot be cleared")
        for key in ("source_text", "target_text"):
            if key in fields and not fields[key].strip():
                raise InvalidArgumentError(f"{key} must not be blank")
        if "metadata" in fields:
            fields["extra"] = fields.pop("metadata")

        with self.get_session() as session:
            row = self.get_row(session, segment_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
            return to_segment(row)

    def delete(self, segment_id: int) -> bool:
        """Delete a segment together with its feedback and version history."""
        with self.get_session() as session:
            row = session.get(TMSegment, segment_id)
            if row is None:
                return False

            session.query(TMFeedback).filter(TMFeedback.segment_id == segment_id).delete()
            session.query(TMVersion).filter(TMVersion.segment_id == segment_id).delete()
            session.delete(row)
            session.commit()
            logger.info(f"Deleted TM segment {segment_id}")
            return True

    def list(
        self,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> Tuple[List[Segment], int]:
        """
        List segments newest first with pagination.

        Returns:
            Tuple of (segments, total_count)
        """
        if page < 1 or limit < 1:
            raise InvalidArgumentError("page and limit must be >= 1")

        with self.get_session() as session:
            query = session.query(TMSegment)

            if source_language:
                query = query.filter(TMSegment.source_language == source_language)
            if target_language:
                query = query.filter(TMSegment.target_language == target_language)
            if search:
                query = query.filter(or_(
                    TMSegment.source_text.ilike(f"%{search}%"),
                    TMSegment.target_text.ilike(f"%{search}%"),
                ))

            total = query.count()
            rows = (
                query.order_by(TMSegment.created_at.desc(), TMSegment.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return [to_segment(r) for r in rows], total

    # ==================== MATCHING SUPPORT ====================

    def find_candidates(
        self,
        source_language: str,
        target_language: str,
        event: Optional[str] = None,
        topic: Optional[str] = None,
        translator_id: Optional[int] = None,
        max_candidates: Optional[int] = None,
    ) -> List[Segment]:
        """
        Get all segments matching the hard filters.

        The language pair is mandatory; event, topic and translator are
        optional exact-match filters. This is a pre-filter, not a ranking.
        With ``max_candidates`` the most used, then most recent, segments
        are kept.
        """
        with self.get_session() as session:
            query = session.query(TMSegment).filter(
                TMSegment.source_language == source_language,
                TMSegment.target_language == target_language,
            )

            if event is not None:
                query = query.filter(TMSegment.event == event)
            if topic is not None:
                query = query.filter(TMSegment.topic == topic)
            if translator_id is not None:
                query = query.filter(TMSegment.translated_by == translator_id)

            if max_candidates is not None:
                query = query.order_by(
                    TMSegment.usage_count.desc(),
                    TMSegment.created_at.desc(),
                ).limit(max_candidates)

            return [to_segment(r) for r in query.all()]

    # ==================== STATS ====================

    def stats(self, top_n: int = 5) -> TMStats:
        """Get corpus and feedback statistics."""
        with self.get_session() as session:
            total, total_usage = session.query(
                func.count(TMSegment.id),
                func.sum(TMSegment.usage_count),
            ).one()

            pairs = session.query(
                TMSegment.source_language, TMSegment.target_language
            ).distinct().all()

            rated = session.query(func.count(TMSegment.id)).filter(
                TMSegment.avg_rating.isnot(None)
            ).scalar()

            by_action = dict(
                session.query(TMFeedback.action, func.count(TMFeedback.id))
                .group_by(TMFeedback.action)
                .all()
            )

            versions = session.query(func.count(TMVersion.id)).scalar()

            top = (
                session.query(TMSegment)
                .order_by(TMSegment.usage_count.desc(), TMSegment.created_at.desc())
                .limit(top_n)
                .all()
            )

            return TMStats(
                total_segments=total or 0,
                language_pairs=sorted(f"{s}-{t}" for s, t in pairs),
                total_usage=total_usage or 0,
                rated_segments=rated or 0,
                feedback_by_action=by_action,
                version_records=versions or 0,
                top_segments=[to_segment(r) for r in top],
            )


# Global instance
_store: Optional[SegmentStore] = None


def get_segment_store() -> SegmentStore:
    """Get or create the global segment store."""
    global _store
    if _store is None:
        _store = SegmentStore()
    return _store
