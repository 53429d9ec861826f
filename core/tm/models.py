"""
Translation Memory Database Models
SQLAlchemy models for TM segments, feedback events and version records.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import (
    String, Text, Integer, Float, DateTime, JSON,
    Index, UniqueConstraint, create_engine, event,
)
from sqlalchemy.orm import Mapped, mapped_column, declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite DateTime columns drop tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TMSegment(Base):
    """
    Translation Memory Segment - a reusable source/target text pair.

    ``usage_count`` and ``avg_rating`` are only ever changed by feedback,
    through single UPDATE statements.
    """

    __tablename__ = "tm_segments"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Text content
    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    target_text: Mapped[str] = mapped_column(Text, nullable=False)

    # Language pair
    source_language: Mapped[str] = mapped_column(String(10), nullable=False)
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)

    # Context tags used for boosting
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    topic: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Opaque references into the surrounding system
    translated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    content_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    extra: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    # Usage tracking
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avg_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Indexes
    __table_args__ = (
        Index("idx_segment_lang_pair", "source_language", "target_language"),
        Index("idx_segment_event", "event"),
        Index("idx_segment_topic", "topic"),
        Index("idx_segment_usage", "usage_count", "created_at"),
    )

    def __repr__(self):
        src = self.source_text[:30] + "..." if len(self.source_text) > 30 else self.source_text
        return f"<Segment {self.id} {src}>"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "source_text": self.source_text,
            "target_text": self.target_text,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "context": self.context,
            "event": self.event,
            "topic": self.topic,
            "translated_by": self.translated_by,
            "content_id": self.content_id,
            "project_id": self.project_id,
            "metadata": self.extra,
            "usage_count": self.usage_count,
            "avg_rating": self.avg_rating,
            "rating_count": self.rating_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class TMFeedback(Base):
    """
    Feedback event - an immutable fact about a user's interaction
    with a suggested segment.
    """

    __tablename__ = "tm_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    segment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # used, dismissed, rated, copied
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-5, rated only
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_feedback_segment", "segment_id", "created_at"),
    )

    def __repr__(self):
        return f"<Feedback {self.action} segment={self.segment_id}>"


class TMVersion(Base):
    """
    Version record - append-only snapshot of a segment's content.
    """

    __tablename__ = "tm_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    segment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    target_text: Mapped[str] = mapped_column(Text, nullable=False)
    changed_by: Mapped[int] = mapped_column(Integer, nullable=False)
    change_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("segment_id", "version", name="uq_version_segment_version"),
    )

    def __repr__(self):
        return f"<Version {self.version} segment={self.segment_id}>"


# ==================== DATABASE SETUP ====================

def get_engine(db_path: str, timeout: float = 30.0):
    """Create SQLAlchemy engine usable from multiple request threads."""
    from pathlib import Path
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": timeout},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_connection, connection_record):
        """WAL lets searches read while feedback writes commit."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine


def create_tables(engine):
    """Create all TM tables."""
    Base.metadata.create_all(engine)
    return engine
