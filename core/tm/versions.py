"""
TM Version Ledger
Append-only edit history of a segment's content. Not used by matching.
"""
import logging
from typing import Callable, List, Optional, Tuple, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import ConcurrentUpdateConflict, InvalidArgumentError, SegmentNotFoundError
from .locks import SegmentLockRegistry
from .models import TMVersion, utcnow
from .repository import SegmentStore, get_segment_store, to_segment
from .schemas import Segment, VersionRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require_text(name: str, value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} must be a non-empty string")


class VersionLedger:
    """
    Version ledger for TM segments.

    Versions of a segment run 1, 2, 3, ... with no gaps or repeats. The
    next number is read and written under the segment's lock; the unique
    (segment_id, version) constraint catches writers outside this process,
    in which case the append is retried.
    """

    def __init__(
        self,
        store: Optional[SegmentStore] = None,
        locks: Optional[SegmentLockRegistry] = None,
        retry_attempts: Optional[int] = None,
    ):
        from config.settings import settings

        self.store = store or get_segment_store()
        self.locks = locks if locks is not None else SegmentLockRegistry()
        self.retry_attempts = retry_attempts or settings.tm_version_retry_attempts

    def record_version(
        self,
        segment_id: int,
        new_source_text: str,
        new_target_text: str,
        changed_by: int,
        change_reason: Optional[str] = None,
    ) -> VersionRecord:
        """
        Append a version record for a segment.

        Raises:
            InvalidArgumentError: Empty texts or missing author
            SegmentNotFoundError: Segment does not exist
            ConcurrentUpdateConflict: Version number kept colliding
        """
        _require_text("new_source_text", new_source_text)
        _require_text("new_target_text", new_target_text)
        if changed_by is None:
            raise InvalidArgumentError("changed_by is required")

        def append(session: Session) -> VersionRecord:
            self.store.get_row(session, segment_id)
            record = self._append(session, segment_id, new_source_text, new_target_text,
                                  changed_by, change_reason)
            session.commit()
            return VersionRecord.model_validate(record)

        record = self._run(segment_id, append)
        logger.info(f"Recorded version {record.version} of TM segment {segment_id}")
        return record

    def revise_segment(
        self,
        segment_id: int,
        new_source_text: str,
        new_target_text: str,
        changed_by: int,
        change_reason: Optional[str] = None,
    ) -> Tuple[Segment, VersionRecord]:
        """
        Edit a segment's texts and append the matching version record
        in one transaction.
        """
        _require_text("new_source_text", new_source_text)
        _require_text("new_target_text", new_target_text)
        if changed_by is None:
            raise InvalidArgumentError("changed_by is required")

        def revise(session: Session) -> Tuple[Segment, VersionRecord]:
            row = self.store.get_row(session, segment_id)
            row.source_text = new_source_text
            row.target_text = new_target_text
            row.updated_at = utcnow()
            record = self._append(session, segment_id, new_source_text, new_target_text,
                                  changed_by, change_reason)
            session.commit()
            return to_segment(row), VersionRecord.model_validate(record)

        segment, record = self._run(segment_id, revise)
        logger.info(f"Revised TM segment {segment_id} (version {record.version})")
        return segment, record

    def list_versions(self, segment_id: int, descending: bool = False) -> List[VersionRecord]:
        """Get a segment's version records ordered by version number."""
        with self.store.get_session() as session:
            self.store.get_row(session, segment_id)

            order = TMVersion.version.desc() if descending else TMVersion.version.asc()
            rows = (
                session.query(TMVersion)
                .filter(TMVersion.segment_id == segment_id)
                .order_by(order)
                .all()
            )
            return [VersionRecord.model_validate(r) for r in rows]

    def latest_version(self, segment_id: int) -> int:
        """Get the highest version number of a segment (0 if none)."""
        with self.store.get_session() as session:
            self.store.get_row(session, segment_id)
            return self._current_version(session, segment_id)

    # ==================== INTERNALS ====================

    def _current_version(self, session: Session, segment_id: int) -> int:
        return session.query(func.max(TMVersion.version)).filter(
            TMVersion.segment_id == segment_id
        ).scalar() or 0

    def _append(
        self,
        session: Session,
        segment_id: int,
        source_text: str,
        target_text: str,
        changed_by: int,
        change_reason: Optional[str],
    ) -> TMVersion:
        record = TMVersion(
            segment_id=segment_id,
            source_text=source_text,
            target_text=target_text,
            changed_by=changed_by,
            change_reason=change_reason,
            version=self._current_version(session, segment_id) + 1,
            created_at=utcnow(),
        )
        session.add(record)
        session.flush()
        return record

    def _run(self, segment_id: int, operation: Callable[[Session], T]) -> T:
        """Run a write under the segment lock, retrying version collisions."""
        for attempt in range(1, self.retry_attempts + 1):
            with self.locks.hold(segment_id):
                with self.store.get_session() as session:
                    try:
                        return operation(session)
                    except IntegrityError:
                        session.rollback()
                        logger.warning(
                            f"Version number collision on TM segment {segment_id} "
                            f"(attempt {attempt}/{self.retry_attempts})"
                        )
                    except (SQLAlchemyError, SegmentNotFoundError):
                        session.rollback()
                        raise

        raise ConcurrentUpdateConflict(segment_id, self.retry_attempts)

