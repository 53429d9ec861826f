"""
TM Feedback Recorder
Record user interactions with suggested matches and fold them into the
segment's ranking signals.
"""
import logging
from typing import List, Optional, Union

from sqlalchemy import update, func
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import InvalidArgumentError, SegmentNotFoundError
from .locks import SegmentLockRegistry
from .models import TMSegment, TMFeedback, utcnow
from .repository import SegmentStore, get_segment_store
from .schemas import FeedbackAction, FeedbackEvent

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_feedback(action: Union[FeedbackAction, str], rating: Optional[int]) -> FeedbackAction:
    """Check the action/rating combination and return the parsed action."""
    try:
        action = FeedbackAction(action)
    except ValueError:
        allowed = ", ".join(a.value for a in FeedbackAction)
        raise InvalidArgumentError(f"Unknown feedback action {action!r} (expected one of: {allowed})")

    if action == FeedbackAction.RATED:
        if rating is None:
            raise InvalidArgumentError("rating is required for a 'rated' action")
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidArgumentError(f"rating must be an integer from {MIN_RATING} to {MAX_RATING}, got {rating!r}")
    elif rating is not None:
        raise InvalidArgumentError(f"rating is only allowed for a 'rated' action, not '{action.value}'")

    return action


class FeedbackRecorder:
    """
    Records feedback events and mutates segment statistics.

    - used: usage_count + 1
    - rated: rating folded into avg_rating
    - copied, dismissed: analytics only

    The event insert and the segment update commit together or not at all.
    Writes to one segment are serialized; different segments proceed in
    parallel. Counters are updated with single UPDATE expressions so no
    increment is lost even across processes.
    """

    def __init__(
        self,
        store: Optional[SegmentStore] = None,
        locks: Optional[SegmentLockRegistry] = None,
        rating_window: Optional[int] = None,
    ):
        """
        Initialize recorder.

        Args:
            store: Segment store (global store by default)
            locks: Per-segment lock registry, shared with the version ledger
            rating_window: 0 for a lifetime mean, N for the mean of the
                N most recent ratings
        """
        from config.settings import settings

        self.store = store or get_segment_store()
        self.locks = locks if locks is not None else SegmentLockRegistry()
        self.rating_window = settings.tm_rating_window if rating_window is None else rating_window
        if self.rating_window < 0:
            raise InvalidArgumentError("rating_window must be >= 0")

    def record(
        self,
        segment_id: int,
        user_id: int,
        action: Union[FeedbackAction, str],
        rating: Optional[int] = None,
        project_id: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> FeedbackEvent:
        """
        Record one feedback event.

        Raises:
            InvalidArgumentError: Unknown action or invalid rating combination
            SegmentNotFoundError: Segment does not exist
        """
        action = validate_feedback(action, rating)

        with self.locks.hold(segment_id):
            with self.store.get_session() as session:
                try:
                    self.store.get_row(session, segment_id)

                    now = utcnow()
                    feedback = TMFeedback(
                        segment_id=segment_id,
                        user_id=user_id,
                        action=action.value,
                        rating=rating,
                        comment=comment,
                        project_id=project_id,
                        created_at=now,
                    )
                    session.add(feedback)
                    session.flush()

                    if action == FeedbackAction.USED:
                        self._apply(session, segment_id, {
                            TMSegment.usage_count: TMSegment.usage_count + 1,
                            TMSegment.updated_at: now,
                        })
                    elif action == FeedbackAction.RATED:
                        self._apply(session, segment_id, self._rating_values(session, segment_id, rating, now))

                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    logger.error(f"Failed to record '{action.value}' feedback for segment {segment_id}")
                    raise
                except SegmentNotFoundError:
                    session.rollback()
                    raise

                logger.debug(f"Recorded '{action.value}' feedback for segment {segment_id} by user {user_id}")
                return FeedbackEvent.model_validate(feedback)

    def _apply(self, session, segment_id: int, values: dict) -> None:
        """Run one UPDATE on the segment; NotFound if it vanished meanwhile."""
        result = session.execute(
            update(TMSegment)
            .where(TMSegment.id == segment_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SegmentNotFoundError(segment_id)

    def _rating_values(self, session, segment_id: int, rating: int, now) -> dict:
        """UPDATE values folding a new rating into avg_rating."""
        if self.rating_window == 0:
            # Running mean; the right-hand side sees the pre-update row
            return {
                TMSegment.avg_rating: (
                    func.coalesce(TMSegment.avg_rating, 0.0) * TMSegment.rating_count + rating
                ) / (TMSegment.rating_count + 1),
                TMSegment.rating_count: TMSegment.rating_count + 1,
                TMSegment.updated_at: now,
            }

        # The new event is already flushed, so it is part of the window
        recent = (
            session.query(TMFeedback.rating)
            .filter(
                TMFeedback.segment_id == segment_id,
                TMFeedback.action == FeedbackAction.RATED.value,
            )
            .order_by(TMFeedback.created_at.desc(), TMFeedback.id.desc())
            .limit(self.rating_window)
            .all()
        )
        ratings = [r for (r,) in recent]
        return {
            TMSegment.avg_rating: sum(ratings) / len(ratings),
            TMSegment.rating_count: TMSegment.rating_count + 1,
            TMSegment.updated_at: now,
        }

    def list_for_segment(
        self,
        segment_id: int,
        action: Optional[Union[FeedbackAction, str]] = None,
    ) -> List[FeedbackEvent]:
        """Get a segment's feedback events, newest first."""
        if action is not None:
            try:
                action = FeedbackAction(action)
            except ValueError:
                raise InvalidArgumentError(f"Unknown feedback action {action!r}")

        with self.store.get_session() as session:
            self.store.get_row(session, segment_id)

            query = session.query(TMFeedback).filter(TMFeedback.segment_id == segment_id)
            if action is not None:
                query = query.filter(TMFeedback.action == action.value)

            rows = query.order_by(TMFeedback.created_at.desc(), TMFeedback.id.desc()).all()
            return [FeedbackEvent.model_validate(r) for r in rows]

