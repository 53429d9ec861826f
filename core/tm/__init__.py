"""
Translation Memory Module
Match source fragments against stored translations and learn from feedback.

Key components:
- score: Edit-distance similarity (0-100)
- SegmentStore: Segment persistence and candidate lookup
- TMMatcher: Ranked, context-boosted search
- FeedbackRecorder: Usage and rating signals
- VersionLedger: Append-only edit history
- TMService: Facade wiring all of the above
"""

from .exceptions import (
    TMError,
    InvalidArgumentError,
    SegmentNotFoundError,
    ConcurrentUpdateConflict,
)
from .scorer import score, levenshtein_distance
from .repository import SegmentStore
from .matcher import TMMatcher, ContextBoosts
from .feedback import FeedbackRecorder
from .versions import VersionLedger
from .service import TMService, get_tm_service
from .schemas import FeedbackAction, Segment, TMMatch, FeedbackEvent, VersionRecord

__all__ = [
    "TMError",
    "InvalidArgumentError",
    "SegmentNotFoundError",
    "ConcurrentUpdateConflict",
    "score",
    "levenshtein_distance",
    "SegmentStore",
    "TMMatcher",
    "ContextBoosts",
    "FeedbackRecorder",
    "VersionLedger",
    "TMService",
    "get_tm_service",
    "FeedbackAction",
    "Segment",
    "TMMatch",
    "FeedbackEvent",
    "VersionRecord",
]
