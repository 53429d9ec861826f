"""
TM Matcher
Rank stored segments against a source fragment by edit-distance similarity
plus contextual boosts.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import InvalidArgumentError
from .repository import SegmentStore, get_segment_store
from .schemas import Segment, TMMatch
from .scorer import score, score_upper_bound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextBoosts:
    """Additive bonuses for candidates sharing the query's context."""
    event: int = 10
    topic: int = 10
    translator: int = 5

    def total(
        self,
        segment: Segment,
        event: Optional[str] = None,
        topic: Optional[str] = None,
        translator_id: Optional[int] = None,
    ) -> int:
        """Sum of the boosts that apply to this segment."""
        boost = 0
        if event is not None and segment.event == event:
            boost += self.event
        if topic is not None and segment.topic == topic:
            boost += self.topic
        if translator_id is not None and segment.translated_by == translator_id:
            boost += self.translator
        return boost


def rank_key(match: TMMatch):
    """Sort key: score, then usage, then recency, then id (all descending)."""
    return (
        match.match_score,
        match.segment.usage_count,
        match.segment.created_at,
        match.segment.id,
    )


class TMMatcher:
    """
    Translation Memory Matcher.

    Candidates are every segment of the language pair. Each is scored against the query,
    boosted by shared context, capped at 100, cut at the threshold
    (inclusive), ranked and truncated. Read-only: a search can be abandoned
    at any point without side effects.
    """

    def __init__(
        self,
        store: Optional[SegmentStore] = None,
        similarity_threshold: Optional[int] = None,
        boosts: Optional[ContextBoosts] = None,
        default_limit: Optional[int] = None,
        max_candidates: Optional[int] = None,
        max_text_length: Optional[int] = None,
    ):
        """
        Initialize matcher.

        Args:
            store: Segment store to search (global store by default)
            similarity_threshold: Default minimum match score (0-100)
            boosts: Context boost amounts
            default_limit: Default number of results
            max_candidates: Upper bound on candidates scored per search
            max_text_length: Longest query accepted, in characters
        """
        from config.settings import settings

        self.store = store or get_segment_store()
        self.similarity_threshold = (
            similarity_threshold if similarity_threshold is not None
            else settings.tm_similarity_threshold
        )
        self.boosts = boosts or ContextBoosts(
            event=settings.tm_event_boost,
            topic=settings.tm_topic_boost,
            translator=settings.tm_translator_boost,
        )
        self.default_limit = default_limit or settings.tm_search_limit
        self.max_candidates = max_candidates or settings.tm_max_candidates
        self.max_text_length = max_text_length or settings.tm_max_text_length

    def search(
        self,
        source_text: str,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        similarity_threshold: Optional[int] = None,
        event: Optional[str] = None,
        topic: Optional[str] = None,
        translator_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[TMMatch]:
        """
        Find ranked matches for source text.

        Args:
            source_text: Fragment to match (non-empty)
            source_language: Source language (store default if omitted)
            target_language: Target language (store default if omitted)
            similarity_threshold: Minimum match score, 0-100 inclusive
            event: Boost candidates from this event
            topic: Boost candidates on this topic
            translator_id: Boost candidates by this translator
            limit: Maximum matches to return (>= 1)

        Returns:
            Matches sorted by score, usage count and recency (descending).
            Empty when nothing clears the threshold.

        Raises:
            InvalidArgumentError: Empty or over-long text, threshold outside
                [0, 100] or limit below 1
        """
        if not isinstance(source_text, str) or not source_text:
            raise InvalidArgumentError("source_text is required")
        if len(source_text) > self.max_text_length:
            raise InvalidArgumentError(
                f"source_text is {len(source_text)} characters, the limit is {self.max_text_length}"
            )

        threshold = self.similarity_threshold if similarity_threshold is None else similarity_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 <= threshold <= 100:
            raise InvalidArgumentError(f"similarity_threshold must be between 0 and 100, got {threshold!r}")

        limit = self.default_limit if limit is None else limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgumentError(f"limit must be an integer >= 1, got {limit!r}")

        # Context only boosts; filtering on it would drop the matches it is meant to rescue
        candidates = self.store.find_candidates(
            source_language or self.store.source_language,
            target_language or self.store.target_language,
            max_candidates=self.max_candidates,
        )

        matches = []
        skipped = 0

        for segment in candidates:
            boost = self.boosts.total(segment, event, topic, translator_id)

            # Length difference alone can rule a candidate out
            if min(100, score_upper_bound(len(source_text), len(segment.source_text)) + boost) < threshold:
                skipped += 1
                continue

            base = score(source_text, segment.source_text)
            match_score = min(100, base + boost)

            if match_score >= threshold:
                matches.append(TMMatch(segment=segment, match_score=match_score))

        matches.sort(key=rank_key, reverse=True)

        logger.debug(
            f"TM search: {len(candidates)} candidates ({skipped} ruled out by length), "
            f"{len(matches)} above {threshold}, "
            f"returning {min(limit, len(matches))}"
        )
        return matches[:limit]

    def best_match(self, source_text: str, **kwargs) -> Optional[TMMatch]:
        """Get the top-ranked match or None."""
        kwargs["limit"] = 1
        matches = self.search(source_text, **kwargs)
        return matches[0] if matches else None

