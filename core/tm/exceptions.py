"""
Translation Memory Exceptions
"""


class TMError(Exception):
    """Base exception for Translation Memory"""
    pass


class InvalidArgumentError(TMError, ValueError):
    """Malformed threshold, missing text, malformed rating, etc."""
    pass


class SegmentNotFoundError(TMError, LookupError):
    """Operation targets a segment that does not exist"""
    def __init__(self, segment_id: int):
        self.segment_id = segment_id
        super().__init__(f"TM segment {segment_id} not found")


class ConcurrentUpdateConflict(TMError):
    """Storage could not serialize a per-segment update after retrying"""
    def __init__(self, segment_id: int, attempts: int):
        self.segment_id = segment_id
        self.attempts = attempts
        super().__init__(
            f"Concurrent update conflict on TM segment {segment_id} after {attempts} attempts"
        )
