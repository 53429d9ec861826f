"""
Per-segment locks.

Feedback and version writes do read-modify-write on one segment; they are
serialized per segment id while writes to different segments run in parallel.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from .exceptions import SegmentNotFoundError


class SegmentLockRegistry:
    """
    Hands out one ``threading.Lock`` per segment id.

    Usage::

        locks = SegmentLockRegistry()
        with locks.hold(segment_id):
            ...  # read-modify-write on that segment
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def get(self, segment_id: int) -> threading.Lock:
        """Get (or create) the lock for a segment."""
        with self._lock:
            lock = self._locks.get(segment_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[segment_id] = lock
            return lock

    @contextmanager
    def hold(self, segment_id: int) -> Iterator[None]:
        """
        Hold the segment's lock for the duration of the block.

        The entry is dropped again when the block finds no such segment,
        so lookups of unknown ids leave the registry as it was.
        """
        lock = self.get(segment_id)
        try:
            with lock:
                yield
        except SegmentNotFoundError:
            self.discard(segment_id)
            raise

    def discard(self, segment_id: int) -> None:
        """Forget the lock of a deleted segment."""
        with self._lock:
            self._locks.pop(segment_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._locks)
