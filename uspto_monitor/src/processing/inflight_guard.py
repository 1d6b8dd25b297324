import contextlib
import threading
from typing import Iterator, List, Set

from loguru import logger


class InFlightGuard:
    """Tracks matters that are currently being processed.

    Each matter is either idle or processing. Claiming a matter that is
    already processing fails immediately; callers are never queued.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._processing: Set[str] = set()

    def try_acquire(self, matter_id: str) -> bool:
        with self._lock:
            if matter_id in self._processing:
                return False
            self._processing.add(matter_id)
            return True

    def release(self, matter_id: str):
        with self._lock:
            self._processing.discard(matter_id)

    def is_processing(self, matter_id: str) -> bool:
        with self._lock:
            return matter_id in self._processing

    def snapshot(self) -> List[str]:
        with self._lock:
            return sorted(self._processing)

    @contextlib.contextmanager
    def hold(self, matter_id: str) -> Iterator[bool]:
        """Claim ``matter_id`` for the duration of the block.

        Yields False when another attempt holds the matter; in that case
        nothing is released on exit.
        """
        acquired = self.try_acquire(matter_id)
        if not acquired:
            logger.warning(f"[guard] matter {matter_id} already being processed; rejecting")
            yield False
            return

        try:
            yield True
        finally:
            self.release(matter_id)
