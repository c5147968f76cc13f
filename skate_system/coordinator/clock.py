"""
Central Clock
Shared monotonic time base for motion samples and location fixes
"""

import threading
import logging
import time
from datetime import datetime, timezone, timedelta
from typing import Optional

logger = logging.getLogger(__name__)


class CentralClock:
    """
    Thread-safe monotonic clock shared by every sample source.

    Guarantees:
    - Seconds from time.monotonic(), so wall-clock jumps never reorder samples
    - Strictly increasing readings (no duplicates across threads)
    - A wall-clock anchor for turning readings back into datetimes
    """

    RESOLUTION = 1e-6  # seconds

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[float] = None
        self._call_count = 0

        self._anchor_mono = time.monotonic()
        self._anchor_wall = datetime.now(timezone.utc)

        logger.info("Central clock initialized")

    def now(self) -> float:
        """
        Current monotonic reading in seconds.

        Returns:
            float: strictly greater than any previous reading
        """
        with self._lock:
            current = time.monotonic()

            if self._last is not None and current <= self._last:
                current = self._last + self.RESOLUTION
                logger.debug("Adjusted reading to maintain monotonic sequence")

            self._last = current
            self._call_count += 1
            return current

    def to_datetime(self, reading: float) -> datetime:
        """Convert a reading from now() into a UTC datetime."""
        return self._anchor_wall + timedelta(seconds=reading - self._anchor_mono)

    def reset(self):
        """Reset clock state (useful for testing)"""
        with self._lock:
            self._last = None
            self._call_count = 0
            logger.info("Central clock reset")

    def get_stats(self) -> dict:
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_reading': self._last,
                'anchor': self._anchor_wall.isoformat(),
            }

    def __repr__(self):
        return f"<CentralClock(calls={self._call_count})>"
