"""
Per-recipient send limiting.

Fixed-window counters kept in process memory. Scaling the caller out
horizontally weakens the guarantee; a shared counter store can replace the
map behind the same ``allow()`` interface.
"""

import threading
import zlib
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Dict, List, Optional

import structlog

from .clock import Clock, to_epoch_ms, utc_now
from .exceptions import InvalidRecipientError
from .masking import mask_email

if TYPE_CHECKING:
    from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

DEFAULT_LIMIT_PER_HOUR = 100
DEFAULT_WINDOW = timedelta(hours=1)


@dataclass
class RateWindowEntry:
    """Send count for one recipient in the current window."""

    count: int
    window_reset_at_ms: int


class RateLimiter:
    """
    Fixed-window rate limiter keyed by recipient.

    The window restarts on the first send after it lapses rather than
    sliding. Access is serialized per recipient through a small set of
    lock stripes.
    """

    def __init__(
        self,
        limit_per_hour: int = DEFAULT_LIMIT_PER_HOUR,
        window: timedelta = DEFAULT_WINDOW,
        lock_shards: int = 16,
        clock: Clock = utc_now,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        if limit_per_hour < 1:
            raise ValueError("limit_per_hour must be at least 1")
        if lock_shards < 1:
            raise ValueError("lock_shards must be at least 1")
        self.limit_per_hour = limit_per_hour
        self.window_ms = int(window.total_seconds() * 1000)
        self.clock = clock
        self.metrics = metrics
        self.entries: Dict[str, RateWindowEntry] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(lock_shards)]

    def _lock_for(self, recipient: str) -> threading.Lock:
        index = zlib.crc32(recipient.encode("utf-8")) % len(self._locks)
        return self._locks[index]

    def allow(
        self,
        recipient: str,
        limit_per_hour: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Record a send attempt for ``recipient``.

        Returns True and counts the send if the recipient is under the limit,
        False (leaving state untouched) otherwise.
        """
        if not recipient:
            raise InvalidRecipientError()

        limit = limit_per_hour if limit_per_hour is not None else self.limit_per_hour
        now_ms = to_epoch_ms(now or self.clock())

        with self._lock_for(recipient):
            entry = self.entries.get(recipient)

            if entry is None or now_ms > entry.window_reset_at_ms:
                self.entries[recipient] = RateWindowEntry(
                    count=1,
                    window_reset_at_ms=now_ms + self.window_ms,
                )
                return True

            if entry.count < limit:
                entry.count += 1
                return True

            count = entry.count

        logger.info(
            "Rate limit exceeded",
            recipient=mask_email(recipient),
            count=count,
            limit=limit,
        )
        return False

    def get_entry(self, recipient: str) -> Optional[RateWindowEntry]:
        """Snapshot of the current window for ``recipient``, if any."""
        with self._lock_for(recipient):
            entry = self.entries.get(recipient)
            return replace(entry) if entry is not None else None

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Remove entries whose window has lapsed. Returns the number removed."""
        now_ms = to_epoch_ms(now or self.clock())
        removed = 0

        for recipient in self._snapshot_recipients():
            with self._lock_for(recipient):
                entry = self.entries.get(recipient)
                if entry is not None and now_ms > entry.window_reset_at_ms:
                    del self.entries[recipient]
                    removed += 1

        if self.metrics:
            self.metrics.record_rate_limit_sweep(removed, len(self.entries))

        logger.debug("Swept rate limit windows", removed=removed, remaining=len(self.entries))
        return removed

    def _snapshot_recipients(self) -> List[str]:
        # Inserts only happen under a stripe lock, so holding all of them freezes the key set.
        for lock in self._locks:
            lock.acquire()
        try:
            return list(self.entries)
        finally:
            for lock in reversed(self._locks):
                lock.release()

    def __len__(self) -> int:
        return len(self.entries)
