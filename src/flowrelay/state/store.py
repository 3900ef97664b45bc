"""Live telemetry table.

This is the only component allowed to hold the latest sample per entity.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from flowrelay.models import TelemetrySample, utcnow
from flowrelay.state.policy import DEFAULT_STALE_AFTER, is_stale

_logger = logging.getLogger(__name__)


class LiveStateStore:
    """In-memory map of entity id to its most recent sample.

    A new sample for a known id replaces the previous one entirely. Reads
    evict stale entries, so a successful :meth:`snapshot` never reflects a
    table with stale survivors. All operations hold one lock.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = utcnow,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ) -> None:
        self._clock = clock
        self._stale_after = stale_after
        self._lock = threading.Lock()
        self._samples: dict[str, TelemetrySample] = {}

    @property
    def stale_after(self) -> timedelta:
        return self._stale_after

    def put(self, sample: TelemetrySample, *, received_at: datetime | None = None) -> TelemetrySample:
        """Insert or replace the entry for ``sample.id``.

        The arrival time is always server-assigned: *received_at* when the
        caller stamps a whole batch at once, otherwise the store clock.
        """
        stamped = sample.stamped(received_at if received_at is not None else self._clock())
        with self._lock:
            self._samples[stamped.id] = stamped
        return stamped

    def _evict_locked(self, now: datetime, stale_after: timedelta) -> list[str]:
        expired = [key for key, sample in self._samples.items() if is_stale(now, sample.received_at, stale_after)]
        for key in expired:
            del self._samples[key]
        return expired

    def snapshot(self, stale_after: timedelta | None = None) -> list[TelemetrySample]:
        """Return every live sample, permanently removing stale ones."""
        threshold = self._stale_after if stale_after is None else stale_after
        now = self._clock()
        with self._lock:
            expired = self._evict_locked(now, threshold)
            live = list(self._samples.values())
        if expired:
            _logger.debug("Evicted stale entries: %s", ", ".join(expired))
        return live

    def evict_stale(self, stale_after: timedelta | None = None) -> int:
        """Evict stale entries without building a snapshot."""
        threshold = self._stale_after if stale_after is None else stale_after
        now = self._clock()
        with self._lock:
            return len(self._evict_locked(now, threshold))

    def get(self, entity_id: str) -> TelemetrySample | None:
        """Latest sample for *entity_id*, or ``None`` if absent or stale."""
        now = self._clock()
        with self._lock:
            sample = self._samples.get(entity_id)
            if sample is None:
                return None
            if is_stale(now, sample.received_at, self._stale_after):
                del self._samples[entity_id]
                return None
            return sample

    def size(self) -> int:
        """Number of entries currently held, stale or not. Diagnostic only."""
        with self._lock:
            return len(self._samples)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
