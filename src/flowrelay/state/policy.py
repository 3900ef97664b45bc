"""Staleness policy for live entries.

This module contains no locking and no table access; the store applies
the policy during reads and the optional reaper applies it on a timer.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Protocol

from flowrelay._constants import DEFAULT_STALE_AFTER_MS

_logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(milliseconds=DEFAULT_STALE_AFTER_MS)


class _Evictable(Protocol):
    def evict_stale(self, stale_after: timedelta | None = None) -> int: ...


def is_stale(now: datetime, received_at: datetime | None, stale_after: timedelta) -> bool:
    """An entry is stale once its age is strictly greater than *stale_after*."""
    if received_at is None:
        return True
    return now - received_at > stale_after


async def run_reaper(store: _Evictable, interval: float, stale_after: timedelta | None = None) -> None:
    """Evict stale entries every *interval* seconds until cancelled.

    Reads already evict, so this only bounds memory for tables nobody polls.
    """
    while True:
        await asyncio.sleep(interval)
        evicted = store.evict_stale(stale_after)
        if evicted:
            _logger.debug("Reaper evicted %d stale entries", evicted)
