"""Catalog of sealed replays."""

from __future__ import annotations

import logging
import threading

from flowrelay.exceptions import ReplayNotFoundError, ReplayStorageError
from flowrelay.models import ReplayMetadata, ReplayRecord
from flowrelay.recording.storage import ReplayFileStore

_logger = logging.getLogger(__name__)


class ReplayCatalog:
    """Sealed replays keyed by id.

    In-memory by default. With a :class:`ReplayFileStore` every stored
    replay is also written through to disk and previously persisted
    replays are loaded on construction.
    """

    def __init__(self, storage: ReplayFileStore | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, ReplayRecord] = {}
        self._storage = storage
        if storage is not None:
            for record in storage.load_all():
                self._records[record.id] = record
            if self._records:
                _logger.info("Loaded %d replays from %s", len(self._records), storage.directory)

    @property
    def persistent(self) -> bool:
        return self._storage is not None

    def store(self, record: ReplayRecord) -> bool:
        """Add *record*; an existing replay with the same id is overwritten.

        Storing into memory always succeeds. Returns ``False`` when the
        write-through failed; the failure is logged and the replay stays
        available from memory for the life of the process.
        """
        with self._lock:
            if record.id in self._records:
                _logger.warning("Replay id %s already cataloged; overwriting", record.id)
            self._records[record.id] = record
        if self._storage is None:
            return True
        try:
            self._storage.save(record)
        except ReplayStorageError:
            _logger.exception("Replay %s kept in memory only", record.id)
            return False
        return True

    def list(self) -> list[ReplayMetadata]:
        """Metadata for every replay, oldest first."""
        with self._lock:
            records = list(self._records.values())
        records.sort(key=lambda record: (record.started_at, record.id))
        return [record.metadata() for record in records]

    def get(self, replay_id: str) -> ReplayRecord:
        with self._lock:
            record = self._records.get(replay_id)
        if record is None:
            raise ReplayNotFoundError(replay_id)
        return record

    def __contains__(self, replay_id: object) -> bool:
        with self._lock:
            return replay_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
