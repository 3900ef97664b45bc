"""Replay recorder state machine.

``Idle -> Recording -> Idle``, looping for the lifetime of the process.
Stopping seals the active buffer into an immutable
:class:`flowrelay.models.ReplayRecord` and hands it to the catalog.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from flowrelay._constants import REPLAY_ID_PREFIX
from flowrelay.exceptions import AlreadyRecordingError, NotRecordingError
from flowrelay.models import Frame, ReplayMetadata, ReplayRecord, epoch_ms, utcnow

_logger = logging.getLogger(__name__)


class _RecordSink(Protocol):
    def store(self, record: ReplayRecord) -> bool: ...

    def list(self) -> list[ReplayMetadata]: ...


@dataclass(frozen=True, slots=True)
class Idle:
    """No recording in progress."""


@dataclass(slots=True)
class Recording:
    """A recording in progress and the frames captured so far."""

    started_at: datetime
    frames: list[Frame] = field(default_factory=list)


RecorderState = Idle | Recording


class ReplayRecorder:
    """Exactly-one-active-recording state machine.

    Parameters
    ----------
    catalog
        Receives each sealed replay. ``None`` leaves cataloging to the caller.
    clock
        Source of ``startedAt``/``endedAt``.
    keep_empty
        When ``False``, replays that captured no frames are returned from
        :meth:`stop` but not handed to the catalog.
    """

    def __init__(
        self,
        catalog: _RecordSink | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        keep_empty: bool = True,
    ) -> None:
        self._catalog = catalog
        self._clock = clock
        self._keep_empty = keep_empty
        self._lock = threading.Lock()
        self._state: RecorderState = Idle()
        # Ids already in use, including replays the catalog loaded from disk.
        self._issued: set[str] = {meta.id for meta in catalog.list()} if catalog is not None else set()

    @property
    def state(self) -> RecorderState:
        with self._lock:
            return self._state

    @property
    def is_recording(self) -> bool:
        with self._lock:
            return isinstance(self._state, Recording)

    @property
    def buffered_frames(self) -> int:
        with self._lock:
            state = self._state
            return len(state.frames) if isinstance(state, Recording) else 0

    def start(self) -> datetime:
        """Begin a recording with an empty buffer; returns its start time."""
        with self._lock:
            if isinstance(self._state, Recording):
                raise AlreadyRecordingError()
            started_at = self._clock()
            self._state = Recording(started_at=started_at)
        _logger.info("Recording started")
        return started_at

    def record_frame(self, frame: Frame) -> bool:
        """Append *frame* while recording; a no-op otherwise.

        Frames are kept in non-decreasing capture order: a frame stamped
        before the last buffered one takes the last one's timestamp.
        """
        with self._lock:
            state = self._state
            if not isinstance(state, Recording):
                return False
            if state.frames and frame.captured_at < state.frames[-1].captured_at:
                frame = frame.model_copy(update={"captured_at": state.frames[-1].captured_at})
            state.frames.append(frame)
            return True

    def _next_id(self, ended_at: datetime) -> str:
        base = f"{REPLAY_ID_PREFIX}{epoch_ms(ended_at)}"
        candidate = base
        suffix = 0
        while candidate in self._issued:
            suffix += 1
            candidate = f"{base}-{suffix}"
        self._issued.add(candidate)
        return candidate

    def stop(self) -> ReplayRecord:
        """Seal the active buffer into a replay and return to ``Idle``."""
        with self._lock:
            state = self._state
            if not isinstance(state, Recording):
                raise NotRecordingError()
            ended_at = max(self._clock(), state.started_at)
            record = ReplayRecord(
                id=self._next_id(ended_at),
                started_at=state.started_at,
                ended_at=ended_at,
                frames=tuple(state.frames),
            )
            self._state = Idle()

        # The catalog has its own lock; never call into it while holding ours.
        if record.frame_count == 0 and not self._keep_empty:
            _logger.warning("Recording %s captured no frames; not cataloged", record.id)
        elif self._catalog is not None:
            self._catalog.store(record)
        _logger.info("Recording stopped: %s (%d frames)", record.id, record.frame_count)
        return record
