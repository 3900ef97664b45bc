"""Relay facade.

Composes the live table, ingest router, recorder and replay catalog into
the request/response surface served over HTTP. Every operation returns a
JSON-ready value; domain failures are raised as
:class:`flowrelay.exceptions.RelayError` subclasses carrying the code and
status the HTTP layer answers with.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from flowrelay.config import RelayConfig
from flowrelay.ingestion.router import IngestRouter
from flowrelay.models import utcnow
from flowrelay.recording.catalog import ReplayCatalog
from flowrelay.recording.recorder import ReplayRecorder
from flowrelay.recording.storage import ReplayFileStore
from flowrelay.state.policy import DEFAULT_STALE_AFTER
from flowrelay.state.store import LiveStateStore


class TelemetryRelay:
    """Live telemetry relay with start/stop replay recording.

    Usage::

        relay = TelemetryRelay.from_config(RelayConfig.from_env())
        relay.ingest({"players": [{"name": "A", "x": 1, "y": 2, "z": 3}]})
        relay.poll()
    """

    def __init__(
        self,
        *,
        catalog: ReplayCatalog | None = None,
        clock: Callable[[], datetime] = utcnow,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        keep_empty_replays: bool = True,
    ) -> None:
        self.store = LiveStateStore(clock=clock, stale_after=stale_after)
        self.catalog = catalog if catalog is not None else ReplayCatalog()
        self.recorder = ReplayRecorder(self.catalog, clock=clock, keep_empty=keep_empty_replays)
        self.router = IngestRouter(self.store, self.recorder, clock=clock)

    @classmethod
    def from_config(cls, config: RelayConfig, *, clock: Callable[[], datetime] = utcnow) -> TelemetryRelay:
        storage = ReplayFileStore(config.replay_dir) if config.replay_dir is not None else None
        return cls(
            catalog=ReplayCatalog(storage),
            clock=clock,
            stale_after=config.stale_after,
            keep_empty_replays=config.keep_empty_replays,
        )

    def ingest(self, payload: Any) -> dict[str, Any]:
        result = self.router.ingest(payload)
        return {"status": "ok", "count": result.accepted, "rejected": result.rejected}

    def poll(self) -> dict[str, Any]:
        return {"players": [sample.to_wire() for sample in self.store.snapshot()]}

    def start_recording(self) -> dict[str, Any]:
        started_at = self.recorder.start()
        return {"status": "recording_started", "startedAt": started_at.isoformat()}

    def stop_recording(self) -> dict[str, Any]:
        record = self.recorder.stop()
        return {"status": "recording_stopped", "id": record.id, "frameCount": record.frame_count}

    def list_replays(self) -> list[dict[str, Any]]:
        return [meta.to_json_dict() for meta in self.catalog.list()]

    def get_replay(self, replay_id: str) -> list[dict[str, Any]]:
        return self.catalog.get(replay_id).frames_to_wire()

    def health(self) -> dict[str, Any]:
        live = len(self.store.snapshot())
        return {
            "status": "ok",
            "livePlayers": live,
            "activePlayers": live,
            "recording": self.recorder.is_recording,
            "bufferedFrames": self.recorder.buffered_frames,
            "replays": len(self.catalog),
        }
