from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from flowrelay.exceptions import ReplayNotFoundError, ReplayStorageError
from flowrelay.models import Frame, ReplayRecord, TelemetrySample
from flowrelay.recording.catalog import ReplayCatalog
from flowrelay.recording.storage import ReplayFileStore, dump_record, load_record


def _record(clock, replay_id: str = "replay_1", frames: int = 2) -> ReplayRecord:
    started_at = clock.now
    built = []
    for index in range(frames):
        captured_at = clock.advance(100)
        built.append(
            Frame(
                captured_at=captured_at,
                samples=(
                    TelemetrySample(
                        id="A",
                        name="A",
                        steam_id="7656",
                        position={"x": 0.1 + index, "y": -9436.940000000001, "z": 1e-17},
                        velocity={"x": 1 / 3, "y": 0, "z": -2.5},
                        orientation={"pitch": 12.25, "yaw": -179.99, "roll": 0},
                        received_at=captured_at,
                    ),
                    TelemetrySample(id="B", position={"x": 4, "y": 5, "z": 6}, received_at=captured_at),
                ),
            )
        )
    return ReplayRecord(id=replay_id, started_at=started_at, ended_at=clock.advance(10), frames=tuple(built))


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


def test_get_unknown_id_raises() -> None:
    catalog = ReplayCatalog()

    with pytest.raises(ReplayNotFoundError) as exc_info:
        catalog.get("replay_404")

    assert exc_info.value.replay_id == "replay_404"


def test_get_returns_stored_frames(clock) -> None:
    catalog = ReplayCatalog()
    record = _record(clock)

    catalog.store(record)

    assert catalog.get(record.id).frames == record.frames


def test_list_returns_metadata_only(clock) -> None:
    catalog = ReplayCatalog()
    first = _record(clock, "replay_1", frames=2)
    second = _record(clock, "replay_2", frames=0)
    catalog.store(second)
    catalog.store(first)

    listing = catalog.list()

    assert [meta.id for meta in listing] == ["replay_1", "replay_2"]
    assert [meta.frame_count for meta in listing] == [2, 0]
    wire = listing[0].to_json_dict()
    assert set(wire) >= {"id", "startedAt", "endedAt", "frameCount", "timestamp"}
    assert "frames" not in wire


def test_store_overwrites_on_id_collision(clock) -> None:
    catalog = ReplayCatalog()
    catalog.store(_record(clock, "replay_1", frames=1))
    newer = _record(clock, "replay_1", frames=3)

    catalog.store(newer)

    assert len(catalog) == 1
    assert catalog.get("replay_1").frame_count == 3


def test_record_rejects_unordered_frames(clock) -> None:
    record = _record(clock)

    with pytest.raises(ValueError):
        ReplayRecord(
            id="replay_x",
            started_at=record.started_at,
            ended_at=record.ended_at,
            frames=tuple(reversed(record.frames)),
        )


# ------------------------------------------------------------------
# Persistence
# ------------------------------------------------------------------


def test_round_trip_preserves_frames_exactly(clock) -> None:
    record = _record(clock)

    reloaded = load_record(dump_record(record))

    assert reloaded.model_dump() == record.model_dump()
    written_x = [s.position.x for f in record.frames for s in f.samples]
    reloaded_x = [s.position.x for f in reloaded.frames for s in f.samples]
    assert [x.hex() for x in reloaded_x] == [x.hex() for x in written_x]
    assert reloaded.frames[0].samples[0].velocity.x == 1 / 3


def test_persisted_layout(clock) -> None:
    data = json.loads(dump_record(_record(clock)))

    assert set(data) == {"id", "startedAt", "endedAt", "frames"}
    assert set(data["frames"][0]) == {"capturedAt", "samples"}
    assert data["frames"][0]["samples"][0]["steamID"] == "7656"
    assert "angles" in data["frames"][0]["samples"][0]


def test_load_record_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        load_record("{not json")
    with pytest.raises(ValueError):
        load_record('{"id": "x"}')


def test_file_store_writes_one_file_per_replay(clock, tmp_path: Path) -> None:
    storage = ReplayFileStore(tmp_path / "replays")
    catalog = ReplayCatalog(storage)

    catalog.store(_record(clock, "replay_1"))
    catalog.store(_record(clock, "replay_2"))

    assert sorted(p.name for p in (tmp_path / "replays").iterdir()) == ["replay_1.json", "replay_2.json"]


def test_catalog_reloads_persisted_replays(clock, tmp_path: Path) -> None:
    record = _record(clock, "replay_1")
    ReplayCatalog(ReplayFileStore(tmp_path)).store(record)

    reopened = ReplayCatalog(ReplayFileStore(tmp_path))

    assert reopened.get("replay_1").model_dump() == record.model_dump()


def test_corrupt_file_skipped_on_load(clock, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    ReplayCatalog(ReplayFileStore(tmp_path)).store(_record(clock, "replay_1"))
    (tmp_path / "replay_bad.json").write_text("{oops", encoding="utf-8")

    reopened = ReplayCatalog(ReplayFileStore(tmp_path))

    assert len(reopened) == 1
    assert "replay_bad.json" in caplog.text


def test_unsafe_id_rejected(clock, tmp_path: Path) -> None:
    storage = ReplayFileStore(tmp_path)

    with pytest.raises(ReplayStorageError):
        storage.save(_record(clock, "../escape"))


def test_file_store_load_unknown_id(tmp_path: Path) -> None:
    with pytest.raises(ReplayNotFoundError):
        ReplayFileStore(tmp_path).load("replay_missing")


def test_stop_time_not_before_start(clock) -> None:
    record = _record(clock, frames=0)

    with pytest.raises(ValueError):
        ReplayRecord(id="replay_x", started_at=record.ended_at, ended_at=record.ended_at - timedelta(seconds=1))


def test_write_failure_keeps_replay_in_memory(clock, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    catalog = ReplayCatalog(ReplayFileStore(blocker / "replays"))
    record = _record(clock)

    assert catalog.store(record) is False

    assert catalog.get(record.id).frame_count == 2
    assert "kept in memory only" in caplog.text
