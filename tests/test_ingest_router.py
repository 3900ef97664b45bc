from __future__ import annotations

import json
import logging

import pytest

from flowrelay.exceptions import MalformedPayloadError
from flowrelay.ingestion.router import IngestRouter, parse_sample
from flowrelay.recording.catalog import ReplayCatalog
from flowrelay.recording.recorder import ReplayRecorder
from flowrelay.state.store import LiveStateStore


def _router(clock) -> tuple[IngestRouter, LiveStateStore, ReplayRecorder, ReplayCatalog]:
    store = LiveStateStore(clock=clock)
    catalog = ReplayCatalog()
    recorder = ReplayRecorder(catalog, clock=clock)
    return IngestRouter(store, recorder, clock=clock), store, recorder, catalog


# ------------------------------------------------------------------
# Record parsing
# ------------------------------------------------------------------


class TestParseSample:
    def test_flat_record(self) -> None:
        sample = parse_sample({"name": "P1", "x": 1983.85, "y": -9436.94, "z": 2688.65})

        assert sample.id == "P1"
        assert sample.position.x == 1983.85
        assert sample.velocity.x == 0.0
        assert sample.orientation is None

    def test_tracker_record_with_nested_position(self) -> None:
        sample = parse_sample(
            {
                "steamID": "76561198000000000",
                "name": "Gordon",
                "position": {"x": 1, "y": 2, "z": 3},
                "velocity": {"x": 10, "y": -5},
                "vel_len": 11.18,
                "angles": {"pitch": 1.5, "yaw": 90, "roll": 0},
            }
        )

        assert sample.id == "Gordon"
        assert sample.steam_id == "76561198000000000"
        assert (sample.position.x, sample.position.y, sample.position.z) == (1.0, 2.0, 3.0)
        assert (sample.velocity.x, sample.velocity.y, sample.velocity.z) == (10.0, -5.0, 0.0)
        assert sample.orientation is not None
        assert sample.orientation.yaw == 90.0

    def test_id_preferred_over_name(self) -> None:
        sample = parse_sample({"id": "session-7", "name": "Alyx", "x": 0, "y": 0, "z": 0})

        assert sample.id == "session-7"
        assert sample.name == "Alyx"

    def test_client_timestamp_ignored(self) -> None:
        sample = parse_sample({"name": "P1", "x": 0, "y": 0, "z": 0, "t": 1, "receivedAt": "2000-01-01T00:00:00Z"})

        assert sample.received_at is None

    def test_oversized_velocity_component_treated_as_absent(self) -> None:
        sample = parse_sample({"name": "P1", "x": 0, "y": 0, "z": 0, "velocity": {"x": 10**400, "y": 2}})

        assert (sample.velocity.x, sample.velocity.y) == (0.0, 2.0)

    def test_string_velocity_treated_as_absent(self) -> None:
        sample = parse_sample({"name": "P1", "x": 0, "y": 0, "z": 0, "velocity": "fast"})

        assert (sample.velocity.x, sample.velocity.y, sample.velocity.z) == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize(
        "record",
        [
            {"x": 1, "y": 2, "z": 3},
            {"name": "  ", "x": 1, "y": 2, "z": 3},
            {"name": "P1", "x": 1, "y": 2},
            {"name": "P1", "x": "1", "y": 2, "z": 3},
            {"name": "P1", "x": True, "y": 2, "z": 3},
            {"name": "P1", "x": 10**400, "y": 2, "z": 3},
            {"name": "P1", "position": {"x": 1, "y": None, "z": 3}},
            ["P1", 1, 2, 3],
        ],
    )
    def test_invalid_records_rejected(self, record: object) -> None:
        with pytest.raises(ValueError):
            parse_sample(record)


# ------------------------------------------------------------------
# Routing
# ------------------------------------------------------------------


def test_single_record_applied_to_store(clock) -> None:
    router, store, _recorder, _catalog = _router(clock)

    result = router.ingest({"name": "A", "x": 1, "y": 2, "z": 3})

    assert result.accepted == 1
    assert result.rejected == 0
    assert result.recorded is False
    assert store.get("A") is not None


def test_json_text_and_bytes_accepted(clock) -> None:
    router, store, _recorder, _catalog = _router(clock)

    router.ingest(json.dumps({"name": "A", "x": 1, "y": 2, "z": 3}))
    router.ingest(json.dumps({"players": [{"name": "B", "x": 1, "y": 2, "z": 3}]}).encode())

    assert store.size() == 2


def test_batch_skips_malformed_record(clock, caplog: pytest.LogCaptureFixture) -> None:
    router, store, _recorder, _catalog = _router(clock)

    with caplog.at_level(logging.WARNING, logger="flowrelay.ingestion.router"):
        result = router.ingest(
            {
                "players": [
                    {"name": "A", "x": 1, "y": 2, "z": 3},
                    {"name": "broken", "x": "nope"},
                    {"name": "C", "x": 4, "y": 5, "z": 6},
                ]
            }
        )

    assert result.accepted == 2
    assert result.rejected == 1
    assert sorted(s.id for s in store.snapshot()) == ["A", "C"]
    assert "Skipping malformed record 1" in caplog.text


def test_batch_shares_one_timestamp(clock) -> None:
    router, store, _recorder, _catalog = _router(clock)

    result = router.ingest({"players": [{"name": "A", "x": 1, "y": 2, "z": 3}, {"name": "B", "x": 1, "y": 2, "z": 3}]})

    stamps = {s.received_at for s in store.snapshot()}
    assert stamps == {result.captured_at}


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[1, 2, 3]",
        {"players": []},
        {"players": {"name": "A"}},
        {"players": [{"x": 1}, {"name": "B"}]},
        {"name": "A"},
        {},
    ],
)
def test_wholly_malformed_payload_raises(clock, payload: object) -> None:
    router, store, _recorder, _catalog = _router(clock)

    with pytest.raises(MalformedPayloadError):
        router.ingest(payload)

    assert store.size() == 0


def test_all_invalid_batch_reports_rejected_count(clock) -> None:
    router, _store, _recorder, _catalog = _router(clock)

    with pytest.raises(MalformedPayloadError) as exc_info:
        router.ingest({"players": [{"x": 1}, {"name": "B"}]})

    assert exc_info.value.rejected == 2


def test_ingest_records_one_frame_per_call_while_recording(clock) -> None:
    router, _store, recorder, _catalog = _router(clock)
    recorder.start()

    clock.advance(100)
    first = router.ingest({"players": [{"name": "A", "x": 1, "y": 2, "z": 3}, {"name": "B", "x": 1, "y": 2, "z": 3}]})
    clock.advance(100)
    router.ingest({"name": "A", "x": 2, "y": 2, "z": 3})

    assert first.recorded is True
    record = recorder.stop()
    assert record.frame_count == 2
    assert record.frames[0].captured_at == first.captured_at
    assert [s.id for s in record.frames[0].samples] == ["A", "B"]
    assert len(record.frames[1].samples) == 1


def test_skipped_batch_records_are_not_recorded(clock) -> None:
    router, _store, recorder, _catalog = _router(clock)
    recorder.start()

    router.ingest({"players": [{"name": "A", "x": 1, "y": 2, "z": 3}, {"bad": True}]})

    record = recorder.stop()
    assert [s.id for s in record.frames[0].samples] == ["A"]


def test_router_without_recorder(clock) -> None:
    store = LiveStateStore(clock=clock)
    router = IngestRouter(store, clock=clock)

    result = router.ingest({"name": "A", "x": 1, "y": 2, "z": 3})

    assert result.recorded is False
    assert store.size() == 1


def test_oversized_number_only_rejects_its_record(clock) -> None:
    router, store, recorder, _catalog = _router(clock)
    recorder.start()
    raw = '{"players":[{"name":"A","x":1,"y":2,"z":3},{"name":"B","x":1' + "0" * 400 + ',"y":0,"z":0}]}'

    result = router.ingest(raw)

    assert (result.accepted, result.rejected, result.recorded) == (1, 1, True)
    assert [s.id for s in store.snapshot()] == ["A"]
    assert recorder.buffered_frames == 1


def test_failed_single_record_leaves_table_untouched(clock) -> None:
    router, store, recorder, _catalog = _router(clock)
    recorder.start()

    with pytest.raises(MalformedPayloadError):
        router.ingest('{"name":"A","x":1' + "0" * 400 + ',"y":0,"z":0}')

    assert store.size() == 0
    assert recorder.buffered_frames == 0
