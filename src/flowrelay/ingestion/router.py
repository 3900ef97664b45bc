"""Ingest routing.

Turns one producer payload into validated samples, applies them to the
live table and, while a recording is active, hands them to the recorder
as a single frame.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from flowrelay._constants import BATCH_KEY
from flowrelay._redact import redact_for_log
from flowrelay.exceptions import MalformedPayloadError
from flowrelay.ingestion.normalize import (
    decode_payload,
    extract_identity,
    extract_position,
    optional_mapping,
    safe_str,
)
from flowrelay.models import Frame, TelemetrySample, utcnow

_logger = logging.getLogger(__name__)


class _SampleSink(Protocol):
    def put(self, sample: TelemetrySample, *, received_at: datetime | None = None) -> TelemetrySample: ...


class _FrameSink(Protocol):
    @property
    def is_recording(self) -> bool: ...

    def record_frame(self, frame: Frame) -> bool: ...


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one ingest call."""

    accepted: int
    rejected: int
    captured_at: datetime
    recorded: bool = False


def parse_sample(record: Any) -> TelemetrySample:
    """Validate one producer record.

    Raises :class:`ValueError` when the record has no identity or lacks a
    numeric ``x, y, z`` position.
    """
    if not isinstance(record, Mapping):
        raise ValueError("record must be an object")

    identity = extract_identity(record)
    if identity is None:
        raise ValueError("record has no id/name")

    position = extract_position(record)
    if position is None:
        raise ValueError(f"record {identity!r} has no numeric x, y, z position")

    # Producer-side timestamps are never copied; arrival time is stamped by the table.
    return TelemetrySample(
        id=identity,
        name=safe_str(record.get("name")),
        steam_id=safe_str(record.get("steamID")),
        position=position,
        velocity=optional_mapping(record, "velocity") or {},
        orientation=optional_mapping(record, "angles", "orientation"),
    )


class IngestRouter:
    """Apply producer payloads to the live table and the recorder.

    Batches are processed best-effort: a malformed record is skipped and
    logged while the rest of the batch is applied. The call only fails
    when nothing in the payload is usable.
    """

    def __init__(
        self,
        store: _SampleSink,
        recorder: _FrameSink | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._clock = clock

    def _split(self, payload: Mapping[str, Any]) -> tuple[list[Any], bool]:
        if BATCH_KEY in payload:
            records = payload[BATCH_KEY]
            if not isinstance(records, list):
                raise MalformedPayloadError(f"'{BATCH_KEY}' must be a list")
            if not records:
                raise MalformedPayloadError(f"'{BATCH_KEY}' is empty")
            return records, True
        return [payload], False

    def ingest(self, raw: Any) -> IngestResult:
        """Ingest a single-record or batch payload.

        *raw* may be a mapping or JSON text/bytes. All records of one call
        share one capture timestamp and form at most one recorded frame.
        """
        try:
            payload = decode_payload(raw)
        except ValueError as exc:
            raise MalformedPayloadError(str(exc)) from exc
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("payload must be a JSON object")

        records, is_batch = self._split(payload)
        captured_at = self._clock()
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Ingest %s", redact_for_log(payload))

        parsed: list[TelemetrySample] = []
        rejected = 0
        for index, record in enumerate(records):
            try:
                parsed.append(parse_sample(record))
            except ValueError as exc:
                if not is_batch:
                    raise MalformedPayloadError(str(exc), rejected=1) from exc
                rejected += 1
                _logger.warning("Skipping malformed record %d in batch: %s", index, exc)

        if not parsed:
            raise MalformedPayloadError("batch contains no valid records", rejected=rejected)

        # Nothing touches the table until the whole payload has been parsed.
        samples = [self._store.put(sample, received_at=captured_at) for sample in parsed]
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Applied %s", redact_for_log(samples))

        recorded = False
        if self._recorder is not None and self._recorder.is_recording:
            recorded = self._recorder.record_frame(Frame(captured_at=captured_at, samples=tuple(samples)))

        return IngestResult(
            accepted=len(samples),
            rejected=rejected,
            captured_at=captured_at,
            recorded=recorded,
        )
