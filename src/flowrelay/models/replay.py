"""Replay models: frames, sealed records and listing metadata."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, computed_field, model_validator

from flowrelay.models._base import RelayBaseModel, epoch_ms
from flowrelay.models.telemetry import TelemetrySample


class Frame(RelayBaseModel):
    """Samples captured by one ingest call during an active recording."""

    captured_at: datetime
    samples: tuple[TelemetrySample, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {
            "capturedAt": self.captured_at.isoformat(),
            "t": epoch_ms(self.captured_at),
            "players": [sample.to_wire() for sample in self.samples],
        }


class ReplayMetadata(RelayBaseModel):
    """Listing entry for a replay; never carries frames."""

    id: str
    started_at: datetime
    ended_at: datetime
    frame_count: int = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def timestamp(self) -> int:
        """Epoch milliseconds at which the recording stopped."""
        return epoch_ms(self.ended_at)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_ms(self) -> int:
        return max(0, epoch_ms(self.ended_at) - epoch_ms(self.started_at))


class ReplayRecord(RelayBaseModel):
    """An immutable, named sequence of frames for one recording session."""

    id: str = Field(..., min_length=1)
    started_at: datetime
    ended_at: datetime
    frames: tuple[Frame, ...] = ()

    @model_validator(mode="after")
    def _check_frame_order(self) -> ReplayRecord:
        previous: datetime | None = None
        for index, frame in enumerate(self.frames):
            if previous is not None and frame.captured_at < previous:
                raise ValueError(f"frame {index} captured before frame {index - 1}")
            previous = frame.captured_at
        if self.ended_at < self.started_at:
            raise ValueError("ended_at precedes started_at")
        return self

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def metadata(self) -> ReplayMetadata:
        return ReplayMetadata(
            id=self.id,
            started_at=self.started_at,
            ended_at=self.ended_at,
            frame_count=self.frame_count,
        )

    def frames_to_wire(self) -> list[dict[str, Any]]:
        return [frame.to_wire() for frame in self.frames]
