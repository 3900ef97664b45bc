"""Data models for telemetry samples and replays."""

from flowrelay.models._base import RelayBaseModel, epoch_ms, utcnow
from flowrelay.models.replay import Frame, ReplayMetadata, ReplayRecord
from flowrelay.models.telemetry import Orientation, TelemetrySample, Vector3

__all__ = [
    "Frame",
    "Orientation",
    "RelayBaseModel",
    "ReplayMetadata",
    "ReplayRecord",
    "TelemetrySample",
    "Vector3",
    "epoch_ms",
    "utcnow",
]
