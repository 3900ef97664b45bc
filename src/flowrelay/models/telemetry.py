"""Telemetry sample models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from flowrelay.ingestion.normalize import safe_float
from flowrelay.models._base import RelayBaseModel


class Vector3(RelayBaseModel):
    """Cartesian triple. Missing or unparseable components are zero."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @field_validator("x", "y", "z", mode="before")
    @classmethod
    def _coerce_components(cls, value: Any) -> float:
        parsed = safe_float(value)
        return 0.0 if parsed is None else parsed


class Orientation(RelayBaseModel):
    """Euler angles in degrees, as sent by the game (``EyeAngles``)."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0

    @field_validator("pitch", "yaw", "roll", mode="before")
    @classmethod
    def _coerce_angles(cls, value: Any) -> float:
        parsed = safe_float(value)
        return 0.0 if parsed is None else parsed


class TelemetrySample(RelayBaseModel):
    """One entity's instantaneous state.

    Parameters
    ----------
    id : str
        Stable identity key; one live entry per id.
    name : str or None
        Display name as sent by the producer.
    steam_id : str or None
        Platform identifier, when the producer sends one.
    position : Vector3
        World position.
    velocity : Vector3
        World velocity; zero when not supplied.
    orientation : Orientation or None
        View angles (wire key ``angles``).
    received_at : datetime or None
        Server-assigned arrival time. ``None`` until the live table
        stamps the sample.
    """

    id: str = Field(..., min_length=1)
    name: str | None = None
    steam_id: str | None = Field(default=None, alias="steamID")
    position: Vector3
    velocity: Vector3 = Field(default_factory=Vector3)
    orientation: Orientation | None = Field(default=None, alias="angles")
    received_at: datetime | None = None

    def stamped(self, received_at: datetime) -> TelemetrySample:
        """Return a copy carrying the server arrival time."""
        return self.model_copy(update={"received_at": received_at})

    def to_wire(self) -> dict[str, Any]:
        """Poll/replay representation.

        Flat ``x``/``y``/``z`` are included next to ``position`` because
        visualizers read the flat keys.
        """
        data = self.to_json_dict()
        data.update(self.position.to_json_dict())
        return data
