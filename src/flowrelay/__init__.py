"""flowrelay - Live game telemetry relay with replay recording."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("flowrelay")
except PackageNotFoundError:
    __version__ = "0+local"
from flowrelay.config import RelayConfig
from flowrelay.exceptions import (
    AlreadyRecordingError,
    MalformedPayloadError,
    NotRecordingError,
    RecorderStateError,
    RelayConfigError,
    RelayError,
    ReplayNotFoundError,
    ReplayStorageError,
)
from flowrelay.models import (
    Frame,
    Orientation,
    ReplayMetadata,
    ReplayRecord,
    TelemetrySample,
    Vector3,
)
from flowrelay.relay import TelemetryRelay

__all__ = [
    "__version__",
    "AlreadyRecordingError",
    "Frame",
    "MalformedPayloadError",
    "NotRecordingError",
    "Orientation",
    "RecorderStateError",
    "RelayConfig",
    "RelayConfigError",
    "RelayError",
    "ReplayMetadata",
    "ReplayNotFoundError",
    "ReplayRecord",
    "ReplayStorageError",
    "TelemetryRelay",
    "TelemetrySample",
    "Vector3",
]
