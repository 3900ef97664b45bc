"""Custom exception hierarchy for flowrelay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all flowrelay errors.

    ``code`` is the stable identifier sent to HTTP clients and ``status``
    the HTTP status the boundary answers with.
    """

    code: str = "relay_error"
    status: int = 500


class RelayConfigError(RelayError):
    """Invalid or missing configuration."""

    code = "config_error"


class MalformedPayloadError(RelayError):
    """Ingest payload matches neither the single-record nor the batch shape."""

    code = "malformed_payload"
    status = 400

    def __init__(self, message: str, *, rejected: int = 0) -> None:
        self.rejected = rejected
        super().__init__(message)


class RecorderStateError(RelayError):
    """Recording start/stop requested from the wrong state."""

    status = 400


class AlreadyRecordingError(RecorderStateError):
    """``start`` called while a recording is already active."""

    code = "already_recording"

    def __init__(self, message: str = "Already recording") -> None:
        super().__init__(message)


class NotRecordingError(RecorderStateError):
    """``stop`` called while no recording is active."""

    code = "not_recording"

    def __init__(self, message: str = "Not recording") -> None:
        super().__init__(message)


class ReplayNotFoundError(RelayError):
    """No replay with the requested id exists in the catalog."""

    code = "replay_not_found"
    status = 404

    def __init__(self, replay_id: str) -> None:
        self.replay_id = replay_id
        super().__init__(f"Replay not found: {replay_id}")


class ReplayStorageError(RelayError):
    """Reading or writing a persisted replay failed."""

    code = "replay_storage_error"

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)
