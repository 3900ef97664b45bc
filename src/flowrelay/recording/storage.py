"""On-disk replay persistence.

One JSON file per replay, named ``<id>.json``, holding
``{id, startedAt, endedAt, frames: [{capturedAt, samples: [...]}]}``.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from flowrelay.exceptions import ReplayNotFoundError, ReplayStorageError
from flowrelay.models import ReplayRecord

_logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")


def dump_record(record: ReplayRecord) -> str:
    """Serialize a replay to its persisted JSON text."""
    return json.dumps(record.model_dump(mode="json", by_alias=True, exclude_none=True))


def load_record(text: str | bytes) -> ReplayRecord:
    """Parse persisted JSON text back into a :class:`ReplayRecord`.

    Raises :class:`ValueError` for malformed content.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"replay file is not JSON: {exc}") from exc
    try:
        return ReplayRecord.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"replay file has an invalid layout: {exc}") from exc


class ReplayFileStore:
    """Directory of persisted replays."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, replay_id: str) -> Path:
        if not _SAFE_ID.match(replay_id):
            raise ReplayStorageError(f"replay id is not filename-safe: {replay_id!r}")
        return self._directory / f"{replay_id}.json"

    def save(self, record: ReplayRecord) -> Path:
        """Write *record* atomically; an existing file with the same id is replaced."""
        path = self._path(record.id)
        text = dump_record(record)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{record.id}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise ReplayStorageError(f"Could not write replay {record.id}: {exc}", path=str(path)) from exc
        _logger.debug("Wrote replay %s to %s", record.id, path)
        return path

    def load(self, replay_id: str) -> ReplayRecord:
        path = self._path(replay_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ReplayNotFoundError(replay_id) from exc
        except OSError as exc:
            raise ReplayStorageError(f"Could not read replay {replay_id}: {exc}", path=str(path)) from exc
        try:
            return load_record(text)
        except ValueError as exc:
            raise ReplayStorageError(str(exc), path=str(path)) from exc

    def load_all(self) -> list[ReplayRecord]:
        """Load every readable replay in the directory.

        Unreadable or corrupt files are logged and skipped so one bad file
        does not keep the relay from starting.
        """
        if not self._directory.is_dir():
            return []
        records: list[ReplayRecord] = []
        for path in sorted(self._directory.glob("*.json")):
            try:
                records.append(self.load(path.stem))
            except (ReplayStorageError, ReplayNotFoundError) as exc:
                _logger.warning("Skipping replay file %s: %s", path, exc)
        return records
