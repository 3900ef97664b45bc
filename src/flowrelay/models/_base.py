"""Base model for flowrelay data and wire types.

Every model inherits from :class:`RelayBaseModel` which provides:

* ``alias_generator=to_camel`` so snake_case fields serialize to the
  camelCase keys visualizers expect, while still accepting either form.
* ``frozen=True``: samples, frames and replays are values. Nothing
  mutates them after construction.
* ``extra="ignore"`` so producers may send extra keys (``vel_len``,
  ``vel_dir``, client timestamps) without being rejected.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


def epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds."""
    return int(value.timestamp() * 1000)


class RelayBaseModel(BaseModel):
    """Base for flowrelay models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
