"""Redaction of ingest payloads for DEBUG logs.

Game trackers post a player's ``steamID`` with every sample, and a busy
server batches dozens of players per request. Before a payload reaches a
debug log, account identifiers are masked, long strings are cut and
batches are capped so one request stays one readable log line.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "steamid",
        "steamid64",
        "steam_id",
        "ip",
        "address",
        "token",
        "authorization",
        "cookie",
    }
)

_MAX_DEPTH = 20
_MAX_SEQUENCE_ITEMS = 32


def _is_sensitive(key: object) -> bool:
    return str(key).lower() in _SENSITIVE_VALUE_KEYS


def redact_for_log(
    value: Any,
    *,
    max_string: int = 256,
    max_items: int = _MAX_SEQUENCE_ITEMS,
    _depth: int = 0,
) -> Any:
    """Return a log-safe copy of a payload, a parsed record or a model.

    Models are dumped with their wire aliases first, so a
    :class:`~flowrelay.models.TelemetrySample` is redacted under ``steamID``
    exactly like the raw record it came from.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    def recurse(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, max_items=max_items, _depth=_depth + 1)

    if isinstance(value, BaseModel):
        return recurse(value.model_dump(mode="json", by_alias=True, exclude_none=True))
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {str(k): "<redacted>" if _is_sensitive(k) else recurse(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        items = [recurse(item) for item in value[:max_items]]
        if len(value) > max_items:
            items.append(f"<+{len(value) - max_items} more>")
        return items
    return repr(value)
