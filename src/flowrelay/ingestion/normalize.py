"""Normalization helpers.

Centralizes defensive parsing of producer records.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any


def safe_float(value: Any) -> float | None:
    """Lenient float coercion for optional fields."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result


def strict_float(value: Any) -> float | None:
    """Accept only real JSON numbers; strings and booleans are rejected.

    Integers too large for a float are rejected like non-finite values.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        result = float(value)
    except OverflowError:
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


def decode_payload(raw: Any) -> Any:
    """Decode JSON text/bytes; mappings pass through unchanged.

    Raises :class:`ValueError` for undecodable input.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("payload is not valid UTF-8") from exc
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid JSON") from exc
    return raw


def extract_identity(record: Mapping[str, Any]) -> str | None:
    """Identity key: ``id``, else ``name``, else ``steamID``."""
    for key in ("id", "name", "steamID"):
        identity = safe_str(record.get(key))
        if identity is not None:
            return identity
    return None


def extract_position(record: Mapping[str, Any]) -> dict[str, float] | None:
    """Required position, from flat ``x,y,z`` or a nested ``position`` object.

    Returns ``None`` unless all three components are finite numbers.
    """
    source: Mapping[str, Any] = record
    if not all(axis in record for axis in ("x", "y", "z")):
        nested = record.get("position")
        if not isinstance(nested, Mapping):
            return None
        source = nested

    position: dict[str, float] = {}
    for axis in ("x", "y", "z"):
        parsed = strict_float(source.get(axis))
        if parsed is None:
            return None
        position[axis] = parsed
    return position


def optional_mapping(record: Mapping[str, Any], *keys: str) -> dict[str, Any] | None:
    """First value under *keys* that is a mapping; strings and other junk are ignored."""
    for key in keys:
        value = record.get(key)
        if isinstance(value, Mapping):
            return dict(value)
    return None
