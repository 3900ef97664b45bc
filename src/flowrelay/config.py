"""Relay configuration for flowrelay."""

from __future__ import annotations

import dataclasses
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

from flowrelay._constants import DEFAULT_HOST, DEFAULT_MAX_BODY_BYTES, DEFAULT_PORT, DEFAULT_STALE_AFTER_MS
from flowrelay.exceptions import RelayConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise RelayConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class RelayConfig:
    """Relay server configuration.

    Parameters
    ----------
    host : str
        Interface the HTTP server binds to.
    port : int
        TCP port the HTTP server listens on.
    stale_after_ms : int
        Live entries whose last update is older than this are dropped
        from polls and evicted from the table.
    reap_interval : float
        Seconds between background eviction passes. ``0`` disables the
        background reaper; eviction then only happens on reads.
    replay_dir : Path or None
        Directory replays are written through to. ``None`` keeps replays
        in memory only (lost on restart).
    keep_empty_replays : bool
        Catalog replays that captured zero frames.
    cors_enabled : bool
        Answer with permissive CORS headers for browser visualizers.
    max_body_bytes : int
        Upper bound for ingest request bodies.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    stale_after_ms: int = DEFAULT_STALE_AFTER_MS
    reap_interval: float = 0.0
    replay_dir: Path | None = None
    keep_empty_replays: bool = True
    cors_enabled: bool = True
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES

    def __post_init__(self) -> None:
        if self.replay_dir is not None and not isinstance(self.replay_dir, Path):
            object.__setattr__(self, "replay_dir", Path(self.replay_dir))
        if not 0 < self.port < 65536:
            raise RelayConfigError(f"port must be between 1 and 65535, got {self.port}")
        if self.stale_after_ms <= 0:
            raise RelayConfigError(f"stale_after_ms must be positive, got {self.stale_after_ms}")
        if self.reap_interval < 0:
            raise RelayConfigError(f"reap_interval must not be negative, got {self.reap_interval}")
        if self.max_body_bytes <= 0:
            raise RelayConfigError(f"max_body_bytes must be positive, got {self.max_body_bytes}")

    @property
    def stale_after(self) -> timedelta:
        return timedelta(milliseconds=self.stale_after_ms)

    @classmethod
    def from_env(cls, **overrides: Any) -> RelayConfig:
        """Create configuration from environment variables.

        Reads ``FLOWRELAY_*`` variables, plus ``PORT`` as commonly set by
        hosting platforms. Explicit keyword arguments override environment
        values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        RelayConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        host = env.get("FLOWRELAY_HOST")
        if host is not None:
            config_kwargs["host"] = host

        # FLOWRELAY_PORT wins over the platform-provided PORT.
        for env_key in ("PORT", "FLOWRELAY_PORT"):
            val = env.get(env_key)
            if val is not None:
                config_kwargs["port"] = _env_number(env_key, val, int)

        stale_env = env.get("FLOWRELAY_STALE_AFTER_MS")
        if stale_env is not None:
            config_kwargs["stale_after_ms"] = _env_number("FLOWRELAY_STALE_AFTER_MS", stale_env, int)

        reap_env = env.get("FLOWRELAY_REAP_INTERVAL")
        if reap_env is not None:
            config_kwargs["reap_interval"] = _env_number("FLOWRELAY_REAP_INTERVAL", reap_env, float)

        body_env = env.get("FLOWRELAY_MAX_BODY_BYTES")
        if body_env is not None:
            config_kwargs["max_body_bytes"] = _env_number("FLOWRELAY_MAX_BODY_BYTES", body_env, int)

        replay_dir = env.get("FLOWRELAY_REPLAY_DIR")
        if replay_dir:
            config_kwargs["replay_dir"] = Path(replay_dir)

        config_kwargs["keep_empty_replays"] = _env_bool(env.get("FLOWRELAY_KEEP_EMPTY_REPLAYS"), True)
        config_kwargs["cors_enabled"] = _env_bool(env.get("FLOWRELAY_CORS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
