"""Command-line entry point: ``flowrelay`` / ``python -m flowrelay``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from flowrelay.config import RelayConfig
from flowrelay.exceptions import RelayConfigError
from flowrelay.server import run


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="flowrelay",
        description="Relay live game telemetry to visualizers and record replays.",
    )
    parser.add_argument("--host", help="Interface to bind (default: FLOWRELAY_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: PORT/FLOWRELAY_PORT or 3000)")
    parser.add_argument("--stale-after-ms", type=int, help="Drop live entries older than this (default: 5000)")
    parser.add_argument("--reap-interval", type=float, help="Seconds between background evictions (0 disables)")
    parser.add_argument("--replay-dir", type=Path, help="Persist replays as JSON files in this directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    for field_name in ("host", "port", "stale_after_ms", "reap_interval", "replay_dir"):
        value = getattr(args, field_name)
        if value is not None:
            overrides[field_name] = value

    try:
        config = RelayConfig.from_env(**overrides)
    except RelayConfigError as exc:
        print(f"flowrelay: {exc}", file=sys.stderr)
        return 2

    run(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
