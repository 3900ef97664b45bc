"""aiohttp HTTP surface for the relay.

Routes::

    POST /, /data                       ingest (form field ``data`` or JSON body)
    GET  /data                          poll live state
    POST /record/start, /replay/start   start recording
    POST /record/stop, /replay/stop     stop recording
    GET  /replays, /replay/list         list replays
    GET  /replays/{id}, /replay/{id}    fetch replay frames
    GET  /health                        diagnostics
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from aiohttp import web

from flowrelay._constants import FORM_DATA_FIELD
from flowrelay.config import RelayConfig
from flowrelay.exceptions import MalformedPayloadError, RelayError
from flowrelay.ingestion.normalize import decode_payload
from flowrelay.relay import TelemetryRelay
from flowrelay.state.policy import run_reaper

_logger = logging.getLogger(__name__)

RELAY_KEY = web.AppKey("relay", TelemetryRelay)
CONFIG_KEY = web.AppKey("config", RelayConfig)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_FORM_CONTENT_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


@web.middleware
async def _cors_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=_CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(_CORS_HEADERS)
        raise
    response.headers.update(_CORS_HEADERS)
    return response


@web.middleware
async def _error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Translate domain errors to JSON responses; anything unexpected is a 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except RelayError as exc:
        if exc.status >= 500:
            _logger.error("%s %s failed: %s", request.method, request.path, exc)
        else:
            _logger.debug("%s %s rejected: %s", request.method, request.path, exc)
        return web.json_response({"error": str(exc), "code": exc.code}, status=exc.status)
    except Exception:
        _logger.exception("%s %s failed", request.method, request.path)
        return web.json_response({"error": "Server error", "code": "server_error"}, status=500)


async def _read_ingest_payload(request: web.Request) -> Any:
    """Extract the telemetry payload from a form or JSON request body.

    The game-side tracker posts form-encoded ``data=<json>``; other
    producers may post the JSON directly, optionally wrapped as
    ``{"data": "<json>"}``.
    """
    if request.content_type in _FORM_CONTENT_TYPES:
        form = await request.post()
        raw = form.get(FORM_DATA_FIELD)
        if raw is None:
            raise MalformedPayloadError(f'Missing "{FORM_DATA_FIELD}"')
        if not isinstance(raw, str):
            raise MalformedPayloadError(f'"{FORM_DATA_FIELD}" must be a text field')
        return raw

    body = await request.read()
    if not body:
        raise MalformedPayloadError("Empty request body")
    try:
        payload = decode_payload(body)
    except ValueError as exc:
        raise MalformedPayloadError(str(exc)) from exc
    if isinstance(payload, dict) and isinstance(payload.get(FORM_DATA_FIELD), str):
        return payload[FORM_DATA_FIELD]
    return payload


async def handle_ingest(request: web.Request) -> web.Response:
    payload = await _read_ingest_payload(request)
    return web.json_response(request.app[RELAY_KEY].ingest(payload))


async def handle_poll(request: web.Request) -> web.Response:
    return web.json_response(request.app[RELAY_KEY].poll())


async def handle_start_recording(request: web.Request) -> web.Response:
    return web.json_response(request.app[RELAY_KEY].start_recording())


async def handle_stop_recording(request: web.Request) -> web.Response:
    return web.json_response(request.app[RELAY_KEY].stop_recording())


async def handle_list_replays(request: web.Request) -> web.Response:
    return web.json_response(request.app[RELAY_KEY].list_replays())


async def handle_get_replay(request: web.Request) -> web.Response:
    replay_id = request.match_info["replay_id"]
    return web.json_response(request.app[RELAY_KEY].get_replay(replay_id))


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response(request.app[RELAY_KEY].health())


async def _reaper_ctx(app: web.Application) -> AsyncIterator[None]:
    config = app[CONFIG_KEY]
    task = asyncio.create_task(run_reaper(app[RELAY_KEY].store, config.reap_interval))
    yield
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


def create_app(relay: TelemetryRelay | None = None, config: RelayConfig | None = None) -> web.Application:
    """Build the aiohttp application around *relay*."""
    config = config if config is not None else RelayConfig()
    relay = relay if relay is not None else TelemetryRelay.from_config(config)

    middlewares: list[Any] = [_error_middleware]
    if config.cors_enabled:
        middlewares.insert(0, _cors_middleware)

    app = web.Application(middlewares=middlewares, client_max_size=config.max_body_bytes)
    app[RELAY_KEY] = relay
    app[CONFIG_KEY] = config

    app.router.add_post("/", handle_ingest)
    app.router.add_post("/data", handle_ingest)
    app.router.add_get("/data", handle_poll)
    app.router.add_post("/record/start", handle_start_recording)
    app.router.add_post("/record/stop", handle_stop_recording)
    app.router.add_post("/replay/start", handle_start_recording)
    app.router.add_post("/replay/stop", handle_stop_recording)
    app.router.add_get("/replays", handle_list_replays)
    # Registered before /replay/{replay_id} so "list" is not taken as an id.
    app.router.add_get("/replay/list", handle_list_replays)
    app.router.add_get("/replays/{replay_id}", handle_get_replay)
    app.router.add_get("/replay/{replay_id}", handle_get_replay)
    app.router.add_get("/health", handle_health)

    if config.reap_interval > 0:
        app.cleanup_ctx.append(_reaper_ctx)

    return app


def run(config: RelayConfig) -> None:
    """Serve the relay until interrupted."""
    app = create_app(config=config)
    _logger.info(
        "Relay listening on %s:%d (stale after %d ms, replays %s)",
        config.host,
        config.port,
        config.stale_after_ms,
        config.replay_dir or "in memory",
    )
    web.run_app(app, host=config.host, port=config.port, print=None)
