"""Admin/debug HTTP surface.

Thin aiohttp wrappers over the engine's in-process admin methods: list
and look up packages, force a status, toggle failure injection.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

from pywms.engine import WmsEngine
from pywms.exceptions import WmsConfigError, WmsValidationError
from pywms.models._base import format_timestamp, utcnow

_logger = logging.getLogger(__name__)

ENGINE_KEY: web.AppKey[WmsEngine] = web.AppKey("engine", WmsEngine)


async def _json_body(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "invalid_json"}),
            content_type="application/json",
        ) from None
    return body if isinstance(body, dict) else {}


def _error(status: int, error: str, **extra: Any) -> web.Response:
    return web.json_response({"error": error, **extra}, status=status)


async def health(_request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "time": format_timestamp(utcnow())})


async def status(request: web.Request) -> web.Response:
    return web.json_response(request.app[ENGINE_KEY].status())


async def list_packages(request: web.Request) -> web.Response:
    return web.json_response(request.app[ENGINE_KEY].list_packages())


async def get_package(request: web.Request) -> web.Response:
    found = request.app[ENGINE_KEY].find_package(request.match_info["id"])
    if found is None:
        return _error(404, "not_found")
    return web.json_response(found)


async def advance_package(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    package_id = request.match_info["package_id"]
    body = await _json_body(request)
    to = body.get("to")
    if package_id not in engine.store:
        return _error(404, "package_not_found")
    if not isinstance(to, str) or not to:
        return _error(400, "missing_to")
    try:
        package = engine.advance_package(package_id, to)
    except WmsValidationError as exc:
        return _error(400, exc.message, **(exc.details or {}))
    return web.json_response({"ok": True, "package": package.snapshot()})


async def simulate_fail(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    body = await _json_body(request)
    fail = body.get("fail")
    if not isinstance(fail, bool):
        return _error(400, "missing_boolean_fail_field")
    if "rate" in body:
        rate = body["rate"]
        if isinstance(rate, bool) or not isinstance(rate, (int, float)):
            return _error(400, "invalid_rate")
        try:
            engine.set_error_rate(rate)
        except WmsConfigError:
            return _error(400, "invalid_rate")
    engine.set_failure_mode(fail)
    return web.json_response({"ok": True, "errorMode": engine.faults.forced, "errorRate": engine.faults.rate})


def build_admin_app(engine: WmsEngine) -> web.Application:
    app = web.Application()
    app[ENGINE_KEY] = engine
    app.router.add_get("/api/health", health)
    app.router.add_get("/api/status", status)
    app.router.add_get("/api/packages", list_packages)
    app.router.add_get("/api/packages/{id}", get_package)
    app.router.add_post("/api/simulate/fail", simulate_fail)
    app.router.add_post("/api/simulate/{package_id}/advance", advance_package)
    return app


async def start_admin(engine: WmsEngine, *, host: str | None = None, port: int | None = None) -> web.AppRunner:
    """Serve the admin app; the caller owns the returned runner's cleanup."""
    runner = web.AppRunner(build_admin_app(engine), access_log=_logger)
    await runner.setup()
    site = web.TCPSite(
        runner,
        host if host is not None else engine.config.host,
        port if port is not None else engine.config.http_port,
    )
    await site.start()
    _logger.info("Admin HTTP API listening on %s/api", site.name)
    return runner
