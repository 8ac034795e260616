"""Command-line entry point: run the mock WMS.

Starts the JSON-lines TCP server and, unless disabled, the admin HTTP API,
then runs until SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Sequence
from typing import Any

from pywms._constants import ms_to_seconds
from pywms.admin import start_admin
from pywms.config import WmsConfig
from pywms.engine import WmsEngine
from pywms.exceptions import WmsConfigError
from pywms.server import WmsServer

_LOG = logging.getLogger("pywms")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pywms",
        description="Mock warehouse management system (TCP JSON lines + admin HTTP API).",
    )
    parser.add_argument("--host", help="Bind address (env WMS_HOST).")
    parser.add_argument("--port", type=int, help="TCP port for adapters (env WMS_TCP_PORT).")
    parser.add_argument("--http-port", type=int, help="Admin HTTP port (env WMS_HTTP_PORT).")
    parser.add_argument("--no-admin", action="store_true", help="Do not start the admin HTTP API.")
    parser.add_argument("--error-rate", type=float, help="Random failure probability 0..1 (env WMS_ERROR_RATE).")
    parser.add_argument("--fail", action="store_true", help="Start with forced failure mode on.")
    parser.add_argument("--receive-delay-ms", type=int, help="Delay before package_received.")
    parser.add_argument("--ready-delay-ms", type=int, help="Extra delay before package_ready.")
    parser.add_argument("--load-delay-ms", type=int, help="Delay before package_loaded.")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> WmsConfig:
    overrides: dict[str, Any] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["tcp_port"] = args.port
    if args.http_port is not None:
        overrides["http_port"] = args.http_port
    if args.no_admin:
        overrides["admin_enabled"] = False
    if args.error_rate is not None:
        overrides["error_rate"] = args.error_rate
    if args.fail:
        overrides["fail_mode"] = True
    if args.receive_delay_ms is not None:
        overrides["receive_delay"] = ms_to_seconds(args.receive_delay_ms)
    if args.ready_delay_ms is not None:
        overrides["ready_delay"] = ms_to_seconds(args.ready_delay_ms)
    if args.load_delay_ms is not None:
        overrides["load_delay"] = ms_to_seconds(args.load_delay_ms)
    return WmsConfig.from_env(**overrides)


async def _run(config: WmsConfig) -> None:
    engine = WmsEngine(config)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)

    async with WmsServer(engine):
        runner = await start_admin(engine) if config.admin_enabled else None
        try:
            await stop.wait()
        finally:
            _LOG.info("Shutting down...")
            if runner is not None:
                await runner.cleanup()


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _config_from_args(args)
    except WmsConfigError as exc:
        print(f"pywms: {exc}", file=sys.stderr)
        return 2

    try:
        asyncio.run(_run(config))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
