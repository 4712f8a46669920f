"""Command-line entry point.

``wildfeed serve`` runs the refresh loop and the HTTP query endpoint;
``wildfeed refresh`` runs a single tick and exits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import aiohttp
from aiohttp import web
from dotenv import load_dotenv

from wildfeed.cache.window import UpdateOutcome
from wildfeed.config import WildfeedConfig
from wildfeed.server import create_app
from wildfeed.service import build_scheduler

_logger = logging.getLogger("wildfeed")


def _client_session(config: WildfeedConfig) -> aiohttp.ClientSession:
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=config.http_timeout))


async def serve(config: WildfeedConfig) -> None:
    async with _client_session(config) as http:
        scheduler = build_scheduler(config, http)
        runner = web.AppRunner(create_app(scheduler))
        await runner.setup()
        site = web.TCPSite(runner, config.host, config.port)
        await site.start()
        _logger.info("Server is running on %s:%d", config.host, config.port)
        try:
            await scheduler.run()
        finally:
            await scheduler.stop()
            await runner.cleanup()


async def refresh_once(config: WildfeedConfig) -> int:
    """Run one tick; return the number of failed feed updates."""
    async with _client_session(config) as http:
        scheduler = build_scheduler(config, http)
        outcomes = await scheduler.tick()

    failures = 0
    for (entity_id, feed_id), outcome in sorted(outcomes.items()):
        if isinstance(outcome, UpdateOutcome):
            print(f"{entity_id}-{feed_id}: {outcome.value}")
        else:
            failures += 1
            print(f"{entity_id}-{feed_id}: failed ({outcome})")
    return failures


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="wildfeed", description="Windowed event cache for monitored wildfires.")
    parser.add_argument("command", nargs="?", choices=("serve", "refresh"), default="serve")
    parser.add_argument("--env-file", default=".env.local", help="dotenv file to load (default: .env.local)")
    parser.add_argument("--data-dir", help="Snapshot directory (overrides WILDFEED_DATA_DIR)")
    parser.add_argument("--config-dir", help="Entity config directory (overrides WILDFEED_ENTITY_CONFIG_DIR)")
    parser.add_argument("--port", type=int, help="HTTP port (overrides WILDFEED_PORT)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    load_dotenv(args.env_file)

    overrides: dict[str, object] = {}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.config_dir:
        overrides["entity_config_dir"] = args.config_dir
    if args.port is not None:
        overrides["port"] = args.port
    config = WildfeedConfig.from_env(**overrides)

    if args.command == "refresh":
        return 1 if asyncio.run(refresh_once(config)) else 0

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        _logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
