"""
Command-line entry point.

Usage:
    playbot -t xoxb-...
    PLAYBOT_TOKEN=xoxb-... python -m playbot --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys

import httpx
from loguru import logger
from pydantic import ValidationError

from playbot import __version__
from playbot.agent.loop import BotLoop
from playbot.agent.router import Router, default_routes
from playbot.bus.queue import EventBus
from playbot.channels.errors import BootstrapError, CompileServiceError
from playbot.channels.slack import SlackChannel
from playbot.config.schema import Settings, load_settings
from playbot.enrich.playground import PlaygroundFetcher
from playbot.enrich.wiki import WikiFetcher

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}"


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playbot",
        description="Slack bot that compiles Go playground links and quotes Wikipedia.",
    )
    parser.add_argument(
        "-t", "--token",
        default=None,
        help="Slack API bot token (default: $PLAYBOT_TOKEN)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="TRACE, DEBUG, INFO, WARNING, ERROR (default: $PLAYBOT_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def install_signal_handlers(channel: SlackChannel) -> None:
    """SIGINT/SIGTERM start the shutdown handshake instead of killing the loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, channel.stop)


async def run(settings: Settings) -> int:
    """Bootstrap the session and run the bot loop until ingestion quits."""
    bus = EventBus(maxsize=settings.queue_size)
    async with httpx.AsyncClient(timeout=settings.http_timeout) as http:
        channel = SlackChannel(settings, bus, http=http)
        try:
            session = await channel.connect()
        except BootstrapError as e:
            logger.error(f"Slack bootstrap failed: {e}")
            await channel.close()
            return 1

        install_signal_handlers(channel)
        router = Router(default_routes(
            session,
            PlaygroundFetcher(http, settings.playground_compile_url),
            WikiFetcher(http, settings.wiki_host),
        ))
        bot = BotLoop(bus, session, router, channel.send_message)
        try:
            await bot.run()
        except CompileServiceError as e:
            logger.critical(f"Compile service unreachable, giving up: {e}")
            raise
        finally:
            await channel.close()

    logger.info(f"Bot stopped after handling {bot.handled} message(s)")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        settings = load_settings(token=args.token, log_level=args.log_level)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(settings.log_level)
    return asyncio.run(run(settings))
