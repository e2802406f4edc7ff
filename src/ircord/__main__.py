"""Bridge entrypoint. Loads config, logs into both networks, relays until signalled."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from loguru import logger

from ircord import __version__
from ircord.adapters.disc import DiscordAdapter
from ircord.adapters.irc import IRCAdapter
from ircord.config import Config, load_config_with_env
from ircord.errors import BridgeConfigurationError, BridgeError
from ircord.gateway import Bridge
from ircord.gateway.console import ConsoleObserver


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=(
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan> | {message}"
        ),
    )


def load(config_path: Path) -> Config:
    """Load and validate config from path."""
    return Config(load_config_with_env(config_path)).validate()


def create_bridge(config: Config) -> Bridge:
    """Wire adapters into a Bridge. Verbose mode logs every relayed message."""
    bridge = Bridge(
        config,
        DiscordAdapter(config.discord_token, config.discord_channel_id),
        IRCAdapter(config),
    )
    if config.verbose:
        bridge.bus.register(ConsoleObserver())
    return bridge


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="IRCord: Discord to IRC channel bridge")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging and console echo of relayed messages",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.config.exists():
        logger.error("Config file not found: {}", args.config)
        sys.exit(1)

    try:
        config = load(args.config)
    except BridgeConfigurationError as exc:
        logger.error("Invalid config {}: {}", args.config, exc)
        sys.exit(1)
    logger.info("Config loaded from {}", args.config)

    if args.verbose and not config.verbose:
        config = Config({**config.raw, "verbose": True})

    try:
        asyncio.run(_run(create_bridge(config)))
    except BridgeError as exc:
        logger.error("Bridge failed: {}", exc)
        sys.exit(1)


async def _run(bridge: Bridge) -> None:
    """Build the bridge, then wait for SIGINT/SIGTERM and burn it."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await bridge.build()
        await stop.wait()
        logger.info("Bridge shutting down")
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await bridge.burn()


if __name__ == "__main__":
    main()
