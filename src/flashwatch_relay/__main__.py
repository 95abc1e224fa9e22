"""CLI entry point for the FlashWatch relay.

Usage:
    python -m flashwatch_relay [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from typing import NoReturn

from pydantic import ValidationError

from flashwatch_relay import __version__
from flashwatch_relay.app import Relay
from flashwatch_relay.config import Settings, clear_settings_cache, get_settings
from flashwatch_relay.shutdown import GracefulShutdown

APP_NAME = "FlashWatch Relay"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="flashwatch-relay",
        description="Relay Base flashblock alerts to Moltbook as posts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m flashwatch_relay                    Run the relay
  python -m flashwatch_relay --config-check     Validate config and exit
  python -m flashwatch_relay --dry-run          Log posts instead of sending them
  python -m flashwatch_relay --port 5000        Listen on another port
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit without serving",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Process alerts but log posts instead of publishing",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Override webhook port (default: RELAY_PORT)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "aiohttp.access": {"level": "WARNING"},
            "web3": {"level": "WARNING"},
            "urllib3": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_banner() -> None:
    """Print the startup banner."""
    banner = f"""
╔══════════════════════════════════════════════════════════════╗
║   {APP_NAME:^56}   ║
║   {"v" + APP_VERSION:^56}   ║
╚══════════════════════════════════════════════════════════════╝
"""
    print(banner)


def print_config_summary(settings: Settings, dry_run: bool, port: int) -> None:
    """Print a redacted summary of the configuration.

    Args:
        settings: Application settings.
        dry_run: Whether dry-run mode is enabled.
        port: Effective webhook port.
    """
    summary = settings.redacted_summary()
    narrative = (
        f"enabled ({settings.narrative.model})"
        if settings.narrative.enabled
        else "not configured"
    )

    print("Configuration:")
    print(f"  Listen: {settings.relay.bind}:{port}")
    print(f"  AI Threshold: {summary['ai_threshold_eth']} ETH")
    print(f"  Cooldown: {summary['cooldown_seconds']}s per rule")
    print(f"  RPC: {summary['rpc_url']}")
    print(f"  Narrative: {narrative}")
    print(f"  Moltbook: m/{settings.moltbook.submolt} via {settings.moltbook.api_url}")
    print(f"  Audit: {summary['audit']}")
    print(f"  Log Level: {summary['log_level']}")
    print(f"  Dry Run: {dry_run}")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Report the configuration and exit.

    Args:
        settings: Validated settings.

    Returns:
        Exit code (0 for success).
    """
    print("Configuration is valid!")
    print()
    print_config_summary(settings, dry_run=settings.dry_run, port=settings.relay.port)

    print("Checking component availability...")
    print("  Moltbook: configured")
    if settings.narrative.enabled:
        print("  Narrative: configured")
    else:
        print("  Narrative: not configured (template only)")
    if settings.audit.redis_url:
        print("  Audit: redis")
    else:
        print("  Audit: file")

    print()
    print("All checks passed. Ready to run.")
    return EXIT_SUCCESS


async def run_relay(
    settings: Settings,
    dry_run: bool,
    port: int | None = None,
    shutdown_timeout: float = 10.0,
) -> int:
    """Serve until SIGINT or SIGTERM.

    Args:
        settings: Application settings.
        dry_run: Whether to log posts instead of publishing.
        port: Optional port override.
        shutdown_timeout: Seconds each cleanup step may take.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    shutdown = GracefulShutdown(timeout=shutdown_timeout)

    try:
        async with shutdown:
            relay = Relay(settings, dry_run=dry_run, port=port)
            shutdown.register_cleanup(relay.stop)

            await relay.start()
            logger.info("Relay running. Press Ctrl+C to stop.")

            await shutdown.wait()
            logger.info("Shutdown signal received, stopping relay...")

        return EXIT_SUCCESS
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Relay failed: %s", e)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    print_banner()

    if args.config_check:
        sys.exit(run_config_check(settings))

    dry_run = args.dry_run or settings.dry_run
    port = args.port or settings.relay.port

    print_config_summary(settings, dry_run, port)

    exit_code = asyncio.run(run_relay(settings, dry_run, port))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
