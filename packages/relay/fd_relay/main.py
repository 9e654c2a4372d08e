"""
Relay entry point.

Loads configuration, configures logging, and serves until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog
import yaml
from pydantic import ValidationError

from fabledrop_shared.logs import configure_logging

from .config import RelayConfig, load_config
from .server import RelayServer


def run(argv: list[str] | None = None) -> None:
    """CLI entry point for the relay."""
    parser = argparse.ArgumentParser(description="FableDrop spreadsheet relay")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to a YAML configuration file (defaults apply when omitted)",
    )
    parser.add_argument("--port", type=int, default=None, help="Override server.port")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else RelayConfig()
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except (ValidationError, ValueError, yaml.YAMLError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.port is not None:
        config.server.port = args.port

    if not config.upstream.resolved_url:
        print(
            f"Error: {config.upstream.url_env} environment variable is required "
            "(set it to the Google Apps Script web app URL)",
            file=sys.stderr,
        )
        sys.exit(1)

    configure_logging(config.logging.level, config.logging.format)
    log = structlog.get_logger()
    log.info("relay.config_loaded", config_path=args.config)

    server = RelayServer(config)
    try:
        asyncio.run(server.run_forever())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
