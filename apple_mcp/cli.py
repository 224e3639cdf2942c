"""Command-line interface for apple-mcp"""

import argparse
import asyncio
import json
import logging
import sys

from apple_mcp import __version__
from apple_mcp.automation import set_default_timeout
from apple_mcp.config import Settings, load_settings
from apple_mcp.observability import setup_logging

logger = logging.getLogger(__name__)


def serve_command(settings: Settings):
    """Run the MCP server on stdio"""
    from apple_mcp.server.app import serve

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.critical(f"Failed to run MCP server: {e}", exc_info=True)
        sys.exit(1)


def check_command(settings: Settings):
    """Load every enabled backend once and print the outcome"""
    from apple_mcp.server.app import check

    status = asyncio.run(check(settings))
    print(f"Loader mode: {status['mode']}")
    if status["safe_reason"]:
        print(f"  reason: {status['safe_reason']}")
    for name, state in status["backends"].items():
        mark = "✓" if state == "loaded" else "✗"
        print(f"{mark} {name}: {state}")
    if settings.debug:
        print(json.dumps(status, indent=2))


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog="apple-mcp",
        description="MCP tool server for Apple apps (Contacts, Notes, Messages, Mail, Reminders, Calendar, Maps)",
    )
    parser.add_argument("--config", help="Path to config.yaml (default: ~/.apple-mcp/config.yaml)")
    parser.add_argument("--log-level", help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.add_parser("serve", help="Run the stdio MCP server (default)")
    subparsers.add_parser("check", help="Load all backends once and report their state")
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"apple-mcp v{__version__}")
        return

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"✗ Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level=args.log_level or settings.log_level,
        json_format=settings.log_json,
        pii_redact=settings.log_pii_redact,
        log_file=settings.log_file,
    )
    set_default_timeout(settings.automation_timeout)

    if args.command == "check":
        check_command(settings)
    else:
        serve_command(settings)


if __name__ == "__main__":
    main()
