#!/usr/bin/env python
"""Allowlist-guarded command execution server.

Usage:
    shellgate [COMMAND ...]                 Serve tools over MCP stdio
    shellgate --allow-all                   Allow everything except dangerous patterns
    shellgate --bridge-server [--port N]    Accept relayed commands over HTTP
    shellgate --run "dir /b"                Execute one command and print the result

Allowed commands are taken from, in priority order: --allow-all, the
positional COMMAND list, config.json in the working directory, built-in
defaults.

Environment:
    SHELLGATE_BRIDGE_ENABLED    Relay commands to a bridge server (1/true/yes/on)
    SHELLGATE_BRIDGE_HOST       Bridge host (default 127.0.0.1)
    SHELLGATE_BRIDGE_PORT       Bridge port (default 8731)
    SHELLGATE_TARGET_PLATFORM   Platform the command vocabulary targets (default windows)
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .bridge.client import BridgeClient
from .config import DEFAULT_BRIDGE_PORT, BridgeSettings, load_policy, target_platform_from_env
from .gateway import CommandGateway
from .translation import PlatformAdapter
from .types import DEFAULT_TIMEOUT_MS, CommandRequest

logger = logging.getLogger(__name__)


def configure_logging(verbosity: int) -> None:
    """Log to stderr; stdout belongs to the stdio transport."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_gateway(args: argparse.Namespace, bridge_enabled: bool = True) -> CommandGateway:
    policy = load_policy(
        commands=args.commands or None,
        allow_all=args.allow_all,
        config_path=args.config,
    )
    bridge = None
    if bridge_enabled:
        bridge = BridgeClient.from_settings(BridgeSettings.from_env())
    return CommandGateway(
        policy,
        adapter=PlatformAdapter(target_platform=target_platform_from_env()),
        bridge=bridge,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shellgate",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("commands", nargs="*", help="Allowed commands (overrides config.json)")
    parser.add_argument(
        "--allow-all",
        action="store_true",
        help="Allow any command not matching a dangerous pattern",
    )
    parser.add_argument("--config", type=Path, help="Path to config.json (default: ./config.json)")
    parser.add_argument(
        "--bridge-server",
        action="store_true",
        help="Run the HTTP bridge server instead of the MCP server",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bridge server bind host")
    parser.add_argument("--port", type=int, default=DEFAULT_BRIDGE_PORT, help="Bridge server port")
    parser.add_argument(
        "--log-file",
        default="bridge_server.log",
        help="Bridge server request log (append-only)",
    )
    parser.add_argument("--run", metavar="COMMAND", help="Execute one command and exit")
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT_MS,
        help="Timeout in milliseconds for --run",
    )
    parser.add_argument("--cwd", help="Working directory for --run")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-v info, -vv debug)",
    )
    parser.add_argument("--debug", action="store_true", help="Show full tracebacks on error")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the shellgate CLI.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.bridge_server and args.run:
        print("Cannot combine --bridge-server and --run", file=sys.stderr)
        return 1
    if args.timeout <= 0:
        print("--timeout must be a positive number of milliseconds", file=sys.stderr)
        return 1

    try:
        # A bridge server executes locally; relaying again would loop.
        gateway = build_gateway(args, bridge_enabled=not args.bridge_server)

        if args.run:
            outcome = gateway.execute(
                CommandRequest(command=args.run, timeout_ms=args.timeout, working_dir=args.cwd)
            )
            stream = sys.stderr if outcome.is_error else sys.stdout
            print(outcome.render(), file=stream)
            return 1 if outcome.is_error else 0

        if args.bridge_server:
            from .bridge.server import serve

            serve(gateway, host=args.host, port=args.port, log_path=args.log_file)
            return 0

        from .mcp_server import run_stdio

        logger.info("Starting shellgate MCP server on stdio")
        run_stdio(gateway)
        return 0

    except KeyboardInterrupt:
        return 0
    except Exception as e:
        print(f"Fatal error running server: {e}", file=sys.stderr)
        if args.debug:
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
