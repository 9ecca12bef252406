# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Command line entry point.

    mcp-hello-server                         # stdio
    mcp-hello-server --transport http --port 3000
    python -m mcp_hello --config configs/server.yaml
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from mcp_hello.core.config import DEFAULT_CONFIG_PATH, LOG_LEVELS, TRANSPORTS, get_config, load_config
from mcp_hello.core.errors import ConfigurationError
from mcp_hello.core.logging import configure_logging
from mcp_hello.server import MCPServer

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-hello-server",
        description="MCP Hello World server (stdio, Streaming HTTP and SSE transports)",
    )
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        help="Transport to serve (default: stdio, or TRANSPORT env var)"
    )
    parser.add_argument(
        "--host",
        help="HTTP bind address"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="HTTP port (default: 3000, or PORT env var)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to YAML config (default: MCP_SERVER_CONFIG_PATH or {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Log level (logs always go to stderr)"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip argument validation for tools and prompts"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        base = load_config(args.config) if args.config else get_config()
        config = base.with_overrides(
            transport=args.transport,
            host=args.host,
            port=args.port,
            log_level=args.log_level,
            validate_arguments=False if args.no_validate else None,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(config, log_file=Path(args.log_file) if args.log_file else None)
    server = MCPServer(config)
    return asyncio.run(server.run())


if __name__ == "__main__":
    sys.exit(main())
