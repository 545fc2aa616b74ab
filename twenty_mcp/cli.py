"""
Twenty MCP CLI: runs the Twenty CRM MCP server on stdio.

Usage:
    twenty-crm-mcp [--quiet | --verbose | --log-level LEVEL] [--schema-path PATH]
    twenty-crm-mcp --list-tools

Environment:
    TWENTY_API_KEY       Bearer token for the Twenty REST API (required to serve)
    TWENTY_BASE_URL      API root (default https://api.twenty.com)
    SCHEMA_PATH          Directory holding the schema export
    TWENTY_MCP_LOG_FILE  Write logs to this file instead of stderr
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from twenty_mcp.core.config import LOG_LEVELS, TwentyConfig, normalize_log_level
from twenty_mcp.mcp.definitions import ToolSynthesizer
from twenty_mcp.mcp.handlers import ToolDispatcher
from twenty_mcp.mcp.server import McpServer
from twenty_mcp.schema.store import MetadataStore
from twenty_mcp.schema.watcher import SchemaWatcher
from twenty_mcp.sdk.client import TwentyClient
from twenty_mcp.version import __version__

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("Twenty.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twenty-crm-mcp",
        description="MCP server exposing Twenty CRM objects as schema-derived tools.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  twenty-crm-mcp\n"
               "  twenty-crm-mcp --quiet\n"
               "  twenty-crm-mcp --schema-path ./twenty-crm-schema-export --list-tools\n",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Only log warnings and errors.",
    )
    verbosity.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log debug output.",
    )
    verbosity.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS),
        default=None,
        help="Explicit log level (default: MCP_LOG_LEVEL or info).",
    )
    parser.add_argument(
        "--schema-path",
        default=None,
        metavar="PATH",
        help="Schema export directory (overrides SCHEMA_PATH).",
    )
    parser.add_argument(
        "--list-tools",
        action="store_true",
        default=False,
        help="Print the synthesized tool names and exit.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_log_level(args: argparse.Namespace, configured: str) -> str:
    if args.quiet:
        return "quiet"
    if args.verbose:
        return "verbose"
    if args.log_level:
        return normalize_log_level(args.log_level)
    return configured


def configure_logging(level: str) -> None:
    log_file = os.environ.get("TWENTY_MCP_LOG_FILE")
    kwargs = {"filename": log_file, "filemode": "a"} if log_file else {"stream": sys.stderr}
    logging.basicConfig(level=LOG_LEVELS[level], format=LOG_FORMAT, **kwargs)


def list_tools(config: TwentyConfig) -> int:
    watcher = SchemaWatcher(MetadataStore(config.schema_path), extra_objects=config.extra_objects)
    for tool in ToolSynthesizer(watcher.registry).build():
        print(tool["name"])
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = TwentyConfig.from_env(schema_path=args.schema_path)
    config = config.model_copy(update={"log_level": resolve_log_level(args, config.log_level)})
    configure_logging(config.log_level)

    if args.list_tools:
        return list_tools(config)

    try:
        api_key = config.require_api_key()
    except ValueError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if config.schema_path:
        logger.info("Using schema export at %s", config.schema_path)
    else:
        logger.warning("No schema export directory found; running with the fallback object set")

    watcher = SchemaWatcher(MetadataStore(config.schema_path), extra_objects=config.extra_objects)
    with TwentyClient(api_key, base_url=config.base_url, timeout=config.request_timeout) as client:
        dispatcher = ToolDispatcher(client, watcher, max_chars=config.tool_response_max_chars)
        server = McpServer(dispatcher)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Interrupted; shutting down")
        finally:
            server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
