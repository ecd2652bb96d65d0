"""
YApi MCP service: stdio server wiring and command-line entry point.
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, List, Optional, Sequence

import httpx
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from shared.config import VALID_LOG_LEVELS, YApiSettings, load_settings
from shared.errors import ConfigurationError, YApiAccessError
from shared.logging import configure_logging, get_logger
from shared.metrics import get_metrics_collector

from service_yapi.app.adapters import YApiClient
from service_yapi.app.tools import ToolDispatcher

SERVER_NAME = "yapi-mcp-enhanced"
SERVER_VERSION = "1.0.0"

# Expired entries are also evicted on read; the sweep only reclaims memory.
MIN_SWEEP_INTERVAL_SECONDS = 60


def create_server(dispatcher: ToolDispatcher) -> Server:
    """Register the dispatcher's tools on a low-level MCP server."""
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return dispatcher.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        # Raised errors are returned to the agent as isError results by the SDK.
        return await dispatcher.call_tool(name, arguments)

    return server


class YApiMcpService:
    """MCP service exposing YApi operations over stdio."""

    def __init__(self, settings: YApiSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        configure_logging("yapi", settings.log_level)
        self.logger = get_logger("yapi.service")
        self.metrics = get_metrics_collector("yapi")
        self.client = YApiClient(settings, transport=transport, metrics=self.metrics)
        self.dispatcher = ToolDispatcher(self.client, self.metrics)
        self.server = create_server(self.dispatcher)
        self._sweeper: Optional[asyncio.Task] = None

    async def start(self):
        """Start background components."""
        if self.settings.token and self.settings.has_credentials:
            self.logger.warning("Both project token and credentials configured; token takes precedence")
        if self.settings.metrics_port:
            self.metrics.start_metrics_server(self.settings.metrics_port)
            self.logger.info("Metrics server started", port=self.settings.metrics_port)

        self._sweeper = asyncio.create_task(self._sweep_cache())
        self.logger.info(
            "YApi MCP service started",
            base_url=self.settings.base_url,
            auth_mode=self.settings.auth_mode,
            cache_ttl=self.settings.cache_ttl,
        )

    async def stop(self):
        """Stop background components and release the HTTP client."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            await asyncio.gather(self._sweeper, return_exceptions=True)
            self._sweeper = None
        await self.client.close()
        self.logger.info("YApi MCP service stopped")

    async def _sweep_cache(self):
        interval = max(self.settings.cache_ttl, MIN_SWEEP_INTERVAL_SECONDS)
        while True:
            await asyncio.sleep(interval)
            removed = self.client.cache.cleanup()
            if removed:
                self.logger.debug("Swept expired cache entries", removed=removed)

    async def run(self):
        """Serve MCP requests on stdin/stdout until the peer disconnects."""
        await self.start()
        try:
            async with stdio_server() as (read_stream, write_stream):
                self.logger.info("YApi MCP Server running on stdio")
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.stop()


def _add_connection_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--base-url", help="YApi base URL")
    parser.add_argument("--token", help="YApi project token")
    parser.add_argument("--username", help="YApi login email")
    parser.add_argument("--password", help="YApi login password")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yapi-mcp",
        description="YApi MCP Enhanced Server - AI-friendly API management",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {SERVER_VERSION}")
    subparsers = parser.add_subparsers(dest="command")

    start = subparsers.add_parser("start", help="Start the MCP server")
    _add_connection_options(start)
    start.add_argument("--log-level", choices=VALID_LOG_LEVELS, help="Log level")
    start.add_argument("--cache-ttl", type=int, help="Cache TTL in seconds")

    test = subparsers.add_parser("test-connection", help="Test connection to YApi server")
    _add_connection_options(test)
    return parser


def settings_from_args(args: argparse.Namespace) -> YApiSettings:
    """Environment settings with command-line flags layered on top."""
    return load_settings(
        base_url=getattr(args, "base_url", None),
        token=getattr(args, "token", None),
        username=getattr(args, "username", None),
        password=getattr(args, "password", None),
        log_level=getattr(args, "log_level", None),
        cache_ttl=getattr(args, "cache_ttl", None),
    )


async def serve(settings: YApiSettings) -> None:
    service = YApiMcpService(settings)
    await service.run()


async def check_connection(settings: YApiSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    """List projects once and print them."""
    configure_logging("yapi", settings.log_level)
    async with YApiClient(settings, transport=transport, eager_login=False) as client:
        print("Testing connection to YApi...")
        projects = await client.get_projects()

    if isinstance(projects, dict):
        projects = [projects]
    projects = projects or []
    print("Connection successful!")
    print(f"Found {len(projects)} projects:")
    for project in projects:
        if isinstance(project, dict):
            print(f"  - {project.get('name')} (ID: {project.get('_id')})")
        else:
            print(f"  - (ID: {project})")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "start"

    try:
        settings = settings_from_args(args)
    except ConfigurationError as exc:
        print(f"Failed to start server: {exc.message}", file=sys.stderr)
        return 1

    if command == "test-connection":
        try:
            return asyncio.run(check_connection(settings))
        except YApiAccessError as exc:
            print(f"Connection failed: {exc.message}", file=sys.stderr)
            return 1

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        print("Shutting down gracefully...", file=sys.stderr)
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
