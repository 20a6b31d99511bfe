#!/usr/bin/env python3
"""MCP stdio server that proxies tools from the remote orchestrator."""

import asyncio
import errno
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

import anyio
from mcp import types
from mcp.server.lowlevel.server import Server
from mcp.server.stdio import stdio_server

from . import __version__
from .config import Settings, get_settings
from .logging.setup import get_instance_id, setup_logging, shutdown_logging
from .orchestrator.client import OrchestratorClient
from .proxy import ProxyFront
from .sessions.registry import SessionRegistry
from .utils.redaction import redact_dict
from .vendor.dispatcher import VendorDispatcher

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-vendor-proxy"

BENIGN_DISCONNECTS = (
    asyncio.CancelledError,
    BrokenPipeError,
    ConnectionResetError,
    EOFError,
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
)


def build_server(front: ProxyFront) -> Server:
    """Wire a ``ProxyFront`` into a low-level MCP server."""
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return await front.list_tools()

    # The orchestrator's schema is authoritative; arguments go through as-is
    @server.call_tool(validate_input=False)
    async def call_tool(
        name: str, arguments: Optional[Dict[str, Any]]
    ) -> types.CallToolResult:
        return await front.call_tool(name, arguments)

    return server


async def serve(settings: Settings) -> None:
    """Run the proxy over stdio until the client disconnects."""
    registry = SessionRegistry(settings.database, settings.browser)
    dispatcher = VendorDispatcher(registry)

    async with OrchestratorClient(
        settings.orchestrator_url,
        api_key=settings.orchestrator.api_key,
        timeout=settings.orchestrator.timeout,
    ) as client:
        if await client.health_check():
            logger.info(f"Orchestrator at {client.base_url} is healthy")
        else:
            logger.warning(
                f"Orchestrator at {client.base_url} did not answer /health; continuing"
            )

        logger.info(
            f"Proxying resource {settings.resource_name} "
            f"with args {redact_dict(settings.resource.args)}"
        )
        front = ProxyFront(
            client, dispatcher, settings.resource_name, settings.resource.args
        )
        server = build_server(front)

        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream, write_stream, server.create_initialization_options()
                )
        finally:
            failures = await registry.close_all()
            for failure in failures:
                logger.warning(f"Cleanup: {failure}")
            logger.info("Sessions closed")


def _all_benign(group: BaseExceptionGroup) -> bool:
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            if not _all_benign(exc):
                return False
        elif not isinstance(exc, BENIGN_DISCONNECTS):
            if isinstance(exc, OSError) and exc.errno == errno.EPIPE:
                continue
            return False
    return True


def _print_help() -> None:
    print("MCP Vendor Proxy")
    print("\nUsage: mcp-vendor-proxy")
    print("\nA Model Context Protocol server that exposes a remote orchestrator's")
    print("tools and executes its database and browser instructions locally.")
    print("\nOptions:")
    print("  -h, --help     Show this help message and exit")
    print("  -V, --version  Show version and exit")
    print("\nEnvironment:")
    print("  ORCHESTRATOR_URL      Orchestrator base URL (default http://localhost:3001)")
    print("  MCP_RESOURCE_NAME     Resource whose tools are proxied")
    print("  MCP_RESOURCE_ARGS     JSON object of resource arguments")
    print("  MCP_CONFIG_FILE       YAML configuration file (default config.yaml)")


def main():
    """Main entry point."""
    if "--help" in sys.argv or "-h" in sys.argv:
        _print_help()
        sys.exit(0)

    if "--version" in sys.argv or "-V" in sys.argv:
        print(__version__)
        sys.exit(0)

    # Ignore SIGPIPE to prevent crashes on broken pipes (Unix only)
    if sys.platform != "win32":
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)

    setup_logging()
    settings = get_settings()
    logger.info(
        f"Starting {SERVER_NAME} {__version__} (instance {get_instance_id()}) "
        f"for resource {settings.resource_name}"
    )

    try:
        asyncio.run(serve(settings))
        logger.info("MCP server exited normally")
    except KeyboardInterrupt:
        logger.info("MCP server interrupted by user")
    except (EOFError, BrokenPipeError) as e:
        logger.info(f"Client disconnected: {type(e).__name__}")
    except OSError as e:
        if e.errno != errno.EPIPE:
            logger.error(f"MCP server crashed: {e}")
            raise
        logger.info("Detected broken pipe - client disconnected")
    except BaseExceptionGroup as e:
        if not _all_benign(e):
            logger.error("Server crashed with ExceptionGroup containing real errors")
            raise
        logger.info("Suppressed ExceptionGroup containing only benign disconnect errors")
    finally:
        shutdown_logging()


if __name__ == "__main__":
    main()
