"""SolidWorks MCP Server entry point.

Publishes the tool registry over the Model Context Protocol (stdio) and
routes every call through the dispatch pipeline. The SolidWorks session is
created when the server starts and attached lazily on the first tool that
needs it.
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent
from mcp.types import Tool as MCPTool

from solidworks_mcp import __version__
from solidworks_mcp.bridge.session import SolidWorksSession
from solidworks_mcp.config import get_config
from solidworks_mcp.dispatch import ToolDispatcher
from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools import build_registry

logger = logging.getLogger(__name__)

SERVER_NAME = "solidworks-mcp"

# Global session instance
_session: SolidWorksSession | None = None

executor = StrategyExecutor()
registry = build_registry(executor)


async def get_session() -> SolidWorksSession:
    """Get the process-wide SolidWorks session.

    Returns:
        The session created at server startup.

    Raises:
        RuntimeError: If the server has not started.
    """
    if _session is None:
        msg = "SolidWorks session not initialized"
        raise RuntimeError(msg)
    return _session


dispatcher = ToolDispatcher(registry, get_session)


@asynccontextmanager
async def lifespan(server: Server) -> AsyncIterator[dict[str, Any]]:
    """Create the session on startup and release it on shutdown."""
    global _session

    config = get_config()
    executor.timeout_ms = config.strategy_timeout_ms
    _session = SolidWorksSession(config)
    logger.info(
        "SolidWorks MCP Server %s starting (%d tools, ProgID %s)",
        __version__,
        len(registry),
        config.prog_id,
    )
    try:
        yield {"session": _session}
    finally:
        await _session.close()
        _session = None
        logger.info("SolidWorks MCP Server stopped")


mcp = Server(SERVER_NAME, version=__version__, lifespan=lifespan)


@mcp.list_tools()
async def list_tools() -> list[MCPTool]:
    return [MCPTool(**tool.describe()) for tool in registry.list()]


@mcp.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    """Run a tool and return its envelope as JSON text."""
    envelope = await dispatcher.dispatch(name, arguments)
    return [TextContent(type="text", text=json.dumps(envelope, default=str))]


async def serve() -> None:
    """Run the server over stdio until the client disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        await mcp.run(read_stream, write_stream, mcp.create_initialization_options())


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="Model Context Protocol server for SolidWorks automation",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: SOLIDWORKS_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    # stdout carries the protocol; logs go to stderr.
    logging.basicConfig(
        level=args.log_level or get_config().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
