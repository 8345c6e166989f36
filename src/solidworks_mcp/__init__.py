"""SolidWorks MCP Server - AI assistant integration for SolidWorks.

This package provides an MCP (Model Context Protocol) server that lets AI
assistants drive SolidWorks over COM automation: create and open models,
build features with fallback strategies, and generate or run VBA macros.

Example:
    Run the MCP server::

        $ solidworks-mcp

    Or with Python::

        >>> from solidworks_mcp.server import main
        >>> main()
"""

__version__ = "0.1.0"

from solidworks_mcp.server import mcp

__all__ = ["__version__", "mcp"]
