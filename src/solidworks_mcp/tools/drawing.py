"""Drawing tools for the SolidWorks MCP Server.

Drawing views, annotations, and sheets are not automated yet.
"""

from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools.registry import Tool


def get_tools(executor: StrategyExecutor) -> list[Tool]:
    return []
