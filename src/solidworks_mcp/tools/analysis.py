"""Analysis tools for the SolidWorks MCP Server.

Mass properties and interference checks are not automated yet.
"""

from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools.registry import Tool


def get_tools(executor: StrategyExecutor) -> list[Tool]:
    return []
