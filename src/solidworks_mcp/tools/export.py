"""Export tools for the SolidWorks MCP Server.

File export (STEP, IGES, STL, PDF) is not automated yet.
"""

from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools.registry import Tool


def get_tools(executor: StrategyExecutor) -> list[Tool]:
    return []
