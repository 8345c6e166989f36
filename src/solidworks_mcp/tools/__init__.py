"""MCP tool implementations for SolidWorks.

Tools are organized by category:

- modeling: Documents, selection, features, dimensions
- sketch: Sketches and sketch geometry
- drawing: Drawing tools
- export: Export tools
- analysis: Analysis tools
- vba: Macro generation and execution
"""

from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools import analysis, drawing, export, modeling, sketch, vba
from solidworks_mcp.tools.registry import Tool, ToolRegistry

__all__ = [
    "Tool",
    "ToolRegistry",
    "build_registry",
]


def build_registry(executor: StrategyExecutor) -> ToolRegistry:
    """Register every tool module's tools.

    Args:
        executor: Strategy executor shared by the feature tools.
    """
    registry = ToolRegistry()
    for module in (modeling, sketch, drawing, export, analysis, vba):
        registry.register_all(module.get_tools(executor))
    return registry
