"""VBA macro tools for the SolidWorks MCP Server.

Macros are generated from the same feature parameters the modeling tools
accept. Generation is offline and does not need SolidWorks; running a
macro does.
"""

from typing import Annotated, Any, Literal

from pydantic import Field, model_validator

from solidworks_mcp.bridge.session import SolidWorksSession
from solidworks_mcp.macros import DEFAULT_MODULE, parameter_model, synthesize
from solidworks_mcp.schemas import ToolArguments, validate_nested
from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools.registry import Tool

CATEGORY = "vba"

MacroKind = Literal["extrude", "cut_extrude", "revolve", "sweep", "loft", "method_call"]

ProcedureName = Annotated[str, Field(pattern=r"^[A-Za-z][A-Za-z0-9_]*$", max_length=64)]


class GenerateMacroArguments(ToolArguments):
    feature: Annotated[MacroKind, Field(description="Kind of macro to generate")]
    parameters: Annotated[
        dict[str, Any],
        Field(description="Parameters for the feature, as for the modeling tool"),
    ] = {}

    @model_validator(mode="after")
    def check_parameters(self) -> "GenerateMacroArguments":
        validate_nested(parameter_model(self.feature), self.parameters, "parameters")
        return self


class RunMacroFileArguments(ToolArguments):
    path: Annotated[str, Field(min_length=1, description="Path to a .swp or .swb file")]
    module: ProcedureName = DEFAULT_MODULE
    procedure: ProcedureName = "main"


def get_tools(executor: StrategyExecutor) -> list[Tool]:
    """VBA tools."""

    async def generate_feature_macro(
        args: GenerateMacroArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        """Render a macro without running it."""
        script = synthesize(args.feature, args.parameters)
        return script.to_dict()

    async def run_macro_file(
        args: RunMacroFileArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        result = await session.run_macro_file(args.path, args.module, args.procedure)
        return result.to_dict()

    async def run_generated_macro(
        args: GenerateMacroArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        script = synthesize(args.feature, args.parameters)
        result = await session.run_macro(script)
        return {**result.to_dict(), "commands": list(script.commands)}

    return [
        Tool(
            "generate_feature_macro",
            "Generate the VBA macro for a feature without running it.",
            GenerateMacroArguments,
            generate_feature_macro,
            CATEGORY,
            requires_session=False,
        ),
        Tool(
            "run_macro_file",
            "Run a procedure from an existing macro file.",
            RunMacroFileArguments,
            run_macro_file,
            CATEGORY,
        ),
        Tool(
            "run_generated_macro",
            "Generate the VBA macro for a feature and run it.",
            GenerateMacroArguments,
            run_generated_macro,
            CATEGORY,
        ),
    ]
