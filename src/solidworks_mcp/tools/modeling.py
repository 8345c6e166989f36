"""Part and assembly modeling tools for the SolidWorks MCP Server.

Document lifecycle, selection, and feature creation. Feature tools that
have more than one way of being performed are run through the strategy
executor and report which strategy produced the feature.
"""

import logging
from typing import Annotated, Any

from pydantic import Field

from solidworks_mcp.bridge.base import DocumentType
from solidworks_mcp.bridge.session import SolidWorksSession
from solidworks_mcp.errors import CommandExecutionError, EntityNotFoundError
from solidworks_mcp.features import (
    MARK_PROFILE,
    MARK_REVOLVE_AXIS,
    CutExtrudeParameters,
    ExtrusionParameters,
    LoftParameters,
    RevolveParameters,
    SimpleExtrudeParameters,
    SweepParameters,
    cut_arguments,
    extrusion_arguments,
    mm_to_m,
    revolve_arguments,
    sketch_candidates,
)
from solidworks_mcp.macros import synthesize
from solidworks_mcp.schemas import ToolArguments
from solidworks_mcp.strategies import Strategy, StrategyExecutor, StrategyResult
from solidworks_mcp.tools.registry import Tool

logger = logging.getLogger(__name__)

CATEGORY = "modeling"

# swCommands_e.swCommands_Extrude
EXTRUDE_COMMAND_ID = 20168
# swRebuildOptions_e.swRebuildAll
REBUILD_ALL = 1


class NoArguments(ToolArguments):
    """Tool takes no arguments."""


class CreateDocumentArguments(ToolArguments):
    template: Annotated[
        str | None,
        Field(min_length=1, description="Template path; configured default if omitted"),
    ] = None


class OpenModelArguments(ToolArguments):
    path: Annotated[
        str,
        Field(min_length=1, description="Path to a .sldprt, .sldasm, or .slddrw file"),
    ]


class CloseModelArguments(ToolArguments):
    save: Annotated[bool, Field(description="Save before closing")] = False


class SelectEntityArguments(ToolArguments):
    name: Annotated[str, Field(min_length=1, max_length=255)]
    entity_type: Annotated[
        str,
        Field(
            pattern=r"^[A-Z][A-Z0-9]*$",
            description="Selection type such as SKETCH, PLANE, FACE, EDGE, AXIS",
        ),
    ] = "SKETCH"
    append: bool = False
    mark: Annotated[int, Field(ge=0, le=1024)] = 0


class DimensionArguments(ToolArguments):
    name: Annotated[
        str,
        Field(min_length=1, max_length=255, description='Full name, e.g. "D1@Sketch1"'),
    ]


class SetDimensionArguments(DimensionArguments):
    value: Annotated[float, Field(gt=0, le=100000, description="New value in mm")]


def _feature_name(feature: Any) -> str:
    return str(feature.Name)


def _latest_feature(doc: Any) -> str:
    feature = doc.FeatureByPositionReverse(0)
    if feature is None:
        raise CommandExecutionError("FeatureByPositionReverse", "no feature found")
    return _feature_name(feature)


def feature_manager_strategy(
    session: SolidWorksSession,
    member: str,
    arguments: tuple[Any, ...],
    sketch: str | None,
    axis: str | None = None,
) -> Strategy:
    """Select the profile (and axis) and call an IFeatureManager member."""

    async def execute() -> dict[str, Any]:
        await session.clear_selection()
        selected = await session.select_first(
            sketch_candidates(sketch), "SKETCH", MARK_PROFILE
        )
        if axis is not None and not await session.select_entity(
            axis, "AXIS", append=True, mark=MARK_REVOLVE_AXIS
        ):
            raise EntityNotFoundError("axis", [axis])

        def create(doc: Any) -> str:
            feature = getattr(doc.FeatureManager, member)(*arguments)
            if feature is None:
                raise CommandExecutionError(member, "returned no feature")
            return _feature_name(feature)

        name = await session.with_document(member, create)
        return {"feature": name, "sketch": selected}

    return Strategy("feature-manager", execute, session.clear_selection)


def macro_strategy(
    session: SolidWorksSession, kind: str, params: ToolArguments
) -> Strategy:
    """Generate the feature macro, run it, and report the feature it made."""

    async def execute() -> dict[str, Any]:
        script = synthesize(kind, params)
        await session.run_macro(script)
        name = await session.with_document("read new feature", _latest_feature)
        return {"feature": name, "macro": script.procedure}

    return Strategy("macro", execute, session.clear_selection)


def get_tools(executor: StrategyExecutor) -> list[Tool]:
    """Modeling tools.

    Args:
        executor: Strategy executor shared by all feature tools.
    """

    # =========================================================================
    # Documents
    # =========================================================================

    async def create_part(
        args: CreateDocumentArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        info = await session.new_document(DocumentType.PART, args.template)
        return info.to_dict()

    async def create_assembly(
        args: CreateDocumentArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        info = await session.new_document(DocumentType.ASSEMBLY, args.template)
        return info.to_dict()

    async def open_model(
        args: OpenModelArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        info = await session.open_document(args.path)
        return info.to_dict()

    async def close_model(
        args: CloseModelArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        title = await session.close_document(save=args.save)
        return {"closed": title, "saved": args.save}

    async def get_active_document(
        args: NoArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        info = await session.get_current_document()
        return info.to_dict()

    # =========================================================================
    # Selection
    # =========================================================================

    async def clear_selection(
        args: NoArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        await session.clear_selection()
        return {"cleared": True}

    async def select_entity(
        args: SelectEntityArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        selected = await session.select_entity(
            args.name, args.entity_type, append=args.append, mark=args.mark
        )
        if not selected:
            raise EntityNotFoundError(args.entity_type.lower(), [args.name])
        return {"selected": args.name, "entity_type": args.entity_type}

    # =========================================================================
    # Features
    # =========================================================================

    async def simple_extrude(
        args: SimpleExtrudeParameters, session: SolidWorksSession
    ) -> StrategyResult:
        candidates = sketch_candidates(args.sketch)
        depth = mm_to_m(args.depth)

        async def direct() -> str:
            await session.clear_selection()
            sketch = await session.select_first(candidates, "SKETCH", MARK_PROFILE)

            def create(doc: Any) -> str:
                feature = doc.FeatureManager.FeatureExtrusion3(*extrusion_arguments(args))
                if feature is None:
                    raise CommandExecutionError("FeatureExtrusion3", "returned no feature")
                return _feature_name(feature)

            name = await session.with_document("FeatureExtrusion3", create)
            logger.debug("Extruded %s as %s", sketch, name)
            return f"Extrusion created: {name}"

        async def command() -> str:
            await session.exit_sketch()
            await session.clear_selection()
            sketch = await session.select_first(candidates, "SKETCH", MARK_PROFILE)
            await session.run_command(EXTRUDE_COMMAND_ID)

            def fill_page(doc: Any) -> None:
                page = doc.IPropertyManagerPage
                if page is None:
                    raise CommandExecutionError("Extrude", "property page did not open")
                page.SetValue("Depth", depth)
                page.Close(True)

            await session.with_document("Extrude property page", fill_page)
            logger.debug("Extruded %s with the Extrude command", sketch)
            return "Extrusion created via command"

        async def close_page() -> None:
            def cancel(doc: Any) -> None:
                page = doc.IPropertyManagerPage
                if page is not None:
                    page.Close(False)
                doc.ClearSelection2(True)

            await session.with_document("cancel Extrude property page", cancel)

        async def macro() -> str:
            script = synthesize("extrude", args)
            await session.run_macro(script)
            name = await session.with_document("read new feature", _latest_feature)
            return f"Extrusion created via macro: {name}"

        return await executor.run(
            "simple_extrude",
            [
                Strategy("direct", direct, session.clear_selection),
                Strategy("command-id", command, close_page),
                Strategy("macro", macro, session.clear_selection),
            ],
        )

    async def create_extrusion(
        args: ExtrusionParameters, session: SolidWorksSession
    ) -> StrategyResult:
        return await executor.run(
            "create_extrusion",
            [
                feature_manager_strategy(
                    session, "FeatureExtrusion3", extrusion_arguments(args), args.sketch
                ),
                macro_strategy(session, "extrude", args),
            ],
        )

    async def create_cut_extrude(
        args: CutExtrudeParameters, session: SolidWorksSession
    ) -> StrategyResult:
        return await executor.run(
            "create_cut_extrude",
            [
                feature_manager_strategy(
                    session, "FeatureCut4", cut_arguments(args), args.sketch
                ),
                macro_strategy(session, "cut_extrude", args),
            ],
        )

    async def create_revolve(
        args: RevolveParameters, session: SolidWorksSession
    ) -> StrategyResult:
        return await executor.run(
            "create_revolve",
            [
                feature_manager_strategy(
                    session,
                    "FeatureRevolve2",
                    revolve_arguments(args),
                    args.sketch,
                    axis=args.axis,
                ),
                macro_strategy(session, "revolve", args),
            ],
        )

    # Sweep and loft need marked multi-selections that only hold up reliably
    # inside a single macro run.
    async def create_sweep(
        args: SweepParameters, session: SolidWorksSession
    ) -> StrategyResult:
        return await executor.run("create_sweep", [macro_strategy(session, "sweep", args)])

    async def create_loft(
        args: LoftParameters, session: SolidWorksSession
    ) -> StrategyResult:
        return await executor.run("create_loft", [macro_strategy(session, "loft", args)])

    async def rebuild_model(
        args: NoArguments, session: SolidWorksSession
    ) -> StrategyResult:
        def rebuild_with(label: str, member: str, *call_args: Any) -> Strategy:
            async def execute() -> dict[str, Any]:
                def rebuild(doc: Any) -> str:
                    result = getattr(doc, member)(*call_args)
                    # Rebuild() is void; the other two report success.
                    if result is not None and not result:
                        raise CommandExecutionError(member, "returned False")
                    return str(doc.GetTitle())

                title = await session.with_document(member, rebuild)
                return {"rebuilt": title}

            return Strategy(label, execute)

        return await executor.run(
            "rebuild_model",
            [
                rebuild_with("force-rebuild3", "ForceRebuild3", False),
                rebuild_with("edit-rebuild3", "EditRebuild3"),
                rebuild_with("rebuild", "Rebuild", REBUILD_ALL),
            ],
        )

    # =========================================================================
    # Dimensions
    # =========================================================================

    async def get_dimension(
        args: DimensionArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        def read(doc: Any) -> float:
            parameter = doc.Parameter(args.name)
            if parameter is None:
                raise EntityNotFoundError("dimension", [args.name])
            return float(parameter.SystemValue) * 1000

        value = await session.with_document(f"read dimension {args.name}", read)
        return {"name": args.name, "value": value, "units": "mm"}

    async def set_dimension(
        args: SetDimensionArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        def write(doc: Any) -> None:
            parameter = doc.Parameter(args.name)
            if parameter is None:
                raise EntityNotFoundError("dimension", [args.name])
            parameter.SystemValue = mm_to_m(args.value)
            doc.EditRebuild3()

        await session.with_document(f"set dimension {args.name}", write)
        logger.debug("Set %s to %smm", args.name, args.value)
        return {"name": args.name, "value": args.value, "units": "mm"}

    return [
        Tool(
            "create_part",
            "Create a new part document from a template.",
            CreateDocumentArguments,
            create_part,
            CATEGORY,
        ),
        Tool(
            "create_assembly",
            "Create a new assembly document from a template.",
            CreateDocumentArguments,
            create_assembly,
            CATEGORY,
        ),
        Tool(
            "open_model",
            "Open a part, assembly, or drawing file.",
            OpenModelArguments,
            open_model,
            CATEGORY,
        ),
        Tool(
            "close_model",
            "Close the active document, optionally saving it first.",
            CloseModelArguments,
            close_model,
            CATEGORY,
        ),
        Tool(
            "get_active_document",
            "Describe the active document (title, path, type, unsaved changes).",
            NoArguments,
            get_active_document,
            CATEGORY,
        ),
        Tool(
            "clear_selection",
            "Clear the selection in the active document.",
            NoArguments,
            clear_selection,
            CATEGORY,
        ),
        Tool(
            "select_entity",
            "Select a named entity in the active document.",
            SelectEntityArguments,
            select_entity,
            CATEGORY,
        ),
        Tool(
            "simple_extrude",
            "Extrude a sketch by a blind depth in mm. Tries the feature API, "
            "then the Extrude command, then a generated macro.",
            SimpleExtrudeParameters,
            simple_extrude,
            CATEGORY,
        ),
        Tool(
            "create_extrusion",
            "Create a boss extrusion with end condition, draft, and direction options.",
            ExtrusionParameters,
            create_extrusion,
            CATEGORY,
        ),
        Tool(
            "create_cut_extrude",
            "Cut-extrude a sketch through the current solid.",
            CutExtrudeParameters,
            create_cut_extrude,
            CATEGORY,
        ),
        Tool(
            "create_revolve",
            "Revolve a sketch about an axis by an angle in degrees.",
            RevolveParameters,
            create_revolve,
            CATEGORY,
        ),
        Tool(
            "create_sweep",
            "Sweep a profile sketch along a path sketch.",
            SweepParameters,
            create_sweep,
            CATEGORY,
        ),
        Tool(
            "create_loft",
            "Loft through two or more profile sketches.",
            LoftParameters,
            create_loft,
            CATEGORY,
        ),
        Tool(
            "rebuild_model",
            "Rebuild the active document.",
            NoArguments,
            rebuild_model,
            CATEGORY,
        ),
        Tool(
            "get_dimension",
            "Read a dimension value in mm.",
            DimensionArguments,
            get_dimension,
            CATEGORY,
        ),
        Tool(
            "set_dimension",
            "Set a dimension value in mm and rebuild.",
            SetDimensionArguments,
            set_dimension,
            CATEGORY,
        ),
    ]
