"""Sketch tools for the SolidWorks MCP Server.

Every feature tool works from a sketch. These tools open a sketch on a
reference plane, draw lines, centerlines, circles, and rectangles in it,
and close it again. Coordinates are sketch coordinates in millimetres.
"""

import logging
import math
from typing import Annotated, Any

from pydantic import Field, model_validator

from solidworks_mcp.bridge.session import SolidWorksSession
from solidworks_mcp.features import mm_to_m
from solidworks_mcp.schemas import ToolArguments
from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools.registry import Tool

logger = logging.getLogger(__name__)

CATEGORY = "sketch"

STANDARD_PLANES: dict[str, str] = {
    "Front": "Front Plane",
    "Top": "Top Plane",
    "Right": "Right Plane",
}

Coordinate = Annotated[float, Field(ge=-100000, le=100000, description="Coordinate in mm")]


class CreateSketchArguments(ToolArguments):
    plane: Annotated[
        str,
        Field(
            min_length=1,
            max_length=255,
            description="Front, Top, Right, or the name of a reference plane",
        ),
    ] = "Front"
    offset: Annotated[
        float, Field(ge=0, le=100000, description="Offset from the plane in mm")
    ] = 0.0
    reverse: Annotated[bool, Field(description="Offset to the other side")] = False


class EditSketchArguments(ToolArguments):
    name: Annotated[str, Field(min_length=1, max_length=255, description="Sketch name")]


class ExitSketchArguments(ToolArguments):
    rebuild: Annotated[bool, Field(description="Rebuild after closing the sketch")] = True


class SegmentArguments(ToolArguments):
    x1: Coordinate
    y1: Coordinate
    x2: Coordinate
    y2: Coordinate

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @model_validator(mode="after")
    def check_length(self) -> "SegmentArguments":
        if self.length == 0:
            raise ValueError("start and end points are the same")
        return self

    def coordinates(self) -> tuple[float, ...]:
        """CreateLine arguments: start and end points in metres."""
        return (
            mm_to_m(self.x1),
            mm_to_m(self.y1),
            0.0,
            mm_to_m(self.x2),
            mm_to_m(self.y2),
            0.0,
        )


class LineArguments(SegmentArguments):
    construction: bool = False


class CircleArguments(ToolArguments):
    center_x: Coordinate = 0.0
    center_y: Coordinate = 0.0
    radius: Annotated[float, Field(gt=0, le=100000, description="Radius in mm")]
    construction: bool = False


class RectangleArguments(ToolArguments):
    """Axis-aligned rectangle between two opposite corners."""

    x1: Coordinate
    y1: Coordinate
    x2: Coordinate
    y2: Coordinate
    construction: bool = False

    @model_validator(mode="after")
    def check_area(self) -> "RectangleArguments":
        if self.x1 == self.x2 or self.y1 == self.y2:
            raise ValueError("corners must differ in both x and y")
        return self

    def edges(self) -> list[tuple[float, ...]]:
        """CreateLine arguments for the four edges, in metres."""
        x1, y1, x2, y2 = (mm_to_m(v) for v in (self.x1, self.y1, self.x2, self.y2))
        corners = [(x1, y1), (x2, y1), (x2, y2), (x1, y2)]
        return [
            (*start, 0.0, *end, 0.0)
            for start, end in zip(corners, corners[1:] + corners[:1], strict=True)
        ]


def get_tools(executor: StrategyExecutor) -> list[Tool]:
    """Sketch tools."""

    async def create_sketch(
        args: CreateSketchArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        plane = STANDARD_PLANES.get(args.plane, args.plane)
        offset = mm_to_m(args.offset)
        name = await session.insert_sketch(plane, offset, args.reverse)
        logger.debug("Opened sketch %s on %s", name, plane)
        return {"sketch": name, "plane": plane, "offset": args.offset}

    async def edit_sketch(
        args: EditSketchArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        await session.edit_sketch(args.name)
        return {"editing": args.name}

    async def exit_sketch(
        args: ExitSketchArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        exited = await session.exit_sketch(rebuild=args.rebuild)
        return {"exited": exited, "rebuilt": exited and args.rebuild}

    async def sketch_line(
        args: LineArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        count = await session.add_sketch_segments(
            "CreateLine", [args.coordinates()], args.construction
        )
        return {"segments": count, "length": args.length}

    async def sketch_centerline(
        args: SegmentArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        count = await session.add_sketch_segments("CreateCenterLine", [args.coordinates()])
        return {"segments": count, "length": args.length}

    async def sketch_circle(
        args: CircleArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        circle = (mm_to_m(args.center_x), mm_to_m(args.center_y), 0.0, mm_to_m(args.radius))
        count = await session.add_sketch_segments(
            "CreateCircleByRadius", [circle], args.construction
        )
        return {"segments": count, "radius": args.radius}

    async def sketch_rectangle(
        args: RectangleArguments, session: SolidWorksSession
    ) -> dict[str, Any]:
        count = await session.add_sketch_segments("CreateLine", args.edges(), args.construction)
        return {
            "segments": count,
            "width": abs(args.x2 - args.x1),
            "height": abs(args.y2 - args.y1),
        }

    return [
        Tool(
            "create_sketch",
            "Open a new sketch on Front, Top, Right, or a named plane, "
            "optionally offset from it in mm.",
            CreateSketchArguments,
            create_sketch,
            CATEGORY,
        ),
        Tool(
            "edit_sketch",
            "Open an existing sketch for editing.",
            EditSketchArguments,
            edit_sketch,
            CATEGORY,
        ),
        Tool(
            "exit_sketch",
            "Close the sketch being edited and optionally rebuild.",
            ExitSketchArguments,
            exit_sketch,
            CATEGORY,
        ),
        Tool(
            "sketch_line",
            "Draw a line in the open sketch between two points in mm.",
            LineArguments,
            sketch_line,
            CATEGORY,
        ),
        Tool(
            "sketch_centerline",
            "Draw a centerline in the open sketch, e.g. as a revolve axis.",
            SegmentArguments,
            sketch_centerline,
            CATEGORY,
        ),
        Tool(
            "sketch_circle",
            "Draw a circle in the open sketch by center and radius in mm.",
            CircleArguments,
            sketch_circle,
            CATEGORY,
        ),
        Tool(
            "sketch_rectangle",
            "Draw an axis-aligned rectangle in the open sketch from two corners in mm.",
            RectangleArguments,
            sketch_rectangle,
            CATEGORY,
        ),
    ]
