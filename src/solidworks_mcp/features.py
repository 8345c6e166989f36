"""Feature parameters and SolidWorks API argument lists.

Tool arguments are expressed in millimetres and degrees. The SolidWorks API
works in metres and radians, so conversion happens here, once, and both the
direct API strategies and the macro synthesizer build their argument lists
from the same functions.
"""

import math
from typing import Annotated, Any, Literal

from pydantic import Field

from solidworks_mcp.schemas import ToolArguments

# Sketch names tried, in order, when a tool does not name its sketch.
DEFAULT_SKETCH_CANDIDATES: tuple[str, ...] = (
    "Sketch1",
    "Sketch2",
    "Sketch3",
    "Sketch4",
    "Sketch5",
)

EndCondition = Literal[
    "Blind",
    "ThroughAll",
    "UpToNext",
    "UpToVertex",
    "UpToSurface",
    "OffsetFromSurface",
    "MidPlane",
]

# swEndConditions_e
END_CONDITIONS: dict[str, int] = {
    "Blind": 0,
    "ThroughAll": 1,
    "UpToNext": 2,
    "UpToVertex": 3,
    "UpToSurface": 4,
    "OffsetFromSurface": 5,
    "MidPlane": 6,
}

# swSelectionMarks used by feature creation
MARK_PROFILE = 0
MARK_SWEEP_PROFILE = 1
MARK_GUIDE_CURVE = 2
MARK_SWEEP_PATH = 4
MARK_REVOLVE_AXIS = 16

Millimetres = Annotated[float, Field(gt=0, le=100000)]
DraftAngle = Annotated[
    float, Field(ge=-89, le=89, description="Draft angle in degrees; negative drafts outward")
]
SketchName = Annotated[str, Field(min_length=1, max_length=255)]


def mm_to_m(value: float) -> float:
    return value / 1000


def sketch_candidates(sketch: str | None) -> tuple[str, ...]:
    """Candidate sketch names, the requested one first."""
    if sketch is None:
        return DEFAULT_SKETCH_CANDIDATES
    return (sketch,) + tuple(c for c in DEFAULT_SKETCH_CANDIDATES if c != sketch)


class SimpleExtrudeParameters(ToolArguments):
    """Blind boss extrusion of the first available sketch."""

    depth: Annotated[Millimetres, Field(description="Extrusion depth in mm")]
    sketch: Annotated[
        SketchName | None,
        Field(description="Sketch to extrude; Sketch1..Sketch5 are tried if omitted"),
    ] = None


class ExtrusionParameters(ToolArguments):
    """Boss extrusion with end condition, draft, and direction control."""

    depth: Annotated[Millimetres, Field(description="Extrusion depth in mm")]
    sketch: SketchName | None = None
    reverse: bool = False
    both_directions: bool = False
    depth2: Annotated[
        Millimetres | None,
        Field(description="Second direction depth in mm; defaults to depth"),
    ] = None
    end_condition: EndCondition = "Blind"
    draft: Annotated[
        float,
        Field(ge=0, le=89, description="Draft angle in degrees; see draft_outward"),
    ] = 0.0
    draft_outward: bool = False
    merge: bool = True


class CutExtrudeParameters(ToolArguments):
    """Cut extrusion through the current solid."""

    depth: Annotated[Millimetres, Field(description="Cut depth in mm")]
    sketch: SketchName | None = None
    reverse: bool = False
    end_condition: EndCondition = "Blind"
    draft: DraftAngle = 0.0
    flip_side_to_cut: bool = False


class RevolveParameters(ToolArguments):
    """Revolve a sketch about an axis."""

    angle: Annotated[
        float, Field(gt=0, le=360, description="Revolution angle in degrees")
    ] = 360.0
    sketch: SketchName | None = None
    axis: Annotated[
        SketchName | None,
        Field(description="Axis or centerline to revolve about"),
    ] = None
    reverse: bool = False
    both_directions: bool = False
    merge: bool = True


class SweepParameters(ToolArguments):
    """Sweep a profile sketch along a path sketch."""

    profile_sketch: SketchName = "Sketch1"
    path_sketch: SketchName = "Sketch2"
    twist_angle: Annotated[
        float, Field(ge=-360, le=360, description="Twist along path in degrees")
    ] = 0.0
    merge: bool = True


class LoftParameters(ToolArguments):
    """Loft through two or more profile sketches."""

    profiles: Annotated[list[SketchName], Field(min_length=2, max_length=32)]
    guide_curves: Annotated[list[SketchName], Field(max_length=32)] = []
    close: bool = False
    merge: bool = True


def extrusion_arguments(params: ExtrusionParameters | SimpleExtrudeParameters) -> tuple[Any, ...]:
    """Arguments for ``IFeatureManager.FeatureExtrusion3``.

    Order: Sd, Flip, Dir, T1, T2, D1, D2, Dchk1, Dchk2, Ddir1, Ddir2, Dang1,
    Dang2, OffsetReverse1, OffsetReverse2, TranslateSurface1,
    TranslateSurface2, Merge, UseFeatScope, UseAutoSelect, T0, StartOffset,
    FlipStartOffset.
    """
    if isinstance(params, SimpleExtrudeParameters):
        params = ExtrusionParameters(depth=params.depth, sketch=params.sketch)

    both = params.both_directions
    end = END_CONDITIONS[params.end_condition]
    depth2 = params.depth2 if params.depth2 is not None else params.depth
    drafted = params.draft != 0
    draft = math.radians(params.draft)

    return (
        not both,
        params.reverse,
        both,
        end,
        end if both else 0,
        mm_to_m(params.depth),
        mm_to_m(depth2) if both else 0.0,
        drafted,
        drafted and both,
        params.draft_outward,
        params.draft_outward and both,
        draft,
        draft if both else 0.0,
        False,
        False,
        False,
        False,
        params.merge,
        False,
        True,
        0,
        0.0,
        False,
    )


def cut_arguments(params: CutExtrudeParameters) -> tuple[Any, ...]:
    """Arguments for ``IFeatureManager.FeatureCut4``.

    Order: Sd, Flip, Dir, T1, T2, D1, D2, Dchk1, Dchk2, Ddir1, Ddir2, Dang1,
    Dang2, OffsetReverse1, OffsetReverse2, TranslateSurface1,
    TranslateSurface2, NormalCut, UseFeatScope, UseAutoSelect,
    AssemblyFeatureScope, AutoSelectComponents, PropagateFeatureToParts, T0,
    StartOffset, FlipStartOffset, OptimizeGeometry.
    """
    drafted = params.draft != 0
    return (
        True,
        params.flip_side_to_cut,
        params.reverse,
        END_CONDITIONS[params.end_condition],
        0,
        mm_to_m(params.depth),
        0.0,
        drafted,
        False,
        params.draft < 0,
        False,
        math.radians(abs(params.draft)),
        0.0,
        False,
        False,
        False,
        False,
        False,
        False,
        True,
        True,
        True,
        False,
        0,
        0.0,
        False,
        False,
    )


def revolve_arguments(params: RevolveParameters) -> tuple[Any, ...]:
    """Arguments for ``IFeatureManager.FeatureRevolve2``.

    Order: SingleDir, IsSolid, IsThin, IsCut, ReverseDir,
    BothDirectionUpToSameEntity, Dir1Type, Dir2Type, Dir1Angle, Dir2Angle,
    OffsetReverse1, OffsetReverse2, OffsetDistance1, OffsetDistance2,
    ThinType, ThinThickness1, ThinThickness2, Merge, UseFeatScope,
    UseAutoSelect.
    """
    both = params.both_directions
    angle = math.radians(params.angle)
    return (
        not both,
        True,
        False,
        False,
        params.reverse,
        False,
        0,
        0,
        angle,
        angle if both else 0.0,
        False,
        False,
        0.0,
        0.0,
        0,
        0.0,
        0.0,
        params.merge,
        True,
        True,
    )


def sweep_arguments(params: SweepParameters) -> tuple[Any, ...]:
    """Arguments for ``IFeatureManager.InsertProtrusionSwept4``.

    Order: Propagate, Alignment, TwistCtrlOption, KeepTangency,
    BAdvancedSmoothing, StartMatchingType, EndMatchingType, IsThinBody,
    Thickness1, Thickness2, ThinType, PathAlign, Merge, UseFeatScope,
    UseAutoSelect, TwistAngle, BMergeSmoothFaces.
    """
    twist = math.radians(params.twist_angle)
    return (
        False,
        False,
        1 if twist else 0,
        False,
        False,
        0,
        0,
        False,
        0.0,
        0.0,
        0,
        0,
        params.merge,
        True,
        True,
        twist,
        True,
    )


def loft_arguments(params: LoftParameters) -> tuple[Any, ...]:
    """Arguments for ``IFeatureManager.InsertProtrusionBlend``.

    Order: Closed, KeepTangency, ForceNonRational, TessToleranceFactor,
    StartMatchingType, EndMatchingType, IsThinBody, Thickness1, Thickness2,
    ThinType, Merge, UseFeatScope, UseAutoSelect.
    """
    return (
        params.close,
        True,
        False,
        1.0,
        0,
        0,
        False,
        0.0,
        0.0,
        0,
        params.merge,
        True,
        True,
    )
