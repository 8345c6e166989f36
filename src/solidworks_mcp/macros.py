"""VBA macro synthesis for SolidWorks feature operations.

Some operations are unreliable or unsupported through late-bound COM calls
on a given SolidWorks release. For those, this module renders a complete VBA
program that performs the operation inside SolidWorks' own macro runner.

Synthesis is a pure function of (kind, parameters): identical inputs yield
byte-identical text, and nothing here talks to SolidWorks. Submitting the
script is the session adapter's job (``SolidWorksSession.run_macro``).

Every script follows the same shape:

- ``Option Explicit`` with every variable declared up front
- objects acquired with ``Set`` and released with ``Set ... = Nothing``
- failures reported with ``Err.Raise`` so ``RunMacro2`` sees them
- one COM argument per continuation line
"""

import hashlib
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import Field

from solidworks_mcp.features import (
    MARK_GUIDE_CURVE,
    MARK_PROFILE,
    MARK_REVOLVE_AXIS,
    MARK_SWEEP_PATH,
    MARK_SWEEP_PROFILE,
    CutExtrudeParameters,
    ExtrusionParameters,
    LoftParameters,
    RevolveParameters,
    SweepParameters,
    cut_arguments,
    extrusion_arguments,
    loft_arguments,
    revolve_arguments,
    sketch_candidates,
    sweep_arguments,
)
from solidworks_mcp.schemas import ToolArguments, validate_arguments

LANGUAGE = "VBA"
DEFAULT_MODULE = "Module1"
INDENT = "    "

# Application object, active document, feature manager, created feature.
_STANDARD_OBJECTS: tuple[str, ...] = ("swApp", "swModel", "swFeatureMgr", "swFeature")


@dataclass(frozen=True)
class MacroScript:
    """A generated macro ready for the SolidWorks macro runner.

    Attributes:
        language: Scripting dialect of ``source``.
        module: Module name passed to ``RunMacro2``.
        procedure: Entry-point Sub name passed to ``RunMacro2``.
        source: Complete program text.
        commands: API members the script invokes to do its work.
    """

    language: str
    module: str
    procedure: str
    source: str
    commands: tuple[str, ...]

    @property
    def digest(self) -> str:
        return hashlib.sha256(self.source.encode("utf-8")).hexdigest()

    @property
    def filename(self) -> str:
        """Stable file name derived from the procedure and content."""
        return f"{self.procedure}_{self.digest[:12]}.swb"

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "module": self.module,
            "procedure": self.procedure,
            "commands": list(self.commands),
            "source": self.source,
        }


_CONTROL_CHARACTERS = re.compile(r"([\x00-\x1f\x7f])")


def _vba_string(value: str) -> str:
    """String literal, with control characters joined in as ``Chr(n)``.

    A VBA string literal cannot span lines, so a line break inside a name
    must never reach the source as a raw character.
    """
    parts = []
    for index, piece in enumerate(_CONTROL_CHARACTERS.split(value)):
        if index % 2:
            parts.append(f"Chr({ord(piece)})")
        elif piece or not parts:
            parts.append('"' + piece.replace('"', '""') + '"')
    return " & ".join(parts)


def vba_literal(value: Any) -> str:
    """Render a Python value as a VBA literal.

    Raises:
        TypeError: If the value has no VBA literal form.
    """
    if value is None:
        return "Nothing"
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return _vba_string(value)
    msg = f"Cannot render {type(value).__name__} as a VBA literal"
    raise TypeError(msg)


def _call(target: str, arguments: Sequence[Any], depth: int = 1) -> list[str]:
    """A COM call with one argument per continuation line."""
    pad = INDENT * depth
    if not arguments:
        return [f"{pad}{target}()"]
    lines = [f"{pad}{target}( _"]
    last = len(arguments) - 1
    for index, argument in enumerate(arguments):
        suffix = ", _" if index < last else ")"
        lines.append(f"{pad}{INDENT}{vba_literal(argument)}{suffix}")
    return lines


def _raise(procedure: str, code: int, message: str, depth: int = 1) -> str:
    return (
        f"{INDENT * depth}Err.Raise vbObjectError + {code}, "
        f"{vba_literal(procedure)}, {vba_literal(message)}"
    )


def _select_first(
    procedure: str,
    candidates: Sequence[str],
    entity_type: str,
    mark: int,
    append: bool,
    failure: str,
    code: int,
) -> list[str]:
    """Select the first candidate that exists, raise if none does."""
    names = ", ".join(vba_literal(c) for c in candidates)
    return [
        f"{INDENT}candidates = Array({names})",
        f"{INDENT}selected = False",
        f"{INDENT}For i = 0 To UBound(candidates)",
        f"{INDENT * 2}If swModel.Extension.SelectByID2(candidates(i), "
        f"{vba_literal(entity_type)}, 0, 0, 0, {vba_literal(append)}, {mark}, "
        "Nothing, 0) Then",
        f"{INDENT * 3}selected = True",
        f"{INDENT * 3}Exit For",
        f"{INDENT * 2}End If",
        f"{INDENT}Next i",
        f"{INDENT}If Not selected Then",
        _raise(procedure, code, failure, depth=2),
        f"{INDENT}End If",
    ]


def _select_named(
    procedure: str,
    name: str,
    entity_type: str,
    mark: int,
    append: bool,
    code: int,
) -> list[str]:
    return [
        f"{INDENT}If Not swModel.Extension.SelectByID2({vba_literal(name)}, "
        f"{vba_literal(entity_type)}, 0, 0, 0, {vba_literal(append)}, {mark}, "
        "Nothing, 0) Then",
        _raise(procedure, code, f"{entity_type} not found: {name}", depth=2),
        f"{INDENT}End If",
    ]


def _procedure(
    procedure: str,
    title: str,
    body: list[str],
    scalars: Sequence[tuple[str, str]] = (),
) -> str:
    """Wrap a body in the standard prologue and teardown."""
    lines = [
        f"' {title}",
        "' Generated by solidworks-mcp",
        "Option Explicit",
        "",
        f"Sub {procedure}()",
    ]
    lines += [f"{INDENT}Dim {name} As Object" for name in _STANDARD_OBJECTS]
    lines += [f"{INDENT}Dim {name} As {type_name}" for name, type_name in scalars]
    lines += [
        "",
        f"{INDENT}Set swApp = Application.SldWorks",
        f"{INDENT}Set swModel = swApp.ActiveDoc",
        f"{INDENT}If swModel Is Nothing Then",
        _raise(procedure, 1, "No active document", depth=2),
        f"{INDENT}End If",
        f"{INDENT}Set swFeatureMgr = swModel.FeatureManager",
        f"{INDENT}swModel.ClearSelection2 True",
        "",
    ]
    lines += body
    lines += [
        "",
        f"{INDENT}swModel.ClearSelection2 True",
        f"{INDENT}swModel.EditRebuild3",
        "",
    ]
    lines += [f"{INDENT}Set {name} = Nothing" for name in reversed(_STANDARD_OBJECTS)]
    lines += ["End Sub", ""]
    return "\n".join(lines)


def _feature_call(procedure: str, member: str, arguments: Sequence[Any], failure: str) -> list[str]:
    lines = _call(f"Set swFeature = swFeatureMgr.{member}", arguments)
    lines += [
        f"{INDENT}If swFeature Is Nothing Then",
        _raise(procedure, 3, failure, depth=2),
        f"{INDENT}End If",
    ]
    return lines


_SELECTION_SCALARS: tuple[tuple[str, str], ...] = (
    ("candidates", "Variant"),
    ("selected", "Boolean"),
    ("i", "Integer"),
)


def render_extrusion(params: ExtrusionParameters) -> MacroScript:
    procedure = "CreateExtrusion"
    body = _select_first(
        procedure,
        sketch_candidates(params.sketch),
        "SKETCH",
        MARK_PROFILE,
        False,
        "No sketch found to extrude",
        2,
    )
    body.append("")
    body += _feature_call(
        procedure,
        "FeatureExtrusion3",
        extrusion_arguments(params),
        "FeatureExtrusion3 returned no feature",
    )
    source = _procedure(procedure, "Boss extrusion", body, _SELECTION_SCALARS)
    return MacroScript(
        LANGUAGE, DEFAULT_MODULE, procedure, source, ("FeatureManager.FeatureExtrusion3",)
    )


def render_cut_extrude(params: CutExtrudeParameters) -> MacroScript:
    procedure = "CreateCutExtrude"
    body = _select_first(
        procedure,
        sketch_candidates(params.sketch),
        "SKETCH",
        MARK_PROFILE,
        False,
        "No sketch found to cut",
        2,
    )
    body.append("")
    body += _feature_call(
        procedure,
        "FeatureCut4",
        cut_arguments(params),
        "FeatureCut4 returned no feature",
    )
    source = _procedure(procedure, "Cut extrusion", body, _SELECTION_SCALARS)
    return MacroScript(
        LANGUAGE, DEFAULT_MODULE, procedure, source, ("FeatureManager.FeatureCut4",)
    )


def render_revolve(params: RevolveParameters) -> MacroScript:
    procedure = "CreateRevolve"
    body = _select_first(
        procedure,
        sketch_candidates(params.sketch),
        "SKETCH",
        MARK_PROFILE,
        False,
        "No sketch found to revolve",
        2,
    )
    if params.axis is not None:
        body += _select_named(
            procedure, params.axis, "AXIS", MARK_REVOLVE_AXIS, True, 4
        )
    body.append("")
    body += _feature_call(
        procedure,
        "FeatureRevolve2",
        revolve_arguments(params),
        "FeatureRevolve2 returned no feature",
    )
    source = _procedure(procedure, "Revolve", body, _SELECTION_SCALARS)
    return MacroScript(
        LANGUAGE, DEFAULT_MODULE, procedure, source, ("FeatureManager.FeatureRevolve2",)
    )


def render_sweep(params: SweepParameters) -> MacroScript:
    procedure = "CreateSweep"
    body = _select_named(
        procedure, params.profile_sketch, "SKETCH", MARK_SWEEP_PROFILE, False, 2
    )
    body += _select_named(
        procedure, params.path_sketch, "SKETCH", MARK_SWEEP_PATH, True, 2
    )
    body.append("")
    body += _feature_call(
        procedure,
        "InsertProtrusionSwept4",
        sweep_arguments(params),
        "InsertProtrusionSwept4 returned no feature",
    )
    source = _procedure(procedure, "Sweep", body)
    return MacroScript(
        LANGUAGE,
        DEFAULT_MODULE,
        procedure,
        source,
        ("FeatureManager.InsertProtrusionSwept4",),
    )


def render_loft(params: LoftParameters) -> MacroScript:
    procedure = "CreateLoft"
    body: list[str] = []
    for index, profile in enumerate(params.profiles):
        body += _select_named(
            procedure, profile, "SKETCH", MARK_SWEEP_PROFILE, index > 0, 2
        )
    for guide in params.guide_curves:
        body += _select_named(procedure, guide, "SKETCH", MARK_GUIDE_CURVE, True, 2)
    body.append("")
    body += _feature_call(
        procedure,
        "InsertProtrusionBlend",
        loft_arguments(params),
        "InsertProtrusionBlend returned no feature",
    )
    source = _procedure(procedure, "Loft", body)
    return MacroScript(
        LANGUAGE,
        DEFAULT_MODULE,
        procedure,
        source,
        ("FeatureManager.InsertProtrusionBlend",),
    )


class MethodCallParameters(ToolArguments):
    """A single ModelDoc2 method call."""

    method: Annotated[
        str,
        Field(pattern=r"^[A-Za-z][A-Za-z0-9_]*$", max_length=64),
    ]
    arguments: Annotated[list[bool | int | float | str | None], Field(max_length=64)] = []


def render_method_call(params: MethodCallParameters) -> MacroScript:
    """Macro invoking one method on the active document.

    The member is called as a statement and its return value discarded, so
    members returning objects work the same as those returning values.
    """
    procedure = f"Execute{params.method}"
    body = _call(f"Call swModel.{params.method}", params.arguments)
    source = _procedure(procedure, f"ModelDoc2.{params.method}", body)
    return MacroScript(LANGUAGE, DEFAULT_MODULE, procedure, source, (f"ModelDoc2.{params.method}",))


_RENDERERS: dict[str, tuple[type[ToolArguments], Callable[[Any], MacroScript]]] = {
    "extrude": (ExtrusionParameters, render_extrusion),
    "cut_extrude": (CutExtrudeParameters, render_cut_extrude),
    "revolve": (RevolveParameters, render_revolve),
    "sweep": (SweepParameters, render_sweep),
    "loft": (LoftParameters, render_loft),
    "method_call": (MethodCallParameters, render_method_call),
}

MACRO_KINDS: tuple[str, ...] = tuple(_RENDERERS)


def _renderer(kind: str) -> tuple[type[ToolArguments], Callable[[Any], MacroScript]]:
    try:
        return _RENDERERS[kind]
    except KeyError:
        msg = f"Unknown macro kind: {kind!r} (expected one of {', '.join(MACRO_KINDS)})"
        raise ValueError(msg) from None


def parameter_model(kind: str) -> type[ToolArguments]:
    """Parameter model a macro kind is validated against."""
    return _renderer(kind)[0]


def synthesize(kind: str, parameters: Mapping[str, Any] | ToolArguments) -> MacroScript:
    """Render the macro for an operation.

    Args:
        kind: One of ``MACRO_KINDS``.
        parameters: Parameter mapping, or an already-validated parameter model.

    Returns:
        The generated MacroScript.

    Raises:
        ValueError: If the kind is unknown.
        ToolValidationError: If the parameters do not fit the kind.
    """
    model, renderer = _renderer(kind)
    if isinstance(parameters, model):
        return renderer(parameters)
    if isinstance(parameters, ToolArguments):
        parameters = parameters.model_dump(exclude_none=True)
    return renderer(validate_arguments(model, parameters))


_DECLARATION = re.compile(r"^\s*Dim (\w+) As ", re.MULTILINE)
_ASSIGNMENT = re.compile(r"^\s*Set (\w+) = (.+)$", re.MULTILINE)


def undeclared_objects(source: str) -> set[str]:
    """Names assigned with ``Set`` but never declared with ``Dim``."""
    declared = set(_DECLARATION.findall(source))
    return {name for name, _ in _ASSIGNMENT.findall(source)} - declared


def unreleased_objects(source: str) -> set[str]:
    """Objects acquired with ``Set`` but never released with ``= Nothing``."""
    acquired = set()
    released = set()
    for name, value in _ASSIGNMENT.findall(source):
        if value.strip() == "Nothing":
            released.add(name)
        else:
            acquired.add(name)
    return acquired - released
