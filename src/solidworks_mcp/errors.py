"""Error taxonomy for the SolidWorks MCP Server.

Every failure that can reach a caller is one of the classes below. The
session adapter and the strategy executor translate raw COM faults into
these kinds; the dispatch pipeline is the only place that turns them into
the caller-visible error envelope.
"""

from dataclasses import dataclass
from typing import Any, ClassVar


class SolidWorksError(Exception):
    """Base class for all typed failures.

    Attributes:
        kind: Stable name reported to callers in the error envelope.
    """

    kind: ClassVar[str] = "SolidWorksError"

    def to_detail(self) -> dict[str, Any]:
        """Structured detail attached to the error envelope."""
        return {}


@dataclass(frozen=True)
class FieldViolation:
    """A single schema constraint that an argument payload violated.

    Attributes:
        path: Dotted path of the offending field ("<root>" for the payload).
        constraint: Machine-readable constraint name and message.
        actual: The value that was supplied, None when the field was missing.
    """

    path: str
    constraint: str
    actual: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "constraint": self.constraint, "actual": self.actual}


class ToolValidationError(SolidWorksError):
    """Tool arguments failed schema validation."""

    kind = "ValidationError"

    def __init__(self, violations: list[FieldViolation]) -> None:
        self.violations = list(violations)
        paths = ", ".join(v.path for v in self.violations) or "<root>"
        super().__init__(f"Invalid arguments: {paths}")

    def to_detail(self) -> dict[str, Any]:
        return {"violations": [v.to_dict() for v in self.violations]}


class SolidWorksConnectionError(SolidWorksError, ConnectionError):
    """SolidWorks could not be reached or attached to."""

    kind = "ConnectionError"


class NoActiveDocumentError(SolidWorksError):
    """No document is open, or the active one was closed externally."""

    kind = "NoActiveDocumentError"

    def __init__(self, message: str = "No active document") -> None:
        super().__init__(message)


class EntityNotFoundError(SolidWorksError):
    """A named entity (sketch, dimension, macro file, ...) does not exist."""

    kind = "EntityNotFoundError"

    def __init__(self, entity_type: str, candidates: list[str] | tuple[str, ...]) -> None:
        self.entity_type = entity_type
        self.candidates = list(candidates)
        super().__init__(
            f"No {entity_type} found among: {', '.join(self.candidates) or '<none>'}"
        )

    def to_detail(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type, "candidates": self.candidates}


class CommandExecutionError(SolidWorksError):
    """A call against the automation surface failed.

    Attributes:
        operation: Human-readable name of the attempted call.
        diagnostic: Raw diagnostic text from the external surface.
    """

    kind = "CommandExecutionError"

    def __init__(self, operation: str, diagnostic: str = "") -> None:
        self.operation = operation
        self.diagnostic = diagnostic
        message = f"{operation} failed"
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        return {"operation": self.operation, "diagnostic": self.diagnostic}


class StrategyTimeoutError(CommandExecutionError):
    """A single strategy attempt exceeded its time budget."""

    kind = "StrategyTimeoutError"

    def __init__(self, operation: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(operation, f"timed out after {timeout_ms}ms")


class AggregateStrategyFailure(SolidWorksError):
    """Every strategy for an operation failed.

    Attributes:
        operation: The logical operation that was attempted.
        attempts: One ``StrategyAttempt`` per strategy, in attempt order.
    """

    kind = "AggregateStrategyFailure"

    def __init__(self, operation: str, attempts: list[Any]) -> None:
        self.operation = operation
        self.attempts = list(attempts)
        labels = ", ".join(a.label for a in self.attempts)
        super().__init__(f"All strategies failed for {operation} ({labels})")

    def to_detail(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "failures": [a.to_dict() for a in self.attempts],
        }


class DuplicateToolError(SolidWorksError):
    """A tool name was registered twice."""

    kind = "DuplicateToolError"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class UnknownToolError(SolidWorksError):
    """No tool is registered under the requested name."""

    kind = "UnknownToolError"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")

    def to_detail(self) -> dict[str, Any]:
        return {"name": self.name}
