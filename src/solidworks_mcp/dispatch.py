"""Tool dispatch pipeline.

Every tool invocation from the MCP boundary passes through
``ToolDispatcher.dispatch``, which moves it through

    RECEIVED -> VALIDATED -> EXECUTING -> SUCCEEDED | FAILED

and always returns a JSON-ready envelope. Handlers are only called with
arguments that passed validation, and no handler or automation failure can
escape as an exception.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from solidworks_mcp.bridge.session import SolidWorksSession
from solidworks_mcp.errors import SolidWorksError
from solidworks_mcp.schemas import validate_arguments
from solidworks_mcp.strategies import StrategyResult
from solidworks_mcp.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "InternalError"


class DispatchState(str, Enum):
    """Lifecycle of a single tool invocation."""

    RECEIVED = "received"
    VALIDATED = "validated"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _to_wire(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, list):
        return [_to_wire(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_wire(item) for key, item in value.items()}
    return value


def success_envelope(tool: str, value: Any) -> dict[str, Any]:
    """Envelope for a handler's return value.

    Strategy results are unpacked so callers see which strategy succeeded
    and why the earlier ones failed.
    """
    if isinstance(value, StrategyResult):
        return {
            "status": "success",
            "tool": tool,
            "strategyUsed": value.strategy_used,
            "payload": _to_wire(value.payload),
            "failedStrategies": [attempt.to_dict() for attempt in value.failures],
        }
    return {"status": "success", "tool": tool, "payload": _to_wire(value)}


def error_envelope(tool: str, error: Exception) -> dict[str, Any]:
    """Envelope for any failure, typed or not."""
    if isinstance(error, SolidWorksError):
        return {
            "status": "error",
            "tool": tool,
            "kind": error.kind,
            "message": str(error),
            "detail": error.to_detail(),
        }
    return {
        "status": "error",
        "tool": tool,
        "kind": INTERNAL_ERROR,
        "message": str(error) or type(error).__name__,
        "detail": {"type": type(error).__name__},
    }


class ToolDispatcher:
    """Validates, executes, and wraps tool invocations.

    Invocations run one at a time: SolidWorks has a single selection and
    command state, so concurrent tools would interfere with each other.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        get_session: Callable[[], Awaitable[SolidWorksSession]],
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Catalog of available tools.
            get_session: Async function returning the process-wide session.
        """
        self._registry = registry
        self._get_session = get_session
        self._lock = asyncio.Lock()

    async def dispatch(self, name: str, arguments: Any) -> dict[str, Any]:
        """Run a tool and return its result envelope. Never raises."""
        async with self._lock:
            return await self._dispatch(name, arguments)

    async def _dispatch(self, name: str, arguments: Any) -> dict[str, Any]:
        start = time.perf_counter()
        state = DispatchState.RECEIVED
        logger.debug("%s: %s", name, state.value)

        try:
            tool = self._registry.get(name)
            args = validate_arguments(tool.input_schema, arguments)
            state = DispatchState.VALIDATED
            logger.debug("%s: %s", name, state.value)

            session = await self._get_session()
            if tool.requires_session:
                await session.connect()

            state = DispatchState.EXECUTING
            logger.debug("%s: %s", name, state.value)
            result = await tool.handler(args, session)
        except SolidWorksError as e:
            logger.info(
                "%s: %s after %s: %s: %s",
                name,
                DispatchState.FAILED.value,
                state.value,
                e.kind,
                e,
            )
            return error_envelope(name, e)
        except Exception as e:
            logger.exception(
                "%s: %s after %s with an unexpected error",
                name,
                DispatchState.FAILED.value,
                state.value,
            )
            return error_envelope(name, e)

        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s: %s in %.1fms", name, DispatchState.SUCCEEDED.value, elapsed)
        return success_envelope(name, result)
