"""Tests for the dispatch pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from solidworks_mcp.dispatch import ToolDispatcher, error_envelope, success_envelope
from solidworks_mcp.errors import (
    CommandExecutionError,
    NoActiveDocumentError,
    SolidWorksConnectionError,
)
from solidworks_mcp.schemas import ToolArguments
from solidworks_mcp.strategies import StrategyAttempt, StrategyResult
from solidworks_mcp.tools.registry import Tool, ToolRegistry


class DepthArguments(ToolArguments):
    depth: float


@pytest.fixture
def fake_session():
    session = MagicMock()
    session.connect = AsyncMock()
    return session


def make_dispatcher(session, *tools):
    registry = ToolRegistry()
    registry.register_all(list(tools))
    return ToolDispatcher(registry, AsyncMock(return_value=session))


class TestDispatch:
    """Tests for ToolDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_success(self, fake_session):
        """A successful handler should produce a success envelope."""
        handler = AsyncMock(return_value={"feature": "Boss-Extrude1"})
        dispatcher = make_dispatcher(fake_session, Tool("extrude", "", DepthArguments, handler))

        envelope = await dispatcher.dispatch("extrude", {"depth": 10})

        assert envelope == {
            "status": "success",
            "tool": "extrude",
            "payload": {"feature": "Boss-Extrude1"},
        }
        args, session = handler.await_args.args
        assert args.depth == 10.0
        assert session is fake_session
        fake_session.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_reach_handler(self, fake_session):
        """Validation failures should be reported without calling the handler."""
        handler = AsyncMock()
        dispatcher = make_dispatcher(fake_session, Tool("extrude", "", DepthArguments, handler))

        envelope = await dispatcher.dispatch("extrude", {"depth": "10"})

        assert envelope["status"] == "error"
        assert envelope["kind"] == "ValidationError"
        assert envelope["detail"]["violations"][0]["path"] == "depth"
        handler.assert_not_awaited()
        fake_session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_tool(self, fake_session):
        """Unknown tools should produce an UnknownToolError envelope."""
        envelope = await make_dispatcher(fake_session).dispatch("does_not_exist", {})

        assert envelope["status"] == "error"
        assert envelope["kind"] == "UnknownToolError"
        assert envelope["detail"] == {"name": "does_not_exist"}

    @pytest.mark.asyncio
    async def test_typed_failure(self, fake_session):
        """Typed handler failures should keep their kind."""
        handler = AsyncMock(side_effect=NoActiveDocumentError())
        dispatcher = make_dispatcher(fake_session, Tool("extrude", "", DepthArguments, handler))

        envelope = await dispatcher.dispatch("extrude", {"depth": 1.0})

        assert envelope["kind"] == "NoActiveDocumentError"
        assert envelope["message"] == "No active document"

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, fake_session):
        """Unexpected exceptions should become InternalError envelopes."""
        handler = AsyncMock(side_effect=KeyError("boom"))
        dispatcher = make_dispatcher(fake_session, Tool("extrude", "", DepthArguments, handler))

        envelope = await dispatcher.dispatch("extrude", {"depth": 1.0})

        assert envelope["status"] == "error"
        assert envelope["kind"] == "InternalError"
        assert envelope["detail"] == {"type": "KeyError"}

    @pytest.mark.asyncio
    async def test_connection_failure(self, fake_session):
        """A failed connect should be reported before the handler runs."""
        fake_session.connect.side_effect = SolidWorksConnectionError("not running")
        handler = AsyncMock()
        dispatcher = make_dispatcher(fake_session, Tool("extrude", "", DepthArguments, handler))

        envelope = await dispatcher.dispatch("extrude", {"depth": 1.0})

        assert envelope["kind"] == "ConnectionError"
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_offline_tool_skips_connect(self, fake_session):
        """Tools that do not need SolidWorks should not connect."""
        handler = AsyncMock(return_value="ok")
        dispatcher = make_dispatcher(
            fake_session,
            Tool("generate", "", DepthArguments, handler, requires_session=False),
        )

        envelope = await dispatcher.dispatch("generate", {"depth": 1.0})

        assert envelope["status"] == "success"
        fake_session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_calls_are_serialized(self, fake_session):
        """Concurrent calls should not overlap."""
        active = 0
        overlap = False

        async def handler(args, session):
            nonlocal active, overlap
            active += 1
            overlap = overlap or active > 1
            await asyncio.sleep(0.01)
            active -= 1
            return None

        dispatcher = make_dispatcher(fake_session, Tool("extrude", "", DepthArguments, handler))

        await asyncio.gather(
            *(dispatcher.dispatch("extrude", {"depth": 1.0}) for _ in range(3))
        )

        assert not overlap


class TestEnvelopes:
    """Tests for envelope construction."""

    def test_strategy_result(self):
        """Strategy results should report the winner and earlier failures."""
        result = StrategyResult(
            "command-id",
            {"message": "Extrusion created via command"},
            [StrategyAttempt("direct", CommandExecutionError("FeatureExtrusion3", "null"), 1.5)],
        )

        envelope = success_envelope("simple_extrude", result)

        assert envelope["strategyUsed"] == "command-id"
        assert envelope["payload"] == {"message": "Extrusion created via command"}
        assert envelope["failedStrategies"] == [
            {
                "strategy": "direct",
                "kind": "CommandExecutionError",
                "message": "FeatureExtrusion3 failed: null",
                "elapsed_ms": 1.5,
            }
        ]

    def test_error_envelope_shape(self):
        """Error envelopes should carry kind, message, and detail."""
        envelope = error_envelope("open_model", CommandExecutionError("OpenDoc6", "locked"))

        assert envelope == {
            "status": "error",
            "tool": "open_model",
            "kind": "CommandExecutionError",
            "message": "OpenDoc6 failed: locked",
            "detail": {"operation": "OpenDoc6", "diagnostic": "locked"},
        }
