"""Tests for VBA macro tools."""

from typing import get_args
from unittest.mock import AsyncMock, MagicMock

import pytest

from solidworks_mcp.dispatch import ToolDispatcher
from solidworks_mcp.macros import MACRO_KINDS
from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools import build_registry
from solidworks_mcp.tools.vba import MacroKind


@pytest.fixture
def offline_session():
    """Session that must not be connected."""
    session = MagicMock()
    session.connect = AsyncMock(side_effect=AssertionError("connect called"))
    return session


class TestGenerateFeatureMacro:
    """Tests for generate_feature_macro."""

    def test_kinds_match_synthesizer(self):
        """The tool should accept exactly the synthesizer's kinds."""
        assert get_args(MacroKind) == MACRO_KINDS

    @pytest.mark.asyncio
    async def test_generates_without_connecting(self, offline_session):
        """Macro generation should not touch SolidWorks."""
        dispatcher = ToolDispatcher(
            build_registry(StrategyExecutor()), AsyncMock(return_value=offline_session)
        )

        envelope = await dispatcher.dispatch(
            "generate_feature_macro",
            {"feature": "revolve", "parameters": {"angle": 90, "axis": "Axis1"}},
        )

        assert envelope["status"] == "success"
        payload = envelope["payload"]
        assert payload["language"] == "VBA"
        assert payload["procedure"] == "CreateRevolve"
        assert "FeatureRevolve2" in payload["source"]
        offline_session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_feature(self, offline_session):
        """Unsupported features should fail validation."""
        dispatcher = ToolDispatcher(
            build_registry(StrategyExecutor()), AsyncMock(return_value=offline_session)
        )

        envelope = await dispatcher.dispatch("generate_feature_macro", {"feature": "fillet"})

        assert envelope["kind"] == "ValidationError"
        assert envelope["detail"]["violations"][0]["path"] == "feature"

    @pytest.mark.asyncio
    async def test_invalid_feature_parameters(self, offline_session):
        """Parameters that do not fit the feature should fail validation."""
        dispatcher = ToolDispatcher(
            build_registry(StrategyExecutor()), AsyncMock(return_value=offline_session)
        )

        envelope = await dispatcher.dispatch(
            "generate_feature_macro", {"feature": "extrude", "parameters": {"depth": 0}}
        )

        assert envelope["kind"] == "ValidationError"
        violation = envelope["detail"]["violations"][0]
        assert violation["path"] == "parameters.depth"
        assert violation["actual"] == 0

    @pytest.mark.asyncio
    async def test_nested_violations_reported_before_execution(self, offline_session):
        """Bad feature parameters should be rejected before the handler runs."""
        get_session = AsyncMock(return_value=offline_session)
        dispatcher = ToolDispatcher(build_registry(StrategyExecutor()), get_session)

        envelope = await dispatcher.dispatch(
            "run_generated_macro",
            {"feature": "loft", "parameters": {"profiles": ["Sketch1"], "twist": 1}},
        )

        assert envelope["kind"] == "ValidationError"
        paths = {v["path"] for v in envelope["detail"]["violations"]}
        assert paths == {"parameters.profiles", "parameters.twist"}
        get_session.assert_not_awaited()


class TestRunMacros:
    """Tests for running macros."""

    @pytest.fixture
    def dispatcher(self, session):
        return ToolDispatcher(build_registry(StrategyExecutor()), AsyncMock(return_value=session))

    @pytest.mark.asyncio
    async def test_run_generated_macro(self, dispatcher, fake_app, config):
        """Generated macros should be run and removed."""
        envelope = await dispatcher.dispatch(
            "run_generated_macro", {"feature": "extrude", "parameters": {"depth": 15}}
        )

        assert envelope["status"] == "success"
        assert envelope["payload"]["procedure"] == "CreateExtrusion"
        assert envelope["payload"]["commands"] == ["FeatureManager.FeatureExtrusion3"]
        fake_app.RunMacro2.assert_called_once()
        assert list(config.macro_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_run_macro_file(self, dispatcher, fake_app, tmp_path):
        """Existing macro files should be run as given."""
        macro = tmp_path / "Tools.swp"
        macro.write_bytes(b"")

        envelope = await dispatcher.dispatch(
            "run_macro_file", {"path": str(macro), "procedure": "Run"}
        )

        assert envelope["payload"] == {"procedure": "Run", "path": str(macro), "error_code": 0}
        fake_app.RunMacro2.assert_called_once_with(str(macro), "Module1", "Run", 1, 0)

    @pytest.mark.asyncio
    async def test_run_missing_macro_file(self, dispatcher, tmp_path):
        """Missing macro files should report EntityNotFoundError."""
        envelope = await dispatcher.dispatch(
            "run_macro_file", {"path": str(tmp_path / "missing.swp")}
        )

        assert envelope["kind"] == "EntityNotFoundError"
        assert envelope["detail"]["entity_type"] == "macro file"
