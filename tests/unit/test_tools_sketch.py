"""Tests for sketch tools, run through the dispatch pipeline."""

from unittest.mock import AsyncMock, call

import pytest

from solidworks_mcp.dispatch import ToolDispatcher
from solidworks_mcp.strategies import StrategyExecutor
from solidworks_mcp.tools import build_registry


@pytest.fixture
def dispatcher(session):
    """Dispatcher over the full registry and the fake-backed session."""
    return ToolDispatcher(build_registry(StrategyExecutor()), AsyncMock(return_value=session))


class TestSketchLifecycle:
    """Tests for opening and closing sketches."""

    @pytest.mark.asyncio
    async def test_create_sketch_on_standard_plane(self, dispatcher, sketching_doc):
        """Standard plane names should map to the plane features."""
        envelope = await dispatcher.dispatch("create_sketch", {"plane": "Top"})

        assert envelope["status"] == "success"
        assert envelope["payload"] == {"sketch": "Sketch1", "plane": "Top Plane", "offset": 0.0}
        sketching_doc.FeatureByName.assert_called_once_with("Top Plane")

    @pytest.mark.asyncio
    async def test_create_sketch_offset_in_metres(self, dispatcher, sketching_doc):
        """Offsets should reach InsertRefPlane in metres."""
        await dispatcher.dispatch("create_sketch", {"plane": "Plane1", "offset": 25.0})

        sketching_doc.FeatureByName.assert_called_once_with("Plane1")
        args = sketching_doc.FeatureManager.InsertRefPlane.call_args.args
        assert args[0] == 8
        assert args[1] == pytest.approx(0.025)

    @pytest.mark.asyncio
    async def test_create_sketch_unknown_plane(self, dispatcher, sketching_doc):
        """A missing plane should be reported as EntityNotFoundError."""
        sketching_doc.FeatureByName.return_value = None

        envelope = await dispatcher.dispatch("create_sketch", {"plane": "Plane7"})

        assert envelope["kind"] == "EntityNotFoundError"
        assert envelope["detail"]["entity_type"] == "plane"

    @pytest.mark.asyncio
    async def test_exit_sketch_rebuilds(self, dispatcher, sketching_doc):
        """exit_sketch should close the open sketch and rebuild."""
        await dispatcher.dispatch("create_sketch", {})

        envelope = await dispatcher.dispatch("exit_sketch", {})

        assert envelope["payload"] == {"exited": True, "rebuilt": True}
        sketching_doc.ForceRebuild3.assert_called_once_with(False)
        assert sketching_doc.SketchManager.ActiveSketch is None

    @pytest.mark.asyncio
    async def test_edit_sketch(self, dispatcher, sketching_doc):
        """edit_sketch should select the sketch and enter edit mode."""
        envelope = await dispatcher.dispatch("edit_sketch", {"name": "Sketch1"})

        assert envelope["payload"] == {"editing": "Sketch1"}
        sketching_doc.Extension.SelectByID2.assert_called_once_with(
            "Sketch1", "SKETCH", 0, 0, 0, False, 0, None, 0
        )
        sketching_doc.EditSketch.assert_called_once_with()


class TestSketchGeometry:
    """Tests for sketch geometry tools."""

    @pytest.mark.asyncio
    async def test_rectangle_is_closed_loop(self, dispatcher, sketching_doc):
        """A rectangle should be four lines meeting at its corners."""
        await dispatcher.dispatch("create_sketch", {})

        envelope = await dispatcher.dispatch(
            "sketch_rectangle", {"x1": -10, "y1": -5, "x2": 10, "y2": 5}
        )

        assert envelope["payload"] == {"segments": 4, "width": 20, "height": 10}
        assert sketching_doc.SketchManager.CreateLine.call_args_list == [
            call(-0.01, -0.005, 0.0, 0.01, -0.005, 0.0),
            call(0.01, -0.005, 0.0, 0.01, 0.005, 0.0),
            call(0.01, 0.005, 0.0, -0.01, 0.005, 0.0),
            call(-0.01, 0.005, 0.0, -0.01, -0.005, 0.0),
        ]

    @pytest.mark.asyncio
    async def test_circle(self, dispatcher, sketching_doc):
        """Circles should be created by center and radius in metres."""
        await dispatcher.dispatch("create_sketch", {})

        envelope = await dispatcher.dispatch(
            "sketch_circle", {"center_x": 5.0, "radius": 12.0, "construction": True}
        )

        assert envelope["payload"] == {"segments": 1, "radius": 12.0}
        manager = sketching_doc.SketchManager
        manager.CreateCircleByRadius.assert_called_once_with(0.005, 0.0, 0.0, 0.012)
        assert manager.CreateCircleByRadius.return_value.ConstructionGeometry is True

    @pytest.mark.asyncio
    async def test_centerline(self, dispatcher, sketching_doc):
        """Centerlines should use CreateCenterLine."""
        await dispatcher.dispatch("create_sketch", {})

        envelope = await dispatcher.dispatch(
            "sketch_centerline", {"x1": 0.0, "y1": 0.0, "x2": 0.0, "y2": 30.0}
        )

        assert envelope["payload"] == {"segments": 1, "length": 30.0}
        sketching_doc.SketchManager.CreateCenterLine.assert_called_once_with(
            0.0, 0.0, 0.0, 0.0, 0.03, 0.0
        )

    @pytest.mark.asyncio
    async def test_line_without_open_sketch(self, dispatcher):
        """Drawing outside a sketch should fail as a command error."""
        envelope = await dispatcher.dispatch(
            "sketch_line", {"x1": 0.0, "y1": 0.0, "x2": 10.0, "y2": 0.0}
        )

        assert envelope["kind"] == "CommandExecutionError"

    @pytest.mark.asyncio
    async def test_zero_length_line_rejected(self, dispatcher, sketching_doc):
        """A line whose ends coincide should fail validation."""
        envelope = await dispatcher.dispatch(
            "sketch_line", {"x1": 1.0, "y1": 1.0, "x2": 1.0, "y2": 1.0}
        )

        assert envelope["kind"] == "ValidationError"
        assert envelope["detail"]["violations"][0]["path"] == "<root>"
        sketching_doc.SketchManager.CreateLine.assert_not_called()

    @pytest.mark.asyncio
    async def test_flat_rectangle_rejected(self, dispatcher):
        """A rectangle without height should fail validation."""
        envelope = await dispatcher.dispatch(
            "sketch_rectangle", {"x1": 0.0, "y1": 5.0, "x2": 10.0, "y2": 5.0}
        )

        assert envelope["kind"] == "ValidationError"


class TestSketchToFeature:
    """A new part gets its first feature from a sketch drawn with these tools."""

    @pytest.mark.asyncio
    async def test_sketch_then_extrude(self, dispatcher, sketching_doc):
        """Sketch, exit, and extrude should succeed with the feature API."""
        for name, arguments in [
            ("create_sketch", {"plane": "Front"}),
            ("sketch_circle", {"radius": 20.0}),
            ("exit_sketch", {}),
        ]:
            envelope = await dispatcher.dispatch(name, arguments)
            assert envelope["status"] == "success", envelope

        envelope = await dispatcher.dispatch("simple_extrude", {"depth": 10.0})

        assert envelope["strategyUsed"] == "direct"
        assert envelope["payload"] == "Extrusion created: Boss-Extrude1"
