"""Pytest configuration and shared fixtures."""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from solidworks_mcp.bridge.session import SolidWorksSession
from solidworks_mcp.config import ServerConfig


@pytest.fixture
def fake_doc():
    """Active part document as seen through late-bound COM."""
    doc = MagicMock(name="ModelDoc2")
    doc.GetTitle.return_value = "Part1"
    doc.GetPathName.return_value = ""
    doc.GetType.return_value = 1
    doc.GetSaveFlag.return_value = False
    doc.Extension.SelectByID2.return_value = True
    doc.SketchManager.ActiveSketch = None

    feature = MagicMock(name="Feature")
    feature.Name = "Boss-Extrude1"
    doc.FeatureManager.FeatureExtrusion3.return_value = feature
    doc.FeatureByPositionReverse.return_value = feature
    return doc


@pytest.fixture
def fake_app(fake_doc):
    """SldWorks application object."""
    app = MagicMock(name="SldWorks")
    app.RevisionNumber.return_value = "32.1.0"
    app.GetProcessID.return_value = 4242
    app.ActiveDoc = fake_doc
    app.RunCommand.return_value = True
    app.RunMacro2.return_value = True
    return app


@pytest.fixture
def dispatch(fake_app):
    """COM dispatch factory returning the fake application."""
    return MagicMock(return_value=fake_app)


@pytest.fixture
def config(tmp_path):
    """Configuration writing macros to a temporary directory."""
    return ServerConfig(macro_dir=tmp_path / "macros", _env_file=None)


@pytest_asyncio.fixture
async def session(config, dispatch):
    """Connected session backed by the fake application."""
    session = SolidWorksSession(config, dispatch=dispatch)
    await session.connect()
    yield session
    await session.close()


@pytest.fixture
def sketching_doc(fake_doc):
    """fake_doc whose sketch calls enter and leave sketch edit mode."""
    manager = fake_doc.SketchManager

    def toggle(rebuild):
        manager.ActiveSketch = None if manager.ActiveSketch is not None else MagicMock()

    def edit():
        manager.ActiveSketch = MagicMock()

    manager.InsertSketch.side_effect = toggle
    fake_doc.EditSketch.side_effect = edit

    plane = MagicMock(name="RefPlane")
    plane.GetTypeName2.return_value = "RefPlane"
    sketch = MagicMock(name="Sketch")
    sketch.Name = "Sketch1"
    sketch.GetTypeName2.return_value = "ProfileFeature"
    extrusion = MagicMock(name="Extrusion")
    extrusion.GetTypeName2.return_value = "Extrusion"
    fake_doc.FeatureManager.GetFeatures.return_value = (plane, sketch, extrusion)
    return fake_doc
