"""SolidWorks session adapter - sole owner of the COM application handle.

SolidWorks exposes one mutable UI and selection state per process, and its
COM objects belong to the apartment of the thread that created them. This
adapter therefore runs every automation call on a single dedicated worker
thread, which both serializes access and keeps calls on the owning thread.

The automation object is late-bound: members appear, vanish, or change
behavior across releases. Every call made here is wrapped so that callers
only ever see the typed errors from ``solidworks_mcp.errors``.
"""

import asyncio
import contextlib
import functools
import logging
import re
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, TypeVar

from solidworks_mcp.bridge.base import (
    ConnectionStatus,
    DocumentInfo,
    DocumentType,
    MacroRunResult,
)
from solidworks_mcp.config import VERSION_YEAR_OFFSET, ServerConfig
from solidworks_mcp.errors import (
    CommandExecutionError,
    EntityNotFoundError,
    NoActiveDocumentError,
    SolidWorksConnectionError,
    SolidWorksError,
)
from solidworks_mcp.macros import MacroScript

logger = logging.getLogger(__name__)

T = TypeVar("T")

# swOpenDocOptions_e.swOpenDocOptions_Silent
OPEN_SILENT = 1
# swSaveAsOptions_e.swSaveAsOptions_Silent
SAVE_SILENT = 1
# swRunMacroOption_e.swRunMacroUnloadAfterRun
RUN_MACRO_UNLOAD_AFTER_RUN = 1
# swRefPlaneReferenceConstraints_e
REF_PLANE_DISTANCE = 8
REF_PLANE_FLIP = 256

SKETCH_FEATURE_TYPE = "ProfileFeature"

# swUserPreferenceStringValue_e default templates
_TEMPLATE_PREFERENCES = {
    DocumentType.PART: 8,
    DocumentType.ASSEMBLY: 9,
    DocumentType.DRAWING: 10,
}

_YEAR_REVISION = re.compile(r"^(\d{4})")
_MAJOR_REVISION = re.compile(r"^(\d+)\.")


def dispatch_application(prog_id: str) -> Any:
    """Attach to (or launch) SolidWorks through COM.

    Runs on the session's worker thread, which becomes the COM apartment
    for every later call.
    """
    import pythoncom
    import win32com.client

    pythoncom.CoInitialize()
    return win32com.client.Dispatch(prog_id)


def parse_revision_year(revision: str) -> int | None:
    """Release year from a RevisionNumber string.

    Newer releases report "2024 SP5.0"; older ones report the major
    version, as in "27.5.0.0084" for 2019.
    """
    match = _YEAR_REVISION.match(revision)
    if match:
        return int(match.group(1))
    match = _MAJOR_REVISION.match(revision)
    if match:
        return int(match.group(1)) + VERSION_YEAR_OFFSET
    return None


def _diagnostic(error: Exception) -> str:
    text = str(error)
    return f"{type(error).__name__}: {text}" if text else type(error).__name__


def _first(result: Any) -> Any:
    """Return value of a call that may also report out-parameters."""
    if isinstance(result, tuple):
        return result[0] if result else None
    return result


def _document_type(value: Any) -> DocumentType:
    try:
        return DocumentType(int(value))
    except (TypeError, ValueError):
        return DocumentType.NONE


def _describe(doc: Any) -> DocumentInfo:
    path = doc.GetPathName()
    return DocumentInfo(
        title=str(doc.GetTitle()),
        path=str(path) if path else None,
        doc_type=_document_type(doc.GetType()),
        is_modified=bool(doc.GetSaveFlag()),
    )


def _latest_sketch(doc: Any) -> str | None:
    for feature in reversed(doc.FeatureManager.GetFeatures(True) or ()):
        if feature.GetTypeName2() == SKETCH_FEATURE_TYPE:
            return str(feature.Name)
    return None


def _macro_outcome(result: Any) -> tuple[bool, int]:
    if isinstance(result, tuple):
        ok = bool(result[0]) if result else False
        code = int(result[-1]) if len(result) > 1 else 0
        return ok, code
    return bool(result), 0


class SolidWorksSession:
    """The single live connection to a SolidWorks process.

    All methods that touch SolidWorks are coroutines; they suspend while the
    worker thread performs the COM call.

    Attributes:
        config: Server configuration (ProgID, version, macro directory, ...).
    """

    def __init__(
        self,
        config: ServerConfig,
        dispatch: Callable[[str], Any] = dispatch_application,
    ) -> None:
        """Initialize the session without connecting.

        Args:
            config: Resolved server configuration.
            dispatch: Factory returning the application object for a ProgID.
                Runs on the worker thread.
        """
        self.config = config
        self._dispatch = dispatch
        self._app: Any = None
        self._executor: ThreadPoolExecutor | None = None
        self._lock = asyncio.Lock()
        self._revision = ""
        self._process_id: int | None = None
        self._visible = False
        self._last_error: str | None = None

    @property
    def connected(self) -> bool:
        return self._app is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Attach to SolidWorks, reusing a live handle if one exists.

        Raises:
            SolidWorksConnectionError: If SolidWorks cannot be reached, is not
                installed at the configured path, or has the wrong version.
        """
        async with self._lock:
            if self._app is not None:
                if await self._probe():
                    return
                logger.warning("SolidWorks handle is no longer alive, reattaching")
                self._app = None

            install_path = self.config.install_path
            if install_path is not None and not install_path.exists():
                msg = f"SolidWorks is not installed at {install_path}"
                self._last_error = msg
                raise SolidWorksConnectionError(msg)

            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="solidworks"
                )

            loop = asyncio.get_running_loop()
            try:
                self._app = await loop.run_in_executor(self._executor, self._attach)
            except SolidWorksConnectionError as e:
                self._last_error = str(e)
                raise
            except Exception as e:
                msg = f"Failed to connect to SolidWorks ({self.config.prog_id}): {e}"
                self._last_error = msg
                logger.error(msg)
                raise SolidWorksConnectionError(msg) from e

            self._last_error = None
            logger.info(
                "Connected to SolidWorks %s (PID: %s)",
                self._revision or "<unknown revision>",
                self._process_id,
            )

    def _attach(self) -> Any:
        """Dispatch the application object (runs on the worker thread)."""
        app = self._dispatch(self.config.prog_id)
        if app is None:
            msg = f"COM dispatch of {self.config.prog_id} returned no object"
            raise SolidWorksConnectionError(msg)

        revision = str(app.RevisionNumber())
        expected = self.config.version
        actual = parse_revision_year(revision)
        if expected is not None and actual is not None and actual != int(expected):
            msg = f"SolidWorks version mismatch: expected {expected}, found {actual} ({revision})"
            raise SolidWorksConnectionError(msg)

        app.Visible = self.config.visible

        try:
            process_id = int(app.GetProcessID())
        except Exception as e:
            # GetProcessID is missing on some releases.
            logger.debug("GetProcessID unavailable: %s", e)
            process_id = None

        self._revision = revision
        self._process_id = process_id
        self._visible = self.config.visible
        return app

    async def _probe(self) -> bool:
        app = self._app
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, lambda: app.GetProcessID())
        except Exception as e:
            logger.debug("SolidWorks liveness probe failed: %s", e)
            return False
        return True

    async def close(self) -> None:
        """Release the handle and stop the worker thread.

        SolidWorks itself keeps running; a later ``connect()`` reattaches.
        """
        async with self._lock:
            self._app = None
            self._process_id = None
            self._visible = False
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
        logger.info("Disconnected from SolidWorks")

    def status(self) -> ConnectionStatus:
        """Current connection status, without touching SolidWorks."""
        return ConnectionStatus(
            connected=self.connected,
            prog_id=self.config.prog_id,
            revision=self._revision,
            process_id=self._process_id,
            visible=self._visible,
            error=self._last_error,
        )

    # =========================================================================
    # Guarded access
    # =========================================================================

    async def _run(self, description: str, func: Callable[..., T], *args: Any) -> T:
        if self._app is None or self._executor is None:
            raise SolidWorksConnectionError("Not connected to SolidWorks")

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor, functools.partial(func, *args)
            )
        except SolidWorksError:
            raise
        except Exception as e:
            raise CommandExecutionError(description, _diagnostic(e)) from e

    def _active_document(self) -> Any:
        doc = self._app.ActiveDoc
        if doc is None:
            raise NoActiveDocumentError()
        try:
            doc.GetTitle()
        except Exception as e:
            msg = "The active document is no longer available"
            raise NoActiveDocumentError(msg) from e
        return doc

    async def with_application(self, description: str, operation: Callable[[Any], T]) -> T:
        """Run ``operation(app)`` on the worker thread.

        Args:
            description: Name of the call, used in error reports.
            operation: Callable receiving the application object.

        Raises:
            SolidWorksConnectionError: If not connected.
            CommandExecutionError: If the call fails.
        """
        app = self._app
        return await self._run(description, lambda: operation(app))

    async def with_document(self, description: str, operation: Callable[[Any], T]) -> T:
        """Run ``operation(doc)`` against the active document.

        Raises:
            NoActiveDocumentError: If no document is open or it was closed.
            CommandExecutionError: If the call fails.
        """
        return await self._run(
            description, lambda: operation(self._active_document())
        )

    # =========================================================================
    # Documents
    # =========================================================================

    async def get_current_document(self) -> DocumentInfo:
        """Snapshot of the active document.

        Raises:
            NoActiveDocumentError: If no document is open.
        """
        return await self.with_document("get active document", _describe)

    async def new_document(
        self,
        doc_type: DocumentType = DocumentType.PART,
        template: str | None = None,
    ) -> DocumentInfo:
        """Create a document from a template.

        Args:
            doc_type: Kind of document to create.
            template: Template path. Falls back to the configured template,
                then to SolidWorks' default template preference.
        """
        configured = {
            DocumentType.PART: self.config.part_template,
            DocumentType.ASSEMBLY: self.config.assembly_template,
            DocumentType.DRAWING: self.config.drawing_template,
        }.get(doc_type)
        chosen = template or (str(configured) if configured else None)
        kind = doc_type.name.lower()

        def create(app: Any) -> DocumentInfo:
            path = chosen or app.GetUserPreferenceStringValue(
                _TEMPLATE_PREFERENCES[doc_type]
            )
            if not path:
                raise CommandExecutionError("NewDocument", f"no {kind} template available")
            doc = app.NewDocument(path, 0, 0, 0)
            if doc is None:
                raise CommandExecutionError("NewDocument", f"template {path} produced no document")
            return _describe(doc)

        return await self.with_application(f"create {kind}", create)

    async def open_document(self, path: str) -> DocumentInfo:
        """Open a part, assembly, or drawing file.

        Raises:
            EntityNotFoundError: If the file does not exist.
            CommandExecutionError: If SolidWorks refuses to open it.
        """
        if not Path(path).is_file():
            raise EntityNotFoundError("file", [path])
        doc_type = DocumentType.from_path(path)

        def open_doc(app: Any) -> DocumentInfo:
            doc = _first(app.OpenDoc6(path, int(doc_type), OPEN_SILENT, "", 0, 0))
            if doc is None:
                raise CommandExecutionError("OpenDoc6", f"could not open {path}")
            return _describe(doc)

        return await self.with_application("OpenDoc6", open_doc)

    async def close_document(self, save: bool = False) -> str:
        """Close the active document, optionally saving it first.

        Returns:
            Title of the closed document.
        """
        app = self._app

        def close(doc: Any) -> str:
            title = str(doc.GetTitle())
            if save and not _first(doc.Save3(SAVE_SILENT, 0, 0)):
                raise CommandExecutionError("Save3", f"could not save {title}")
            app.CloseDoc(title)
            return title

        return await self.with_document("close document", close)

    # =========================================================================
    # Selection
    # =========================================================================

    async def clear_selection(self) -> None:
        await self.with_document("ClearSelection2", lambda doc: doc.ClearSelection2(True))

    async def select_entity(
        self,
        name: str,
        entity_type: str,
        append: bool = False,
        mark: int = 0,
    ) -> bool:
        """Select an entity by name.

        Returns:
            True if selected, False if no such entity exists.

        Raises:
            NoActiveDocumentError: If no document is open.
            CommandExecutionError: If the selection call itself fails.
        """

        def select(doc: Any) -> bool:
            return bool(
                doc.Extension.SelectByID2(
                    name, entity_type, 0, 0, 0, append, mark, None, 0
                )
            )

        return await self.with_document(f"select {entity_type} {name!r}", select)

    async def select_first(
        self,
        candidates: Sequence[str],
        entity_type: str,
        mark: int = 0,
    ) -> str:
        """Select the first candidate that exists.

        Returns:
            The selected candidate name.

        Raises:
            EntityNotFoundError: If no candidate could be selected.
        """
        for name in candidates:
            try:
                if await self.select_entity(name, entity_type, mark=mark):
                    logger.debug("Selected %s %s", entity_type, name)
                    return name
            except CommandExecutionError as e:
                logger.debug("Selecting %s %r failed: %s", entity_type, name, e)
        raise EntityNotFoundError(entity_type.lower(), list(candidates))

    # =========================================================================
    # Sketches
    # =========================================================================

    async def insert_sketch(
        self,
        plane: str,
        offset: float = 0.0,
        reverse: bool = False,
    ) -> str | None:
        """Open a new sketch on a reference plane.

        Any sketch already open for editing is closed first.

        Args:
            plane: Name of a plane feature, e.g. "Front Plane".
            offset: Distance in metres; a parallel reference plane is inserted
                at this distance and the sketch is placed on it.
            reverse: Offset to the other side of the plane.

        Returns:
            Name of the new sketch, None if the feature tree does not show it.

        Raises:
            EntityNotFoundError: If the plane does not exist.
            CommandExecutionError: If the offset plane or the sketch could not
                be created.
        """

        def create(doc: Any) -> str | None:
            manager = doc.SketchManager
            if manager.ActiveSketch is not None:
                manager.InsertSketch(True)
            doc.ClearSelection2(True)

            feature = doc.FeatureByName(plane)
            if feature is None:
                raise EntityNotFoundError("plane", [plane])
            feature.Select2(False, 0)

            if offset:
                constraint = REF_PLANE_DISTANCE | (REF_PLANE_FLIP if reverse else 0)
                feature = doc.FeatureManager.InsertRefPlane(constraint, offset, 0, 0, 0, 0)
                if feature is None:
                    raise CommandExecutionError("InsertRefPlane", f"could not offset {plane}")
                doc.ClearSelection2(True)
                feature.Select2(False, 0)

            manager.InsertSketch(True)
            if manager.ActiveSketch is None:
                raise CommandExecutionError("InsertSketch", f"no sketch opened on {plane}")
            return _latest_sketch(doc)

        return await self.with_document(f"create sketch on {plane}", create)

    async def edit_sketch(self, name: str) -> None:
        """Open an existing sketch for editing.

        Raises:
            EntityNotFoundError: If no sketch has that name.
        """

        def edit(doc: Any) -> None:
            doc.ClearSelection2(True)
            if not doc.Extension.SelectByID2(name, "SKETCH", 0, 0, 0, False, 0, None, 0):
                raise EntityNotFoundError("sketch", [name])
            doc.EditSketch()
            if doc.SketchManager.ActiveSketch is None:
                raise CommandExecutionError("EditSketch", f"could not edit {name}")

        await self.with_document(f"edit sketch {name!r}", edit)

    async def exit_sketch(self, rebuild: bool = False) -> bool:
        """Leave sketch edit mode if a sketch is open for editing.

        Returns:
            True if a sketch was closed.
        """

        def leave(doc: Any) -> bool:
            manager = doc.SketchManager
            if manager.ActiveSketch is None:
                return False
            manager.InsertSketch(True)
            if rebuild:
                doc.ForceRebuild3(False)
            return True

        return await self.with_document("exit sketch", leave)

    async def add_sketch_segments(
        self,
        member: str,
        segments: Sequence[Sequence[float]],
        construction: bool = False,
    ) -> int:
        """Create segments in the sketch open for editing.

        Args:
            member: ISketchManager creation method, e.g. "CreateLine".
            segments: One argument list per segment, lengths in metres.
            construction: Mark the new segments as construction geometry.

        Returns:
            Number of segments created.

        Raises:
            CommandExecutionError: If no sketch is open or a segment could
                not be created.
        """

        def draw(doc: Any) -> int:
            manager = doc.SketchManager
            if manager.ActiveSketch is None:
                raise CommandExecutionError(member, "no sketch is open for editing")
            # Bypass inference so points land exactly where given.
            manager.AddToDB = True
            try:
                for arguments in segments:
                    segment = getattr(manager, member)(*arguments)
                    if segment is None:
                        raise CommandExecutionError(member, "returned no sketch segment")
                    if construction:
                        segment.ConstructionGeometry = True
            finally:
                manager.AddToDB = False
            return len(segments)

        return await self.with_document(member, draw)

    # =========================================================================
    # Commands and macros
    # =========================================================================

    async def run_command(self, command_id: int, argument: str = "") -> None:
        """Invoke a built-in command by swCommands_e identifier.

        Raises:
            CommandExecutionError: If SolidWorks rejects or fails the command.
        """
        operation = f"RunCommand({command_id})"

        def run(app: Any) -> None:
            if not app.RunCommand(command_id, argument):
                raise CommandExecutionError(operation, "RunCommand returned False")

        await self.with_application(operation, run)

    async def run_macro_file(
        self,
        path: str | Path,
        module: str,
        procedure: str,
    ) -> MacroRunResult:
        """Run a macro file through the SolidWorks macro runner.

        Raises:
            EntityNotFoundError: If the macro file does not exist.
            CommandExecutionError: If the runner reports a failure.
        """
        macro_path = Path(path)
        if not macro_path.is_file():
            raise EntityNotFoundError("macro file", [str(macro_path)])
        operation = f"RunMacro2({procedure})"

        def run(app: Any) -> MacroRunResult:
            result = app.RunMacro2(
                str(macro_path), module, procedure, RUN_MACRO_UNLOAD_AFTER_RUN, 0
            )
            ok, error_code = _macro_outcome(result)
            if not ok:
                raise CommandExecutionError(
                    operation, f"macro runner reported error {error_code}"
                )
            return MacroRunResult(procedure, str(macro_path), error_code)

        return await self.with_application(operation, run)

    async def run_macro(self, script: MacroScript) -> MacroRunResult:
        """Write a generated macro to the macro directory and run it.

        The file is removed afterwards whether or not the run succeeded.
        """
        macro_dir = self.config.macro_dir
        path = macro_dir / script.filename
        try:
            macro_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(script.source, encoding="utf-8")
        except OSError as e:
            raise CommandExecutionError(f"write macro {script.filename}", str(e)) from e

        try:
            return await self.run_macro_file(path, script.module, script.procedure)
        finally:
            with contextlib.suppress(OSError):
                path.unlink()
