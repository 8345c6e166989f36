"""Data types exchanged across the SolidWorks session boundary.

The session adapter never hands out raw COM objects. Callers receive the
plain snapshots defined here instead.
"""

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any


class DocumentType(IntEnum):
    """swDocumentTypes_e values."""

    NONE = 0
    PART = 1
    ASSEMBLY = 2
    DRAWING = 3

    @classmethod
    def from_path(cls, path: str) -> "DocumentType":
        """Infer the document type from a file extension."""
        suffix = path.rsplit(".", 1)[-1].lower() if "." in path else ""
        return {
            "sldprt": cls.PART,
            "sldasm": cls.ASSEMBLY,
            "slddrw": cls.DRAWING,
        }.get(suffix, cls.PART)


@dataclass
class DocumentInfo:
    """Snapshot of a SolidWorks document.

    Attributes:
        title: Window title of the document.
        path: Full path if the document has been saved, None otherwise.
        doc_type: Part, assembly, or drawing.
        is_modified: Whether the document has unsaved changes.
    """

    title: str
    path: str | None = None
    doc_type: DocumentType = DocumentType.PART
    is_modified: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["doc_type"] = self.doc_type.name.lower()
        return data


@dataclass
class MacroRunResult:
    """Outcome of a macro submitted to the SolidWorks macro runner.

    Attributes:
        procedure: Entry point that was run.
        path: Macro file that was run.
        error_code: swRunMacroError_e value reported by RunMacro2.
    """

    procedure: str
    path: str
    error_code: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConnectionStatus:
    """Status of the SolidWorks session.

    Attributes:
        connected: Whether a live application handle is held.
        prog_id: COM ProgID used to attach.
        revision: SolidWorks revision string (e.g. "32.1.0").
        process_id: Process id of the attached SolidWorks instance.
        visible: Whether the application window was made visible.
        error: Last connection error message, if any.
    """

    connected: bool
    prog_id: str
    revision: str = ""
    process_id: int | None = None
    visible: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
