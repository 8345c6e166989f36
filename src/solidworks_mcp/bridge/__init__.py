"""SolidWorks session adapter.

This package owns the only live handle to the SolidWorks process:

- SolidWorksSession: connection lifecycle, document access, selection,
  command and macro execution over COM
- Data types returned across the boundary (DocumentInfo, ConnectionStatus,
  MacroRunResult)
"""

from solidworks_mcp.bridge.base import (
    ConnectionStatus,
    DocumentInfo,
    DocumentType,
    MacroRunResult,
)
from solidworks_mcp.bridge.session import (
    SolidWorksSession,
    dispatch_application,
    parse_revision_year,
)

__all__ = [
    # Data types
    "ConnectionStatus",
    "DocumentInfo",
    "DocumentType",
    "MacroRunResult",
    # Session
    "SolidWorksSession",
    "dispatch_application",
    "parse_revision_year",
]
