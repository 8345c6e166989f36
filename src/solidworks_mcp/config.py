"""Configuration management for SolidWorks MCP Server.

This module handles all configuration settings for the MCP server,
including SolidWorks installation and version resolution, macro storage,
strategy time limits, and logging.
"""

import tempfile
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# SolidWorks major versions count from 1992 (27 = 2019, 32 = 2024).
VERSION_YEAR_OFFSET = 1992


class ServerConfig(BaseSettings):
    """Configuration for the SolidWorks MCP server.

    Settings are loaded from environment variables with the SOLIDWORKS_ prefix.
    For example, SOLIDWORKS_VERSION sets the version field.

    Attributes:
        install_path: SolidWorks installation directory, checked on connect.
        version: Expected SolidWorks release year (e.g. "2024").
        prog_id_base: COM ProgID of the application object.
        visible: Whether to make the SolidWorks window visible on connect.
        macro_dir: Directory where generated macros are written before running.
        part_template: Default part template path.
        assembly_template: Default assembly template path.
        drawing_template: Default drawing template path.
        strategy_timeout_ms: Time budget for a single strategy attempt.
        log_level: Logging level.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLIDWORKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Installation
    install_path: Annotated[
        Path | None,
        Field(description="SolidWorks installation directory"),
    ] = None
    version: Annotated[
        str | None,
        Field(pattern=r"^\d{4}$", description="SolidWorks release year"),
    ] = None
    prog_id_base: Annotated[
        str,
        Field(min_length=1, description="COM ProgID of the application"),
    ] = "SldWorks.Application"
    visible: bool = True

    # Documents and macros
    macro_dir: Annotated[
        Path,
        Field(description="Directory for generated macro files"),
    ] = Path(tempfile.gettempdir()) / "solidworks_mcp_macros"
    part_template: Path | None = None
    assembly_template: Path | None = None
    drawing_template: Path | None = None

    # Execution limits
    strategy_timeout_ms: Annotated[
        int,
        Field(ge=1000, le=600000, description="Per-strategy timeout in ms"),
    ] = 30000

    # Logging
    log_level: str = "INFO"

    @property
    def prog_id(self) -> str:
        """ProgID to dispatch, pinned to the configured version when set."""
        if self.version is None:
            return self.prog_id_base
        return f"{self.prog_id_base}.{int(self.version) - VERSION_YEAR_OFFSET}"


def get_config() -> ServerConfig:
    """Get the server configuration.

    Returns:
        ServerConfig instance populated from environment variables.
    """
    return ServerConfig()
