"""
Exporter configuration: Pydantic models + TOML loading.

ExporterSettings holds deployment options (RPC endpoint, palette file,
worker count); ExportRequest holds the per-tile parameters of one export.
"""

import os
import tomllib
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .chain import VERSIONS
from .errors import InputValidationError, UnsupportedVersionError
from .tiles import MAP_SIZE, TileCoordinate, tile_to_col_row, validate_col_row


DEFAULT_VERSION = "1.2"
DEFAULT_PALETTE = "voxelizer"


class ExporterSettings(BaseModel):
    """Deployment-level settings."""

    rpc_url: Optional[str] = Field(default_factory=lambda: os.environ.get("RPC_URL"))
    rpc_timeout: float = Field(30.0, gt=0)
    default_version: str = DEFAULT_VERSION
    default_palette: str = DEFAULT_PALETTE
    classic_palette_path: Optional[Path] = None
    fetch_workers: int = Field(1, ge=1, le=32)

    @classmethod
    def from_toml(cls, path: str | Path) -> "ExporterSettings":
        """
        Load settings from a TOML file.

        Args:
            path: TOML file path

        Returns:
            ExporterSettings instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        # Allow either a flat file or an [exporter] table
        return cls(**data.get("exporter", data))


class ExportRequest(BaseModel):
    """Parameters of one tile export."""

    mode: Literal["old", "new", "auto"] = "auto"
    tile: Optional[int] = Field(None, ge=0)
    col: Optional[int] = Field(None, ge=0, lt=MAP_SIZE)
    row: Optional[int] = Field(None, ge=0, lt=MAP_SIZE)
    version: str = DEFAULT_VERSION
    palette: str = DEFAULT_PALETTE
    name_raw: Optional[str] = None
    rpc_url: Optional[str] = None
    center_offset: float = 0.0

    @field_validator("mode", mode="before")
    @classmethod
    def _lower_mode(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("name_raw")
    @classmethod
    def _check_name_raw(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        if v[:2].lower() != "0x":
            raise ValueError("nameRaw must start with 0x")
        return v

    @model_validator(mode="after")
    def _check_address(self) -> "ExportRequest":
        if self.tile is None and (self.col is None or self.row is None):
            raise ValueError("Provide either tile or (col and row)")
        validate_col_row(*self._raw_col_row())
        return self

    @field_validator("center_offset")
    @classmethod
    def _check_center_offset(cls, v: float) -> float:
        if v not in (0.0, 0.5):
            raise ValueError("center_offset must be 0 or 0.5")
        return v

    def _raw_col_row(self):
        if self.tile is not None:
            return tile_to_col_row(self.tile)
        return self.col, self.row

    @property
    def coordinate(self) -> TileCoordinate:
        """Validated (col, row) of the requested tile."""
        return validate_col_row(*self._raw_col_row())


def build_request(**kwargs) -> ExportRequest:
    """
    Validate export parameters.

    Raises:
        InputValidationError: bad tile/col/row, mode, hex or offset
        UnsupportedVersionError: unknown version string
    """
    try:
        request = ExportRequest(**{k: v for k, v in kwargs.items() if v is not None})
    except ValidationError as e:
        raise InputValidationError(str(e)) from e

    if request.version not in VERSIONS:
        raise UnsupportedVersionError(request.version, list(VERSIONS))
    return request
