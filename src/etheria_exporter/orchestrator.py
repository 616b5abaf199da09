"""
Tile Export Orchestration

This is the primary interface for exporting one Etheria tile. It runs:
1. Build selection (old blocks, new blob, or auto-detection)
2. Decoding into a VoxelSet
3. Cube mesh generation with the chosen palette
4. Hand-off to a geometry sink (.glb)

Modes:
- OLD:  decode the block list; never looks at the name blob
- NEW:  decode the name blob; every failure propagates
- AUTO: decode the name blob if one is found, and fall back to the block
        list when that blob is not a decodable new build

Example Usage:
    source = InMemoryChainDataSource(blocks=..., occupies=...)
    exporter = TileExporter(source, palette="classic")
    result = exporter.export(Mode.AUTO, col=14, row=2)
    exporter.write_glb(result, "tile_464.glb")
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .chain import ChainDataSource, Web3ChainDataSource
from .config import ExporterSettings, ExportRequest
from .errors import BlobFormatError, InputValidationError, MissingBlobError
from .exporters import GeometrySink, GLBExporter
from .mesh import CubeGroup, VoxelMeshBuilder, mesh_stats
from .new_build import NewBuild, NewBuildDecoder, extract_hex_run
from .old_build import OldBuildDecoder
from .palette import Palette, load_classic_table
from .tiles import validate_col_row
from .voxels import Position, VoxelSet

logger = logging.getLogger(__name__)


class Mode(Enum):
    """Build selection mode."""
    OLD = "old"
    NEW = "new"
    AUTO = "auto"

    @classmethod
    def from_name(cls, name: Union[str, "Mode"]) -> "Mode":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise InputValidationError(
                f"Unknown mode: {name}. Use one of: old, new, auto"
            ) from None


@dataclass
class DecodeResult:
    """Outcome of decoding one tile."""
    mode: Mode
    voxel_set: VoxelSet
    build: Optional[NewBuild] = None
    fallback_reason: Optional[str] = None

    @property
    def is_new_build(self) -> bool:
        return self.build is not None


@dataclass
class ExportResult:
    """Decoded voxels plus the cube geometry built from them."""
    col: int
    row: int
    palette: Palette
    decoded: DecodeResult
    groups: List[CubeGroup] = field(default_factory=list)

    @property
    def stats(self) -> Dict[str, int]:
        stats = mesh_stats(self.groups)
        stats["voxels"] = self.decoded.voxel_set.total_voxels
        return stats

    @property
    def bounds(self) -> Tuple[Position, Position]:
        """Inclusive voxel extent of the decoded build."""
        return self.decoded.voxel_set.bounds()

    def summary(self) -> List[str]:
        """Human-readable report lines."""
        lines = [f"Mode = {self.decoded.mode.value}"]
        if self.decoded.is_new_build:
            build = self.decoded.build
            lines[0] += f' | title="{build.title}" | encoding={build.encoding} | gridY={build.grid_y}'
        if self.decoded.fallback_reason:
            lines.append(f"Fallback = {self.decoded.fallback_reason}")
        lines.append(f"Tile col,row = {self.col},{self.row}")
        lines.append(f"Palette = {self.palette.value}")
        lines.append(f"Occupied voxels = {self.decoded.voxel_set.total_voxels}")
        return lines


class TileExporter:
    """
    High-level interface for exporting a tile.

    One instance may serve many requests: it keeps no state between calls
    beyond its configuration.
    """

    def __init__(
        self,
        source: ChainDataSource,
        palette: Union[str, Palette] = Palette.VOXELIZER,
        center_offset: float = 0.0,
        name_raw: Optional[str] = None,
        classic_table: Optional[Mapping[int, str]] = None,
        max_workers: int = 1,
        sink: Optional[GeometrySink] = None
    ):
        """
        Initialize the TileExporter.

        Args:
            source: Chain reads for blocks, names and block templates
            palette: Palette for the output colors
            center_offset: 0.0 or 0.5, added to every cube center
            name_raw: Explicit "0x..." blob overriding the tile name
            classic_table: Color table for the classic palette
            max_workers: Parallel block-template fetches for old builds
            sink: Geometry writer (default: GLBExporter)
        """
        self.source = source
        self.palette = Palette.from_name(palette)
        self.name_raw = name_raw
        self.mesh_builder = VoxelMeshBuilder(self.palette, center_offset, classic_table)
        self.old_decoder = OldBuildDecoder(source, max_workers=max_workers)
        self.new_decoder = NewBuildDecoder()
        self.sink = sink or GLBExporter()

    def resolve_blob_hex(self, col: int, row: int) -> Optional[str]:
        """
        Find the new-build blob for a tile.

        Returns:
            The explicit override if set, else the first 0x... run of the
            tile name, else None
        """
        if self.name_raw:
            return self.name_raw
        return extract_hex_run(self.source.get_name(col, row))

    def decode(self, mode: Union[str, Mode], col: int, row: int) -> DecodeResult:
        """
        Decode a tile into voxels.

        Args:
            mode: OLD, NEW or AUTO
            col, row: Tile coordinates (0..32)

        Returns:
            DecodeResult with the VoxelSet of the build actually used
        """
        mode = Mode.from_name(mode)
        validate_col_row(col, row)

        if mode is Mode.OLD:
            return DecodeResult(Mode.OLD, self.old_decoder.decode(col, row))

        blob_hex = self.resolve_blob_hex(col, row)

        if mode is Mode.NEW:
            if not blob_hex:
                raise MissingBlobError(
                    "Mode=new but getName() did not contain a 0x... blob and no nameRaw was provided"
                )
            return self._decode_new(blob_hex)

        if not blob_hex:
            logger.info("auto: no name blob found, using old build")
            return DecodeResult(
                Mode.OLD, self.old_decoder.decode(col, row), fallback_reason="no name blob"
            )

        try:
            return self._decode_new(blob_hex)
        except BlobFormatError as e:
            logger.info("auto: newbuild decode failed, falling back to old: %s", e)
            return DecodeResult(
                Mode.OLD, self.old_decoder.decode(col, row), fallback_reason=str(e)
            )

    def _decode_new(self, blob_hex: str) -> DecodeResult:
        build = self.new_decoder.decode(blob_hex)
        voxel_set = build.to_voxel_set(signed_colors=self.palette is Palette.CLASSIC)
        return DecodeResult(Mode.NEW, voxel_set, build=build)

    def export(self, mode: Union[str, Mode], col: int, row: int) -> ExportResult:
        """
        Decode a tile and build its cube geometry.

        Nothing is returned on failure: either the whole export succeeds or
        an exception propagates.
        """
        decoded = self.decode(mode, col, row)
        groups = self.mesh_builder.build(decoded.voxel_set)
        return ExportResult(col=col, row=row, palette=self.palette, decoded=decoded, groups=groups)

    def write_glb(self, result: ExportResult, output_path: Union[str, Path]):
        """Hand an export's geometry to the sink."""
        self.sink.export(result.groups, output_path)


def create_exporter(
    request: ExportRequest,
    source: Optional[ChainDataSource] = None,
    settings: Optional[ExporterSettings] = None
) -> TileExporter:
    """
    Build a TileExporter for a validated request.

    Args:
        request: Validated export parameters
        source: Chain reads; a web3 source is created when omitted
        settings: Deployment settings (default: environment)

    Returns:
        Configured TileExporter
    """
    settings = settings or ExporterSettings()

    if source is None:
        rpc_url = request.rpc_url or settings.rpc_url
        if not rpc_url:
            raise InputValidationError("Missing RPC URL (pass --rpc or set RPC_URL)")
        source = Web3ChainDataSource(rpc_url, request.version, timeout=settings.rpc_timeout)

    return TileExporter(
        source,
        palette=request.palette,
        center_offset=request.center_offset,
        name_raw=request.name_raw,
        classic_table=load_classic_table(settings.classic_palette_path),
        max_workers=settings.fetch_workers,
    )


def export_tile(
    request: ExportRequest,
    source: Optional[ChainDataSource] = None,
    settings: Optional[ExporterSettings] = None,
    output_path: Optional[Union[str, Path]] = None
) -> ExportResult:
    """
    Run one export request end to end.

    Args:
        request: Validated export parameters
        source: Chain reads; a web3 source is created when omitted
        settings: Deployment settings (default: environment)
        output_path: Where to write the .glb; nothing is written when None

    Returns:
        ExportResult of the tile
    """
    exporter = create_exporter(request, source, settings)
    col, row = request.coordinate
    result = exporter.export(request.mode, col, row)
    if output_path is not None:
        exporter.write_glb(result, output_path)
    return result
