"""
Etheria Tile Exporter
=====================

Reconstructs Etheria map tiles from their on-chain encoding and turns them
into renderable cube geometry.

Two historical build encodings are supported:
- Old builds: a list of placed blocks, each expanded through its block
  type's 8-voxel occupancy template
- New builds: a zlib-compressed voxel grid embedded as a hex blob in the
  tile name, laid out on a 133-row hexagonal-prism grid

Key Features:
- Auto-detection of the build encoding with fallback to old builds
- Byte-per-voxel and packed 4-bit grids, any pillar height up to 512
- Voxelizer, classic, 6-bit and grayscale palettes
- One independent unit cube per voxel, exported as glTF 2.0 (.glb)

Example Usage:
    from etheria_exporter import TileExporter, Web3ChainDataSource

    source = Web3ChainDataSource("https://ethereum.publicnode.com", version="1.2")
    exporter = TileExporter(source, palette="voxelizer")
    result = exporter.export("auto", col=16, row=2)
    exporter.write_glb(result, "tile_530.glb")
"""

__version__ = "1.0.0"

from .chain import ChainDataSource, InMemoryChainDataSource, OldBuildBlock, Web3ChainDataSource
from .errors import (
    BlobFormatError,
    EtheriaExportError,
    InflateError,
    InputValidationError,
    MissingBlobError,
    NoZlibHeaderError,
    UnrecognizedEncodingError,
    UnsupportedVersionError,
)
from .grid import HexGridCoordinateMapper, PILLAR_COUNT
from .mesh import CubeGroup, VoxelMeshBuilder
from .new_build import NewBuild, NewBuildDecoder
from .old_build import OldBuildDecoder
from .orchestrator import Mode, TileExporter, export_tile
from .palette import Palette, PaletteResolver, resolve_color
from .tiles import tile_to_col_row
from .voxels import VoxelSet

__all__ = [
    "ChainDataSource",
    "InMemoryChainDataSource",
    "OldBuildBlock",
    "Web3ChainDataSource",
    "BlobFormatError",
    "EtheriaExportError",
    "InflateError",
    "InputValidationError",
    "MissingBlobError",
    "NoZlibHeaderError",
    "UnrecognizedEncodingError",
    "UnsupportedVersionError",
    "HexGridCoordinateMapper",
    "PILLAR_COUNT",
    "CubeGroup",
    "VoxelMeshBuilder",
    "NewBuild",
    "NewBuildDecoder",
    "OldBuildDecoder",
    "Mode",
    "TileExporter",
    "export_tile",
    "Palette",
    "PaletteResolver",
    "resolve_color",
    "tile_to_col_row",
    "VoxelSet",
]
