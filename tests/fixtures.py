"""
Shared fixture builders for the exporter tests.
"""

import sys
import zlib
from pathlib import Path
from typing import Dict, Optional

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from etheria_exporter.chain import InMemoryChainDataSource
from etheria_exporter.grid import FULL_VOXEL_COUNT, PACKED_VOXEL_BYTES


# A 2x1x1 block footprint padded to 8 offsets with repeats
DOMINO_OCCUPIES = [
    0, 0, 0,
    1, 0, 0,
    0, 0, 0,
    1, 0, 0,
    0, 0, 0,
    1, 0, 0,
    0, 0, 0,
    1, 0, 0,
]

# A 2x2x2 cube footprint
CUBE_OCCUPIES = [
    0, 0, 0,
    1, 0, 0,
    0, 1, 0,
    1, 1, 0,
    0, 0, 1,
    1, 0, 1,
    0, 1, 1,
    1, 1, 1,
]


def make_blob_hex(
    payload: bytes,
    title: str = "castle",
    gap: bytes = b"",
    level: int = 6
) -> str:
    """Wrap a voxel payload the way the tile name stores it."""
    title_bytes = title.encode("utf-8")
    blob = bytes([len(title_bytes)]) + title_bytes + gap + zlib.compress(payload, level)
    return "0x" + blob.hex()


def byte_grid(samples: Optional[Dict[int, int]] = None, length: int = FULL_VOXEL_COUNT) -> bytes:
    """Byte-per-voxel grid with the given {grid_index: code} samples."""
    grid = np.zeros(length, dtype=np.uint8)
    for index, code in (samples or {}).items():
        grid[index] = code
    return grid.tobytes()


def packed_grid(samples: Optional[Dict[int, int]] = None) -> bytes:
    """Packed 4-bit grid with the given {grid_index: code} samples (code < 16)."""
    grid = np.zeros(PACKED_VOXEL_BYTES, dtype=np.uint8)
    for index, code in (samples or {}).items():
        byte = index // 2
        if index % 2 == 0:
            grid[byte] = (grid[byte] & 0x0F) | (code << 4)
        else:
            grid[byte] = (grid[byte] & 0xF0) | code
    return grid.tobytes()


def make_source(names: Optional[Dict] = None) -> InMemoryChainDataSource:
    """Tile (14, 2) holds two blocks; block type 2 has no template."""
    return InMemoryChainDataSource(
        blocks={
            (14, 2): [
                [0, 0, 0, 0, 5],
                [1, 10, 0, 0, -3],
                [2, 20, 0, 0, 7],
            ],
            (0, 0): [],
        },
        names=names or {(14, 2): "a plain tile name", (0, 0): ""},
        occupies={0: DOMINO_OCCUPIES, 1: CUBE_OCCUPIES},
    )
