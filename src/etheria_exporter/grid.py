"""
Hexagonal-Prism Grid Mathematics

New builds store their voxels as one flat array over a hex-packed tile:
9901 vertical pillars arranged in 133 rows, each pillar GRID_Y voxels high.
The linear grid index walks a pillar bottom-to-top, then moves to the next
pillar. This module inverts that ordering back to lattice coordinates.

Row layout (rows are numbered z = -66..66 after centering):
- Top region: rows grow by 3 pillars each (1, 4, 7, ... 100)
- Middle region: rows alternate between 100 and 99 pillars
- Bottom region: mirror image of the top region

The top region is inverted with the triangular-number formula: the number
of pillars up to and including row n is n + 1 + 3n(n+1)/2, so the row of a
pillar index follows from the positive root of that quadratic.

Performance: the bulk kernel is Numba-compiled and parallel; a full
128-high build is 1.27M grid samples.
"""

import math
from typing import Tuple

import numpy as np
from numba import njit, prange


GRID_Z = 133
GRID_X = 1 + (GRID_Z - 1) * 3 // 4  # 100
GRID_Y = 128


def _calc_pillar_count() -> int:
    """Pillars in the corner triangles plus the alternating center band."""
    corners = ((GRID_Z - 1) * 0.25 + 1) * (GRID_X + 1)
    center = ((GRID_Z + 1) * 0.5 - 2 - 1) * (GRID_X - 0.5) + (GRID_X - 1)
    return int(corners + center)


PILLAR_COUNT = _calc_pillar_count()  # 9901
HALF_ROWS = (GRID_Z - 1) // 2  # 66

# First pillar index past the top region, and first index of the bottom one
MAX_INC = 33 + 1 + 3 * (33 * (33 + 1)) // 2  # 1717
MIN_DEC = PILLAR_COUNT - MAX_INC
PILLAR_CENTER = (PILLAR_COUNT - 1) // 2  # 4950

# Average pillars per row in the alternating middle band
MIDDLE_ROW_WIDTH = 99.5

FULL_VOXEL_COUNT = PILLAR_COUNT * GRID_Y  # 1,267,328
PACKED_VOXEL_BYTES = FULL_VOXEL_COUNT // 2  # 633,664


@njit(cache=True)
def _pillars_through_row(n: int) -> int:
    """Number of pillars in rows 0..n of a triangular corner."""
    return n + 1 + 3 * n * (n + 1) // 2


@njit(cache=True)
def _pillars_in_row(n: int) -> int:
    return 1 + 3 * n


@njit(cache=True)
def _round_half_up(v: float) -> float:
    # Halves round toward +inf, not to even
    return math.floor(v + 0.5)


@njit(cache=True)
def _corner_row(count: int) -> int:
    """Row of the count-th pillar (1-based) inside a triangular corner."""
    return int(math.ceil((math.sqrt(24.0 * count + 1.0) - 5.0) / 6.0))


@njit(cache=True)
def pillar_position(pillar_index: int) -> Tuple[int, int]:
    """
    Map a pillar index in [0, PILLAR_COUNT) to its (x, z) lattice position.

    Args:
        pillar_index: Pillar number in grid order

    Returns:
        (x, z) with z in [-66, 66]
    """
    if pillar_index < MAX_INC:
        z_offset = _corner_row(pillar_index + 1)
        x = (pillar_index - _pillars_through_row(z_offset)
             + (_pillars_in_row(z_offset) + 1) // 2)
        z = z_offset - HALF_ROWS
    elif pillar_index < MIN_DEC:
        offset = float(pillar_index - PILLAR_CENTER)
        x = int(math.floor(
            offset - _round_half_up(offset / MIDDLE_ROW_WIDTH) * MIDDLE_ROW_WIDTH
        ))
        z = int(_round_half_up((offset - x) / MIDDLE_ROW_WIDTH))
    else:
        remaining = PILLAR_COUNT - pillar_index
        z_offset = _corner_row(remaining)
        x = (_pillars_through_row(z_offset)
             - _pillars_in_row(z_offset) // 2
             - remaining)
        z = HALF_ROWS - z_offset

    return x, z


@njit(cache=True)
def grid_index_to_position(grid_index: int, grid_y: int = GRID_Y) -> Tuple[int, int, int]:
    """
    Map a linear grid index to (x, y, z).

    Args:
        grid_index: Index into the flat voxel array
        grid_y: Pillar height of the encoding

    Returns:
        (x, y, z) lattice coordinates
    """
    y = grid_index % grid_y
    x, z = pillar_position((grid_index - y) // grid_y)
    return x, y, z


@njit(cache=True, parallel=True)
def grid_positions(indices: np.ndarray, grid_y: int) -> np.ndarray:
    """
    Vectorized grid_index_to_position().

    Args:
        indices: 1D int64 array of grid indices
        grid_y: Pillar height of the encoding

    Returns:
        int32 array of shape (N, 3) with x, y, z columns
    """
    n = indices.shape[0]
    out = np.empty((n, 3), dtype=np.int32)

    for i in prange(n):
        gi = indices[i]
        y = gi % grid_y
        x, z = pillar_position((gi - y) // grid_y)
        out[i, 0] = x
        out[i, 1] = y
        out[i, 2] = z

    return out


class HexGridCoordinateMapper:
    """
    Grid index to lattice coordinate mapper for one pillar height.

    All constants are fixed at import time; an instance only carries the
    grid_y of the build being decoded.
    """

    pillar_count = PILLAR_COUNT

    def __init__(self, grid_y: int = GRID_Y):
        if grid_y < 1:
            raise ValueError(f"grid_y must be positive, got {grid_y}")
        self.grid_y = grid_y

    @property
    def voxel_count(self) -> int:
        """Total grid samples for this pillar height."""
        return PILLAR_COUNT * self.grid_y

    def position(self, grid_index: int) -> Tuple[int, int, int]:
        """Lattice coordinates of a single grid index."""
        return grid_index_to_position(grid_index, self.grid_y)

    def positions(self, indices: np.ndarray) -> np.ndarray:
        """Lattice coordinates of many grid indices as an (N, 3) array."""
        indices = np.ascontiguousarray(indices, dtype=np.int64)
        if len(indices) == 0:
            return np.empty((0, 3), dtype=np.int32)
        return grid_positions(indices, self.grid_y)

    @staticmethod
    def pillar_footprint() -> np.ndarray:
        """(x, z) of every pillar, shape (PILLAR_COUNT, 2)."""
        footprint = np.empty((PILLAR_COUNT, 2), dtype=np.int32)
        for p in range(PILLAR_COUNT):
            footprint[p] = pillar_position(p)
        return footprint
