"""
Per-Color Cube Mesh Generation

Every voxel becomes an independent unit cube: 8 vertices, 12 triangles.
Adjacent faces are neither culled nor merged, so each cube stays a closed
box on its own.

Cube layout (corner index -> offset from the cube center, in half-extents):

        7-------6
       /|      /|         y
      3-------2 |         |
      | 4-----|-5         o--x
      |/      |/         /
      0-------1         z (toward 4..7)

Triangles are wound counter-clockwise seen from outside, so the right-hand
normal of every triangle points away from the cube center.
"""

import logging
from typing import Dict, List, Mapping, NamedTuple, Optional, Union

import numpy as np
from numba import njit, prange

from .errors import InputValidationError
from .palette import RGBA, Palette, PaletteResolver
from .voxels import VoxelSet

logger = logging.getLogger(__name__)

HALF_EXTENT = 0.5

CUBE_CORNERS = np.array([
    [-1, -1, -1],
    [1, -1, -1],
    [1, 1, -1],
    [-1, 1, -1],
    [-1, -1, 1],
    [1, -1, 1],
    [1, 1, 1],
    [-1, 1, 1],
], dtype=np.float32) * HALF_EXTENT

CUBE_TRIANGLES = np.array([
    [0, 2, 1], [0, 3, 2],  # -Z
    [4, 5, 6], [4, 6, 7],  # +Z
    [0, 1, 5], [0, 5, 4],  # -Y
    [3, 6, 2], [3, 7, 6],  # +Y
    [0, 7, 3], [0, 4, 7],  # -X
    [1, 6, 5], [1, 2, 6],  # +X
], dtype=np.uint32)

VERTICES_PER_CUBE = 8
INDICES_PER_CUBE = 36

VALID_CENTER_OFFSETS = (0.0, 0.5)


class CubeGroup(NamedTuple):
    """Geometry for all voxels of one color."""
    color_index: int
    rgba: RGBA
    positions: np.ndarray    # (N, 3) int32 voxel positions
    vertices: np.ndarray     # (N*8, 3) float32 cube corners
    indices: np.ndarray      # (N*36,) uint32, local to this group

    @property
    def cube_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3


@njit(cache=True, parallel=True)
def _emit_cubes(
    positions: np.ndarray,
    center_offset: float,
    corners: np.ndarray,
    triangles: np.ndarray
):
    """
    Expand voxel positions into cube vertices and indices.

    Args:
        positions: (N, 3) int32 voxel positions
        center_offset: Shift applied to every axis
        corners: (8, 3) corner offsets
        triangles: (12, 3) corner indices per triangle

    Returns:
        (vertices, indices) arrays
    """
    n = positions.shape[0]
    vertices = np.empty((n * 8, 3), dtype=np.float32)
    indices = np.empty(n * 36, dtype=np.uint32)

    for i in prange(n):
        cx = positions[i, 0] + center_offset
        cy = positions[i, 1] + center_offset
        cz = positions[i, 2] + center_offset

        v_base = i * 8
        for c in range(8):
            vertices[v_base + c, 0] = cx + corners[c, 0]
            vertices[v_base + c, 1] = cy + corners[c, 1]
            vertices[v_base + c, 2] = cz + corners[c, 2]

        i_base = i * 36
        for t in range(12):
            for k in range(3):
                indices[i_base + t * 3 + k] = v_base + triangles[t, k]

    return vertices, indices


class VoxelMeshBuilder:
    """
    Build per-color cube geometry from a VoxelSet.

    The output is a list of CubeGroup, one per color with at least one
    voxel, in the VoxelSet's color order.
    """

    def __init__(
        self,
        palette: Union[str, Palette] = Palette.VOXELIZER,
        center_offset: float = 0.0,
        classic_table: Optional[Mapping[int, str]] = None
    ):
        """
        Initialize the builder.

        Args:
            palette: Palette used to color each group
            center_offset: 0.0 puts cube centers on integer coordinates,
                0.5 puts cube corners there
            classic_table: Color table for the classic palette
        """
        if float(center_offset) not in VALID_CENTER_OFFSETS:
            raise InputValidationError(
                f"center_offset must be 0 or 0.5, got {center_offset}"
            )
        self.center_offset = float(center_offset)
        self.resolver = PaletteResolver(palette, classic_table)

    @property
    def palette(self) -> Palette:
        return self.resolver.palette

    def build(self, voxel_set: VoxelSet) -> List[CubeGroup]:
        """
        Emit one cube group per non-empty color.

        Args:
            voxel_set: Decoded voxels

        Returns:
            List of CubeGroup
        """
        groups = []
        for color in voxel_set.colors():
            positions = voxel_set.as_array(color)
            if len(positions) == 0:
                continue
            groups.append(self.build_group(color, positions))

        logger.debug(
            "mesh: %d groups, %d cubes", len(groups), sum(g.cube_count for g in groups)
        )
        return groups

    def build_group(self, color: int, positions: np.ndarray) -> CubeGroup:
        """Cube geometry for one color's positions."""
        positions = np.ascontiguousarray(positions, dtype=np.int32).reshape(-1, 3)
        vertices, indices = _emit_cubes(
            positions, self.center_offset, CUBE_CORNERS, CUBE_TRIANGLES
        )
        return CubeGroup(
            color_index=int(color),
            rgba=self.resolver.resolve(int(color)),
            positions=positions,
            vertices=vertices,
            indices=indices,
        )


def mesh_stats(groups: List[CubeGroup]) -> Dict[str, int]:
    """
    Summary counts of a cube mesh.

    Args:
        groups: Output of VoxelMeshBuilder.build()

    Returns:
        Dictionary with group, cube, vertex and triangle counts
    """
    cubes = sum(g.cube_count for g in groups)
    return {
        "color_groups": len(groups),
        "cubes": cubes,
        "vertices": cubes * VERTICES_PER_CUBE,
        "triangles": sum(g.triangle_count for g in groups),
    }

