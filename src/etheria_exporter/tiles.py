"""
Tile Addressing

The Etheria map is a 33 x 33 board of hexagonal tiles. A tile is addressed
either by a single index in [0, 1088] or by its (col, row) pair, with
tile = col * 33 + row.
"""

from typing import NamedTuple

from .errors import InputValidationError


MAP_SIZE = 33
TILE_COUNT = MAP_SIZE * MAP_SIZE  # 1089


class TileCoordinate(NamedTuple):
    """Column/row address of a map tile."""
    col: int
    row: int

    @property
    def tile(self) -> int:
        return col_row_to_tile(self.col, self.row)


def tile_to_col_row(tile: int) -> TileCoordinate:
    """
    Split a tile index into (col, row).

    No upper bound is enforced here; use validate_col_row() on the result.

    Args:
        tile: Non-negative tile index

    Returns:
        TileCoordinate with col = tile // 33 and row = tile % 33
    """
    if isinstance(tile, bool) or not isinstance(tile, int):
        raise InputValidationError(f"Tile must be an integer, got {tile!r}")
    if tile < 0:
        raise InputValidationError(f"Tile must be >= 0, got {tile}")

    return TileCoordinate(tile // MAP_SIZE, tile % MAP_SIZE)


def col_row_to_tile(col: int, row: int) -> int:
    """Inverse of tile_to_col_row()."""
    return col * MAP_SIZE + row


def validate_col_row(col: int, row: int) -> TileCoordinate:
    """Reject coordinates outside the 33 x 33 map."""
    if not (0 <= col < MAP_SIZE and 0 <= row < MAP_SIZE):
        raise InputValidationError(
            f"col,row out of bounds ({col},{row}). Expected 0..{MAP_SIZE - 1}"
        )
    return TileCoordinate(col, row)
