"""
Voxel Set Data Structure

Both decoders produce the same canonical result: a mapping from color code
to the set of lattice positions carrying that color.

The set is sparse (a dict of ordered sets) rather than a dense grid. The
hex-prism tile spans x in [-50, 50], z in [-66, 66] and up to 512 voxels
high, while typical builds occupy a small fraction of it.

Insertion order is preserved for colors and positions so that repeated
decodes of the same data emit identical geometry.
"""

from typing import Dict, Iterator, List, Tuple

import numpy as np

Position = Tuple[int, int, int]


class VoxelSet:
    """
    Color code -> unique voxel positions.

    A position is unique within its color bucket. The same position may
    appear under two colors only if the source assigns it twice.
    """

    def __init__(self):
        self._buckets: Dict[int, Dict[Position, None]] = {}

    def add(self, color: int, position: Position) -> bool:
        """
        Add one voxel.

        Args:
            color: Color code
            position: (x, y, z) integer coordinates

        Returns:
            True if the voxel was new to this color's bucket
        """
        bucket = self._buckets.setdefault(int(color), {})
        key = (int(position[0]), int(position[1]), int(position[2]))
        if key in bucket:
            return False
        bucket[key] = None
        return True

    def add_many(self, color: int, positions: np.ndarray) -> int:
        """
        Add an (N, 3) array of positions under one color.

        Returns:
            Number of positions that were new
        """
        bucket = self._buckets.setdefault(int(color), {})
        before = len(bucket)
        for x, y, z in np.asarray(positions).tolist():
            bucket.setdefault((x, y, z), None)
        return len(bucket) - before

    def positions(self, color: int) -> List[Position]:
        """Positions of one color in insertion order."""
        return list(self._buckets.get(color, ()))

    def as_array(self, color: int) -> np.ndarray:
        """Positions of one color as an int32 (N, 3) array."""
        bucket = self._buckets.get(color)
        if not bucket:
            return np.empty((0, 3), dtype=np.int32)
        return np.array(list(bucket), dtype=np.int32)

    def colors(self) -> List[int]:
        """Color codes that hold at least one voxel."""
        return [c for c, bucket in self._buckets.items() if bucket]

    def count(self, color: int) -> int:
        return len(self._buckets.get(color, ()))

    @property
    def total_voxels(self) -> int:
        """Voxel count summed over all colors."""
        return sum(len(b) for b in self._buckets.values())

    def bounds(self) -> Tuple[Position, Position]:
        """
        Inclusive (min_xyz, max_xyz) over every voxel.

        Returns ((0, 0, 0), (0, 0, 0)) for an empty set.
        """
        arrays = [self.as_array(c) for c in self.colors()]
        if not arrays:
            return ((0, 0, 0), (0, 0, 0))
        stacked = np.vstack(arrays)
        return (
            tuple(int(v) for v in stacked.min(axis=0)),
            tuple(int(v) for v in stacked.max(axis=0)),
        )

    def is_empty(self) -> bool:
        return self.total_voxels == 0

    def __len__(self) -> int:
        return len(self.colors())

    def __contains__(self, item) -> bool:
        """`color in vs` or `(color, position) in vs`."""
        if isinstance(item, tuple) and len(item) == 2:
            color, position = item
            return tuple(position) in self._buckets.get(color, ())
        return self.count(item) > 0

    def __iter__(self) -> Iterator[Tuple[int, List[Position]]]:
        for color in self.colors():
            yield color, self.positions(color)

    def __repr__(self) -> str:
        return f"VoxelSet(colors={len(self)}, voxels={self.total_voxels})"
