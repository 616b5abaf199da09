"""
Old Build Decoder

Old (block-based) builds are a list of placed blocks. Each block type has
an occupancy template of 8 voxel offsets; a block covers its own position
plus each offset.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence

from .chain import ChainDataSource, OldBuildBlock, Offset, occupies_to_triplets
from .voxels import VoxelSet

logger = logging.getLogger(__name__)


class OldBuildDecoder:
    """
    Expand an old build's block list into a VoxelSet.

    Templates are fetched once per distinct block type per decode and are
    not kept between decodes.
    """

    def __init__(self, source: ChainDataSource, max_workers: int = 1):
        """
        Initialize the decoder.

        Args:
            source: Chain reads for blocks and occupancy templates
            max_workers: Parallel template fetches (1 = sequential)
        """
        self.source = source
        self.max_workers = max(1, int(max_workers))

    def decode(self, col: int, row: int) -> VoxelSet:
        """Read the tile's blocks and expand them."""
        blocks = self.source.get_blocks(col, row)
        logger.debug("oldbuild: tile %d,%d has %d blocks", col, row, len(blocks))
        return self.decode_blocks(blocks)

    def decode_blocks(self, blocks: Iterable[OldBuildBlock]) -> VoxelSet:
        """
        Expand blocks into voxels.

        Blocks whose type has no template are skipped.

        Args:
            blocks: Placed blocks of one tile

        Returns:
            VoxelSet keyed by the blocks' signed color codes
        """
        blocks = list(blocks)
        templates = self.fetch_templates(sorted({b.block_type for b in blocks}))

        voxel_set = VoxelSet()
        skipped = 0
        for block in blocks:
            offsets = templates.get(block.block_type)
            if not offsets:
                skipped += 1
                continue
            for dx, dy, dz in offsets:
                voxel_set.add(block.color, (block.x + dx, block.y + dy, block.z + dz))

        if skipped:
            logger.debug("oldbuild: skipped %d blocks without a template", skipped)
        logger.debug(
            "oldbuild: %d blocks -> %d voxels in %d colors",
            len(blocks), voxel_set.total_voxels, len(voxel_set)
        )
        return voxel_set

    def fetch_templates(self, block_types: Sequence[int]) -> Dict[int, List[Offset]]:
        """
        Fetch the occupancy template of each block type.

        Returns:
            block_type -> offsets, omitting types with no template
        """
        if self.max_workers > 1 and len(block_types) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                raw_templates = list(pool.map(self.source.get_occupies, block_types))
        else:
            raw_templates = [self.source.get_occupies(t) for t in block_types]

        templates: Dict[int, List[Offset]] = {}
        for block_type, raw in zip(block_types, raw_templates):
            offsets = self._to_offsets(raw)
            if offsets:
                templates[block_type] = offsets
        return templates

    @staticmethod
    def _to_offsets(raw: Optional[Sequence[int]]) -> List[Offset]:
        if raw is None:
            return []
        return occupies_to_triplets(raw)
