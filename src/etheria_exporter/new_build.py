"""
New Build Decoder

New builds are stored in the tile's on-chain name as a hex blob:

    [nameLen: 1 byte][title: nameLen UTF-8 bytes][...][zlib header][payload]

The zlib stream starts somewhere in the 512 bytes after the title. Once
inflated, the payload is one of:
- byte:     PILLAR_COUNT * 128 bytes, one color code per voxel
- packed16: PILLAR_COUNT * 64 bytes, two 4-bit color codes per byte
- byte with any other pillar height: PILLAR_COUNT * gridY bytes, gridY <= 512

A zero sample is empty space; any other value is a color code at that grid
index.
"""

import logging
import re
import zlib
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from .errors import (
    InflateError,
    InputValidationError,
    NoZlibHeaderError,
    UnrecognizedEncodingError,
)
from .grid import FULL_VOXEL_COUNT, GRID_Y, PACKED_VOXEL_BYTES, PILLAR_COUNT, HexGridCoordinateMapper
from .voxels import VoxelSet

logger = logging.getLogger(__name__)

HEX_RUN_PATTERN = re.compile(r"0x[0-9a-fA-F]+")
NON_HEX_PATTERN = re.compile(r"[^0-9a-fA-F]")

ZLIB_CMF = 0x78
ZLIB_FLG_VALUES = frozenset((0x01, 0x5E, 0x9C, 0xDA))
ZLIB_SCAN_WINDOW = 512

MAX_GRID_Y = 512
MAX_INFLATED_BYTES = PILLAR_COUNT * MAX_GRID_Y

ENCODING_BYTE = "byte"
ENCODING_PACKED16 = "packed16"


def extract_hex_run(text: Optional[str]) -> Optional[str]:
    """First literal 0x... run inside a string, or None."""
    if not text:
        return None
    match = HEX_RUN_PATTERN.search(str(text))
    return match.group(0) if match else None


def decode_blob_hex(hex_str: str) -> bytes:
    """
    Convert "0x..." text into blob bytes.

    Non-hex characters after the prefix are discarded and an odd digit count
    is left-padded with a zero.

    Raises:
        InputValidationError: if the text does not start with 0x
    """
    text = str(hex_str).strip()
    if not text[:2].lower() == "0x":
        raise InputValidationError("nameRAW must start with 0x")

    digits = NON_HEX_PATTERN.sub("", text[2:])
    if len(digits) % 2 == 1:
        digits = "0" + digits
    return bytes.fromhex(digits)


def find_zlib_start(blob: bytes, name_len: int) -> int:
    """
    Locate the zlib header after the title.

    Args:
        blob: Decoded blob bytes
        name_len: Title length from byte 0

    Returns:
        Offset of the first header byte, or -1
    """
    title_end = 1 + name_len
    stop = min(len(blob) - 2, title_end + ZLIB_SCAN_WINDOW)
    for i in range(title_end, stop):
        if blob[i] == ZLIB_CMF and blob[i + 1] in ZLIB_FLG_VALUES:
            return i
    return -1


def expand_packed16(packed: np.ndarray) -> np.ndarray:
    """
    Expand two 4-bit samples per byte, high nibble first.

    Args:
        packed: uint8 array

    Returns:
        uint8 array of twice the length with values 0..15
    """
    packed = np.asarray(packed, dtype=np.uint8)
    expanded = np.empty(packed.size * 2, dtype=np.uint8)
    expanded[0::2] = packed >> 4
    expanded[1::2] = packed & 0x0F
    return expanded


def pack_nibbles(expanded: np.ndarray) -> np.ndarray:
    """Inverse of expand_packed16()."""
    expanded = np.asarray(expanded, dtype=np.uint8)
    if expanded.size % 2:
        raise ValueError("packed16 data needs an even sample count")
    return ((expanded[0::2] << 4) | (expanded[1::2] & 0x0F)).astype(np.uint8)


def classify_inflated(length: int) -> Tuple[str, int]:
    """
    Detect the voxel encoding from the inflated payload length.

    Returns:
        (encoding, grid_y)

    Raises:
        UnrecognizedEncodingError: for any other length
    """
    if length == FULL_VOXEL_COUNT:
        return ENCODING_BYTE, GRID_Y
    if length == PACKED_VOXEL_BYTES:
        return ENCODING_PACKED16, GRID_Y
    if length > 0 and length % PILLAR_COUNT == 0:
        grid_y = length // PILLAR_COUNT
        if 1 <= grid_y <= MAX_GRID_Y:
            return ENCODING_BYTE, grid_y
    raise UnrecognizedEncodingError(
        length,
        f"newbuild: inflatedLen={length} not recognized (expected {FULL_VOXEL_COUNT}, "
        f"{PACKED_VOXEL_BYTES} or a multiple of {PILLAR_COUNT} up to {MAX_GRID_Y} high)"
    )


def inflate_bounded(data: bytes, offset: int = 0) -> bytes:
    """
    Inflate a zlib stream, stopping one byte past the largest known grid.

    Args:
        data: Bytes starting at the zlib header
        offset: Header position in the blob, for error messages

    Raises:
        InflateError: corrupt or truncated stream
        UnrecognizedEncodingError: output longer than any grid
    """
    decompressor = zlib.decompressobj()
    try:
        inflated = decompressor.decompress(data, MAX_INFLATED_BYTES + 1)
    except zlib.error as e:
        raise InflateError(f"newbuild: inflate failed at offset {offset}: {e}") from e

    if len(inflated) > MAX_INFLATED_BYTES:
        raise UnrecognizedEncodingError(
            len(inflated),
            f"newbuild: inflated payload exceeds {MAX_INFLATED_BYTES} bytes"
        )
    if not decompressor.eof:
        raise InflateError(f"newbuild: inflate failed at offset {offset}: truncated stream")
    return inflated


@dataclass
class NewBuild:
    """A decoded new build: title plus a flat voxel grid."""
    title: str
    voxels: np.ndarray
    grid_y: int
    encoding: str
    zlib_offset: int = field(default=-1, repr=False)

    @property
    def nonzero_count(self) -> int:
        """Number of occupied grid samples."""
        return int(np.count_nonzero(self.voxels))

    def to_voxel_set(self, signed_colors: bool = False) -> VoxelSet:
        """
        Place every non-zero sample on the hex-prism lattice.

        Args:
            signed_colors: Read byte codes above 127 as negative int8
                (the classic palette's convention)

        Returns:
            VoxelSet with colors in order of first appearance
        """
        indices = np.flatnonzero(self.voxels)
        codes = self.voxels[indices].astype(np.int16)
        if signed_colors:
            codes[codes > 127] -= 256

        voxel_set = VoxelSet()
        if len(indices) == 0:
            return voxel_set

        positions = HexGridCoordinateMapper(self.grid_y).positions(indices)

        colors, first_seen = np.unique(codes, return_index=True)
        for color in colors[np.argsort(first_seen)]:
            voxel_set.add_many(int(color), positions[codes == color])

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "newbuild: nonzero=%d codeRange=[%d, %d] colors=%d",
                len(indices), int(codes.min()), int(codes.max()), len(colors)
            )
        return voxel_set


class NewBuildDecoder:
    """Decode a new-build name blob into a flat voxel grid."""

    def decode(self, hex_str: str) -> NewBuild:
        """
        Decode "0x..." blob text.

        Args:
            hex_str: Blob hex, as found in the tile name or pasted by a user

        Returns:
            NewBuild with the expanded voxel array

        Raises:
            InputValidationError: malformed hex text
            NoZlibHeaderError: no compression header after the title
            InflateError: the payload does not inflate
            UnrecognizedEncodingError: unknown inflated length
        """
        return self.decode_bytes(decode_blob_hex(hex_str))

    def decode_bytes(self, blob: bytes) -> NewBuild:
        """Decode already-converted blob bytes."""
        if not blob:
            raise NoZlibHeaderError("newbuild: empty name blob")

        name_len = blob[0]
        title = blob[1:1 + name_len].decode("utf-8", errors="replace")

        zlib_at = find_zlib_start(blob, name_len)
        if zlib_at == -1:
            raise NoZlibHeaderError("newbuild: no zlib header found after title")

        inflated = inflate_bounded(blob[zlib_at:], zlib_at)

        encoding, grid_y = classify_inflated(len(inflated))
        raw = np.frombuffer(inflated, dtype=np.uint8)
        if encoding == ENCODING_PACKED16:
            voxels = expand_packed16(raw)
        else:
            voxels = raw.copy()

        logger.debug(
            'newbuild: title="%s" nameLen=%d blobLen=%d zlibAt=%d inflatedLen=%d',
            title, name_len, len(blob), zlib_at, len(inflated)
        )
        logger.debug(
            "newbuild: encoding=%s gridY=%d voxelLen=%d", encoding, grid_y, len(voxels)
        )

        return NewBuild(
            title=title,
            voxels=voxels,
            grid_y=grid_y,
            encoding=encoding,
            zlib_offset=zlib_at,
        )
