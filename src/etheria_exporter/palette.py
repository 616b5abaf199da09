"""
Palette Resolution

Turns raw color codes into display RGBA (floats in [0, 1]).

Palettes:
- voxelizer: the 63-color table of the 3D voxelizer used by new builds
- classic: the signed int8 color codes of old builds, from a JSON table
- 6bit: a code is read as three 2-bit channels (RRGGBB)
- default: anything else renders the code as a gray level

Resolution never fails: every integer produces a color.
"""

import json
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

RGBA = Tuple[float, float, float, float]

TRANSPARENT: RGBA = (0.0, 0.0, 0.0, 0.0)

# Voxelizer palette, indices 1..63 (0 = empty)
VOXELIZER_COLORS = (
    "#A43618", "#BF4916", "#CF7C14", "#FF6000", "#E2A74A", "#18A889", "#FFFF97",
    "#AADC73", "#82A858", "#3E8A3C", "#512800", "#265525", "#C69AC3", "#168700",
    "#6DB717", "#CBD400", "#FEEF00", "#FE9000", "#A60F91", "#FF0100", "#A61D15",
    "#8F0303", "#C8FBFA", "#30234A", "#EA01EA", "#00226F", "#162BB5", "#EAD9D8",
    "#6BE2BD", "#36ABD6", "#5DECF5", "#471B6D", "#FFFFFF", "#A1A6B6", "#8F8F8F",
    "#686868", "#4B4B4B", "#2F2F2F", "#212121", "#101010", "#E5CA30", "#245CFF",
    "#F66942", "#B9FC02", "#B4905A", "#A68A49", "#846F56", "#9F5A0C", "#69431F",
    "#352410", "#CCCCCC", "#8A8A5B", "#DBB17F", "#CAC48B", "#69997E", "#4A8193",
    "#2E5662", "#19353F", "#ABD0FE", "#EE7070", "#FCCCE9", "#C254CD", "#6D2AA7",
)

# 2-bit channel value -> 8-bit level
SIXBIT_LEVELS = (0, 85, 170, 255)


class Palette(Enum):
    """Closed set of supported palettes."""
    VOXELIZER = "voxelizer"
    CLASSIC = "classic"
    SIXBIT = "6bit"
    DEFAULT = "default"

    @classmethod
    def from_name(cls, name: Union[str, "Palette"]) -> "Palette":
        """Look up a palette by name; unknown names degrade to DEFAULT."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.DEFAULT


def hex_to_rgba(hex_color: str) -> RGBA:
    """Convert "#RRGGBB" to opaque RGBA floats."""
    h = hex_color.lstrip("#")
    r, g, b = (int(h[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    return (r, g, b, 1.0)


def _gray(value: int) -> RGBA:
    v = max(0, min(255, value)) / 255.0
    return (v, v, v, 1.0)


@lru_cache(maxsize=None)
def _voxelizer_rgba(index: int) -> RGBA:
    return hex_to_rgba(VOXELIZER_COLORS[index - 1])


def _resolve_voxelizer(color_index: int, classic_table: Mapping[int, str]) -> RGBA:
    if color_index == 0:
        return TRANSPARENT
    return _voxelizer_rgba((color_index - 1) % 63 + 1)


def _resolve_classic(color_index: int, classic_table: Mapping[int, str]) -> RGBA:
    hex_color = classic_table.get(color_index)
    if hex_color:
        return hex_to_rgba(hex_color)
    # Unmapped codes stay visible
    return _gray(color_index + 128)


def _resolve_sixbit(color_index: int, classic_table: Mapping[int, str]) -> RGBA:
    idx = ((color_index % 64) + 64) % 64
    r2 = (idx >> 4) & 3
    g2 = (idx >> 2) & 3
    b2 = idx & 3
    return (
        SIXBIT_LEVELS[r2] / 255.0,
        SIXBIT_LEVELS[g2] / 255.0,
        SIXBIT_LEVELS[b2] / 255.0,
        1.0,
    )


def _resolve_default(color_index: int, classic_table: Mapping[int, str]) -> RGBA:
    return _gray(color_index)


_RESOLVERS: Dict[Palette, Callable[[int, Mapping[int, str]], RGBA]] = {
    Palette.VOXELIZER: _resolve_voxelizer,
    Palette.CLASSIC: _resolve_classic,
    Palette.SIXBIT: _resolve_sixbit,
    Palette.DEFAULT: _resolve_default,
}


def resolve_color(
    color_index: int,
    palette: Union[str, Palette] = Palette.VOXELIZER,
    classic_table: Optional[Mapping[int, str]] = None
) -> RGBA:
    """
    Resolve a color code to RGBA.

    Args:
        color_index: Raw color code (any integer)
        palette: Palette enum member or name
        classic_table: Signed code -> "#RRGGBB" mapping for the classic palette

    Returns:
        (r, g, b, a) floats in [0, 1]
    """
    palette = Palette.from_name(palette)
    return _RESOLVERS[palette](int(color_index), classic_table or {})


@lru_cache(maxsize=8)
def _load_classic_table(path: Path) -> Dict[int, str]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return {int(k): str(v) for k, v in raw.items()}


def load_classic_table(path: Optional[Union[str, Path]]) -> Dict[int, str]:
    """
    Load the classic old-build color table.

    The file is a JSON object keyed by the signed color code as a string,
    e.g. {"-128": "#1A1A1A", "0": "#FFFFFF"}.

    Args:
        path: JSON file path, or None for an empty table

    Returns:
        Mapping from signed code to "#RRGGBB"
    """
    if path is None:
        return {}
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Classic palette file not found: {path}")
    return dict(_load_classic_table(path.resolve()))


class PaletteResolver:
    """Bound palette + classic table, memoizing resolved colors."""

    def __init__(
        self,
        palette: Union[str, Palette] = Palette.VOXELIZER,
        classic_table: Optional[Mapping[int, str]] = None
    ):
        self.palette = Palette.from_name(palette)
        self.classic_table = dict(classic_table or {})
        self._cache: Dict[int, RGBA] = {}

    def resolve(self, color_index: int) -> RGBA:
        """Resolve one color code."""
        rgba = self._cache.get(color_index)
        if rgba is None:
            rgba = resolve_color(color_index, self.palette, self.classic_table)
            self._cache[color_index] = rgba
        return rgba

    def __call__(self, color_index: int) -> RGBA:
        return self.resolve(color_index)
