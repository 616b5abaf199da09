"""
Tests for color resolution and the VoxelSet container.
"""

import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

import fixtures  # noqa: F401

from etheria_exporter.palette import (
    TRANSPARENT,
    Palette,
    PaletteResolver,
    hex_to_rgba,
    load_classic_table,
    resolve_color,
)
from etheria_exporter.voxels import VoxelSet


class TestPalettes(unittest.TestCase):
    """Tests for resolve_color()."""

    def test_voxelizer_empty_is_transparent(self):
        assert resolve_color(0, "voxelizer") == TRANSPARENT

    def test_voxelizer_first_entry(self):
        assert resolve_color(1, "voxelizer") == hex_to_rgba("#A43618")

    def test_voxelizer_wraps(self):
        """Codes past 63 cycle back to entry 1."""
        assert resolve_color(64, "voxelizer") == resolve_color(1, "voxelizer")
        assert resolve_color(126, "voxelizer") == resolve_color(63, "voxelizer")

    def test_sixbit_channels(self):
        levels = {0.0, 85 / 255.0, 170 / 255.0, 1.0}
        for code in range(-70, 300, 7):
            r, g, b, a = resolve_color(code, "6bit")
            assert {r, g, b} <= levels
            assert a == 1.0

    def test_sixbit_layout(self):
        """RRGGBB: 0b110100 is red 3, green 1, blue 0."""
        assert resolve_color(0b110100, "6bit") == (1.0, 85 / 255.0, 0.0, 1.0)

    def test_classic_table_lookup(self):
        table = {-3: "#FF0000"}
        assert resolve_color(-3, "classic", table) == (1.0, 0.0, 0.0, 1.0)

    def test_classic_fallback_gray(self):
        """Unmapped classic codes shift by 128 into a gray level."""
        r, g, b, a = resolve_color(-128, "classic", {})
        assert r == g == b == 0.0 and a == 1.0
        r, g, b, _ = resolve_color(127, "classic")
        assert r == g == b == 1.0

    def test_unknown_palette_is_gray(self):
        assert Palette.from_name("sepia") is Palette.DEFAULT
        assert resolve_color(51, "sepia") == (0.2, 0.2, 0.2, 1.0)

    def test_default_clamps(self):
        assert resolve_color(-5, "default")[0] == 0.0
        assert resolve_color(999, "default")[0] == 1.0

    def test_every_code_resolves(self):
        for palette in Palette:
            for code in (-1000, -128, -1, 0, 1, 63, 64, 255, 1000):
                rgba = resolve_color(code, palette)
                assert len(rgba) == 4
                assert all(0.0 <= c <= 1.0 for c in rgba)


class TestPaletteResolver(unittest.TestCase):

    def test_memoized(self):
        resolver = PaletteResolver("voxelizer")
        first = resolver(5)
        assert resolver.resolve(5) is first
        assert resolver.palette is Palette.VOXELIZER

    def test_load_classic_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "classic.json"
            path.write_text(json.dumps({"-3": "#00FF00", "12": "#0000FF"}))

            table = load_classic_table(path)
            assert table == {-3: "#00FF00", 12: "#0000FF"}

            resolver = PaletteResolver("classic", table)
            assert resolver(-3) == (0.0, 1.0, 0.0, 1.0)

    def test_load_missing_table(self):
        assert load_classic_table(None) == {}
        with self.assertRaises(FileNotFoundError):
            load_classic_table("/nonexistent/classic.json")


class TestVoxelSet(unittest.TestCase):
    """Tests for the color -> positions container."""

    def test_dedupe_within_color(self):
        vs = VoxelSet()
        assert vs.add(3, (1, 2, 3))
        assert not vs.add(3, (1, 2, 3))
        assert vs.add(4, (1, 2, 3))
        assert vs.total_voxels == 2
        assert (3, (1, 2, 3)) in vs
        assert 4 in vs and 5 not in vs

    def test_add_many(self):
        vs = VoxelSet()
        added = vs.add_many(7, np.array([[0, 0, 0], [1, 0, 0], [0, 0, 0]]))
        assert added == 2
        assert vs.positions(7) == [(0, 0, 0), (1, 0, 0)]
        assert vs.as_array(7).dtype == np.int32

    def test_color_order(self):
        vs = VoxelSet()
        for color in (9, -2, 4):
            vs.add(color, (0, color, 0))
        assert vs.colors() == [9, -2, 4]
        assert [c for c, _ in vs] == [9, -2, 4]

    def test_bounds(self):
        vs = VoxelSet()
        assert vs.is_empty()
        assert vs.bounds() == ((0, 0, 0), (0, 0, 0))

        vs.add(1, (-3, 0, 5))
        vs.add(2, (4, 9, -1))
        assert vs.bounds() == ((-3, 0, -1), (4, 9, 5))
        assert len(vs) == 2


if __name__ == "__main__":
    unittest.main(verbosity=2)
