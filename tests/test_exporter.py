"""
Tests for mode selection, request validation and the command line.
"""

import io
import tempfile
import unittest
from contextlib import redirect_stderr
from pathlib import Path

from fixtures import byte_grid, make_blob_hex, make_source

from etheria_exporter.cli import main
from etheria_exporter.config import ExporterSettings, build_request
from etheria_exporter.errors import (
    InputValidationError,
    MissingBlobError,
    NoZlibHeaderError,
    UnrecognizedEncodingError,
    UnsupportedVersionError,
)
from etheria_exporter.orchestrator import Mode, TileExporter, create_exporter, export_tile
from etheria_exporter.palette import Palette


NEW_BLOB = make_blob_hex(byte_grid({0: 5, 1: 5, 128: 9}), title="tower")
CORRUPT_BLOB = "0x" + (bytes([3]) + b"abc" + b"\x78\x9c" + b"garbage bytes").hex()
ODD_LENGTH_BLOB = make_blob_hex(b"\x01" * 1000)


class FailingSource:
    """Data source whose reads fail the way a dead RPC endpoint does."""

    def get_blocks(self, col, row):
        raise ConnectionError("rpc down")

    def get_name(self, col, row):
        raise ConnectionError("rpc down")

    def get_occupies(self, block_type):
        raise ConnectionError("rpc down")


class TestModes(unittest.TestCase):
    """Tests for OLD / NEW / AUTO build selection."""

    def test_old_ignores_name(self):
        source = make_source(names={(14, 2): f"title {NEW_BLOB}"})
        result = TileExporter(source).export("old", 14, 2)

        assert result.decoded.mode is Mode.OLD
        assert result.decoded.voxel_set.total_voxels == 10
        assert result.stats["cubes"] == 10

    def test_new_from_name(self):
        source = make_source(names={(14, 2): f"tower {NEW_BLOB} end"})
        result = TileExporter(source).export(Mode.NEW, 14, 2)

        assert result.decoded.mode is Mode.NEW
        assert result.decoded.build.title == "tower"
        assert result.decoded.voxel_set.colors() == [5, 9]
        assert [g.color_index for g in result.groups] == [5, 9]
        assert source.occupies_calls == {}

    def test_explicit_blob_overrides_name(self):
        exporter = TileExporter(make_source(), name_raw=NEW_BLOB)
        result = exporter.export("new", 14, 2)
        assert result.decoded.voxel_set.total_voxels == 3

    def test_new_without_blob(self):
        with self.assertRaises(MissingBlobError):
            TileExporter(make_source()).export("new", 14, 2)

    def test_new_propagates_decode_failures(self):
        with self.assertRaises(NoZlibHeaderError):
            TileExporter(make_source(), name_raw="0x0361626300").export("new", 14, 2)
        with self.assertRaises(UnrecognizedEncodingError):
            TileExporter(make_source(), name_raw=ODD_LENGTH_BLOB).export("new", 14, 2)

    def test_auto_prefers_new(self):
        source = make_source(names={(14, 2): NEW_BLOB})
        result = TileExporter(source).export("auto", 14, 2)
        assert result.decoded.mode is Mode.NEW
        assert result.decoded.fallback_reason is None

    def test_auto_without_blob_uses_old(self):
        result = TileExporter(make_source()).export("auto", 14, 2)
        assert result.decoded.mode is Mode.OLD
        assert result.decoded.fallback_reason == "no name blob"

    def test_auto_falls_back_on_corrupt_blob(self):
        source = make_source(names={(14, 2): CORRUPT_BLOB})
        with self.assertLogs("etheria_exporter.orchestrator", level="INFO"):
            result = TileExporter(source).export("auto", 14, 2)

        assert result.decoded.mode is Mode.OLD
        assert "inflate" in result.decoded.fallback_reason
        assert result.decoded.voxel_set.total_voxels == 10

    def test_auto_falls_back_on_unknown_length(self):
        source = make_source(names={(14, 2): ODD_LENGTH_BLOB})
        result = TileExporter(source).export("auto", 14, 2)
        assert result.decoded.mode is Mode.OLD

    def test_classic_reads_signed_codes(self):
        blob = make_blob_hex(byte_grid({0: 253}))
        result = TileExporter(make_source(), palette="classic", name_raw=blob).export("new", 14, 2)
        assert result.decoded.voxel_set.colors() == [-3]

    def test_chain_errors_propagate(self):
        for mode in Mode:
            with self.assertRaises(ConnectionError):
                TileExporter(FailingSource()).export(mode, 14, 2)

    def test_bad_coordinates(self):
        with self.assertRaises(InputValidationError):
            TileExporter(make_source()).export("old", 33, 0)

    def test_bad_mode(self):
        with self.assertRaises(InputValidationError):
            TileExporter(make_source()).export("newest", 14, 2)

    def test_empty_tile_exports(self):
        exporter = TileExporter(make_source())
        result = exporter.export("old", 0, 0)
        assert result.groups == []

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "empty.glb"
            exporter.write_glb(result, path)
            assert path.read_bytes()[:4] == b"glTF"

    def test_bounds(self):
        result = TileExporter(make_source()).export("old", 14, 2)
        assert result.bounds == ((0, 0, 0), (11, 1, 1))

    def test_summary(self):
        source = make_source(names={(14, 2): NEW_BLOB})
        lines = TileExporter(source, palette="6bit").export("auto", 14, 2).summary()
        assert lines[0].startswith("Mode = new")
        assert 'title="tower"' in lines[0]
        assert "Palette = 6bit" in lines


class TestRequests(unittest.TestCase):
    """Tests for request validation and settings."""

    def test_tile_to_coordinate(self):
        request = build_request(tile=464, mode="OLD")
        assert request.mode == "old"
        assert request.coordinate == (14, 2)

    def test_col_row(self):
        assert build_request(col=16, row=2).coordinate == (16, 2)

    def test_missing_address(self):
        with self.assertRaises(InputValidationError):
            build_request(col=3)

    def test_tile_out_of_range(self):
        with self.assertRaises(InputValidationError):
            build_request(tile=1089)
        with self.assertRaises(InputValidationError):
            build_request(tile=-5)

    def test_bad_name_raw(self):
        with self.assertRaises(InputValidationError):
            build_request(tile=1, mode="new", name_raw="abcd")
        assert build_request(tile=1, name_raw="   ").name_raw is None

    def test_bad_center_offset(self):
        with self.assertRaises(InputValidationError):
            build_request(tile=1, center_offset=0.3)

    def test_unknown_version(self):
        with self.assertRaises(UnsupportedVersionError) as ctx:
            build_request(tile=1, version="2.0")
        assert "1.2" in str(ctx.exception)

    def test_export_tile_with_source(self):
        request = build_request(tile=464, mode="old", palette="classic")
        result = export_tile(request, source=make_source(), settings=ExporterSettings(rpc_url=None))
        assert result.palette is Palette.CLASSIC
        assert result.stats["voxels"] == 10

    def test_export_tile_writes_glb(self):
        request = build_request(tile=464, mode="old")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "tile_464.glb"
            result = export_tile(
                request, source=make_source(), settings=ExporterSettings(rpc_url=None),
                output_path=path
            )
            assert path.read_bytes()[:4] == b"glTF"
        assert result.stats["cubes"] == 10

    def test_missing_rpc_url(self):
        request = build_request(tile=464)
        with self.assertRaises(InputValidationError):
            create_exporter(request, settings=ExporterSettings(rpc_url=None))

    def test_settings_from_toml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "exporter.toml"
            path.write_text(
                '[exporter]\n'
                'rpc_url = "http://localhost:8545"\n'
                'default_palette = "classic"\n'
                'fetch_workers = 4\n'
            )
            settings = ExporterSettings.from_toml(path)

        assert settings.rpc_url == "http://localhost:8545"
        assert settings.default_palette == "classic"
        assert settings.fetch_workers == 4

    def test_settings_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ExporterSettings.from_toml("/nonexistent/exporter.toml")


class TestCLI(unittest.TestCase):

    def test_negative_tile(self):
        assert main(["--version", "1.2", "--tile", "-5", "--rpc", "http://localhost:1"]) == 1

    def test_missing_address(self):
        assert main(["--version", "1.2", "--rpc", "http://localhost:1"]) == 1

    def test_version_from_config(self):
        """Without --version the settings file supplies it."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "exporter.toml"
            path.write_text('default_version = "9.9"\n')

            stderr = io.StringIO()
            with redirect_stderr(stderr):
                code = main(["--tile", "1", "--config", str(path)])

        assert code == 1
        assert "Unknown version: 9.9" in stderr.getvalue()

    def test_unknown_version(self):
        with self.assertRaises(SystemExit):
            main(["--version", "3.0", "--tile", "1"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
