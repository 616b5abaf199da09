"""
Command-Line Interface for the Etheria Tile Exporter

Usage:
    etheria-export --rpc https://ethereum.publicnode.com --version 1.2 --tile 530 --out tile_530.glb
    etheria-export --version 0.9 --tile 530 --mode old --palette classic --out tile_530_old.glb
    etheria-export --version 1.2 --col 16 --row 2 --mode new --name-raw 0x... --out tile.glb

"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
import time

from . import __version__
from .chain import VERSIONS
from .config import DEFAULT_PALETTE, ExporterSettings, build_request
from .errors import EtheriaExportError
from .orchestrator import export_tile

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="etheria-export",
        description="Etheria Tile Exporter - Convert on-chain Etheria builds to .glb models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  etheria-export --version 1.2 --tile 530 --out tile_530.glb
      Auto-detect a new build in the tile name, else export the old blocks

  etheria-export --version 0.9 --tile 530 --mode old --palette classic
      Export the old block build with the classic colors

  etheria-export --version 1.2 --tile 530 --mode new --name-raw 0x...
      Decode a pasted name blob instead of reading getName()

Palettes:
  voxelizer - 63-color voxelizer palette (default)
  classic   - old-build signed color codes (see classic_palette_path)
  6bit      - codes read as RRGGBB 2-bit channels
  other     - codes rendered as gray levels
        """
    )

    # Data source
    parser.add_argument(
        "--rpc",
        help="Ethereum JSON-RPC URL (default: $RPC_URL)"
    )

    parser.add_argument(
        "--version",
        dest="etheria_version",
        choices=sorted(VERSIONS),
        help="Etheria version (default: default_version from --config, else 1.2)"
    )

    # Tile selection
    parser.add_argument(
        "--tile",
        type=int,
        help="Tile index 0..1088"
    )

    parser.add_argument(
        "--col",
        type=int,
        help="Column 0..32"
    )

    parser.add_argument(
        "--row",
        type=int,
        help="Row 0..32"
    )

    # Decoding
    parser.add_argument(
        "--mode",
        choices=["auto", "old", "new"],
        default="auto",
        help="Build selection mode (default: auto)"
    )

    parser.add_argument(
        "--palette",
        default=None,
        help=f"Palette name (default: {DEFAULT_PALETTE})"
    )

    parser.add_argument(
        "--name-raw",
        help="Paste nameRAW 0x... (forces this blob as the new build input)"
    )

    # Output
    parser.add_argument(
        "-o", "--out",
        default="etheria_tile.glb",
        help="Output .glb path (default: etheria_tile.glb)"
    )

    parser.add_argument(
        "--center-offset",
        action="store_true",
        help="Shift cubes by +0.5 so corners sit on integer coordinates"
    )

    # Settings
    parser.add_argument(
        "--config",
        help="TOML settings file"
    )

    parser.add_argument(
        "--workers",
        type=int,
        help="Parallel block-template fetches for old builds"
    )

    # Misc
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug logs and tracebacks"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print mesh statistics"
    )

    parser.add_argument(
        "-V", "--program-version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def setup_logging(debug: bool = False):
    """Configure console logging for the CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    # Keep third-party chatter out of debug output
    for name in ("numba", "web3", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


def load_settings(args) -> ExporterSettings:
    """Settings from --config, overridden by command-line flags."""
    settings = ExporterSettings.from_toml(args.config) if args.config else ExporterSettings()
    if args.workers is not None:
        settings = settings.model_copy(update={"fetch_workers": max(1, args.workers)})
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.debug)
    start_time = time.time()

    try:
        settings = load_settings(args)
        request = build_request(
            mode=args.mode,
            tile=args.tile,
            col=args.col,
            row=args.row,
            version=args.etheria_version or settings.default_version,
            palette=args.palette or settings.default_palette,
            name_raw=args.name_raw,
            rpc_url=args.rpc,
            center_offset=0.5 if args.center_offset else 0.0,
        )

        output_path = Path(args.out)
        result = export_tile(request, settings=settings, output_path=output_path)

        print(f"Exported: {output_path}")
        for line in result.summary():
            print(line)

        if args.stats or args.debug:
            stats = result.stats
            print("\nMesh Statistics:")
            print(f"  Color groups: {stats['color_groups']}")
            print(f"  Cubes: {stats['cubes']}")
            print(f"  Vertices: {stats['vertices']}")
            print(f"  Triangles: {stats['triangles']}")
            low, high = result.bounds
            print(f"  Bounds: {low} .. {high}")

        logger.debug("Completed in %.2fs", time.time() - start_time)
        return 0

    except (EtheriaExportError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.debug:
            logger.exception("export failed")
        return 1

    except Exception as e:
        # Chain client failures arrive here unchanged
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        if args.debug:
            logger.exception("data source failure")
        return 1


if __name__ == "__main__":
    sys.exit(main())
