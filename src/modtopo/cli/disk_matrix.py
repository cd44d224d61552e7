"""
modtopo disk-matrix command - Convert a delimited text matrix to a disk matrix.

Usage:
    modtopo disk-matrix --input network.csv --output network.npy
"""

import argparse
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the disk-matrix subcommand."""
    parser = subparsers.add_parser(
        "disk-matrix",
        help="Convert a CSV/TSV matrix to a disk matrix",
        description="Write a labelled delimited text matrix as a .npy disk matrix "
                    "with a .meta label sidecar."
    )
    parser.add_argument("--input", "-i", type=Path, required=True,
                        help="Delimited text matrix; first column holds row labels")
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output disk matrix (.npy)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")
    parser.set_defaults(func=run_disk_matrix)


def run_disk_matrix(args: argparse.Namespace) -> int:
    """Execute the disk-matrix command."""
    from modtopo.io.disk_matrix import save_disk_matrix
    from modtopo.io.loaders import load_csv_matrix

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        matrix = load_csv_matrix(args.input, name=args.input.stem)
    except (ValueError, FileNotFoundError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    result = save_disk_matrix(matrix, args.output)
    logger.info(f"Wrote {matrix.shape[0]} x {matrix.shape[1]} matrix to {result.path}")
    return 0
