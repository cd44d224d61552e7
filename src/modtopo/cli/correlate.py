"""
modtopo correlate command - Node correlation matrix from a data matrix.

The correlation matrix is computed in blocks and written through a memory map
to a disk matrix (``.npy`` plus ``.meta`` sidecar), so it is never resident.

Usage:
    modtopo correlate --input discovery_data.csv --output discovery_correlation.npy
"""

import argparse
import logging
from pathlib import Path

from modtopo.core.errors import ModuleTopologyError

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the correlate subcommand."""
    parser = subparsers.add_parser(
        "correlate",
        help="Compute a node correlation matrix as a disk matrix",
        description="Compute the Pearson correlation between nodes (columns) of a "
                    "samples x nodes data matrix and write it as a disk matrix."
    )
    parser.add_argument("--input", "-i", type=Path, required=True,
                        help="Data matrix (.csv/.tsv or .npy disk matrix), samples x nodes")
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output disk matrix (.npy)")
    parser.add_argument("--chunk-size", type=int, default=500,
                        help="Nodes per block (default: 500)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging and progress bar")
    parser.set_defaults(func=run_correlate)


def run_correlate(args: argparse.Namespace) -> int:
    """Execute the correlate command."""
    from modtopo.io.loaders import load_matrix
    from modtopo.utils.correlation_matrix import correlation_disk_matrix

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.chunk_size < 1:
        logger.error(f"--chunk-size must be positive, got {args.chunk_size}")
        return 1

    try:
        data = load_matrix(args.input, name="data")
        logger.info(f"Data: {data.shape[0]} samples x {data.shape[1]} nodes")
        result = correlation_disk_matrix(data, args.output, chunk_size=args.chunk_size,
                                         verbose=args.verbose)
    except (ModuleTopologyError, ValueError, FileNotFoundError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    logger.info(f"Correlation matrix: {result}")
    return 0
