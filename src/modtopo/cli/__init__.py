"""
modtopo CLI - Command-line interface for module topology statistics.

Commands:
    modtopo stats        - Module statistics and display orderings across datasets
    modtopo correlate    - Node correlation matrix written as a disk matrix
    modtopo disk-matrix  - Convert a CSV/TSV matrix to a disk matrix
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for modtopo."""
    from modtopo import __version__

    parser = argparse.ArgumentParser(
        prog="modtopo",
        description="Topology statistics of network modules across datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  stats         Module statistics and display orderings across datasets
  correlate     Node correlation matrix written as a disk matrix
  disk-matrix   Convert a CSV/TSV matrix to a disk matrix

Examples:
  modtopo disk-matrix --input network.csv --output network.npy
  modtopo correlate --input data.csv --output correlation.npy --chunk-size 1000
  modtopo stats --config run.yaml --output results/topology.json
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from modtopo.cli import correlate, disk_matrix, stats
    stats.register_parser(subparsers)
    correlate.register_parser(subparsers)
    disk_matrix.register_parser(subparsers)

    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
