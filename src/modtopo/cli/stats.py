"""
modtopo stats command - Module topology statistics across datasets.

Loads the datasets named in a run file, computes module statistics in the test
dataset, orders nodes, samples, and modules, and writes the result as JSON.
With ``--all``, statistics are computed for every discovery/test combination
and no orderings are produced.

Usage:
    modtopo stats --config run.yaml --output results/topology.json
    modtopo stats --config run.yaml --test 2 --order-nodes-by discovery test
    modtopo stats --config run.yaml --all
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path

from modtopo.cli.config import (
    as_dataset_ref,
    load_config,
    merge_config_with_args,
    run_config_from_dict,
    validate_config,
)
from modtopo.core.errors import ModuleTopologyError

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the stats subcommand."""
    parser = subparsers.add_parser(
        "stats",
        help="Compute module topology statistics and display orderings",
        description=(
            "Compute weighted degree, module summaries, and node contributions "
            "of discovery modules in a test dataset, and order nodes, samples, "
            "and modules for display."
        )
    )

    parser.add_argument("--config", "-c", type=Path, required=True,
                        help="Run file (.yaml, .yml, or .json) describing datasets")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output JSON file (overrides run file)")

    parser.add_argument("--discovery", nargs="+", default=None,
                        help="Discovery dataset name(s) or 1-based position(s)")
    parser.add_argument("--test", nargs="+", default=None,
                        help="Test dataset name(s) or 1-based position(s)")
    parser.add_argument("--modules", nargs="+", default=None,
                        help="Modules to analyze (default: all non-background modules)")
    parser.add_argument("--background-label", default=None,
                        help="Label of nodes not in any module (default: 0)")

    # Ordering
    parser.add_argument("--order-nodes-by", nargs="+", default=None,
                        help="Dataset(s) whose weighted degree orders nodes (default: discovery)")
    parser.add_argument("--no-order-nodes", action="store_true",
                        help="Keep nodes in module assignment order")
    parser.add_argument("--order-samples-by", default=None,
                        help="Dataset whose module summary orders samples (default: test)")
    parser.add_argument("--no-order-samples", action="store_true",
                        help="Keep samples in data order")
    parser.add_argument("--no-order-modules", action="store_true",
                        help="Keep modules in the requested order")

    parser.add_argument("--no-scale", action="store_true",
                        help="Do not standardize data before computing module summaries")
    parser.add_argument("--frame", action="store_true",
                        help="Include plot-ready values (scaled degree, summaries, data gradient)")
    parser.add_argument("--all", action="store_true",
                        help="Statistics for every discovery/test combination, without orderings")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging and progress bars")

    parser.set_defaults(func=run_stats)


def run_stats(args: argparse.Namespace) -> int:
    """Execute the stats command."""
    from modtopo import __version__
    from modtopo.io.loaders import load_matrix, load_module_assignment
    from modtopo.pipeline import module_topology, network_properties
    from modtopo.utils.fileio import atomic_write_json
    from modtopo.viz.styles import PlotConfig

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_config(args.config)
        run = run_config_from_dict(config, base_dir=args.config.parent)
        run = merge_config_with_args(run, args)
        validate_config(run)
        plot_config = PlotConfig.from_dict(run.plot)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid run configuration: {e}")
        return 1

    output = run.output or Path("results/topology.json")
    names = list(run.datasets)

    def refs(values):
        return None if values is None else [as_dataset_ref(v, names) for v in values]

    try:
        networks, correlations, datas = {}, {}, {}
        for name, paths in run.datasets.items():
            logger.info(f"Dataset {name}: network={paths.network}, correlation={paths.correlation}, "
                        f"data={paths.data}")
            networks[name] = load_matrix(paths.network, name=f"{name} network")
            correlations[name] = load_matrix(paths.correlation, name=f"{name} correlation")
            datas[name] = load_matrix(paths.data, name=f"{name} data") if paths.data else None

        assignments = None
        if run.module_assignments is not None:
            assignments = load_module_assignment(run.module_assignments, background=run.background_label)

        common = dict(
            network=networks,
            correlation=correlations,
            data=datas,
            module_assignments=assignments,
            modules=run.modules,
            background_label=run.background_label,
            discovery=refs(run.discovery),
            test=refs(run.test),
            scale=run.scale,
            verbose=args.verbose,
        )

        if args.all:
            results = network_properties(**common)
            payload = {
                disc: {
                    test: {module: stats.to_dict() for module, stats in per_module.items()}
                    for test, per_module in per_test.items()
                }
                for disc, per_test in results.items()
            }
            n_modules = sum(len(m) for per_test in results.values() for m in per_test.values())
        else:
            order_samples_by = run.order_samples_by
            if isinstance(order_samples_by, str):
                order_samples_by = as_dataset_ref(order_samples_by, names)
            result = module_topology(
                order_nodes_by=refs(run.order_nodes_by) if isinstance(run.order_nodes_by, list)
                else run.order_nodes_by,
                order_samples_by=order_samples_by,
                order_modules=run.order_modules,
                with_frame=args.frame,
                plot_config=plot_config,
                **common,
            )
            payload = result.to_dict()
            n_modules = len(result.statistics)

    except (ModuleTopologyError, ValueError, FileNotFoundError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    output.parent.mkdir(parents=True, exist_ok=True)
    atomic_write_json(output, {
        'version': __version__,
        'created_at': datetime.now().isoformat(),
        'config': str(args.config),
        'result': payload,
    })
    logger.info(f"Wrote statistics for {n_modules} module(s) to {output}")
    return 0
