"""
Run-file support for the modtopo CLI.

A run file is YAML or JSON describing the datasets and the request:

    datasets:
      discovery:
        network: discovery_network.npy
        correlation: discovery_correlation.npy
        data: discovery_data.csv
      test:
        network: test_network.npy
        correlation: test_correlation.npy
    module_assignments: modules.csv
    background_label: "0"
    discovery: discovery
    test: test
    modules: ["1", "4"]
    order_nodes_by: [discovery, test]   # null disables node ordering
    order_samples_by: test              # null disables sample ordering
    order_modules: true
    scale: true
    output: results/topology.json
    plot:                               # options for --frame output
      network_range: null
      na_color: "#bdbdbd"

Relative paths are resolved against the directory holding the run file.
Explicit CLI flags override run-file values.
"""

import json
from argparse import Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from modtopo.pipeline import DEFAULT


@dataclass
class DatasetPaths:
    """Matrix files of one dataset."""
    network: Path
    correlation: Path
    data: Optional[Path] = None


@dataclass
class RunConfig:
    """
    Complete configuration of a ``modtopo stats`` run.

    ``order_nodes_by`` and ``order_samples_by`` are DEFAULT when the run file
    leaves them out and None when it disables ordering.
    """
    datasets: Dict[str, DatasetPaths] = field(default_factory=dict)
    module_assignments: Optional[Path] = None
    background_label: str = "0"
    discovery: Optional[List[str]] = None
    test: Optional[List[str]] = None
    modules: Optional[List[str]] = None
    order_nodes_by: Any = DEFAULT
    order_samples_by: Any = DEFAULT
    order_modules: bool = True
    scale: bool = True
    output: Optional[Path] = None
    plot: Dict[str, Any] = field(default_factory=dict)


RUN_KEYS = {
    'datasets', 'module_assignments', 'background_label', 'discovery', 'test',
    'modules', 'order_nodes_by', 'order_samples_by', 'order_modules', 'scale',
    'output', 'plot',
}


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def _resolve(path: Any, base: Path) -> Path:
    path = Path(path)
    return path if path.is_absolute() else base / path


def _str_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def run_config_from_dict(config: Dict[str, Any], base_dir: Path = Path(".")) -> RunConfig:
    """
    Build a RunConfig from a loaded run file.

    Raises:
        ValueError: If keys are unknown or a dataset lacks network/correlation
    """
    unknown = set(config) - RUN_KEYS
    if unknown:
        raise ValueError(
            f"Unknown run file keys: {', '.join(sorted(unknown))}. "
            f"Valid keys: {', '.join(sorted(RUN_KEYS))}"
        )

    datasets: Dict[str, DatasetPaths] = {}
    raw_datasets = config.get('datasets') or {}
    if not isinstance(raw_datasets, dict):
        raise ValueError("'datasets' must map dataset names to matrix paths")
    for name, paths in raw_datasets.items():
        if not isinstance(paths, dict) or 'network' not in paths or 'correlation' not in paths:
            raise ValueError(f"Dataset '{name}' must give 'network' and 'correlation' paths")
        extra = set(paths) - {'network', 'correlation', 'data'}
        if extra:
            raise ValueError(f"Dataset '{name}' has unknown keys: {', '.join(sorted(extra))}")
        datasets[str(name)] = DatasetPaths(
            network=_resolve(paths['network'], base_dir),
            correlation=_resolve(paths['correlation'], base_dir),
            data=_resolve(paths['data'], base_dir) if paths.get('data') else None,
        )

    run = RunConfig(datasets=datasets)
    if config.get('module_assignments'):
        run.module_assignments = _resolve(config['module_assignments'], base_dir)
    if 'background_label' in config:
        run.background_label = str(config['background_label'])
    run.discovery = _str_list(config.get('discovery'))
    run.test = _str_list(config.get('test'))
    run.modules = _str_list(config.get('modules'))
    if 'order_nodes_by' in config:
        run.order_nodes_by = _str_list(config['order_nodes_by'])
    if 'order_samples_by' in config:
        value = config['order_samples_by']
        run.order_samples_by = None if value is None else str(value)
    if 'order_modules' in config:
        run.order_modules = bool(config['order_modules'])
    if 'scale' in config:
        run.scale = bool(config['scale'])
    if config.get('output'):
        run.output = _resolve(config['output'], base_dir)
    plot = config.get('plot') or {}
    if not isinstance(plot, dict):
        raise ValueError("'plot' must map plot option names to values")
    run.plot = plot
    return run


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """CLI value if explicitly set, else config value."""
    if was_explicitly_set:
        return cli_value
    return config_value


def merge_config_with_args(run: RunConfig, args: Namespace) -> RunConfig:
    """
    Override run-file values with explicitly given CLI flags.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Run-file values
    3. RunConfig defaults

    CLI flags default to None (or False for switches), so any other value
    counts as explicitly set.
    """
    for name in ('discovery', 'test', 'modules', 'output'):
        cli_value = getattr(args, name, None)
        setattr(run, name, _merge_value(cli_value, getattr(run, name), cli_value is not None))

    if getattr(args, 'no_order_nodes', False):
        run.order_nodes_by = None
    elif getattr(args, 'order_nodes_by', None) is not None:
        run.order_nodes_by = list(args.order_nodes_by)

    if getattr(args, 'no_order_samples', False):
        run.order_samples_by = None
    elif getattr(args, 'order_samples_by', None) is not None:
        run.order_samples_by = args.order_samples_by

    if getattr(args, 'no_order_modules', False):
        run.order_modules = False
    if getattr(args, 'no_scale', False):
        run.scale = False
    if getattr(args, 'background_label', None) is not None:
        run.background_label = args.background_label
    return run


def validate_config(run: RunConfig) -> None:
    """
    Validate a merged run configuration.

    Raises:
        ValueError: If no datasets are given or referenced datasets are unknown
    """
    if not run.datasets:
        raise ValueError("Run file must define at least one dataset under 'datasets'")

    known = set(run.datasets)
    referenced: List[str] = []
    for value in (run.discovery, run.test):
        referenced.extend(value or [])
    if isinstance(run.order_nodes_by, list):
        referenced.extend(run.order_nodes_by)
    if isinstance(run.order_samples_by, str):
        referenced.append(run.order_samples_by)

    # 1-based positions are accepted as dataset references
    unknown = [
        r for r in referenced
        if r not in known and not (r.isdigit() and 1 <= int(r) <= len(known))
    ]
    if unknown:
        raise ValueError(
            f"Unknown dataset(s) {', '.join(dict.fromkeys(unknown))}. "
            f"Defined datasets: {', '.join(run.datasets)}"
        )


def as_dataset_ref(ref: str, names: List[str]):
    """A dataset name, or a 1-based position when ``ref`` is numeric and not a name."""
    if ref not in names and ref.isdigit():
        return int(ref)
    return ref
