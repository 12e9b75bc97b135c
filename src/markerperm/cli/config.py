"""
Configuration file support for the markerperm CLI.

Supports YAML and JSON config files with CLI argument override.

Example ``score.yaml``:

    input: data/counts.csv
    pairs: data/phase_pairs.csv
    output: results/phases
    permutation:
      iterations: 1000
      min_iterations: 100
      min_pairs: 50
      seed: 42
    assignment:
      threshold: 0.5
      fallback_label: S
"""

import json
from argparse import Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class PermutationConfig:
    """Permutation test configuration."""
    iterations: int = 1000
    min_iterations: int = 100
    min_pairs: int = 50
    seed: Optional[int] = None


@dataclass
class AssignmentConfig:
    """Label assignment configuration."""
    threshold: float = 0.5
    fallback_label: str = "unassigned"


@dataclass
class ScoreConfig:
    """
    Complete configuration schema for the ``markerperm score`` command.

    Mirrors the CLI argument structure for consistency.
    """
    input: Optional[Path] = None
    pairs: Optional[Path] = None
    output: Optional[Path] = None
    permutation: PermutationConfig = field(default_factory=PermutationConfig)
    assignment: AssignmentConfig = field(default_factory=AssignmentConfig)


# (section, config key) -> argparse destination
_SECTION_MAPPINGS = {
    ('permutation', 'iterations'): 'iterations',
    ('permutation', 'min_iterations'): 'min_iterations',
    ('permutation', 'min_pairs'): 'min_pairs',
    ('permutation', 'seed'): 'seed',
    ('assignment', 'threshold'): 'assign_threshold',
    ('assignment', 'fallback_label'): 'fallback_label',
}

_PATH_KEYS = ('input', 'pairs', 'output')

_SHORT_TO_LONG = {
    'i': 'input',
    'p': 'pairs',
    'o': 'output',
    'n': 'iterations',
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
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def _explicit_arg_names(cli_args: Optional[List[str]]) -> set:
    """Destinations of arguments the user typed on the command line."""
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg.startswith('-') and len(arg) == 2 and arg[1] in _SHORT_TO_LONG:
            explicit.add(_SHORT_TO_LONG[arg[1]])
    return explicit


def merge_config_with_args(config: Dict[str, Any], args: Namespace, cli_args: Optional[List[str]] = None) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values)
                  If None, assumes all args are defaults

    Returns:
        New Namespace with merged values
    """
    explicit = _explicit_arg_names(cli_args)
    merged = Namespace(**vars(args))

    for key in _PATH_KEYS:
        if config.get(key) is not None and key not in explicit:
            setattr(merged, key, Path(config[key]))

    for (section, key), dest in _SECTION_MAPPINGS.items():
        values = config.get(section) or {}
        if key in values and values[key] is not None and dest not in explicit:
            setattr(merged, dest, values[key])

    return merged


def _require_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got: {value}")


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Parameters:
        config: Configuration dictionary

    Raises:
        ValueError: If configuration is invalid
    """
    unknown = set(config) - set(_PATH_KEYS) - {'permutation', 'assignment'}
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    permutation = config.get('permutation') or {}
    if not isinstance(permutation, dict):
        raise ValueError("'permutation' section must be a mapping")
    for key in ('iterations', 'min_iterations', 'min_pairs'):
        if key in permutation:
            _require_positive_int(permutation[key], f"permutation.{key}")
    seed = permutation.get('seed')
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int) or seed < 0):
        raise ValueError(f"permutation.seed must be a non-negative integer, got: {seed}")

    assignment = config.get('assignment') or {}
    if not isinstance(assignment, dict):
        raise ValueError("'assignment' section must be a mapping")
    if 'threshold' in assignment:
        threshold = assignment['threshold']
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            raise ValueError(f"assignment.threshold must be in [0, 1], got: {threshold}")
