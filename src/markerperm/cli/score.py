"""
markerperm score command - classify samples with marker-pair permutation scores.

Usage:
    markerperm score --input counts.csv --pairs pairs.csv --output results/phases
    markerperm score --config score.yaml --seed 7
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from markerperm.cli._validators import _non_negative_int, _positive_int, _unit_interval
from markerperm.cli.config import ScoreConfig

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the score subcommand."""
    defaults = ScoreConfig()

    parser = subparsers.add_parser(
        "score",
        help="Score and classify samples with marker pairs",
        description=(
            "For every label in the pair table, compute the permutation score of "
            "each sample (fraction of feature shuffles that order the marker pairs "
            "less consistently than the sample itself) and assign the best label."
        ),
    )

    parser.add_argument("--input", "-i", type=Path, default=None,
                        help="Expression data CSV/TSV (features x samples)")
    parser.add_argument("--pairs", "-p", type=Path, default=None,
                        help="Marker pair table with columns label, first, second")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output directory for results")
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="Path to YAML/JSON config file (CLI args override config values)")

    parser.add_argument("--iterations", "-n", type=_positive_int,
                        default=defaults.permutation.iterations,
                        help="Shuffles per sample (default: %(default)s)")
    parser.add_argument("--min-iterations", type=_positive_int,
                        default=defaults.permutation.min_iterations,
                        help="Minimum valid shuffles for a score (default: %(default)s)")
    parser.add_argument("--min-pairs", type=_positive_int,
                        default=defaults.permutation.min_pairs,
                        help="Minimum untied pairs for a score (default: %(default)s)")
    parser.add_argument("--seed", type=_non_negative_int,
                        default=defaults.permutation.seed,
                        help="Random seed for reproducible shuffles")

    parser.add_argument("--assign-threshold", type=_unit_interval,
                        default=defaults.assignment.threshold,
                        help="Minimum score to assign a label (default: %(default)s)")
    parser.add_argument("--fallback-label", default=defaults.assignment.fallback_label,
                        help="Label for samples below the threshold (default: %(default)s)")

    parser.set_defaults(func=run_score)


def run_score(args: argparse.Namespace) -> int:
    """Execute the score command."""
    from markerperm.classify import classify_samples
    from markerperm.io import load_csv_matrix, load_marker_pairs, write_scores

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.config:
        from markerperm.cli.config import load_config, merge_config_with_args, validate_config

        logger.info(f"Loading configuration from: {args.config}")
        try:
            config = load_config(args.config)
            validate_config(config)
            cli_args = getattr(args, "cli_args", None)
            if cli_args is None:
                cli_args = sys.argv[2:]
            args = merge_config_with_args(config, args, cli_args)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Config file error: {e}")
            return 1

    for name in ("input", "pairs", "output"):
        if not getattr(args, name):
            logger.error(f"--{name} is required (via CLI or config file)")
            return 1

    try:
        matrix = load_csv_matrix(args.input)
        marker_sets = load_marker_pairs(args.pairs)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    logger.info(f"Matrix: {matrix.n_features} features x {matrix.n_samples} samples")
    logger.info(f"Labels: {', '.join(f'{k} ({len(v)} pairs)' for k, v in marker_sets.items())}")

    try:
        result = classify_samples(
            matrix,
            marker_sets,
            iterations=args.iterations,
            min_iterations=args.min_iterations,
            min_pairs=args.min_pairs,
            assign_threshold=args.assign_threshold,
            fallback_label=args.fallback_label,
            rng=args.seed,
        )
    except (ValueError, IndexError) as e:
        logger.error(f"Scoring failed: {e}")
        return 1

    write_scores(
        result,
        Path(args.output),
        extra_summary={
            "timestamp": datetime.now().isoformat(),
            "input": str(args.input),
            "pairs": str(args.pairs),
            "iterations": args.iterations,
            "min_iterations": args.min_iterations,
            "min_pairs": args.min_pairs,
            "seed": args.seed,
        },
    )

    for label, count in result.assignments.value_counts().items():
        logger.info(f"  {label}: {count} samples")
    logger.info(f"Results saved to: {args.output}")
    return 0
