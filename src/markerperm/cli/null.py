"""
markerperm null command - null distribution of Spearman's rho.

Usage:
    markerperm null --n-samples 50 --iterations 10000 --output null.csv
    markerperm null --block metadata.csv --block-column batch --output null.csv
"""

import argparse
import logging
from pathlib import Path

from markerperm.cli._validators import _non_negative_int, _positive_int

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the null subcommand."""
    parser = subparsers.add_parser(
        "null",
        help="Null distribution of Spearman's rho from cascading shuffles",
        description=(
            "Build a sorted null distribution of Spearman's rho for a given number "
            "of samples, optionally within blocks read from a metadata table."
        ),
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--n-samples", type=_positive_int,
                       help="Number of observations")
    group.add_argument("--block", type=Path,
                       help="Metadata CSV with one row per sample")
    parser.add_argument("--block-column", default="block",
                        help="Column of --block holding the blocking factor (default: %(default)s)")

    parser.add_argument("--iterations", "-n", type=_positive_int, default=1000,
                        help="Number of null draws (default: %(default)s)")
    parser.add_argument("--seed", type=_non_negative_int, default=None,
                        help="Random seed for reproducible shuffles")
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output CSV path")

    parser.set_defaults(func=run_null)


def run_null(args: argparse.Namespace) -> int:
    """Execute the null command."""
    import pandas as pd
    from markerperm.io import write_null_distribution
    from markerperm.stats.cascade import correlate_null

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    block = None
    if args.block is not None:
        if not args.block.exists():
            logger.error(f"Block file not found: {args.block}")
            return 1
        metadata = pd.read_csv(args.block)
        if args.block_column not in metadata.columns:
            logger.error(
                f"Column '{args.block_column}' not found in {args.block}. "
                f"Available: {list(metadata.columns)}"
            )
            return 1
        block = metadata[args.block_column].astype(str).to_numpy()

    try:
        null = correlate_null(
            n_samples=args.n_samples,
            iterations=args.iterations,
            block=block,
            rng=args.seed,
        )
    except ValueError as e:
        logger.error(str(e))
        return 1

    write_null_distribution(null, args.output)
    logger.info(
        f"Null rho: 2.5%={null.values[int(0.025 * (len(null.values) - 1))]:.3f}, "
        f"97.5%={null.values[int(0.975 * (len(null.values) - 1))]:.3f}"
    )
    return 0
