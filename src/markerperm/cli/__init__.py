"""
markerperm CLI - marker-pair scoring from the command line.

Commands:
    markerperm score   - Permutation scores and label assignment per sample
    markerperm null    - Null distribution of Spearman's rho
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for markerperm."""
    parser = argparse.ArgumentParser(
        prog="markerperm",
        description="Directional marker-pair scores with permutation significance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  score   Permutation scores and label assignment per sample
  null    Null distribution of Spearman's rho from cascading shuffles

Examples:
  markerperm score --input counts.csv --pairs pairs.csv --output results/phases --seed 42
  markerperm score --config score.yaml
  markerperm null --n-samples 50 --iterations 10000 --output null.csv
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from markerperm.cli import score, null
    score.register_parser(subparsers)
    null.register_parser(subparsers)

    raw_args = list(args) if args is not None else sys.argv[1:]
    parsed_args = parser.parse_args(raw_args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    # Tokens after the subcommand name, for config-override detection
    parsed_args.cli_args = raw_args[raw_args.index(parsed_args.command) + 1:]
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
