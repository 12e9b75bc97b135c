"""argparse type validators for CLI parameter bounds checking.

Used as the ``type=`` argument in ``add_argument()`` so that values such as
``--iterations 0`` or ``--assign-threshold 1.5`` fail with a clear message.
"""

from __future__ import annotations

import argparse


def _positive_int(value: str) -> int:
    """argparse type for positive integers (> 0)."""
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return ivalue


def _non_negative_int(value: str) -> int:
    """argparse type for seeds (>= 0)."""
    ivalue = int(value)
    if ivalue < 0:
        raise argparse.ArgumentTypeError(f"{value} is not a non-negative integer")
    return ivalue


def _unit_interval(value: str) -> float:
    """argparse type for values in the closed interval [0, 1]."""
    fvalue = float(value)
    if not (0 <= fvalue <= 1):
        raise argparse.ArgumentTypeError(
            f"{value} is not a valid score threshold (must be in [0, 1])"
        )
    return fvalue
