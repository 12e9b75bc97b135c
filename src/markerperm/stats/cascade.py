"""
Cascading shuffles and the null distribution of Spearman's rho built on them.

cascade_shuffle produces a matrix whose first column is a shuffled copy of
the input and whose every later column is a shuffled copy of the column
before it. Successive columns therefore form a chain (a random walk over
permutations) rather than independent draws. This is cheaper than drawing
from scratch and is all that is needed when only a quick measure of
permutation variability is wanted; the price is correlation between
neighbouring columns. The chain behaviour is part of the contract: the
null distributions below are reproducible only if it is kept.

correlate_null uses the chain to approximate the distribution of Spearman's
rho between two unrelated variables, optionally within blocks or in the
residual space of a design matrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from scipy import stats as scipy_stats

from markerperm.utils.randomness import resolve_rng

logger = logging.getLogger(__name__)

__all__ = [
    'cascade_shuffle',
    'auto_shuffle',
    'NullDistribution',
    'correlate_null',
]


def cascade_shuffle(values, iterations: int, rng=None) -> NDArray[np.float64]:
    """
    Matrix of successive permutations of a vector.

    Args:
        values: 1-D vector to permute
        iterations: Number of columns to produce
        rng: Generator, seed, or None

    Returns:
        Array of shape (len(values), iterations). Column 0 is a permutation
        of values, column i a permutation of column i - 1.

    Raises:
        ValueError: If iterations is negative

    Examples:
        >>> out = cascade_shuffle([1.0, 2.0, 3.0], 4, rng=0)
        >>> out.shape
        (3, 4)
    """
    source = np.asarray(values, dtype=np.float64).ravel()
    iterations = int(iterations)
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")
    rng = resolve_rng(rng)

    n = source.shape[0]
    # Column-major so each column is a contiguous buffer for the in-place shuffle
    outmat = np.empty((n, iterations), dtype=np.float64, order='F')
    for i in range(iterations):
        column = outmat[:, i]
        column[:] = source
        rng.shuffle(column)
        source = column
    return outmat


auto_shuffle = cascade_shuffle


def _spearman_vs_ranks(shuffled: NDArray[np.float64], rankings: NDArray[np.float64]) -> NDArray[np.float64]:
    """Spearman's rho of each column of permuted ranks against the ranks (no ties)."""
    n = rankings.shape[0]
    d2 = ((shuffled - rankings[:, None]) ** 2).sum(axis=0)
    return 1.0 - 6.0 * d2 / (n * (n * n - 1.0))


@dataclass
class NullDistribution:
    """Sorted null distribution of Spearman's rho.

    Attributes:
        values: Null correlations, ascending.
        n_samples: Number of observations each correlation was computed on.
        iterations: Number of null draws.
        block: Blocking factor used, if any.
        design: Design matrix used, if any.
    """

    values: NDArray[np.float64]
    n_samples: int
    iterations: int
    block: Optional[NDArray] = None
    design: Optional[NDArray[np.float64]] = None

    def pvalue(self, rho: float, tol: float = 1e-8) -> float:
        """
        Two-sided empirical p-value of an observed correlation.

        Twice the smaller tail count (null values within ``tol`` of rho
        count for both tails), plus one, over the number of null values
        plus one; capped at 1.
        """
        n = self.values.shape[0]
        lower = np.sum(self.values <= rho + tol)
        upper = np.sum(self.values >= rho - tol)
        return float(min(2 * (min(lower, upper) + 1) / (n + 1), 1.0))


def _rank_null(n: int, iterations: int, rng) -> NDArray[np.float64]:
    if n < 2:
        raise ValueError(f"need at least 2 observations for a correlation, got {n}")
    rankings = np.arange(1, n + 1, dtype=np.float64)
    shuffled = cascade_shuffle(rankings, iterations, rng)
    return _spearman_vs_ranks(shuffled, rankings)


def correlate_null(
    n_samples: Optional[int] = None,
    iterations: int = 1000,
    block=None,
    design=None,
    rng=None,
) -> NullDistribution:
    """
    Null distribution of Spearman's rho between two unrelated variables.

    Exactly one of n_samples, block or design defines the observations.

    - n_samples: rho between ranks 1..n and each column of their cascading
      shuffle.
    - block: the same, computed separately within each level of the
      blocking factor (levels in sorted order); per-block rho values are
      weighted by block size and divided by the total number of samples.
    - design: for each draw, two standard normal vectors are rotated into
      the residual space of the design (complete QR) and correlated.

    Args:
        n_samples: Number of observations
        iterations: Number of null draws
        block: Blocking factor, one entry per observation
        design: Design matrix (observations × coefficients)
        rng: Generator, seed, or None

    Returns:
        NullDistribution with values sorted ascending

    Raises:
        ValueError: If the arguments are contradictory or too small
    """
    if block is not None and design is not None:
        raise ValueError("cannot specify both 'block' and 'design'")
    iterations = int(iterations)
    if iterations <= 0:
        raise ValueError(f"iterations must be positive, got {iterations}")
    rng = resolve_rng(rng)

    if design is not None:
        design = np.asarray(design, dtype=np.float64)
        if design.ndim != 2:
            raise ValueError(f"design must be 2D, got shape {design.shape}")
        n_obs = design.shape[0]
        if n_samples is not None and n_samples != n_obs:
            raise ValueError(f"n_samples ({n_samples}) does not match design rows ({n_obs})")
        residual_df = n_obs - np.linalg.matrix_rank(design)
        if residual_df < 2:
            raise ValueError(f"need at least 2 residual degrees of freedom, got {residual_df}")

        q, _ = np.linalg.qr(design, mode='complete')
        rotation = q[:, n_obs - residual_df:]
        out = np.empty(iterations, dtype=np.float64)
        for x in range(iterations):
            first_half = rotation @ rng.standard_normal(residual_df)
            second_half = rotation @ rng.standard_normal(residual_df)
            rho, _ = scipy_stats.spearmanr(first_half, second_half)
            out[x] = rho
        n_samples = n_obs

    elif block is not None:
        block = np.asarray(block)
        if n_samples is not None and n_samples != block.shape[0]:
            raise ValueError(f"n_samples ({n_samples}) does not match block length ({block.shape[0]})")
        levels, sizes = np.unique(block, return_counts=True)
        out = np.zeros(iterations, dtype=np.float64)
        for level, size in zip(levels, sizes):
            logger.debug(f"Block {level!r}: {size} samples")
            out += _rank_null(int(size), iterations, rng) * size
        n_samples = int(block.shape[0])
        out /= n_samples

    else:
        if n_samples is None:
            raise ValueError("one of 'n_samples', 'block' or 'design' is required")
        n_samples = int(n_samples)
        if n_samples <= 2:
            raise ValueError(f"number of samples should be greater than 2, got {n_samples}")
        out = _rank_null(n_samples, iterations, rng)

    out.sort()
    return NullDistribution(
        values=out,
        n_samples=n_samples,
        iterations=iterations,
        block=block,
        design=design,
    )
