"""
Label-free permutation significance for marker-pair scores.

For each requested sample:
    1. Fetch the sample's full feature vector from the matrix provider
    2. Gather the used features into a working buffer (``used`` order)
    3. Score the buffer without a threshold (observed score)
    4. Shuffle the buffer in place and rescore it against the observed
       score, up to ``iterations`` times
    5. Report the fraction of valid trials that fell below the observed score

Shuffling the buffer permutes feature identities among the used features,
so the result approximates how often a random assignment of values to
features would score lower than the real sample. Values close to 1 mean the
marker pairs are ordered far more consistently than chance.

Missing values:
    A sample whose observed score is undefined (too many tied pairs) or
    whose number of valid trials is below ``min_iterations`` gets NaN. This
    is not an error and does not affect other samples. Malformed indices,
    on the other hand, abort the whole call before any sample is processed.

Examples:
    >>> import numpy as np
    >>> from markerperm.stats.shuffle_scores import shuffle_scores
    >>>
    >>> rng = np.random.default_rng(0)
    >>> data = rng.poisson(5, size=(50, 10))
    >>> scores = shuffle_scores(
    ...     range(10), data,
    ...     marker1=np.arange(0, 20), marker2=np.arange(20, 40),
    ...     used=np.arange(40),
    ...     iterations=200, min_iterations=50, min_pairs=10, rng=rng,
    ... )
    >>> scores.shape
    (10,)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np
from numpy.typing import NDArray

from markerperm.core.providers import as_provider
from markerperm.stats.proportion import _proportion_kernel, validate_marker_pairs
from markerperm.utils.randomness import resolve_rng

logger = logging.getLogger(__name__)

__all__ = [
    'ShuffleScoreResult',
    'run_shuffle_scores',
    'shuffle_scores',
]


@dataclass
class ShuffleScoreResult:
    """Per-sample outputs of the permutation engine.

    Attributes:
        sample_positions: Column positions of the requested samples.
        scores: Fraction of valid trials below the observed score (NaN if
            missing).
        observed: Observed proportion per sample (NaN if too many ties).
        n_valid: Number of trials with a defined score.
        n_below: Number of trials scoring below the observed proportion.
        iterations: Trials attempted per sample.
    """

    sample_positions: NDArray[np.int64]
    scores: NDArray[np.float64]
    observed: NDArray[np.float64]
    n_valid: NDArray[np.int64]
    n_below: NDArray[np.int64]
    iterations: int
    metadata: dict = field(default_factory=dict)

    @property
    def n_missing(self) -> int:
        """Number of samples without a score."""
        return int(np.isnan(self.scores).sum())

    def to_dict(self) -> dict:
        """Serialize summary statistics to a JSON-compatible dict."""
        return {
            "n_samples": int(len(self.scores)),
            "n_missing": self.n_missing,
            "n_missing_observed": int(np.isnan(self.observed).sum()),
            "iterations": self.iterations,
            "mean_score": float(np.nanmean(self.scores)) if self.n_missing < len(self.scores) else None,
            **self.metadata,
        }


def _check_positive(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer scalar, got {value!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return int(value)


def _resolve_samples(samples: Iterable, provider, one_based: bool) -> NDArray[np.int64]:
    """Convert sample identifiers or positions to validated 0-based positions."""
    positions = []
    n_samples = provider.n_samples
    for sample in samples:
        if isinstance(sample, (int, np.integer)) and not isinstance(sample, bool):
            pos = int(sample) - 1 if one_based else int(sample)
        elif hasattr(provider, "sample_position"):
            pos = provider.sample_position(sample)
        else:
            raise TypeError(
                f"Sample {sample!r} is not an integer position and the matrix "
                "has no sample identifiers"
            )
        if pos < 0 or pos >= n_samples:
            raise IndexError(f"sample index {sample!r} is out of range for {n_samples} samples")
        positions.append(pos)
    return np.asarray(positions, dtype=np.int64)


def run_shuffle_scores(
    samples: Iterable,
    matrix,
    marker1,
    marker2,
    used,
    iterations: int = 1000,
    min_iterations: int = 100,
    min_pairs: int = 50,
    rng: np.random.Generator | int | None = None,
    one_based: bool = False,
) -> ShuffleScoreResult:
    """
    Permutation-based significance of marker-pair ordering for each sample.

    Args:
        samples: Column positions (0-based, or 1-based with one_based=True)
            or sample identifiers when the matrix carries them.
        matrix: BioMatrix, MatrixProvider, numpy array, scipy.sparse matrix
            or DataFrame (features × samples).
        marker1: Index into ``used`` of the first feature of each pair.
        marker2: Index into ``used`` of the second feature of each pair.
        used: Row indices of every feature referenced by a pair.
        iterations: Maximum number of shuffles per sample.
        min_iterations: Minimum number of valid shuffles for a defined score.
        min_pairs: Minimum number of untied pairs for a defined proportion.
        rng: Generator, seed, or None. A Generator is consumed in place.
        one_based: Interpret integer sample ids as 1-based.

    Returns:
        ShuffleScoreResult with one entry per requested sample, in order.

    Raises:
        ValueError: Marker lists of different length, or non-positive counts
        IndexError: Marker, used or sample index out of range
    """
    provider = as_provider(matrix)
    n_features = provider.n_features

    used = np.ascontiguousarray(used, dtype=np.int64).ravel()
    n_used = used.shape[0]
    marker1, marker2 = validate_marker_pairs(marker1, marker2, n_used)

    nit = _check_positive(iterations, "number of iterations")
    minit = _check_positive(min_iterations, "minimum number of iterations")
    minp = _check_positive(min_pairs, "minimum number of pairs")

    if n_used and (used.min() < 0 or used.max() >= n_features):
        raise IndexError(f"used gene indices are out of range [0, {n_features})")

    positions = _resolve_samples(samples, provider, one_based)
    n_cells = positions.shape[0]
    rng = resolve_rng(rng)

    scores = np.full(n_cells, np.nan)
    observed = np.full(n_cells, np.nan)
    n_valid = np.zeros(n_cells, dtype=np.int64)
    n_below = np.zeros(n_cells, dtype=np.int64)

    logger.info(
        f"Scoring {n_cells} samples: {marker1.shape[0]} pairs over {n_used} features, "
        f"{nit} iterations"
    )

    for i, pos in enumerate(positions):
        current = provider.get_column(pos)[used]

        curscore = _proportion_kernel(current, marker1, marker2, minp, np.nan, True)
        if np.isnan(curscore):
            logger.debug(f"Sample {pos}: fewer than {minp} untied pairs, skipping")
            continue
        observed[i] = curscore

        below = 0
        total = 0
        for _ in range(nit):
            rng.shuffle(current)
            newscore = _proportion_kernel(current, marker1, marker2, minp, curscore, True)
            if not np.isnan(newscore):
                if newscore < 0:
                    below += 1
                total += 1

        n_valid[i] = total
        n_below[i] = below
        if total >= minit:
            scores[i] = below / total
        else:
            logger.debug(f"Sample {pos}: only {total} valid permutations (< {minit})")

    result = ShuffleScoreResult(
        sample_positions=positions,
        scores=scores,
        observed=observed,
        n_valid=n_valid,
        n_below=n_below,
        iterations=nit,
        metadata={
            "n_pairs": int(marker1.shape[0]),
            "n_used": int(n_used),
            "min_iterations": minit,
            "min_pairs": minp,
        },
    )

    if result.n_missing:
        logger.info(f"{result.n_missing}/{n_cells} samples have no score")

    return result


def shuffle_scores(
    samples: Iterable,
    matrix,
    marker1,
    marker2,
    used,
    iterations: int = 1000,
    min_iterations: int = 100,
    min_pairs: int = 50,
    rng: Optional[np.random.Generator | int] = None,
    one_based: bool = False,
) -> NDArray[np.float64]:
    """
    Score vector of ``run_shuffle_scores`` (NaN where missing).

    See run_shuffle_scores for the arguments.
    """
    return run_shuffle_scores(
        samples, matrix, marker1, marker2, used,
        iterations=iterations,
        min_iterations=min_iterations,
        min_pairs=min_pairs,
        rng=rng,
        one_based=one_based,
    ).scores
