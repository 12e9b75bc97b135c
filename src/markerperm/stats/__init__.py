"""
Scoring and permutation statistics for marker pairs.

Exports:
- pair_proportion: directional proportion score with short-cut mode
- shuffle_scores / run_shuffle_scores: per-sample permutation significance
- cascade_shuffle / auto_shuffle: chained permutations of one vector
- correlate_null: null distribution of Spearman's rho
"""

from .proportion import (
    ThresholdOutcome,
    pair_proportion,
    validate_marker_pairs,
)
from .shuffle_scores import (
    ShuffleScoreResult,
    run_shuffle_scores,
    shuffle_scores,
)
from .cascade import (
    NullDistribution,
    auto_shuffle,
    cascade_shuffle,
    correlate_null,
)

__all__ = [
    "ThresholdOutcome",
    "pair_proportion",
    "validate_marker_pairs",
    "ShuffleScoreResult",
    "run_shuffle_scores",
    "shuffle_scores",
    "NullDistribution",
    "auto_shuffle",
    "cascade_shuffle",
    "correlate_null",
]
