"""
markerperm - Directional marker-pair scores with permutation significance.

Scores each sample of an expression matrix by how consistently designated
marker pairs are ordered (first feature above second) and estimates how
unusual that ordering is by shuffling feature identities. Typical use is
assigning samples to classes such as cell-cycle phases from pre-trained
marker pairs.
"""

__version__ = "0.1.0"

from markerperm.core.biomatrix import BioMatrix
from markerperm.stats.proportion import ThresholdOutcome, pair_proportion
from markerperm.stats.shuffle_scores import shuffle_scores, run_shuffle_scores
from markerperm.stats.cascade import auto_shuffle, cascade_shuffle, correlate_null
from markerperm.classify import MarkerPairs, classify_samples

__all__ = [
    "BioMatrix",
    "ThresholdOutcome",
    "pair_proportion",
    "shuffle_scores",
    "run_shuffle_scores",
    "auto_shuffle",
    "cascade_shuffle",
    "correlate_null",
    "MarkerPairs",
    "classify_samples",
]
