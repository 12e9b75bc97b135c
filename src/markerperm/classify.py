"""
Pair-based sample classification.

Each class label (e.g. a cell-cycle phase or a cell identity) is described
by a set of marker pairs ``(first, second)`` in which the first feature is
expected to exceed the second in samples of that class. Samples are scored
for every label with the permutation engine and assigned to the
best-scoring label when that score clears a threshold.

Workflow:
    1. Translate named pairs into row indices for the matrix (PairIndex)
    2. run_shuffle_scores for every label, sharing one random generator
    3. Normalize scores per sample and pick the assignment

Usage:
    >>> from pathlib import Path
    >>> from markerperm.classify import MarkerPairs, classify_samples
    >>> from markerperm.io import load_csv_matrix
    >>>
    >>> # Expression matrix with CCND1, CDKN1A, CCNB1, TOP2A among its rows
    >>> matrix = load_csv_matrix(Path("counts.csv"))
    >>> marker_sets = {
    ...     "G1": MarkerPairs(first=["CCND1", "CDKN1A"], second=["CCNB1", "TOP2A"]),
    ...     "G2M": MarkerPairs(first=["CCNB1", "TOP2A"], second=["CCND1", "CDKN1A"]),
    ... }
    >>> result = classify_samples(matrix, marker_sets, min_pairs=2, rng=42)
    >>> print(result.assignments.value_counts().to_dict())
    {'G1': 412, 'G2M': 187, 'unassigned': 23}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from markerperm.core.biomatrix import BioMatrix
from markerperm.core.providers import as_provider
from markerperm.stats.shuffle_scores import ShuffleScoreResult, run_shuffle_scores
from markerperm.utils.randomness import resolve_rng

logger = logging.getLogger(__name__)

__all__ = [
    'MarkerPairs',
    'PairIndex',
    'PairClassificationResult',
    'classify_samples',
]


@dataclass
class MarkerPairs:
    """Named marker pairs for one class label."""
    first: list[str]
    second: list[str]

    def __post_init__(self):
        self.first = list(self.first)
        self.second = list(self.second)
        if len(self.first) != len(self.second):
            raise ValueError(
                f"first ({len(self.first)}) and second ({len(self.second)}) "
                "must have the same number of features"
            )

    def __len__(self) -> int:
        return len(self.first)


@dataclass
class PairIndex:
    """
    Integer form of a set of marker pairs for a given matrix.

    Attributes:
        used: Sorted row indices of every feature in a retained pair
        marker1: Index into ``used`` of each pair's first feature
        marker2: Index into ``used`` of each pair's second feature
        n_dropped: Pairs discarded because a feature is absent from the matrix
    """
    used: np.ndarray
    marker1: np.ndarray
    marker2: np.ndarray
    n_dropped: int = 0

    @property
    def n_pairs(self) -> int:
        return int(self.marker1.shape[0])

    @classmethod
    def from_feature_ids(cls, feature_ids: pd.Index, pairs: MarkerPairs) -> PairIndex:
        """
        Map named pairs onto row positions of feature_ids.

        Pairs referring to a feature missing from feature_ids are dropped.

        Raises:
            ValueError: If feature_ids contains duplicates
        """
        feature_ids = pd.Index(feature_ids)
        if not feature_ids.is_unique:
            raise ValueError("feature_ids must be unique to resolve marker pairs")

        idx1 = feature_ids.get_indexer(pd.Index(pairs.first))
        idx2 = feature_ids.get_indexer(pd.Index(pairs.second))
        keep = (idx1 >= 0) & (idx2 >= 0)
        idx1 = idx1[keep]
        idx2 = idx2[keep]

        used = np.unique(np.concatenate([idx1, idx2])).astype(np.int64)
        return cls(
            used=used,
            marker1=np.searchsorted(used, idx1).astype(np.int64),
            marker2=np.searchsorted(used, idx2).astype(np.int64),
            n_dropped=int((~keep).sum()),
        )


@dataclass
class PairClassificationResult:
    """
    Scores and assignments for each sample.

    Attributes:
        scores: Samples × labels significance values (NaN if missing)
        normalized: scores divided by their per-sample sum
        assignments: Assigned label per sample
        details: Full engine output per label
        pair_counts: Pairs retained per label after matching to the matrix
        assign_threshold: Minimum score required for an assignment
        fallback_label: Label given to samples without a qualifying score
    """
    scores: pd.DataFrame
    normalized: pd.DataFrame
    assignments: pd.Series
    details: dict[str, ShuffleScoreResult] = field(repr=False)
    pair_counts: dict[str, int]
    assign_threshold: float
    fallback_label: str

    def to_dict(self) -> dict:
        """Serialize a summary to a JSON-compatible dict."""
        return {
            "n_samples": int(len(self.assignments)),
            "assign_threshold": self.assign_threshold,
            "fallback_label": self.fallback_label,
            "pair_counts": dict(self.pair_counts),
            "assignment_counts": {
                str(k): int(v) for k, v in self.assignments.value_counts().items()
            },
            "labels": {label: res.to_dict() for label, res in self.details.items()},
        }


def _normalize(scores: np.ndarray) -> np.ndarray:
    totals = np.nansum(scores, axis=1, keepdims=True)
    with np.errstate(invalid='ignore', divide='ignore'):
        normalized = scores / totals
    normalized[~np.isfinite(normalized)] = np.nan
    return normalized


def _assign(scores: np.ndarray, labels: list[str], threshold: float, fallback: str) -> np.ndarray:
    filled = np.where(np.isnan(scores), -np.inf, scores)
    best = np.argmax(filled, axis=1)
    best_score = filled[np.arange(filled.shape[0]), best]
    return np.where(best_score >= threshold, np.asarray(labels, dtype=object)[best], fallback)


def _sample_positions(matrix: BioMatrix, samples: Optional[Iterable]) -> np.ndarray:
    """Column positions of the requested samples; identifiers take precedence over positions."""
    if samples is None:
        return np.arange(matrix.n_samples, dtype=np.int64)
    positions = []
    for sample in samples:
        if sample in matrix.sample_ids:
            positions.append(matrix.sample_position(sample))
        elif isinstance(sample, (int, np.integer)) and not isinstance(sample, bool):
            positions.append(int(sample))
        else:
            raise KeyError(f"Unknown sample identifier: {sample!r}")
    return np.asarray(positions, dtype=np.int64)


def classify_samples(
    matrix,
    marker_sets: Mapping[str, MarkerPairs],
    samples: Optional[Iterable] = None,
    iterations: int = 1000,
    min_iterations: int = 100,
    min_pairs: int = 50,
    assign_threshold: float = 0.5,
    fallback_label: str = "unassigned",
    rng=None,
) -> PairClassificationResult:
    """
    Score samples against several marker pair sets and assign labels.

    Labels are scored in mapping order with one shared generator, so a
    fixed seed reproduces the whole result.

    Args:
        matrix: BioMatrix or DataFrame (features × samples) with feature names
        marker_sets: Label -> MarkerPairs
        samples: Sample identifiers or positions (default: all samples)
        iterations: Maximum shuffles per sample and label
        min_iterations: Minimum valid shuffles for a defined score
        min_pairs: Minimum untied pairs for a defined proportion
        assign_threshold: Minimum score for a sample to take a label
        fallback_label: Label for samples with no score at or above the
            threshold
        rng: Generator, seed, or None

    Returns:
        PairClassificationResult

    Raises:
        TypeError: If matrix has no feature identifiers
        ValueError: If marker_sets is empty
        KeyError: If a requested sample identifier is unknown
        IndexError: If a requested sample position is out of range
    """
    provider = as_provider(matrix)
    if not isinstance(provider, BioMatrix):
        raise TypeError("classify_samples requires a BioMatrix or DataFrame with feature names")
    if not marker_sets:
        raise ValueError("marker_sets must contain at least one label")

    positions = _sample_positions(provider, samples)
    rng = resolve_rng(rng)

    labels = list(marker_sets)
    columns = []
    details = {}
    pair_counts = {}

    for label in labels:
        index = PairIndex.from_feature_ids(provider.feature_ids, marker_sets[label])
        if index.n_dropped:
            logger.warning(
                f"{label}: dropped {index.n_dropped}/{len(marker_sets[label])} pairs "
                "with features absent from the matrix"
            )
        pair_counts[label] = index.n_pairs
        logger.info(f"Scoring label '{label}' with {index.n_pairs} pairs")

        result = run_shuffle_scores(
            positions, provider, index.marker1, index.marker2, index.used,
            iterations=iterations,
            min_iterations=min_iterations,
            min_pairs=min_pairs,
            rng=rng,
        )
        details[label] = result
        columns.append(result.scores)

    raw = np.column_stack(columns)
    sample_index = pd.Index(provider.sample_ids[positions], name="sample")

    scores = pd.DataFrame(raw, index=sample_index, columns=labels)
    normalized = pd.DataFrame(_normalize(raw), index=sample_index, columns=labels)
    assignments = pd.Series(
        _assign(raw, labels, assign_threshold, fallback_label),
        index=sample_index,
        name="assignment",
    )

    return PairClassificationResult(
        scores=scores,
        normalized=normalized,
        assignments=assignments,
        details=details,
        pair_counts=pair_counts,
        assign_threshold=float(assign_threshold),
        fallback_label=fallback_label,
    )
