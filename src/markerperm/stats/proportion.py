"""
Directional proportion score over marker pairs.

For a vector of feature values and a list of marker pairs ``(first,
second)``, the score is the fraction of non-tied pairs in which the first
feature has the larger value:

    score = #{first > second} / #{first != second}

Tied pairs are excluded from both numerator and denominator. When fewer than
``min_pairs`` pairs are untied the score is missing.

Short-cut mode:
    When a threshold is supplied the caller only needs to know whether the
    final score falls below the threshold. Every 100 untied pairs the kernel
    bounds the final proportion assuming all remaining pairs go one way or
    the other and stops as soon as the answer is fixed. Both bounds carry a
    one-pair margin so that a proportion exactly equal to the threshold is
    never decided early in the wrong direction.

The loop is compiled with numba because it is called once per permutation
per sample.

Examples:
    >>> import numpy as np
    >>> from markerperm.stats.proportion import pair_proportion, ThresholdOutcome
    >>>
    >>> values = np.array([5.0, 3.0, 3.0, 1.0])
    >>> pair_proportion(values, 2, [0, 1, 2], [1, 2, 3])
    1.0
    >>> pair_proportion(values, 2, [0, 1, 2], [1, 2, 3], threshold=1.0)
    <ThresholdOutcome.AT_OR_ABOVE: 1>
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

import numpy as np
from numba import njit

__all__ = [
    'ThresholdOutcome',
    'pair_proportion',
    'validate_marker_pairs',
    'decode_score',
    'CHECK_INTERVAL',
]

# Untied pairs between two early-stopping checks
CHECK_INTERVAL = 100

_BELOW = -1.0
_AT_OR_ABOVE = 1.0


class ThresholdOutcome(Enum):
    """Result of scoring in short-cut mode."""
    BELOW = -1
    AT_OR_ABOVE = 1


@njit(cache=True, nogil=True)
def _proportion_kernel(values, marker1, marker2, min_pairs, threshold, early_exit):
    """
    Score one vector. Returns NaN (missing), -1 / +1 (short-cut outcome) or
    the proportion itself when threshold is NaN.
    """
    was_first = 0
    was_total = 0
    short_cut = not np.isnan(threshold)
    npairs = marker1.shape[0]

    for m in range(npairs):
        first = values[marker1[m]]
        second = values[marker2[m]]
        if first != second:
            if first > second:
                was_first += 1
            was_total += 1

        if (short_cut and early_exit and was_total > 0
                and was_total >= min_pairs and was_total % CHECK_INTERVAL == 0):
            leftovers = npairs - m - 1
            max_total = was_total + leftovers
            if (was_first + leftovers + 1) / max_total < threshold:
                return _BELOW
            elif was_first > 0 and (was_first - 1) / max_total > threshold:
                return _AT_OR_ABOVE

    if was_total == 0 or was_total < min_pairs:
        return np.nan

    output = was_first / was_total
    if short_cut:
        return _BELOW if output < threshold else _AT_OR_ABOVE
    return output


def validate_marker_pairs(marker1, marker2, n_used: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Check marker index lists and return them as contiguous int64 arrays.

    Args:
        marker1: Indices of the first feature of each pair
        marker2: Indices of the second feature of each pair
        n_used: Length of the value vector the indices point into

    Raises:
        ValueError: If the two lists differ in length
        IndexError: If any index falls outside [0, n_used)
    """
    marker1 = np.ascontiguousarray(marker1, dtype=np.int64).ravel()
    marker2 = np.ascontiguousarray(marker2, dtype=np.int64).ravel()

    if marker1.shape[0] != marker2.shape[0]:
        raise ValueError(
            f"vectors of markers must be of the same length "
            f"({marker1.shape[0]} != {marker2.shape[0]})"
        )
    if marker1.size and (marker1.min() < 0 or marker1.max() >= n_used):
        raise IndexError(f"first marker indices are out of range [0, {n_used})")
    if marker2.size and (marker2.min() < 0 or marker2.max() >= n_used):
        raise IndexError(f"second marker indices are out of range [0, {n_used})")

    return marker1, marker2


def pair_proportion(
    values,
    min_pairs: int,
    marker1,
    marker2,
    threshold: Optional[float] = None,
    early_exit: bool = True,
) -> Union[float, ThresholdOutcome, None]:
    """
    Score a value vector against a list of marker pairs.

    Args:
        values: Values of the used features (1-D, integer or real)
        min_pairs: Minimum number of untied pairs for a defined score
        marker1: Index into values of the first feature of each pair
        marker2: Index into values of the second feature of each pair
        threshold: If given, only report whether the score is below it
        early_exit: Allow short-cut mode to stop before all pairs are seen.
            Disabling it never changes the result, only the work done.

    Returns:
        None when fewer than min_pairs pairs are untied, otherwise the
        proportion in [0, 1], or a ThresholdOutcome when threshold is set.

    Raises:
        ValueError: If marker lists differ in length
        IndexError: If a marker index is outside values

    Examples:
        >>> pair_proportion([2, 2, 2], 1, [0, 1], [1, 2]) is None
        True
    """
    values = np.ascontiguousarray(values, dtype=np.float64).ravel()
    marker1, marker2 = validate_marker_pairs(marker1, marker2, values.shape[0])

    short_cut = threshold is not None and not np.isnan(threshold)
    code = _proportion_kernel(
        values, marker1, marker2, int(min_pairs),
        float(threshold) if short_cut else np.nan,
        bool(early_exit),
    )
    return decode_score(code, short_cut)


def decode_score(code: float, short_cut: bool) -> Union[float, ThresholdOutcome, None]:
    """Translate a kernel return code into the public score representation."""
    if np.isnan(code):
        return None
    if short_cut:
        return ThresholdOutcome.BELOW if code < 0 else ThresholdOutcome.AT_OR_ABOVE
    return float(code)
