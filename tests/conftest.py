"""
Pytest configuration and shared fixtures.

Provides synthetic expression matrices with planted marker-pair structure and
deterministic stand-ins for the random shuffle source.
"""

import numpy as np
import pandas as pd
import pytest

from markerperm.classify import MarkerPairs
from markerperm.core.biomatrix import BioMatrix


class RollShuffler:
    """Deterministic shuffle source: rotates the array right by one place.

    Records every call so tests can check how often and on what the engine
    shuffled.
    """

    def __init__(self):
        self.n_calls = 0
        self.seen = []

    def shuffle(self, values):
        self.n_calls += 1
        self.seen.append(np.array(values, copy=True))
        values[:] = np.roll(values, 1)


@pytest.fixture
def roll_shuffler():
    """Fresh RollShuffler per test."""
    return RollShuffler()


def generate_two_class_matrix(
    n_pairs: int = 30,
    n_per_class: int = 10,
    n_background: int = 20,
    seed: int = 42,
) -> tuple[BioMatrix, dict]:
    """
    Generate an expression matrix where marker pairs separate two classes.

    Features UP_i / DN_i form pair i. In "up" samples every UP_i is well above
    DN_i; in "down" samples the order is reversed. Background features are
    unrelated noise.

    Returns:
        (matrix, marker_sets) with labels "up" and "down"
    """
    rng = np.random.default_rng(seed)
    n_samples = 2 * n_per_class

    up = rng.normal(0, 1, size=(n_pairs, n_samples))
    down = rng.normal(0, 1, size=(n_pairs, n_samples))
    up[:, :n_per_class] += 10
    down[:, n_per_class:] += 10
    background = rng.normal(5, 3, size=(n_background, n_samples))

    data = np.vstack([up, down, background])
    feature_ids = pd.Index(
        [f"UP_{i:03d}" for i in range(n_pairs)]
        + [f"DN_{i:03d}" for i in range(n_pairs)]
        + [f"BG_{i:03d}" for i in range(n_background)]
    )
    sample_ids = pd.Index(
        [f"UP-SAMPLE_{i:03d}" for i in range(n_per_class)]
        + [f"DN-SAMPLE_{i:03d}" for i in range(n_per_class)]
    )
    sample_metadata = pd.DataFrame(
        {'truth': ["up"] * n_per_class + ["down"] * n_per_class},
        index=sample_ids,
    )

    up_ids = [f"UP_{i:03d}" for i in range(n_pairs)]
    down_ids = [f"DN_{i:03d}" for i in range(n_pairs)]
    marker_sets = {
        "up": MarkerPairs(first=up_ids, second=down_ids),
        "down": MarkerPairs(first=down_ids, second=up_ids),
    }

    matrix = BioMatrix(
        data=data,
        feature_ids=feature_ids,
        sample_ids=sample_ids,
        sample_metadata=sample_metadata,
    )
    return matrix, marker_sets


@pytest.fixture
def two_class_data():
    """Two-class matrix (80 features x 20 samples) with its marker sets."""
    return generate_two_class_matrix()


@pytest.fixture
def example_matrix():
    """
    6 features x 2 samples.

    Sample 0 carries the used subset [5, 3, 3, 1] at rows [4, 0, 2, 5];
    sample 1 is constant, so every marker pair is tied.
    """
    data = np.full((6, 2), 99.0)
    data[[4, 0, 2, 5], 0] = [5.0, 3.0, 3.0, 1.0]
    data[:, 1] = 7.0
    return data


@pytest.fixture
def example_pairs():
    """Marker pairs (0,1), (1,2), (2,3) over used rows [4, 0, 2, 5]."""
    return {
        'marker1': np.array([0, 1, 2]),
        'marker2': np.array([1, 2, 3]),
        'used': np.array([4, 0, 2, 5]),
    }
