"""
Column providers: the read-only view of a matrix used by the scoring engine.

The permutation engine never touches a matrix directly. It asks a provider
for the number of features and for one sample's full feature vector at a
time. Anything satisfying the MatrixProvider protocol works, including
BioMatrix.

Integer and real storage are treated the same way: every column comes back
as a float64 working buffer, so the scorer has a single code path.

Examples:
    >>> import numpy as np
    >>> from markerperm.core.providers import as_provider
    >>>
    >>> provider = as_provider(np.arange(6).reshape(3, 2))
    >>> provider.get_column(1)
    array([1., 3., 5.])
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
import pandas as pd
from scipy import sparse

from markerperm.core.biomatrix import BioMatrix

__all__ = [
    'MatrixProvider',
    'DenseMatrixProvider',
    'SparseMatrixProvider',
    'as_provider',
]


@runtime_checkable
class MatrixProvider(Protocol):
    """Protocol for column-addressable feature × sample stores."""

    @property
    def n_features(self) -> int:
        """Number of rows (features)."""
        ...

    @property
    def n_samples(self) -> int:
        """Number of columns (samples)."""
        ...

    def get_column(self, index: int) -> np.ndarray:
        """Full feature vector of one sample as a float64 array."""
        ...


class DenseMatrixProvider:
    """Provider over a 2-D numpy array (integer or real elements)."""

    def __init__(self, data: np.ndarray):
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")
        if not np.issubdtype(data.dtype, np.number):
            raise TypeError(f"data must be numeric, got dtype {data.dtype}")
        self._data = data

    @property
    def n_features(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    def get_column(self, index: int) -> np.ndarray:
        return np.array(self._data[:, index], dtype=np.float64)


class SparseMatrixProvider:
    """
    Provider over a scipy.sparse matrix.

    The matrix is converted to CSC once so that column extraction is cheap;
    each requested column is densified into a fresh float64 buffer.
    """

    def __init__(self, data):
        if not sparse.issparse(data):
            raise TypeError(f"data must be a scipy.sparse matrix, got {type(data)}")
        self._data = sparse.csc_matrix(data)

    @property
    def n_features(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    def get_column(self, index: int) -> np.ndarray:
        column = self._data[:, [index]].toarray().ravel()
        return column.astype(np.float64)


def as_provider(matrix) -> MatrixProvider:
    """
    Wrap a matrix-like object in a MatrixProvider.

    Accepts BioMatrix and other protocol implementations (returned as-is),
    pandas DataFrames (converted to BioMatrix so sample names resolve),
    scipy.sparse matrices and anything numpy can turn into a 2-D array.

    Raises:
        TypeError: If the object cannot be interpreted as a numeric matrix
        ValueError: If the resulting array is not 2-D
    """
    if isinstance(matrix, (BioMatrix, DenseMatrixProvider, SparseMatrixProvider)):
        return matrix
    if isinstance(matrix, pd.DataFrame):
        return BioMatrix(
            data=matrix.to_numpy(),
            feature_ids=pd.Index(matrix.index),
            sample_ids=pd.Index(matrix.columns),
        )
    if sparse.issparse(matrix):
        return SparseMatrixProvider(matrix)
    if isinstance(matrix, MatrixProvider):
        return matrix
    return DenseMatrixProvider(matrix)
