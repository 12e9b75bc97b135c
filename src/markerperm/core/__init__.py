"""
Core data structures for marker-pair scoring.

1. BioMatrix: Expression matrix with feature and sample identifiers
2. MatrixProvider: Protocol for column access used by the scoring engine
3. DenseMatrixProvider / SparseMatrixProvider: Adapters for numpy and
   scipy.sparse storage
"""

from markerperm.core.biomatrix import BioMatrix
from markerperm.core.providers import (
    MatrixProvider,
    DenseMatrixProvider,
    SparseMatrixProvider,
    as_provider,
)

__all__ = [
    'BioMatrix',
    'MatrixProvider',
    'DenseMatrixProvider',
    'SparseMatrixProvider',
    'as_provider',
]
