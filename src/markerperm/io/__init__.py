"""
I/O for expression matrices, marker pair tables and scoring results.

Key Functions:
    - load_csv_matrix: Load expression matrix from CSV/TSV
    - load_marker_pairs: Load labelled marker pairs
    - write_scores: Write classification scores, assignments and summary
    - write_null_distribution: Write a null correlation distribution
"""

from markerperm.io.loaders import load_csv_matrix, load_marker_pairs
from markerperm.io.writers import write_scores, write_null_distribution

__all__ = [
    'load_csv_matrix',
    'load_marker_pairs',
    'write_scores',
    'write_null_distribution',
]
