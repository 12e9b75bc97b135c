"""
Loaders for expression matrices and marker pair tables.

Expression matrices:
    - First column: feature IDs (gene symbols, Ensembl IDs)
    - Remaining columns: samples, with numerical values
    - Comma-separated (.csv) or tab-separated (.tsv, .txt)

Marker pair tables:
    One row per pair with columns ``first`` and ``second`` and an optional
    ``label`` column naming the class the pair votes for. Without a label
    column every pair belongs to a single set called ``markers``.

    ```
    label,first,second
    G1,CCND1,CCNB1
    G2M,CCNB1,CCND1
    ```

Examples:
    >>> from pathlib import Path
    >>> from markerperm.io.loaders import load_csv_matrix, load_marker_pairs
    >>>
    >>> matrix = load_csv_matrix(Path("counts.csv"))
    >>> marker_sets = load_marker_pairs(Path("pairs.csv"))
    >>> print(sorted(marker_sets))
    ['G1', 'G2M']
"""

from __future__ import annotations

from pathlib import Path
import warnings
import numpy as np
import pandas as pd

from markerperm.classify import MarkerPairs
from markerperm.core.biomatrix import BioMatrix

__all__ = ['load_csv_matrix', 'load_marker_pairs', 'DEFAULT_PAIR_LABEL']

DEFAULT_PAIR_LABEL = "markers"


def _separator(path: Path) -> str:
    return '\t' if path.suffix.lower() in ('.tsv', '.txt', '.tab') else ','


def _check_file(path) -> Path:
    if not isinstance(path, Path):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")
    return path


def load_csv_matrix(path: Path) -> BioMatrix:
    """
    Load an expression/count matrix into a BioMatrix.

    Args:
        path: Path to a CSV/TSV file (features × samples)

    Returns:
        BioMatrix with feature IDs from the first column and sample IDs
        from the header

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is empty, non-numeric or contains infinities

    Warns:
        UserWarning: On duplicate feature/sample IDs (first occurrence
            kept) and on NaN values
    """
    path = _check_file(path)

    try:
        df = pd.read_csv(path, index_col=0, sep=_separator(path))
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"CSV file is empty: {path}") from e
    except Exception as e:
        raise ValueError(f"Failed to read CSV file {path}: {e}") from e

    if df.shape[0] == 0:
        raise ValueError(f"CSV contains no features (rows): {path}")
    if df.shape[1] == 0:
        raise ValueError(f"CSV contains no samples (columns): {path}")

    if df.index.duplicated().any():
        n_duplicates = df.index.duplicated().sum()
        warnings.warn(
            f"Found {n_duplicates} duplicate feature IDs. "
            "Using first occurrence of each.",
            UserWarning
        )
        df = df[~df.index.duplicated(keep='first')]

    if df.columns.duplicated().any():
        n_duplicates = df.columns.duplicated().sum()
        warnings.warn(
            f"Found {n_duplicates} duplicate sample IDs. "
            "Using first occurrence of each.",
            UserWarning
        )
        df = df.loc[:, ~df.columns.duplicated(keep='first')]

    try:
        data = df.to_numpy(dtype=float)
    except (ValueError, TypeError) as e:
        bad_columns = [
            str(col) for col in df.columns
            if not pd.api.types.is_numeric_dtype(df[col])
        ][:5]
        raise ValueError(
            f"CSV contains non-numeric values in columns: {', '.join(bad_columns)}"
        ) from e

    if np.isnan(data).any():
        n_nan = int(np.isnan(data).sum())
        warnings.warn(
            f"Found {n_nan:,} NaN values ({100 * n_nan / data.size:.2f}% of data). "
            "Pairs involving NaN never count as ties and compare as not-greater.",
            UserWarning
        )

    if np.isinf(data).any():
        n_inf = int(np.isinf(data).sum())
        raise ValueError(
            f"CSV contains {n_inf} infinite values. "
            "Please clean data before loading."
        )

    return BioMatrix(
        data=data,
        feature_ids=pd.Index(df.index.astype(str)),
        sample_ids=pd.Index(df.columns.astype(str)),
    )


def load_marker_pairs(path: Path) -> dict[str, MarkerPairs]:
    """
    Load marker pairs grouped by label.

    Args:
        path: CSV/TSV with columns first, second and optionally label

    Returns:
        Mapping label -> MarkerPairs, labels in order of first appearance

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If required columns are missing or the table is empty
    """
    path = _check_file(path)

    try:
        df = pd.read_csv(path, sep=_separator(path), dtype=str)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Marker pair file is empty: {path}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = {'first', 'second'} - set(df.columns)
    if missing:
        raise ValueError(
            f"Marker pair file {path} is missing columns: {', '.join(sorted(missing))}"
        )

    df = df.dropna(subset=['first', 'second'])
    if df.empty:
        raise ValueError(f"Marker pair file contains no pairs: {path}")

    if 'label' not in df.columns:
        df['label'] = DEFAULT_PAIR_LABEL

    marker_sets = {}
    for label, group in df.groupby('label', sort=False):
        marker_sets[str(label)] = MarkerPairs(
            first=group['first'].str.strip().tolist(),
            second=group['second'].str.strip().tolist(),
        )
    return marker_sets
