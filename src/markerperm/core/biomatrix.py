"""
Named expression matrix used as the default column provider.

BioMatrix couples a numerical matrix with its feature and sample identifiers
so that marker pairs can be given by feature name and samples can be
requested by sample name.

Biological Context:
    Expression matrices are the fundamental data structure in genomics:
    - Rows = features (genes, proteins, transcripts)
    - Columns = samples (cells, patients, time points)
    - Values = measurements (counts, intensities, abundances)

    Marker-pair scoring reads one sample at a time, so the matrix is
    accessed column by column through ``get_column``.

Engineering Design:
    - Immutable by convention: attributes are read-only properties
    - Validated: Constructor checks shape and identifier consistency
    - Integer and real storage both supported; columns are always handed
      out as float64 working copies

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from markerperm.core.biomatrix import BioMatrix
    >>>
    >>> data = np.array([[10, 20], [30, 40]])
    >>> matrix = BioMatrix(
    ...     data=data,
    ...     feature_ids=pd.Index(["GENE_A", "GENE_B"]),
    ...     sample_ids=pd.Index(["CELL_1", "CELL_2"]),
    ... )
    >>> matrix.get_column(matrix.sample_position("CELL_2"))
    array([20., 40.])
"""

from __future__ import annotations

from typing import Optional
import numpy as np
import pandas as pd

__all__ = ['BioMatrix']


class BioMatrix:
    """
    Expression matrix (features × samples) with identifiers.

    Attributes:
        data: Numerical expression matrix (features × samples)
        feature_ids: Row identifiers (e.g., gene symbols)
        sample_ids: Column identifiers (e.g., cell barcodes)
        sample_metadata: Optional per-sample annotations

    Shape Invariants:
        - data.shape[0] == len(feature_ids)
        - data.shape[1] == len(sample_ids)
        - sample_metadata.index equals sample_ids
    """

    def __init__(
        self,
        data: np.ndarray,
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        sample_metadata: Optional[pd.DataFrame] = None,
    ):
        """
        Initialize BioMatrix with validation.

        Args:
            data: Expression matrix (features × samples), integer or real
            feature_ids: Row identifiers
            sample_ids: Column identifiers
            sample_metadata: DataFrame indexed by sample_ids. An empty
                frame is created when omitted.

        Raises:
            ValueError: If shapes are inconsistent or indices don't match
            TypeError: If data types are incorrect
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(feature_ids, pd.Index):
            raise TypeError(f"feature_ids must be pd.Index, got {type(feature_ids)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")
        if not np.issubdtype(data.dtype, np.number):
            raise TypeError(f"data must be numeric, got dtype {data.dtype}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        n_features, n_samples = data.shape

        if len(feature_ids) != n_features:
            raise ValueError(
                f"feature_ids length ({len(feature_ids)}) must match data rows ({n_features})"
            )
        if len(sample_ids) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_ids)}) must match data columns ({n_samples})"
            )

        if sample_metadata is None:
            sample_metadata = pd.DataFrame(index=sample_ids)
        elif not isinstance(sample_metadata, pd.DataFrame):
            raise TypeError(f"sample_metadata must be pd.DataFrame, got {type(sample_metadata)}")
        elif not sample_metadata.index.equals(sample_ids):
            raise ValueError(
                "sample_metadata.index must match sample_ids exactly. "
                f"Got {len(sample_metadata.index)} metadata rows for {len(sample_ids)} samples."
            )

        self._data = data
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._sample_metadata = sample_metadata

    @property
    def data(self) -> np.ndarray:
        """Expression matrix (features × samples)."""
        return self._data

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers (genes, proteins, etc.)."""
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers (samples, cells, etc.)."""
        return self._sample_ids

    @property
    def sample_metadata(self) -> pd.DataFrame:
        """Annotations for samples."""
        return self._sample_metadata

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._data.shape

    @property
    def n_features(self) -> int:
        """Number of features (genes, proteins, etc.)."""
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        """Number of samples."""
        return self._data.shape[1]

    def get_column(self, index: int) -> np.ndarray:
        """Return a float64 copy of one sample's full feature vector."""
        return np.array(self._data[:, index], dtype=np.float64)

    def sample_position(self, sample_id) -> int:
        """
        Column position of a sample identifier.

        Raises:
            KeyError: If the identifier is unknown or not unique
        """
        loc = self._sample_ids.get_loc(sample_id)
        if not isinstance(loc, (int, np.integer)):
            raise KeyError(f"Sample identifier is not unique: {sample_id!r}")
        return int(loc)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"BioMatrix({self.n_features} features × {self.n_samples} samples)\n"
            f"  Features: {self.feature_ids[0]}...{self.feature_ids[-1]}\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}\n"
            f"  Metadata columns: {list(self.sample_metadata.columns)}"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return self.__repr__()
