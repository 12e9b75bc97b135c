"""
Writers for classification and null-distribution results.

Output layout for ``write_scores(result, output_dir)``:
    - scores.csv: samples × labels permutation scores (empty cell = missing)
    - normalized.csv: scores divided by their per-sample sum
    - assignments.csv: sample, assignment
    - summary.json: run parameters and per-label counts

Examples:
    >>> from pathlib import Path
    >>> from markerperm.io.writers import write_scores
    >>>
    >>> paths = write_scores(result, Path("results/phases"))
    >>> print(paths["scores"])
    results/phases/scores.csv
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from markerperm.classify import PairClassificationResult
from markerperm.stats.cascade import NullDistribution
from markerperm.utils.fileio import atomic_write_json

logger = logging.getLogger(__name__)

__all__ = ['write_scores', 'write_null_distribution']


def write_scores(
    result: PairClassificationResult,
    output_dir: Path,
    extra_summary: Optional[dict] = None,
) -> dict[str, Path]:
    """
    Write a PairClassificationResult to output_dir.

    Args:
        result: Output of classify_samples
        output_dir: Directory to create/overwrite files in
        extra_summary: Additional entries merged into summary.json
            (e.g. input paths and seed)

    Returns:
        Mapping of output name to written path

    Raises:
        TypeError: If result is not a PairClassificationResult
        OSError: If the directory is not writable
    """
    if not isinstance(result, PairClassificationResult):
        raise TypeError(f"result must be PairClassificationResult, got {type(result)}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "scores": output_dir / "scores.csv",
        "normalized": output_dir / "normalized.csv",
        "assignments": output_dir / "assignments.csv",
        "summary": output_dir / "summary.json",
    }

    try:
        result.scores.to_csv(paths["scores"])
        result.normalized.to_csv(paths["normalized"])
        result.assignments.to_frame().to_csv(paths["assignments"])
    except Exception as e:
        raise OSError(f"Failed to write results to {output_dir}: {e}") from e

    summary = result.to_dict()
    if extra_summary:
        summary.update(extra_summary)
    atomic_write_json(paths["summary"], summary)

    for name, path in paths.items():
        logger.info(f"Wrote {name} to {path}")
    return paths


def write_null_distribution(null: NullDistribution, path: Path) -> Path:
    """
    Write sorted null correlations as a one-column CSV (``rho``).

    Raises:
        OSError: If path is not writable
    """
    path = Path(path)
    if path.parent != Path('.') and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    try:
        pd.DataFrame({"rho": null.values}).to_csv(path, index=False)
    except Exception as e:
        raise OSError(f"Failed to write null distribution {path}: {e}") from e

    logger.info(f"Wrote {null.iterations} null correlations to {path}")
    return path
