"""Tests for matrix/pair loaders, result writers and atomic JSON output."""

import json

import numpy as np
import pandas as pd
import pytest

from markerperm.classify import classify_samples
from markerperm.io import (
    load_csv_matrix,
    load_marker_pairs,
    write_null_distribution,
    write_scores,
)
from markerperm.io.loaders import DEFAULT_PAIR_LABEL
from markerperm.stats.cascade import correlate_null
from markerperm.utils.fileio import atomic_write_json


class TestLoadCsvMatrix:
    """Tests for load_csv_matrix()."""

    def test_basic_csv(self, tmp_path):
        path = tmp_path / "counts.csv"
        path.write_text("gene,s1,s2\nA,1,2\nB,3,4\nC,5,6\n")
        matrix = load_csv_matrix(path)
        assert matrix.shape == (3, 2)
        assert list(matrix.feature_ids) == ["A", "B", "C"]
        assert list(matrix.sample_ids) == ["s1", "s2"]
        np.testing.assert_array_equal(matrix.get_column(1), [2.0, 4.0, 6.0])

    def test_tsv(self, tmp_path):
        path = tmp_path / "counts.tsv"
        path.write_text("gene\ts1\nA\t1.5\nB\t2.5\n")
        matrix = load_csv_matrix(path)
        np.testing.assert_array_equal(matrix.get_column(0), [1.5, 2.5])

    def test_numeric_ids_become_strings(self, tmp_path):
        path = tmp_path / "counts.csv"
        path.write_text("id,1,2\n10,1,2\n20,3,4\n")
        matrix = load_csv_matrix(path)
        assert list(matrix.feature_ids) == ["10", "20"]
        assert list(matrix.sample_ids) == ["1", "2"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_csv_matrix(tmp_path / "nope.csv")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(ValueError, match="empty"):
            load_csv_matrix(path)

    def test_non_numeric(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("gene,s1,s2\nA,1,x\nB,3,4\n")
        with pytest.raises(ValueError, match="non-numeric"):
            load_csv_matrix(path)

    def test_infinite_values(self, tmp_path):
        path = tmp_path / "inf.csv"
        path.write_text("gene,s1\nA,inf\nB,1\n")
        with pytest.raises(ValueError, match="infinite"):
            load_csv_matrix(path)

    def test_nan_warns(self, tmp_path):
        path = tmp_path / "nan.csv"
        path.write_text("gene,s1,s2\nA,1,\nB,3,4\n")
        with pytest.warns(UserWarning, match="NaN"):
            matrix = load_csv_matrix(path)
        assert np.isnan(matrix.get_column(1)[0])

    def test_duplicate_features_warn(self, tmp_path):
        path = tmp_path / "dup.csv"
        path.write_text("gene,s1\nA,1\nA,2\nB,3\n")
        with pytest.warns(UserWarning, match="duplicate feature"):
            matrix = load_csv_matrix(path)
        assert list(matrix.feature_ids) == ["A", "B"]
        np.testing.assert_array_equal(matrix.get_column(0), [1.0, 3.0])


class TestLoadMarkerPairs:
    """Tests for load_marker_pairs()."""

    def test_grouped_by_label_in_file_order(self, tmp_path):
        path = tmp_path / "pairs.csv"
        path.write_text(
            "label,first,second\n"
            "G2M,CCNB1,CCND1\n"
            "G1,CCND1,CCNB1\n"
            "G2M,TOP2A,CDKN1A\n"
        )
        marker_sets = load_marker_pairs(path)
        assert list(marker_sets) == ["G2M", "G1"]
        assert marker_sets["G2M"].first == ["CCNB1", "TOP2A"]
        assert marker_sets["G2M"].second == ["CCND1", "CDKN1A"]
        assert len(marker_sets["G1"]) == 1

    def test_without_label_column(self, tmp_path):
        path = tmp_path / "pairs.csv"
        path.write_text("First,Second\nA,B\nC,D\n")
        marker_sets = load_marker_pairs(path)
        assert list(marker_sets) == [DEFAULT_PAIR_LABEL]
        assert marker_sets[DEFAULT_PAIR_LABEL].first == ["A", "C"]

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "pairs.csv"
        path.write_text("label,first\nG1,A\n")
        with pytest.raises(ValueError, match="second"):
            load_marker_pairs(path)

    def test_no_rows(self, tmp_path):
        path = tmp_path / "pairs.csv"
        path.write_text("label,first,second\n")
        with pytest.raises(ValueError, match="no pairs"):
            load_marker_pairs(path)


class TestWriters:
    """Tests for write_scores() and write_null_distribution()."""

    def test_write_scores(self, tmp_path, two_class_data):
        matrix, marker_sets = two_class_data
        result = classify_samples(
            matrix, marker_sets,
            iterations=20, min_iterations=5, min_pairs=10, rng=0,
        )
        paths = write_scores(result, tmp_path / "out", extra_summary={"seed": 0})

        assert set(paths) == {"scores", "normalized", "assignments", "summary"}
        for path in paths.values():
            assert path.exists()

        scores = pd.read_csv(paths["scores"], index_col=0)
        assert list(scores.columns) == ["up", "down"]
        assert scores.index.name == "sample"
        assert scores.shape == (20, 2)

        assignments = pd.read_csv(paths["assignments"], index_col=0)
        assert list(assignments.columns) == ["assignment"]

        summary = json.loads(paths["summary"].read_text())
        assert summary["seed"] == 0
        assert summary["pair_counts"] == {"up": 30, "down": 30}

    def test_write_scores_missing_as_empty(self, tmp_path, two_class_data):
        matrix, marker_sets = two_class_data
        result = classify_samples(
            matrix, marker_sets,
            iterations=20, min_iterations=5, min_pairs=40, rng=0,
        )
        paths = write_scores(result, tmp_path)
        scores = pd.read_csv(paths["scores"], index_col=0)
        assert scores.isna().all().all()
        summary = json.loads(paths["summary"].read_text())
        assert summary["labels"]["up"]["mean_score"] is None

    def test_write_scores_rejects_other_types(self, tmp_path):
        with pytest.raises(TypeError):
            write_scores({"scores": []}, tmp_path)

    def test_write_null_distribution(self, tmp_path):
        null = correlate_null(n_samples=10, iterations=30, rng=1)
        path = write_null_distribution(null, tmp_path / "nested" / "null.csv")
        table = pd.read_csv(path)
        assert list(table.columns) == ["rho"]
        np.testing.assert_allclose(table["rho"].to_numpy(), null.values)


class TestAtomicWriteJson:
    """Tests for atomic_write_json()."""

    def test_numpy_values_converted(self, tmp_path):
        path = tmp_path / "summary.json"
        atomic_write_json(path, {
            "count": np.int64(3),
            "score": np.float32(0.25),
            "missing": np.float32(np.nan),
            "values": np.array([1, 2]),
        })
        data = json.loads(path.read_text())
        assert data == {"count": 3, "score": 0.25, "missing": None, "values": [1, 2]}

    def test_no_tmp_file_left_on_success(self, tmp_path):
        atomic_write_json(tmp_path / "clean.json", {"a": 1})
        assert list(tmp_path.glob("*.tmp")) == []

    def test_no_file_on_serialization_error(self, tmp_path):
        path = tmp_path / "should_not_exist.json"
        with pytest.raises(TypeError):
            atomic_write_json(path, {"bad": object()})
        assert not path.exists()
        assert list(tmp_path.glob("*.tmp")) == []
