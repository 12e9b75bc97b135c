"""Tests for the markerperm command line and its config file support."""

import json
from argparse import Namespace
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import yaml

from markerperm.cli import main
from markerperm.cli.config import (
    ScoreConfig,
    load_config,
    merge_config_with_args,
    validate_config,
)


@pytest.fixture
def score_inputs(tmp_path, two_class_data):
    """Counts CSV and pair table written from the two-class matrix."""
    matrix, marker_sets = two_class_data
    counts = tmp_path / "counts.csv"
    pd.DataFrame(
        matrix.data, index=matrix.feature_ids, columns=matrix.sample_ids
    ).to_csv(counts)

    rows = []
    for label, pairs in marker_sets.items():
        rows.extend({"label": label, "first": a, "second": b} for a, b in zip(pairs.first, pairs.second))
    pairs_path = tmp_path / "pairs.csv"
    pd.DataFrame(rows).to_csv(pairs_path, index=False)
    return counts, pairs_path, matrix


class TestLoadConfig:
    """Tests for load_config()."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "score.yaml"
        path.write_text(yaml.safe_dump({"input": "x.csv", "permutation": {"seed": 3}}))
        assert load_config(path) == {"input": "x.csv", "permutation": {"seed": 3}}

    def test_json(self, tmp_path):
        path = tmp_path / "score.json"
        path.write_text(json.dumps({"assignment": {"threshold": 0.6}}))
        assert load_config(path)["assignment"]["threshold"] == 0.6

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path) == {}

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "score.toml"
        path.write_text("a = 1")
        with pytest.raises(ValueError, match="Unsupported"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_valid(self):
        validate_config({
            "input": "a.csv",
            "permutation": {"iterations": 10, "seed": 0},
            "assignment": {"threshold": 1},
        })

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown"):
            validate_config({"bootstrap": {}})

    @pytest.mark.parametrize("value", [0, -5, 2.5, True])
    def test_bad_iterations(self, value):
        with pytest.raises(ValueError, match="permutation.iterations"):
            validate_config({"permutation": {"iterations": value}})

    def test_negative_seed(self):
        with pytest.raises(ValueError, match="seed"):
            validate_config({"permutation": {"seed": -1}})

    def test_threshold_out_of_range(self):
        with pytest.raises(ValueError, match="threshold"):
            validate_config({"assignment": {"threshold": 1.5}})


class TestMergeConfig:
    """Explicit CLI arguments win over config values, config over defaults."""

    def _defaults(self):
        defaults = ScoreConfig()
        return Namespace(
            input=None, pairs=None, output=None, config=None,
            iterations=defaults.permutation.iterations,
            min_iterations=defaults.permutation.min_iterations,
            min_pairs=defaults.permutation.min_pairs,
            seed=defaults.permutation.seed,
            assign_threshold=defaults.assignment.threshold,
            fallback_label=defaults.assignment.fallback_label,
        )

    def test_config_fills_defaults(self):
        config = {
            "input": "counts.csv",
            "permutation": {"iterations": 50, "seed": 9},
            "assignment": {"threshold": 0.8, "fallback_label": "S"},
        }
        merged = merge_config_with_args(config, self._defaults(), [])
        assert merged.input == Path("counts.csv")
        assert merged.iterations == 50
        assert merged.seed == 9
        assert merged.assign_threshold == 0.8
        assert merged.fallback_label == "S"

    def test_explicit_cli_wins(self):
        args = self._defaults()
        args.iterations = 7
        args.input = Path("cli.csv")
        config = {"input": "config.csv", "permutation": {"iterations": 50}}
        merged = merge_config_with_args(config, args, ["-n", "7", "--input=cli.csv"])
        assert merged.iterations == 7
        assert merged.input == Path("cli.csv")

    def test_original_namespace_untouched(self):
        args = self._defaults()
        merge_config_with_args({"permutation": {"iterations": 50}}, args, [])
        assert args.iterations == 1000


class TestScoreCommand:
    """End-to-end runs of ``markerperm score``."""

    def test_score_writes_results(self, tmp_path, score_inputs):
        counts, pairs, matrix = score_inputs
        out = tmp_path / "results"
        code = main([
            "score", "--input", str(counts), "--pairs", str(pairs), "--output", str(out),
            "-n", "100", "--min-iterations", "20", "--min-pairs", "10", "--seed", "42",
        ])
        assert code == 0

        assignments = pd.read_csv(out / "assignments.csv", index_col=0)["assignment"]
        truth = matrix.sample_metadata["truth"]
        assert list(assignments) == list(truth)

        summary = json.loads((out / "summary.json").read_text())
        assert summary["seed"] == 42
        assert summary["iterations"] == 100

    def test_score_from_config_with_override(self, tmp_path, score_inputs):
        counts, pairs, _ = score_inputs
        out = tmp_path / "results"
        config = tmp_path / "score.yaml"
        config.write_text(yaml.safe_dump({
            "input": str(counts),
            "pairs": str(pairs),
            "output": str(out),
            "permutation": {"iterations": 30, "min_iterations": 10, "min_pairs": 10, "seed": 1},
        }))
        code = main(["score", "--config", str(config), "--seed", "5"])
        assert code == 0

        summary = json.loads((out / "summary.json").read_text())
        assert summary["seed"] == 5
        assert summary["iterations"] == 30

    def test_seed_reproducible(self, tmp_path, score_inputs):
        counts, pairs, _ = score_inputs
        common = ["--input", str(counts), "--pairs", str(pairs),
                  "-n", "30", "--min-iterations", "10", "--min-pairs", "10", "--seed", "3"]
        assert main(["score", *common, "--output", str(tmp_path / "a")]) == 0
        assert main(["score", *common, "--output", str(tmp_path / "b")]) == 0
        first = pd.read_csv(tmp_path / "a" / "scores.csv", index_col=0)
        second = pd.read_csv(tmp_path / "b" / "scores.csv", index_col=0)
        pd.testing.assert_frame_equal(first, second)

    def test_missing_required(self, tmp_path, score_inputs):
        counts, _, _ = score_inputs
        assert main(["score", "--input", str(counts), "--output", str(tmp_path / "o")]) == 1

    def test_missing_input_file(self, tmp_path, score_inputs):
        _, pairs, _ = score_inputs
        code = main([
            "score", "--input", str(tmp_path / "nope.csv"), "--pairs", str(pairs),
            "--output", str(tmp_path / "o"),
        ])
        assert code == 1

    def test_invalid_iterations_rejected_by_parser(self, score_inputs):
        counts, pairs, _ = score_inputs
        with pytest.raises(SystemExit):
            main(["score", "--input", str(counts), "--pairs", str(pairs), "-o", "x", "-n", "0"])


class TestNullCommand:
    """End-to-end runs of ``markerperm null``."""

    def test_n_samples(self, tmp_path):
        out = tmp_path / "null.csv"
        assert main(["null", "--n-samples", "15", "-n", "200", "--seed", "4", "-o", str(out)]) == 0
        table = pd.read_csv(out)
        assert len(table) == 200
        assert np.all(np.diff(table["rho"].to_numpy()) >= 0)

    def test_block_file(self, tmp_path):
        block = tmp_path / "meta.csv"
        pd.DataFrame({"batch": ["a", "a", "a", "b", "b", "b", "b"]}).to_csv(block, index=False)
        out = tmp_path / "null.csv"
        code = main([
            "null", "--block", str(block), "--block-column", "batch",
            "-n", "50", "--seed", "2", "-o", str(out),
        ])
        assert code == 0
        assert len(pd.read_csv(out)) == 50

    def test_block_column_missing(self, tmp_path):
        block = tmp_path / "meta.csv"
        pd.DataFrame({"batch": ["a", "b"]}).to_csv(block, index=False)
        code = main(["null", "--block", str(block), "-o", str(tmp_path / "null.csv")])
        assert code == 1

    def test_too_few_samples(self, tmp_path):
        assert main(["null", "--n-samples", "1", "-o", str(tmp_path / "null.csv")]) == 1

    def test_requires_size(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["null", "-o", str(tmp_path / "null.csv")])


class TestMain:
    """Top-level dispatcher."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "markerperm" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "0.1.0" in capsys.readouterr().out
