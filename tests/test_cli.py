import json

import numpy as np
import pytest

from forestspec.cli import build_parser, main, options_from_args, parse_list
from forestspec.options import Const, OptionTag
from forestspec.persist import read_config


def test_parse_list():
    assert parse_list(None) is None
    assert parse_list("  ") is None
    assert parse_list("a, b,,c") == ["a", "b", "c"]


class TestOptionsFromArgs:

    def _opts(self, *extra):
        args = build_parser().parse_args(["analyze", "--out", "x.rfc", *extra])
        return options_from_args(args)

    def test_defaults(self):
        opts = self._opts()
        assert opts.tree_count == 256
        assert opts.mtry_mode == OptionTag.SQRT
        assert opts.sample_fraction == 1.0
        assert opts.stratification == OptionTag.NONE

    def test_flags(self):
        opts = self._opts("--trees", "50", "--mtry", "3", "--samples", "40", "--no-replacement", "--stratify", "equal")
        assert opts.tree_count == 50
        assert opts.mtry == Const(3)
        assert opts.sample_size == Const(40)
        assert opts.sample_with_replacement is False
        assert opts.stratification == OptionTag.EQUAL

    def test_bad_mtry(self):
        with pytest.raises(SystemExit):
            self._opts("--mtry", "half")


class TestMain:

    def test_analyze_csv_then_show(self, tmp_path, iris_like_csv, capsys):
        out = tmp_path / "iris.rfc"
        rc = main([
            "analyze", "--input", str(iris_like_csv), "--label-col", "species",
            "--trees", "100", "--min-split", "5", "--samples", "0.5",
            "--class-weights", "balanced", "--out", str(out),
        ])
        assert rc == 0
        err = capsys.readouterr().err
        assert "Wrote:" in err
        assert "Class names: setosa, versicolor, virginica" in err
        assert "[warn] dropped 2 rows" in err

        opts, spec = read_config(out)
        assert opts.tree_count == 100
        assert spec.row_count == 5
        assert spec.column_count == 2
        assert spec.class_count == 3
        assert spec.actual_msample == 3
        assert spec.is_weighted

        assert main(["show", str(out)]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["options"]["minSplitNodeSize"] == 5
        assert shown["problem"]["nClasses"] == 3

    def test_regression_npy_to_npz(self, tmp_path):
        np.save(tmp_path / "X.npy", np.random.default_rng(1).normal(size=(20, 16)))
        np.save(tmp_path / "y.npy", np.linspace(0.0, 3.0, 20))
        out = tmp_path / "cfg.npz"
        rc = main([
            "analyze", "--task", "regression", "--mtry", "log",
            "--npy-x", str(tmp_path / "X.npy"), "--npy-y", str(tmp_path / "y.npy"), "--out", str(out),
        ])
        assert rc == 0
        opts, spec = read_config(out)
        assert opts.mtry_mode == OptionTag.LOG
        assert spec.actual_mtry == 5
        assert spec.class_count == 0

    def test_missing_input(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["analyze", "--out", str(tmp_path / "x.rfc")])

    def test_show_bad_file_reports_error(self, tmp_path):
        bad = tmp_path / "bad.rfc"
        bad.write_bytes(b"nope")
        with pytest.raises(SystemExit, match="error:"):
            main(["show", str(bad)])
