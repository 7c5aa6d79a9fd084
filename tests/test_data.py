import numpy as np
import pytest

from forestspec.data import (
    canon_label,
    detect_delimiter,
    find_column,
    load_csv,
    load_npy,
    load_npz,
    normalize_delimiter,
)


class TestHelpers:

    @pytest.mark.parametrize("raw,expected", [("1.0", "1"), (" 2 ", "2"), ("2.5", "2.5"), ("cat", "cat"), ("", "")])
    def test_canon_label(self, raw, expected):
        assert canon_label(raw) == expected

    @pytest.mark.parametrize("raw,expected", [("auto", "auto"), ("", "auto"), ("tab", "\t"), ("semicolon", ";"), ("|", "|")])
    def test_normalize_delimiter(self, raw, expected):
        assert normalize_delimiter(raw) == expected

    def test_detect_delimiter(self):
        assert detect_delimiter(["a;b;c", "1;2;3", "4;5;6"]) == ";"
        assert detect_delimiter(["a\tb", "1\t2"]) == "\t"
        assert detect_delimiter(["single"]) == ","

    def test_find_column(self):
        headers = ["Sepal", "petal", "species"]
        assert find_column("species", headers) == 2
        assert find_column("sepal", headers) == 0
        assert find_column("1", headers) == 1
        with pytest.raises(ValueError):
            find_column("missing", headers)


class TestLoadCsv:

    def test_string_labels(self, iris_like_csv):
        X, y, info = load_csv(str(iris_like_csv), label_col="species")
        assert X.dtype == np.float32
        assert X.shape == (5, 2)
        assert info["classes"] == ["setosa", "versicolor", "virginica"]
        assert y.tolist() == [0, 1, 2, 0, 1]
        assert info["delimiter"] == ";"
        assert info["dropped_bad_feature"] == 1
        assert info["dropped_bad_label"] == 1
        assert info["dropped_rows"] == 2

    def test_numeric_labels(self, tmp_path):
        path = tmp_path / "num.csv"
        path.write_text("a,b,y\n1,2,1.0\n3,4,0\n5,6,1\n", encoding="utf-8")
        X, y, info = load_csv(str(path), label_col="y")
        assert y.dtype == np.int64
        assert y.tolist() == [1, 0, 1]
        assert info["classes"] is None

    def test_float_targets(self, tmp_path):
        path = tmp_path / "reg.csv"
        path.write_text("a,y\n1,0.5\n2,1.25\n", encoding="utf-8")
        _, y, _ = load_csv(str(path), label_col=1)
        assert y.dtype == np.float64
        assert y.tolist() == [0.5, 1.25]

    def test_headerless_and_limit(self, tmp_path):
        path = tmp_path / "nh.csv"
        path.write_text("1,2,0\n3,4,1\n5,6,0\n", encoding="utf-8")
        X, y, info = load_csv(str(path), label_col=2, has_header=False, limit_rows=2)
        assert X.tolist() == [[1.0, 2.0], [3.0, 4.0]]
        assert info["headers"] == ["c0", "c1", "c2"]

    def test_bom_header(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_text("\ufeffx,label\n1,a\n2,b\n", encoding="utf-8")
        _, _, info = load_csv(str(path), label_col="label")
        assert info["headers"][0] == "x"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError):
            load_csv(str(path), label_col=0)

    def test_no_valid_rows(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("a,y\nx,1\n", encoding="utf-8")
        with pytest.raises(ValueError, match="No valid rows"):
            load_csv(str(path), label_col="y")


class TestNumpyFiles:

    def test_npz(self, tmp_path):
        path = tmp_path / "d.npz"
        np.savez(path, X=np.ones((4, 3), dtype=np.float64), y=np.arange(4).reshape(4, 1))
        X, y, info = load_npz(str(path))
        assert X.dtype == np.float32
        assert y.shape == (4,)
        assert info["n_features"] == 3

    def test_npz_missing_key(self, tmp_path):
        path = tmp_path / "d.npz"
        np.savez(path, X=np.ones((4, 3)))
        with pytest.raises(ValueError):
            load_npz(str(path))

    def test_npy_mmap(self, tmp_path):
        np.save(tmp_path / "X.npy", np.zeros((5, 2), dtype=np.float32))
        np.save(tmp_path / "y.npy", np.arange(5))
        X, y, _ = load_npy(str(tmp_path / "X.npy"), str(tmp_path / "y.npy"), mmap=True)
        assert X.shape == (5, 2)
        assert y.tolist() == [0, 1, 2, 3, 4]

    def test_npy_row_mismatch(self, tmp_path):
        np.save(tmp_path / "X.npy", np.zeros((5, 2)))
        np.save(tmp_path / "y.npy", np.arange(4))
        with pytest.raises(ValueError):
            load_npy(str(tmp_path / "X.npy"), str(tmp_path / "y.npy"))
