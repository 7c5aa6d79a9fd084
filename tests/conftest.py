import numpy as np
import pytest

from forestspec import Options, OptionTag, ProblemSpec, ProblemType


@pytest.fixture
def tuned_options():
    """Options with every field moved off its default."""
    return (
        Options()
        .set_tree_count(100)
        .set_min_split_node_size(5)
        .features_per_node(7)
        .samples_per_tree(0.5)
        .set_sample_with_replacement(False)
        .use_stratification(OptionTag.EQUAL)
    )


@pytest.fixture
def populated_spec():
    """Three int32 classes, four columns, analysed shape fields filled in."""
    spec = ProblemSpec().set_column_count(4).set_classes(np.array([3, 5, 9], dtype=np.int32))
    spec.row_count = 150
    spec.actual_mtry = 2
    spec.actual_msample = 150
    spec.problem_type = ProblemType.CLASSIFICATION
    return spec


@pytest.fixture
def iris_like_csv(tmp_path):
    """Small semicolon separated CSV with string labels."""
    lines = [
        "sepal;petal;species",
        "5.1;1.4;setosa",
        "7.0;4.7;versicolor",
        "6.3;6.0;virginica",
        "4.9;1.4;setosa",
        "6.4;4.5;versicolor",
        "bad;1.0;setosa",
        "5.8;5.1;",
    ]
    path = tmp_path / "iris.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
