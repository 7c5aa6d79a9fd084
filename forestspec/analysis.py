"""
analysis.py — Fill in a ProblemSpec from training data before learning.

The learner calls analyze_problem() once; afterwards the spec is read-only.
Options and spec are defaultable arguments: pass DEFAULT (or nothing) to get
library defaults.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from .defaults import DEFAULT, resolve_factory
from .errors import InvalidArgument
from .options import Options
from .problem import LabelType, ProblemSpec, ProblemType

DEFAULT_WEIGHT_CAP = 20.0


def class_counts(encoded: np.ndarray, class_count: int) -> np.ndarray:
    """Rows per class for int class indices; indices outside [0, class_count) are ignored."""
    y = np.asarray(encoded, dtype=np.int64).reshape(-1)
    y = y[(y >= 0) & (y < int(class_count))]
    return np.bincount(y, minlength=int(class_count)).astype(np.int64)


def balanced_class_weights(counts: Sequence[int], cap: float = DEFAULT_WEIGHT_CAP, normalize: bool = False) -> np.ndarray:
    """N / (K * count_k), capped. Empty classes get weight 1.

    With normalize=True the weights are rescaled so the row-weighted mean is 1.
    """
    c = np.asarray(counts, dtype=np.int64).reshape(-1)
    n_classes = int(c.shape[0])
    N = int(np.sum(c))
    w = np.ones(n_classes, dtype=np.float64)
    for k in range(n_classes):
        if c[k] > 0:
            w[k] = N / (n_classes * int(c[k]))
    cap = cap if cap > 0 else DEFAULT_WEIGHT_CAP
    w = np.minimum(w, cap)
    if normalize and N > 0:
        avg = float(np.sum(w * c) / N)
        if avg > 0:
            w = w / avg
    return w


def encode_labels(labels: np.ndarray, spec: ProblemSpec) -> np.ndarray:
    """Map each label to its index in the spec's class catalog (int32)."""
    y = np.asarray(labels).reshape(-1)
    catalog = spec.class_labels
    if catalog.shape[0] == 0:
        raise InvalidArgument("encode_labels(): the problem spec has no class catalog")
    y_conv = spec_label_view(y, spec)
    order = np.argsort(catalog, kind="stable")
    sorted_cat = catalog[order]
    pos = np.searchsorted(sorted_cat, y_conv)
    pos_c = np.clip(pos, 0, sorted_cat.shape[0] - 1)
    found = sorted_cat[pos_c] == y_conv
    if not np.all(found):
        bad = np.unique(y[~found])[:5].tolist()
        raise InvalidArgument(f"encode_labels(): labels not in the class catalog: {bad}")
    return order[pos_c].astype(np.int32)


def spec_label_view(labels: np.ndarray, spec: ProblemSpec) -> np.ndarray:
    """Labels cast to the catalog dtype for comparison; raises if the cast loses values."""
    y = np.asarray(labels)
    dt = spec.class_labels.dtype
    if y.dtype == dt:
        return y
    with np.errstate(invalid="ignore", over="ignore"):
        y_conv = y.astype(dt)
        lossless = np.array_equal(y_conv.astype(np.float64), y.astype(np.float64))
    if not lossless:
        raise InvalidArgument(f"Labels of dtype {y.dtype} do not fit the class catalog dtype {dt}")
    return y_conv


def analyze_problem(
    features: Any,
    labels: Any,
    options: Any = DEFAULT,
    spec: Any = DEFAULT,
    *,
    problem_type: ProblemType = ProblemType.CLASSIFICATION,
    class_weights: Optional[Union[str, Sequence[float]]] = None,
) -> Tuple[ProblemSpec, np.ndarray]:
    """Populate a ProblemSpec for (features, labels).

    Returns the spec and the encoded labels: int32 class indices for
    classification, float64 targets for regression. A supplied spec is filled
    in place; if it already has a class catalog, labels are encoded against it.
    """
    opts: Options = resolve_factory(options, Options)
    ps: ProblemSpec = resolve_factory(spec, ProblemSpec)

    X = np.asarray(features)
    y = np.asarray(labels)
    if X.ndim != 2:
        raise InvalidArgument(f"analyze_problem(): features must be 2-D, got shape {X.shape}")
    if y.ndim == 2 and y.shape[1] == 1:
        y = y.reshape(-1)
    if y.ndim != 1:
        raise InvalidArgument(f"analyze_problem(): labels must be 1-D, got shape {y.shape}")
    n_rows, n_cols = int(X.shape[0]), int(X.shape[1])
    if y.shape[0] != n_rows:
        raise InvalidArgument(f"analyze_problem(): {y.shape[0]} labels for {n_rows} rows")

    problem_type = ProblemType(problem_type)
    if problem_type == ProblemType.UNRESOLVED:
        raise InvalidArgument("analyze_problem(): problem_type must be REGRESSION or CLASSIFICATION")
    if isinstance(class_weights, str):
        if class_weights != "balanced":
            raise InvalidArgument(f"analyze_problem(): unknown class_weights mode '{class_weights}'")
        if problem_type != ProblemType.CLASSIFICATION:
            raise InvalidArgument("analyze_problem(): balanced class weights need a classification problem")

    # Everything that can fail runs before the caller's spec is touched.
    catalog: Optional[ProblemSpec] = None
    if problem_type == ProblemType.CLASSIFICATION:
        LabelType.from_dtype(y.dtype)
        if ps.class_count == 0 or ps.class_labels.shape[0] != ps.class_count:
            catalog = ProblemSpec().set_classes(np.unique(y))
        encoded: np.ndarray = encode_labels(y, catalog if catalog is not None else ps)
    else:
        if y.dtype.kind not in "uif":
            raise InvalidArgument(f"analyze_problem(): regression targets must be numeric, got {y.dtype}")
        encoded = y.astype(np.float64)
    weights: Optional[np.ndarray] = None
    if class_weights is not None and not isinstance(class_weights, str):
        weights = np.asarray(class_weights, dtype=np.float64).reshape(-1)
    mtry = opts.resolve_mtry(n_cols)
    msample = opts.resolve_sample_size(n_rows)

    if catalog is not None:
        ps.set_classes(catalog.class_labels)
    elif problem_type == ProblemType.REGRESSION:
        ps.clear_classes()
    ps.problem_type = problem_type
    ps.column_count = n_cols
    ps.row_count = n_rows
    ps.actual_mtry = mtry
    ps.actual_msample = msample

    if isinstance(class_weights, str):
        ps.set_class_weights(balanced_class_weights(class_counts(encoded, ps.class_count)))
    elif weights is not None:
        ps.set_class_weights(weights)

    ps.used = True
    return ps, encoded
