"""
problem.py — Label space and shape of one training problem.

A ProblemSpec is optional for the learner: everything in it can be computed
from the training data (see analysis.analyze_problem). It has to be built by
hand mainly to supply class weights or a fixed class catalog:

    spec = ProblemSpec().set_column_count(4).set_classes([0, 1, 2]).set_class_weights([1.0, 2.0, 1.0])

Class labels are kept once: in the dtype they were given in, or as the
recovered float64 values after deserialize / from_map (class_label_type still
names the original type). Any of the ten supported numeric types is produced
on read by numpy casting, so consumers do not need to know the label type.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from .errors import IndexOutOfRange, InvalidArgument, PreconditionViolation


class ProblemType(IntEnum):
    REGRESSION = 0
    CLASSIFICATION = 1
    UNRESOLVED = 2  # filled in during problem analysis


class LabelType(IntEnum):
    """Original label element type. The integer values are the serialized ordinals."""

    UINT8 = 0
    UINT16 = 1
    UINT32 = 2
    UINT64 = 3
    INT8 = 4
    INT16 = 5
    INT32 = 6
    INT64 = 7
    FLOAT64 = 8
    FLOAT32 = 9
    UNKNOWN = 10

    @property
    def dtype(self) -> np.dtype:
        # UNKNOWN labels are held as float64.
        return np.dtype(_LABEL_DTYPES.get(self, np.float64))

    @classmethod
    def from_dtype(cls, dtype: Any) -> "LabelType":
        try:
            dt = np.dtype(dtype)
        except TypeError:
            raise InvalidArgument(f"Unsupported class label type: {dtype!r}") from None
        lt = _BY_KIND_SIZE.get((dt.kind, dt.itemsize))
        if lt is None:
            raise InvalidArgument(f"Unsupported class label dtype: {dt}")
        return lt


_LABEL_DTYPES = {
    LabelType.UINT8: np.uint8,
    LabelType.UINT16: np.uint16,
    LabelType.UINT32: np.uint32,
    LabelType.UINT64: np.uint64,
    LabelType.INT8: np.int8,
    LabelType.INT16: np.int16,
    LabelType.INT32: np.int32,
    LabelType.INT64: np.int64,
    LabelType.FLOAT64: np.float64,
    LabelType.FLOAT32: np.float32,
}
_BY_KIND_SIZE = {(np.dtype(dt).kind, np.dtype(dt).itemsize): lt for lt, dt in _LABEL_DTYPES.items()}


def _target_dtype(dtype: Any) -> np.dtype:
    if isinstance(dtype, LabelType):
        if dtype == LabelType.UNKNOWN:
            raise InvalidArgument("Cannot convert class labels to UNKNOWN")
        return dtype.dtype
    if dtype is int:
        return np.dtype(np.int64)
    if dtype is float:
        return np.dtype(np.float64)
    return LabelType.from_dtype(dtype).dtype


def convert_labels(values: np.ndarray, dtype: Any) -> np.ndarray:
    """Cast labels to `dtype` with numpy's unchecked casting (wrap / truncate)."""
    target = _target_dtype(dtype)
    with np.errstate(invalid="ignore", over="ignore"):
        return np.asarray(values).astype(target)


# Scalar slots of the flat encoding, in order. The same names key the map encoding.
SCALAR_FIELDS = (
    "column_count",
    "class_count",
    "row_count",
    "actual_mtry",
    "actual_msample",
    "problem_type",
    "class_type",
    "is_weighted",
)
N_SCALARS = len(SCALAR_FIELDS)


class ProblemSpec:
    column_count: int
    class_count: int
    row_count: int
    actual_mtry: int
    actual_msample: int
    problem_type: ProblemType
    class_label_type: LabelType
    class_labels: np.ndarray
    class_weights: np.ndarray
    is_weighted: bool
    used: bool

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        """Reset to the unpopulated state."""
        self.column_count = 0
        self.class_count = 0
        self.row_count = 0
        self.actual_mtry = 0
        self.actual_msample = 0
        self.problem_type = ProblemType.UNRESOLVED
        self.class_label_type = LabelType.UNKNOWN
        self.class_labels = np.empty(0, dtype=np.float64)
        self.class_weights = np.empty(0, dtype=np.float64)
        self.is_weighted = False
        self.used = False

    # -------------------------
    # Builders
    # -------------------------

    def set_column_count(self, n: int) -> "ProblemSpec":
        self.column_count = int(n)
        self.used = True
        return self

    def set_classes(self, labels: Iterable[Any]) -> "ProblemSpec":
        """Supply the class labels; the analysis step then keeps this catalog."""
        arr = labels if isinstance(labels, np.ndarray) else np.asarray(list(labels))
        arr = arr.reshape(-1)
        label_type = LabelType.from_dtype(arr.dtype)
        self.class_labels = arr.astype(label_type.dtype, copy=True)
        self.class_label_type = label_type
        self.class_count = int(arr.shape[0])
        self.used = True
        return self

    def clear_classes(self) -> "ProblemSpec":
        """Drop the catalog and weights (regression problems have neither)."""
        self.class_labels = np.empty(0, dtype=np.float64)
        self.class_label_type = LabelType.UNKNOWN
        self.class_count = 0
        self.class_weights = np.empty(0, dtype=np.float64)
        self.is_weighted = False
        return self

    def set_class_weights(self, weights: Iterable[float]) -> "ProblemSpec":
        """One weight per class, in class order. Length is checked on serialize."""
        w = weights if isinstance(weights, np.ndarray) else np.asarray(list(weights), dtype=np.float64)
        self.class_weights = w.astype(np.float64, copy=True).reshape(-1)
        self.is_weighted = True
        self.used = True
        return self

    # -------------------------
    # Label access
    # -------------------------

    def to_class_label(self, index: int, dtype: Any = np.float64) -> Any:
        i = int(index)
        if not (0 <= i < self.class_count) or i >= self.class_labels.shape[0]:
            raise IndexOutOfRange(f"class index {i} out of range [0, {self.class_count})")
        return convert_labels(self.class_labels[i:i + 1], dtype)[0]

    def class_labels_as(self, dtype: Any) -> np.ndarray:
        """Whole catalog in `dtype`. Integer views of decoded catalogs are exact within +-2**53."""
        return convert_labels(self.class_labels, dtype)

    # -------------------------
    # Flat encoding
    # -------------------------

    def serialized_size(self) -> int:
        return N_SCALARS + self.class_count * (2 if self.is_weighted else 1)

    def _check_consistent(self, where: str) -> None:
        if self.class_labels.shape[0] != self.class_count:
            raise PreconditionViolation(
                f"ProblemSpec.{where}(): {self.class_labels.shape[0]} class labels for class_count={self.class_count}"
            )
        if self.is_weighted and self.class_weights.shape[0] != self.class_count:
            raise PreconditionViolation(
                f"ProblemSpec.{where}(): {self.class_weights.shape[0]} class weights for class_count={self.class_count}"
            )

    def _scalars(self) -> Tuple[float, ...]:
        return (
            float(self.column_count),
            float(self.class_count),
            float(self.row_count),
            float(self.actual_mtry),
            float(self.actual_msample),
            float(int(self.problem_type)),
            float(int(self.class_label_type)),
            1.0 if self.is_weighted else 0.0,
        )

    def serialize(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        size = self.serialized_size()
        if out is None:
            out = np.empty(size, dtype=np.float64)
        elif len(out) != size:
            raise PreconditionViolation(f"ProblemSpec.serialize(): wrong number of parameters ({len(out)} != {size})")
        self._check_consistent("serialize")

        k = self.class_count
        out[:N_SCALARS] = self._scalars()
        off = N_SCALARS
        if self.is_weighted:
            out[off:off + k] = self.class_weights
            off += k
        out[off:off + k] = self.class_labels_as(LabelType.FLOAT64)
        return out

    def deserialize(self, values: Sequence[float]) -> "ProblemSpec":
        vals = np.asarray(values, dtype=np.float64).reshape(-1)
        n = int(vals.shape[0])
        if n < N_SCALARS:
            raise PreconditionViolation(f"ProblemSpec.deserialize(): need at least {N_SCALARS} values, got {n}")
        if not np.all(np.isfinite(vals[:N_SCALARS])):
            raise PreconditionViolation("ProblemSpec.deserialize(): non-finite scalar field")
        scalars = dict(zip(SCALAR_FIELDS, vals[:N_SCALARS].tolist()))
        k = int(scalars["class_count"])
        weighted = bool(scalars["is_weighted"])
        expected = N_SCALARS + k * (2 if weighted else 1)
        if k < 0 or n != expected:
            raise PreconditionViolation(
                f"ProblemSpec.deserialize(): {n} values do not match class_count={k} (expected {expected})"
            )
        off = N_SCALARS
        weights = vals[off:off + k].copy() if weighted else np.empty(0, dtype=np.float64)
        if weighted:
            off += k
        self._load(scalars, weights, vals[off:off + k])
        return self

    @classmethod
    def from_flat(cls, values: Sequence[float]) -> "ProblemSpec":
        return cls().deserialize(values)

    def _load(self, scalars: Mapping[str, float], weights: np.ndarray, labels: Optional[np.ndarray]) -> None:
        """Assign decoded fields; enum ordinals are validated before anything is written."""
        try:
            problem_type = ProblemType(int(scalars["problem_type"]))
            label_type = LabelType(int(scalars["class_type"]))
        except ValueError as e:
            raise PreconditionViolation(f"ProblemSpec: invalid enum ordinal ({e})") from None

        self.column_count = int(scalars["column_count"])
        self.class_count = int(scalars["class_count"])
        self.row_count = int(scalars["row_count"])
        self.actual_mtry = int(scalars["actual_mtry"])
        self.actual_msample = int(scalars["actual_msample"])
        self.problem_type = problem_type
        self.class_label_type = label_type
        self.is_weighted = bool(scalars["is_weighted"])
        self.class_weights = np.asarray(weights, dtype=np.float64).copy()
        # The recovered doubles stay authoritative; typed views are cast on read.
        if labels is None:
            self.class_labels = np.empty(0, dtype=np.float64)
        else:
            self.class_labels = np.asarray(labels, dtype=np.float64).copy()
        self.used = True

    # -------------------------
    # Named encoding
    # -------------------------

    def to_map(self) -> Dict[str, np.ndarray]:
        self._check_consistent("to_map")
        out = {name: np.array([v], dtype=np.float64) for name, v in zip(SCALAR_FIELDS, self._scalars())}
        out["class_weights"] = self.class_weights.astype(np.float64, copy=True)
        out["classes"] = self.class_labels_as(LabelType.FLOAT64)
        return out

    def from_map(self, mapping: Mapping[str, Sequence[float]]) -> "ProblemSpec":
        """Inverse of to_map(). Maps without "classes" leave the catalog empty."""
        missing = [k for k in SCALAR_FIELDS if k not in mapping]
        if missing:
            raise PreconditionViolation(f"ProblemSpec.from_map(): missing keys {missing}")
        scalars: Dict[str, float] = {}
        for k in SCALAR_FIELDS:
            arr = np.asarray(mapping[k], dtype=np.float64).reshape(-1)
            if arr.shape[0] < 1 or not np.isfinite(arr[0]):
                raise PreconditionViolation(f"ProblemSpec.from_map(): missing or non-finite value for '{k}'")
            scalars[k] = float(arr[0])

        k = int(scalars["class_count"])
        weights = np.asarray(mapping.get("class_weights", ()), dtype=np.float64).reshape(-1)
        if bool(scalars["is_weighted"]) and weights.shape[0] != k:
            raise PreconditionViolation(f"ProblemSpec.from_map(): {weights.shape[0]} class weights for class_count={k}")

        labels = None
        if "classes" in mapping:
            labels = np.asarray(mapping["classes"], dtype=np.float64).reshape(-1)
            if labels.shape[0] != k:
                raise PreconditionViolation(f"ProblemSpec.from_map(): {labels.shape[0]} classes for class_count={k}")
        self._load(scalars, weights, labels)
        return self

    # -------------------------
    # Comparison
    # -------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProblemSpec):
            return NotImplemented
        if self._scalars() != other._scalars():
            return False
        if self.class_labels.dtype == other.class_labels.dtype:
            same_labels = np.array_equal(self.class_labels, other.class_labels)
        else:
            # typed catalog against a decoded one: compare what the flat encoding stores
            same_labels = np.array_equal(
                self.class_labels_as(LabelType.FLOAT64), other.class_labels_as(LabelType.FLOAT64)
            )
        return same_labels and np.array_equal(self.class_weights, other.class_weights)

    def __ne__(self, other: object) -> bool:
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ProblemSpec(columns={self.column_count}, rows={self.row_count}, classes={self.class_count}, "
            f"type={self.problem_type.name}, labels={self.class_label_type.name}, weighted={self.is_weighted})"
        )
