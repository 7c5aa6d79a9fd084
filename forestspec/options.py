"""
options.py — Hyperparameters of a random forest run that do not depend on the data.

    opts = (
        Options()
        .set_tree_count(100)
        .set_min_split_node_size(5)
        .features_per_node(OptionTag.SQRT)
        .samples_per_tree(0.5)
    )

Sample size and mtry are each stored as one tagged rule, so the "mode" of a
group is always the tag of the stored rule. Problem dependent values (class
weights, label catalog) live in ProblemSpec.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Sequence, Union

import numpy as np

from .errors import InvalidArgument, PreconditionViolation


class OptionTag(IntEnum):
    """Strategy tags. The integer values are the serialized ordinals."""

    EQUAL = 0
    PROPORTIONAL = 1
    EXTERNAL = 2
    NONE = 3
    FUNCTION = 4
    LOG = 5
    SQRT = 6
    CONST = 7
    ALL = 8


STRATIFICATION_TAGS = (OptionTag.EQUAL, OptionTag.PROPORTIONAL, OptionTag.EXTERNAL, OptionTag.NONE)
BUILTIN_MTRY_TAGS = (OptionTag.LOG, OptionTag.SQRT, OptionTag.ALL)

SizeFn = Callable[[int], int]


# -------------------------
# Rules (sample size / mtry)
# -------------------------

@dataclass(frozen=True)
class Proportional:
    fraction: float = 1.0
    tag: ClassVar[OptionTag] = OptionTag.PROPORTIONAL

    def resolve(self, n: int) -> int:
        return int(math.ceil(float(self.fraction) * int(n)))


@dataclass(frozen=True)
class Const:
    count: int = 0
    tag: ClassVar[OptionTag] = OptionTag.CONST

    def resolve(self, n: int) -> int:
        return int(self.count)


@dataclass(frozen=True)
class Function:
    """User callable mapping a row or column count to a size.

    The callable does not survive serialization; a deserialized Function rule
    has fn=None and cannot be resolved.
    """

    fn: Optional[SizeFn] = field(default=None, compare=False)
    tag: ClassVar[OptionTag] = OptionTag.FUNCTION

    def resolve(self, n: int) -> int:
        if self.fn is None:
            raise PreconditionViolation("Function rule has no callable (it is not restored by deserialization)")
        return int(self.fn(int(n)))


@dataclass(frozen=True)
class Builtin:
    """mtry from the column count: LOG, SQRT or ALL."""

    rule: OptionTag = OptionTag.SQRT

    def __post_init__(self) -> None:
        if self.rule not in BUILTIN_MTRY_TAGS:
            raise InvalidArgument(f"features_per_node(): tag must be LOG, SQRT or ALL, got {self.rule!r}")

    @property
    def tag(self) -> OptionTag:
        return OptionTag(self.rule)

    def resolve(self, n: int) -> int:
        n = int(n)
        if n <= 0:
            return 0
        if self.rule == OptionTag.SQRT:
            return int(math.floor(math.sqrt(n) + 0.5))
        if self.rule == OptionTag.LOG:
            return int(1 + math.log2(n))
        return n


SampleSizeRule = Union[Proportional, Const, Function]
MtryRule = Union[Builtin, Const, Function]


def _as_tag(value: Any, what: str) -> OptionTag:
    if isinstance(value, bool):
        raise InvalidArgument(f"{what}: expected an OptionTag, got {value!r}")
    try:
        return OptionTag(value)
    except (ValueError, TypeError):
        raise InvalidArgument(f"{what}: expected an OptionTag, got {value!r}") from None


# -------------------------
# Options
# -------------------------

# Flat encoding slot names, in order.
OPTION_FIELDS = (
    "training_set_proportion",
    "training_set_size",
    "has_training_set_func",
    "training_set_calc_switch",
    "sample_with_replacement",
    "stratification_method",
    "mtry_switch",
    "mtry",
    "has_mtry_func",
    "tree_count",
    "min_split_node_size",
)


@dataclass(eq=True)
class Options:
    sample_size: SampleSizeRule = field(default_factory=Proportional)
    sample_with_replacement: bool = True
    stratification: OptionTag = OptionTag.NONE
    mtry: MtryRule = field(default_factory=Builtin)
    tree_count: int = 256
    min_split_node_size: int = 1

    SERIALIZED_SIZE: ClassVar[int] = len(OPTION_FIELDS)

    # --- views ---

    @property
    def sample_size_mode(self) -> OptionTag:
        return self.sample_size.tag

    @property
    def mtry_mode(self) -> OptionTag:
        return self.mtry.tag

    @property
    def sample_fraction(self) -> float:
        s = self.sample_size
        return float(s.fraction) if isinstance(s, Proportional) else 1.0

    @property
    def sample_count(self) -> int:
        s = self.sample_size
        return int(s.count) if isinstance(s, Const) else 0

    @property
    def sample_fn(self) -> Optional[SizeFn]:
        s = self.sample_size
        return s.fn if isinstance(s, Function) else None

    @property
    def mtry_count(self) -> int:
        m = self.mtry
        return int(m.count) if isinstance(m, Const) else 0

    @property
    def mtry_fn(self) -> Optional[SizeFn]:
        m = self.mtry
        return m.fn if isinstance(m, Function) else None

    # --- fluent setters ---

    def use_stratification(self, tag: Any) -> "Options":
        """EQUAL: same number of samples per class. PROPORTIONAL: follow class
        frequencies. EXTERNAL: strata weights supplied elsewhere. NONE: plain sampling.
        """
        t = _as_tag(tag, "use_stratification()")
        if t not in STRATIFICATION_TAGS:
            raise InvalidArgument(
                f"use_stratification(): tag must be EQUAL, PROPORTIONAL, EXTERNAL or NONE, got {t.name}"
            )
        self.stratification = t
        return self

    def set_sample_with_replacement(self, flag: bool) -> "Options":
        self.sample_with_replacement = bool(flag)
        return self

    def samples_per_tree(self, value: Union[float, int, SizeFn, SampleSizeRule]) -> "Options":
        """float: fraction of the rows (keep it in (0, 1] without replacement).
        int: absolute count. callable: row count -> sample size.
        """
        if isinstance(value, (Proportional, Const, Function)):
            self.sample_size = value
        elif isinstance(value, (bool, OptionTag)):
            raise InvalidArgument(f"samples_per_tree(): unsupported value {value!r}")
        elif isinstance(value, (float, np.floating)):
            self.sample_size = Proportional(float(value))
        elif isinstance(value, (int, np.integer)):
            self.sample_size = Const(int(value))
        elif callable(value):
            self.sample_size = Function(value)
        else:
            raise InvalidArgument(f"samples_per_tree(): unsupported value {value!r}")
        return self

    def features_per_node(self, value: Union[OptionTag, int, SizeFn, MtryRule]) -> "Options":
        """OptionTag LOG/SQRT/ALL, a constant count, or a callable of the column count."""
        if isinstance(value, (Builtin, Const, Function)):
            self.mtry = value
        elif isinstance(value, OptionTag):
            self.mtry = Builtin(value)
        elif isinstance(value, bool):
            raise InvalidArgument(f"features_per_node(): unsupported value {value!r}")
        elif isinstance(value, (int, np.integer)):
            self.mtry = Const(int(value))
        elif callable(value):
            self.mtry = Function(value)
        else:
            raise InvalidArgument(f"features_per_node(): unsupported value {value!r}")
        return self

    def set_tree_count(self, n: int) -> "Options":
        self.tree_count = int(n)
        return self

    def set_min_split_node_size(self, n: int) -> "Options":
        """Nodes with fewer samples than this are not split further. 1 grows complete trees."""
        self.min_split_node_size = int(n)
        return self

    # --- derived values ---

    def resolve_sample_size(self, row_count: int) -> int:
        return self.sample_size.resolve(row_count)

    def resolve_mtry(self, column_count: int) -> int:
        return self.mtry.resolve(column_count)

    # --- flat encoding ---

    def serialized_size(self) -> int:
        return self.SERIALIZED_SIZE

    def serialize(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        if out is None:
            out = np.empty(self.SERIALIZED_SIZE, dtype=np.float64)
        elif len(out) != self.SERIALIZED_SIZE:
            raise PreconditionViolation(
                f"Options.serialize(): wrong number of parameters ({len(out)} != {self.SERIALIZED_SIZE})"
            )
        out[:] = [
            self.sample_fraction,
            self.sample_count,
            1.0 if self.sample_fn is not None else 0.0,
            int(self.sample_size_mode),
            1.0 if self.sample_with_replacement else 0.0,
            int(self.stratification),
            int(self.mtry_mode),
            self.mtry_count,
            1.0 if self.mtry_fn is not None else 0.0,
            self.tree_count,
            self.min_split_node_size,
        ]
        return out

    def deserialize(self, values: Sequence[float]) -> "Options":
        vals = np.asarray(values, dtype=np.float64).reshape(-1)
        if vals.shape[0] != self.SERIALIZED_SIZE:
            raise PreconditionViolation(
                f"Options.deserialize(): wrong number of parameters ({vals.shape[0]} != {self.SERIALIZED_SIZE})"
            )
        if not np.all(np.isfinite(vals)):
            raise PreconditionViolation("Options.deserialize(): non-finite parameter")
        return self._assign(_decode(dict(zip(OPTION_FIELDS, vals.tolist()))))

    @classmethod
    def from_flat(cls, values: Sequence[float]) -> "Options":
        return cls().deserialize(values)

    # --- named encoding ---

    def to_map(self) -> Dict[str, np.ndarray]:
        flat = self.serialize()
        return {name: flat[i:i + 1].copy() for i, name in enumerate(OPTION_FIELDS)}

    def from_map(self, mapping: Mapping[str, Sequence[float]]) -> "Options":
        missing = [k for k in OPTION_FIELDS if k not in mapping]
        if missing:
            raise PreconditionViolation(f"Options.from_map(): missing keys {missing}")
        raw: Dict[str, float] = {}
        for k in OPTION_FIELDS:
            arr = np.asarray(mapping[k], dtype=np.float64).reshape(-1)
            if arr.shape[0] < 1 or not np.isfinite(arr[0]):
                raise PreconditionViolation(f"Options.from_map(): missing or non-finite value for '{k}'")
            raw[k] = float(arr[0])
        return self._assign(_decode(raw))

    def _assign(self, other: "Options") -> "Options":
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))
        return self


def _decode(raw: Dict[str, float]) -> Options:
    """Build a fresh Options from slot values; raises before anything is assigned."""
    try:
        size_mode = OptionTag(int(raw["training_set_calc_switch"]))
        mtry_mode = OptionTag(int(raw["mtry_switch"]))
        strat = OptionTag(int(raw["stratification_method"]))
    except ValueError as e:
        raise PreconditionViolation(f"Options: invalid tag ordinal ({e})") from None

    if size_mode == OptionTag.PROPORTIONAL:
        sample_size: SampleSizeRule = Proportional(float(raw["training_set_proportion"]))
    elif size_mode == OptionTag.CONST:
        sample_size = Const(int(raw["training_set_size"]))
    elif size_mode == OptionTag.FUNCTION:
        sample_size = Function()
    else:
        raise PreconditionViolation(f"Options: {size_mode.name} is not a sample size mode")

    if mtry_mode in BUILTIN_MTRY_TAGS:
        mtry: MtryRule = Builtin(mtry_mode)
    elif mtry_mode == OptionTag.CONST:
        mtry = Const(int(raw["mtry"]))
    elif mtry_mode == OptionTag.FUNCTION:
        mtry = Function()
    else:
        raise PreconditionViolation(f"Options: {mtry_mode.name} is not an mtry mode")

    return Options(
        sample_size=sample_size,
        sample_with_replacement=bool(raw["sample_with_replacement"]),
        stratification=strat,
        mtry=mtry,
        tree_count=int(raw["tree_count"]),
        min_split_node_size=int(raw["min_split_node_size"]),
    )
