"""
forestspec — Options and problem metadata for random forest learners.

- Options: data independent hyperparameters (sampling, mtry, tree count, ...)
- ProblemSpec: label space and shape of one training problem
- DEFAULT / resolve(): "use the library default" slots for learner arguments
- analyze_problem(): fill a ProblemSpec from (X, y) before learning

Both records round-trip through a flat float64 encoding (serialize /
deserialize) and a named mapping encoding (to_map / from_map).

Copyright (c) 2026 Decentralized Science Labs
MIT License.
"""

from .analysis import analyze_problem, balanced_class_weights, class_counts, encode_labels
from .defaults import DEFAULT, Explicit, UseDefault, is_default, resolve, resolve_factory, rf_default
from .errors import ForestSpecError, IndexOutOfRange, InvalidArgument, PreconditionViolation
from .imagecopy import copy_region, copy_region_where
from .options import Builtin, Const, Function, OptionTag, Options, Proportional
from .persist import describe, pack_config, read_config, unpack_config, write_config
from .problem import LabelType, ProblemSpec, ProblemType

__version__ = "1.0.0"

__all__ = [
    "DEFAULT",
    "Builtin",
    "Const",
    "Explicit",
    "ForestSpecError",
    "Function",
    "IndexOutOfRange",
    "InvalidArgument",
    "LabelType",
    "OptionTag",
    "Options",
    "PreconditionViolation",
    "ProblemSpec",
    "ProblemType",
    "Proportional",
    "UseDefault",
    "analyze_problem",
    "balanced_class_weights",
    "class_counts",
    "copy_region",
    "copy_region_where",
    "describe",
    "encode_labels",
    "is_default",
    "pack_config",
    "read_config",
    "resolve",
    "resolve_factory",
    "rf_default",
    "unpack_config",
    "write_config",
]
