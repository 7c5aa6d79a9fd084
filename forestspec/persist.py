"""
persist.py — Store an (Options, ProblemSpec) pair on disk.

Two layouts:

- "RFCF" binary container (any suffix but .npz):
    header (16 bytes, little-endian)
      0  magic "RFCF"
      4  version (u8) = 1
      5  reserved (3 bytes, zero)
      8  nOptions (u32)  = 11
     12  nSpec (u32)     = ProblemSpec.serialized_size()
    payload: nOptions + nSpec float64 values (the flat encodings, in that order)

- numpy .npz attribute store: one array per named field, keys
  "options/<name>" and "problem_spec/<name>", plus "format_version".
"""

from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import numpy as np

from .errors import PreconditionViolation
from .options import OptionTag, Options
from .problem import LabelType, ProblemSpec

CONFIG_MAGIC = b"RFCF"
CONFIG_VERSION = 1
HEADER_SIZE = 16
NPZ_FORMAT_VERSION = 1

PathLike = Union[str, "os.PathLike[str]"]


# -------------------------
# Binary container
# -------------------------

def pack_config(options: Options, spec: ProblemSpec) -> bytes:
    opt_flat = options.serialize()
    spec_flat = spec.serialize()

    header = bytearray(HEADER_SIZE)
    header[0:4] = CONFIG_MAGIC
    header[4] = CONFIG_VERSION
    struct.pack_into("<I", header, 8, int(opt_flat.shape[0]))
    struct.pack_into("<I", header, 12, int(spec_flat.shape[0]))

    payload = np.concatenate([opt_flat, spec_flat]).astype("<f8", copy=False).tobytes()
    return bytes(header) + payload


def unpack_config(blob: bytes) -> Tuple[Options, ProblemSpec]:
    if len(blob) < HEADER_SIZE:
        raise PreconditionViolation(f"Config blob too short ({len(blob)} bytes)")
    if bytes(blob[0:4]) != CONFIG_MAGIC:
        raise PreconditionViolation(f"Bad magic {bytes(blob[0:4])!r}, expected {CONFIG_MAGIC!r}")
    version = blob[4]
    if version != CONFIG_VERSION:
        raise PreconditionViolation(f"Unsupported config version {version}")
    (n_opt,) = struct.unpack_from("<I", blob, 8)
    (n_spec,) = struct.unpack_from("<I", blob, 12)
    expected = HEADER_SIZE + (n_opt + n_spec) * 8
    if len(blob) != expected:
        raise PreconditionViolation(f"Config blob has {len(blob)} bytes, header says {expected}")

    vals = np.frombuffer(blob, dtype="<f8", offset=HEADER_SIZE).astype(np.float64)
    options = Options.from_flat(vals[:n_opt])
    spec = ProblemSpec.from_flat(vals[n_opt:])
    return options, spec


# -------------------------
# npz attribute store
# -------------------------

def save_npz(path: PathLike, options: Options, spec: ProblemSpec) -> None:
    arrays: Dict[str, np.ndarray] = {"format_version": np.array([NPZ_FORMAT_VERSION], dtype=np.int32)}
    for k, v in options.to_map().items():
        arrays[f"options/{k}"] = v
    for k, v in spec.to_map().items():
        arrays[f"problem_spec/{k}"] = v
    with open(path, "wb") as f:
        np.savez(f, **arrays)


def load_npz(path: PathLike) -> Tuple[Options, ProblemSpec]:
    with np.load(path, allow_pickle=False) as z:
        if "format_version" not in z.files:
            raise PreconditionViolation(f"{path}: not a forestspec npz store (no format_version)")
        version = int(z["format_version"][0])
        if version != NPZ_FORMAT_VERSION:
            raise PreconditionViolation(f"{path}: unsupported npz format_version {version}")
        opt_map = {k.split("/", 1)[1]: z[k] for k in z.files if k.startswith("options/")}
        spec_map = {k.split("/", 1)[1]: z[k] for k in z.files if k.startswith("problem_spec/")}
    return Options().from_map(opt_map), ProblemSpec().from_map(spec_map)


# -------------------------
# Files
# -------------------------

def write_config(path: PathLike, options: Options, spec: ProblemSpec) -> int:
    """Write by suffix (.npz or binary container). Returns the file size in bytes."""
    p = Path(path)
    os.makedirs(str(p.parent) or ".", exist_ok=True)
    if p.suffix.lower() == ".npz":
        save_npz(p, options, spec)
    else:
        with open(p, "wb") as f:
            f.write(pack_config(options, spec))
    return int(p.stat().st_size)


def read_config(path: PathLike) -> Tuple[Options, ProblemSpec]:
    p = Path(path)
    if p.suffix.lower() == ".npz":
        return load_npz(p)
    with open(p, "rb") as f:
        return unpack_config(f.read())


def describe(options: Options, spec: ProblemSpec) -> Dict[str, Any]:
    """JSON friendly summary."""
    opts: Dict[str, Any] = {
        "treeCount": int(options.tree_count),
        "minSplitNodeSize": int(options.min_split_node_size),
        "sampleWithReplacement": bool(options.sample_with_replacement),
        "stratification": options.stratification.name.lower(),
        "sampleSizeMode": options.sample_size_mode.name.lower(),
        "mtryMode": options.mtry_mode.name.lower(),
    }
    if options.sample_size_mode == OptionTag.PROPORTIONAL:
        opts["sampleFraction"] = float(options.sample_fraction)
    elif options.sample_size_mode == OptionTag.CONST:
        opts["sampleCount"] = int(options.sample_count)
    if options.mtry_mode == OptionTag.CONST:
        opts["mtry"] = int(options.mtry_count)

    if spec.class_label_type == LabelType.UNKNOWN:
        classes = spec.class_labels.tolist()
    else:
        classes = spec.class_labels_as(spec.class_label_type).tolist()

    problem: Dict[str, Any] = {
        "problemType": spec.problem_type.name.lower(),
        "nColumns": int(spec.column_count),
        "nRows": int(spec.row_count),
        "nClasses": int(spec.class_count),
        "labelType": spec.class_label_type.name.lower(),
        "classes": classes,
        "actualMtry": int(spec.actual_mtry),
        "actualMsample": int(spec.actual_msample),
        "used": bool(spec.used),
    }
    if spec.is_weighted:
        problem["classWeights"] = [float(w) for w in spec.class_weights]
    return {"kind": "RF_CONFIG", "v": CONFIG_VERSION, "options": opts, "problem": problem}
