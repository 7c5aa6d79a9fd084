"""
data.py — Load (X, y) for problem analysis from CSV, NPZ or NPY files.

All loaders return (X, y, info): X is float32 2-D, y is a 1-D label/target
vector, info carries names and row counts.
"""

from __future__ import annotations

import csv
import math
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

DELIMITER_CANDIDATES = (",", ";", "\t", "|")

_STRICT_NUMBER_RE = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?$")


def is_strict_number(s: Any) -> bool:
    s = str(s or "").strip()
    return bool(s) and bool(_STRICT_NUMBER_RE.match(s))


def canon_label(raw: Any) -> str:
    """Canonical string form of a label: "1.0" and "1" map to "1"."""
    s = str(raw or "").strip()
    if not s or not is_strict_number(s):
        return s
    n = float(s)
    if not math.isfinite(n):
        return s
    if n == int(n):
        return str(int(n))
    return repr(n)


# -------------------------
# Delimiters
# -------------------------

def normalize_delimiter(delim: str) -> str:
    d = str(delim or "").strip().lower()
    if not d or d == "auto":
        return "auto"
    aliases = {"comma": ",", "semicolon": ";", "\\t": "\t", "tab": "\t", "tsv": "\t", "pipe": "|"}
    return aliases.get(d, d[0])


def detect_delimiter(lines: Sequence[str], fallback: str = ",") -> str:
    """Pick the candidate giving the most common column count (>= 2) on the most lines.

    Ties go to more columns, then to fewer stray candidate characters in cells.
    """
    best = fallback
    best_key: Tuple[int, int, int] = (0, 1, -(10 ** 18))

    for d in DELIMITER_CANDIDATES:
        freq: Dict[int, int] = {}
        penalty = 0
        for row in csv.reader([ln for ln in lines if ln], delimiter=d):
            freq[len(row)] = freq.get(len(row), 0) + 1
            for cell in row:
                penalty += sum(cell.count(o) for o in DELIMITER_CANDIDATES if o != d)
        if not freq:
            continue
        mode_n, mode_f = max(freq.items(), key=lambda kv: (kv[1], kv[0]))
        if mode_n < 2:
            continue
        key = (mode_f, mode_n, -penalty)
        if key > best_key:
            best_key = key
            best = d
    return best


def detect_csv_delimiter(path: str, limit_lines: int = 20, fallback: str = ",") -> str:
    lines: List[str] = []
    with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
        for _ in range(limit_lines):
            line = f.readline()
            if not line:
                break
            line = line.strip("\r\n")
            if line:
                lines.append(line)
    if not lines:
        return fallback
    return detect_delimiter(lines, fallback=fallback)


# -------------------------
# CSV
# -------------------------

def find_column(spec: Union[str, int], headers: Sequence[str]) -> int:
    if isinstance(spec, int):
        return spec
    s = str(spec).strip()
    if not s:
        raise ValueError("Empty column spec")
    if s.lstrip("-").isdigit():
        return int(s)
    if s in headers:
        return list(headers).index(s)
    lower = [h.lower() for h in headers]
    if s.lower() in lower:
        return lower.index(s.lower())
    raise ValueError(f"Column '{s}' not found in CSV headers")


def _labels_to_array(raw: List[str]) -> Tuple[np.ndarray, Optional[List[str]]]:
    """Numeric labels -> int64/float64 array; anything else -> indices into sorted names."""
    if all(is_strict_number(v) for v in raw):
        vals = np.asarray([float(v) for v in raw], dtype=np.float64)
        if vals.size and np.all(vals == np.floor(vals)) and np.all(np.abs(vals) < 2.0 ** 53):
            return vals.astype(np.int64), None
        return vals, None
    names = sorted(set(raw))
    index = {n: i for i, n in enumerate(names)}
    return np.asarray([index[v] for v in raw], dtype=np.int64), names


def load_csv(
    path: str,
    label_col: Union[str, int],
    feature_cols: Optional[Sequence[Union[str, int]]] = None,
    *,
    delimiter: str = "auto",
    has_header: bool = True,
    limit_rows: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    delim = normalize_delimiter(delimiter)
    if delim == "auto":
        delim = detect_csv_delimiter(path)

    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter=delim)
        try:
            first = next(reader)
        except StopIteration:
            raise ValueError("Empty CSV") from None

    if has_header:
        headers = [str(x or "").strip() for x in first]
        if headers and headers[0].startswith("\ufeff"):
            headers[0] = headers[0].lstrip("\ufeff")
    else:
        headers = [f"c{i}" for i in range(len(first))]
    n_cols = len(headers)

    label_index = find_column(label_col, headers)
    if not (0 <= label_index < n_cols):
        raise ValueError(f"label column index out of range: {label_index}")
    if feature_cols is None:
        feat_idx = [i for i in range(n_cols) if i != label_index]
    else:
        feat_idx = [find_column(c, headers) for c in feature_cols]
        feat_idx = [i for i in feat_idx if 0 <= i < n_cols and i != label_index]
    if not feat_idx:
        raise ValueError("Need at least 1 feature column")

    x_rows: List[List[float]] = []
    y_raw: List[str] = []
    dropped_bad_label = 0
    dropped_bad_feature = 0

    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter=delim)
        if has_header:
            next(reader, None)
        for r_i, row in enumerate(reader):
            if limit_rows is not None and r_i >= limit_rows:
                break
            if not row:
                continue
            if len(row) < n_cols:
                row = row + [""] * (n_cols - len(row))

            lab = canon_label(row[label_index])
            if not lab:
                dropped_bad_label += 1
                continue

            x_row: List[float] = []
            for i in feat_idx:
                try:
                    num = float(row[i])
                except ValueError:
                    break
                if not math.isfinite(num):
                    break
                x_row.append(num)
            if len(x_row) != len(feat_idx):
                dropped_bad_feature += 1
                continue

            x_rows.append(x_row)
            y_raw.append(lab)

    if not x_rows:
        raise ValueError("No valid rows after parsing")

    X = np.asarray(x_rows, dtype=np.float32)
    y, class_names = _labels_to_array(y_raw)
    info = {
        "headers": headers,
        "feature_names": [headers[i] or f"f{i}" for i in feat_idx],
        "label_name": headers[label_index] or "label",
        "n_rows": int(X.shape[0]),
        "n_features": int(X.shape[1]),
        "dropped_rows": int(dropped_bad_label + dropped_bad_feature),
        "dropped_bad_label": int(dropped_bad_label),
        "dropped_bad_feature": int(dropped_bad_feature),
        "classes": class_names,
        "delimiter": delim,
    }
    return X, y, info


# -------------------------
# numpy files
# -------------------------

def _array_info(X: np.ndarray) -> Dict[str, Any]:
    return {
        "feature_names": [f"f{i}" for i in range(int(X.shape[1]))],
        "label_name": "label",
        "n_rows": int(X.shape[0]),
        "n_features": int(X.shape[1]),
        "classes": None,
    }


def _check_xy(X: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    if X.ndim != 2:
        raise ValueError(f"X must be 2D, got shape {X.shape}")
    if y.ndim == 2 and y.shape[1] == 1:
        y = y.reshape(-1)
    if y.ndim != 1 or y.shape[0] != X.shape[0]:
        raise ValueError(f"y shape {y.shape} does not match {X.shape[0]} rows")
    if X.dtype != np.float32:
        X = X.astype(np.float32)
    return X, y


def load_npz(path: str, x_key: str = "X", y_key: str = "y", mmap: bool = False) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    mode = "r" if mmap else None
    with np.load(path, allow_pickle=False, mmap_mode=mode) as z:
        if x_key not in z.files or y_key not in z.files:
            raise ValueError(f"npz must contain keys '{x_key}' and '{y_key}'")
        X = np.asarray(z[x_key])
        y = np.asarray(z[y_key])
    X, y = _check_xy(X, y)
    return X, y, _array_info(X)


def load_npy(path_x: str, path_y: str, mmap: bool = False) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    mode = "r" if mmap else None
    X = np.load(path_x, mmap_mode=mode, allow_pickle=False)
    y = np.load(path_y, mmap_mode=mode, allow_pickle=False)
    X, y = _check_xy(X, y)
    return X, y, _array_info(X)
