"""
imagecopy.py — Element-wise copy between 2-D grids, optionally masked.

Both functions visit the shared rectangular domain (the overlap of the
leading two axes) in row-major order and write into `dst` in place. A
trailing band axis, if present, is copied along with each position.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Tuple

import numpy as np

from .errors import InvalidArgument

Convert = Callable[[Any], Any]


def _domain(*arrays: np.ndarray) -> Tuple[int, int]:
    for a in arrays:
        if a.ndim < 2:
            raise InvalidArgument(f"Expected a 2-D grid, got shape {a.shape}")
    h = min(int(a.shape[0]) for a in arrays)
    w = min(int(a.shape[1]) for a in arrays)
    return h, w


def copy_region(src: Any, dst: np.ndarray, convert: Optional[Convert] = None) -> np.ndarray:
    s = np.asarray(src)
    h, w = _domain(s, dst)
    if convert is None:
        np.copyto(dst[:h, :w], s[:h, :w], casting="unsafe")
        return dst
    for r in range(h):
        for c in range(w):
            dst[r, c] = convert(s[r, c])
    return dst


def copy_region_where(src: Any, mask: Any, dst: np.ndarray, convert: Optional[Convert] = None) -> np.ndarray:
    s = np.asarray(src)
    m = np.asarray(mask)
    h, w = _domain(s, m, dst)
    if convert is None:
        sel = m[:h, :w].astype(bool)
        if s.ndim > 2 and sel.ndim == 2:
            sel = sel.reshape(sel.shape + (1,) * (s.ndim - 2))
        np.copyto(dst[:h, :w], s[:h, :w], casting="unsafe", where=sel)
        return dst
    for r in range(h):
        for c in range(w):
            if m[r, c]:
                dst[r, c] = convert(s[r, c])
    return dst
