"""
cli.py — Build and inspect random forest configurations.

Usage examples
--------------

1) Analyze a CSV (label column "species") and store options + problem spec:

  forestspec analyze \
    --input iris.csv --label-col species \
    --trees 100 --min-split 5 --mtry sqrt --samples 0.632 \
    --out iris.rfc

2) Regression targets from npy arrays, npz attribute store output:

  forestspec analyze --task regression --npy-x X.npy --npy-y y.npy --out cfg.npz

3) Print a stored configuration as JSON:

  forestspec show iris.rfc

Copyright (c) 2026 Decentralized Science Labs
MIT License.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional, Sequence

from .analysis import analyze_problem
from .data import load_csv, load_npy, load_npz
from .errors import ForestSpecError
from .options import OptionTag, Options
from .persist import describe, read_config, write_config
from .problem import ProblemType

_STRATIFY = {
    "none": OptionTag.NONE,
    "equal": OptionTag.EQUAL,
    "proportional": OptionTag.PROPORTIONAL,
    "external": OptionTag.EXTERNAL,
}
_MTRY = {"sqrt": OptionTag.SQRT, "log": OptionTag.LOG, "all": OptionTag.ALL}


def parse_list(s: Optional[str]) -> Optional[List[str]]:
    if s is None:
        return None
    s2 = str(s).strip()
    if not s2:
        return None
    return [p.strip() for p in s2.split(",") if p.strip()]


def options_from_args(args: argparse.Namespace) -> Options:
    opts = Options().set_tree_count(args.trees).set_min_split_node_size(args.min_split)
    opts.set_sample_with_replacement(not args.no_replacement)
    opts.use_stratification(_STRATIFY[args.stratify])

    mtry = str(args.mtry).strip().lower()
    if mtry in _MTRY:
        opts.features_per_node(_MTRY[mtry])
    else:
        try:
            opts.features_per_node(int(mtry))
        except ValueError:
            raise SystemExit(f"--mtry must be sqrt, log, all or an integer, got '{args.mtry}'") from None

    samples = str(args.samples).strip()
    try:
        if samples.lstrip("+").isdigit():
            opts.samples_per_tree(int(samples))
        else:
            opts.samples_per_tree(float(samples))
    except ValueError:
        raise SystemExit(f"--samples must be a fraction or an integer count, got '{args.samples}'") from None
    return opts


def _load_dataset(args: argparse.Namespace):
    if args.npy_x and args.npy_y:
        return load_npy(args.npy_x, args.npy_y, mmap=bool(args.mmap))
    if not args.input:
        raise SystemExit("Provide --input (CSV or NPZ) or --npy-x/--npy-y")
    if args.npz:
        return load_npz(args.input, x_key=args.npz_x_key, y_key=args.npz_y_key, mmap=bool(args.mmap))
    if args.label_col is None:
        raise SystemExit("CSV input requires --label-col")
    return load_csv(
        args.input,
        label_col=args.label_col,
        feature_cols=parse_list(args.feature_cols),
        delimiter=args.delimiter,
        has_header=not args.no_header,
        limit_rows=args.limit_rows,
    )


def cmd_analyze(args: argparse.Namespace) -> int:
    opts = options_from_args(args)
    X, y, info = _load_dataset(args)

    task = ProblemType.REGRESSION if args.task == "regression" else ProblemType.CLASSIFICATION
    weights_raw = str(args.class_weights or "").strip().lower()
    class_weights = None
    if weights_raw == "balanced":
        class_weights = "balanced"
    elif weights_raw:
        class_weights = [float(w) for w in parse_list(weights_raw) or []]

    spec, _ = analyze_problem(X, y, opts, problem_type=task, class_weights=class_weights)
    size = write_config(args.out, opts, spec)

    sys.stderr.write(f"Wrote: {args.out} ({size:,} bytes)\n")
    sys.stderr.write(
        f"Task: {task.name.lower()}, rows={spec.row_count:,}, features={spec.column_count}, "
        f"classes={spec.class_count}, mtry={spec.actual_mtry}, msample={spec.actual_msample}\n"
    )
    if info.get("classes"):
        sys.stderr.write(f"Class names: {', '.join(str(c) for c in info['classes'])}\n")
    if info.get("dropped_rows"):
        sys.stderr.write(f"[warn] dropped {info['dropped_rows']:,} rows with bad labels or features\n")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    opts, spec = read_config(args.path)
    sys.stdout.write(json.dumps(describe(opts, spec), indent=2, ensure_ascii=False) + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="forestspec", description="Random forest options and problem specs")
    sub = ap.add_subparsers(dest="command", required=True)

    an = sub.add_parser("analyze", help="Analyze a dataset and write options + problem spec")
    an.add_argument("--out", required=True, help="Output path (.npz for the attribute store, anything else for RFCF)")
    an.add_argument("--task", choices=["classification", "regression"], default="classification")

    # Input formats
    an.add_argument("--input", help="Input CSV, or NPZ with --npz")
    an.add_argument("--npz", action="store_true", help="Treat --input as .npz with arrays X and y")
    an.add_argument("--npz-x-key", default="X")
    an.add_argument("--npz-y-key", default="y")
    an.add_argument("--npy-x", help="Path to X.npy (2D)")
    an.add_argument("--npy-y", help="Path to y.npy (1D)")
    an.add_argument("--mmap", action="store_true", help="Use numpy mmap_mode='r' when loading .npy/.npz")

    # CSV parsing
    an.add_argument("--delimiter", default="auto", help="CSV delimiter: auto, comma, semicolon, tab, pipe, or a single character")
    an.add_argument("--no-header", action="store_true")
    an.add_argument("--label-col", help="Label column name/index")
    an.add_argument("--feature-cols", help="Comma-separated feature columns to use (optional)")
    an.add_argument("--limit-rows", type=int, default=None, help="Debug: only read first N rows")

    # Forest options
    an.add_argument("--trees", type=int, default=256)
    an.add_argument("--min-split", type=int, default=1, help="Minimum node size for a split")
    an.add_argument("--mtry", default="sqrt", help="Features per node: sqrt, log, all, or an integer")
    an.add_argument("--samples", default="1.0", help="Samples per tree: fraction (float) or count (int)")
    an.add_argument("--no-replacement", action="store_true", help="Sample without replacement")
    an.add_argument("--stratify", choices=sorted(_STRATIFY), default="none")
    an.add_argument("--class-weights", default=None, help="'balanced' or comma-separated weights (len=nClasses)")
    an.set_defaults(func=cmd_analyze)

    sh = sub.add_parser("show", help="Print a stored configuration as JSON")
    sh.add_argument("path")
    sh.set_defaults(func=cmd_show)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except (ForestSpecError, ValueError, OSError) as e:
        raise SystemExit(f"error: {e}") from e


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
