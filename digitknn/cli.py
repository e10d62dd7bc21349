from __future__ import annotations

"""CLI wiring for the digit nearest-neighbor classifier.

Defines subcommands and forwards to implementation modules.
"""

import argparse
import sys
from pathlib import Path
from typing import List

from joblib import cpu_count

from .backends import CONTEXTS, DEFAULT_BLOCK_SIZE, get_context
from .bench import RunStats, benchmark
from .classify import Classifier
from .engine import DistanceEngine
from .errors import KnnError
from .paths import PIXEL_COUNT, TEST_CSV, TRAIN_CSV, TRAIN_NPZ
from .store import load_csv, load_examples, load_store, save_npz, VectorStore


def _add_run_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--train", type=str, default=str(TRAIN_CSV), help="Training set (.csv or .npz)")
    p.add_argument("--test", type=str, default=str(TEST_CSV), help="Validation set (.csv or .npz)")
    p.add_argument("--dim", type=int, default=PIXEL_COUNT, help="Pixels per image")
    p.add_argument("--size", type=int, default=0, help="Required training set size (0 = any)")
    p.add_argument("--limit", type=int, default=0, help="Classify only the first N queries (0 = all)")
    p.add_argument("--backend", choices=list(CONTEXTS), default="threads", help="Execution context")
    p.add_argument("--jobs", type=int, default=-1, help="Workers for threads/processes (-1 = all cores)")
    p.add_argument("--block", type=int, default=DEFAULT_BLOCK_SIZE, help="Work items per dispatched block")
    p.add_argument("--timeout", type=float, default=0.0, help="Per-block deadline in seconds (0 = none)")
    p.add_argument("--retries", type=int, default=1, help="Retries for a failed dispatch")
    p.add_argument("--reduce-chunks", type=int, default=1, help="Partial minima merged by the reducer")
    p.add_argument(
        "--skip-failed", action="store_true", help="Count failed dispatches as incorrect instead of aborting"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Handwritten digit classification by exact 1-nearest-neighbor search"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    # classify
    p_cls = sub.add_parser("classify", help="Classify the validation set and report accuracy")
    _add_run_args(p_cls)
    p_cls.add_argument("--verbose", action="store_true", help="Print one line per query")
    p_cls.add_argument("--progress", action="store_true", help="Show a progress bar")

    # bench
    p_bench = sub.add_parser("bench", help="Repeat classification and report timing")
    _add_run_args(p_bench)
    p_bench.add_argument("--repeats", type=int, default=10, help="Number of timed runs")

    # pack
    p_pack = sub.add_parser("pack", help="Convert a CSV dataset into a compressed corpus cache")
    p_pack.add_argument("--csv", type=str, default=str(TRAIN_CSV), help="Input CSV path")
    p_pack.add_argument("--out", type=str, default=str(TRAIN_NPZ), help="Output npz path (X,y)")
    p_pack.add_argument("--dim", type=int, default=PIXEL_COUNT, help="Pixels per image")

    # backends
    sub.add_parser("backends", help="List execution contexts")

    return parser


def _build_classifier(args: argparse.Namespace) -> Classifier:
    store = load_store(Path(args.train), dim=args.dim, expected_size=(args.size or None))
    context = get_context(
        args.backend,
        n_jobs=args.jobs,
        block_size=args.block,
        timeout=(args.timeout or None),
    )
    print(f"Loaded {store.size} training images ({store.dim} pixels) from {args.train}")
    print(f"Using {context.describe()}")
    engine = DistanceEngine(store, context=context, retries=args.retries)
    return Classifier(store, engine=engine, reduce_chunks=args.reduce_chunks)


def _load_queries(args: argparse.Namespace):
    queries = load_examples(Path(args.test), dim=args.dim)
    if args.limit > 0:
        queries = queries[: args.limit]
    return queries


def _print_run(stats: RunStats) -> None:
    print(f"{stats.percent_done:.1f}% \t| Duration : {stats.ms_per_query:.4f} ms/query")
    print(f"\t| Average : {stats.average_ms:.4f}")
    print(f"\t| Result {100.0 * stats.accuracy:.2f}%")
    print()


def _check_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if getattr(args, "block", 1) <= 0:
        parser.error("--block must be positive")
    if getattr(args, "retries", 0) < 0:
        parser.error("--retries must be >= 0")
    if getattr(args, "jobs", -1) == 0:
        parser.error("--jobs must be non-zero")
    if getattr(args, "timeout", 0.0) < 0:
        parser.error("--timeout must be >= 0")
    if getattr(args, "repeats", 1) <= 0:
        parser.error("--repeats must be positive")
    if getattr(args, "dim", 1) <= 0:
        parser.error("--dim must be positive")


def _run(args: argparse.Namespace) -> None:
    policy = "skip" if getattr(args, "skip_failed", False) else "abort"

    if args.cmd == "classify":
        classifier = _build_classifier(args)
        queries = _load_queries(args)
        evaluation = classifier.evaluate(queries, on_dispatch_error=policy, progress=args.progress)
        if args.verbose:
            for r in evaluation.results:
                status = "skipped" if r.skipped else ("ok" if r.correct else "miss")
                print(f"query={r.position} truth={r.truth} predicted={r.predicted} {status}")
        print(f"Duration : {evaluation.ms_per_query:.4f} ms/query")
        print(
            f"Result : {100.0 * evaluation.accuracy:.2f}% ({evaluation.correct}/{evaluation.total})"
            + (f", skipped {evaluation.skipped}" if evaluation.skipped else "")
        )
        return

    if args.cmd == "bench":
        classifier = _build_classifier(args)
        queries = _load_queries(args)
        result = benchmark(
            classifier, queries, repeats=args.repeats, on_run=_print_run, on_dispatch_error=policy
        )
        print(f"FINAL AVERAGE : {result.average_ms:.4f} ms/query")
        return

    if args.cmd == "pack":
        out_path = Path(args.out)
        examples = load_csv(Path(args.csv), dim=args.dim)
        store = VectorStore.from_examples(examples, dim=args.dim)
        save_npz(store, out_path)
        print(f"Saved corpus to {out_path} ({store.size} images, {store.dim} pixels)")
        return

    if args.cmd == "backends":
        print(f"CPU cores: {cpu_count()}")
        for name, desc in CONTEXTS.items():
            print(f"  {name:<10} {desc}")
        return


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _check_args(parser, args)
    try:
        _run(args)
    except KnnError as e:
        print(f"[error] {e.kind}: {e}", file=sys.stderr)
        return 1
    return 0
