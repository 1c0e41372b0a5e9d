#!/usr/bin/env python
"""
main.py
Date: 18/10/2026

Order book aggregation benchmarks: sync vs three async styles.

Key features:
  - Builds the seeded Book -> Orders -> Lines fixture once and shares it
  - Cross-checks that every variant produces the same total before timing
  - Times each variant over several rounds (ns/op, ops/sec, ratio to Sync)
  - Samples per-invocation allocations with tracemalloc
  - Never forces a GC between rounds unless --force_gc is given

Defaults can be overridden from the environment:
  AWAIT_BENCH_ITERATIONS, AWAIT_BENCH_ROUNDS, AWAIT_BENCH_WARMUP_ROUNDS,
  AWAIT_BENCH_SEED, AWAIT_BENCH_ORDERS, AWAIT_BENCH_PENDING_EVERY,
  AWAIT_BENCH_FORCE_GC

Outputs (under --out_dir):
  - results.csv / results.json     one row per variant
  - latencies.csv / latencies.json raw recorder summary (metrics.py)
  - throughput.csv / throughput.json
  - throughput.png                 optional, needs matplotlib
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from benchmarker import Benchmarker, CASES
from fixture import FixtureConfig
from harness import ResultMismatchError, RunConfig, run_benchmarks
from metrics import (
    metrics,
    summarize_throughput,
    export_throughput_csv,
    export_throughput_json,
    plot_throughput_matplotlib,
)
from report import export_results_csv, export_results_json, print_results_table
from utils import get_bool_env, get_int_env

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Order book aggregation benchmarks (sync vs async styles)")

    # Timing
    p.add_argument("--iterations", type=int,
                   default=get_int_env("AWAIT_BENCH_ITERATIONS", default=10_000),
                   help="Invocations per timed round.")
    p.add_argument("--rounds", type=int,
                   default=get_int_env("AWAIT_BENCH_ROUNDS", default=5),
                   help="Timed rounds per variant.")
    p.add_argument("--warmup_rounds", type=int,
                   default=get_int_env("AWAIT_BENCH_WARMUP_ROUNDS", default=1),
                   help="Untimed rounds before measuring.")
    p.add_argument("--force_gc", action="store_true",
                   default=get_bool_env("AWAIT_BENCH_FORCE_GC", default=False),
                   help="Run gc.collect() before every round (off by default).")

    # Allocations
    p.add_argument("--no_alloc", action="store_true",
                   help="Skip tracemalloc allocation sampling.")
    p.add_argument("--alloc_samples", type=int, default=1_000,
                   help="Single invocations traced per variant.")

    # Fixture
    p.add_argument("--seed", type=int, default=get_int_env("AWAIT_BENCH_SEED", default=12345))
    p.add_argument("--orders", type=int, default=get_int_env("AWAIT_BENCH_ORDERS", default=50))
    p.add_argument("--pending_every", type=int,
                   default=get_int_env("AWAIT_BENCH_PENDING_EVERY", default=0),
                   help="Make every Nth line resolve asynchronously (0 = all lines resolve immediately).")

    # Selection
    p.add_argument("--cases", nargs="*", default=None,
                   choices=[c.name for c in CASES],
                   help="Subset of variants to run (must include the sync baseline).")

    # Output paths
    p.add_argument("--out_dir", type=str, default="bench_out")
    p.add_argument("--results_csv", type=str, default="results.csv")
    p.add_argument("--results_json", type=str, default="results.json")
    p.add_argument("--lat_csv", type=str, default="latencies.csv")
    p.add_argument("--lat_json", type=str, default="latencies.json")
    p.add_argument("--throughput_csv", type=str, default="throughput.csv")
    p.add_argument("--throughput_json", type=str, default="throughput.json")
    p.add_argument("--throughput_png", type=str, default="", help="Plot file name; empty skips the plot.")

    p.add_argument("--log_level", type=str, default="INFO")

    return p.parse_args(argv)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    fixture_cfg = FixtureConfig(
        seed=args.seed,
        orders=args.orders,
        pending_every=args.pending_every,
    )
    run_cfg = RunConfig(
        iterations=args.iterations,
        rounds=args.rounds,
        warmup_rounds=args.warmup_rounds,
        force_gc=args.force_gc,
        track_allocations=not args.no_alloc,
        allocation_samples=args.alloc_samples,
    )
    logger.info("Fixture: %s", fixture_cfg)
    logger.info("Run: %s", run_cfg)

    benchmarker = Benchmarker(fixture_cfg)
    try:
        results = run_benchmarks(benchmarker, run_cfg, names=args.cases)
    except (ResultMismatchError, ValueError):
        logger.exception("Benchmark run aborted")
        raise

    print_results_table(results)
    summarize_throughput(metrics)
    metrics.log_summary()

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    export_results_csv(results, out_dir / args.results_csv)
    export_results_json(results, out_dir / args.results_json)
    metrics.dump_csv(str(out_dir / args.lat_csv))
    metrics.dump_json(str(out_dir / args.lat_json))
    logger.info("Latency metrics written: %s , %s", out_dir / args.lat_csv, out_dir / args.lat_json)
    export_throughput_json(metrics, out_dir / args.throughput_json)
    export_throughput_csv(metrics, out_dir / args.throughput_csv)

    if args.throughput_png:
        try:
            plot_throughput_matplotlib(metrics, out_dir / args.throughput_png)
        except ImportError as exc:
            logger.warning("Skipping throughput plot (missing dependency): %s", exc)


if __name__ == "__main__":
    main()
