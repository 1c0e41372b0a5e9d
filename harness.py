"""
harness.py
Date: 18/10/2026

Measurement harness for the aggregation benchmarks.

For each BenchmarkCase this:
  1) invokes the entry once and cross-checks its total against the others
  2) runs warm-up rounds, then timed rounds of `iterations` invocations
  3) counts gen-0 collections across the timed rounds
  4) samples single invocations under tracemalloc for allocation figures
  5) reports ns/op statistics, ops/sec and the ratio to the baseline case

Async cases run inside one asyncio event loop per phase. Within it an
already-completed MaybePending is read through `.result`; anything else is
awaited, so the only per-invocation cost that differs between the async
cases is what the entry point itself allocates.

GC policy: by default no collection is forced between rounds (`force_gc`),
so allocation-heavy variants pay their collector cost inside the timings
the same way they would in steady state.
"""

from __future__ import annotations

import asyncio
import gc
import logging
import time
import tracemalloc
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from benchmarker import Benchmarker, BenchmarkCase, select_cases
from maybe_pending import MaybePending
from metrics import BENCH_PREFIX, metrics, record_latency


logger = logging.getLogger(__name__)


class ResultMismatchError(RuntimeError):
    """Raised when benchmark variants disagree on the aggregated total."""


# ---------------------------------------------------------------------------
# Config and results
# ---------------------------------------------------------------------------

@dataclass
class RunConfig:
    iterations: int = 10_000        # invocations per timed round
    rounds: int = 5                 # timed rounds per case
    warmup_rounds: int = 1          # untimed rounds before measuring
    force_gc: bool = False          # gc.collect() before every round
    track_allocations: bool = True  # sample allocations with tracemalloc
    allocation_samples: int = 1_000 # single invocations traced per case

    def __post_init__(self) -> None:
        if self.iterations <= 0:
            raise ValueError(f"iterations must be > 0, got {self.iterations}")
        if self.rounds <= 0:
            raise ValueError(f"rounds must be > 0, got {self.rounds}")
        if self.warmup_rounds < 0:
            raise ValueError(f"warmup_rounds must be >= 0, got {self.warmup_rounds}")
        if self.allocation_samples <= 0:
            raise ValueError(f"allocation_samples must be > 0, got {self.allocation_samples}")


@dataclass
class CaseResult:
    name: str
    description: str
    baseline: bool
    total: int
    iterations: int
    rounds: int
    mean_ns: float
    stddev_ns: float
    median_ns: float
    min_ns: float
    ops_per_sec: float
    gen0_collections: int
    alloc_peak_bytes: Optional[float] = None   # per invocation
    alloc_net_bytes: Optional[float] = None    # per invocation
    ratio: Optional[float] = None
    alloc_ratio: Optional[float] = None
    round_ns: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Invocation loops
# ---------------------------------------------------------------------------

def _run_sync(entry: Callable[[], Any], iterations: int) -> int:
    value = 0
    for _ in range(iterations):
        value = entry()
    return value


async def _run_async(entry: Callable[[], Any], iterations: int) -> int:
    value = 0
    for _ in range(iterations):
        pending = entry()
        if isinstance(pending, MaybePending) and pending.is_completed_successfully:
            value = pending.result
        else:
            value = await pending
    return value


def invoke_once(case: BenchmarkCase, entry: Callable[[], Any]) -> int:
    """Run a single invocation to completion and return its total."""
    if case.is_async:
        return asyncio.run(_run_async(entry, 1))
    return entry()


def _timed_rounds(
    case: BenchmarkCase,
    entry: Callable[[], Any],
    config: RunConfig,
) -> List[float]:
    """Return seconds per invocation for every timed round."""

    def one_round(run: Callable[[], Any]) -> float:
        if config.force_gc:
            gc.collect()
        t0 = time.perf_counter_ns()
        run()
        t1 = time.perf_counter_ns()
        return (t1 - t0) / config.iterations / 1e9

    if not case.is_async:
        for _ in range(config.warmup_rounds):
            one_round(lambda: _run_sync(entry, config.iterations))
        return [one_round(lambda: _run_sync(entry, config.iterations)) for _ in range(config.rounds)]

    async def main_async() -> List[float]:
        out: List[float] = []
        for r in range(config.warmup_rounds + config.rounds):
            if config.force_gc:
                gc.collect()
            t0 = time.perf_counter_ns()
            await _run_async(entry, config.iterations)
            t1 = time.perf_counter_ns()
            if r >= config.warmup_rounds:
                out.append((t1 - t0) / config.iterations / 1e9)
        return out

    return asyncio.run(main_async())


def _sample_allocations(
    case: BenchmarkCase,
    entry: Callable[[], Any],
    samples: int,
) -> Tuple[float, float]:
    """
    Trace `samples` single invocations.

    Returns (mean peak bytes above the pre-call level, mean net bytes kept).
    """
    peaks: List[int] = []
    nets: List[int] = []

    def traced(call: Callable[[], Any]) -> None:
        tracemalloc.reset_peak()
        before, _ = tracemalloc.get_traced_memory()
        call()
        after, peak = tracemalloc.get_traced_memory()
        peaks.append(peak - before)
        nets.append(after - before)

    async def main_async() -> None:
        for _ in range(samples):
            tracemalloc.reset_peak()
            before, _ = tracemalloc.get_traced_memory()
            pending = entry()
            if isinstance(pending, MaybePending) and pending.is_completed_successfully:
                pending.result
            else:
                await pending
            del pending
            after, peak = tracemalloc.get_traced_memory()
            peaks.append(peak - before)
            nets.append(after - before)

    already_tracing = tracemalloc.is_tracing()
    if not already_tracing:
        tracemalloc.start()
    try:
        if case.is_async:
            asyncio.run(main_async())
        else:
            for _ in range(samples):
                traced(entry)
    finally:
        if not already_tracing:
            tracemalloc.stop()

    return float(np.mean(peaks)), float(np.mean(nets))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def measure_case(
    case: BenchmarkCase,
    benchmarker: Benchmarker,
    config: RunConfig,
    total: Optional[int] = None,
) -> CaseResult:
    entry = benchmarker.entry(case)
    if total is None:
        total = invoke_once(case, entry)

    logger.info(
        "Measuring %s (%s): rounds=%d iterations=%d",
        case.name, case.description, config.rounds, config.iterations,
    )
    with record_latency(f"harness.{case.name}"):
        gen0_before = gc.get_stats()[0]["collections"]
        per_op_s = _timed_rounds(case, entry, config)
        gen0_after = gc.get_stats()[0]["collections"]

        for s in per_op_s:
            metrics.observe(f"{BENCH_PREFIX}{case.name}", s, store_samples=True)

        alloc_peak: Optional[float] = None
        alloc_net: Optional[float] = None
        if config.track_allocations:
            alloc_peak, alloc_net = _sample_allocations(case, entry, config.allocation_samples)

    ns = np.asarray(per_op_s, dtype=float) * 1e9
    mean_ns = float(np.mean(ns))
    result = CaseResult(
        name=case.name,
        description=case.description,
        baseline=case.baseline,
        total=total,
        iterations=config.iterations,
        rounds=config.rounds,
        mean_ns=mean_ns,
        stddev_ns=float(np.std(ns, ddof=1)) if ns.size > 1 else 0.0,
        median_ns=float(np.median(ns)),
        min_ns=float(np.min(ns)),
        ops_per_sec=1e9 / mean_ns if mean_ns > 0 else float("inf"),
        gen0_collections=gen0_after - gen0_before,
        alloc_peak_bytes=alloc_peak,
        alloc_net_bytes=alloc_net,
        round_ns=[float(x) for x in ns],
    )
    logger.info(
        "%s: mean=%.1f ns/op stddev=%.1f ops/s=%.0f alloc_peak=%s B/op gen0=%d",
        case.name, result.mean_ns, result.stddev_ns, result.ops_per_sec,
        "n/a" if alloc_peak is None else f"{alloc_peak:.1f}",
        result.gen0_collections,
    )
    return result


def verify_totals(
    benchmarker: Benchmarker,
    cases: List[BenchmarkCase],
) -> Dict[str, int]:
    """Invoke every case once; raise ResultMismatchError if totals differ."""
    totals = {c.name: invoke_once(c, benchmarker.entry(c)) for c in cases}
    if len(set(totals.values())) > 1:
        raise ResultMismatchError(f"Benchmark variants disagree on the total: {totals}")
    return totals


def apply_baseline(results: List[CaseResult]) -> None:
    """Fill `ratio` and `alloc_ratio` relative to the single baseline result."""
    base = [r for r in results if r.baseline]
    if len(base) != 1:
        raise ValueError(f"Expected exactly one baseline result, found {len(base)}")
    b = base[0]
    for r in results:
        r.ratio = r.mean_ns / b.mean_ns if b.mean_ns > 0 else None
        if r.alloc_peak_bytes is not None and b.alloc_peak_bytes:
            r.alloc_ratio = r.alloc_peak_bytes / b.alloc_peak_bytes
        else:
            r.alloc_ratio = None


def run_benchmarks(
    benchmarker: Benchmarker,
    config: Optional[RunConfig] = None,
    names: Optional[List[str]] = None,
) -> List[CaseResult]:
    cfg = config or RunConfig()
    cases = select_cases(names)
    baselines = [c for c in cases if c.baseline]
    if len(baselines) != 1:
        raise ValueError(
            f"Exactly one baseline case must be selected, got {[c.name for c in baselines]}"
        )

    totals = verify_totals(benchmarker, cases)
    logger.info("All %d variants agree: total=%d", len(cases), next(iter(totals.values())))

    results = [measure_case(c, benchmarker, cfg, total=totals[c.name]) for c in cases]
    apply_baseline(results)
    return results
