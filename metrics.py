# metrics.py
'''
Date: 18/10/2026

In-process latency recorder for the aggregation benchmarks.

Entries used across the project:
  - fixture.build          one sample per fixture construction
  - bench.<case>           one sample per timed round, in seconds per invocation
  - harness.<case>         wall time spent measuring a case end to end
'''
import time
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from contextlib import contextmanager
from pathlib import Path
import csv
import json
import logging

#pip install matplotlib  (only for plot_throughput_matplotlib)

logger = logging.getLogger(__name__)

BENCH_PREFIX = "bench."


@dataclass
class MetricEntry:
    count: int = 0
    total: float = 0.0
    samples: List[float] = field(default_factory=list)

    def observe(self, value: float, store_samples: bool = False) -> None:
        self.count += 1
        self.total += value
        if store_samples:
            self.samples.append(value)

    @property
    def avg(self) -> float:
        return self.total / self.count if self.count else 0.0

    @property
    def min(self) -> float:
        return min(self.samples) if self.samples else 0.0

    @property
    def max(self) -> float:
        return max(self.samples) if self.samples else 0.0


class MetricsRecorder:
    """Simple, thread-safe in-process latency recorder."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, MetricEntry] = {}

    def observe(self, name: str, duration_sec: float, *, store_samples: bool = False) -> None:
        with self._lock:
            if name not in self._entries:
                self._entries[name] = MetricEntry()
            self._entries[name].observe(duration_sec, store_samples=store_samples)

    def samples(self, name: str) -> List[float]:
        with self._lock:
            entry = self._entries.get(name)
            return list(entry.samples) if entry is not None else []

    def names(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def summary(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {
                name: {
                    "count": entry.count,
                    "total_sec": entry.total,
                    "avg_ms": entry.avg * 1000.0,
                    "min_ms": entry.min * 1000.0,
                    "max_ms": entry.max * 1000.0,
                }
                for name, entry in self._entries.items()
            }

    def dump_csv(self, path: str) -> None:
        data = self.summary()
        if not data:
            logger.warning("MetricsRecorder.dump_csv(%s): no data to write", path)
            return
        fieldnames = ["name", "count", "total_sec", "avg_ms", "min_ms", "max_ms"]
        with open(path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for name, stats in data.items():
                writer.writerow({"name": name, **stats})

    def dump_json(self, path: str) -> None:
        data = self.summary()
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    def log_summary(self, logger: Optional[logging.Logger] = None) -> None:
        if logger is None:
            logger = logging.getLogger(__name__)
        logger.info("=== Latency Metrics Summary ===")
        for name, stats in self.summary().items():
            logger.info(
                "%s: count=%d, avg=%.6f ms, total=%.3f s (min=%.6f ms, max=%.6f ms)",
                name,
                stats["count"],
                stats["avg_ms"],
                stats["total_sec"],
                stats["min_ms"],
                stats["max_ms"],
            )


# convenient global singleton
metrics = MetricsRecorder()


@contextmanager
def record_latency(name: str, *, store_samples: bool = False):
    """
    Context manager for timing a block.

    Example:
        with record_latency("fixture.build"):
            build_book()
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        end = time.perf_counter()
        metrics.observe(name, end - start, store_samples=store_samples)


# ---------------------------------------------------------------------------
# Throughput per benchmark case
# ---------------------------------------------------------------------------

def _compute_throughput(recorder: MetricsRecorder) -> Dict[str, Dict[str, Optional[float]]]:
    """
    Derive invocations/sec for every `bench.<case>` entry.

    Each sample is the mean seconds per invocation of one timed round.

    Returns
    -------
    stats : dict
        {
          "<case>": {
            "rounds": int,
            "avg_latency_s": float or None,
            "throughput_per_s": float or None,
          },
          ...
        }
    """
    stats: Dict[str, Dict[str, Optional[float]]] = {}
    for key in recorder.names():
        if not key.startswith(BENCH_PREFIX):
            continue
        samples = recorder.samples(key)
        case = key[len(BENCH_PREFIX):]
        if samples:
            avg = sum(samples) / len(samples)
            stats[case] = {
                "rounds": len(samples),
                "avg_latency_s": avg,
                "throughput_per_s": 1.0 / avg if avg > 0 else float("inf"),
            }
        else:
            stats[case] = {"rounds": 0, "avg_latency_s": None, "throughput_per_s": None}
    return stats


def summarize_throughput(recorder: MetricsRecorder) -> None:
    """
    Pretty-print invocations/sec per case for the console.
    """
    stats = _compute_throughput(recorder)

    print("\n=== Benchmark Throughput Summary ===")
    if not stats:
        print("No benchmark metrics found (bench.*).")
    for case, s in stats.items():
        if s["rounds"] and s["avg_latency_s"] is not None:
            print(
                f"{case:>20}: rounds={s['rounds']:<3} "
                f"avg={s['avg_latency_s'] * 1e9:>10.1f} ns/op  "
                f"ops/s={s['throughput_per_s']:>14,.0f}"
            )
        else:
            print(f"{case:>20}: no samples")
    print("====================================\n")


def export_throughput_json(recorder: MetricsRecorder, path: str | Path = "throughput.json") -> None:
    stats = _compute_throughput(recorder)
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with out_path.open("w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2)

    logger.info("Throughput JSON written to %s", out_path)


def export_throughput_csv(recorder: MetricsRecorder, path: str | Path = "throughput.csv") -> None:
    """
    One row per case.

    Columns:
      case, rounds, avg_latency_s, throughput_per_s
    """
    stats = _compute_throughput(recorder)
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    rows = []
    for case, s in stats.items():
        rows.append(
            {
                "case": case,
                "rounds": s["rounds"],
                "avg_latency_s": "" if s["avg_latency_s"] is None else s["avg_latency_s"],
                "throughput_per_s": "" if s["throughput_per_s"] is None else s["throughput_per_s"],
            }
        )

    with out_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=["case", "rounds", "avg_latency_s", "throughput_per_s"]
        )
        writer.writeheader()
        writer.writerows(rows)

    logger.info("Throughput CSV written to %s", out_path)


def plot_throughput_matplotlib(recorder: MetricsRecorder, path: str | Path | None = None) -> None:
    """
    Bar chart of invocations/sec per case.

    Parameters
    ----------
    recorder : MetricsRecorder
        The metrics recorder instance.
    path : str or Path or None
        If provided, saves the figure to this file. If None, shows the plot.
    """
    import matplotlib.pyplot as plt

    stats = _compute_throughput(recorder)
    labels = [c for c, s in stats.items() if s["throughput_per_s"] is not None]
    values = [stats[c]["throughput_per_s"] for c in labels]

    if not labels:
        logger.warning("No throughput data available to plot.")
        return

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(labels, values)
    ax.set_ylabel("Throughput (invocations / second)")
    ax.set_title("Order Book Aggregation Throughput")
    ax.grid(axis="y", linestyle="--", alpha=0.5)
    plt.setp(ax.get_xticklabels(), rotation=10)

    if path is not None:
        out_path = Path(path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path, bbox_inches="tight")
        logger.info("Throughput plot saved to %s", out_path)
        plt.close(fig)
    else:
        plt.show()
