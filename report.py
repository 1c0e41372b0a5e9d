#!/usr/bin/env python3
"""
report.py
Date: 18/10/2026

Console table and CSV/JSON export for benchmark results, plus a
side-by-side comparison of two saved runs:
  - Baseline run: a results JSON written by main.py earlier
  - Candidate run: a results JSON written by main.py now

The comparison:
  1) Loads both results files
  2) Matches cases by name
  3) Computes per case:
       - speedup (baseline mean ns/op / candidate mean ns/op)
       - allocated bytes/op delta
  4) Prints a table and optionally exports compare.csv

Usage:
  python report.py \
      --baseline_json runs/before/results.json \
      --candidate_json runs/after/results.json \
      --out_csv runs/compare.csv
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from harness import CaseResult


logger = logging.getLogger(__name__)

RESULT_FIELDS = [
    "name",
    "description",
    "baseline",
    "total",
    "iterations",
    "rounds",
    "mean_ns",
    "stddev_ns",
    "median_ns",
    "min_ns",
    "ops_per_sec",
    "gen0_collections",
    "alloc_peak_bytes",
    "alloc_net_bytes",
    "ratio",
    "alloc_ratio",
]


# ----------------------------
# Helpers
# ----------------------------

def _safe_float(x: Any, default: float = 0.0) -> float:
    try:
        return float(x)
    except (TypeError, ValueError):
        return default


def _fmt_opt(x: Optional[float], fmt: str) -> str:
    return "n/a" if x is None else format(x, fmt)


# ----------------------------
# Console table
# ----------------------------

def format_results_table(results: Sequence[CaseResult]) -> str:
    header = (
        f"{'Method':<36} | {'Mean (ns)':>11} | {'StdDev':>9} | {'Ratio':>6} | "
        f"{'Op/s':>12} | {'Alloc (B/op)':>12} | {'Gen0':>5}"
    )
    lines = [header, "-" * len(header)]
    for r in results:
        name = r.description + (" *" if r.baseline else "")
        lines.append(
            f"{name:<36} | {r.mean_ns:>11.1f} | {r.stddev_ns:>9.1f} | "
            f"{_fmt_opt(r.ratio, '.2f'):>6} | {r.ops_per_sec:>12,.0f} | "
            f"{_fmt_opt(r.alloc_peak_bytes, '.1f'):>12} | {r.gen0_collections:>5}"
        )
    return "\n".join(lines)


def print_results_table(results: Sequence[CaseResult]) -> None:
    print("\n=== Order Book Aggregation Benchmarks (* = baseline) ===")
    print(format_results_table(results))
    if results:
        print(f"\nTotal quantity (all variants): {results[0].total}\n")


# ----------------------------
# Export
# ----------------------------

def export_results_csv(results: Sequence[CaseResult], out_path: str | Path) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=RESULT_FIELDS, extrasaction="ignore")
        w.writeheader()
        for r in results:
            row = r.to_dict()
            w.writerow({k: ("" if row.get(k) is None else row.get(k)) for k in RESULT_FIELDS})
    logger.info("Results CSV written to %s", out_path)


def export_results_json(results: Sequence[CaseResult], out_path: str | Path) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in results], f, indent=2)
    logger.info("Results JSON written to %s", out_path)


def load_results_json(path: str | Path) -> List[Dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"results file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list of case results")
    return raw


# ----------------------------
# Run-vs-run comparison
# ----------------------------

@dataclass
class CaseComparison:
    name: str
    baseline_mean_ns: float
    candidate_mean_ns: float
    speedup: float
    baseline_alloc_bytes: Optional[float]
    candidate_alloc_bytes: Optional[float]
    alloc_delta_bytes: Optional[float]


def compare_runs(
    baseline_rows: Sequence[Dict[str, Any]],
    candidate_rows: Sequence[Dict[str, Any]],
) -> List[CaseComparison]:
    """Match cases by name; cases missing from either run are skipped."""
    cand = {row["name"]: row for row in candidate_rows}
    out: List[CaseComparison] = []
    for b in baseline_rows:
        c = cand.get(b["name"])
        if c is None:
            logger.warning("Case %s missing from candidate run; skipping", b["name"])
            continue
        b_ns = _safe_float(b.get("mean_ns"))
        c_ns = _safe_float(c.get("mean_ns"))
        b_alloc = b.get("alloc_peak_bytes")
        c_alloc = c.get("alloc_peak_bytes")
        delta = None
        if b_alloc is not None and c_alloc is not None:
            delta = _safe_float(c_alloc) - _safe_float(b_alloc)
        out.append(
            CaseComparison(
                name=b["name"],
                baseline_mean_ns=b_ns,
                candidate_mean_ns=c_ns,
                speedup=(b_ns / c_ns) if c_ns > 0 else 0.0,
                baseline_alloc_bytes=b_alloc,
                candidate_alloc_bytes=c_alloc,
                alloc_delta_bytes=delta,
            )
        )
    return out


def print_comparison(rows: Sequence[CaseComparison]) -> None:
    print("\n=== Run Comparison (baseline vs candidate) ===")
    for r in rows:
        print(
            f"{r.name:>20} | base={r.baseline_mean_ns:>10.1f} ns | "
            f"cand={r.candidate_mean_ns:>10.1f} ns | speedup={r.speedup:>6.3f}x | "
            f"alloc Δ={_fmt_opt(r.alloc_delta_bytes, '+.1f')} B/op"
        )


def export_comparison_csv(rows: Sequence[CaseComparison], out_path: str | Path) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        fieldnames = list(CaseComparison.__dataclass_fields__)
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for r in rows:
            w.writerow({k: ("" if v is None else v) for k, v in asdict(r).items()})
    logger.info("Comparison CSV written to %s", out_path)


# ----------------------------
# CLI
# ----------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Compare two saved benchmark result files.")
    p.add_argument("--baseline_json", type=str, required=True, help="Results JSON of the reference run")
    p.add_argument("--candidate_json", type=str, required=True, help="Results JSON of the run to compare")
    p.add_argument("--out_csv", type=str, default="", help="Optional path for the comparison CSV")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = parse_args(argv)

    baseline = load_results_json(args.baseline_json)
    candidate = load_results_json(args.candidate_json)

    rows = compare_runs(baseline, candidate)
    print_comparison(rows)

    if args.out_csv:
        export_comparison_csv(rows, Path(args.out_csv))


if __name__ == "__main__":
    main()
