"""Tests for the latency recorder and throughput exports."""

import csv
import json
import logging

import pytest

from metrics import (
    MetricEntry,
    MetricsRecorder,
    _compute_throughput,
    export_throughput_csv,
    export_throughput_json,
    metrics,
    record_latency,
)


class TestMetricEntry:
    def test_observe_and_stats(self):
        e = MetricEntry()
        e.observe(1.0, store_samples=True)
        e.observe(3.0, store_samples=True)
        assert e.count == 2
        assert e.avg == pytest.approx(2.0)
        assert e.min == 1.0
        assert e.max == 3.0

    def test_empty_entry(self):
        e = MetricEntry()
        assert e.avg == 0.0
        assert e.min == 0.0


class TestMetricsRecorder:
    """Recorder summary and persistence."""

    def test_summary_in_milliseconds(self):
        rec = MetricsRecorder()
        rec.observe("x", 0.002, store_samples=True)
        s = rec.summary()["x"]
        assert s["count"] == 1
        assert s["avg_ms"] == pytest.approx(2.0)

    def test_samples_are_copied(self):
        rec = MetricsRecorder()
        rec.observe("x", 1.0, store_samples=True)
        rec.samples("x").append(99.0)
        assert rec.samples("x") == [1.0]
        assert rec.samples("missing") == []

    def test_reset(self):
        rec = MetricsRecorder()
        rec.observe("x", 1.0)
        rec.reset()
        assert rec.names() == []

    def test_dump_json_and_csv(self, tmp_path):
        rec = MetricsRecorder()
        rec.observe("fixture.build", 0.5)
        rec.dump_json(str(tmp_path / "lat.json"))
        rec.dump_csv(str(tmp_path / "lat.csv"))

        data = json.loads((tmp_path / "lat.json").read_text())
        assert data["fixture.build"]["count"] == 1
        rows = list(csv.DictReader((tmp_path / "lat.csv").open()))
        assert rows[0]["name"] == "fixture.build"

    def test_dump_csv_without_data_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            MetricsRecorder().dump_csv(str(tmp_path / "empty.csv"))
        assert not (tmp_path / "empty.csv").exists()
        assert "no data" in caplog.text

    def test_log_summary(self, caplog):
        rec = MetricsRecorder()
        rec.observe("bench.sync", 1e-6)
        with caplog.at_level(logging.INFO):
            rec.log_summary()
        assert "bench.sync" in caplog.text

    def test_record_latency_uses_global_recorder(self):
        with record_latency("block", store_samples=True):
            pass
        assert len(metrics.samples("block")) == 1


class TestThroughput:
    """Invocations/sec derived from bench.* entries."""

    def _recorder(self):
        rec = MetricsRecorder()
        rec.observe("bench.sync", 1e-6, store_samples=True)
        rec.observe("bench.sync", 3e-6, store_samples=True)
        rec.observe("bench.pure_async", 4e-6)  # no samples kept
        rec.observe("fixture.build", 0.1, store_samples=True)
        return rec

    def test_compute(self):
        stats = _compute_throughput(self._recorder())
        assert set(stats) == {"sync", "pure_async"}
        assert stats["sync"]["rounds"] == 2
        assert stats["sync"]["throughput_per_s"] == pytest.approx(500_000.0)
        assert stats["pure_async"]["throughput_per_s"] is None

    def test_exports(self, tmp_path):
        rec = self._recorder()
        export_throughput_json(rec, tmp_path / "out" / "t.json")
        export_throughput_csv(rec, tmp_path / "out" / "t.csv")

        data = json.loads((tmp_path / "out" / "t.json").read_text())
        assert data["sync"]["rounds"] == 2
        rows = {r["case"]: r for r in csv.DictReader((tmp_path / "out" / "t.csv").open())}
        assert rows["pure_async"]["throughput_per_s"] == ""
