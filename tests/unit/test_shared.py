"""Unit tests for interview_sync.shared."""

from __future__ import annotations

import json
import threading

from interview_sync.shared import SyncCounters, build_sync_report, run_batch, write_run_report


class TestRunBatch:
    def test_results_in_input_order(self):
        out = run_batch(lambda x: x * 2, [3, 1, 2], max_workers=3)
        assert out == [(3, 6, None), (1, 2, None), (2, 4, None)]

    def test_errors_captured_per_item(self):
        def fn(x):
            if x == 2:
                raise ValueError("boom")
            return x

        out = run_batch(fn, [1, 2, 3], max_workers=2)
        assert [item for item, _, exc in out if exc is None] == [1, 3]
        assert isinstance(out[1][2], ValueError)

    def test_empty_input(self):
        assert run_batch(lambda x: x, [], max_workers=4) == []

    def test_concurrency_is_bounded(self):
        lock = threading.Lock()
        active = 0
        peak = 0
        gate = threading.Barrier(2, timeout=5)

        def fn(x):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            gate.wait()
            with lock:
                active -= 1
            return x

        run_batch(fn, range(4), max_workers=2)
        assert peak == 2


class TestCounters:
    def test_remote_failures_sum(self):
        c = SyncCounters(member_create_failures=1, update_failures=2, video_failures=3, relation_lookup_failures=1)
        assert c.remote_failures == 7

    def test_parse_errors_are_not_remote_failures(self):
        assert SyncCounters(parse_errors=5).remote_failures == 0

    def test_to_dict_includes_failures(self):
        c = SyncCounters()
        c.fail("update_failed", "p1", "400")
        d = c.to_dict()
        assert d["failures"] == [{"kind": "update_failed", "target": "p1", "detail": "400"}]
        assert "updates_written" in d


class TestReports:
    def test_relations_report_sections(self):
        c = SyncCounters(updates_written=3)
        c.fail("parse_error", "p9", "no match")
        report = build_sync_report(c, mode="relations", dry_run=False)
        assert "updates_written           : 3" in report
        assert "[parse_error] p9: no match" in report
        assert "--- Videos ---" not in report

    def test_all_report_has_both_flows(self):
        report = build_sync_report(SyncCounters(), mode="all", dry_run=True)
        assert "--- Reconciliation ---" in report
        assert "--- Videos ---" in report

    def test_write_run_report(self, tmp_path):
        path = write_run_report(tmp_path / "reports", "run-1", "2026-01-01T00:00:00", "videos", False, SyncCounters())
        data = json.loads(path.read_text())
        assert path.name == "run-1.json"
        assert data["mode"] == "videos"
        assert data["counters"]["videos_appended"] == 0
