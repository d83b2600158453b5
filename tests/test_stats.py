"""
Tests for run statistics and the final report
"""

import pytest

from datafuzz.stats import FuzzerStats, format_report


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stats(clock):
    return FuzzerStats(total_rounds=3, slow_query_ms=100, sample_interval_secs=5, clock=clock)


class TestCounters:
    """Query and oracle counters."""

    def test_empty_snapshot(self, stats):
        snapshot = stats.snapshot()
        assert snapshot.queries_executed == 0
        assert snapshot.success_rate == 0.0
        assert snapshot.p50_ms == 0.0
        assert snapshot.queries_per_second == 0.0

    def test_outcomes(self, stats):
        stats.record_query("q1", 1, success=True)
        stats.record_query("q2", 1, success=False, whitelisted=True)
        stats.record_query("q3", 1, success=False)
        stats.record_query("q4", 1, success=False, timed_out=True)
        snapshot = stats.snapshot()
        assert snapshot.queries_executed == 4
        assert snapshot.queries_succeeded == 1
        assert snapshot.whitelisted_errors == 1
        assert snapshot.unexpected_errors == 1
        assert snapshot.timeouts == 1
        assert snapshot.success_rate == 25.0

    def test_oracles_and_rounds(self, stats):
        stats.record_oracle(True)
        stats.record_oracle(False)
        stats.record_generation_failure()
        stats.complete_round()
        snapshot = stats.snapshot()
        assert (snapshot.oracle_passes, snapshot.oracle_failures) == (1, 1)
        assert snapshot.generation_failures == 1
        assert snapshot.rounds_completed == 1
        assert snapshot.total_rounds == 3

    def test_throughput(self, stats, clock):
        for _ in range(10):
            stats.record_query("q", 1, success=True)
        clock.now += 5
        assert stats.snapshot().queries_per_second == pytest.approx(2.0)
        assert stats.snapshot().running_time_secs == pytest.approx(5.0)


class TestLatency:
    """Percentiles and slow queries."""

    def test_percentiles(self, stats):
        for ms in range(1, 101):
            stats.record_query("q", ms, success=True)
        snapshot = stats.snapshot()
        assert snapshot.p50_ms == pytest.approx(50.5)
        assert snapshot.p50_ms <= snapshot.p90_ms <= snapshot.p99_ms <= 100

    def test_slow_threshold_is_inclusive(self, stats):
        stats.record_query("fast", 99.9, success=True)
        stats.record_query("edge", 100, success=True)
        snapshot = stats.snapshot()
        assert snapshot.slow_queries == 1
        assert snapshot.slowest_queries == ["100ms: edge"]

    def test_slow_queries_are_capped(self, stats):
        for i in range(25):
            stats.record_query(f"q{i}", 500, success=True)
        snapshot = stats.snapshot()
        # every slow query is counted, only the latest texts are kept
        assert snapshot.slow_queries == 25
        assert len(snapshot.slowest_queries) == FuzzerStats.MAX_SLOW_QUERIES_KEPT
        assert snapshot.slowest_queries[-1] == "500ms: q24"


class TestRecentQuery:
    """The recent query is sampled, not overwritten on every call."""

    def test_sampling(self, stats, clock):
        stats.record_query("first", 1, success=True)
        stats.record_query("second", 1, success=True)
        assert stats.snapshot().recent_query == "first"
        clock.now += 5
        stats.record_query("third", 1, success=True)
        assert stats.snapshot().recent_query == "third"


class TestReport:
    def test_format_report(self, stats):
        stats.record_query("SELECT 1", 250, success=True)
        stats.complete_round()
        report = format_report(stats.snapshot())
        assert "=== DataFusion Fuzzing Report ===" in report
        assert "- Rounds: 1/3" in report
        assert "- Queries Executed: 1" in report
        assert "1. 250ms: SELECT 1" in report
