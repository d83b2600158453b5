"""
Run statistics shared between the fuzzing loop and the status display
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List

import numpy as np


@dataclass
class StatsSnapshot:
    """Point-in-time copy of FuzzerStats, safe to read without the lock"""
    rounds_completed: int = 0
    total_rounds: int = 0
    queries_executed: int = 0
    queries_succeeded: int = 0
    whitelisted_errors: int = 0
    unexpected_errors: int = 0
    timeouts: int = 0
    slow_queries: int = 0
    oracle_passes: int = 0
    oracle_failures: int = 0
    generation_failures: int = 0
    success_rate: float = 0.0
    queries_per_second: float = 0.0
    running_time_secs: float = 0.0
    p50_ms: float = 0.0
    p90_ms: float = 0.0
    p99_ms: float = 0.0
    recent_query: str = ""
    slowest_queries: List[str] = field(default_factory=list)


class FuzzerStats:
    """Counters and latencies, every method takes the internal mutex"""

    MAX_SLOW_QUERIES_KEPT = 10

    def __init__(
        self,
        total_rounds: int = 0,
        slow_query_ms: float = 1000,
        sample_interval_secs: float = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lock = threading.Lock()
        self._clock = clock
        self.total_rounds = total_rounds
        self.slow_query_ms = slow_query_ms
        self.sample_interval_secs = sample_interval_secs

        self.rounds_completed = 0
        self.queries_executed = 0
        self.queries_succeeded = 0
        self.whitelisted_errors = 0
        self.unexpected_errors = 0
        self.timeouts = 0
        self.oracle_passes = 0
        self.oracle_failures = 0
        self.generation_failures = 0
        self.latencies_ms: List[float] = []
        self.slow_query_count = 0
        self.slow_queries: List[str] = []

        self.start_time = self._clock()
        self.last_sample_time = self.start_time
        self.recent_query = ""

    def record_query(self, query: str, elapsed_ms: float, success: bool,
                     whitelisted: bool = False, timed_out: bool = False):
        with self._lock:
            self.queries_executed += 1
            self.latencies_ms.append(elapsed_ms)
            if success:
                self.queries_succeeded += 1
            elif timed_out:
                self.timeouts += 1
            elif whitelisted:
                self.whitelisted_errors += 1
            else:
                self.unexpected_errors += 1

            if elapsed_ms >= self.slow_query_ms:
                self.slow_query_count += 1
                self.slow_queries.append(f"{elapsed_ms:.0f}ms: {query}")
                del self.slow_queries[:-self.MAX_SLOW_QUERIES_KEPT]

            now = self._clock()
            if not self.recent_query or now - self.last_sample_time >= self.sample_interval_secs:
                self.recent_query = query
                self.last_sample_time = now

    def record_oracle(self, passed: bool):
        with self._lock:
            if passed:
                self.oracle_passes += 1
            else:
                self.oracle_failures += 1

    def record_generation_failure(self):
        with self._lock:
            self.generation_failures += 1

    def complete_round(self):
        with self._lock:
            self.rounds_completed += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            running = max(self._clock() - self.start_time, 0.0)
            if self.latencies_ms:
                p50, p90, p99 = np.percentile(self.latencies_ms, [50, 90, 99])
            else:
                p50 = p90 = p99 = 0.0
            return StatsSnapshot(
                rounds_completed=self.rounds_completed,
                total_rounds=self.total_rounds,
                queries_executed=self.queries_executed,
                queries_succeeded=self.queries_succeeded,
                whitelisted_errors=self.whitelisted_errors,
                unexpected_errors=self.unexpected_errors,
                timeouts=self.timeouts,
                slow_queries=self.slow_query_count,
                oracle_passes=self.oracle_passes,
                oracle_failures=self.oracle_failures,
                generation_failures=self.generation_failures,
                success_rate=(
                    self.queries_succeeded / self.queries_executed * 100
                    if self.queries_executed else 0.0
                ),
                queries_per_second=self.queries_executed / running if running > 0 else 0.0,
                running_time_secs=running,
                p50_ms=float(p50),
                p90_ms=float(p90),
                p99_ms=float(p99),
                recent_query=self.recent_query,
                slowest_queries=list(self.slow_queries),
            )


def format_report(snapshot: StatsSnapshot) -> str:
    """Generate the end-of-run report"""
    report = f"""
=== DataFusion Fuzzing Report ===

Summary:
- Rounds: {snapshot.rounds_completed}/{snapshot.total_rounds}
- Queries Executed: {snapshot.queries_executed}
- Queries Succeeded: {snapshot.queries_succeeded} ({snapshot.success_rate:.1f}% success)
- Whitelisted Errors: {snapshot.whitelisted_errors}
- Unexpected Errors: {snapshot.unexpected_errors}
- Timeouts: {snapshot.timeouts}
- Oracle Checks: {snapshot.oracle_passes} passed, {snapshot.oracle_failures} failed
- Generation Failures: {snapshot.generation_failures}
- Running Time: {snapshot.running_time_secs:.1f}s ({snapshot.queries_per_second:.2f} queries/s)

Latency:
- p50: {snapshot.p50_ms:.2f}ms
- p90: {snapshot.p90_ms:.2f}ms
- p99: {snapshot.p99_ms:.2f}ms
- Slow Queries: {snapshot.slow_queries}
"""
    if snapshot.slowest_queries:
        report += "\nSlow Queries:\n"
        for i, query in enumerate(snapshot.slowest_queries, 1):
            report += f"{i}. {query}\n"
    return report
