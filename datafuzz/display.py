"""Live terminal status display for a fuzzing run using rich.live."""

import asyncio
import logging
import sys
import threading
from typing import Optional, TextIO

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .stats import FuzzerStats, StatsSnapshot

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_SECS = 0.25
QUIT_KEY = "q"
MAX_QUERY_WIDTH = 120


def build_status_table(snapshot: StatsSnapshot) -> Table:
    table = Table(title="DataFusion Fuzzer", expand=False, show_header=False)
    table.add_column("Metric", style="cyan", min_width=20)
    table.add_column("Value", min_width=30)

    table.add_row("Rounds", f"{snapshot.rounds_completed}/{snapshot.total_rounds}")
    table.add_row("Queries", str(snapshot.queries_executed))
    table.add_row("Success rate", f"{snapshot.success_rate:.1f}%")
    table.add_row("Queries/s", f"{snapshot.queries_per_second:.2f}")
    table.add_row("Running time", f"{snapshot.running_time_secs:.1f}s")
    table.add_row("Latency p50/p90/p99",
                  f"{snapshot.p50_ms:.2f} / {snapshot.p90_ms:.2f} / {snapshot.p99_ms:.2f} ms")
    table.add_row("Whitelisted errors", str(snapshot.whitelisted_errors))
    table.add_row(
        "Unexpected errors",
        Text(str(snapshot.unexpected_errors), style="bold red" if snapshot.unexpected_errors else ""),
    )
    table.add_row("Timeouts", Text(str(snapshot.timeouts), style="red" if snapshot.timeouts else ""))
    table.add_row(
        "Oracle checks",
        Text(
            f"{snapshot.oracle_passes} passed, {snapshot.oracle_failures} failed",
            style="bold red" if snapshot.oracle_failures else "green",
        ),
    )
    table.add_row("Slow queries", str(snapshot.slow_queries))
    table.add_row("Recent query", snapshot.recent_query.replace("\n", " ")[:MAX_QUERY_WIDTH])

    table.caption = f"Press {QUIT_KEY} + Enter to close this display"
    return table


class StatusDisplay:
    """
    Polls the run statistics and redraws them until the run finishes or the
    user asks to quit. It only reads the stats; closing it does not stop the run.
    """

    def __init__(self, stats: FuzzerStats, refresh_interval: float = REFRESH_INTERVAL_SECS,
                 console: Optional[Console] = None, input_stream: Optional[TextIO] = None):
        self.stats = stats
        self.refresh_interval = refresh_interval
        self.console = console
        self.input_stream = input_stream if input_stream is not None else sys.stdin
        self.quit_requested = threading.Event()

    def _watch_input(self):
        # blocking readline, so it lives on a daemon thread
        for line in self.input_stream:
            if line.strip().lower() == QUIT_KEY:
                self.quit_requested.set()
                return

    async def run(self, finished: asyncio.Event):
        watcher = threading.Thread(target=self._watch_input, name="status-display-input", daemon=True)
        watcher.start()

        with Live(build_status_table(self.stats.snapshot()), console=self.console,
                  refresh_per_second=max(1, int(1 / self.refresh_interval))) as live:
            while not finished.is_set() and not self.quit_requested.is_set():
                live.update(build_status_table(self.stats.snapshot()))
                try:
                    await asyncio.wait_for(finished.wait(), timeout=self.refresh_interval)
                except asyncio.TimeoutError:
                    pass
            live.update(build_status_table(self.stats.snapshot()))

        if self.quit_requested.is_set() and not finished.is_set():
            logger.info("Status display closed, fuzzing continues")
