"""
Per-run shared state: the engine session, the table registry and the name counters
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from .config import RunnerConfig
from .engine import DataFusionEngine, Engine
from .models import LogicalTable
from .stats import FuzzerStats

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many readers or one writer"""

    def __init__(self):
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class RuntimeContext:
    """
    Engine handle and logical table registry of one run.

    Tables are named t0, t1, ... and views v0, v1, ... from two counters that
    reset together.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self._lock = ReadWriteLock()
        self._engine = engine or DataFusionEngine()
        self._registry: Dict[str, LogicalTable] = {}
        self._table_counter = 0
        self._view_counter = 0

    @property
    def engine(self) -> Engine:
        with self._lock.read():
            return self._engine

    def next_table_name(self) -> str:
        with self._lock.write():
            name = f"t{self._table_counter}"
            self._table_counter += 1
        return name

    def next_view_name(self) -> str:
        with self._lock.write():
            name = f"v{self._view_counter}"
            self._view_counter += 1
        return name

    def reset_table_counter(self):
        with self._lock.write():
            self._table_counter = 0
            self._view_counter = 0

    def register_table(self, table: LogicalTable):
        with self._lock.write():
            self._registry[table.name] = table

    def get_table(self, name: str) -> Optional[LogicalTable]:
        with self._lock.read():
            return self._registry.get(name)

    def list_tables(self, base_only: bool = False) -> List[LogicalTable]:
        """Snapshot of the registry in registration order"""
        with self._lock.read():
            tables = list(self._registry.values())
        if base_only:
            tables = [t for t in tables if t.is_base_table()]
        return tables

    def table_count(self) -> int:
        with self._lock.read():
            return len(self._registry)

    def reset(self):
        """Drop all tables from the engine, clear the registry and the counters"""
        with self._lock.write():
            self._engine.drop_all_tables()
            self._registry.clear()
            self._table_counter = 0
            self._view_counter = 0


class GlobalContext:
    """Everything a fuzzing run shares: config, runtime state and statistics"""

    def __init__(
        self,
        runner_config: Optional[RunnerConfig] = None,
        runtime_context: Optional[RuntimeContext] = None,
        stats: Optional[FuzzerStats] = None,
    ):
        self.runner_config = runner_config or RunnerConfig()
        self.runtime_context = runtime_context or RuntimeContext()
        self.stats = stats or FuzzerStats(
            total_rounds=self.runner_config.rounds,
            slow_query_ms=self.runner_config.slow_query_ms,
            sample_interval_secs=self.runner_config.sample_interval_secs,
        )

    def reset_engine_context(self):
        self.runtime_context.reset()
        logger.info("Engine context reset: all tables dropped, table counter reset")
