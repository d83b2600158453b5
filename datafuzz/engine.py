"""
Engine adapters for the fuzzer

The fuzzer only talks to the engine under test through the ``Engine``
interface. ``DataFusionEngine`` runs every statement on an in-process
DataFusion ``SessionContext``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import pyarrow as pa
from datafusion import SessionConfig, SessionContext

from .errors import EngineError, QueryTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """Session options; None keeps the engine default"""
    target_partitions: Optional[int] = None
    batch_size: Optional[int] = None

    def describe(self) -> str:
        parts = []
        if self.target_partitions is not None:
            parts.append(f"target_partitions={self.target_partitions}")
        if self.batch_size is not None:
            parts.append(f"batch_size={self.batch_size}")
        return ", ".join(parts) if parts else "default configuration"


class Engine(ABC):
    """Abstract base class for engines under test"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self._base_tables: List[str] = []

    def track_base_table(self, name: str):
        """Remember a base table so that ``fork`` copies it"""
        if name not in self._base_tables:
            self._base_tables.append(name)

    def base_tables(self) -> List[str]:
        return list(self._base_tables)

    @abstractmethod
    def execute_sync(self, sql: str) -> List[pa.RecordBatch]:
        """Plan and run one statement, returning all result batches"""
        pass

    @abstractmethod
    def register_table(self, name: str, batch: pa.RecordBatch):
        """Register an in-memory table"""
        pass

    @abstractmethod
    def drop_all_tables(self):
        """Drop every table and view"""
        pass

    @abstractmethod
    def schema_of(self, sql: str) -> pa.Schema:
        """Output schema of a query, without running it"""
        pass

    @abstractmethod
    def fork(self, config: EngineConfig) -> "Engine":
        """New session with ``config`` holding copies of the base tables"""
        pass

    async def execute(self, sql: str, timeout: Optional[float] = None) -> List[pa.RecordBatch]:
        """
        Run ``execute_sync`` in a worker thread, racing it against ``timeout``.

        A query that times out is abandoned: its worker thread keeps running
        until the engine returns, but the result is discarded.
        """
        work = asyncio.to_thread(self.execute_sync, sql)
        if timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, timeout)
        except asyncio.TimeoutError as e:
            raise QueryTimeoutError(timeout) from e


class DataFusionEngine(Engine):
    """Engine backed by a DataFusion SessionContext"""

    def __init__(self, config: Optional[EngineConfig] = None):
        super().__init__(config)
        self.ctx = self._new_session()

    def _new_session(self) -> SessionContext:
        session_config = SessionConfig()
        if self.config.target_partitions is not None:
            session_config = session_config.with_target_partitions(self.config.target_partitions)
        if self.config.batch_size is not None:
            session_config = session_config.with_batch_size(self.config.batch_size)
        return SessionContext(session_config)

    def _plan(self, sql: str):
        try:
            return self.ctx.sql(sql)
        except Exception as e:
            raise EngineError("planning", str(e)) from e

    def execute_sync(self, sql: str) -> List[pa.RecordBatch]:
        df = self._plan(sql)
        try:
            return df.collect()
        except Exception as e:
            raise EngineError("execution", str(e)) from e

    def register_table(self, name: str, batch: pa.RecordBatch):
        try:
            self.ctx.register_record_batches(name, [[batch]])
        except Exception as e:
            raise EngineError("execution", str(e)) from e
        self.track_base_table(name)

    def drop_all_tables(self):
        # a fresh session drops tables, views and any session state together
        self.ctx = self._new_session()
        self._base_tables = []

    def schema_of(self, sql: str) -> pa.Schema:
        return self._plan(sql).schema()

    def fork(self, config: EngineConfig) -> "DataFusionEngine":
        forked = DataFusionEngine(config)
        for name in self._base_tables:
            schema = self.schema_of(f"SELECT * FROM {name}")
            table = pa.Table.from_batches(self.execute_sync(f"SELECT * FROM {name}"), schema=schema)
            batches = table.combine_chunks().to_batches()
            batch = batches[0] if batches else pa.RecordBatch.from_pylist([], schema=schema)
            forked.register_table(name, batch)
        logger.debug(f"Forked session ({config.describe()}) with {len(self._base_tables)} tables")
        return forked
