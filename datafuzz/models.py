"""
Data classes shared across the fuzzing pipeline
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

import pyarrow as pa

from .types import FuzzerDataType

if TYPE_CHECKING:
    from .engine import Engine


def column_values(column) -> List[Any]:
    """
    Python values of an Arrow column.

    Nanosecond time and timestamp values become their raw int64 nanoseconds,
    since ``to_pylist`` cannot represent sub-microsecond values without pandas.
    """
    arrow_type = column.type
    if (pa.types.is_time64(arrow_type) or pa.types.is_timestamp(arrow_type)) and arrow_type.unit == "ns":
        return column.cast(pa.int64()).to_pylist()
    return column.to_pylist()


@dataclass(frozen=True)
class LogicalColumn:
    """A column as the generators see it"""
    name: str
    data_type: FuzzerDataType


def column_name(table_name: str, ordinal: int, data_type: FuzzerDataType) -> str:
    """Base-table column name, ``ordinal`` starts at 1"""
    return f"col_{table_name}_{ordinal}_{data_type.display_name()}"


class LogicalTableType(Enum):
    TABLE = "table"
    VIEW = "view"
    SUBQUERY = "subquery"


@dataclass
class LogicalTable:
    """
    A table known to the registry.

    ``subquery_sql`` is only set for SUBQUERY entries and holds the SQL of the
    derived table.
    """
    name: str
    columns: List[LogicalColumn]
    table_type: LogicalTableType = LogicalTableType.TABLE
    subquery_sql: Optional[str] = None

    def is_base_table(self) -> bool:
        return self.table_type == LogicalTableType.TABLE

    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class QueryContext:
    """One query and the engine session it runs against"""
    query: str
    engine: "Engine"
    description: Optional[str] = None

    @classmethod
    def from_queries(cls, queries: Sequence[str], engine: "Engine") -> List["QueryContext"]:
        return [cls(query, engine) for query in queries]

    @classmethod
    def from_single_query_multiple_contexts(
        cls, query: str, engines: Sequence[Tuple["Engine", Optional[str]]]
    ) -> List["QueryContext"]:
        """Same query text against several sessions, e.g. one per configuration"""
        return [cls(query, engine, description) for engine, description in engines]

    @staticmethod
    def get_queries(contexts: Sequence["QueryContext"]) -> List[str]:
        return [c.query for c in contexts]

    def display_description(self) -> str:
        if self.description:
            return f"Query with {self.description}: {self.query}"
        return f"Query: {self.query}"


@dataclass
class QueryExecutionResult:
    """Outcome of executing one QueryContext"""
    query_context: QueryContext
    batches: Optional[List[pa.RecordBatch]] = None
    error: Optional[str] = None
    error_stage: Optional[str] = None
    timed_out: bool = False
    whitelisted: bool = False
    execution_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and not self.timed_out

    @property
    def row_count(self) -> int:
        if not self.batches:
            return 0
        return sum(batch.num_rows for batch in self.batches)

    def rows(self) -> List[Tuple[Any, ...]]:
        """Result rows as tuples, in column order"""
        if not self.batches:
            return []
        table = pa.Table.from_batches(self.batches)
        return list(zip(*(column_values(column) for column in table.columns)))


@dataclass
class RunSummary:
    """What a fuzzing run did, in order"""
    rounds_completed: int = 0
    tables: List[str] = field(default_factory=list)
    queries: List[str] = field(default_factory=list)
    oracle_results: List[bool] = field(default_factory=list)
    queries_executed: int = 0
    whitelisted_errors: int = 0
    unexpected_errors: int = 0
    timeouts: int = 0
    oracle_failures: int = 0
    generation_failures: int = 0

    @property
    def bugs_found(self) -> int:
        return self.unexpected_errors + self.timeouts + self.oracle_failures
