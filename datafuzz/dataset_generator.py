"""
Random table generation

Each call to ``generate_dataset`` creates one table with random columns and
rows in the engine and registers it in the runtime context. Tables are built
either natively (Arrow record batch registration) or through SQL
(CREATE TABLE + INSERT); both leave a queryable table of the same name.
"""

import logging
from typing import List, Optional

import pyarrow as pa

from .context import GlobalContext
from .errors import EngineError, GenerationError
from .models import LogicalColumn, LogicalTable, LogicalTableType, column_name
from .rng import choose, rng_from_seed, random_range
from .types import FuzzerDataType, random_data_type
from .value_generator import (
    GeneratedValue,
    ValueGenerationConfig,
    build_arrow_array,
    generate_value,
)

logger = logging.getLogger(__name__)

CREATION_MODES = ("native", "sql")


class DatasetGenerator:
    """Generate random tables into the engine"""

    def __init__(self, seed: int, ctx: GlobalContext,
                 value_config: Optional[ValueGenerationConfig] = None):
        self.rng = rng_from_seed(seed)
        self.ctx = ctx
        self.value_config = value_config or ValueGenerationConfig()

    def generate_dataset(self, mode: Optional[str] = None) -> LogicalTable:
        """
        Create one random table and register it.

        ``mode`` is "native", "sql" or "mixed"; it defaults to the configured
        table_creation_mode. "mixed" picks one of the two per table.
        """
        config = self.ctx.runner_config
        runtime = self.ctx.runtime_context

        table_name = runtime.next_table_name()
        num_columns = random_range(self.rng, 1, config.max_column_count)
        columns = []
        for i in range(num_columns):
            data_type = random_data_type(self.rng)
            columns.append(LogicalColumn(column_name(table_name, i + 1, data_type), data_type))

        mode = mode or config.table_creation_mode
        if mode == "mixed":
            mode = choose(self.rng, CREATION_MODES)
        if mode not in CREATION_MODES:
            raise GenerationError(f"Unknown table creation mode: {mode}")

        row_count = random_range(self.rng, 0, config.max_row_count - 1)
        data = [
            [generate_value(self.rng, column.data_type, self.value_config) for _ in range(row_count)]
            for column in columns
        ]

        try:
            if mode == "native":
                self._create_native(table_name, columns, data)
            else:
                columns = self._create_with_sql(table_name, columns, data, row_count)
        except EngineError as e:
            raise GenerationError(f"Failed to create table {table_name}: {e}") from e

        table = LogicalTable(table_name, columns, LogicalTableType.TABLE)
        runtime.register_table(table)
        logger.info(f"Generated table {table_name} ({mode}): {len(columns)} columns, {row_count} rows")
        return table

    def _create_native(self, table_name: str, columns: List[LogicalColumn],
                       data: List[List[GeneratedValue]]):
        arrays = [build_arrow_array(c.data_type, values) for c, values in zip(columns, data)]
        schema = pa.schema([pa.field(c.name, c.data_type.to_arrow_type()) for c in columns])
        batch = pa.RecordBatch.from_arrays(arrays, schema=schema)
        self.ctx.runtime_context.engine.register_table(table_name, batch)

    def _create_with_sql(self, table_name: str, columns: List[LogicalColumn],
                         data: List[List[GeneratedValue]], row_count: int) -> List[LogicalColumn]:
        engine = self.ctx.runtime_context.engine
        engine.execute_sync(create_table_sql(table_name, columns))
        engine.track_base_table(table_name)

        chunk_size = self.ctx.runner_config.max_insert_per_table
        for start in range(0, row_count, chunk_size):
            rows = [
                [values[row] for values in data]
                for row in range(start, min(start + chunk_size, row_count))
            ]
            engine.execute_sync(insert_sql(table_name, rows))

        # The engine decides the exact Arrow type of SQL-declared columns
        # (e.g. the timezone of TIMESTAMP WITH TIME ZONE)
        schema = engine.schema_of(f"SELECT * FROM {table_name}")
        actual = []
        for column, arrow_field in zip(columns, schema):
            data_type = FuzzerDataType.from_arrow_type(arrow_field.type) or column.data_type
            actual.append(LogicalColumn(column.name, data_type))
        return actual


def create_table_sql(table_name: str, columns: List[LogicalColumn]) -> str:
    column_defs = ", ".join(f"{c.name} {c.data_type.to_sql_type()}" for c in columns)
    return f"CREATE TABLE {table_name} ({column_defs})"


def insert_sql(table_name: str, rows: List[List[GeneratedValue]]) -> str:
    """
    INSERT statement for ``rows``; values are typed literals so the engine
    never has to guess a literal's type (e.g. float vs. decimal)
    """
    values = ", ".join(
        "(" + ", ".join(value.to_sql_expr().sql() for value in row) + ")"
        for row in rows
    )
    return f"INSERT INTO {table_name} VALUES {values}"
