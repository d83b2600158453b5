"""
SELECT statement generation

``SelectStatementBuilder`` picks source tables from the registry, builds a
table-qualified column pool and fills the select list and WHERE clause with
random expressions. ``create_view`` turns a generated statement into a view
and registers its output columns.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlglot import exp

from .context import GlobalContext
from .errors import EngineError, GenerationError
from .expr_generator import ExprGenerator, SourceColumn
from .models import LogicalColumn, LogicalTable, LogicalTableType
from .rng import random_bool, random_range, rng_from_seed, sample_without_replacement
from .types import BOOLEAN, FuzzerDataType, random_data_type

logger = logging.getLogger(__name__)

WHERE_PROBABILITY = 0.9
SUBQUERY_PROBABILITY = 0.5


@dataclass
class FromClause:
    """Source relations in FROM order"""
    tables: List[LogicalTable] = field(default_factory=list)

    def to_sql_string(self) -> str:
        parts = []
        for table in self.tables:
            if table.table_type == LogicalTableType.SUBQUERY:
                parts.append(f"({table.subquery_sql}) AS {table.name}")
            else:
                parts.append(table.name)
        return ", ".join(parts)


@dataclass
class SelectStatement:
    """A generated SELECT, rendered by to_sql_string"""
    src_tables: List[LogicalTable]
    select_exprs: List[exp.Expression]
    from_clause: FromClause
    where_clause: Optional[exp.Expression] = None
    column_aliases: Optional[List[str]] = None

    def select_items(self) -> List[Tuple[exp.Expression, Optional[str]]]:
        aliases = self.column_aliases or [None] * len(self.select_exprs)
        return list(zip(self.select_exprs, aliases))

    def to_sql_string(self) -> str:
        items = [
            expr.sql() if alias is None else f"{expr.sql()} AS {alias}"
            for expr, alias in self.select_items()
        ]
        sql = f"SELECT {', '.join(items) or '*'}\nFROM {self.from_clause.to_sql_string()}"
        if self.where_clause is not None:
            sql += f"\nWHERE {self.where_clause.sql()}"
        return sql


class SelectStatementBuilder:
    """Generate random SELECT statements over the registered tables"""

    def __init__(self, seed: int, ctx: GlobalContext):
        self.rng = rng_from_seed(seed)
        self.ctx = ctx
        self.max_table_count = ctx.runner_config.max_table_count
        self.allow_derived_tables = False
        self.column_aliases = False
        self.alias_prefix = "expr"
        self._subquery_counter = 0

    def with_max_table_count(self, count: int) -> "SelectStatementBuilder":
        self.max_table_count = count
        return self

    def with_allow_derived_tables(self, allow: bool) -> "SelectStatementBuilder":
        """Let views and ``(SELECT * FROM x) AS sqK`` subqueries appear in FROM"""
        self.allow_derived_tables = allow
        return self

    def with_column_aliases(self, enabled: bool, prefix: Optional[str] = None) -> "SelectStatementBuilder":
        """Alias select expressions as col_<prefix>_<n>"""
        self.column_aliases = enabled
        if prefix is not None:
            self.alias_prefix = prefix
        return self

    def generate_stmt(self) -> SelectStatement:
        config = self.ctx.runner_config
        candidates = self.ctx.runtime_context.list_tables(base_only=not self.allow_derived_tables)
        if not candidates:
            raise GenerationError("No tables available to generate a query from")

        table_count = random_range(self.rng, 1, max(1, min(self.max_table_count, len(candidates))))
        src_tables = sample_without_replacement(self.rng, candidates, table_count)

        from_tables = []
        for table in src_tables:
            if self.allow_derived_tables and random_bool(self.rng, SUBQUERY_PROBABILITY):
                from_tables.append(self._wrap_as_subquery(table))
            else:
                from_tables.append(table)

        src_columns = [SourceColumn(t.name, c) for t in from_tables for c in t.columns]
        expr_generator = ExprGenerator(self.ctx, self.rng, src_columns)

        expr_count = random_range(self.rng, 1, max(1, config.max_expr_level))
        select_exprs = [
            expr_generator.generate_random_expr(random_data_type(self.rng))
            for _ in range(expr_count)
        ]

        where_clause = None
        if random_bool(self.rng, WHERE_PROBABILITY):
            where_clause = expr_generator.generate_random_expr(BOOLEAN)

        aliases = None
        if self.column_aliases:
            aliases = [f"col_{self.alias_prefix}_{i + 1}" for i in range(expr_count)]

        return SelectStatement(
            src_tables=src_tables,
            select_exprs=select_exprs,
            from_clause=FromClause(from_tables),
            where_clause=where_clause,
            column_aliases=aliases,
        )

    def _wrap_as_subquery(self, table: LogicalTable) -> LogicalTable:
        alias = f"sq{self._subquery_counter}"
        self._subquery_counter += 1
        return LogicalTable(
            name=alias,
            columns=list(table.columns),
            table_type=LogicalTableType.SUBQUERY,
            subquery_sql=f"SELECT * FROM {table.name}",
        )


def create_view(ctx: GlobalContext, builder: SelectStatementBuilder) -> LogicalTable:
    """
    Create a view over base tables and register it.

    The view's column types come from a zero-row probe; columns whose Arrow
    type has no FuzzerDataType are left out of the registry entry.
    """
    runtime = ctx.runtime_context
    view_name = runtime.next_view_name()

    stmt = (
        builder.with_allow_derived_tables(False)
        .with_column_aliases(True, view_name)
        .generate_stmt()
    )
    create_sql = f"CREATE VIEW {view_name} AS {stmt.to_sql_string()}"
    logger.info(f"Creating view {view_name}:\n{create_sql}")

    engine = runtime.engine
    try:
        engine.execute_sync(create_sql)
        schema = engine.schema_of(f"SELECT * FROM {view_name} LIMIT 0")
    except EngineError as e:
        raise GenerationError(f"Failed to create view {view_name}: {e}") from e

    columns = []
    for arrow_field in schema:
        data_type: Optional[FuzzerDataType] = FuzzerDataType.from_arrow_type(arrow_field.type)
        if data_type is None:
            logger.info(f"Skipping view column {arrow_field.name} of unsupported type {arrow_field.type}")
            continue
        columns.append(LogicalColumn(arrow_field.name, data_type))

    view = LogicalTable(view_name, columns, LogicalTableType.VIEW)
    runtime.register_table(view)
    return view
