"""
Oracle that stresses derived tables: views and ``(SELECT * FROM x) AS sqK`` subqueries
"""

from typing import List, Sequence

from ..errors import OracleValidationError
from ..models import QueryContext, QueryExecutionResult
from ..stmt_builder import SelectStatementBuilder
from .base import Oracle, build_report

# joins over many derived tables slow fuzzing down
MAX_NESTED_TABLES = 3


class NestedQueriesOracle(Oracle):
    """One random query that may read from views and subqueries"""

    name = "NestedQueriesOracle"

    def generate_query_group(self) -> List[QueryContext]:
        builder = (
            SelectStatementBuilder(self.seed, self.ctx)
            .with_allow_derived_tables(True)
            .with_max_table_count(MAX_NESTED_TABLES)
        )
        stmt = builder.generate_stmt()
        return [
            QueryContext(
                stmt.to_sql_string(),
                self.ctx.runtime_context.engine,
                "Nested Queries Consistency Test",
            )
        ]

    def validate_consistency(self, results: Sequence[QueryExecutionResult]):
        if not results:
            raise OracleValidationError("No query results to validate")

    def create_error_report(self, results: Sequence[QueryExecutionResult]) -> str:
        return build_report(
            title="Nested Queries Oracle Test Failed",
            query_label="Nested query that caused inconsistency or error",
            results=results,
            expected="Nested queries with views/subqueries should execute consistently",
            actual="Query produced inconsistent results or non-whitelisted error",
            hints=[
                "This indicates a potential issue with nested query processing.",
                "Nested queries involving views and subqueries should produce consistent results.",
                "Whitelisted errors are acceptable and expected (e.g., divide by zero).",
            ],
        )
