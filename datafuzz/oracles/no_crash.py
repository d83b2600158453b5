"""
Oracle that runs one random query and only requires it not to crash
"""

from typing import List, Sequence

from ..errors import OracleValidationError
from ..models import QueryContext, QueryExecutionResult
from ..stmt_builder import SelectStatementBuilder
from .base import Oracle, build_report


class NoCrashOracle(Oracle):
    """
    Generate a random query over base tables.

    Errors are classified by the whitelist when the query runs, so the
    validation step passes for any executed group.
    """

    name = "NoCrashOracle"

    def generate_query_group(self) -> List[QueryContext]:
        stmt = SelectStatementBuilder(self.seed, self.ctx).generate_stmt()
        return [
            QueryContext(
                stmt.to_sql_string(),
                self.ctx.runtime_context.engine,
                "Random Query No-Crash Test",
            )
        ]

    def validate_consistency(self, results: Sequence[QueryExecutionResult]):
        if not results:
            raise OracleValidationError("No query results to validate")

    def create_error_report(self, results: Sequence[QueryExecutionResult]) -> str:
        return build_report(
            title="No-Crash Oracle Test Failed",
            query_label="Query that caused crash/error",
            results=results,
            expected="Query should execute without crashing or erroring",
            actual="Query crashed or returned an error",
            hints=[
                "This indicates a potential stability issue in the query engine.",
                "The query should either return valid results or a graceful error message.",
            ],
        )
