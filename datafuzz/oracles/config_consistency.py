"""
Oracle that runs the same query under several session configurations

Scalar SELECTs have no ordering guarantee but their result multiset must not
depend on how many partitions or how large batches the engine uses.
"""

import logging
import math
from collections import Counter
from typing import Any, List, Sequence, Tuple

from ..engine import EngineConfig
from ..errors import EngineError, GenerationError, OracleValidationError
from ..models import QueryContext, QueryExecutionResult
from ..stmt_builder import SelectStatementBuilder
from .base import Oracle, build_report

logger = logging.getLogger(__name__)

ALTERNATE_CONFIGS = (
    EngineConfig(target_partitions=1),
    EngineConfig(target_partitions=4),
    EngineConfig(batch_size=1),
)


def _normalize_value(value: Any) -> Any:
    # NaN never equals itself
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    return value


def normalize_rows(rows: Sequence[Tuple[Any, ...]]) -> Counter:
    """Rows as a multiset"""
    return Counter(tuple(_normalize_value(v) for v in row) for row in rows)


class ConfigConsistencyOracle(Oracle):
    """Same query, default session against forked sessions with other settings"""

    name = "ConfigConsistencyOracle"

    def generate_query_group(self) -> List[QueryContext]:
        stmt = SelectStatementBuilder(self.seed, self.ctx).generate_stmt()
        engine = self.ctx.runtime_context.engine

        engines = [(engine, engine.config.describe())]
        try:
            for config in ALTERNATE_CONFIGS:
                engines.append((engine.fork(config), config.describe()))
        except EngineError as e:
            raise GenerationError(f"Failed to fork engine session: {e}") from e

        return QueryContext.from_single_query_multiple_contexts(stmt.to_sql_string(), engines)

    def validate_consistency(self, results: Sequence[QueryExecutionResult]):
        if not results:
            raise OracleValidationError("No query results to validate")

        if any(r.timed_out for r in results):
            logger.warning("Skipping configuration comparison, a query timed out")
            return

        baseline = results[0]
        for other in results[1:]:
            if baseline.success != other.success:
                raise OracleValidationError(
                    f"{baseline.query_context.description} "
                    f"{'succeeded' if baseline.success else 'failed'} but "
                    f"{other.query_context.description} "
                    f"{'succeeded' if other.success else 'failed'}"
                )
            if baseline.success and normalize_rows(baseline.rows()) != normalize_rows(other.rows()):
                raise OracleValidationError(
                    f"Result mismatch between {baseline.query_context.description} "
                    f"({baseline.row_count} rows) and {other.query_context.description} "
                    f"({other.row_count} rows)"
                )

    def create_error_report(self, results: Sequence[QueryExecutionResult]) -> str:
        details = []
        for result in results:
            outcome = f"{result.row_count} rows" if result.success else f"error: {result.error}"
            details.append(f"- {result.query_context.description}: {outcome}")
        return build_report(
            title="Configuration Consistency Oracle Test Failed",
            query_label="Query with configuration-dependent results",
            results=results,
            expected="The query returns the same rows under every session configuration",
            actual="Outcomes differ between configurations",
            details=["Outcomes per configuration:"] + details,
            hints=[
                "This indicates a potential issue in partitioning or batching.",
                "Re-run the query with each configuration to narrow it down.",
            ],
        )
