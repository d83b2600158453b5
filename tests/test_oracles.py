"""
Tests for the test oracles
"""

import math

import pyarrow as pa
import pytest

from datafuzz.engine import DataFusionEngine
from datafuzz.errors import ConfigError, OracleValidationError
from datafuzz.models import QueryContext, QueryExecutionResult
from datafuzz.oracles import (
    ORACLES,
    ConfigConsistencyOracle,
    NestedQueriesOracle,
    NoCrashOracle,
    select_oracle,
)
from datafuzz.oracles.config_consistency import normalize_rows
from datafuzz.rng import rng_from_seed
from datafuzz.stmt_builder import FromClause, SelectStatement, SelectStatementBuilder, create_view


def _batch(values):
    return pa.RecordBatch.from_arrays([pa.array(values, type=pa.int64())], names=["x"])


def _result(description, values=None, error=None, timed_out=False):
    context = QueryContext("SELECT x FROM t0", DataFusionEngine(), description)
    batches = None if values is None else [_batch(values)]
    return QueryExecutionResult(context, batches=batches, error=error, timed_out=timed_out)


def _star_statement(table):
    return SelectStatement([table], [], FromClause([table]))


class TestNoCrashOracle:
    """Single random query over base tables."""

    def test_query_group(self, populated_ctx):
        group = NoCrashOracle(1, populated_ctx).generate_query_group()
        assert len(group) == 1
        assert group[0].description == "Random Query No-Crash Test"
        assert group[0].engine is populated_ctx.runtime_context.engine
        assert group[0].query.startswith("SELECT ")

    def test_same_seed_same_query(self, populated_ctx):
        a = NoCrashOracle(5, populated_ctx).generate_query_group()
        b = NoCrashOracle(5, populated_ctx).generate_query_group()
        assert QueryContext.get_queries(a) == QueryContext.get_queries(b)

    def test_validation(self, populated_ctx):
        oracle = NoCrashOracle(1, populated_ctx)
        oracle.validate_consistency([_result("Random Query No-Crash Test", error="boom")])
        with pytest.raises(OracleValidationError):
            oracle.validate_consistency([])

    def test_report(self, populated_ctx):
        oracle = NoCrashOracle(1, populated_ctx)
        result = _result("Random Query No-Crash Test", error="Query execution failed: boom")
        report = oracle.create_error_report([result])
        assert report.startswith("No-Crash Oracle Test Failed\n")
        assert "Query that caused crash/error:" in report
        assert "SELECT x FROM t0" in report
        assert "Error details: Query execution failed: boom" in report
        assert "Context: Query with Random Query No-Crash Test: SELECT x FROM t0" in report


class TestNestedQueriesOracle:
    """Single random query that may read views and subqueries."""

    def test_query_group(self, populated_ctx):
        group = NestedQueriesOracle(2, populated_ctx).generate_query_group()
        assert len(group) == 1
        assert group[0].description == "Nested Queries Consistency Test"

    def test_uses_views(self, populated_ctx, monkeypatch):
        builder = SelectStatementBuilder(3, populated_ctx)
        t0 = populated_ctx.runtime_context.get_table("t0")
        # a view over t0 with the same columns
        monkeypatch.setattr(builder, "generate_stmt", lambda: _star_statement(t0))
        create_view(populated_ctx, builder)

        queries = [NestedQueriesOracle(seed, populated_ctx).generate_query_group()[0].query
                   for seed in range(40)]
        assert any("v0" in q for q in queries)
        assert any("AS sq" in q for q in queries)

    def test_report(self, populated_ctx):
        report = NestedQueriesOracle(2, populated_ctx).create_error_report([_result("Nested", error="bad")])
        assert report.startswith("Nested Queries Oracle Test Failed\n")
        assert "SELECT x FROM t0" in report


class TestConfigConsistencyOracle:
    """Same query across session configurations."""

    def test_query_group(self, populated_ctx):
        group = ConfigConsistencyOracle(1, populated_ctx).generate_query_group()
        assert [c.description for c in group] == [
            "default configuration",
            "target_partitions=1",
            "target_partitions=4",
            "batch_size=1",
        ]
        assert len({c.query for c in group}) == 1
        assert len({id(c.engine) for c in group}) == 4
        assert group[0].engine is populated_ctx.runtime_context.engine
        for context in group[1:]:
            assert context.engine.base_tables() == populated_ctx.runtime_context.engine.base_tables()

    def test_consistent_results(self, populated_ctx):
        oracle = ConfigConsistencyOracle(1, populated_ctx)
        oracle.validate_consistency([_result("a", [1, 2, 3]), _result("b", [3, 1, 2])])

    def test_nanosecond_temporal_results(self, populated_ctx):
        def temporal_result(description, nanos):
            batch = pa.RecordBatch.from_arrays(
                [
                    pa.array(nanos, type=pa.int64()).cast(pa.time64("ns")),
                    pa.array(nanos, type=pa.int64()).cast(pa.timestamp("ns", tz="UTC")),
                ],
                names=["t", "ts"],
            )
            context = QueryContext("SELECT t, ts FROM t0", DataFusionEngine(), description)
            return QueryExecutionResult(context, batches=[batch])

        oracle = ConfigConsistencyOracle(1, populated_ctx)
        oracle.validate_consistency([temporal_result("a", [1, 2]), temporal_result("b", [2, 1])])
        with pytest.raises(OracleValidationError):
            oracle.validate_consistency([temporal_result("a", [1, 2]), temporal_result("b", [1, 3])])

    def test_row_mismatch(self, populated_ctx):
        oracle = ConfigConsistencyOracle(1, populated_ctx)
        with pytest.raises(OracleValidationError):
            oracle.validate_consistency([_result("a", [1, 2, 3]), _result("b", [1, 2])])

    def test_success_mismatch(self, populated_ctx):
        oracle = ConfigConsistencyOracle(1, populated_ctx)
        with pytest.raises(OracleValidationError):
            oracle.validate_consistency([_result("a", [1]), _result("b", error="boom")])

    def test_both_failed_is_consistent(self, populated_ctx):
        oracle = ConfigConsistencyOracle(1, populated_ctx)
        oracle.validate_consistency([_result("a", error="x"), _result("b", error="y")])

    def test_timeout_skips_comparison(self, populated_ctx):
        oracle = ConfigConsistencyOracle(1, populated_ctx)
        oracle.validate_consistency([_result("a", [1]), _result("b", timed_out=True)])

    def test_report(self, populated_ctx):
        oracle = ConfigConsistencyOracle(1, populated_ctx)
        report = oracle.create_error_report([_result("default configuration", [1]), _result("batch_size=1", [])])
        assert "Configuration Consistency Oracle Test Failed" in report
        assert "- default configuration: 1 rows" in report
        assert "- batch_size=1: 1 rows" not in report

    def test_normalize_rows(self):
        assert normalize_rows([(1, math.nan), (2, None)]) == normalize_rows([(2, None), (1, math.nan)])


class TestSelectOracle:
    """Drawing an oracle from the enabled names."""

    def test_single_name(self, ctx):
        oracle = select_oracle(rng_from_seed(1), ["config_consistency"], 9, ctx)
        assert isinstance(oracle, ConfigConsistencyOracle)
        assert oracle.seed == 9

    def test_draws_every_enabled_oracle(self, ctx):
        rng = rng_from_seed(2)
        names = list(ORACLES)
        drawn = {type(select_oracle(rng, names, 0, ctx)) for _ in range(100)}
        assert drawn == set(ORACLES.values())

    def test_invalid_names(self, ctx):
        with pytest.raises(ConfigError):
            select_oracle(rng_from_seed(1), [], 0, ctx)
        with pytest.raises(ConfigError):
            select_oracle(rng_from_seed(1), ["bogus"], 0, ctx)
