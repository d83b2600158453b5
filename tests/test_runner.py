"""
Tests for the fuzzing run loop
"""

import threading

import pytest

from datafuzz.context import GlobalContext
from datafuzz.error_whitelist import Contains, ErrorWhitelist
from datafuzz.models import QueryContext
from datafuzz.oracles import ConfigConsistencyOracle
from datafuzz.runner import execute_oracle_test, execute_single_query, run_fuzzer

from .test_engine import SlowEngine


class TestRunFuzzer:
    """Whole runs, small configuration."""

    @pytest.mark.asyncio
    async def test_run_completes(self, ctx):
        summary = await run_fuzzer(ctx)
        config = ctx.runner_config

        assert summary.rounds_completed == config.rounds
        assert len(summary.oracle_results) == config.rounds * config.queries_per_round
        assert summary.tables
        assert summary.tables[0] == "t0"
        assert ctx.stats.snapshot().rounds_completed == config.rounds

    @pytest.mark.asyncio
    async def test_same_seed_same_run(self, runner_config):
        first = await run_fuzzer(GlobalContext(runner_config))
        second = await run_fuzzer(GlobalContext(runner_config))
        assert first.tables == second.tables
        assert first.queries == second.queries
        assert first.oracle_results == second.oracle_results

    @pytest.mark.asyncio
    async def test_different_seed_different_run(self, runner_config):
        first = await run_fuzzer(GlobalContext(runner_config))
        runner_config.seed = 43
        second = await run_fuzzer(GlobalContext(runner_config))
        assert first.queries != second.queries

    @pytest.mark.asyncio
    async def test_table_names_restart_each_round(self, runner_config):
        runner_config.rounds = 2
        runner_config.queries_per_round = 1
        summary = await run_fuzzer(GlobalContext(runner_config))
        assert summary.tables.count("t0") == 2

    @pytest.mark.asyncio
    async def test_last_round_keeps_tables(self, ctx):
        await run_fuzzer(ctx)
        assert ctx.runtime_context.list_tables(base_only=True)

    @pytest.mark.asyncio
    async def test_summary_matches_stats(self, ctx):
        summary = await run_fuzzer(ctx)
        snapshot = ctx.stats.snapshot()
        assert snapshot.queries_executed == summary.queries_executed == len(summary.queries)
        assert snapshot.unexpected_errors == summary.unexpected_errors
        assert snapshot.whitelisted_errors == summary.whitelisted_errors
        assert snapshot.oracle_failures == summary.oracle_failures


class TestExecuteSingleQuery:
    """Outcome classification of one query."""

    @pytest.mark.asyncio
    async def test_success(self, ctx):
        context = QueryContext("SELECT 1 AS x", ctx.runtime_context.engine)
        result = await execute_single_query(context, ctx)
        assert result.success
        assert result.row_count == 1
        assert result.execution_time > 0
        assert ctx.stats.snapshot().queries_succeeded == 1

    @pytest.mark.asyncio
    async def test_custom_whitelist(self, ctx):
        context = QueryContext("SELECT * FROM no_such_table", ctx.runtime_context.engine)
        result = await execute_single_query(context, ctx, ErrorWhitelist([Contains("no_such_table")]))
        assert result.whitelisted
        assert ctx.stats.snapshot().unexpected_errors == 0

    @pytest.mark.asyncio
    async def test_divide_by_zero_is_whitelisted(self, ctx):
        context = QueryContext("SELECT a / b FROM (SELECT 1 AS a, 0 AS b)", ctx.runtime_context.engine)
        result = await execute_single_query(context, ctx)
        assert result.error is not None
        assert result.whitelisted
        assert ctx.stats.snapshot().whitelisted_errors == 1

    @pytest.mark.asyncio
    async def test_unexpected_error(self, ctx, caplog):
        context = QueryContext("SELECT * FROM no_such_table", ctx.runtime_context.engine)
        result = await execute_single_query(context, ctx)
        assert result.error_stage == "planning"
        assert result.error.startswith("Query planning failed")
        assert not result.whitelisted
        assert ctx.stats.snapshot().unexpected_errors == 1
        assert "no_such_table" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout(self, ctx):
        ctx.runner_config.timeout_seconds = 0.05
        result = await execute_single_query(QueryContext("SELECT 1", SlowEngine(0.5)), ctx)
        assert result.timed_out
        assert result.error_stage == "timeout"
        assert not result.success
        assert ctx.stats.snapshot().timeouts == 1


class TestExecuteOracleTest:
    """One oracle round trip."""

    @pytest.mark.asyncio
    async def test_no_tables(self, ctx):
        ctx.runner_config.oracles = ["no_crash"]
        assert not await execute_oracle_test(1, ctx, ErrorWhitelist())
        assert ctx.stats.snapshot().generation_failures == 1

    @pytest.mark.asyncio
    async def test_passes(self, populated_ctx):
        populated_ctx.runner_config.oracles = ["no_crash"]
        assert await execute_oracle_test(1, populated_ctx, ErrorWhitelist())
        assert populated_ctx.stats.snapshot().oracle_passes == 1

    @pytest.mark.asyncio
    async def test_generation_runs_off_the_event_loop(self, populated_ctx, monkeypatch):
        threads = []
        original = ConfigConsistencyOracle.generate_query_group

        def recording(oracle):
            threads.append(threading.current_thread())
            return original(oracle)

        monkeypatch.setattr(ConfigConsistencyOracle, "generate_query_group", recording)
        populated_ctx.runner_config.oracles = ["config_consistency"]
        await execute_oracle_test(1, populated_ctx, ErrorWhitelist())
        assert threads and threads[0] is not threading.main_thread()
