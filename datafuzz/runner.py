"""
The fuzzing run loop

Every round derives its own seeds from the base seed, so a round (and every
query in it) can be reproduced from the seed alone:

    dataset_seed    = seed + round * 1000     (table i uses dataset_seed + i * 100)
    view_seed       = seed + round * 1000 + 100
    query_base_seed = seed + round * 1000 + 200   (query i uses query_base_seed + i)
"""

import asyncio
import logging
import time
from typing import List, Optional

from .context import GlobalContext
from .dataset_generator import DatasetGenerator
from .error_whitelist import DEFAULT_WHITELIST, ErrorWhitelist
from .errors import EngineError, GenerationError, OracleValidationError, QueryTimeoutError
from .models import QueryContext, QueryExecutionResult, RunSummary
from .oracles import select_oracle
from .rng import derive_seed, random_range, rng_from_seed
from .stmt_builder import SelectStatementBuilder, create_view
from .utils import display_all_tables

logger = logging.getLogger(__name__)

ROUND_SEED_STRIDE = 1000
VIEW_SEED_OFFSET = 100
QUERY_SEED_OFFSET = 200
TABLE_SEED_STRIDE = 100
MAX_VIEW_SOURCE_TABLES = 3


async def run_fuzzer(ctx: GlobalContext, whitelist: Optional[ErrorWhitelist] = None) -> RunSummary:
    """Run every configured round and return what happened"""
    config = ctx.runner_config
    whitelist = whitelist if whitelist is not None else DEFAULT_WHITELIST
    summary = RunSummary()

    logger.info(f"Starting fuzzer with seed: {config.seed}")
    logger.info("Error whitelist patterns:\n" + "\n".join(whitelist.describe_patterns()))
    # deterministic table naming
    ctx.runtime_context.reset_table_counter()

    for round_index in range(config.rounds):
        logger.info(f"Starting round {round_index + 1}/{config.rounds}")

        dataset_seed = derive_seed(config.seed, round_index * ROUND_SEED_STRIDE)
        view_seed = derive_seed(dataset_seed, VIEW_SEED_OFFSET)
        query_base_seed = derive_seed(dataset_seed, QUERY_SEED_OFFSET)

        # both block on the engine, so they run on a worker thread
        summary.tables += await asyncio.to_thread(generate_datasets_for_round, dataset_seed, ctx, summary)
        summary.tables += await asyncio.to_thread(generate_views_for_round, view_seed, ctx, summary)

        for i in range(config.queries_per_round):
            logger.info(f"Running oracle test {i + 1}/{config.queries_per_round}")
            query_seed = derive_seed(query_base_seed, i)
            passed = await execute_oracle_test(query_seed, ctx, whitelist, summary)
            summary.oracle_results.append(passed)

        ctx.stats.complete_round()
        summary.rounds_completed += 1

        if round_index < config.rounds - 1:
            logger.info("Resetting engine context for next round")
            ctx.reset_engine_context()

    logger.info(
        f"Fuzzing finished: {summary.queries_executed} queries, "
        f"{summary.unexpected_errors} unexpected errors, {summary.timeouts} timeouts, "
        f"{summary.oracle_failures} oracle failures"
    )
    return summary


def generate_datasets_for_round(seed: int, ctx: GlobalContext, summary: RunSummary) -> List[str]:
    config = ctx.runner_config
    rng = rng_from_seed(seed)
    tables_per_round = random_range(rng, config.min_tables_per_round, config.max_tables_per_round)

    names = []
    for i in range(tables_per_round):
        logger.info(f"Generating table {i + 1}/{tables_per_round}")
        table_seed = derive_seed(seed, i * TABLE_SEED_STRIDE)
        try:
            table = DatasetGenerator(table_seed, ctx).generate_dataset()
        except GenerationError as e:
            logger.warning(f"⚠️  Failed to generate table: {e}")
            summary.generation_failures += 1
            ctx.stats.record_generation_failure()
            continue
        names.append(table.name)

    display_all_tables(ctx)
    return names


def generate_views_for_round(seed: int, ctx: GlobalContext, summary: RunSummary) -> List[str]:
    config = ctx.runner_config
    rng = rng_from_seed(seed)

    base_tables = ctx.runtime_context.list_tables(base_only=True)
    if not base_tables:
        logger.info("No tables available for view generation")
        return []

    max_views = min(config.max_views_per_round, len(base_tables))
    num_views = random_range(rng, 1, max_views)
    logger.info(f"Generating {num_views} views")

    # one builder for all views of the round; small joins keep fuzzing fast
    builder = SelectStatementBuilder(seed, ctx).with_max_table_count(MAX_VIEW_SOURCE_TABLES)

    names = []
    for _ in range(num_views):
        try:
            view = create_view(ctx, builder)
        except GenerationError as e:
            logger.warning(f"⚠️  Failed to create view: {e}")
            summary.generation_failures += 1
            ctx.stats.record_generation_failure()
            continue
        logger.info(f"✓ Created view {view.name} with {len(view.columns)} columns")
        names.append(view.name)
    return names


async def execute_oracle_test(seed: int, ctx: GlobalContext, whitelist: ErrorWhitelist,
                              summary: Optional[RunSummary] = None) -> bool:
    """Generate, execute and validate one query group; True when the oracle passed"""
    summary = summary if summary is not None else RunSummary()
    rng = rng_from_seed(seed)
    oracle = select_oracle(rng, ctx.runner_config.oracles, seed, ctx)
    logger.info(f"Selected oracle: {oracle}")

    try:
        # generation may fork engine sessions, which copies every base table
        query_group = await asyncio.to_thread(oracle.generate_query_group)
    except GenerationError as e:
        logger.warning(f"⚠️  Failed to generate query group: {e}")
        summary.generation_failures += 1
        ctx.stats.record_generation_failure()
        return False

    if not query_group:
        logger.warning("⚠️  Oracle generated empty query group")
        return False

    results = []
    for query_context in query_group:
        logger.info(f"Query:\n{query_context.query}")
        summary.queries.append(query_context.query)
        result = await execute_single_query(query_context, ctx, whitelist)
        summary.queries_executed += 1
        if result.timed_out:
            summary.timeouts += 1
        elif result.error is not None:
            if result.whitelisted:
                summary.whitelisted_errors += 1
            else:
                summary.unexpected_errors += 1
        results.append(result)

    try:
        oracle.validate_consistency(results)
    except OracleValidationError as e:
        logger.error(f"Oracle test failed: {e}")
        logger.error(f"Error Report:\n{oracle.create_error_report(results)}")
        summary.oracle_failures += 1
        ctx.stats.record_oracle(False)
        return False

    logger.info("✓ Oracle test passed")
    ctx.stats.record_oracle(True)
    return True


async def execute_single_query(query_context: QueryContext, ctx: GlobalContext,
                               whitelist: Optional[ErrorWhitelist] = None) -> QueryExecutionResult:
    """
    Run one query with the configured timeout and classify its outcome.

    Non-whitelisted errors and timeouts are logged with the full query text.
    """
    config = ctx.runner_config
    whitelist = whitelist if whitelist is not None else DEFAULT_WHITELIST

    start_time = time.perf_counter()
    try:
        batches = await query_context.engine.execute(query_context.query, config.timeout_seconds)
        result = QueryExecutionResult(query_context, batches=batches)
    except QueryTimeoutError as e:
        result = QueryExecutionResult(query_context, error=str(e), error_stage=e.stage, timed_out=True)
    except EngineError as e:
        result = QueryExecutionResult(query_context, error=str(e), error_stage=e.stage)
    result.execution_time = time.perf_counter() - start_time
    elapsed_ms = result.execution_time * 1000

    if result.timed_out:
        logger.warning(
            f"⚠️  Query timed out after {elapsed_ms:.2f}ms "
            f"(timeout: {config.timeout_seconds}s):\n{query_context.query}"
        )
    elif result.error is not None:
        result.whitelisted = whitelist.is_whitelisted(result.error)
        if result.whitelisted:
            logger.info(f"Whitelisted error encountered: {result.error}")
        else:
            logger.error(f"Non-whitelisted error encountered: {result.error}")
            logger.error(f"Query that caused the error: {query_context.display_description()}")

    ctx.stats.record_query(
        query_context.query,
        elapsed_ms,
        success=result.success,
        whitelisted=result.whitelisted,
        timed_out=result.timed_out,
    )
    return result
