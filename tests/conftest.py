"""
Shared test fixtures for datafuzz tests.
"""

import pytest

from datafuzz.config import RunnerConfig
from datafuzz.context import GlobalContext
from datafuzz.dataset_generator import DatasetGenerator
from datafuzz.rng import rng_from_seed


@pytest.fixture
def runner_config():
    """Small, quiet configuration that keeps a full run under a few seconds."""
    return RunnerConfig(
        seed=42,
        rounds=1,
        queries_per_round=3,
        timeout_seconds=5,
        log_path=None,
        enable_tui=False,
        max_column_count=3,
        max_row_count=10,
        max_expr_level=2,
        min_tables_per_round=2,
        max_tables_per_round=3,
        max_views_per_round=2,
    )


@pytest.fixture
def ctx(runner_config):
    """Fresh context with an empty DataFusion session."""
    return GlobalContext(runner_config)


@pytest.fixture
def rng():
    return rng_from_seed(42)


@pytest.fixture
def populated_ctx(ctx):
    """Context holding two natively registered random tables (t0, t1)."""
    for seed in (1, 2):
        DatasetGenerator(seed, ctx).generate_dataset(mode="native")
    return ctx
