"""
Test oracles and the registry the run loop draws them from
"""

from typing import Dict, Sequence, Type

import numpy as np

from ..errors import ConfigError
from ..rng import random_range
from .base import Oracle
from .config_consistency import ConfigConsistencyOracle
from .nested_queries import NestedQueriesOracle
from .no_crash import NoCrashOracle

ORACLES: Dict[str, Type[Oracle]] = {
    "no_crash": NoCrashOracle,
    "nested_queries": NestedQueriesOracle,
    "config_consistency": ConfigConsistencyOracle,
}


def select_oracle(rng: np.random.Generator, names: Sequence[str], seed: int, ctx) -> Oracle:
    """Draw one of the enabled oracles by index"""
    if not names:
        raise ConfigError("No oracle enabled")
    name = names[random_range(rng, 0, len(names) - 1)]
    try:
        oracle_cls = ORACLES[name]
    except KeyError as e:
        raise ConfigError(f"Unknown oracle: {name}") from e
    return oracle_cls(seed, ctx)


__all__ = [
    "ORACLES",
    "Oracle",
    "NoCrashOracle",
    "NestedQueriesOracle",
    "ConfigConsistencyOracle",
    "select_oracle",
]
