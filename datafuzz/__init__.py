"""
Randomized differential and stability fuzzer for the DataFusion query engine
"""

from .config import RunnerConfig
from .context import GlobalContext, RuntimeContext
from .engine import DataFusionEngine, EngineConfig
from .errors import ConfigError, EngineError, FuzzerError, GenerationError, OracleValidationError
from .models import RunSummary
from .runner import run_fuzzer

__version__ = "0.1.0"

__all__ = [
    "RunnerConfig",
    "GlobalContext",
    "RuntimeContext",
    "DataFusionEngine",
    "EngineConfig",
    "ConfigError",
    "EngineError",
    "FuzzerError",
    "GenerationError",
    "OracleValidationError",
    "RunSummary",
    "run_fuzzer",
]
