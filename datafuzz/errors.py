"""
Exceptions raised by the fuzzer
"""


class FuzzerError(Exception):
    """Base class for all fuzzer errors"""


class GenerationError(FuzzerError):
    """A table, view or query could not be generated"""


class EngineError(FuzzerError):
    """The engine rejected a statement while planning or executing it"""

    STAGE_PREFIXES = {
        "planning": "Query planning failed",
        "execution": "Query execution failed",
        "timeout": "Query execution timed out",
    }

    def __init__(self, stage: str, message: str = ""):
        self.stage = stage
        self.message = message
        prefix = self.STAGE_PREFIXES.get(stage, f"Query {stage} failed")
        super().__init__(f"{prefix}: {message}" if message else prefix)


class QueryTimeoutError(EngineError):
    """The query did not finish within the configured timeout"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__("timeout")


class OracleValidationError(FuzzerError):
    """An oracle found the results of a query group inconsistent"""


class ConfigError(FuzzerError):
    """Missing, malformed or invalid configuration"""
