"""
Base interface for test oracles

An oracle generates a group of related queries, and after the run loop has
executed them decides whether their outcomes are consistent. Example of an
oracle comparing configurations:

    Query with default config:          SELECT ... FROM t1
    Query with target_partitions=1:     SELECT ... FROM t1
    Consistency check:                  both return the same rows

Whether a single error is acceptable is decided by the error whitelist at
execution time; ``validate_consistency`` only judges the group as a whole.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..context import GlobalContext
from ..models import QueryContext, QueryExecutionResult


class Oracle(ABC):
    """Abstract base class for oracles"""

    name = "Oracle"

    def __init__(self, seed: int, ctx: GlobalContext):
        self.seed = seed
        self.ctx = ctx

    @abstractmethod
    def generate_query_group(self) -> List[QueryContext]:
        """Queries to run and compare, at least one"""
        pass

    @abstractmethod
    def validate_consistency(self, results: Sequence[QueryExecutionResult]):
        """
        Check the executed group.

        Raises:
            OracleValidationError: If the results are inconsistent
        """
        pass

    @abstractmethod
    def create_error_report(self, results: Sequence[QueryExecutionResult]) -> str:
        """Human readable report, called after validate_consistency failed"""
        pass

    def __str__(self) -> str:
        return self.name


def build_report(
    title: str,
    query_label: str,
    results: Sequence[QueryExecutionResult],
    expected: str,
    actual: str,
    hints: Sequence[str],
    details: Optional[Sequence[str]] = None,
) -> str:
    """Shared layout of oracle error reports"""
    lines = [title, "=" * len(title), ""]

    if results:
        first = results[0]
        lines += [f"{query_label}:", first.query_context.query, ""]
        lines += [f"Context: {first.query_context.display_description()}", ""]
        if first.error:
            lines += [f"Error details: {first.error}", ""]

    if details:
        lines += list(details) + [""]

    lines += [f"Expected: {expected}", f"Actual: {actual}", ""]
    lines += list(hints)
    return "\n".join(lines) + "\n"
