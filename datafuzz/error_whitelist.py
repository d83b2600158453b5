"""
Known engine errors that are not bugs

An error message is whitelisted when it contains one of the exact patterns or
matches one of the regex patterns. Exact patterns are case-sensitive; regexes
can opt in to case-insensitivity with ``(?i)``.

The engine's Python bindings may report an error in Rust debug form
(``ArrowError(DivideByZero, None)``) instead of its display form
(``Arrow error: Divide by zero error``), so the defaults cover both.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contains:
    """Message contains ``text``"""
    text: str


@dataclass(frozen=True)
class RegexMatch:
    """``pattern`` matches somewhere in the message"""
    pattern: str


ErrorPattern = Union[Contains, RegexMatch]


DEFAULT_PATTERNS: List[ErrorPattern] = [
    # =========================
    # False positives
    # =========================

    # select 1 / 0;
    Contains("Arrow error: Divide by zero error"),
    RegexMatch(r"ArrowError\(DivideByZero"),
    # select Null * Null;
    RegexMatch(r"Error during planning: Cannot coerce arithmetic expression (.+) to valid types"),
    RegexMatch(r"Plan\(\"Cannot coerce arithmetic expression (.+) to valid types"),
    # (86 / ((t3.col_t3_5_uint64 - 117) % t3.col_t3_5_uint64)) with an unsigned column
    RegexMatch(r"(?i)Query execution failed: Arrow error: Cast error: value of (.+) is out of range uint(.+)"),
    RegexMatch(r"(?i)CastError\(\"value of (.+) is out of range uint(.+)"),
    # timestamp * timestamp
    Contains("Invalid timestamp arithmetic operation"),

    # =========================
    # Known issues
    # =========================

    # https://github.com/apache/datafusion/issues/13558
    Contains("Projections require unique expression names"),
]


class ErrorWhitelist:
    """Ordered list of patterns; regexes are compiled once, on first use"""

    def __init__(self, patterns: Optional[Sequence[ErrorPattern]] = None):
        self.patterns: List[ErrorPattern] = list(DEFAULT_PATTERNS if patterns is None else patterns)
        self._compiled: Optional[List[Optional[Pattern]]] = None
        self._lock = threading.Lock()

    def _compiled_regexes(self) -> List[Optional[Pattern]]:
        with self._lock:
            if self._compiled is None:
                compiled = []
                for pattern in self.patterns:
                    if isinstance(pattern, RegexMatch):
                        try:
                            compiled.append(re.compile(pattern.pattern))
                        except re.error as e:
                            logger.warning(f"Invalid regex pattern '{pattern.pattern}': {e}")
                            compiled.append(None)
                    else:
                        compiled.append(None)
                self._compiled = compiled
            return self._compiled

    def is_whitelisted(self, message: str) -> bool:
        if not message:
            return False
        compiled = self._compiled_regexes()
        for pattern, regex in zip(self.patterns, compiled):
            if isinstance(pattern, Contains):
                if pattern.text in message:
                    return True
            elif regex is not None and regex.search(message):
                return True
        return False

    def describe_patterns(self) -> List[str]:
        return [
            f"Exact: {p.text}" if isinstance(p, Contains) else f"Regex: {p.pattern}"
            for p in self.patterns
        ]


DEFAULT_WHITELIST = ErrorWhitelist()


def is_error_whitelisted(message: str) -> bool:
    """Check ``message`` against the default whitelist"""
    return DEFAULT_WHITELIST.is_whitelisted(message)


def get_configured_patterns() -> List[str]:
    """Default patterns, one line each, for logging"""
    return DEFAULT_WHITELIST.describe_patterns()
