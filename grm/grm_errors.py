"""
Error types raised by the rule engine.

Every error derives from the built-in exception a caller would otherwise
expect (ValueError for bad input, RuntimeError for filter failures,
TimeoutError for exceeded budgets) so plain ``except ValueError`` handlers
keep working.
"""

from typing import List, Optional


class GrmError(Exception):
    """Base class for all rule engine errors."""


class LoadError(GrmError, ValueError):
    """A rule file could not be parsed or compiled."""

    def __init__(
        self, message: str, path: Optional[str] = None, line: Optional[int] = None
    ):
        self.message = message
        self.path = path
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        if self.path and self.line:
            return f"{self.path}:{self.line}: {self.message}"
        if self.path:
            return f"{self.path}: {self.message}"
        if self.line:
            return f"line {self.line}: {self.message}"
        return self.message


class ConfigurationError(GrmError, ValueError):
    """A language or priority configuration is inconsistent."""


class FilterError(GrmError, RuntimeError):
    """Raised by a rule filter that cannot evaluate a match."""


class MatchTimeout(GrmError, TimeoutError):
    """The caller's time budget ran out before all sentences were checked."""

    def __init__(self, message: str, partial_matches: Optional[List] = None):
        super().__init__(message)
        self.partial_matches = list(partial_matches or [])
