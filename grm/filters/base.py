"""
Rule filter interface and registry.

A filter is per-language code that inspects a complete, unification-accepted
match and either returns it (possibly with a new message or suggestions) or
returns None to veto it. Rule files refer to filters by name; the registry
resolves those names when rules are compiled.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ..grm_ast import RuleMatch
from ..grm_tokens import Token

logger = logging.getLogger(__name__)


class RuleFilter(ABC):
    """Post-match hook that can veto or rewrite a RuleMatch."""

    name: str = ""

    @abstractmethod
    def accept_rule_match(
        self,
        match: RuleMatch,
        arguments: Mapping[str, str],
        pattern_position: int,
        pattern_tokens: Sequence[Token],
        token_positions: Sequence[int],
    ) -> Optional[RuleMatch]:
        """
        Decide whether ``match`` stands.

        Args:
            match: The candidate match
            arguments: Filter arguments with back-references already expanded
            pattern_position: Sentence index of the first matched token
            pattern_tokens: The matched tokens, in order
            token_positions: Number of tokens consumed by each pattern matcher

        Returns:
            The match, a modified copy of it, or None to veto
        """


class FilterRegistry:
    """Name -> RuleFilter lookup used while compiling rule files."""

    def __init__(self, filters: Optional[Iterable[RuleFilter]] = None):
        self._filters: Dict[str, RuleFilter] = {}
        for rule_filter in filters or ():
            self.register(rule_filter)

    def register(self, rule_filter: RuleFilter, name: Optional[str] = None) -> None:
        key = name or rule_filter.name or type(rule_filter).__name__
        if key in self._filters:
            logger.warning("Replacing registered filter %s", key)
        self._filters[key] = rule_filter

    def get(self, name: str) -> Optional[RuleFilter]:
        return self._filters.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._filters

    def names(self):
        return sorted(self._filters)
