"""
Rule priorities.

A rule's priority decides which of two overlapping matches survives. The
lookup order is: id override, explicit rule priority, category override
(including the built-in policy for category ids), the language's default
for style issues, and finally 0.
"""

import logging
from typing import Dict, Mapping, Optional

from ..grm_compiler import IssueType, RuleDefinition
from ..grm_errors import ConfigurationError

logger = logging.getLogger(__name__)

# Built-in policy for rule and category ids, overridable per language
TOO_LONG_SENTENCE_ID = "TOO_LONG_SENTENCE"
BUILTIN_ID_PRIORITIES = {
    TOO_LONG_SENTENCE_ID: -101,
    "REPETITIONS_STYLE": -55,
}
STYLE_ID_MARKER = "STYLE"
STYLE_ID_PRIORITY = -50


def _check_table(name: str, table: Optional[Mapping[str, int]]) -> Dict[str, int]:
    checked = {}
    for key, value in (table or {}).items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(
                f"Priority for {name} '{key}' must be an integer, got {value!r}"
            )
        checked[key] = value
    return checked


class PriorityTable:
    """
    Per-language priority configuration.

    Args:
        id_priorities: Rule id (or full id ``ID[SUB]``) -> priority
        category_priorities: Category id -> priority
        default_style_priority: Priority of rules whose issue type is style
            and that have no more specific priority
        use_builtin: Apply the built-in id policy for ids not listed in
            ``id_priorities``
    """

    def __init__(
        self,
        id_priorities: Optional[Mapping[str, int]] = None,
        category_priorities: Optional[Mapping[str, int]] = None,
        default_style_priority: Optional[int] = None,
        use_builtin: bool = True,
    ):
        self.id_priorities = _check_table("rule", id_priorities)
        self.category_priorities = _check_table("category", category_priorities)
        if default_style_priority is not None:
            _check_table("style default", {"style": default_style_priority})
        self.default_style_priority = default_style_priority
        self.use_builtin = use_builtin

    def priority_for_id(self, rule_id: str) -> Optional[int]:
        """Priority of a rule or category id, or None when the id has no override."""
        if rule_id in self.id_priorities:
            return self.id_priorities[rule_id]
        if not self.use_builtin:
            return None
        if rule_id.upper() == TOO_LONG_SENTENCE_ID:
            return BUILTIN_ID_PRIORITIES[TOO_LONG_SENTENCE_ID]
        if rule_id in BUILTIN_ID_PRIORITIES:
            return BUILTIN_ID_PRIORITIES[rule_id]
        if STYLE_ID_MARKER in rule_id:
            return STYLE_ID_PRIORITY
        return None

    def rule_priority(self, rule: RuleDefinition) -> int:
        """Effective priority of ``rule``."""
        for rule_id in (rule.full_id, rule.id):
            prio = self.priority_for_id(rule_id)
            if prio is not None:
                return prio
        if rule.priority is not None:
            return rule.priority
        if rule.category is not None:
            if rule.category in self.category_priorities:
                return self.category_priorities[rule.category]
            prio = self.priority_for_id(rule.category)
            if prio is not None:
                return prio
        if (
            self.default_style_priority is not None
            and rule.issue_type is IssueType.STYLE
        ):
            return self.default_style_priority
        return 0
