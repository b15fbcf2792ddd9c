"""
Rule filters: post-match hooks referenced by name from rule files.

- base: RuleFilter interface and FilterRegistry
- compound: CompoundCheckFilter and its table loader
"""

from .base import FilterRegistry, RuleFilter
from .compound import CompoundCheckFilter, load_compound_table

__all__ = [
    "RuleFilter",
    "FilterRegistry",
    "CompoundCheckFilter",
    "load_compound_table",
]
