"""
Match resolution package.

- priority: PriorityTable with the built-in id policy
- overlap_resolver: Priority-based overlap resolution
"""

from .overlap_resolver import OverlapResolver, resolve_overlaps
from .priority import PriorityTable

__all__ = [
    "PriorityTable",
    "OverlapResolver",
    "resolve_overlaps",
]
