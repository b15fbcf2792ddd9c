"""
Compound check filter.

Accepts a match only when the pair (part1, part2) is listed in a compound
table. The table is a text file of ``part1;part2`` lines with ``#``
comments, loaded once on first use and shared read-only afterwards.
"""

import logging
import threading
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Sequence, Set, Union

from ..grm_ast import RuleMatch
from ..grm_errors import FilterError, LoadError
from ..grm_tokens import Token
from .base import RuleFilter

logger = logging.getLogger(__name__)

CompoundTable = Mapping[str, FrozenSet[str]]


def load_compound_table(path: str) -> Dict[str, FrozenSet[str]]:
    """
    Load a ``part1;part2`` compound table.

    Both parts are lower-cased. A non-empty line that does not split into
    exactly two parts is a LoadError.
    """
    table: Dict[str, Set[str]] = {}
    with open(path, "r", encoding="utf-8") as f:
        for line_no, raw in enumerate(f, 1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split(";")
            if len(parts) != 2:
                raise LoadError(
                    f"Expected 'part1;part2', got '{line}'", path=path, line=line_no
                )
            part1, part2 = (p.strip().lower() for p in parts)
            table.setdefault(part1, set()).add(part2)
    logger.info("Loaded compound table %s with %s entries", path, len(table))
    return {k: frozenset(v) for k, v in table.items()}


class CompoundCheckFilter(RuleFilter):
    """
    Keeps a match when ``part2`` is a known continuation of ``part1``.

    The table comes from ``table_path`` or from ``loader``. When the table
    cannot be loaded every match is vetoed, so a missing resource never
    produces unchecked compound suggestions.
    """

    name = "CompoundCheckFilter"

    def __init__(
        self,
        table_path: Optional[str] = None,
        loader: Optional[Callable[[], CompoundTable]] = None,
    ):
        if table_path is None and loader is None:
            raise ValueError("CompoundCheckFilter needs a table_path or a loader")
        self._loader = loader or (lambda: load_compound_table(table_path))
        self._table: Union[CompoundTable, None] = None
        self._unavailable = False
        self._lock = threading.Lock()

    def _get_table(self) -> Optional[CompoundTable]:
        if self._table is None and not self._unavailable:
            with self._lock:
                if self._table is None and not self._unavailable:
                    try:
                        self._table = self._loader()
                    except (OSError, ValueError) as e:
                        logger.warning("Compound table unavailable: %s", e)
                        self._unavailable = True
        return self._table

    def accept_rule_match(
        self,
        match: RuleMatch,
        arguments: Mapping[str, str],
        pattern_position: int,
        pattern_tokens: Sequence[Token],
        token_positions: Sequence[int],
    ) -> Optional[RuleMatch]:
        if "part1" not in arguments or "part2" not in arguments:
            raise FilterError("CompoundCheckFilter needs part1 and part2 arguments")
        table = self._get_table()
        if table is None:
            return None
        part1 = arguments["part1"].lower()
        part2 = arguments["part2"].lower()
        if part2 in table.get(part1, ()):
            return match
        return None
